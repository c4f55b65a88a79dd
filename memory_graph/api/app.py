"""FastAPI HTTP server for the workspace knowledge graph."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .. import __version__
from ..config import GraphConfig
from ..core.exceptions import KGError, UnknownActionError
from .service import GraphService

logger = logging.getLogger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================

class GraphWriteRequest(BaseModel):
    """Request to save or publish a graph."""
    action: str = Field("save", description="'save' or 'publish-memory-md'")
    graph: Any = Field(None, description="Graph payload; normalized before writing")
    reindex: bool = Field(True, description="Run `openclaw memory index` after writing")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    workspace: str | None
    transport: str | None


# ============================================================================
# Global State
# ============================================================================

service: GraphService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    global service

    # Startup
    logger.info("Starting Knowledge Graph HTTP Server...")
    if service is None:
        config = GraphConfig.from_env()
        service = GraphService(config)
        logger.info(f"Workspace: {config.workspace} (transport: {config.transport})")

    logger.info("Server ready")

    yield

    # Shutdown
    if service:
        await service.aclose()
        service = None

    logger.info("Server stopped")


# Create FastAPI app
app = FastAPI(
    title="OpenClaw Memory Knowledge Graph",
    description="Synthesizes, persists and publishes the workspace knowledge graph",
    version=__version__,
    lifespan=lifespan
)


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": __version__,
        "workspace": str(service.paths.workspace) if service else None,
        "transport": service.client.name if service else None,
    }


@app.get("/api/memory/graph")
async def read_graph(mode: str | None = None):
    """
    Read the saved graph, injecting any new documents and agents.
    With mode=bootstrap the graph is rebuilt from the memory documents.
    """
    if not service:
        raise HTTPException(status_code=500, detail="Service not initialized")

    try:
        return await service.read(force_bootstrap=mode == "bootstrap")
    except Exception as e:
        logger.error(f"Error reading graph: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/memory/graph")
async def write_graph(request: GraphWriteRequest):
    """Save the graph (JSON + markdown mirror) or publish a snapshot into MEMORY.md."""
    if not service:
        raise HTTPException(status_code=500, detail="Service not initialized")

    try:
        return await service.write(request.action, request.graph, request.reindex)
    except UnknownActionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except KGError as e:
        logger.error(f"Error writing graph: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Error writing graph: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

