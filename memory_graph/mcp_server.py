#!/usr/bin/env python3
"""
Knowledge Graph MCP Server
Exposes the workspace knowledge graph to agents over stdio.
Every call reads or writes the canonical file; nothing is cached.
"""

import asyncio
import json
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .api.service import GraphService
from .config import GraphConfig, configure_logging
from .core.exceptions import KGError

logger = logging.getLogger(__name__)


# Initialize server
app = Server("openclaw-memory-graph")

# Global service instance
service: GraphService | None = None

_GRAPH_WRITE_SCHEMA = {
    "type": "object",
    "properties": {
        "graph": {"type": "object", "description": "Graph with nodes and edges; repaired before writing"},
        "reindex": {"type": "boolean", "description": "Run `openclaw memory index` afterwards (default true)"},
    },
    "required": ["graph"],
}


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available knowledge graph tools."""
    return [
        Tool(
            name="kg_read",
            description="Read the workspace knowledge graph with source documents and recent chat. New memory documents and agents are added automatically. Set bootstrap to rebuild from the memory files.",
            inputSchema={
                "type": "object",
                "properties": {
                    "bootstrap": {"type": "boolean", "description": "Rebuild the graph from memory documents"}
                }
            }
        ),
        Tool(
            name="kg_save",
            description="Save the graph to memory/knowledge-graph.json and refresh the markdown mirror.",
            inputSchema=_GRAPH_WRITE_SCHEMA
        ),
        Tool(
            name="kg_publish_memory",
            description="Publish a summary of the graph into the marked section of MEMORY.md. Content outside the markers is kept.",
            inputSchema=_GRAPH_WRITE_SCHEMA
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls with uniform error handling."""
    arguments = arguments or {}

    try:
        if name == "kg_read":
            result = await service.read(force_bootstrap=bool(arguments.get("bootstrap")))
            return [TextContent(type="text", text=json.dumps(result, indent=2))]

        elif name == "kg_save":
            result = await service.write("save", arguments.get("graph"), arguments.get("reindex", True))
            return [TextContent(type="text", text=json.dumps(result))]

        elif name == "kg_publish_memory":
            result = await service.write("publish-memory-md", arguments.get("graph"), arguments.get("reindex", True))
            return [TextContent(type="text", text=json.dumps(result))]

        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

    except KGError as e:
        # Structured error response for known errors
        logger.warning(f"KG error in {name}: {e}")
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]

    except Exception as e:
        # Unexpected errors
        logger.error(f"Unexpected error in {name}: {e}", exc_info=True)
        return [TextContent(type="text", text=json.dumps({"error": f"Internal error: {str(e)}"}))]


async def main():
    """Main entry point."""
    global service

    # Load configuration from environment
    config = GraphConfig.from_env()
    configure_logging(config.log_level)
    service = GraphService(config)

    logger.info(f"Starting Knowledge Graph MCP Server for {config.workspace}...")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        await service.aclose()
        service = None


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
