"""Configuration for the knowledge graph engine, read from the environment."""

import logging
import os
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .core.constants import BACKUP_INTERVAL_SECONDS
from .sources.workspace import (
    WorkspacePaths,
    resolve_gateway_url,
    resolve_openclaw_home,
    resolve_workspace,
)

TRANSPORTS = ("cli", "http")


@dataclass
class GraphConfig:
    """Configuration for the knowledge graph engine."""
    workspace: Path = field(default_factory=lambda: Path.home() / ".openclaw" / "workspace")
    openclaw_bin: str = "openclaw"
    gateway_url: str = "http://127.0.0.1:18789"
    gateway_token: str = ""
    transport: str = "cli"
    cli_timeout: float = 12.0
    gateway_timeout: float = 10.0
    reindex_timeout: float = 20.0
    background_reindex_timeout: float = 45.0
    index_query_timeout: float = 15.0
    backup_interval: int = BACKUP_INTERVAL_SECONDS
    log_level: str = "INFO"
    http_host: str = "127.0.0.1"
    http_port: int = 8765

    def __post_init__(self):
        if self.transport not in TRANSPORTS:
            raise ValueError(f"Invalid transport '{self.transport}', must be one of {TRANSPORTS}")

    @property
    def paths(self) -> WorkspacePaths:
        return WorkspacePaths(self.workspace)

    @classmethod
    def from_env(cls) -> "GraphConfig":
        """Load configuration from environment variables and openclaw.json."""
        home = resolve_openclaw_home()
        return cls(
            workspace=resolve_workspace(home),
            openclaw_bin=os.getenv("OPENCLAW_BIN") or shutil.which("openclaw") or "openclaw",
            gateway_url=resolve_gateway_url(home),
            gateway_token=os.getenv("OPENCLAW_GATEWAY_TOKEN", ""),
            transport=os.getenv("KG_TRANSPORT", "cli").lower(),
            cli_timeout=float(os.getenv("KG_CLI_TIMEOUT", "12")),
            gateway_timeout=float(os.getenv("KG_GATEWAY_TIMEOUT", "10")),
            reindex_timeout=float(os.getenv("KG_REINDEX_TIMEOUT", "20")),
            background_reindex_timeout=float(os.getenv("KG_BACKGROUND_REINDEX_TIMEOUT", "45")),
            index_query_timeout=float(os.getenv("KG_INDEX_QUERY_TIMEOUT", "15")),
            backup_interval=int(os.getenv("KG_BACKUP_INTERVAL", str(BACKUP_INTERVAL_SECONDS))),
            log_level=os.getenv("KG_LOG_LEVEL", "INFO").upper(),
            http_host=os.getenv("KG_HTTP_HOST", "127.0.0.1"),
            http_port=int(os.getenv("KG_HTTP_PORT", "8765")),
        )


def configure_logging(level: str):
    """Log to stderr (never stdout, which carries the MCP stdio stream)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )
