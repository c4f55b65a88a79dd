"""Workspace discovery for an OpenClaw installation."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_PORT = 18789


def resolve_openclaw_home() -> Path:
    """OPENCLAW_HOME, then OPENCLAW_STATE_DIR, then ~/.openclaw."""
    raw = os.getenv("OPENCLAW_HOME") or os.getenv("OPENCLAW_STATE_DIR")
    return Path(raw).expanduser() if raw else Path.home() / ".openclaw"


def _read_openclaw_config(home: Path) -> dict:
    try:
        with open(home / "openclaw.json", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def resolve_workspace(home: Path) -> Path:
    """
    Default agent workspace.

    Priority: OPENCLAW_WORKSPACE, agents.defaults.workspace in openclaw.json,
    then $OPENCLAW_HOME/workspace.
    """
    env = os.getenv("OPENCLAW_WORKSPACE")
    if env:
        return Path(env).expanduser()

    config = _read_openclaw_config(home)
    workspace = ((config.get("agents") or {}).get("defaults") or {}).get("workspace")
    if isinstance(workspace, str) and workspace.strip():
        return Path(workspace).expanduser()

    return home / "workspace"


def resolve_gateway_url(home: Path) -> str:
    """OPENCLAW_GATEWAY_URL, then gateway.port from openclaw.json, then the default port."""
    env = os.getenv("OPENCLAW_GATEWAY_URL")
    if env:
        return env.rstrip("/")

    port = (_read_openclaw_config(home).get("gateway") or {}).get("port")
    if isinstance(port, int) and not isinstance(port, bool):
        return f"http://127.0.0.1:{port}"
    return f"http://127.0.0.1:{DEFAULT_GATEWAY_PORT}"


@dataclass(frozen=True)
class WorkspacePaths:
    """Files the engine reads and writes inside a workspace."""
    workspace: Path

    @property
    def memory_dir(self) -> Path:
        return self.workspace / "memory"

    @property
    def graph_json(self) -> Path:
        return self.memory_dir / "knowledge-graph.json"

    @property
    def graph_md(self) -> Path:
        return self.memory_dir / "knowledge-graph.md"

    @property
    def memory_md(self) -> Path:
        return self.workspace / "MEMORY.md"

    def graph_meta(self) -> dict:
        return {
            "workspace": str(self.workspace),
            "materializedPath": str(self.graph_md),
            "jsonPath": str(self.graph_json),
        }

    def as_response(self) -> dict:
        return {
            "json": str(self.graph_json),
            "markdown": str(self.graph_md),
            "memory": str(self.memory_md),
        }
