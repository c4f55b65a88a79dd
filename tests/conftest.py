"""Shared fixtures for all test modules."""
import json
from pathlib import Path

import pytest

from memory_graph.config import GraphConfig
from memory_graph.core.exceptions import OpenClawError
from memory_graph.sources.openclaw import OpenClawTransport
from memory_graph.sources.workspace import WorkspacePaths


class FakeTransport(OpenClawTransport):
    """OpenClaw client with canned responses and call recording.

    `outputs` maps a joined command line ("agents list --json") to its raw
    stdout. `gateway` maps a method name to a result, or to a callable that
    receives the params. Anything not listed fails like an unreachable CLI.
    """

    name = "fake"

    def __init__(self, outputs: dict | None = None, gateway: dict | None = None):
        self.outputs = outputs or {}
        self.gateway = gateway or {}
        self.calls: list[tuple] = []
        self.closed = False

    async def run(self, args, timeout):
        self.calls.append(tuple(args))
        key = " ".join(args)
        if key not in self.outputs:
            raise OpenClawError(f"openclaw {key}", "not available")
        return self.outputs[key]

    async def gateway_call(self, method, params, timeout):
        self.calls.append(("gateway", method))
        if method not in self.gateway:
            raise OpenClawError(f"gateway call {method}", "not available")
        result = self.gateway[method]
        return result(params) if callable(result) else result

    async def aclose(self):
        self.closed = True


@pytest.fixture
def workspace(tmp_path) -> Path:
    """Empty OpenClaw workspace with a memory/ directory."""
    root = tmp_path / "workspace"
    (root / "memory").mkdir(parents=True)
    return root


@pytest.fixture
def paths(workspace) -> WorkspacePaths:
    return WorkspacePaths(workspace)


@pytest.fixture
def config(workspace) -> GraphConfig:
    return GraphConfig(workspace=workspace, backup_interval=0)


@pytest.fixture
def fake_client() -> FakeTransport:
    return FakeTransport()


def cli_json(value) -> str:
    """Raw CLI output for a --json command, with a log line in front."""
    return "[openclaw] loading plugins\n" + json.dumps(value)
