"""Tests for the MCP tool handlers."""

import asyncio
import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeTransport

import memory_graph.mcp_server as mcp_module
from memory_graph.api.service import GraphService


@pytest.fixture
def service(config):
    mcp_module.service = GraphService(config, FakeTransport())
    yield mcp_module.service
    mcp_module.service = None


def _call(name, arguments):
    async def go():
        contents = await mcp_module.call_tool(name, arguments)
        await mcp_module.service.aclose()
        return contents
    return asyncio.run(go())


def test_tools_listed():
    tools = asyncio.run(mcp_module.list_tools())
    assert [t.name for t in tools] == ["kg_read", "kg_save", "kg_publish_memory"]


def test_kg_read(service):
    contents = _call("kg_read", {"bootstrap": True})
    body = json.loads(contents[0].text)
    assert "bootstrap" in body
    assert body["graph"]["nodes"][0]["id"] == "memory-core"


def test_kg_save(service, paths):
    contents = _call("kg_save", {"graph": {"nodes": [{"id": "a"}]}, "reindex": False})
    body = json.loads(contents[0].text)
    assert body["ok"] is True
    assert paths.graph_json.exists()


def test_kg_publish_memory(service, paths):
    contents = _call("kg_publish_memory", {"graph": {"nodes": [{"id": "a", "label": "Alpha"}]}, "reindex": False})
    assert json.loads(contents[0].text)["published"] == str(paths.memory_md)
    assert "**Alpha**" in paths.memory_md.read_text(encoding="utf-8")


def test_unknown_tool(service):
    assert _call("kg_delete", {})[0].text == "Unknown tool: kg_delete"


def test_main_uses_configured_log_level(config):
    config.log_level = "DEBUG"

    @asynccontextmanager
    async def fake_stdio():
        yield (None, None)

    with patch.object(mcp_module.GraphConfig, "from_env", return_value=config), \
            patch.object(mcp_module, "stdio_server", fake_stdio), \
            patch.object(mcp_module.app, "run", AsyncMock()) as run, \
            patch.object(mcp_module, "configure_logging") as configure:
        asyncio.run(mcp_module.main())

    configure.assert_called_once_with("DEBUG")
    run.assert_awaited_once()
    assert mcp_module.service is None
