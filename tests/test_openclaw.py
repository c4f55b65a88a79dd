"""Tests for the OpenClaw CLI and gateway clients."""

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from conftest import FakeTransport, cli_json

from memory_graph.config import GraphConfig
from memory_graph.core.exceptions import OpenClawError
from memory_graph.sources.openclaw import (
    CliTransport,
    HttpTransport,
    create_transport,
    list_agents,
    memory_db_path,
    parse_json_output,
    reindex,
)


class TestParseJsonOutput:

    def test_plain_json(self):
        assert parse_json_output('{"a": 1}') == {"a": 1}

    def test_log_lines_before_json(self):
        raw = "\x1b[33mwarn\x1b[0m: plugin loaded\r\n[info] ready\n[{\"id\": \"main\", \"tags\": [\"x\"]}]"
        assert parse_json_output(raw) == [{"id": "main", "tags": ["x"]}]

    def test_empty_output(self):
        with pytest.raises(OpenClawError, match="empty output"):
            parse_json_output("   ")

    def test_no_json(self):
        with pytest.raises(OpenClawError, match="no JSON"):
            parse_json_output("all good")


class TestCliTransport:

    def _proc(self, returncode=0, stdout=b"", stderr=b""):
        proc = MagicMock()
        proc.returncode = returncode
        proc.communicate = AsyncMock(return_value=(stdout, stderr))
        return proc

    def test_run_returns_stdout(self):
        proc = self._proc(stdout=b'[{"id": "main"}]')
        with patch("memory_graph.sources.openclaw.asyncio.create_subprocess_exec",
                   AsyncMock(return_value=proc)) as spawn:
            result = asyncio.run(CliTransport("/usr/bin/openclaw").run_json(["agents", "list"], 5))
        assert result == [{"id": "main"}]
        args = spawn.call_args.args
        assert args == ("/usr/bin/openclaw", "agents", "list", "--json")
        assert spawn.call_args.kwargs["env"]["NO_COLOR"] == "1"

    def test_nonzero_exit(self):
        proc = self._proc(returncode=2, stderr=b"boom")
        with patch("memory_graph.sources.openclaw.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(OpenClawError, match="exit 2: boom"):
                asyncio.run(CliTransport().run(["memory", "index"], 5))

    def test_missing_binary(self, tmp_path):
        with pytest.raises(OpenClawError):
            asyncio.run(CliTransport(str(tmp_path / "no-such-openclaw")).run(["status"], 5))

    def _hanging_proc(self):
        async def hang():
            await asyncio.sleep(3600)

        proc = self._proc(returncode=None)
        proc.communicate = hang
        proc.wait = AsyncMock(return_value=-9)
        return proc

    def test_timeout_kills_child(self):
        proc = self._hanging_proc()
        with patch("memory_graph.sources.openclaw.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(OpenClawError, match="timed out"):
                asyncio.run(CliTransport().run(["memory", "index"], 0.01))
        proc.kill.assert_called_once()
        proc.wait.assert_awaited_once()

    def test_cancel_kills_child(self):
        proc = self._hanging_proc()

        async def cancel_midway():
            task = asyncio.create_task(CliTransport().run(["memory", "index"], 60))
            for _ in range(3):
                await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        with patch("memory_graph.sources.openclaw.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            asyncio.run(cancel_midway())
        proc.kill.assert_called_once()
        proc.wait.assert_awaited_once()

    def test_gateway_call_args(self):
        proc = self._proc(stdout=b'{"sessions": []}')
        with patch("memory_graph.sources.openclaw.asyncio.create_subprocess_exec",
                   AsyncMock(return_value=proc)) as spawn:
            result = asyncio.run(CliTransport("openclaw").gateway_call("chat.history", {"sessionKey": "k"}, 5))
        assert result == {"sessions": []}
        assert spawn.call_args.args[1:] == (
            "gateway", "call", "chat.history", "--json", "--params", json.dumps({"sessionKey": "k"}),
        )


class TestHttpTransport:

    def _transport(self, handler, token="secret"):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpTransport("http://gw:18789/", token, client=client)

    def test_invoke_posts_tool(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"sessions": [{"key": "agent:main"}]})

        transport = self._transport(handler)
        result = asyncio.run(transport.gateway_call("sessions.list", None, 5))
        assert result == {"sessions": [{"key": "agent:main"}]}
        assert seen["url"] == "http://gw:18789/tools/invoke"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == {"tool": "sessions_list", "args": {}}

    def test_run_uses_exec_tool(self):
        def handler(request):
            body = json.loads(request.content)
            assert body == {"tool": "exec", "args": {"command": "openclaw memory index"}}
            return httpx.Response(200, json={"output": "indexed 3 files"})

        assert asyncio.run(self._transport(handler).run(["memory", "index"], 5)) == "indexed 3 files"

    def test_http_error_status(self):
        transport = self._transport(lambda request: httpx.Response(401, text="no"))
        with pytest.raises(OpenClawError, match="HTTP 401"):
            asyncio.run(transport.invoke("exec", {}, 5))

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused")

        with pytest.raises(OpenClawError, match="refused"):
            asyncio.run(self._transport(handler).invoke("exec", {}, 5))

    def test_no_token_no_header(self):
        transport = HttpTransport("http://gw", "")
        assert transport._headers() == {}


def test_create_transport(tmp_path):
    assert isinstance(create_transport(GraphConfig(workspace=tmp_path)), CliTransport)
    http = create_transport(GraphConfig(workspace=tmp_path, transport="http", gateway_url="http://gw"))
    assert isinstance(http, HttpTransport)
    asyncio.run(http.aclose())


class TestDegradingLookups:

    def test_list_agents(self):
        client = FakeTransport(outputs={"agents list --json": cli_json([{"id": "main"}, "junk"])})
        assert asyncio.run(list_agents(client, 5)) == [{"id": "main"}]

    def test_list_agents_unavailable(self):
        assert asyncio.run(list_agents(FakeTransport(), 5)) == []

    def test_list_agents_wrong_shape(self):
        client = FakeTransport(outputs={"agents list --json": cli_json({"agents": []})})
        assert asyncio.run(list_agents(client, 5)) == []

    def test_memory_db_path(self):
        rows = [{"status": {"workspaceDir": "/ws", "dbPath": "/db/main.sqlite"}}]
        client = FakeTransport(outputs={"memory status --json": cli_json(rows)})
        assert asyncio.run(memory_db_path(client, Path("/ws"), 5)) == Path("/db/main.sqlite")
        assert asyncio.run(memory_db_path(client, Path("/other"), 5)) is None

    def test_reindex(self):
        ok = FakeTransport(outputs={"memory index": "done"})
        assert asyncio.run(reindex(ok, 5)) == {"indexed": True}

        result = asyncio.run(reindex(FakeTransport(), 5))
        assert result["indexed"] is False
        assert "memory index" in result["error"]
