"""Clients for the OpenClaw CLI and gateway.

Two transports share one interface: CliTransport shells out to the
`openclaw` binary, HttpTransport talks to the gateway's /tools/invoke
endpoint. Every call takes its own timeout and raises OpenClawError on
failure; the helpers at the bottom turn those failures into empty results.
"""

import asyncio
import json
import logging
import os
import re
import shlex
from pathlib import Path
from typing import Any

import httpx

from ..config import GraphConfig
from ..core.exceptions import OpenClawError
from ..core.types import AgentRow

logger = logging.getLogger(__name__)

_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def parse_json_output(raw: str, context: str = "CLI output") -> Any:
    """
    Parse JSON from CLI output that may be preceded by log lines.

    Tries the whole output first, then each '{' or '[' suffix from the last
    one backwards.
    """
    cleaned = _ANSI_ESCAPE.sub("", raw or "").replace("\r", "").strip()
    if not cleaned:
        raise OpenClawError(context, "empty output")

    if cleaned[0] in "{[":
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            pass

    starts = [i for i, ch in enumerate(cleaned) if ch in "{["]
    for start in reversed(starts):
        try:
            return json.loads(cleaned[start:])
        except json.JSONDecodeError:
            continue

    raise OpenClawError(context, f"no JSON in output: {cleaned[:400]}")


class OpenClawTransport:
    """Common interface for talking to OpenClaw."""

    name = "base"

    async def run(self, args: list[str], timeout: float) -> str:
        raise NotImplementedError

    async def run_json(self, args: list[str], timeout: float) -> Any:
        raw = await self.run([*args, "--json"], timeout)
        return parse_json_output(raw, f"openclaw {' '.join(args)} --json")

    async def gateway_call(self, method: str, params: dict | None, timeout: float) -> Any:
        raise NotImplementedError

    async def aclose(self):
        pass


async def _kill(proc: asyncio.subprocess.Process):
    """Kill a child that is still running and reap it."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


class CliTransport(OpenClawTransport):
    """Runs the openclaw binary as a subprocess."""

    name = "cli"

    def __init__(self, binary: str = "openclaw"):
        self.binary = binary

    async def run(self, args: list[str], timeout: float) -> str:
        command = f"openclaw {' '.join(args)}"
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "NO_COLOR": "1"},
            )
        except OSError as e:
            raise OpenClawError(command, str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError:
            await _kill(proc)
            raise OpenClawError(command, f"timed out after {timeout}s")
        except asyncio.CancelledError:
            await _kill(proc)
            raise

        out = stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            err = stderr.decode("utf-8", errors="replace").strip() or out.strip()
            raise OpenClawError(command, f"exit {proc.returncode}: {err[:400]}")
        return out

    async def gateway_call(self, method: str, params: dict | None, timeout: float) -> Any:
        args = ["gateway", "call", method, "--json"]
        if params:
            args += ["--params", json.dumps(params)]
        if timeout > 10:
            args += ["--timeout", str(int(timeout * 1000))]
        raw = await self.run(args, timeout + 5)
        return parse_json_output(raw, f"openclaw gateway call {method}")


class HttpTransport(OpenClawTransport):
    """Talks to the gateway's HTTP tool endpoint."""

    name = "http"

    def __init__(self, gateway_url: str, token: str = "", client: httpx.AsyncClient | None = None):
        self.gateway_url = gateway_url.rstrip("/")
        self.token = token
        self._client = client or httpx.AsyncClient()

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def invoke(self, tool: str, args: dict, timeout: float) -> Any:
        """POST /tools/invoke and return the decoded body."""
        try:
            response = await self._client.post(
                f"{self.gateway_url}/tools/invoke",
                json={"tool": tool, "args": args},
                headers=self._headers(),
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise OpenClawError(f"gateway tool {tool}", f"timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            raise OpenClawError(f"gateway tool {tool}", str(e)) from e

        if response.status_code != 200:
            raise OpenClawError(f"gateway tool {tool}", f"HTTP {response.status_code}: {response.text[:400]}")
        try:
            return response.json()
        except ValueError as e:
            raise OpenClawError(f"gateway tool {tool}", "response is not JSON") from e

    async def run(self, args: list[str], timeout: float) -> str:
        result = await self.invoke("exec", {"command": f"openclaw {shlex.join(args)}"}, timeout)
        if isinstance(result, str):
            return result
        if isinstance(result, dict):
            for key in ("output", "stdout", "result"):
                if isinstance(result.get(key), str):
                    return result[key]
        return json.dumps(result)

    async def gateway_call(self, method: str, params: dict | None, timeout: float) -> Any:
        if method == "sessions.list":
            return await self.invoke("sessions_list", params or {}, timeout)
        args = ["gateway", "call", method, "--json"]
        if params:
            args += ["--params", json.dumps(params)]
        raw = await self.run(args, timeout + 5)
        return parse_json_output(raw, f"gateway call {method}")

    async def aclose(self):
        await self._client.aclose()


def create_transport(config: GraphConfig) -> OpenClawTransport:
    """Transport selected by KG_TRANSPORT."""
    if config.transport == "http":
        return HttpTransport(config.gateway_url, config.gateway_token)
    return CliTransport(config.openclaw_bin)


# ============================================================================
# Lookups that degrade to empty results
# ============================================================================

async def list_agents(client: OpenClawTransport, timeout: float) -> list[AgentRow]:
    """Agent roster, or [] if the CLI is unavailable."""
    try:
        rows = await client.run_json(["agents", "list"], timeout)
    except OpenClawError as e:
        logger.warning(f"Agent roster unavailable: {e}")
        return []
    return [row for row in rows if isinstance(row, dict)] if isinstance(rows, list) else []


async def memory_db_path(client: OpenClawTransport, workspace: Path, timeout: float) -> Path | None:
    """Path of the memory index database for a workspace, if one is reported."""
    try:
        rows = await client.run_json(["memory", "status"], timeout)
    except OpenClawError as e:
        logger.warning(f"Memory status unavailable: {e}")
        return None

    for row in rows if isinstance(rows, list) else []:
        status = row.get("status") if isinstance(row, dict) else None
        if not isinstance(status, dict):
            continue
        if status.get("workspaceDir") == str(workspace) and isinstance(status.get("dbPath"), str):
            return Path(status["dbPath"])
    return None


async def reindex(client: OpenClawTransport, timeout: float) -> dict:
    """Best-effort `openclaw memory index`; reports the outcome instead of raising."""
    try:
        await client.run(["memory", "index"], timeout)
    except OpenClawError as e:
        logger.warning(f"Reindex failed: {e}")
        return {"indexed": False, "error": str(e)}
    return {"indexed": True}
