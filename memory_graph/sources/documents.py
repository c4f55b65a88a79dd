"""Readers for the memory documents that seed a bootstrap."""

import asyncio
import logging
import re
import sqlite3
from collections import OrderedDict
from pathlib import Path

from ..core.constants import (
    INDEXED_FILE_MAX_CHARS,
    JOURNAL_FILE_MAX_CHARS,
    MAX_INDEXED_FILES,
    MAX_JOURNAL_FILES,
    WORKSPACE_FILE_MAX_CHARS,
)
from ..core.persistence import read_text_optional
from ..core.types import BootstrapFile, BootstrapInfo
from .openclaw import OpenClawTransport, memory_db_path
from .workspace import WorkspacePaths

logger = logging.getLogger(__name__)

JOURNAL_NAME = re.compile(r"^\d{4}-\d{2}-\d{2}.*\.md$", re.IGNORECASE)
MEMORY_MD_NAMES = ("MEMORY.md", "memory.md")

INDEXED_CHUNKS_SQL = (
    "select c.path as path, c.start_line as start_line, c.text as text, f.mtime as mtime "
    "from chunks c join files f on c.path = f.path and c.source = f.source "
    "order by f.mtime desc, c.path asc, c.start_line asc"
)


def _read_file(path: Path, max_chars: int) -> str | None:
    content = read_text_optional(path)
    if content is None:
        logger.debug(f"Skipping unreadable file {path}")
        return None
    return content[:max_chars]


def read_memory_md(paths: WorkspacePaths) -> str:
    """Long-term memory document, or "" if there isn't one."""
    return read_text_optional(paths.memory_md) or ""


def list_workspace_root_names(workspace: Path) -> list[str]:
    """Sorted root-level markdown files, MEMORY.md excluded."""
    try:
        entries = list(workspace.iterdir())
    except OSError:
        return []
    return sorted(
        e.name for e in entries
        if e.is_file() and e.name.endswith(".md") and e.name not in MEMORY_MD_NAMES
    )


def read_workspace_root_files(paths: WorkspacePaths) -> list[BootstrapFile]:
    """Every root-level markdown file in the workspace."""
    files: list[BootstrapFile] = []
    for name in list_workspace_root_names(paths.workspace):
        content = _read_file(paths.workspace / name, WORKSPACE_FILE_MAX_CHARS)
        if content is not None:
            files.append({"name": name, "content": content, "source": "filesystem"})
    return files


def read_recent_journal_files(paths: WorkspacePaths, limit: int = MAX_JOURNAL_FILES) -> list[BootstrapFile]:
    """Newest dated journal files (memory/YYYY-MM-DD*.md), newest first."""
    try:
        entries = list(paths.memory_dir.iterdir())
    except OSError:
        return []

    names = sorted((e.name for e in entries if e.is_file() and JOURNAL_NAME.match(e.name)), reverse=True)
    files: list[BootstrapFile] = []
    for name in names[:limit]:
        content = _read_file(paths.memory_dir / name, JOURNAL_FILE_MAX_CHARS)
        if content is not None:
            files.append({"name": name, "content": content, "source": "filesystem"})
    return files


def group_indexed_chunks(rows: list, limit: int = MAX_INDEXED_FILES) -> list[BootstrapFile]:
    """
    Reassemble indexed chunks into per-file documents.

    Rows arrive newest file first; only the first `limit` markdown files are
    kept and each stops growing once it passes the size cap.
    """
    grouped: OrderedDict[str, dict] = OrderedDict()
    for row in rows:
        path = str(row.get("path") or "").strip() if isinstance(row, dict) else ""
        if not path.endswith(".md"):
            continue
        if path not in grouped:
            if len(grouped) >= limit:
                continue
            grouped[path] = {"name": Path(path).name, "parts": [], "chars": 0}
        entry = grouped[path]

        text = row.get("text")
        chunk = text.replace("\r\n", "\n").replace("\r", "\n").strip() if isinstance(text, str) else ""
        if not chunk or entry["chars"] > INDEXED_FILE_MAX_CHARS:
            continue
        entry["parts"].append(chunk)
        entry["chars"] += len(chunk)

    return [
        {"name": entry["name"], "content": "\n\n".join(entry["parts"]), "source": "indexed"}
        for entry in grouped.values()
        if entry["parts"]
    ]


def query_indexed_chunks(db_path: Path) -> list[dict]:
    """All indexed chunks from the memory index database (read-only)."""
    # as_uri percent-encodes "%", "#" and "?" in the path
    conn = sqlite3.connect(f"{Path(db_path).resolve().as_uri()}?mode=ro", uri=True, timeout=5)
    try:
        conn.row_factory = sqlite3.Row
        return [dict(row) for row in conn.execute(INDEXED_CHUNKS_SQL)]
    finally:
        conn.close()


async def read_indexed_memory_files(
    client: OpenClawTransport,
    paths: WorkspacePaths,
    status_timeout: float,
    query_timeout: float,
    limit: int = MAX_INDEXED_FILES,
) -> list[BootstrapFile]:
    """Documents reassembled from the memory index, or [] if it can't be read."""
    db_path = await memory_db_path(client, paths.workspace, status_timeout)
    if db_path is None:
        return []

    try:
        rows = await asyncio.wait_for(asyncio.to_thread(query_indexed_chunks, db_path), query_timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Indexed chunk query timed out after {query_timeout}s")
        return []
    except sqlite3.Error as e:
        logger.warning(f"Indexed chunk query failed on {db_path}: {e}")
        return []
    return group_indexed_chunks(rows, limit)


def select_seed_files(
    memory_md: str,
    indexed: list[BootstrapFile],
    journals: list[BootstrapFile],
    workspace_files: list[BootstrapFile],
) -> tuple[list[BootstrapFile], BootstrapInfo]:
    """
    Order bootstrap seeds: MEMORY.md, then indexed files (or journals when
    nothing is indexed), then any root-level files not already included.
    """
    seeds: list[BootstrapFile] = []
    if memory_md.strip():
        seeds.append({"name": "MEMORY.md", "content": memory_md, "source": "filesystem"})

    names = {f["name"] for f in seeds}
    for file in [*(indexed or journals), *workspace_files]:
        if file["name"] not in names:
            seeds.append(file)
            names.add(file["name"])

    info: BootstrapInfo = {
        "source": "indexed" if indexed else "filesystem",
        "files": [f["name"] for f in seeds],
    }
    return seeds, info
