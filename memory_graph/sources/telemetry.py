"""Read-only evidence assembled next to the graph for inspection.

Nothing here writes to the canonical graph. Documents are parsed at line
granularity so the UI can cite where a fact came from, and recent chat
messages are attached purely for display.
"""

import asyncio
import logging
from pathlib import Path
from typing import Literal

from ..core.constants import (
    CHUNK_TEXT_MAX_CHARS,
    MAX_CHUNKS_PER_DOCUMENT,
    MAX_EVIDENCE_FACTS,
    MAX_SOURCE_DOCUMENTS,
    RECENT_CHAT_PER_SESSION,
    RECENT_CHAT_SESSIONS,
    STATEMENT_MAX_CHARS,
)
from ..core.exceptions import OpenClawError
from ..core.extractor import BULLET, HEADING, KEY_VALUE, split_lines
from ..core.types import (
    GraphTelemetry,
    KnowledgeGraph,
    RecentChatMessage,
    SourceChunk,
    SourceDocument,
    SourceFact,
)
from ..core.utils import (
    canonicalize_fact,
    clean_inline,
    ellipsize,
    normalize_topic,
    sanitize_text,
    slug,
    to_epoch_ms,
    utc_now_iso,
)
from .documents import list_workspace_root_names
from .openclaw import OpenClawTransport
from .workspace import WorkspacePaths

logger = logging.getLogger(__name__)

# Node sources that don't name a document.
GENERIC_SOURCES = {"bootstrap", "manual", "template", "filesystem", "indexed", "agents"}


def extract_evidence(
    content: str,
    max_chunks: int = MAX_CHUNKS_PER_DOCUMENT,
    max_facts: int = MAX_EVIDENCE_FACTS,
) -> tuple[list[SourceChunk], list[SourceFact]]:
    """
    Parse a markdown document into line-addressable chunks and facts.

    Every heading, bullet and paragraph line becomes a chunk. Only bullets
    and "Label: value" lines become facts, deduplicated per topic on their
    canonical form.
    """
    chunks: list[SourceChunk] = []
    facts: list[SourceFact] = []
    seen: set[str] = set()
    topic = "General"

    for line_no, raw in enumerate(split_lines(content or ""), start=1):
        line = raw.strip()
        if not line:
            continue

        heading = HEADING.match(line)
        if heading:
            topic = normalize_topic(heading.group(1))
            if len(chunks) < max_chunks:
                chunks.append({
                    "id": f"chunk-heading-{line_no}-{slug(topic)}",
                    "topic": topic,
                    "kind": "heading",
                    "text": topic,
                    "startLine": line_no,
                    "endLine": line_no,
                })
            continue

        bullet = BULLET.match(line)
        kv = None if bullet else KEY_VALUE.match(line)
        if bullet:
            text = clean_inline(bullet.group(1))
        elif kv:
            text = clean_inline(f"{kv.group(1)}: {kv.group(2)}")
        else:
            text = clean_inline(line)
        if not text:
            continue

        if len(chunks) < max_chunks:
            chunks.append({
                "id": f"chunk-{line_no}-{slug(text)}",
                "topic": topic,
                "kind": "bullet" if bullet or kv else "paragraph",
                "text": ellipsize(text, CHUNK_TEXT_MAX_CHARS),
                "startLine": line_no,
                "endLine": line_no,
            })

        if not (bullet or kv) or len(facts) >= max_facts:
            continue
        canonical = canonicalize_fact(text)
        key = f"{topic.lower()}::{canonical}"
        if not canonical or key in seen:
            continue
        seen.add(key)
        facts.append({
            "id": f"fact-{line_no}-{slug(canonical)}",
            "topic": topic,
            "statement": ellipsize(text, STATEMENT_MAX_CHARS),
            "canonical": canonical,
            "line": line_no,
            "confidenceHint": 0.8 if kv else 0.72,
        })

    return chunks, facts


def collect_source_hints(graph: KnowledgeGraph) -> set[str]:
    """Lowercased document names the graph refers to."""
    hints = {"memory.md"}
    for node in graph["nodes"]:
        source = sanitize_text(node.get("source")).lower()
        if source and source not in GENERIC_SOURCES:
            hints.add(source)
        for tag in node.get("tags") or []:
            if tag.startswith("file:"):
                hint = sanitize_text(tag[len("file:"):]).lower()
                if hint:
                    hints.add(hint)
    for edge in graph["edges"]:
        evidence = sanitize_text(edge.get("evidence")).lower()
        if evidence.endswith(".md"):
            hints.add(evidence)
    return hints


def read_source_document(name: str, path: Path, source: Literal["workspace", "memory"]) -> SourceDocument | None:
    """Parse one document, or None if it can't be read."""
    try:
        stat = path.stat()
        if not path.is_file():
            return None
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Skipping evidence document {path}: {e}")
        return None

    chunks, facts = extract_evidence(content)
    return {
        "id": f"doc-{slug(name)}",
        "name": name,
        "path": str(path),
        "source": source,
        "mtimeMs": stat.st_mtime * 1000,
        "size": stat.st_size,
        "chunks": chunks,
        "facts": facts,
    }


def read_source_documents(
    paths: WorkspacePaths,
    graph: KnowledgeGraph,
    limit: int = MAX_SOURCE_DOCUMENTS,
) -> list[SourceDocument]:
    """
    Parse MEMORY.md, root-level workspace documents and memory/ documents.

    Documents the graph refers to sort first, then newest first.
    """
    candidates: list[tuple[str, Path, Literal["workspace", "memory"]]] = [("MEMORY.md", paths.memory_md, "workspace")]
    candidates += [(name, paths.workspace / name, "workspace") for name in list_workspace_root_names(paths.workspace)]
    try:
        candidates += [
            (e.name, e, "memory") for e in sorted(paths.memory_dir.iterdir())
            if e.name.lower().endswith(".md")
        ]
    except OSError:
        pass

    docs: list[SourceDocument] = []
    seen: set[str] = set()
    for name, path, source in candidates:
        if not name.endswith(".md") or name.lower() in seen:
            continue
        doc = read_source_document(name, path, source)
        if doc is not None:
            docs.append(doc)
            seen.add(name.lower())

    hints = collect_source_hints(graph)
    docs.sort(key=lambda d: (d["name"].lower() not in hints, -d["mtimeMs"]))
    return docs[:limit]


def extract_message_text(message: dict) -> str:
    """Join the text parts of a gateway chat message."""
    parts = message.get("content")
    if not isinstance(parts, list):
        return ""
    texts = [
        part["text"] for part in parts
        if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
    ]
    return "\n".join(texts).strip()


async def _session_history(
    client: OpenClawTransport,
    session_key: str,
    per_session: int,
    timeout: float,
) -> list[RecentChatMessage]:
    try:
        history = await client.gateway_call("chat.history", {"sessionKey": session_key, "limit": per_session}, timeout)
    except OpenClawError as e:
        logger.warning(f"Chat history unavailable for {session_key}: {e}")
        return []

    rows = history.get("messages") if isinstance(history, dict) else None
    messages: list[RecentChatMessage] = []
    for row in rows if isinstance(rows, list) else []:
        if not isinstance(row, dict):
            continue
        text = extract_message_text(row)
        if text:
            messages.append({
                "sessionKey": session_key,
                "role": sanitize_text(row.get("role"), "unknown") or "unknown",
                "timestampMs": to_epoch_ms(row.get("timestamp")),
                "text": text,
            })
    return messages


async def read_recent_chat_messages(
    client: OpenClawTransport,
    timeout: float,
    limit_sessions: int = RECENT_CHAT_SESSIONS,
    per_session: int = RECENT_CHAT_PER_SESSION,
) -> list[RecentChatMessage]:
    """Newest messages across the most recently active agent sessions."""
    try:
        result = await client.gateway_call("sessions.list", None, timeout)
    except OpenClawError as e:
        logger.warning(f"Session list unavailable: {e}")
        return []

    sessions = result.get("sessions") if isinstance(result, dict) else None
    ranked = sorted(
        (
            (sanitize_text(s.get("key")), to_epoch_ms(s.get("updatedAt")))
            for s in (sessions if isinstance(sessions, list) else [])
            if isinstance(s, dict)
        ),
        key=lambda item: -item[1],
    )
    keys = [key for key, _ in ranked if key.startswith("agent:")][:limit_sessions]

    histories = await asyncio.gather(*(_session_history(client, key, per_session, timeout) for key in keys))
    messages = [m for history in histories for m in history]
    messages.sort(key=lambda m: -m["timestampMs"])
    return messages[:limit_sessions * per_session]


def build_telemetry(documents: list[SourceDocument], messages: list[RecentChatMessage]) -> GraphTelemetry:
    return {
        "generatedAt": utc_now_iso(),
        "sourceDocuments": documents,
        "recentChatMessages": messages,
    }
