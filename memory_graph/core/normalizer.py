"""Repair arbitrary graph payloads into canonical knowledge graphs.

There is no failure channel here: malformed nodes are repaired, edges that
point at unknown nodes are dropped, and the output always satisfies the
graph invariants (unique node ids, unique edge ids, no dangling edges).
"""

import math
from typing import Any, Iterable

from .constants import (
    DEFAULT_EDGE_WEIGHT,
    DEFAULT_NODE_CONFIDENCE,
    DEFAULT_NODE_KIND,
    DEFAULT_NODE_SOURCE,
    DEFAULT_RELATION,
    EDGE_FACT_MAX_CHARS,
    GRAPH_VERSION,
    LABEL_MAX_CHARS,
    LAYOUT_COLUMNS,
    LAYOUT_X_STEP,
    LAYOUT_Y_STEP,
    MAX_TAGS,
    SUMMARY_MAX_CHARS,
)
from .types import GraphEdge, GraphMeta, GraphNode, KnowledgeGraph
from .utils import clamp01, ellipsize, sanitize_text, slug, utc_now_iso


class IdAllocator:
    """Hands out unique ids, suffixing -2, -3, ... on collision."""

    def __init__(self, taken: Iterable[str] = ()):
        self._taken: set[str] = set(taken)

    def claim(self, base: str) -> str:
        candidate = base
        suffix = 2
        while candidate in self._taken:
            candidate = f"{base}-{suffix}"
            suffix += 1
        self._taken.add(candidate)
        return candidate

    def __contains__(self, item: str) -> bool:
        return item in self._taken


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _clean_tags(raw: Any) -> list[str]:
    tags: list[str] = []
    for tag in _as_list(raw):
        text = sanitize_text(tag)
        if text and text not in tags:
            tags.append(text)
        if len(tags) >= MAX_TAGS:
            break
    return tags


def build_graph_node(partial: Any, index: int, ids: IdAllocator) -> GraphNode:
    """Repair one candidate node and claim a unique id for it."""
    partial = _as_dict(partial)
    raw_label = sanitize_text(partial.get("label"))
    base_id = sanitize_text(partial.get("id"))
    if not base_id:
        base_id = f"node-{slug(raw_label)}" if raw_label else f"node-{index}"

    return {
        "id": ids.claim(base_id),
        "label": ellipsize(raw_label or f"Untitled {index + 1}", LABEL_MAX_CHARS),
        "kind": sanitize_text(partial.get("kind"), DEFAULT_NODE_KIND) or DEFAULT_NODE_KIND,
        "summary": ellipsize(sanitize_text(partial.get("summary")), SUMMARY_MAX_CHARS),
        "confidence": clamp01(partial.get("confidence"), DEFAULT_NODE_CONFIDENCE),
        "source": sanitize_text(partial.get("source"), DEFAULT_NODE_SOURCE) or DEFAULT_NODE_SOURCE,
        "tags": _clean_tags(partial.get("tags")),
        "x": partial["x"] if _finite(partial.get("x")) else (index % LAYOUT_COLUMNS) * LAYOUT_X_STEP,
        "y": partial["y"] if _finite(partial.get("y")) else (index // LAYOUT_COLUMNS) * LAYOUT_Y_STEP,
    }


def build_graph_edge(partial: Any, index: int, node_ids: set[str], edge_ids: IdAllocator) -> GraphEdge | None:
    """Repair one candidate edge, or return None if an endpoint is unknown."""
    partial = _as_dict(partial)
    source = sanitize_text(partial.get("source"))
    target = sanitize_text(partial.get("target"))
    if not source or not target or source not in node_ids or target not in node_ids:
        return None

    base_id = sanitize_text(partial.get("id")) or f"edge-{slug(source)}-{slug(target)}-{index + 1}"
    edge: GraphEdge = {
        "id": edge_ids.claim(base_id),
        "source": source,
        "target": target,
        "relation": sanitize_text(partial.get("relation"), DEFAULT_RELATION) or DEFAULT_RELATION,
        "weight": clamp01(partial.get("weight"), DEFAULT_EDGE_WEIGHT),
        "evidence": sanitize_text(partial.get("evidence")),
    }
    fact = sanitize_text(partial.get("fact"))[:EDGE_FACT_MAX_CHARS]
    if fact:
        edge["fact"] = fact
    return edge


def _coerce_meta(raw: Any) -> GraphMeta:
    raw = _as_dict(raw)
    return {
        "workspace": sanitize_text(raw.get("workspace")),
        "materializedPath": sanitize_text(raw.get("materializedPath")),
        "jsonPath": sanitize_text(raw.get("jsonPath")),
    }


def normalize_graph(payload: Any, meta: GraphMeta | None = None) -> KnowledgeGraph:
    """
    Convert an untrusted payload into a canonical knowledge graph.

    Nodes are processed in array order, so the first claimant of a
    duplicated id keeps it. `meta` overrides whatever the payload carried;
    `updatedAt` and `version` are always reset.
    """
    raw = _as_dict(payload)

    node_ids = IdAllocator()
    nodes = [build_graph_node(n, i, node_ids) for i, n in enumerate(_as_list(raw.get("nodes")))]

    known = {n["id"] for n in nodes}
    edge_ids = IdAllocator()
    edges: list[GraphEdge] = []
    for i, candidate in enumerate(_as_list(raw.get("edges"))):
        edge = build_graph_edge(candidate, i, known, edge_ids)
        if edge is not None:
            edges.append(edge)

    return {
        "version": GRAPH_VERSION,
        "updatedAt": utc_now_iso(),
        "nodes": nodes,
        "edges": edges,
        "meta": dict(meta) if meta is not None else _coerce_meta(raw.get("meta")),
    }
