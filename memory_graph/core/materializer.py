"""Render the graph to markdown and publish a snapshot into MEMORY.md."""

from typing import NamedTuple

from .constants import SNAPSHOT_END, SNAPSHOT_START, SNAPSHOT_TOP_EDGES, SNAPSHOT_TOP_NODES
from .types import GraphEdge, KnowledgeGraph


class SnapshotSpans(NamedTuple):
    """A document split around the snapshot markers (markers excluded)."""
    prefix: str
    body: str
    suffix: str


def _labeller(graph: KnowledgeGraph):
    labels = {n["id"]: n["label"] for n in graph["nodes"]}

    def label(node_id: str) -> str:
        return labels.get(node_id) or node_id

    return label


def _edge_weight_pct(edge: GraphEdge) -> str:
    weight = edge.get("weight")
    if isinstance(weight, (int, float)):
        return f" ({round(weight * 100)}%)"
    return ""


def to_mirror_document(graph: KnowledgeGraph) -> str:
    """Full human-readable rendering of the graph (entities, relations, triples)."""
    label = _labeller(graph)

    entity_lines = []
    for node in graph["nodes"]:
        summary = f" - {node['summary']}" if node["summary"] else ""
        tags = f" | tags: {', '.join(node['tags'])}" if node["tags"] else ""
        entity_lines.append(f"- **{node['label']}** (`{node['kind']}`){summary}{tags}")

    relation_lines = []
    triple_lines = []
    for edge in graph["edges"]:
        src, dst = label(edge["source"]), label(edge["target"])
        evidence = f" | evidence: {edge['evidence']}" if edge["evidence"] else ""
        relation_lines.append(f"- **{src}** --`{edge['relation']}`--> **{dst}**{_edge_weight_pct(edge)}{evidence}")
        triple_lines.append(f"- {src} | {edge['relation']} | {dst}")

    return "\n".join([
        "# Knowledge Graph Memory",
        "",
        f"Generated: {graph['updatedAt']}",
        "",
        "This file is generated from the knowledge graph editor. Manual edits are overwritten on save.",
        "",
        "## Entities",
        "\n".join(entity_lines) or "- _No entities yet_",
        "",
        "## Relations",
        "\n".join(relation_lines) or "- _No relations yet_",
        "",
        "## Retrieval Triples",
        "\n".join(triple_lines) or "- _No triples yet_",
        "",
    ])


def build_snapshot_section(graph: KnowledgeGraph) -> str:
    """Short "at a glance" excerpt: highest-confidence nodes, heaviest edges."""
    label = _labeller(graph)

    top_nodes = sorted(graph["nodes"], key=lambda n: -n["confidence"])[:SNAPSHOT_TOP_NODES]
    node_lines = [
        f"- **{n['label']}** (`{n['kind']}`)" + (f": {n['summary']}" if n["summary"] else "")
        for n in top_nodes
    ]

    top_edges = sorted(graph["edges"], key=lambda e: -e["weight"])[:SNAPSHOT_TOP_EDGES]
    edge_lines = [f"- {label(e['source'])} --{e['relation']}--> {label(e['target'])}" for e in top_edges]

    return "\n".join([
        "## Knowledge Graph Snapshot",
        "",
        f"_Generated: {graph['updatedAt']}_",
        "",
        "### High-Signal Entities",
        "\n".join(node_lines) or "- _None_",
        "",
        "### High-Signal Relations",
        "\n".join(edge_lines) or "- _None_",
        "",
    ])


def split_snapshot(document: str) -> SnapshotSpans | None:
    """
    Locate the snapshot block: the first END that has a START before it,
    paired with the nearest such START. A dangling START with no END after
    it stays in the prefix, so text following it is never captured.
    """
    search_from = 0
    while True:
        end = document.find(SNAPSHOT_END, search_from)
        if end == -1:
            return None
        start = document.rfind(SNAPSHOT_START, 0, end)
        if start != -1:
            break
        search_from = end + len(SNAPSHOT_END)
    return SnapshotSpans(
        prefix=document[:start],
        body=document[start + len(SNAPSHOT_START):end],
        suffix=document[end + len(SNAPSHOT_END):],
    )


def upsert_snapshot_section(document: str, section: str) -> str:
    """
    Replace the marked snapshot block in a document, or append one.

    Content outside the markers is preserved. Only whitespace at the seams
    is trimmed, so calling this twice with the same section is a no-op.
    """
    block = f"{SNAPSHOT_START}\n{section.strip(chr(10))}\n{SNAPSHOT_END}"
    spans = split_snapshot(document)
    if spans is not None:
        head = spans.prefix.rstrip()
        head = f"{head}\n\n" if head else ""
        return f"{head}{block}\n{spans.suffix.lstrip()}"

    base = document.rstrip()
    return f"{base}\n\n{block}\n" if base else f"{block}\n"
