"""Cold bootstrap and incremental injection of graph content.

Both operations are pure: they take documents and the agent roster that
the caller already read, and return a normalized graph. All per-run
bookkeeping lives in a BootstrapState, never at module level.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    FILESYSTEM_FACT_CONFIDENCE,
    INDEXED_FACT_CONFIDENCE,
    MAX_BOOTSTRAP_FILES,
    MAX_FACTS_PER_EXTRACTION,
    MAX_FACTS_PER_FILE,
    MAX_TOPICS_PER_FILE,
    ROOT_NODE_ID,
)
from .extractor import extract_facts
from .normalizer import IdAllocator, build_graph_node, normalize_graph
from .types import AgentRow, BootstrapFile, GraphEdge, GraphMeta, GraphNode, KnowledgeGraph
from .utils import sanitize_text, slug

logger = logging.getLogger(__name__)

_AGENT_NAME_NOISE = re.compile(r"\s*_\(.*?\)_?\s*")


def file_node_id(name: str) -> str:
    return f"file-{slug(name)}"


def agent_key(agent: Any, index: int) -> str:
    """Roster id for an agent row, falling back to its position."""
    raw = sanitize_text(agent.get("id")) if isinstance(agent, dict) else ""
    return raw or str(index)


def agent_node_id(agent: Any, index: int) -> str:
    return f"agent-{slug(agent_key(agent, index))}"


def root_edge_id(node_id: str) -> str:
    return f"edge-root-{node_id}"


def safe_agent_name(agent: AgentRow) -> str:
    """Display name for an agent, without "_(…)_" annotations."""
    raw = str(agent.get("identityName") or agent.get("name") or agent.get("id") or "agent")
    return sanitize_text(_AGENT_NAME_NOISE.sub(" ", raw)) or "agent"


def root_node() -> dict:
    return {
        "id": ROOT_NODE_ID,
        "label": "OpenClaw Memory Core",
        "kind": "system",
        "summary": "Knowledge graph synthesized from workspace memory files.",
        "confidence": 1,
        "source": "bootstrap",
        "tags": ["memory", "core"],
        "x": 40,
        "y": 80,
    }


def file_node(file: BootstrapFile) -> dict:
    indexed = file["source"] == "indexed"
    return {
        "id": file_node_id(file["name"]),
        "label": file["name"],
        "kind": "file",
        "summary": "Indexed memory document." if indexed else "Memory document read from the workspace.",
        "confidence": 0.9 if indexed else 0.8,
        "source": file["source"],
        "tags": ["file", f"file:{file['name']}"],
    }


def agent_node(agent: AgentRow, index: int) -> dict:
    is_default = bool(agent.get("isDefault"))
    key = agent_key(agent, index)
    return {
        "id": agent_node_id(agent, index),
        "label": safe_agent_name(agent),
        "kind": "agent",
        "summary": "Default OpenClaw agent." if is_default else f"OpenClaw agent: {key}",
        "confidence": 0.95,
        "source": "agents",
        "tags": ["agent", "default"] if is_default else ["agent"],
    }


@dataclass
class BootstrapState:
    """Accumulator threaded through one bootstrap run."""
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    node_ids: IdAllocator = field(default_factory=IdAllocator)
    edge_ids: IdAllocator = field(default_factory=IdAllocator)
    topic_nodes: dict[str, str] = field(default_factory=dict)
    fact_keys: set[str] = field(default_factory=set)

    def add_node(self, partial: dict) -> GraphNode:
        node = build_graph_node(partial, len(self.nodes), self.node_ids)
        self.nodes.append(node)
        return node

    def add_edge(
        self,
        source: str,
        target: str,
        relation: str,
        weight: float,
        evidence: str = "",
        fact: str | None = None,
        hint: str | None = None,
    ) -> GraphEdge:
        edge: GraphEdge = {
            "id": self.edge_ids.claim(hint or f"edge-{source}-{target}"),
            "source": source,
            "target": target,
            "relation": relation,
            "weight": weight,
            "evidence": evidence,
        }
        if fact:
            edge["fact"] = fact
        self.edges.append(edge)
        return edge


def _add_file(state: BootstrapState, root_id: str, file: BootstrapFile):
    name = file["name"]
    doc = state.add_node(file_node(file))
    state.add_edge(root_id, doc["id"], "contains_file", 0.8, evidence=name, hint=root_edge_id(doc["id"]))

    result = extract_facts(file["content"], MAX_FACTS_PER_EXTRACTION)

    # Topics are shared across documents, matched case-insensitively.
    local_topics: dict[str, str] = {}
    for topic in result.topics[:MAX_TOPICS_PER_FILE]:
        key = topic.lower()
        topic_id = state.topic_nodes.get(key)
        if topic_id is None:
            node = state.add_node({
                "id": f"topic-{slug(topic)}",
                "label": topic,
                "kind": "topic",
                "summary": f"Topic first seen in {name}.",
                "confidence": 0.8,
                "source": name,
                "tags": ["topic", f"file:{name}"],
            })
            topic_id = node["id"]
            state.topic_nodes[key] = topic_id
            state.add_edge(root_id, topic_id, "contains_topic", 0.75, hint=root_edge_id(topic_id))
        local_topics[key] = topic_id
        state.add_edge(doc["id"], topic_id, "mentions_topic", 0.7, evidence=name)

    confidence = INDEXED_FACT_CONFIDENCE if file["source"] == "indexed" else FILESYSTEM_FACT_CONFIDENCE
    for fact in result.facts[:MAX_FACTS_PER_FILE]:
        key = f"{fact['topic'].lower()}::{fact['text'].lower()}"
        if key in state.fact_keys:
            continue
        state.fact_keys.add(key)

        node = state.add_node({
            "id": f"fact-{slug(fact['topic'])}-{slug(fact['text'])}",
            "label": fact["label"],
            "kind": fact["kind"],
            "summary": fact["text"],
            "confidence": confidence,
            "source": name,
            "tags": [fact["kind"], f"file:{name}"],
        })
        parent = local_topics.get(fact["topic"].lower(), doc["id"])
        state.add_edge(parent, node["id"], fact["relation"], confidence, evidence=name, fact=fact["text"])


def _add_templates(state: BootstrapState, root_id: str):
    preferences = state.add_node({
        "id": "entity-user-preferences",
        "label": "User Preferences",
        "kind": "profile",
        "summary": "Store stable preferences, style, constraints, and important context.",
        "confidence": 0.9,
        "source": "template",
        "x": 360,
        "y": 120,
    })
    context = state.add_node({
        "id": "entity-project-context",
        "label": "Project Context",
        "kind": "project",
        "summary": "Active tasks, architecture notes, and key decisions.",
        "confidence": 0.85,
        "source": "template",
        "x": 680,
        "y": 260,
    })
    state.add_edge(root_id, preferences["id"], "tracks", 0.8, hint="edge-root-sample-a")
    state.add_edge(root_id, context["id"], "tracks", 0.8, hint="edge-root-sample-b")


def build_bootstrap_graph(
    files: list[BootstrapFile],
    agents: list[AgentRow],
    meta: GraphMeta | None = None,
) -> KnowledgeGraph:
    """
    Build a graph from scratch out of seed documents and the agent roster.

    Returns a normalized graph that always contains the root node and is
    never just the root on its own.
    """
    state = BootstrapState()
    root_id = state.add_node(root_node())["id"]

    for file in files[:MAX_BOOTSTRAP_FILES]:
        _add_file(state, root_id, file)

    for index, agent in enumerate(agents):
        if not isinstance(agent, dict):
            continue
        node = state.add_node(agent_node(agent, index))
        state.add_edge(root_id, node["id"], "managed_by", 0.9, evidence=agent_key(agent, index),
                       hint=root_edge_id(node["id"]))

    if len(state.nodes) == 1:
        _add_templates(state, root_id)

    logger.info(
        f"Bootstrapped graph from {min(len(files), MAX_BOOTSTRAP_FILES)} files and {len(agents)} agents: "
        f"{len(state.nodes)} nodes, {len(state.edges)} edges"
    )
    return normalize_graph({"nodes": state.nodes, "edges": state.edges}, meta)


def inject_missing(
    graph: KnowledgeGraph,
    files: list[BootstrapFile],
    agents: list[AgentRow],
    meta: GraphMeta | None = None,
) -> tuple[KnowledgeGraph, bool]:
    """
    Add nodes for documents and agents the saved graph doesn't know about yet.

    Existing nodes and edges are left untouched. Returns (graph, changed);
    when nothing was missing the input graph is returned as-is.
    """
    existing_ids = {n["id"] for n in graph["nodes"]}
    existing_edge_ids = {e["id"] for e in graph["edges"]}
    new_nodes: list[dict] = []
    new_edges: list[dict] = []

    def inject(partial: dict, relation: str, weight: float, evidence: str):
        node_id = partial["id"]
        if node_id in existing_ids:
            return
        existing_ids.add(node_id)
        new_nodes.append(partial)
        edge_id = root_edge_id(node_id)
        if edge_id not in existing_edge_ids:
            existing_edge_ids.add(edge_id)
            new_edges.append({
                "id": edge_id,
                "source": ROOT_NODE_ID,
                "target": node_id,
                "relation": relation,
                "weight": weight,
                "evidence": evidence,
            })

    for file in files:
        inject(file_node(file), "contains_file", 0.8, file["name"])
    for index, agent in enumerate(agents):
        if isinstance(agent, dict):
            inject(agent_node(agent, index), "managed_by", 0.9, agent_key(agent, index))

    if not new_nodes:
        return graph, False
    if ROOT_NODE_ID not in existing_ids:
        new_nodes.insert(0, root_node())

    logger.info(f"Injecting {len(new_nodes)} nodes and {len(new_edges)} edges into saved graph")
    merged = normalize_graph(
        {"nodes": [*graph["nodes"], *new_nodes], "edges": [*graph["edges"], *new_edges]},
        meta if meta is not None else graph.get("meta"),
    )
    return merged, True
