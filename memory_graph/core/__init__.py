"""Core knowledge graph components."""

from .types import (
    GraphNode,
    GraphEdge,
    GraphMeta,
    KnowledgeGraph,
    BootstrapFile,
    AgentRow,
    ExtractedFact,
    BootstrapInfo,
    GraphTelemetry,
)
from .constants import *
from .exceptions import *
from .classifier import ConceptKind, infer_concept_kind, to_concept_label
from .extractor import ExtractionResult, extract_facts
from .normalizer import IdAllocator, build_graph_node, build_graph_edge, normalize_graph
from .bootstrap import build_bootstrap_graph, inject_missing
from .materializer import to_mirror_document, build_snapshot_section, split_snapshot, upsert_snapshot_section
from .persistence import GraphPersistence, write_text_atomic, read_text_optional

__all__ = [
    # Types
    "GraphNode",
    "GraphEdge",
    "GraphMeta",
    "KnowledgeGraph",
    "BootstrapFile",
    "AgentRow",
    "ExtractedFact",
    "BootstrapInfo",
    "GraphTelemetry",
    # Constants
    "GRAPH_VERSION",
    "ROOT_NODE_ID",
    "SNAPSHOT_START",
    "SNAPSHOT_END",
    "MAX_RECENT_BACKUPS",
    "BACKUP_INTERVAL_SECONDS",
    # Exceptions
    "KGError",
    "UnknownActionError",
    "PersistenceError",
    "OpenClawError",
    # Extraction
    "ConceptKind",
    "infer_concept_kind",
    "to_concept_label",
    "ExtractionResult",
    "extract_facts",
    # Graph building
    "IdAllocator",
    "build_graph_node",
    "build_graph_edge",
    "normalize_graph",
    "build_bootstrap_graph",
    "inject_missing",
    # Materialization
    "to_mirror_document",
    "build_snapshot_section",
    "split_snapshot",
    "upsert_snapshot_section",
    # Persistence
    "GraphPersistence",
    "write_text_atomic",
    "read_text_optional",
]
