"""Type definitions for the memory knowledge graph."""

from typing import Literal, NotRequired, TypedDict


class GraphNode(TypedDict):
    """Node in the knowledge graph."""
    id: str
    label: str
    kind: str
    summary: str
    confidence: float
    source: str
    tags: list[str]
    x: float
    y: float


class GraphEdge(TypedDict):
    """Edge in the knowledge graph."""
    id: str
    source: str
    target: str
    relation: str
    weight: float
    evidence: str
    fact: NotRequired[str]


class GraphMeta(TypedDict):
    """Where the graph lives on disk."""
    workspace: str
    materializedPath: str
    jsonPath: str


class KnowledgeGraph(TypedDict):
    """Complete graph structure, as stored in the canonical JSON file."""
    version: int
    updatedAt: str
    nodes: list[GraphNode]
    edges: list[GraphEdge]
    meta: GraphMeta


class BootstrapFile(TypedDict):
    """A source document before extraction."""
    name: str
    content: str
    source: Literal["indexed", "filesystem"]


class AgentRow(TypedDict, total=False):
    """Roster row as reported by `openclaw agents list --json`."""
    id: str
    name: str
    identityName: str
    workspace: str
    isDefault: bool


class ExtractedFact(TypedDict):
    """A fact pulled from one document by the heuristic extractor."""
    topic: str
    text: str
    label: str
    kind: str
    relation: str


class SourceChunk(TypedDict):
    """One parsed line of a source document."""
    id: str
    topic: str
    kind: Literal["heading", "bullet", "paragraph"]
    text: str
    startLine: int
    endLine: int


class SourceFact(TypedDict):
    """Canonicalized statement with its line number."""
    id: str
    topic: str
    statement: str
    canonical: str
    line: int
    confidenceHint: float


class SourceDocument(TypedDict):
    """Parsed evidence for one markdown document."""
    id: str
    name: str
    path: str
    source: Literal["workspace", "memory"]
    mtimeMs: float
    size: int
    chunks: list[SourceChunk]
    facts: list[SourceFact]


class RecentChatMessage(TypedDict):
    """Message pulled from conversation history for display."""
    sessionKey: str
    role: str
    timestampMs: int
    text: str


class GraphTelemetry(TypedDict):
    """Read-only inspection payload returned alongside the graph."""
    generatedAt: str
    sourceDocuments: list[SourceDocument]
    recentChatMessages: list[RecentChatMessage]


class BootstrapInfo(TypedDict):
    """Which seeds a cold bootstrap used."""
    source: Literal["indexed", "filesystem"]
    files: list[str]
