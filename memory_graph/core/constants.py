"""Constants for knowledge graph operations."""

# Graph format
GRAPH_VERSION = 1
ROOT_NODE_ID = "memory-core"

# Field limits
LABEL_MAX_CHARS = 64
SUMMARY_MAX_CHARS = 240
CONCEPT_LABEL_MAX_CHARS = 56
CONCEPT_LABEL_MAX_WORDS = 7
TOPIC_MAX_CHARS = 48
SLUG_MAX_CHARS = 48
EDGE_FACT_MAX_CHARS = 300
MAX_TAGS = 8

# Normalizer defaults
DEFAULT_NODE_CONFIDENCE = 0.75
DEFAULT_EDGE_WEIGHT = 0.7
DEFAULT_NODE_KIND = "fact"
DEFAULT_NODE_SOURCE = "manual"
DEFAULT_RELATION = "related_to"
LAYOUT_COLUMNS = 4
LAYOUT_X_STEP = 280
LAYOUT_Y_STEP = 150

# Bootstrap caps
MAX_BOOTSTRAP_FILES = 14
MAX_FACTS_PER_EXTRACTION = 22
MAX_TOPICS_PER_FILE = 10
MAX_FACTS_PER_FILE = 28
INDEXED_FACT_CONFIDENCE = 0.86
FILESYSTEM_FACT_CONFIDENCE = 0.72

# Seed selection
MAX_INDEXED_FILES = 30
MAX_JOURNAL_FILES = 10
INDEXED_FILE_MAX_CHARS = 11000
JOURNAL_FILE_MAX_CHARS = 9000
WORKSPACE_FILE_MAX_CHARS = 11000

# Telemetry
MAX_SOURCE_DOCUMENTS = 24
MAX_CHUNKS_PER_DOCUMENT = 140
MAX_EVIDENCE_FACTS = 80
CHUNK_TEXT_MAX_CHARS = 280
STATEMENT_MAX_CHARS = 360
CANONICAL_MAX_CHARS = 120
RECENT_CHAT_SESSIONS = 8
RECENT_CHAT_PER_SESSION = 50

# Snapshot
SNAPSHOT_START = "<!-- KNOWLEDGE_GRAPH:START -->"
SNAPSHOT_END = "<!-- KNOWLEDGE_GRAPH:END -->"
SNAPSHOT_TOP_NODES = 12
SNAPSHOT_TOP_EDGES = 20

# Backup retention
MAX_RECENT_BACKUPS = 3
BACKUP_INTERVAL_SECONDS = 3600
