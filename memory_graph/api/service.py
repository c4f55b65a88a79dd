"""Request orchestration for the knowledge graph endpoints.

Each call is one self-contained cycle: the canonical graph is the file on
disk and nothing is cached between requests. Concurrent saves are not
serialized; the last write wins.
"""

import asyncio
import logging

from ..config import GraphConfig
from ..core import (
    GraphPersistence,
    KnowledgeGraph,
    PersistenceError,
    UnknownActionError,
    build_bootstrap_graph,
    build_snapshot_section,
    inject_missing,
    normalize_graph,
    read_text_optional,
    to_mirror_document,
    upsert_snapshot_section,
    write_text_atomic,
)
from ..sources.documents import (
    read_indexed_memory_files,
    read_memory_md,
    read_recent_journal_files,
    read_workspace_root_files,
    select_seed_files,
)
from ..sources.openclaw import OpenClawTransport, create_transport, list_agents, reindex
from ..sources.telemetry import build_telemetry, read_recent_chat_messages, read_source_documents

logger = logging.getLogger(__name__)

ACTIONS = ("save", "publish-memory-md")


class GraphService:
    """Reads, bootstraps, saves and publishes the workspace knowledge graph."""

    def __init__(self, config: GraphConfig, client: OpenClawTransport | None = None):
        self.config = config
        self.paths = config.paths
        self.client = client or create_transport(config)
        self.persistence = GraphPersistence(self.paths.graph_json, config.backup_interval)
        self._background: set[asyncio.Task] = set()

    @property
    def meta(self) -> dict:
        return self.paths.graph_meta()

    async def _read_seeds(self) -> tuple[list, dict]:
        memory_md, workspace_files, indexed = await asyncio.gather(
            asyncio.to_thread(read_memory_md, self.paths),
            asyncio.to_thread(read_workspace_root_files, self.paths),
            read_indexed_memory_files(
                self.client, self.paths, self.config.cli_timeout, self.config.index_query_timeout
            ),
        )
        journals = [] if indexed else await asyncio.to_thread(read_recent_journal_files, self.paths)
        return select_seed_files(memory_md, indexed, journals, workspace_files)

    async def read(self, force_bootstrap: bool = False) -> dict:
        """
        Load the saved graph (injecting missing documents and agents) or
        bootstrap a new one. Nothing is written to disk.
        """
        stored, agents, (seeds, bootstrap_info), messages = await asyncio.gather(
            asyncio.to_thread(self.persistence.load),
            list_agents(self.client, self.config.cli_timeout),
            self._read_seeds(),
            read_recent_chat_messages(self.client, self.config.gateway_timeout),
        )

        bootstrap = None
        if stored is not None and not force_bootstrap:
            graph = normalize_graph(stored, self.meta)
            graph, changed = inject_missing(graph, seeds, agents, self.meta)
        else:
            logger.info(f"Bootstrapping graph ({'forced' if force_bootstrap else 'no saved graph'})")
            graph = build_bootstrap_graph(seeds, agents, self.meta)
            bootstrap = bootstrap_info
            changed = True

        if changed:
            self.schedule_reindex()

        documents = await asyncio.to_thread(read_source_documents, self.paths, graph)
        response = {
            "graph": graph,
            "telemetry": build_telemetry(documents, messages),
            "workspace": str(self.paths.workspace),
            "paths": self.paths.as_response(),
        }
        if bootstrap is not None:
            response["bootstrap"] = bootstrap
        return response

    async def write(self, action: str, payload, reindex_after: bool = True) -> dict:
        """Dispatch a write action. Raises UnknownActionError for anything else."""
        if action not in ACTIONS:
            raise UnknownActionError(action)

        graph = normalize_graph(payload, self.meta)
        if action == "save":
            await asyncio.to_thread(self._save, graph)
            result = {"ok": True, "action": action, "graph": graph, "materialized": str(self.paths.graph_md)}
        else:
            await asyncio.to_thread(self._publish, graph)
            result = {"ok": True, "action": action, "published": str(self.paths.memory_md)}

        outcome = await reindex(self.client, self.config.reindex_timeout) if reindex_after else {"indexed": False}
        return {**result, **outcome}

    def _save(self, graph: KnowledgeGraph):
        self.persistence.save(graph)
        write_text_atomic(self.paths.graph_md, to_mirror_document(graph))
        logger.info(f"Saved graph: {len(graph['nodes'])} nodes, {len(graph['edges'])} edges")

    def _publish(self, graph: KnowledgeGraph):
        current = read_text_optional(self.paths.memory_md)
        if current is None and self.paths.memory_md.exists():
            raise PersistenceError(self.paths.memory_md, "existing file is not readable UTF-8 text")
        write_text_atomic(self.paths.memory_md, upsert_snapshot_section(current or "", build_snapshot_section(graph)))
        logger.info(f"Published graph snapshot to {self.paths.memory_md}")

    def schedule_reindex(self):
        """Fire-and-forget reindex; the task is kept referenced until it finishes."""
        task = asyncio.create_task(reindex(self.client, self.config.background_reindex_timeout))
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task):
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Background reindex crashed: {task.exception()}")

    async def aclose(self):
        """Cancel pending background work and close the transport."""
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)
        await self.client.aclose()
