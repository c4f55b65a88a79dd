"""Canonical store persistence with atomic writes and rolling backups."""

import json
import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any

from .constants import BACKUP_INTERVAL_SECONDS, MAX_RECENT_BACKUPS
from .exceptions import PersistenceError
from .types import KnowledgeGraph

logger = logging.getLogger(__name__)


def write_text_atomic(path: Path, content: str):
    """
    Write text through a temp file and rename it into place.

    Every call gets its own temp file, so concurrent writers never share
    one; the last rename wins. Raises PersistenceError if the write fails.
    """
    temp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        temp_path = Path(name)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates 0600 files; keep the target's mode
        if path.exists():
            shutil.copymode(path, temp_path)
        else:
            temp_path.chmod(0o644)
        # Atomic rename (POSIX guarantees atomicity)
        os.replace(temp_path, path)
    except OSError as e:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise PersistenceError(path, str(e)) from e


def read_text_optional(path: Path) -> str | None:
    """File contents, or None when the file is missing, unreadable or not UTF-8."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        if not isinstance(e, FileNotFoundError):
            logger.debug(f"Could not read {path}: {e}")
        return None


class GraphPersistence:
    """Loads and saves the canonical knowledge-graph JSON file.

    There is no locking: concurrent saves race and the last rename wins.
    """

    def __init__(self, path: Path, backup_interval: int = BACKUP_INTERVAL_SECONDS):
        self.path = path
        self.backup_interval = backup_interval
        self.backup_marker = path.with_suffix(".last_backup")

    def load(self) -> Any | None:
        """
        Load the raw stored payload.
        Returns None if the file is missing or isn't valid JSON.
        """
        raw = read_text_optional(self.path)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse graph from {self.path}: {e}")
            return None

        nodes = data.get("nodes") if isinstance(data, dict) else None
        edges = data.get("edges") if isinstance(data, dict) else None
        logger.info(
            f"Loaded graph from {self.path}: "
            f"{len(nodes) if isinstance(nodes, list) else 0} nodes, "
            f"{len(edges) if isinstance(edges, list) else 0} edges"
        )
        return data

    def save(self, graph: KnowledgeGraph):
        """Write the graph as pretty-printed JSON, backing up the previous copy first."""
        self.maybe_backup()
        write_text_atomic(self.path, json.dumps(graph, indent=2, ensure_ascii=False))
        logger.debug(f"Saved graph to {self.path}")

    def maybe_backup(self) -> bool:
        """
        Rotate backups if enough time has passed since the last one.
        Returns True if a backup was created.
        """
        if not self.path.exists():
            return False

        if self.backup_marker.exists():
            last_backup_time = self.backup_marker.stat().st_mtime
            if time.time() - last_backup_time < self.backup_interval:
                return False

        try:
            self._rotate_backups()
            self.backup_marker.touch()
        except OSError as e:
            logger.warning(f"Backup rotation failed for {self.path}: {e}")
            return False
        return True

    def backup_path(self, index: int) -> Path:
        return self.path.with_name(f"{self.path.name}.bak.{index}")

    def _rotate_backups(self):
        """Shift .bak.N -> .bak.N+1 (oldest drops off) and copy the current file to .bak.1."""
        for i in range(MAX_RECENT_BACKUPS - 1, 0, -1):
            old_backup = self.backup_path(i)
            if old_backup.exists():
                shutil.copy2(old_backup, self.backup_path(i + 1))

        shutil.copy2(self.path, self.backup_path(1))
        logger.debug(f"Created backup: {self.backup_path(1)}")
