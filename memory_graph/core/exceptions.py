"""Custom exceptions for knowledge graph operations."""


class KGError(Exception):
    """Base exception for knowledge graph operations."""
    pass


class UnknownActionError(KGError):
    """Raised when a write request names an action we don't handle."""
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown action: {action}")


class PersistenceError(KGError):
    """Raised when the canonical store or a materialized document can't be written."""
    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Failed to write {path}: {reason}")


class OpenClawError(KGError):
    """Raised when a CLI or gateway call fails or times out."""
    def __init__(self, command: str, reason: str):
        self.command = command
        super().__init__(f"{command} failed: {reason}")
