"""HTTP surface and request orchestration."""

from .service import GraphService

__all__ = ["GraphService"]
