"""FastAPI dependency helpers."""
from __future__ import annotations

from functools import lru_cache

from ..agents.orchestrator import AgentOrchestrator
from ..persistence.storage import ImageStorage
from ..persistence.store import WardrobeStore


@lru_cache(maxsize=1)
def get_orchestrator() -> AgentOrchestrator:
    return AgentOrchestrator()


def get_store() -> WardrobeStore:
    return get_orchestrator().store


@lru_cache(maxsize=1)
def get_image_storage() -> ImageStorage:
    return ImageStorage()


__all__ = ["get_image_storage", "get_orchestrator", "get_store"]
