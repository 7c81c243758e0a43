"""
Knowledge base storage.

Usage:
    from app.storage import get_storage, KnowledgeBaseCache

    cache = KnowledgeBaseCache(get_storage())
    kb = cache.load()

Environment Variables:
    STORAGE_BACKEND: "local" (default, the only backend)
    STORAGE_PATH: Artifact directory (default: "storage/knowledge_base")
"""

import os

from .base import StorageBackend
from .kb_cache import KnowledgeBaseCache, PersistedStateCorrupt
from .local import LocalStorage

_storage_instance: StorageBackend = None


def get_storage() -> StorageBackend:
    """
    Return the process-wide storage backend, creating it on first use.

    Raises:
        ValueError: If STORAGE_BACKEND names an unknown backend
    """
    global _storage_instance

    if _storage_instance is None:
        backend = os.environ.get("STORAGE_BACKEND", "local")
        if backend != "local":
            raise ValueError(f"Unknown storage backend: {backend}")
        _storage_instance = LocalStorage(os.environ.get("STORAGE_PATH", "storage/knowledge_base"))

    return _storage_instance


def reset_storage() -> None:
    """Forget the cached backend (tests switch STORAGE_PATH)."""
    global _storage_instance
    _storage_instance = None


__all__ = [
    "StorageBackend",
    "LocalStorage",
    "KnowledgeBaseCache",
    "PersistedStateCorrupt",
    "get_storage",
    "reset_storage",
]
