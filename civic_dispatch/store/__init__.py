"""
Persistence layer.

Firestore in production, an in-memory store for local development and tests.
Both honour the same optimistic-versioning and atomic-counter contract.
"""

from civic_dispatch.store.base import CivicStore
from civic_dispatch.store.memory_store import MemoryStore
from civic_dispatch.store.registry import get_store, set_store

__all__ = [
    "CivicStore",
    "MemoryStore",
    "get_store",
    "set_store",
]
