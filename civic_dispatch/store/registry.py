import logging
import os
from typing import Optional

from civic_dispatch.core.settings import settings
from .base import CivicStore
from .memory_store import MemoryStore
from .seed import apply_seed, load_seed_file

logger = logging.getLogger(__name__)

_store_instance: Optional[CivicStore] = None


def get_store() -> CivicStore:
    """
    Resolve the active store based on settings.

    Rules:
    - USE_MOCK_DB=true: in-memory store, seeded from MOCK_DB_PATH if the file exists.
    - Otherwise: Firestore via firebase_admin.
    """
    global _store_instance
    if _store_instance is not None:
        return _store_instance

    if settings.USE_MOCK_DB:
        store = MemoryStore()
        if settings.MOCK_DB_PATH and os.path.exists(settings.MOCK_DB_PATH):
            apply_seed(store, load_seed_file(settings.MOCK_DB_PATH))
            logger.info(f"[STORE] In-memory store seeded from {settings.MOCK_DB_PATH}")
        else:
            logger.info("[STORE] USING EMPTY IN-MEMORY STORE")
        _store_instance = store
        return _store_instance

    from civic_dispatch.config.firebase import get_db
    from .firestore_store import FirestoreStore

    _store_instance = FirestoreStore(get_db())
    logger.info("[STORE] USING FIRESTORE")
    return _store_instance


def set_store(store: Optional[CivicStore]) -> None:
    """Replace the active store (tests, scripts). None resets to settings-driven resolution."""
    global _store_instance
    _store_instance = store
