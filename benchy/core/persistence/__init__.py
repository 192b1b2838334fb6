from __future__ import annotations

from .backend import (
    MemoryPersistenceBackend,
    PersistenceBackend,
    SQLitePersistenceBackend,
)
from .config import PersistenceConfig, PersistenceMode
from .record_store import MemoryRecordStore, RecordStore, SQLiteRecordStore
from .registry import PersistenceRegistry

__all__ = [
    "MemoryPersistenceBackend",
    "MemoryRecordStore",
    "PersistenceBackend",
    "PersistenceConfig",
    "PersistenceMode",
    "PersistenceRegistry",
    "RecordStore",
    "SQLitePersistenceBackend",
    "SQLiteRecordStore",
]
