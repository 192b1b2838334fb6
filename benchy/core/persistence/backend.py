from __future__ import annotations

import asyncio
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from .record_store import MemoryRecordStore, RecordStore, SQLiteRecordStore


class PersistenceBackend(Protocol):
    """Backend protocol for state storage."""

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    def record_store(self, namespace: str) -> RecordStore: ...


@dataclass(slots=True)
class MemoryPersistenceBackend:
    """In-memory backend; state dies with the process."""

    _stores: dict[str, MemoryRecordStore] = field(default_factory=dict)

    async def open(self) -> None:
        return None

    async def close(self) -> None:
        self._stores.clear()

    def record_store(self, namespace: str) -> RecordStore:
        store = self._stores.get(namespace)
        if store is None:
            store = MemoryRecordStore()
            self._stores[namespace] = store
        return store


@dataclass(slots=True)
class SQLitePersistenceBackend:
    """SQLite backend so state survives between CLI invocations."""

    db_path: Path
    wal_mode: bool = True
    _conn: sqlite3.Connection | None = field(init=False, default=None)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    async def open(self) -> None:
        if self._conn is not None:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        await self.execute(
            "PRAGMA journal_mode=WAL" if self.wal_mode else "PRAGMA journal_mode=DELETE"
        )
        await self.execute(
            """
            CREATE TABLE IF NOT EXISTS records (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value BLOB NOT NULL,
                PRIMARY KEY (namespace, key)
            )
            """
        )

    async def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None

    def record_store(self, namespace: str) -> RecordStore:
        return SQLiteRecordStore(backend=self, namespace=namespace)

    async def execute(self, query: str, params: tuple[Any, ...] = ()) -> None:
        conn = self._require_conn()
        async with self._lock:
            await asyncio.to_thread(self._execute_blocking, conn, query, params)

    async def fetch_one(
        self, query: str, params: tuple[Any, ...] = ()
    ) -> tuple[Any, ...] | None:
        conn = self._require_conn()
        async with self._lock:
            return await asyncio.to_thread(
                self._fetch_blocking, conn, query, params, True
            )

    async def fetch_all(
        self, query: str, params: tuple[Any, ...] = ()
    ) -> list[tuple[Any, ...]]:
        conn = self._require_conn()
        async with self._lock:
            return await asyncio.to_thread(
                self._fetch_blocking, conn, query, params, False
            )

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLite backend not opened")
        return self._conn

    @staticmethod
    def _execute_blocking(
        conn: sqlite3.Connection, query: str, params: tuple[Any, ...]
    ) -> None:
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            conn.commit()
        finally:
            cursor.close()

    @staticmethod
    def _fetch_blocking(
        conn: sqlite3.Connection, query: str, params: tuple[Any, ...], fetch_one: bool
    ) -> Any:
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            if fetch_one:
                return cursor.fetchone()
            return cursor.fetchall()
        finally:
            cursor.close()
