from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from loguru import logger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from benchy.core.persistence.backend import SQLitePersistenceBackend


class RecordStore(Protocol):
    """Namespaced key/value record storage."""

    async def get(self, key: str) -> bytes | None: ...

    async def put(self, key: str, value: bytes) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def list_prefix(self, prefix: str) -> list[tuple[str, bytes]]: ...


@dataclass(slots=True)
class MemoryRecordStore:
    """Process-local record store for tests and simulated runs."""

    _records: dict[str, bytes] = field(default_factory=dict)

    async def get(self, key: str) -> bytes | None:
        return self._records.get(key)

    async def put(self, key: str, value: bytes) -> None:
        self._records[key] = value

    async def delete(self, key: str) -> None:
        self._records.pop(key, None)

    async def list_prefix(self, prefix: str) -> list[tuple[str, bytes]]:
        return sorted(
            (key, value)
            for key, value in self._records.items()
            if key.startswith(prefix)
        )


@dataclass(slots=True)
class SQLiteRecordStore:
    """Record store backed by the shared SQLite connection."""

    backend: SQLitePersistenceBackend
    namespace: str

    async def get(self, key: str) -> bytes | None:
        row = await self.backend.fetch_one(
            "SELECT value FROM records WHERE namespace=? AND key=?",
            (self.namespace, key),
        )
        if row is None:
            return None
        return bytes(row[0])

    async def put(self, key: str, value: bytes) -> None:
        await self.backend.execute(
            "INSERT OR REPLACE INTO records (namespace, key, value) VALUES (?, ?, ?)",
            (self.namespace, key, value),
        )

    async def delete(self, key: str) -> None:
        await self.backend.execute(
            "DELETE FROM records WHERE namespace=? AND key=?",
            (self.namespace, key),
        )

    async def list_prefix(self, prefix: str) -> list[tuple[str, bytes]]:
        rows = await self.backend.fetch_all(
            "SELECT key, value FROM records WHERE namespace=? AND key LIKE ? ORDER BY key",
            (self.namespace, f"{prefix}%"),
        )
        logger.debug(
            "Listed {} records under {}:{}", len(rows), self.namespace, prefix
        )
        # LIKE treats "_" as a wildcard; keep only true prefix matches
        return [
            (key, bytes(value)) for key, value in rows if key.startswith(prefix)
        ]
