from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from .backend import (
    MemoryPersistenceBackend,
    PersistenceBackend,
    SQLitePersistenceBackend,
)
from .config import PersistenceConfig, PersistenceMode
from .record_store import RecordStore


@dataclass(slots=True)
class PersistenceRegistry:
    """Opens the configured backend and hands out namespaced stores."""

    config: PersistenceConfig
    namespace: str = "benchy"
    _backend: PersistenceBackend | None = field(init=False, default=None)
    _opened: bool = field(init=False, default=False)

    async def open(self) -> None:
        if self._backend is None:
            self._backend = self._create_backend()
        await self._backend.open()
        self._opened = True

    async def close(self) -> None:
        if self._backend is None:
            return
        await self._backend.close()
        self._backend = None
        self._opened = False

    async def __aenter__(self) -> PersistenceRegistry:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def record_store(self, name: str) -> RecordStore:
        if self._backend is None or not self._opened:
            raise RuntimeError("PersistenceRegistry.open() must be awaited before use")
        return self._backend.record_store(f"{self.namespace}:{name}")

    def _create_backend(self) -> PersistenceBackend:
        if self.config.mode is PersistenceMode.SQLITE:
            logger.info(
                "Initializing SQLite state backend at {}", self.config.sqlite_path()
            )
            return SQLitePersistenceBackend(
                db_path=self.config.sqlite_path(), wal_mode=self.config.sqlite_wal
            )
        logger.info("Initializing in-memory state backend")
        return MemoryPersistenceBackend()
