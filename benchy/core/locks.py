"""Per-node mutual exclusion for operations that stop and restart nodes."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from .errors import PreconditionFailed


class NodeLocks:
    """One ``asyncio.Lock`` per (network, node) pair.

    ``exclusive`` refuses to queue behind a running operation: an interleaved
    stop/restart on the same node would corrupt the observed state, so the
    second caller gets ``PreconditionFailed`` instead.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    def _lock_for(self, network_name: str, node_name: str) -> asyncio.Lock:
        key = (network_name, node_name)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def is_locked(self, network_name: str, node_name: str) -> bool:
        lock = self._locks.get((network_name, node_name))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def exclusive(
        self, network_name: str, node_name: str, operation: str
    ) -> AsyncIterator[None]:
        lock = self._lock_for(network_name, node_name)
        if lock.locked():
            raise PreconditionFailed(
                "Another operation is already in progress on this node",
                node_name=node_name,
                operation=operation,
            )
        async with lock:
            logger.debug("Acquired {} lock on {}/{}", operation, network_name, node_name)
            yield
