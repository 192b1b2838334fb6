"""
Cooperative cancellation shared by every blocking wait.

A :class:`CancellationSignal` is created once per CLI invocation and handed
down to launch, monitoring and failure injection. Waits race their timer
against the signal, so a fired signal interrupts a sleep immediately rather
than at the end of the current interval.
"""

from __future__ import annotations

import asyncio
import time

from loguru import logger

from .errors import Cancelled


class CancellationSignal:
    """An asyncio event with an optional absolute deadline."""

    def __init__(self, deadline: float | None = None) -> None:
        self._event = asyncio.Event()
        self._deadline = deadline
        self.reason = ""

    @classmethod
    def with_timeout(cls, seconds: float) -> CancellationSignal:
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            logger.debug("Cancellation requested: {}", reason)
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline exceeded")
            return True
        return False

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self, operation: str = "", node_name: str | None = None) -> None:
        if self.cancelled:
            raise Cancelled(
                f"Operation cancelled: {self.reason}",
                node_name=node_name,
                operation=operation or None,
            )

    async def sleep(
        self, seconds: float, operation: str = "", node_name: str | None = None
    ) -> None:
        """Sleep for ``seconds`` unless the signal fires first."""
        self.raise_if_cancelled(operation, node_name)
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            seconds = remaining
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except TimeoutError:
            pass
        self.raise_if_cancelled(operation, node_name)
