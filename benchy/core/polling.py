"""
Time-bounded interval polling.

Every wait in the orchestrator is a ``poll_until`` call: sleep one interval
(racing the cancellation signal), run one check, repeat. The number of
checks is ``ceil(timeout / interval)`` so a 10 s budget polled every 2 s
makes exactly five attempts before giving up. There is no unbounded wait.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

from .cancellation import CancellationSignal
from .errors import Cancelled, Timeout

poll_log = logger


@dataclass(frozen=True, slots=True)
class PollResult:
    """Outcome of a successful poll."""

    attempts: int
    elapsed: float


def max_attempts_for(timeout: float, interval: float) -> int:
    # Tolerate float noise so 0.3 / 0.1 still yields 3 attempts.
    return max(1, math.ceil(timeout / interval - 1e-9))


async def poll_until(
    check: Callable[[], Awaitable[bool]],
    *,
    timeout: float,
    interval: float,
    cancel: CancellationSignal | None = None,
    operation: str = "poll",
    node_name: str | None = None,
    timeout_error: type[Timeout] = Timeout,
) -> PollResult:
    """Run ``check`` once per ``interval`` until it returns True.

    Exceptions raised by ``check`` count as failed attempts. Cancellation is
    checked before every sleep and interrupts the sleep itself.
    """
    if timeout <= 0 or interval <= 0:
        raise ValueError("timeout and interval must be positive")

    signal = cancel if cancel is not None else CancellationSignal()
    loop = asyncio.get_running_loop()
    started = loop.time()
    limit = max_attempts_for(timeout, interval)
    attempts = 0

    while attempts < limit:
        signal.raise_if_cancelled(operation, node_name)
        await signal.sleep(interval, operation, node_name)
        attempts += 1
        try:
            if await check():
                elapsed = loop.time() - started
                poll_log.debug(
                    "{} succeeded after {} attempts ({:.2f}s)",
                    operation,
                    attempts,
                    elapsed,
                )
                return PollResult(attempts=attempts, elapsed=elapsed)
        except Cancelled:
            raise
        except Exception as exc:
            poll_log.debug("{} attempt {} failed: {}", operation, attempts, exc)

        if loop.time() - started >= timeout:
            break

    elapsed = loop.time() - started
    raise timeout_error(
        f"Condition not met within {timeout:g}s after {attempts} attempts",
        node_name=node_name,
        operation=operation,
        attempts=attempts,
        elapsed=elapsed,
    )
