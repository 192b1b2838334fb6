"""
Core infrastructure for benchy.

Errors, cancellation, polling, per-node locking, logging setup, settings and
the persistence layer live here. Nothing in this package knows about
containers or chain clients.
"""

from .cancellation import CancellationSignal
from .errors import (
    BenchyError,
    Cancelled,
    ChainRPCError,
    ConfigurationError,
    ContainerRuntimeError,
    CryptoFailure,
    IOFailure,
    NodeLaunchFailure,
    NotFound,
    ParseFailure,
    PreconditionFailed,
    RecoveryTimeout,
    RestartFailure,
    RuntimeUnavailable,
    Timeout,
)
from .locks import NodeLocks
from .polling import PollResult, max_attempts_for, poll_until

__all__ = [
    "BenchyError",
    "CancellationSignal",
    "Cancelled",
    "ChainRPCError",
    "ConfigurationError",
    "ContainerRuntimeError",
    "CryptoFailure",
    "IOFailure",
    "NodeLaunchFailure",
    "NodeLocks",
    "NotFound",
    "ParseFailure",
    "PollResult",
    "PreconditionFailed",
    "RecoveryTimeout",
    "RestartFailure",
    "RuntimeUnavailable",
    "Timeout",
    "max_attempts_for",
    "poll_until",
]
