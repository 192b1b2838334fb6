"""
Error taxonomy for the network lifecycle orchestrator.

Every error can name the node and the operation it relates to so that the
CLI can always tell the operator *which* node failed and *what* was being
attempted. ``Timeout`` is kept apart from hard failures so callers can retry
with a longer budget.
"""

from __future__ import annotations

from collections.abc import Sequence


class BenchyError(Exception):
    """Base class for all orchestrator errors."""

    def __init__(
        self,
        message: str,
        *,
        node_name: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.message = message
        self.node_name = node_name
        self.operation = operation
        super().__init__(self._render())

    def _render(self) -> str:
        context: list[str] = []
        if self.node_name:
            context.append(f"node={self.node_name}")
        if self.operation:
            context.append(f"operation={self.operation}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class CryptoFailure(BenchyError):
    """Key generation or key parsing failed in the crypto backend."""


class IOFailure(BenchyError):
    """A filesystem operation failed (permissions, disk, missing parent)."""


class ParseFailure(BenchyError):
    """A persisted artifact exists but its content is corrupt."""


class ConfigurationError(BenchyError):
    """The requested topology is invalid or incomplete."""


class NotFound(BenchyError):
    """A node, network or key artifact does not exist."""


class PreconditionFailed(BenchyError):
    """An operation was attempted on a node in the wrong state."""


class Timeout(BenchyError):
    """A polling deadline elapsed before the condition held."""

    def __init__(
        self,
        message: str,
        *,
        node_name: str | None = None,
        operation: str | None = None,
        attempts: int = 0,
        elapsed: float = 0.0,
    ) -> None:
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(message, node_name=node_name, operation=operation)


class RecoveryTimeout(Timeout):
    """A restarted node did not come back within the recovery budget."""


class Cancelled(BenchyError):
    """External cancellation was observed while waiting."""


class RestartFailure(BenchyError):
    """The runtime refused to restart a stopped node."""


class ContainerRuntimeError(BenchyError):
    """The container runtime rejected or failed a request."""


class RuntimeUnavailable(ContainerRuntimeError):
    """The container runtime cannot be reached at all."""


class ChainRPCError(BenchyError):
    """A JSON-RPC call against a node endpoint failed."""


class NodeLaunchFailure(BenchyError):
    """A node failed during the launch sequence.

    Nodes launched before the failing one are left running; their names are
    carried in ``started_nodes`` so the caller can report the partial result.
    """

    def __init__(
        self,
        message: str,
        *,
        node_name: str,
        operation: str,
        started_nodes: Sequence[str] = (),
        cause: BaseException | None = None,
    ) -> None:
        self.started_nodes = tuple(started_nodes)
        self.cause = cause
        super().__init__(message, node_name=node_name, operation=operation)
