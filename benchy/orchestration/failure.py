"""
Temporary node failure injection and recovery.

One injection walks a node through stop, downtime, restart and recovery:

    locating_node -> stopping -> stopped -> waiting -> restarting
                  -> recovering -> recovered | failed

Only a node that is online or syncing and whose container is running can be
failed, and only one injection per node may run at a time.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import StrEnum

from loguru import logger

from benchy.core.cancellation import CancellationSignal
from benchy.core.errors import (
    BenchyError,
    Cancelled,
    ContainerRuntimeError,
    NotFound,
    PreconditionFailed,
    RecoveryTimeout,
    RestartFailure,
)
from benchy.core.locks import NodeLocks
from benchy.core.polling import poll_until
from benchy.datastructures.network import Network, Node, NodeStatus
from benchy.datastructures.type_aliases import DurationSeconds, NodeName
from benchy.runtime.container import ContainerRuntime
from benchy.runtime.feedback import Feedback
from benchy.runtime.repository import NetworkRepository

failure_log = logger


class FailurePhase(StrEnum):
    LOCATING_NODE = "locating_node"
    STOPPING = "stopping"
    STOPPED = "stopped"
    WAITING = "waiting"
    RESTARTING = "restarting"
    RECOVERING = "recovering"
    RECOVERED = "recovered"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FailureTimings:
    downtime: DurationSeconds = 40
    tick: DurationSeconds = 1.0
    recovery_interval: DurationSeconds = 3.0
    recovery_timeout: DurationSeconds = 60.0


@dataclass(slots=True)
class FailureReport:
    """Progress record of one injection."""

    node_name: NodeName
    downtime: DurationSeconds
    phase: FailurePhase = FailurePhase.LOCATING_NODE
    history: list[FailurePhase] = field(
        default_factory=lambda: [FailurePhase.LOCATING_NODE]
    )
    recovery_attempts: int = 0
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None
    error: str | None = None

    def advance(self, phase: FailurePhase) -> None:
        failure_log.debug("{}: {} -> {}", self.node_name, self.phase.value, phase.value)
        self.phase = phase
        self.history.append(phase)

    def fail(self, error: BenchyError) -> None:
        self.error = str(error)
        self.advance(FailurePhase.FAILED)
        self.finished_at = time.monotonic()

    @property
    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at


@dataclass(slots=True)
class FailureInjector:
    runtime: ContainerRuntime
    repository: NetworkRepository
    feedback: Feedback
    locks: NodeLocks = field(default_factory=NodeLocks)
    timings: FailureTimings = field(default_factory=FailureTimings)
    cancel: CancellationSignal = field(default_factory=CancellationSignal)
    last_report: FailureReport | None = field(init=False, default=None)

    async def inject_temporary_failure(
        self,
        network: Network,
        node_name: NodeName,
        downtime: DurationSeconds | None = None,
    ) -> FailureReport:
        report = FailureReport(
            node_name=node_name,
            downtime=self.timings.downtime if downtime is None else downtime,
        )
        self.last_report = report
        try:
            node = self._locate(network, node_name)
            async with self.locks.exclusive(network.name, node_name, "temporary_failure"):
                await self._check_preconditions(node)
                await self._run_cycle(network, node, report)
        except BenchyError as exc:
            report.fail(exc)
            failure_log.error("Failure injection on {} failed: {}", node_name, exc)
            raise
        report.finished_at = time.monotonic()
        return report

    def _locate(self, network: Network, node_name: NodeName) -> Node:
        node = network.node_by_name(node_name)
        if node is None:
            raise NotFound(
                f"Node not found in network {network.name}",
                node_name=node_name,
                operation="temporary_failure",
            )
        if not node.container_ref:
            raise PreconditionFailed(
                "Node has no container", node_name=node_name, operation="temporary_failure"
            )
        return node

    async def _check_preconditions(self, node: Node) -> None:
        if not node.is_online:
            raise PreconditionFailed(
                f"Node is {node.status.value}; only online or syncing nodes can be failed",
                node_name=node.name,
                operation="temporary_failure",
            )
        try:
            running = await self.runtime.is_running(node.container_ref)
        except ContainerRuntimeError as exc:
            raise PreconditionFailed(
                f"Cannot inspect container: {exc.message}",
                node_name=node.name,
                operation="temporary_failure",
            ) from exc
        if not running:
            raise PreconditionFailed(
                "Node container is not running",
                node_name=node.name,
                operation="temporary_failure",
            )

    async def _run_cycle(self, network: Network, node: Node, report: FailureReport) -> None:
        self.feedback.info(f"🔥 Simulating failure for node: {node.name}")

        report.advance(FailurePhase.STOPPING)
        self.feedback.info(f"🛑 Stopping node {node.name}...")
        node.transition(NodeStatus.STOPPING)
        try:
            await self.runtime.stop(node.container_ref)
        except ContainerRuntimeError as exc:
            await self._settle_failed_stop(network, node)
            raise ContainerRuntimeError(
                f"Failed to stop container: {exc.message}",
                node_name=node.name,
                operation="stop",
            ) from exc
        node.transition(NodeStatus.OFFLINE)
        await self._persist_node(network, node)
        report.advance(FailurePhase.STOPPED)
        self.feedback.success(f"Node {node.name} stopped")

        report.advance(FailurePhase.WAITING)
        await self._wait_downtime(report.downtime)

        report.advance(FailurePhase.RESTARTING)
        await self._restart(node)

        report.advance(FailurePhase.RECOVERING)
        await self._await_recovery(node, report)

        node.transition(NodeStatus.ONLINE)
        await self._persist_node(network, node)
        report.advance(FailurePhase.RECOVERED)
        self.feedback.success(f"Node {node.name} recovered successfully!")
        self.feedback.info("💡 Use 'benchy infos' to monitor the node synchronization")

    async def _settle_failed_stop(self, network: Network, node: Node) -> None:
        """Align the node with what the runtime reports after a refused stop."""
        try:
            running = await self.runtime.is_running(node.container_ref)
        except ContainerRuntimeError as exc:
            failure_log.warning("Cannot inspect {} after failed stop: {}", node.name, exc)
            running = False
        if running:
            node.resume_after_failed_stop()
            self.feedback.warning(
                f"Node {node.name} could not be stopped and is still running"
            )
        else:
            node.transition(NodeStatus.OFFLINE)
        await self._persist_node(network, node)

    async def _wait_downtime(self, downtime: DurationSeconds) -> None:
        seconds = math.ceil(downtime)
        self.feedback.info(f"⏳ Waiting {seconds} seconds before restart...")
        progress = self.feedback.start_progress("Waiting for restart", seconds)
        try:
            for elapsed in range(1, seconds + 1):
                await self.cancel.sleep(self.timings.tick, "downtime_wait")
                progress.update(elapsed, f"Waiting... {elapsed}/{seconds} seconds")
        except Cancelled:
            progress.error("Downtime wait cancelled")
            raise
        finally:
            progress.close()
        self.feedback.info(f"⏰ {seconds} seconds elapsed")

    async def _restart(self, node: Node) -> None:
        spinner = self.feedback.start_spinner("Starting container...")
        try:
            await self.runtime.start(node.container_ref)
        except ContainerRuntimeError as exc:
            spinner.error(f"Failed to restart container: {exc.message}")
            raise RestartFailure(
                f"Failed to restart container: {exc.message}",
                node_name=node.name,
                operation="restart",
            ) from exc
        spinner.success("✅ Container restarted")
        node.transition(NodeStatus.STARTING)

    async def _await_recovery(self, node: Node, report: FailureReport) -> None:
        spinner = self.feedback.start_spinner("Waiting for node to become ready...")

        async def _running() -> bool:
            report.recovery_attempts += 1
            return await self.runtime.is_running(node.container_ref)

        try:
            await poll_until(
                _running,
                timeout=self.timings.recovery_timeout,
                interval=self.timings.recovery_interval,
                cancel=self.cancel,
                operation="recovery",
                node_name=node.name,
                timeout_error=RecoveryTimeout,
            )
        except RecoveryTimeout:
            spinner.error("Node failed to recover within timeout")
            raise
        except Cancelled:
            spinner.error("Recovery cancelled")
            raise
        spinner.success("✅ Node is ready")

    async def _persist_node(self, network: Network, node: Node) -> None:
        try:
            await self.repository.update_node(network.name, node)
        except (BenchyError, OSError) as exc:
            failure_log.warning("Failed to persist {}: {}", node.name, exc)
            self.feedback.warning(f"Failed to update node status: {exc}")
