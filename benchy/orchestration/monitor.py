"""
Network monitoring for ``benchy infos``.

A refresh asks the runtime and every node endpoint for fresh figures, writes
them back into the node entities (and the repository), and renders one
table row per node. Unreachable nodes still get a row, filled with N/A.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from benchy.core.cancellation import CancellationSignal
from benchy.core.errors import (
    BenchyError,
    Cancelled,
    ChainRPCError,
    ContainerRuntimeError,
)
from benchy.datastructures.network import DEFAULT_NETWORK_NAME, Network, Node, NodeStatus
from benchy.datastructures.type_aliases import (
    BlockNumber,
    DurationSeconds,
    HostAddress,
    NetworkName,
)
from benchy.runtime.chain_rpc import ChainRPC, wei_to_ether
from benchy.runtime.container import ContainerRuntime
from benchy.runtime.feedback import Feedback
from benchy.runtime.repository import NetworkRepository

from .health import check_network_health, check_node_health

monitor_log = logger

TABLE_HEADERS: tuple[str, ...] = (
    "Node",
    "Status",
    "Latest Block",
    "Peers",
    "CPU/Memory",
    "ETH Balance",
    "Mempool",
)
SYNC_TOLERANCE_BLOCKS = 2
NOT_AVAILABLE = "N/A"


@dataclass(slots=True)
class NodeSnapshot:
    name: str
    status: NodeStatus
    reachable: bool
    latest_block: BlockNumber = 0
    peer_count: int = 0
    cpu_percent: float = 0.0
    memory_mb: float = 0.0
    balance_ether: float = 0.0
    pending_txs: int = 0

    def row(self) -> list[str]:
        if not self.reachable:
            return [self.name, "❌ Offline"] + [NOT_AVAILABLE] * 5
        status = "✅ Online" if self.peer_count > 0 else "🔄 Syncing"
        return [
            self.name,
            status,
            str(self.latest_block),
            str(self.peer_count),
            f"{self.cpu_percent:.1f}%/{self.memory_mb:.0f}MB",
            f"{self.balance_ether:.2f} ETH",
            str(self.pending_txs),
        ]


@dataclass(frozen=True, slots=True)
class SyncStatus:
    lowest: BlockNumber
    highest: BlockNumber

    @property
    def spread(self) -> int:
        return self.highest - self.lowest

    @property
    def in_sync(self) -> bool:
        return self.spread <= SYNC_TOLERANCE_BLOCKS


def check_sync(network: Network) -> SyncStatus | None:
    """Head block spread across online nodes, or None if none is online."""
    heads = [node.metrics.latest_block for node in network.nodes if node.is_online]
    if not heads:
        return None
    return SyncStatus(lowest=min(heads), highest=max(heads))


def health_label(network: Network) -> str:
    return "✅ Healthy" if network.is_healthy() else "⚠️ Unhealthy"


@dataclass(slots=True)
class NetworkMonitor:
    runtime: ContainerRuntime
    chain: ChainRPC
    feedback: Feedback
    repository: NetworkRepository
    network_name: NetworkName = DEFAULT_NETWORK_NAME
    rpc_host: HostAddress = "localhost"
    cancel: CancellationSignal = field(default_factory=CancellationSignal)

    async def snapshot_node(self, node: Node) -> NodeSnapshot:
        """Refresh one node's metrics; any probe failure marks it unreachable."""
        snapshot = NodeSnapshot(name=node.name, status=node.status, reachable=False)

        if node.container_ref:
            try:
                running = await self.runtime.is_running(node.container_ref)
            except ContainerRuntimeError as exc:
                monitor_log.debug("Cannot inspect {}: {}", node.name, exc)
                running = False
            if not running:
                self._mark_down(node)
                snapshot.status = node.status
                return snapshot
            if node.status is NodeStatus.OFFLINE:
                node.transition(NodeStatus.STARTING)
            elif node.status is NodeStatus.STOPPING:
                monitor_log.warning("{} is marked stopping but still running", node.name)
                node.resume_after_failed_stop()
            try:
                stats = await self.runtime.stats(node.container_ref)
            except ContainerRuntimeError as exc:
                monitor_log.debug("No stats for {}: {}", node.name, exc)
            else:
                node.metrics.cpu_percent = stats.cpu_percent
                node.metrics.memory_mb = stats.memory_mb
                node.metrics.memory_percent = stats.memory_percent

        endpoint = node.rpc_endpoint(self.rpc_host)
        try:
            await self.chain.connect(endpoint)
            block = await self.chain.latest_block_number(endpoint)
            peers = await self.chain.peer_count(endpoint)
        except ChainRPCError as exc:
            monitor_log.debug("{} unreachable: {}", node.name, exc)
            return snapshot

        node.confirm_readiness(peers, block)
        try:
            node.metrics.pending_txs = await self.chain.pending_tx_count(endpoint)
        except ChainRPCError as exc:
            monitor_log.debug("No mempool figures for {}: {}", node.name, exc)
        if node.address is not None:
            try:
                node.metrics.balance_wei = await self.chain.balance(endpoint, node.address)
            except ChainRPCError as exc:
                monitor_log.debug("No balance for {}: {}", node.name, exc)

        snapshot.reachable = True
        snapshot.status = node.status
        snapshot.latest_block = node.metrics.latest_block
        snapshot.peer_count = node.metrics.peer_count
        snapshot.cpu_percent = node.metrics.cpu_percent
        snapshot.memory_mb = node.metrics.memory_mb
        snapshot.balance_ether = wei_to_ether(node.metrics.balance_wei)
        snapshot.pending_txs = node.metrics.pending_txs
        return snapshot

    def _mark_down(self, node: Node) -> None:
        if node.is_online:
            monitor_log.warning("{} container is no longer running", node.name)
            node.transition(NodeStatus.STOPPING)
            node.transition(NodeStatus.OFFLINE)

    async def refresh(self, network: Network) -> list[NodeSnapshot]:
        snapshots = [await self.snapshot_node(node) for node in network.nodes]
        network.refresh_metrics()
        for node in network.nodes:
            try:
                await self.repository.update_node(network.name, node)
            except BenchyError as exc:
                monitor_log.warning("Failed to persist metrics for {}: {}", node.name, exc)
        return snapshots

    def render(self, network: Network, snapshots: Sequence[NodeSnapshot]) -> None:
        self.feedback.display_table(
            list(TABLE_HEADERS), [snapshot.row() for snapshot in snapshots]
        )
        self.feedback.info(f"Total pending transactions: {network.metrics.total_txs}")
        health = check_network_health(network)
        self.feedback.info(
            f"Network health: {health_label(network)} (score {health.score:.0f}/100)"
        )
        for issue in health.issues:
            self.feedback.warning(issue)
        for node in network.nodes:
            node_health = check_node_health(node)
            if node.is_online and node_health.issues:
                self.feedback.warning(f"{node.name}: {'; '.join(node_health.issues)}")
        sync = check_sync(network)
        if sync is not None and not sync.in_sync:
            self.feedback.warning(
                f"Nodes out of sync: head blocks range from {sync.lowest} to {sync.highest}"
            )

    async def show(self) -> list[NodeSnapshot]:
        """One-shot ``infos``: load, refresh, render."""
        network = await self.repository.get_network(self.network_name)
        snapshots = await self.refresh(network)
        self.render(network, snapshots)
        return snapshots

    async def watch(
        self, interval: DurationSeconds, iterations: int | None = None
    ) -> int:
        """Re-render every ``interval`` seconds until cancelled.

        ``iterations`` bounds the loop; the return value is the number of
        refreshes performed.
        """
        self.feedback.info(
            f"📊 Monitoring nodes (updating every {interval:g} seconds, "
            "press Ctrl+C to stop)"
        )
        performed = 0
        try:
            while iterations is None or performed < iterations:
                if performed:
                    await self.cancel.sleep(interval, "monitor")
                performed += 1
                self.feedback.info(
                    f"📊 Network Information (Last update: {time.strftime('%H:%M:%S')})"
                )
                try:
                    await self.show()
                except Cancelled:
                    raise
                except Exception as exc:
                    monitor_log.error("Monitoring update failed: {}", exc)
                    self.feedback.error(f"Error updating info: {exc}")
        except Cancelled:
            self.feedback.info("🔄 Stopping continuous update...")
            raise
        return performed
