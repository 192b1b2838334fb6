"""Monitoring: snapshots, rendering, health and the watch loop."""

import pytest
import pytest_asyncio

from benchy.core.errors import Cancelled
from benchy.datastructures.network import NodeStatus
from benchy.orchestration.monitor import (
    TABLE_HEADERS,
    NetworkMonitor,
    NodeSnapshot,
    SyncStatus,
    check_sync,
    health_label,
)
from tests.fakes import running_network


@pytest_asyncio.fixture
async def network(orchestrator, configs):
    report = await orchestrator.launch(configs)
    return report.network


@pytest.fixture
def monitor(runtime, chain, feedback, repository):
    return NetworkMonitor(
        runtime=runtime, chain=chain, feedback=feedback, repository=repository
    )


class TestSnapshotRows:
    def test_reachable_row(self):
        snapshot = NodeSnapshot(
            name="alice",
            status=NodeStatus.ONLINE,
            reachable=True,
            latest_block=120,
            peer_count=4,
            cpu_percent=2.5,
            memory_mb=256.4,
            balance_ether=1000.0,
            pending_txs=3,
        )
        assert snapshot.row() == [
            "alice",
            "✅ Online",
            "120",
            "4",
            "2.5%/256MB",
            "1000.00 ETH",
            "3",
        ]

    def test_no_peers_reads_as_syncing(self):
        snapshot = NodeSnapshot(
            name="bob", status=NodeStatus.SYNCING, reachable=True, latest_block=7
        )
        assert snapshot.row()[1] == "🔄 Syncing"

    def test_unreachable_row(self):
        snapshot = NodeSnapshot(name="elena", status=NodeStatus.OFFLINE, reachable=False)
        assert snapshot.row() == ["elena", "❌ Offline"] + ["N/A"] * 5


class TestSync:
    def test_spread(self, configs):
        network = running_network(configs)
        for offset, node in enumerate(network.nodes):
            node.metrics.latest_block = 100 + offset
        status = check_sync(network)
        assert status == SyncStatus(lowest=100, highest=104)
        assert status.spread == 4
        assert not status.in_sync

    def test_within_tolerance(self):
        assert SyncStatus(lowest=10, highest=12).in_sync

    def test_offline_nodes_ignored(self, configs):
        network = running_network(configs)
        for node in network.nodes:
            node.transition(NodeStatus.STOPPING)
        assert check_sync(network) is None

    def test_health_label(self, configs):
        network = running_network(configs)
        assert health_label(network) == "✅ Healthy"
        for node in network.validators[:2]:
            node.transition(NodeStatus.STOPPING)
        assert health_label(network) == "⚠️ Unhealthy"


class TestNetworkMonitor:
    @pytest.mark.asyncio
    async def test_show_renders_every_node(self, monitor, network, chain, feedback):
        alice = network.node_by_name("alice")
        chain.balances[alice.address.lower_hex()] = 10**21
        chain.pending["http://localhost:8546"] = 4
        warnings_before = len(feedback.of_level("warning"))

        snapshots = await monitor.show()

        headers, rows = feedback.tables[-1]
        assert headers == list(TABLE_HEADERS)
        assert [row[0] for row in rows] == ["alice", "bob", "cassandra", "driss", "elena"]
        assert all(snapshot.reachable for snapshot in snapshots)
        assert rows[0][5] == "1000.00 ETH"
        assert rows[0][4] == "2.5%/256MB"
        assert rows[1][6] == "4"
        assert "Total pending transactions: 4" in feedback.of_level("info")
        assert "Network health: ✅ Healthy (score 100/100)" in feedback.of_level("info")
        assert len(feedback.of_level("warning")) == warnings_before

    @pytest.mark.asyncio
    async def test_stopped_container_is_marked_offline(
        self, monitor, network, runtime, repository, feedback
    ):
        bob = network.node_by_name("bob")
        await runtime.stop(bob.container_ref)

        snapshots = await monitor.show()

        bob_snapshot = next(s for s in snapshots if s.name == "bob")
        assert not bob_snapshot.reachable
        assert bob_snapshot.status is NodeStatus.OFFLINE
        stored = await repository.get_node(network.name, "bob")
        assert stored.status is NodeStatus.OFFLINE
        _, rows = feedback.tables[-1]
        assert rows[1] == ["bob", "❌ Offline"] + ["N/A"] * 5

    @pytest.mark.asyncio
    async def test_restarted_container_returns_to_service(
        self, monitor, network, runtime, repository
    ):
        bob = network.node_by_name("bob")
        await runtime.stop(bob.container_ref)
        await monitor.show()
        await runtime.start(bob.container_ref)

        await monitor.show()

        stored = await repository.get_node(network.name, "bob")
        assert stored.status is NodeStatus.ONLINE

    @pytest.mark.asyncio
    async def test_stopping_node_with_running_container_is_restored(
        self, monitor, network, repository
    ):
        bob = network.node_by_name("bob")
        bob.transition(NodeStatus.STOPPING)

        await monitor.refresh(network)

        assert bob.status is NodeStatus.ONLINE
        stored = await repository.get_node(network.name, "bob")
        assert stored.status is NodeStatus.ONLINE

    @pytest.mark.asyncio
    async def test_unreachable_endpoint(self, monitor, network, chain, feedback):
        chain.unreachable.add("http://localhost:8549")
        snapshots = await monitor.show()
        assert [s.name for s in snapshots if not s.reachable] == ["elena"]
        _, rows = feedback.tables[-1]
        assert rows[4][1] == "❌ Offline"

    @pytest.mark.asyncio
    async def test_unhealthy_network(self, monitor, network, runtime, feedback):
        for node in network.validators[:2]:
            await runtime.stop(node.container_ref)
        await monitor.show()
        assert "Network health: ⚠️ Unhealthy (score 30/100)" in feedback.of_level("info")
        assert "Only 1 validators online (minimum: 2)" in feedback.of_level("warning")

    @pytest.mark.asyncio
    async def test_out_of_sync_warning(self, monitor, network, chain, feedback):
        chain.heads["http://localhost:8545"] = 500
        await monitor.show()
        assert any("out of sync" in message for message in feedback.of_level("warning"))

    @pytest.mark.asyncio
    async def test_node_issues_reported(self, monitor, network, chain, feedback):
        chain.peers["http://localhost:8548"] = 0
        await monitor.show()
        assert "driss: No connected peers" in feedback.of_level("warning")


class TestWatch:
    @pytest.mark.asyncio
    async def test_bounded_iterations(self, monitor, network, feedback):
        performed = await monitor.watch(0.001, iterations=3)
        assert performed == 3
        assert len(feedback.tables) == 3

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_the_loop(self, monitor, feedback):
        performed = await monitor.watch(0.001, iterations=2)
        assert performed == 2
        assert len(feedback.of_level("error")) == 2
        assert feedback.tables == []

    @pytest.mark.asyncio
    async def test_cancellation(self, monitor, network, feedback):
        monitor.cancel.cancel("operator interrupt")
        with pytest.raises(Cancelled):
            await monitor.watch(5)
        assert len(feedback.tables) == 1
        assert "🔄 Stopping continuous update..." in feedback.of_level("info")
