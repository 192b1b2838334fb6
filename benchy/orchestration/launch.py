"""
Network launch and teardown.

``launch`` is fail-fast: every configuration artifact (roster validation,
genesis, keys) is produced before the first container is touched, and the
first node that cannot be created or started aborts the sequence. Nodes
started before the failure are left running and named in the raised
:class:`~benchy.core.errors.NodeLaunchFailure`.

Once every container is up the network is marked running and readiness is
awaited in two stages: each node individually, then the network as a whole
by quorum. A node that misses its individual budget is only a warning; a
network that never reaches quorum is a :class:`~benchy.core.errors.Timeout`.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from benchy.core.cancellation import CancellationSignal
from benchy.core.errors import (
    BenchyError,
    Cancelled,
    ConfigurationError,
    ContainerRuntimeError,
    IOFailure,
    NodeLaunchFailure,
    NotFound,
    PreconditionFailed,
    RuntimeUnavailable,
    Timeout,
)
from benchy.datastructures.genesis import DEFAULT_CHAIN_ID, save_genesis
from benchy.datastructures.identity import persist_identity
from benchy.datastructures.network import (
    DEFAULT_NETWORK_NAME,
    Network,
    NetworkStatus,
    Node,
    NodeStatus,
)
from benchy.datastructures.node_config import (
    NodeConfig,
    build_genesis,
    validate_roster,
)
from benchy.datastructures.type_aliases import (
    ChainId,
    DurationSeconds,
    HostAddress,
    NetworkName,
    NodeName,
)
from benchy.runtime.chain_rpc import ChainRPC
from benchy.runtime.container import ContainerRuntime
from benchy.runtime.feedback import Feedback
from benchy.runtime.repository import NetworkRepository

from .commands import build_container_spec
from .readiness import ReadinessPoller

launch_log = logger


@dataclass(frozen=True, slots=True)
class LaunchTimings:
    spacing: DurationSeconds = 2.0
    node_timeout: DurationSeconds = 30.0
    node_interval: DurationSeconds = 2.0
    network_timeout: DurationSeconds = 60.0
    network_interval: DurationSeconds = 5.0


@dataclass(slots=True)
class LaunchReport:
    """What a successful launch produced."""

    network: Network
    genesis_path: Path
    started_nodes: list[NodeName] = field(default_factory=list)
    unready_nodes: list[NodeName] = field(default_factory=list)
    elapsed: float = 0.0


@dataclass(slots=True)
class ShutdownReport:
    network: Network
    removed_nodes: list[NodeName] = field(default_factory=list)
    failed_nodes: list[NodeName] = field(default_factory=list)


@dataclass(slots=True)
class LaunchOrchestrator:
    runtime: ContainerRuntime
    chain: ChainRPC
    feedback: Feedback
    repository: NetworkRepository
    base_dir: Path
    network_name: NetworkName = DEFAULT_NETWORK_NAME
    chain_id: ChainId = DEFAULT_CHAIN_ID
    rpc_host: HostAddress = "localhost"
    timings: LaunchTimings = field(default_factory=LaunchTimings)
    cancel: CancellationSignal = field(default_factory=CancellationSignal)

    @property
    def genesis_path(self) -> Path:
        return self.base_dir / "genesis.json"

    def _poller(self) -> ReadinessPoller:
        return ReadinessPoller(chain=self.chain, rpc_host=self.rpc_host, cancel=self.cancel)

    async def launch(self, configs: Sequence[NodeConfig]) -> LaunchReport:
        started_clock = time.monotonic()
        await self._ensure_not_active()

        # Everything that can fail without side effects on the runtime goes first.
        validate_roster(configs)
        genesis = build_genesis(configs, chain_id=self.chain_id)
        for config in configs:
            persist_identity(config.identity, config.keystore_dir, config.name)
        save_genesis(genesis, self.genesis_path)
        launch_log.info(
            "Genesis written to {} with {} validators",
            self.genesis_path,
            len(genesis.validators),
        )

        network = Network.from_configs(
            configs, name=self.network_name, chain_id=self.chain_id
        )
        network.block_interval = genesis.period
        network.epoch_length = genesis.epoch

        await self.runtime.create_network(self.network_name)
        network.transition(NetworkStatus.STARTING)

        started = await self._start_nodes(network, configs)

        network.transition(NetworkStatus.RUNNING)
        await self._persist(network)
        self.feedback.success(f"All {len(started)} nodes started")

        unready = await self._await_nodes(network)
        await self._await_quorum(network)

        network.refresh_metrics()
        await self._persist(network)
        elapsed = time.monotonic() - started_clock
        self.feedback.success(
            f"Network {network.name} is healthy "
            f"({network.online_validator_count()}/{len(network.validators)} validators online)"
        )
        launch_log.info("Launch of {} finished in {:.1f}s", network.name, elapsed)
        return LaunchReport(
            network=network,
            genesis_path=self.genesis_path,
            started_nodes=started,
            unready_nodes=unready,
            elapsed=elapsed,
        )

    async def _ensure_not_active(self) -> None:
        try:
            existing = await self.repository.get_network(self.network_name)
        except NotFound:
            return
        if existing.status is not NetworkStatus.STOPPED:
            raise PreconditionFailed(
                f"Network {self.network_name} is {existing.status.value}; "
                "shut it down before launching again",
                operation="launch",
            )

    async def _start_nodes(
        self, network: Network, configs: Sequence[NodeConfig]
    ) -> list[NodeName]:
        started: list[NodeName] = []
        progress = self.feedback.start_progress("Launching nodes", len(configs))
        try:
            for index, config in enumerate(configs):
                node = network.node_by_name(config.name)
                if node is None:
                    raise ConfigurationError(
                        f"Node missing from network {network.name}",
                        node_name=config.name,
                        operation="launch",
                    )
                try:
                    await self._start_node(network, node, config)
                except Cancelled:
                    await self._persist(network)
                    raise
                except BenchyError as exc:
                    progress.error(f"Failed to launch {config.name}: {exc.message}")
                    await self._persist(network)
                    raise NodeLaunchFailure(
                        f"Failed to launch node: {exc.message}",
                        node_name=config.name,
                        operation=exc.operation or "launch",
                        started_nodes=started,
                        cause=exc,
                    ) from exc

                started.append(config.name)
                progress.increment(f"{config.name} started")
                self.feedback.success(f"{node.display_name} started")

                if self.timings.spacing > 0 and index < len(configs) - 1:
                    await self.cancel.sleep(self.timings.spacing, "launch")
            progress.complete("All nodes launched")
        finally:
            progress.close()
        return started

    async def _start_node(self, network: Network, node: Node, config: NodeConfig) -> None:
        try:
            config.data_dir.mkdir(parents=True, exist_ok=True)
            config.keystore_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IOFailure(
                f"Cannot create node directories: {exc}",
                node_name=config.name,
                operation="create_directories",
            ) from exc

        spec = build_container_spec(
            config,
            genesis_path=self.genesis_path,
            network_name=self.network_name,
            chain_id=network.chain_id,
        )
        launch_log.debug("Creating {} from {}", spec.name, spec.image)
        node.container_ref = await self.runtime.create_container(node, spec)
        node.transition(NodeStatus.STARTING)
        await self.runtime.start(node.container_ref)

    async def _await_nodes(self, network: Network) -> list[NodeName]:
        poller = self._poller()
        unready: list[NodeName] = []
        spinner = self.feedback.start_spinner("Waiting for nodes to answer...")
        try:
            for node in network.nodes:
                spinner.update_message(f"Waiting for {node.name}...")
                try:
                    await poller.await_node(
                        node,
                        timeout=self.timings.node_timeout,
                        interval=self.timings.node_interval,
                    )
                except Timeout as exc:
                    launch_log.warning("{} not ready: {}", node.name, exc)
                    self.feedback.warning(f"{node.name} did not become ready in time")
                    unready.append(node.name)
                    continue
                self.feedback.info(f"{node.status_emoji} {node.name} is {node.status.value}")
        finally:
            spinner.stop()
        return unready

    async def _await_quorum(self, network: Network) -> None:
        poller = self._poller()
        spinner = self.feedback.start_spinner("Waiting for validator quorum...")
        try:
            await poller.await_network(
                network,
                timeout=self.timings.network_timeout,
                interval=self.timings.network_interval,
                refresh=poller.refresh_starting_nodes,
            )
        except Timeout:
            spinner.error("❌ Network did not become healthy in time")
            await self._persist(network)
            raise
        spinner.success("✅ Validator quorum reached")

    async def _persist(self, network: Network) -> None:
        """Store the network; a failure here is reported, never raised."""
        try:
            try:
                await self.repository.update_network(network)
            except NotFound:
                await self.repository.create_network(network)
        except (BenchyError, OSError) as exc:
            launch_log.warning("Failed to persist network {}: {}", network.name, exc)
            self.feedback.warning(f"Could not save network state: {exc}")

    async def shutdown(self, network: Network | None = None) -> ShutdownReport:
        """Stop and remove every node container, then the shared network."""
        if network is None:
            network = await self.repository.get_network(self.network_name)

        network.transition(NetworkStatus.STOPPING)
        report = ShutdownReport(network=network)
        for node in network.nodes:
            if not node.container_ref:
                continue
            try:
                # nodes that never answered are still "starting" and stay so
                if node.can_transition(NodeStatus.STOPPING):
                    node.transition(NodeStatus.STOPPING)
                await self.runtime.stop(node.container_ref)
                if node.status is NodeStatus.STOPPING:
                    node.transition(NodeStatus.OFFLINE)
                await self.runtime.remove(node.container_ref)
            except ContainerRuntimeError as exc:
                launch_log.warning("Teardown of {} failed: {}", node.name, exc)
                self.feedback.warning(f"Could not remove {node.name}: {exc.message}")
                report.failed_nodes.append(node.name)
                continue
            node.container_ref = ""
            report.removed_nodes.append(node.name)
            self.feedback.success(f"{node.name} stopped")

        try:
            await self.runtime.remove_network(network.name)
        except ContainerRuntimeError as exc:
            launch_log.warning("Could not remove network {}: {}", network.name, exc)
            self.feedback.warning(f"Could not remove network {network.name}: {exc.message}")

        network.transition(NetworkStatus.STOPPED)
        network.refresh_metrics()
        await self._persist(network)
        return report

    async def check_runtime(self) -> None:
        """Create and remove a throwaway network to prove the runtime works."""
        probe = f"benchy-probe-{uuid.uuid4().hex[:12]}"
        try:
            await self.runtime.create_network(probe)
            await self.runtime.remove_network(probe)
        except RuntimeUnavailable:
            raise
        except ContainerRuntimeError as exc:
            raise RuntimeUnavailable(
                f"Container runtime check failed: {exc.message}",
                operation="check_runtime",
            ) from exc
        launch_log.debug("Runtime check passed using {}", probe)
