"""
Command handlers behind the ``benchy`` CLI.

:class:`BenchyCLI` wires settings to concrete collaborators (docker or
simulated runtime, JSON-RPC or simulated chain client, rich console,
persisted repository) and exposes one coroutine per command. Ctrl+C and
SIGTERM fire the shared cancellation signal instead of killing the loop.
"""

from __future__ import annotations

import asyncio
import signal

from loguru import logger
from rich.console import Console

from benchy.core.cancellation import CancellationSignal
from benchy.core.config import BenchySettings, RuntimeMode
from benchy.core.locks import NodeLocks
from benchy.core.persistence import PersistenceRegistry
from benchy.datastructures.node_config import NodeConfigAssembler
from benchy.orchestration.failure import FailureInjector, FailureReport, FailureTimings
from benchy.orchestration.launch import (
    LaunchOrchestrator,
    LaunchReport,
    LaunchTimings,
    ShutdownReport,
)
from benchy.orchestration.monitor import NetworkMonitor
from benchy.orchestration.scenario import SCENARIO_DESCRIPTIONS, parse_scenario, run_scenario
from benchy.runtime.capabilities import Unsupported
from benchy.runtime.chain_rpc import ChainRPC, JsonRpcClient
from benchy.runtime.container import ContainerRuntime
from benchy.runtime.docker import DockerRuntime
from benchy.runtime.feedback import ConsoleFeedback, Feedback
from benchy.runtime.repository import RecordNetworkRepository
from benchy.runtime.simulated import SimulatedChainRPC, SimulatedContainerRuntime

cli_log = logger


class BenchyCLI:
    """Holds the collaborators for one CLI invocation."""

    def __init__(
        self,
        settings: BenchySettings,
        *,
        console: Console | None = None,
        feedback: Feedback | None = None,
        runtime: ContainerRuntime | None = None,
        chain: ChainRPC | None = None,
    ) -> None:
        self.settings = settings
        self.console = console or Console()
        self.feedback = feedback or ConsoleFeedback(self.console)
        self.runtime = runtime or self._default_runtime()
        self.chain = chain or self._default_chain()
        self.cancel = CancellationSignal()
        self.locks = NodeLocks()
        self.registry = PersistenceRegistry(config=settings.persistence_config())
        self._repository: RecordNetworkRepository | None = None

    def _default_runtime(self) -> ContainerRuntime:
        if self.settings.runtime is RuntimeMode.SIMULATED:
            return SimulatedContainerRuntime()
        return DockerRuntime()

    def _default_chain(self) -> ChainRPC:
        if self.settings.runtime is RuntimeMode.SIMULATED:
            return SimulatedChainRPC()
        return JsonRpcClient(timeout=self.settings.rpc_timeout)

    async def __aenter__(self) -> BenchyCLI:
        await self.registry.open()
        self._repository = RecordNetworkRepository(self.registry.record_store("state"))
        self._install_signal_handlers()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._remove_signal_handlers()
        if isinstance(self.chain, JsonRpcClient):
            await self.chain.close()
        await self.registry.close()

    @property
    def repository(self) -> RecordNetworkRepository:
        if self._repository is None:
            raise RuntimeError("BenchyCLI must be entered before use")
        return self._repository

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.cancel.cancel, f"received {sig.name}")
            except (NotImplementedError, RuntimeError, ValueError):
                # no signal support outside the main thread or on this platform
                cli_log.debug("Cannot install handler for {}", sig.name)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                cli_log.debug("Cannot remove handler for {}", sig.name)

    def _orchestrator(self) -> LaunchOrchestrator:
        s = self.settings
        return LaunchOrchestrator(
            runtime=self.runtime,
            chain=self.chain,
            feedback=self.feedback,
            repository=self.repository,
            base_dir=s.base_dir,
            network_name=s.network_name,
            chain_id=s.chain_id,
            rpc_host=s.rpc_host,
            timings=LaunchTimings(
                spacing=s.launch_spacing,
                node_timeout=s.node_ready_timeout,
                node_interval=s.node_ready_interval,
                network_timeout=s.network_ready_timeout,
                network_interval=s.network_ready_interval,
            ),
            cancel=self.cancel,
        )

    async def launch_network(self) -> LaunchReport:
        self.feedback.info("🚀 Launching Ethereum network...")
        assembler = NodeConfigAssembler(base_dir=self.settings.base_dir)
        configs = assembler.generate_default_set(reuse_existing=True)
        report = await self._orchestrator().launch(configs)
        for name in report.unready_nodes:
            self.feedback.warning(f"{name} is still starting; check it with 'benchy infos'")
        self.feedback.info("💡 Use 'benchy infos' to monitor the network")
        return report

    async def shutdown(self) -> ShutdownReport:
        self.feedback.info("⏹️  Shutting down network...")
        report = await self._orchestrator().shutdown()
        if report.failed_nodes:
            self.feedback.warning(
                f"Teardown incomplete for: {', '.join(report.failed_nodes)}"
            )
        else:
            self.feedback.success("Network stopped")
        return report

    async def docker_check(self) -> None:
        await self._orchestrator().check_runtime()
        self.feedback.success("Container runtime is available")

    def _monitor(self) -> NetworkMonitor:
        return NetworkMonitor(
            runtime=self.runtime,
            chain=self.chain,
            feedback=self.feedback,
            repository=self.repository,
            network_name=self.settings.network_name,
            rpc_host=self.settings.rpc_host,
            cancel=self.cancel,
        )

    async def show_infos(self, update_interval: int = 0) -> None:
        monitor = self._monitor()
        if update_interval > 0:
            await monitor.watch(update_interval)
        else:
            await monitor.show()

    async def temporary_failure(
        self, node_name: str, downtime: int | None = None
    ) -> FailureReport:
        network = await self.repository.get_network(self.settings.network_name)
        injector = FailureInjector(
            runtime=self.runtime,
            repository=self.repository,
            feedback=self.feedback,
            locks=self.locks,
            timings=FailureTimings(
                downtime=self.settings.failure_downtime,
                recovery_interval=self.settings.recovery_interval,
                recovery_timeout=self.settings.recovery_timeout,
            ),
            cancel=self.cancel,
        )
        return await injector.inject_temporary_failure(network, node_name, downtime)

    def scenario(self, name: str) -> Unsupported:
        kind = parse_scenario(name)
        self.feedback.info(f"🎬 Scenario {kind.value}: {SCENARIO_DESCRIPTIONS[kind]}")
        result = run_scenario(name)
        self.feedback.warning(str(result))
        return result
