"""
Readiness polling for individual nodes and the whole network.

A node is ready once its JSON-RPC endpoint answers; the answer (peer count
and head block) is used to promote it out of ``starting``. The network is
ready once it is healthy by quorum.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeAlias

from loguru import logger

from benchy.core.cancellation import CancellationSignal
from benchy.core.polling import PollResult, poll_until
from benchy.datastructures.network import Network, Node, NodeStatus
from benchy.datastructures.type_aliases import DurationSeconds, HostAddress
from benchy.runtime.chain_rpc import ChainRPC

readiness_log = logger

NodeProbe: TypeAlias = Callable[[Node], Awaitable[bool]]
NetworkRefresh: TypeAlias = Callable[[Network], Awaitable[None]]


@dataclass(slots=True)
class ReadinessPoller:
    chain: ChainRPC
    rpc_host: HostAddress = "localhost"
    cancel: CancellationSignal | None = None

    async def probe_node(self, node: Node) -> bool:
        """Ask the node's endpoint for liveness and record the answer."""
        endpoint = node.rpc_endpoint(self.rpc_host)
        await self.chain.connect(endpoint)
        block = await self.chain.latest_block_number(endpoint)
        peers = await self.chain.peer_count(endpoint)
        status = node.confirm_readiness(peers, block)
        readiness_log.debug(
            "{} answered: block={} peers={} status={}",
            node.name,
            block,
            peers,
            status.value,
        )
        return True

    async def await_node(
        self,
        node: Node,
        probe: NodeProbe | None = None,
        *,
        timeout: DurationSeconds,
        interval: DurationSeconds,
        cancel: CancellationSignal | None = None,
    ) -> PollResult:
        check = probe or self.probe_node

        async def _check() -> bool:
            return await check(node)

        return await poll_until(
            _check,
            timeout=timeout,
            interval=interval,
            cancel=cancel or self.cancel,
            operation="await_node",
            node_name=node.name,
        )

    async def refresh_starting_nodes(self, network: Network) -> None:
        """Re-probe nodes still in ``starting``; errors leave them as they are."""
        for node in network.nodes:
            if node.status is not NodeStatus.STARTING:
                continue
            try:
                await self.probe_node(node)
            except Exception as exc:
                readiness_log.debug("Re-probe of {} failed: {}", node.name, exc)

    async def await_network(
        self,
        network: Network,
        *,
        timeout: DurationSeconds,
        interval: DurationSeconds,
        cancel: CancellationSignal | None = None,
        refresh: NetworkRefresh | None = None,
    ) -> PollResult:
        async def _check() -> bool:
            if refresh is not None:
                await refresh(network)
            return network.is_healthy()

        return await poll_until(
            _check,
            timeout=timeout,
            interval=interval,
            cancel=cancel or self.cancel,
            operation="await_network",
        )
