"""
In-process stand-ins for the container runtime and chain RPC.

Used by ``--simulated`` runs and by the test suite. Both record every call
so tests can assert on what was (or was not) touched, and both accept
failure hooks keyed by node name, container name or container reference.
"""

from __future__ import annotations

import itertools
from collections import defaultdict
from dataclasses import dataclass, field

from loguru import logger

from benchy.core.errors import ChainRPCError, ContainerRuntimeError
from benchy.datastructures.identity import Address
from benchy.datastructures.network import Node
from benchy.datastructures.type_aliases import (
    BlockNumber,
    ContainerNetworkName,
    ContainerRef,
    PeerCount,
    PendingTxCount,
    UrlString,
    WeiAmount,
)

from .container import LABEL_PREFIX, ContainerSpec, ContainerStats

sim_log = logger


@dataclass(slots=True)
class SimulatedContainer:
    ref: ContainerRef
    node_name: str
    spec: ContainerSpec
    running: bool = False
    restarts: int = 0


class SimulatedContainerRuntime:
    """ContainerRuntime that keeps containers in a dict."""

    def __init__(self) -> None:
        self.containers: dict[ContainerRef, SimulatedContainer] = {}
        self.networks: set[ContainerNetworkName] = set()
        self.calls: list[tuple[str, str]] = []
        self._failures: dict[str, set[str]] = defaultdict(set)
        self._held_down: set[str] = set()
        self._ids = itertools.count(1)

    def fail(self, operation: str, target: str) -> None:
        """Make ``operation`` raise for ``target`` until :meth:`clear_failures`."""
        self._failures[operation].add(target)

    def hold_down(self, target: str) -> None:
        """Starts for ``target`` succeed but the container never reports running."""
        self._held_down.add(target)

    def clear_failures(self) -> None:
        self._failures.clear()
        self._held_down.clear()

    def calls_for(self, operation: str) -> list[str]:
        return [target for op, target in self.calls if op == operation]

    def _targets(self, ref: ContainerRef) -> set[str]:
        container = self.containers.get(ref)
        if container is None:
            return {ref}
        return {ref, container.spec.name, container.node_name}

    def _check(self, operation: str, targets: set[str]) -> None:
        if self._failures.get(operation, set()) & targets:
            raise ContainerRuntimeError(
                f"simulated {operation} failure", operation=operation
            )

    def _container(self, ref: ContainerRef, operation: str) -> SimulatedContainer:
        container = self.containers.get(ref)
        if container is None:
            raise ContainerRuntimeError(f"No such container: {ref}", operation=operation)
        return container

    async def create_container(self, node: Node, spec: ContainerSpec) -> ContainerRef:
        self.calls.append(("create_container", node.name))
        self._check("create_container", {node.name, spec.name})
        if spec.network not in self.networks:
            raise ContainerRuntimeError(
                f"Network {spec.network} not found", operation="create_container"
            )
        ref = f"sim{next(self._ids):012x}"
        node_name = spec.labels.get(f"{LABEL_PREFIX}name", node.name)
        self.containers[ref] = SimulatedContainer(ref=ref, node_name=node_name, spec=spec)
        sim_log.debug("Simulated container {} created for {}", ref, node_name)
        return ref

    async def start(self, ref: ContainerRef) -> None:
        self.calls.append(("start", ref))
        self._check("start", self._targets(ref))
        container = self._container(ref, "start")
        container.running = not (self._held_down & self._targets(ref))

    async def stop(self, ref: ContainerRef) -> None:
        self.calls.append(("stop", ref))
        self._check("stop", self._targets(ref))
        self._container(ref, "stop").running = False

    async def restart(self, ref: ContainerRef) -> None:
        self.calls.append(("restart", ref))
        self._check("restart", self._targets(ref))
        container = self._container(ref, "restart")
        container.restarts += 1
        container.running = not (self._held_down & self._targets(ref))

    async def remove(self, ref: ContainerRef) -> None:
        self.calls.append(("remove", ref))
        self._check("remove", self._targets(ref))
        self.containers.pop(ref, None)

    async def is_running(self, ref: ContainerRef) -> bool:
        self.calls.append(("is_running", ref))
        self._check("is_running", self._targets(ref))
        container = self.containers.get(ref)
        return container is not None and container.running

    async def stats(self, ref: ContainerRef) -> ContainerStats:
        self.calls.append(("stats", ref))
        self._check("stats", self._targets(ref))
        container = self._container(ref, "stats")
        if not container.running:
            return ContainerStats()
        return ContainerStats(
            cpu_percent=2.5,
            memory_bytes=256 * 1024 * 1024,
            memory_limit_bytes=2 * 1024 * 1024 * 1024,
        )

    async def create_network(self, name: ContainerNetworkName) -> None:
        self.calls.append(("create_network", name))
        self._check("create_network", {name})
        self.networks.add(name)

    async def remove_network(self, name: ContainerNetworkName) -> None:
        self.calls.append(("remove_network", name))
        self._check("remove_network", {name})
        if name not in self.networks:
            raise ContainerRuntimeError(
                f"Network {name} not found", operation="remove_network"
            )
        self.networks.discard(name)


@dataclass(slots=True)
class SimulatedChainRPC:
    """ChainRPC answering from in-memory tables.

    Every ``latest_block_number`` call advances that endpoint's head by
    ``block_step`` so repeated polls see a moving chain.
    """

    default_peers: PeerCount = 2
    block_step: int = 1
    peers: dict[UrlString, PeerCount] = field(default_factory=dict)
    heads: dict[UrlString, BlockNumber] = field(default_factory=dict)
    pending: dict[UrlString, PendingTxCount] = field(default_factory=dict)
    balances: dict[str, WeiAmount] = field(default_factory=dict)
    unreachable: set[UrlString] = field(default_factory=set)
    calls: list[tuple[str, UrlString]] = field(default_factory=list)

    def _reach(self, operation: str, endpoint: UrlString) -> None:
        self.calls.append((operation, endpoint))
        if endpoint in self.unreachable:
            raise ChainRPCError(f"{endpoint} unreachable", operation=operation)

    async def connect(self, endpoint: UrlString) -> None:
        self._reach("connect", endpoint)

    async def latest_block_number(self, endpoint: UrlString) -> BlockNumber:
        self._reach("latest_block_number", endpoint)
        head = self.heads.get(endpoint, 0) + self.block_step
        self.heads[endpoint] = head
        return head

    async def peer_count(self, endpoint: UrlString) -> PeerCount:
        self._reach("peer_count", endpoint)
        return self.peers.get(endpoint, self.default_peers)

    async def pending_tx_count(self, endpoint: UrlString) -> PendingTxCount:
        self._reach("pending_tx_count", endpoint)
        return self.pending.get(endpoint, 0)

    async def balance(self, endpoint: UrlString, address: Address) -> WeiAmount:
        self._reach("balance", endpoint)
        return self.balances.get(address.lower_hex(), 0)
