"""
Network and node domain model.

``Node`` is the mutable run-time projection of a ``NodeConfig``; ``Network``
is the aggregate that owns the ordered node collection. Both carry explicit
status state machines: a transition outside the allowed set is rejected and
leaves the status untouched.

Health is quorum based: a running network is healthy while at least
``HEALTH_QUORUM`` validators are online or syncing. The threshold is fixed
for the three-signer Clique roster and does not scale with node count.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from loguru import logger

from benchy.core.errors import ConfigurationError

from .genesis import DEFAULT_CHAIN_ID, DEFAULT_EPOCH_LENGTH, DEFAULT_PERIOD_SECONDS
from .identity import Address
from .node_config import ClientKind, NodeConfig
from .type_aliases import (
    BlockNumber,
    ChainId,
    ContainerRef,
    HostAddress,
    JsonDict,
    NetworkName,
    NodeName,
    PeerCount,
    PortNumber,
    Timestamp,
    UrlString,
)

HEALTH_QUORUM = 2
DEFAULT_NETWORK_NAME: NetworkName = "benchy-network"


class NodeStatus(StrEnum):
    """Lifecycle states of a single node."""

    OFFLINE = "offline"
    STARTING = "starting"
    ONLINE = "online"
    SYNCING = "syncing"
    STOPPING = "stopping"


NODE_TRANSITIONS: frozenset[tuple[NodeStatus, NodeStatus]] = frozenset(
    {
        (NodeStatus.OFFLINE, NodeStatus.STARTING),
        (NodeStatus.STARTING, NodeStatus.ONLINE),
        (NodeStatus.STARTING, NodeStatus.SYNCING),
        (NodeStatus.ONLINE, NodeStatus.STOPPING),
        (NodeStatus.SYNCING, NodeStatus.STOPPING),
        (NodeStatus.STOPPING, NodeStatus.OFFLINE),
    }
)

STATUS_EMOJI: dict[NodeStatus, str] = {
    NodeStatus.ONLINE: "✅",
    NodeStatus.OFFLINE: "❌",
    NodeStatus.SYNCING: "🔄",
    NodeStatus.STARTING: "🔄",
    NodeStatus.STOPPING: "⏹️",
}


class NetworkStatus(StrEnum):
    """Lifecycle states of the whole deployment."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


NETWORK_TRANSITIONS: frozenset[tuple[NetworkStatus, NetworkStatus]] = frozenset(
    {
        (NetworkStatus.STOPPED, NetworkStatus.STARTING),
        (NetworkStatus.STARTING, NetworkStatus.RUNNING),
        (NetworkStatus.STARTING, NetworkStatus.STOPPING),
        (NetworkStatus.RUNNING, NetworkStatus.STOPPING),
        (NetworkStatus.STOPPING, NetworkStatus.STOPPED),
    }
)


def readiness_status(peer_count: PeerCount, latest_block: BlockNumber) -> NodeStatus:
    """Status a starting node moves to once its endpoint answers."""
    if peer_count > 0:
        return NodeStatus.ONLINE
    if latest_block > 0:
        return NodeStatus.SYNCING
    return NodeStatus.STARTING


@dataclass(slots=True)
class NodeMetrics:
    """Point-in-time measurements for one node."""

    peer_count: PeerCount = 0
    latest_block: BlockNumber = 0
    cpu_percent: float = 0.0
    memory_mb: float = 0.0
    memory_percent: float = 0.0
    pending_txs: int = 0
    balance_wei: int = 0

    def to_dict(self) -> JsonDict:
        return {
            "peer_count": self.peer_count,
            "latest_block": self.latest_block,
            "cpu_percent": self.cpu_percent,
            "memory_mb": self.memory_mb,
            "memory_percent": self.memory_percent,
            "pending_txs": self.pending_txs,
            # wei values exceed 64 bits; keep them as decimal strings
            "balance_wei": str(self.balance_wei),
        }

    @classmethod
    def from_dict(cls, payload: JsonDict) -> NodeMetrics:
        return cls(
            peer_count=int(payload.get("peer_count", 0)),
            latest_block=int(payload.get("latest_block", 0)),
            cpu_percent=float(payload.get("cpu_percent", 0.0)),
            memory_mb=float(payload.get("memory_mb", 0.0)),
            memory_percent=float(payload.get("memory_percent", 0.0)),
            pending_txs=int(payload.get("pending_txs", 0)),
            balance_wei=int(payload.get("balance_wei", 0)),
        )


@dataclass(slots=True)
class Node:
    """A network member with its live state."""

    name: NodeName
    is_validator: bool
    client: ClientKind
    port: PortNumber
    rpc_port: PortNumber
    address: Address | None = None
    status: NodeStatus = NodeStatus.OFFLINE
    container_ref: ContainerRef = ""
    metrics: NodeMetrics = field(default_factory=NodeMetrics)
    last_seen: Timestamp = field(default_factory=time.time)
    started_at: Timestamp | None = None

    @classmethod
    def from_config(cls, config: NodeConfig) -> Node:
        return cls(
            name=config.name,
            is_validator=config.is_validator,
            client=config.client,
            port=config.port,
            rpc_port=config.rpc_port,
            address=config.address,
        )

    def can_transition(self, target: NodeStatus) -> bool:
        return (self.status, target) in NODE_TRANSITIONS

    def transition(self, target: NodeStatus) -> bool:
        """Move to ``target`` if allowed; otherwise keep the current status."""
        if not self.can_transition(target):
            logger.warning(
                "Rejected node transition {} -> {} for {}",
                self.status.value,
                target.value,
                self.name,
            )
            return False
        logger.debug(
            "Node {} transition {} -> {}", self.name, self.status.value, target.value
        )
        self.status = target
        if target is NodeStatus.STARTING:
            self.started_at = time.time()
        return True

    def confirm_readiness(
        self, peer_count: PeerCount, latest_block: BlockNumber
    ) -> NodeStatus:
        """Record a successful liveness answer and promote a starting node."""
        self.metrics.peer_count = peer_count
        self.metrics.latest_block = max(self.metrics.latest_block, latest_block)
        self.last_seen = time.time()
        if self.status is NodeStatus.STARTING:
            target = readiness_status(peer_count, self.metrics.latest_block)
            if target is not NodeStatus.STARTING:
                self.transition(target)
        return self.status

    def resume_after_failed_stop(self) -> bool:
        """Return a ``stopping`` node whose container kept running to ``starting``.

        Only allowed transitions are used (``stopping -> offline -> starting``);
        readiness observations promote it from there.
        """
        if self.status is not NodeStatus.STOPPING:
            return False
        self.transition(NodeStatus.OFFLINE)
        return self.transition(NodeStatus.STARTING)

    @property
    def is_online(self) -> bool:
        return self.status in (NodeStatus.ONLINE, NodeStatus.SYNCING)

    @property
    def display_name(self) -> str:
        if self.is_validator:
            return f"{self.name} (validator)"
        return self.name

    @property
    def status_emoji(self) -> str:
        return STATUS_EMOJI.get(self.status, "❓")

    def rpc_endpoint(self, host: HostAddress = "localhost") -> UrlString:
        return f"http://{host}:{self.rpc_port}"

    def to_dict(self) -> JsonDict:
        return {
            "name": self.name,
            "is_validator": self.is_validator,
            "client": self.client.value,
            "port": self.port,
            "rpc_port": self.rpc_port,
            "address": self.address.checksum() if self.address else None,
            "status": self.status.value,
            "container_ref": self.container_ref,
            "metrics": self.metrics.to_dict(),
            "last_seen": self.last_seen,
            "started_at": self.started_at,
        }

    @classmethod
    def from_dict(cls, payload: JsonDict) -> Node:
        address = payload.get("address")
        return cls(
            name=str(payload["name"]),
            is_validator=bool(payload.get("is_validator", False)),
            client=ClientKind(payload.get("client", ClientKind.GETH.value)),
            port=int(payload["port"]),
            rpc_port=int(payload["rpc_port"]),
            address=Address.from_hex(address) if address else None,
            status=NodeStatus(payload.get("status", NodeStatus.OFFLINE.value)),
            container_ref=str(payload.get("container_ref", "")),
            metrics=NodeMetrics.from_dict(payload.get("metrics", {})),
            last_seen=float(payload.get("last_seen", time.time())),
            started_at=payload.get("started_at"),
        )


@dataclass(slots=True)
class NetworkMetrics:
    """Aggregate figures recomputed from the node collection."""

    online_nodes: int = 0
    latest_block: BlockNumber = 0
    total_txs: int = 0


@dataclass(slots=True)
class Network:
    """The deployment aggregate: ordered nodes plus chain parameters."""

    name: NetworkName = DEFAULT_NETWORK_NAME
    chain_id: ChainId = DEFAULT_CHAIN_ID
    consensus: str = "clique"
    block_interval: int = DEFAULT_PERIOD_SECONDS
    epoch_length: int = DEFAULT_EPOCH_LENGTH
    status: NetworkStatus = NetworkStatus.STOPPED
    nodes: list[Node] = field(default_factory=list)
    metrics: NetworkMetrics = field(default_factory=NetworkMetrics)
    created_at: Timestamp = field(default_factory=time.time)
    started_at: Timestamp | None = None

    @classmethod
    def from_configs(
        cls,
        configs: Iterable[NodeConfig],
        name: NetworkName = DEFAULT_NETWORK_NAME,
        chain_id: ChainId = DEFAULT_CHAIN_ID,
    ) -> Network:
        network = cls(name=name, chain_id=chain_id)
        for config in configs:
            network.add_node(Node.from_config(config))
        return network

    @property
    def validators(self) -> list[Node]:
        return [node for node in self.nodes if node.is_validator]

    def add_node(self, node: Node) -> None:
        if self.node_by_name(node.name) is not None:
            raise ConfigurationError(
                "Node already part of network",
                node_name=node.name,
                operation="add_node",
            )
        self.nodes.append(node)

    def node_by_name(self, name: NodeName) -> Node | None:
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def online_count(self) -> int:
        return sum(1 for node in self.nodes if node.is_online)

    def online_validator_count(self) -> int:
        return sum(1 for node in self.validators if node.is_online)

    def is_healthy(self) -> bool:
        if self.status is not NetworkStatus.RUNNING:
            return False
        return self.online_validator_count() >= HEALTH_QUORUM

    def transition(self, target: NetworkStatus) -> bool:
        if (self.status, target) not in NETWORK_TRANSITIONS:
            logger.warning(
                "Rejected network transition {} -> {} for {}",
                self.status.value,
                target.value,
                self.name,
            )
            return False
        self.status = target
        if target is NetworkStatus.RUNNING:
            self.started_at = time.time()
        return True

    def refresh_metrics(self) -> NetworkMetrics:
        self.metrics = NetworkMetrics(
            online_nodes=self.online_count(),
            latest_block=max(
                (node.metrics.latest_block for node in self.nodes), default=0
            ),
            total_txs=sum(node.metrics.pending_txs for node in self.nodes),
        )
        return self.metrics

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "chain_id": self.chain_id,
            "consensus": self.consensus,
            "block_interval": self.block_interval,
            "epoch_length": self.epoch_length,
            "status": self.status.value,
            "created_at": self.created_at,
            "started_at": self.started_at,
        }

    @classmethod
    def from_dict(cls, payload: JsonDict, nodes: Iterable[Node] = ()) -> Network:
        network = cls(
            name=str(payload["name"]),
            chain_id=int(payload.get("chain_id", DEFAULT_CHAIN_ID)),
            consensus=str(payload.get("consensus", "clique")),
            block_interval=int(payload.get("block_interval", DEFAULT_PERIOD_SECONDS)),
            epoch_length=int(payload.get("epoch_length", DEFAULT_EPOCH_LENGTH)),
            status=NetworkStatus(payload.get("status", NetworkStatus.STOPPED.value)),
            created_at=float(payload.get("created_at", time.time())),
            started_at=payload.get("started_at"),
        )
        for node in nodes:
            network.add_node(node)
        network.refresh_metrics()
        return network
