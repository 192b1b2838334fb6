"""
Container runtime capability.

The orchestrator never talks to Docker directly: it builds a
:class:`ContainerSpec` and hands it to whatever :class:`ContainerRuntime` it
was wired with. Every method is async and raises
:class:`~benchy.core.errors.ContainerRuntimeError` on failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from benchy.datastructures.network import Node
from benchy.datastructures.type_aliases import (
    ByteSize,
    ContainerNetworkName,
    ContainerRef,
    JsonDict,
    MegabyteSize,
    Percentage,
    PortNumber,
)

CONTAINER_PREFIX = "benchy-"
LABEL_PREFIX = "benchy.node."


def container_name_for(node_name: str) -> str:
    return f"{CONTAINER_PREFIX}{node_name}"


@dataclass(frozen=True, slots=True)
class ContainerSpec:
    """Everything needed to create one node container."""

    name: str
    image: str
    command: tuple[str, ...]
    network: ContainerNetworkName
    ports: dict[PortNumber, PortNumber] = field(default_factory=dict)
    volumes: dict[Path, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    environment: dict[str, str] = field(default_factory=dict)
    entrypoint: str | None = None

    def to_dict(self) -> JsonDict:
        return {
            "name": self.name,
            "image": self.image,
            "command": list(self.command),
            "network": self.network,
            "ports": {str(host): container for host, container in self.ports.items()},
            "volumes": {str(host): target for host, target in self.volumes.items()},
            "labels": dict(self.labels),
            "environment": dict(self.environment),
            "entrypoint": self.entrypoint,
        }


@dataclass(frozen=True, slots=True)
class ContainerStats:
    """Resource usage sample for one container."""

    cpu_percent: Percentage = 0.0
    memory_bytes: ByteSize = 0
    memory_limit_bytes: ByteSize = 0

    @property
    def memory_mb(self) -> MegabyteSize:
        return self.memory_bytes / (1024 * 1024)

    @property
    def memory_percent(self) -> Percentage:
        if self.memory_limit_bytes <= 0:
            return 0.0
        return 100.0 * self.memory_bytes / self.memory_limit_bytes


class ContainerRuntime(Protocol):
    """Lifecycle operations on node containers and the shared network."""

    async def create_container(self, node: Node, spec: ContainerSpec) -> ContainerRef: ...

    async def start(self, ref: ContainerRef) -> None: ...

    async def stop(self, ref: ContainerRef) -> None: ...

    async def restart(self, ref: ContainerRef) -> None: ...

    async def remove(self, ref: ContainerRef) -> None: ...

    async def is_running(self, ref: ContainerRef) -> bool: ...

    async def stats(self, ref: ContainerRef) -> ContainerStats: ...

    async def create_network(self, name: ContainerNetworkName) -> None: ...

    async def remove_network(self, name: ContainerNetworkName) -> None: ...
