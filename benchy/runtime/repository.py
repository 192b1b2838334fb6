"""
Network state repository.

Networks and nodes are stored as separate records so a single node can be
updated without rewriting its siblings. The network record keeps the node
order; node records live under ``node/<network>/<node>``.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger

from benchy.core.errors import ConfigurationError, NotFound, ParseFailure
from benchy.core.persistence import RecordStore
from benchy.core.serialization import JsonSerializer, Serializer
from benchy.datastructures.network import Network, Node
from benchy.datastructures.type_aliases import JsonDict, NetworkName, NodeName

repo_log = logger

NETWORK_PREFIX = "network/"
NODE_PREFIX = "node/"


class NetworkRepository(Protocol):
    async def create_network(self, network: Network) -> None: ...

    async def get_network(self, name: NetworkName) -> Network: ...

    async def update_network(self, network: Network) -> None: ...

    async def delete_network(self, name: NetworkName) -> None: ...

    async def update_node(self, network_name: NetworkName, node: Node) -> None: ...

    async def get_node(self, network_name: NetworkName, node_name: NodeName) -> Node: ...

    async def list_nodes(self, network_name: NetworkName) -> list[Node]: ...


class RecordNetworkRepository:
    """NetworkRepository over a namespaced :class:`RecordStore`."""

    def __init__(self, store: RecordStore, serializer: Serializer | None = None) -> None:
        self.store = store
        self.serializer = serializer or JsonSerializer()

    @staticmethod
    def _network_key(name: NetworkName) -> str:
        return f"{NETWORK_PREFIX}{name}"

    @staticmethod
    def _node_key(network_name: NetworkName, node_name: NodeName) -> str:
        return f"{NODE_PREFIX}{network_name}/{node_name}"

    def _decode(self, raw: bytes, what: str) -> JsonDict:
        try:
            payload = self.serializer.deserialize(raw)
        except ValueError as exc:
            raise ParseFailure(f"Corrupt {what} record: {exc}") from exc
        if not isinstance(payload, dict):
            raise ParseFailure(f"Corrupt {what} record: expected an object")
        return payload

    def _node_from(self, raw: bytes, operation: str) -> Node:
        payload = self._decode(raw, "node")
        try:
            return Node.from_dict(payload)
        except (KeyError, ValueError, TypeError) as exc:
            raise ParseFailure(
                f"Invalid node record: {exc!r}",
                node_name=payload.get("name"),
                operation=operation,
            ) from exc

    async def _load_network_record(self, name: NetworkName) -> JsonDict:
        raw = await self.store.get(self._network_key(name))
        if raw is None:
            raise NotFound(f"Network {name} not found", operation="get_network")
        return self._decode(raw, "network")

    async def _write_network_record(
        self, network: Network, node_order: list[NodeName]
    ) -> None:
        record = network.to_dict()
        record["node_order"] = node_order
        await self.store.put(
            self._network_key(network.name), self.serializer.serialize(record)
        )

    async def _write_node(self, network_name: NetworkName, node: Node) -> None:
        await self.store.put(
            self._node_key(network_name, node.name),
            self.serializer.serialize(node.to_dict()),
        )

    async def exists(self, name: NetworkName) -> bool:
        return await self.store.get(self._network_key(name)) is not None

    async def create_network(self, network: Network) -> None:
        if await self.exists(network.name):
            raise ConfigurationError(
                f"Network {network.name} already exists", operation="create_network"
            )
        await self._store_network(network)
        repo_log.debug("Created network record {}", network.name)

    async def update_network(self, network: Network) -> None:
        if not await self.exists(network.name):
            raise NotFound(
                f"Network {network.name} not found", operation="update_network"
            )
        await self._store_network(network)

    async def save_network(self, network: Network) -> None:
        """Create or replace the network and all of its nodes."""
        await self._store_network(network)

    async def _store_network(self, network: Network) -> None:
        stale = {node.name for node in await self._nodes_in_store(network.name)}
        for node in network.nodes:
            await self._write_node(network.name, node)
            stale.discard(node.name)
        for node_name in stale:
            await self.store.delete(self._node_key(network.name, node_name))
        await self._write_network_record(network, [node.name for node in network.nodes])

    async def _nodes_in_store(self, network_name: NetworkName) -> list[Node]:
        records = await self.store.list_prefix(f"{NODE_PREFIX}{network_name}/")
        return [self._node_from(raw, "list_nodes") for _, raw in records]

    async def get_network(self, name: NetworkName) -> Network:
        record = await self._load_network_record(name)
        nodes = await self.list_nodes(name)
        try:
            return Network.from_dict(record, nodes)
        except (KeyError, ValueError, TypeError) as exc:
            raise ParseFailure(
                f"Invalid network record {name}: {exc!r}", operation="get_network"
            ) from exc

    async def delete_network(self, name: NetworkName) -> None:
        for key, _ in await self.store.list_prefix(f"{NODE_PREFIX}{name}/"):
            await self.store.delete(key)
        await self.store.delete(self._network_key(name))
        repo_log.debug("Deleted network record {}", name)

    async def update_node(self, network_name: NetworkName, node: Node) -> None:
        record = await self._load_network_record(network_name)
        await self._write_node(network_name, node)
        order = [str(name) for name in record.get("node_order", [])]
        if node.name not in order:
            order.append(node.name)
            record["node_order"] = order
            await self.store.put(
                self._network_key(network_name), self.serializer.serialize(record)
            )

    async def get_node(self, network_name: NetworkName, node_name: NodeName) -> Node:
        raw = await self.store.get(self._node_key(network_name, node_name))
        if raw is None:
            raise NotFound(
                f"Node not found in network {network_name}",
                node_name=node_name,
                operation="get_node",
            )
        return self._node_from(raw, "get_node")

    async def list_nodes(self, network_name: NetworkName) -> list[Node]:
        record = await self._load_network_record(network_name)
        by_name = {node.name: node for node in await self._nodes_in_store(network_name)}
        ordered = [
            by_name.pop(str(name))
            for name in record.get("node_order", [])
            if str(name) in by_name
        ]
        # records written without an order entry go last, sorted by key
        ordered.extend(by_name.values())
        return ordered
