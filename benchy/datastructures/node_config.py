"""
Node configuration assembly.

A :class:`NodeConfig` is the immutable descriptor of one roster member:
identity, role, client variant, ports and filesystem layout. The
:class:`NodeConfigAssembler` produces the default five-node roster and the
projections the genesis builder needs.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from loguru import logger

from benchy.core.errors import ConfigurationError, CryptoFailure

from .genesis import NON_VALIDATOR_BALANCE, GenesisBuilder, GenesisSpec
from .identity import (
    Address,
    Identity,
    generate_identity,
    load_identity,
    persist_identity,
    private_key_path,
)
from .type_aliases import ChainId, NodeName, PortNumber

WS_PORT_OFFSET = 1000


class ClientKind(StrEnum):
    """Execution client variants a node can run."""

    GETH = "geth"
    NETHERMIND = "nethermind"


@dataclass(frozen=True, slots=True)
class RosterEntry:
    """Static description of a roster member before an identity exists."""

    name: NodeName
    is_validator: bool
    client: ClientKind
    port: PortNumber
    rpc_port: PortNumber


DEFAULT_ROSTER: tuple[RosterEntry, ...] = (
    RosterEntry("alice", True, ClientKind.GETH, 30303, 8545),
    RosterEntry("bob", True, ClientKind.GETH, 30304, 8546),
    RosterEntry("cassandra", True, ClientKind.NETHERMIND, 30305, 8547),
    RosterEntry("driss", False, ClientKind.GETH, 30306, 8548),
    RosterEntry("elena", False, ClientKind.NETHERMIND, 30307, 8549),
)


@dataclass(frozen=True, slots=True)
class NodeConfig:
    """Immutable descriptor for one network member."""

    name: NodeName
    is_validator: bool
    client: ClientKind
    port: PortNumber
    rpc_port: PortNumber
    identity: Identity
    data_dir: Path
    keystore_dir: Path

    @property
    def ws_port(self) -> PortNumber:
        return self.rpc_port + WS_PORT_OFFSET

    @property
    def address(self) -> Address:
        return self.identity.address

    def ports(self) -> tuple[PortNumber, PortNumber, PortNumber]:
        return (self.port, self.rpc_port, self.ws_port)


def validate_roster(configs: Sequence[NodeConfig]) -> None:
    """Reject rosters with duplicate names or overlapping ports."""
    if not configs:
        raise ConfigurationError("Roster is empty", operation="validate_roster")

    seen_names: set[NodeName] = set()
    seen_ports: dict[PortNumber, NodeName] = {}
    for config in configs:
        if config.name in seen_names:
            raise ConfigurationError(
                "Duplicate node name in roster",
                node_name=config.name,
                operation="validate_roster",
            )
        seen_names.add(config.name)
        for port in config.ports():
            owner = seen_ports.get(port)
            if owner is not None:
                raise ConfigurationError(
                    f"Port {port} already assigned to {owner}",
                    node_name=config.name,
                    operation="validate_roster",
                )
            seen_ports[port] = config.name


def find_by_name(configs: Iterable[NodeConfig], name: NodeName) -> NodeConfig | None:
    for config in configs:
        if config.name == name:
            return config
    return None


def validators_of(configs: Iterable[NodeConfig]) -> list[Address]:
    return [config.address for config in configs if config.is_validator]


def all_addresses_of(configs: Iterable[NodeConfig]) -> list[Address]:
    return [config.address for config in configs]


def build_genesis(
    configs: Iterable[NodeConfig], chain_id: ChainId | None = None
) -> GenesisSpec:
    """Validators are signers; everyone else gets a small starting balance."""
    builder = GenesisBuilder() if chain_id is None else GenesisBuilder(chain_id=chain_id)
    configs = list(configs)
    for config in configs:
        if config.is_validator:
            builder.add_validator(config.address)
    for config in configs:
        if not config.is_validator:
            builder.add_allocation(config.address, NON_VALIDATOR_BALANCE)
    return builder.build()


@dataclass(slots=True)
class NodeConfigAssembler:
    """Builds the roster of node descriptors under ``base_dir``."""

    base_dir: Path
    roster: tuple[RosterEntry, ...] = DEFAULT_ROSTER
    identity_factory: Callable[[], Identity] = generate_identity
    configs: list[NodeConfig] = field(default_factory=list)

    def node_dir(self, name: NodeName) -> Path:
        return self.base_dir / "nodes" / name

    def _identity_for(self, name: NodeName, reuse_existing: bool) -> Identity:
        keystore = self.node_dir(name) / "keystore"
        if reuse_existing and private_key_path(keystore, name).exists():
            logger.debug("Reusing stored identity for {}", name)
            return load_identity(keystore, name)
        return self.identity_factory()

    def generate_default_set(self, reuse_existing: bool = False) -> list[NodeConfig]:
        """Assemble every roster member; any identity failure aborts all.

        With ``reuse_existing`` a node whose keystore already holds a private
        key keeps that identity, so signer addresses match existing chain data.
        """
        assembled: list[NodeConfig] = []
        for entry in self.roster:
            try:
                identity = self._identity_for(entry.name, reuse_existing)
            except CryptoFailure as exc:
                raise CryptoFailure(
                    f"Failed to generate identity: {exc.message}",
                    node_name=entry.name,
                    operation="generate_default_set",
                ) from exc

            assembled.append(
                NodeConfig(
                    name=entry.name,
                    is_validator=entry.is_validator,
                    client=entry.client,
                    port=entry.port,
                    rpc_port=entry.rpc_port,
                    identity=identity,
                    data_dir=self.node_dir(entry.name) / "data",
                    keystore_dir=self.node_dir(entry.name) / "keystore",
                )
            )

        validate_roster(assembled)
        self.configs = assembled
        logger.info(
            "Assembled roster of {} nodes ({} validators)",
            len(assembled),
            sum(1 for config in assembled if config.is_validator),
        )
        return list(assembled)

    def by_name(self, name: NodeName) -> NodeConfig | None:
        return find_by_name(self.configs, name)

    def save_keys(self, configs: Iterable[NodeConfig] | None = None) -> None:
        for config in self.configs if configs is None else configs:
            persist_identity(config.identity, config.keystore_dir, config.name)
