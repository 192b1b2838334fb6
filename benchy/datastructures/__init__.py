"""
benchy datastructures.

Pure domain values and aggregates used throughout the orchestrator:

- Identity/Address: secp256k1 key pairs and Keccak-derived addresses
- GenesisBuilder/GenesisSpec: Clique genesis with signer extra data
- NodeConfig/NodeConfigAssembler: immutable roster descriptors
- Node/Network: live state machines and quorum health
"""

from __future__ import annotations

from .genesis import (
    NON_VALIDATOR_BALANCE,
    VALIDATOR_BALANCE,
    GenesisBuilder,
    GenesisSpec,
    decode_extra_data,
    encode_extra_data,
    save_genesis,
)
from .identity import (
    Address,
    Identity,
    generate_identity,
    keccak256,
    load_identity,
    persist_identity,
)
from .network import (
    HEALTH_QUORUM,
    Network,
    NetworkStatus,
    Node,
    NodeMetrics,
    NodeStatus,
    readiness_status,
)
from .node_config import (
    DEFAULT_ROSTER,
    ClientKind,
    NodeConfig,
    NodeConfigAssembler,
    RosterEntry,
    all_addresses_of,
    build_genesis,
    find_by_name,
    validate_roster,
    validators_of,
)

__all__ = [
    "Address",
    "ClientKind",
    "DEFAULT_ROSTER",
    "GenesisBuilder",
    "GenesisSpec",
    "HEALTH_QUORUM",
    "Identity",
    "NON_VALIDATOR_BALANCE",
    "Network",
    "NetworkStatus",
    "Node",
    "NodeConfig",
    "NodeConfigAssembler",
    "NodeMetrics",
    "NodeStatus",
    "RosterEntry",
    "VALIDATOR_BALANCE",
    "all_addresses_of",
    "build_genesis",
    "decode_extra_data",
    "encode_extra_data",
    "find_by_name",
    "generate_identity",
    "keccak256",
    "load_identity",
    "persist_identity",
    "readiness_status",
    "save_genesis",
    "validate_roster",
    "validators_of",
]
