"""
Clique genesis generation.

The builder accumulates validators and balance allocations and produces one
immutable :class:`GenesisSpec`. The validator set is embedded in the
genesis ``extraData`` field using the Clique layout::

    32 bytes vanity (zero) | 20 bytes per signer, in order | 65 bytes seal (zero)

Signer order matters: Clique iterates authorities in this order, so the
builder never reorders what it is given.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from benchy.core.errors import ConfigurationError, IOFailure

from .identity import Address
from .type_aliases import ChainId, WeiAmount

EXTRA_VANITY_LENGTH = 32
EXTRA_SEAL_LENGTH = 65

WEI_PER_ETHER = 10**18
VALIDATOR_BALANCE: WeiAmount = 1000 * WEI_PER_ETHER
NON_VALIDATOR_BALANCE: WeiAmount = 10 * WEI_PER_ETHER

DEFAULT_CHAIN_ID: ChainId = 1337
DEFAULT_PERIOD_SECONDS = 5
DEFAULT_EPOCH_LENGTH = 30000
DEFAULT_GAS_LIMIT = 8_000_000
DEFAULT_DIFFICULTY = 1

# Forks activated at block 0 on a fresh private chain.
FORK_BLOCK_FIELDS = (
    "homesteadBlock",
    "eip150Block",
    "eip155Block",
    "eip158Block",
    "byzantiumBlock",
    "constantinopleBlock",
    "petersburgBlock",
    "istanbulBlock",
    "berlinBlock",
    "londonBlock",
)


def encode_extra_data(validators: tuple[Address, ...]) -> bytes:
    """Encode the Clique signer list into genesis extra data."""
    return (
        bytes(EXTRA_VANITY_LENGTH)
        + b"".join(validator.raw for validator in validators)
        + bytes(EXTRA_SEAL_LENGTH)
    )


def decode_extra_data(extra_data: bytes) -> tuple[Address, ...]:
    """Recover the signer list from Clique extra data."""
    signers = extra_data[EXTRA_VANITY_LENGTH : len(extra_data) - EXTRA_SEAL_LENGTH]
    if len(signers) % 20 != 0:
        raise ValueError(f"Malformed extra data: {len(extra_data)} bytes")
    return tuple(Address(signers[i : i + 20]) for i in range(0, len(signers), 20))


@dataclass(frozen=True, slots=True)
class GenesisSpec:
    """Immutable genesis description for a Clique network."""

    chain_id: ChainId
    period: int
    epoch: int
    validators: tuple[Address, ...]
    allocations: tuple[tuple[Address, WeiAmount], ...]
    gas_limit: int = DEFAULT_GAS_LIMIT
    difficulty: int = DEFAULT_DIFFICULTY

    @property
    def extra_data(self) -> bytes:
        return encode_extra_data(self.validators)

    def balance_of(self, address: Address) -> WeiAmount:
        for allocated, balance in self.allocations:
            if allocated == address:
                return balance
        return 0

    def to_document(self) -> dict[str, Any]:
        """Render the geth-compatible genesis JSON document."""
        config: dict[str, Any] = {"chainId": self.chain_id}
        config.update({fork: 0 for fork in FORK_BLOCK_FIELDS})
        config["clique"] = {"period": self.period, "epoch": self.epoch}
        return {
            "config": config,
            "nonce": "0x0",
            "timestamp": "0x0",
            "extraData": "0x" + self.extra_data.hex(),
            "gasLimit": hex(self.gas_limit),
            "difficulty": hex(self.difficulty),
            "mixHash": "0x" + "00" * 32,
            "coinbase": "0x" + "00" * 20,
            "alloc": {
                address.lower_hex(): {"balance": hex(balance)}
                for address, balance in self.allocations
            },
        }


@dataclass(slots=True)
class GenesisBuilder:
    """Accumulates validators and allocations for one genesis document."""

    chain_id: ChainId = DEFAULT_CHAIN_ID
    period: int = DEFAULT_PERIOD_SECONDS
    epoch: int = DEFAULT_EPOCH_LENGTH
    validators: list[Address] = field(default_factory=list)
    allocations: dict[Address, WeiAmount] = field(default_factory=dict)

    def add_validator(self, address: Address) -> None:
        self.validators.append(address)
        self.allocations[address] = VALIDATOR_BALANCE

    def add_allocation(self, address: Address, balance: WeiAmount) -> None:
        if balance < 0:
            raise ConfigurationError(
                f"Allocation for {address} cannot be negative",
                operation="add_allocation",
            )
        self.allocations[address] = balance

    def build(self) -> GenesisSpec:
        if not self.validators:
            raise ConfigurationError(
                "At least one validator is required to build a Clique genesis",
                operation="build_genesis",
            )
        return GenesisSpec(
            chain_id=self.chain_id,
            period=self.period,
            epoch=self.epoch,
            validators=tuple(self.validators),
            allocations=tuple(self.allocations.items()),
        )


def save_genesis(spec: GenesisSpec, file_path: Path) -> None:
    """Write the genesis document to ``file_path`` (parents are created)."""
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(json.dumps(spec.to_document(), indent=2))
    except OSError as exc:
        raise IOFailure(
            f"Failed to write genesis file {file_path}: {exc}",
            operation="save_genesis",
        ) from exc
    logger.info(
        "Wrote genesis for chain {} with {} validators to {}",
        spec.chain_id,
        len(spec.validators),
        file_path,
    )
