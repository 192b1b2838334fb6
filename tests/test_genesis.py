"""
Property and example tests for Clique genesis generation.

The extraData layout is checked bit for bit: 32 zero bytes, then each
signer address in insertion order, then 65 zero bytes.
"""

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from benchy.core.errors import ConfigurationError, IOFailure
from benchy.datastructures.genesis import (
    DEFAULT_CHAIN_ID,
    DEFAULT_EPOCH_LENGTH,
    DEFAULT_GAS_LIMIT,
    DEFAULT_PERIOD_SECONDS,
    EXTRA_SEAL_LENGTH,
    EXTRA_VANITY_LENGTH,
    NON_VALIDATOR_BALANCE,
    VALIDATOR_BALANCE,
    GenesisBuilder,
    decode_extra_data,
    encode_extra_data,
    save_genesis,
)
from benchy.datastructures.identity import Address

addresses = st.binary(min_size=20, max_size=20).map(Address)


def address_of(byte: int) -> Address:
    return Address(bytes([byte]) * 20)


class TestExtraData:
    @given(st.lists(addresses, min_size=1, max_size=8))
    def test_layout(self, validators: list[Address]):
        builder = GenesisBuilder()
        for validator in validators:
            builder.add_validator(validator)
        extra = builder.build().extra_data

        assert len(extra) == EXTRA_VANITY_LENGTH + 20 * len(validators) + EXTRA_SEAL_LENGTH
        assert extra[:EXTRA_VANITY_LENGTH] == b"\x00" * EXTRA_VANITY_LENGTH
        assert extra[-EXTRA_SEAL_LENGTH:] == b"\x00" * EXTRA_SEAL_LENGTH
        signers = extra[EXTRA_VANITY_LENGTH:-EXTRA_SEAL_LENGTH]
        assert signers == b"".join(validator.raw for validator in validators)

    @given(st.lists(addresses, min_size=1, max_size=8))
    def test_deterministic_and_reversible(self, validators: list[Address]):
        encoded = encode_extra_data(tuple(validators))
        assert encoded == encode_extra_data(tuple(validators))
        assert decode_extra_data(encoded) == tuple(validators)

    def test_three_validator_length(self):
        builder = GenesisBuilder()
        for byte in (1, 2, 3):
            builder.add_validator(address_of(byte))
        assert len(builder.build().extra_data) == 157


class TestGenesisBuilder:
    def test_zero_validators_rejected(self):
        builder = GenesisBuilder()
        builder.add_allocation(address_of(9), NON_VALIDATOR_BALANCE)
        with pytest.raises(ConfigurationError):
            builder.build()

    def test_defaults(self):
        builder = GenesisBuilder()
        builder.add_validator(address_of(1))
        spec = builder.build()
        assert spec.chain_id == DEFAULT_CHAIN_ID == 1337
        assert spec.period == DEFAULT_PERIOD_SECONDS == 5
        assert spec.epoch == DEFAULT_EPOCH_LENGTH == 30000
        assert spec.gas_limit == DEFAULT_GAS_LIMIT == 8_000_000
        assert spec.difficulty == 1

    def test_balances(self):
        builder = GenesisBuilder()
        builder.add_validator(address_of(1))
        builder.add_allocation(address_of(2), NON_VALIDATOR_BALANCE)
        spec = builder.build()
        assert spec.balance_of(address_of(1)) == VALIDATOR_BALANCE == 10**21
        assert spec.balance_of(address_of(2)) == NON_VALIDATOR_BALANCE == 10**19
        assert spec.balance_of(address_of(3)) == 0

    def test_validator_order_preserved(self):
        builder = GenesisBuilder()
        order = [address_of(byte) for byte in (7, 3, 5)]
        for address in order:
            builder.add_validator(address)
        assert list(builder.build().validators) == order

    def test_negative_allocation_rejected(self):
        with pytest.raises(ConfigurationError):
            GenesisBuilder().add_allocation(address_of(1), -1)


class TestGenesisDocument:
    def test_save_writes_geth_document(self, tmp_path):
        builder = GenesisBuilder()
        builder.add_validator(address_of(0xAB))
        builder.add_allocation(address_of(0x0C), NON_VALIDATOR_BALANCE)
        spec = builder.build()

        target = tmp_path / "nested" / "genesis.json"
        save_genesis(spec, target)
        document = json.loads(target.read_text())

        assert document["config"]["chainId"] == 1337
        assert document["config"]["clique"] == {"period": 5, "epoch": 30000}
        assert document["config"]["londonBlock"] == 0
        assert document["gasLimit"] == hex(8_000_000)
        assert document["difficulty"] == "0x1"
        assert document["extraData"] == "0x" + spec.extra_data.hex()
        assert document["alloc"]["ab" * 20] == {"balance": hex(VALIDATOR_BALANCE)}
        assert document["alloc"]["0c" * 20] == {"balance": hex(NON_VALIDATOR_BALANCE)}

    def test_save_failure_is_io_failure(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        builder = GenesisBuilder()
        builder.add_validator(address_of(1))
        with pytest.raises(IOFailure):
            save_genesis(builder.build(), blocker / "genesis.json")
