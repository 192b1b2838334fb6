"""Tests for node identities: key generation, address derivation, persistence."""

import stat

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from benchy.core.errors import NotFound, ParseFailure
from benchy.datastructures.identity import (
    SECP256K1_ORDER,
    Address,
    Identity,
    address_path,
    generate_identity,
    keccak256,
    load_identity,
    persist_identity,
    private_key_path,
)

# Well-known account used throughout Ethereum tooling documentation.
KNOWN_PRIVATE_KEY = bytes.fromhex(
    "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
)
KNOWN_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"


class TestKeccak:
    def test_empty_input(self):
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_differs_from_nist_sha3(self):
        import hashlib

        assert keccak256(b"") != hashlib.sha3_256(b"").digest()


class TestAddress:
    @pytest.mark.parametrize(
        "checksummed",
        [
            "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
            "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
            "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
            "0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb",
        ],
    )
    def test_eip55_checksum(self, checksummed: str):
        assert Address.from_hex(checksummed.lower()).checksum() == checksummed

    def test_parses_with_and_without_prefix(self):
        with_prefix = Address.from_hex(KNOWN_ADDRESS)
        without_prefix = Address.from_hex(KNOWN_ADDRESS[2:])
        assert with_prefix == without_prefix
        assert str(with_prefix) == KNOWN_ADDRESS

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            Address(b"\x00" * 19)
        with pytest.raises(ValueError):
            Address.from_hex("0x1234")

    def test_rejects_non_hex(self):
        with pytest.raises(ValueError):
            Address.from_hex("0x" + "zz" * 20)


class TestIdentity:
    def test_known_key_derives_known_address(self):
        identity = Identity.from_private_bytes(KNOWN_PRIVATE_KEY)
        assert identity.address.checksum() == KNOWN_ADDRESS
        assert len(identity.public_key) == 64

    def test_generated_identity_shape(self):
        identity = generate_identity()
        assert len(identity.private_key) == 32
        assert len(identity.public_key) == 64
        assert identity.address == Address.from_public_key(identity.public_key)

    def test_generated_identities_are_fresh(self):
        assert generate_identity().private_key != generate_identity().private_key

    def test_private_key_not_in_repr(self):
        identity = Identity.from_private_bytes(KNOWN_PRIVATE_KEY)
        assert KNOWN_PRIVATE_KEY.hex() not in repr(identity)
        assert "private_key" not in repr(identity)

    @pytest.mark.parametrize(
        "raw",
        [
            b"",
            b"\x01" * 31,
            b"\x01" * 33,
            b"\x00" * 32,
            SECP256K1_ORDER.to_bytes(32, "big"),
        ],
    )
    def test_invalid_private_key(self, raw: bytes):
        with pytest.raises(ParseFailure):
            Identity.from_private_bytes(raw)

    @settings(max_examples=25, deadline=None)
    @given(st.integers(min_value=1, max_value=SECP256K1_ORDER - 1))
    def test_address_is_pure_function_of_key(self, scalar: int):
        raw = scalar.to_bytes(32, "big")
        first = Identity.from_private_bytes(raw)
        second = Identity.from_private_bytes(raw)
        assert first == second
        assert first.private_key == raw


class TestPersistence:
    def test_round_trip(self, tmp_path):
        identity = generate_identity()
        keystore = tmp_path / "nodes" / "alice" / "keystore"
        persist_identity(identity, keystore, "alice")

        key_file = private_key_path(keystore, "alice")
        assert key_file.name == "alice-private.key"
        assert key_file.read_bytes() == identity.private_key
        assert stat.S_IMODE(key_file.stat().st_mode) == 0o600
        assert address_path(keystore, "alice").read_text() == identity.address.checksum()

        assert load_identity(keystore, "alice") == identity

    def test_missing_key_is_not_found(self, tmp_path):
        with pytest.raises(NotFound) as exc_info:
            load_identity(tmp_path, "bob")
        assert exc_info.value.node_name == "bob"

    def test_truncated_key_is_parse_failure(self, tmp_path):
        private_key_path(tmp_path, "bob").write_bytes(b"\x01" * 16)
        with pytest.raises(ParseFailure) as exc_info:
            load_identity(tmp_path, "bob")
        assert "node=bob" in str(exc_info.value)
