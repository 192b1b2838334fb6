"""Node identities: secp256k1 key pairs and their Ethereum-style addresses."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from Crypto.Hash import keccak
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from loguru import logger

from benchy.core.errors import CryptoFailure, IOFailure, NotFound, ParseFailure

from .type_aliases import NodeName

ADDRESS_LENGTH = 20
PRIVATE_KEY_LENGTH = 32
PUBLIC_KEY_LENGTH = 64

# Order of the secp256k1 group; valid private scalars are in [1, n).
SECP256K1_ORDER = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16
)

PRIVATE_KEY_SUFFIX = "-private.key"
ADDRESS_SUFFIX = "-address.txt"


def keccak256(data: bytes) -> bytes:
    """Keccak-256 as used by Ethereum (not the NIST SHA3-256 variant)."""
    return keccak.new(digest_bits=256, data=data).digest()


@dataclass(frozen=True, slots=True)
class Address:
    """A 20-byte account address."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != ADDRESS_LENGTH:
            raise ValueError(
                f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.raw)}"
            )

    @classmethod
    def from_public_key(cls, public_key: bytes) -> Address:
        if len(public_key) != PUBLIC_KEY_LENGTH:
            raise ValueError(
                f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
            )
        return cls(keccak256(public_key)[-ADDRESS_LENGTH:])

    @classmethod
    def from_hex(cls, value: str) -> Address:
        text = value.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError(f"Invalid address hex: {value!r}") from exc
        return cls(raw)

    def lower_hex(self) -> str:
        return self.raw.hex()

    def checksum(self) -> str:
        """EIP-55 mixed-case checksum encoding."""
        lowered = self.raw.hex()
        digest = keccak256(lowered.encode("ascii")).hex()
        chars = [
            char.upper() if char.isalpha() and int(digest[i], 16) >= 8 else char
            for i, char in enumerate(lowered)
        ]
        return "0x" + "".join(chars)

    def __str__(self) -> str:
        return self.checksum()


@dataclass(frozen=True, slots=True)
class Identity:
    """Key pair of one node plus its derived address.

    The private key is raw 32-byte scalar material. It is excluded from
    ``repr`` and only ever written by :func:`persist_identity`.
    """

    private_key: bytes = field(repr=False)
    public_key: bytes
    address: Address

    @classmethod
    def from_private_bytes(cls, private_key: bytes) -> Identity:
        if len(private_key) != PRIVATE_KEY_LENGTH:
            raise ParseFailure(
                f"Private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(private_key)}",
                operation="parse_private_key",
            )
        scalar = int.from_bytes(private_key, "big")
        if not 0 < scalar < SECP256K1_ORDER:
            raise ParseFailure(
                "Private key scalar out of range for secp256k1",
                operation="parse_private_key",
            )
        try:
            key = ec.derive_private_key(scalar, ec.SECP256K1())
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise CryptoFailure(
                f"Failed to derive public key: {exc}", operation="parse_private_key"
            ) from exc
        return cls._from_key(key)

    @classmethod
    def _from_key(cls, key: ec.EllipticCurvePrivateKey) -> Identity:
        scalar = key.private_numbers().private_value
        public_point = key.public_key().public_bytes(
            Encoding.X962, PublicFormat.UncompressedPoint
        )
        # Drop the 0x04 uncompressed-point marker.
        public_key = public_point[1:]
        return cls(
            private_key=scalar.to_bytes(PRIVATE_KEY_LENGTH, "big"),
            public_key=public_key,
            address=Address.from_public_key(public_key),
        )


def generate_identity() -> Identity:
    """Generate a fresh secp256k1 identity from the OS random source."""
    try:
        key = ec.generate_private_key(ec.SECP256K1())
    except (OSError, ValueError, UnsupportedAlgorithm) as exc:
        raise CryptoFailure(
            f"Failed to generate key pair: {exc}", operation="generate_identity"
        ) from exc
    return Identity._from_key(key)


def private_key_path(directory: Path, node_name: NodeName) -> Path:
    return directory / f"{node_name}{PRIVATE_KEY_SUFFIX}"


def address_path(directory: Path, node_name: NodeName) -> Path:
    return directory / f"{node_name}{ADDRESS_SUFFIX}"


def persist_identity(identity: Identity, directory: Path, node_name: NodeName) -> None:
    """Write the private key and address artifacts for ``node_name``."""
    key_file = private_key_path(directory, node_name)
    address_file = address_path(directory, node_name)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        key_file.write_bytes(identity.private_key)
        key_file.chmod(0o600)
        address_file.write_text(identity.address.checksum())
    except OSError as exc:
        raise IOFailure(
            f"Failed to persist identity under {directory}: {exc}",
            node_name=node_name,
            operation="persist_identity",
        ) from exc
    logger.debug("Persisted identity for {} at {}", node_name, directory)


def load_identity(directory: Path, node_name: NodeName) -> Identity:
    """Inverse of :func:`persist_identity`; the address is re-derived."""
    key_file = private_key_path(directory, node_name)
    try:
        private_key = key_file.read_bytes()
    except FileNotFoundError as exc:
        raise NotFound(
            f"No private key at {key_file}",
            node_name=node_name,
            operation="load_identity",
        ) from exc
    except OSError as exc:
        raise IOFailure(
            f"Failed to read {key_file}: {exc}",
            node_name=node_name,
            operation="load_identity",
        ) from exc

    try:
        return Identity.from_private_bytes(private_key)
    except ParseFailure as exc:
        raise ParseFailure(
            f"Corrupt private key at {key_file}: {exc.message}",
            node_name=node_name,
            operation="load_identity",
        ) from exc
