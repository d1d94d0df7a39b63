"""
Key types for the balance cipher.

Public keys are accepted in several shapes at the boundary (key objects,
raw bytes, hex strings with or without ``0x``) and normalized once by
:func:`parse_public_key` into the canonical :class:`PublicKey`.
"""
import logging
from dataclasses import dataclass
from typing import Tuple, Union

import coincurve
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from ..exceptions import InvalidKeyError
from ..utils import hex_to_bytes
from .ec_constants import (
    SECP256K1_MIN, SECP256K1_MAX, PRIVATE_KEY_SIZE,
    UNCOMPRESSED_POINT_SIZE, COMPRESSED_POINT_SIZE, RAW_POINT_SIZE, UNCOMPRESSED_PREFIX,
)

logger = logging.getLogger(__name__)

CURVE = ec.SECP256K1()


@dataclass(frozen=True)
class PublicKey:
    """
    Canonical secp256k1 public key.

    Attributes:
        data: 65-byte uncompressed SEC1 point
    """
    data: bytes

    def __post_init__(self):
        if len(self.data) != UNCOMPRESSED_POINT_SIZE or not self.data.startswith(UNCOMPRESSED_PREFIX):
            raise InvalidKeyError("PublicKey requires a 65-byte uncompressed point")

    def to_bytes(self, compressed: bool = False) -> bytes:
        if not compressed:
            return self.data
        return self.to_cryptography().public_bytes(Encoding.X962, PublicFormat.CompressedPoint)

    def to_hex(self, compressed: bool = False) -> str:
        return "0x" + self.to_bytes(compressed).hex()

    def to_cryptography(self) -> ec.EllipticCurvePublicKey:
        return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, self.data)

    def __str__(self) -> str:
        return self.to_hex()


PublicKeyLike = Union[PublicKey, ec.EllipticCurvePublicKey, bytes, str]


def parse_public_key(value: PublicKeyLike) -> PublicKey:
    """
    Normalize any accepted public key representation.

    Args:
        value: PublicKey, cryptography EC public key, SEC1 bytes
            (33 or 65 bytes, or 64 bytes without prefix) or their hex form

    Returns:
        Canonical PublicKey

    Raises:
        InvalidKeyError: If the value is not a secp256k1 point
    """
    if isinstance(value, PublicKey):
        return value

    if isinstance(value, ec.EllipticCurvePublicKey):
        if not isinstance(value.curve, ec.SECP256K1):
            raise InvalidKeyError(f"Expected a secp256k1 key, got {value.curve.name}")
        return PublicKey(value.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint))

    if isinstance(value, str):
        try:
            data = hex_to_bytes(value.strip())
        except ValueError as e:
            raise InvalidKeyError(f"Public key is not valid hex: {e}")
    elif isinstance(value, (bytes, bytearray)):
        data = bytes(value)
    else:
        raise InvalidKeyError(f"Unsupported public key type: {type(value).__name__}")

    if len(data) == RAW_POINT_SIZE:
        data = UNCOMPRESSED_PREFIX + data
    if len(data) not in (UNCOMPRESSED_POINT_SIZE, COMPRESSED_POINT_SIZE):
        raise InvalidKeyError(f"Public key has invalid length {len(data)}")

    try:
        point = ec.EllipticCurvePublicKey.from_encoded_point(CURVE, data)
    except ValueError as e:
        raise InvalidKeyError(f"Public key is not a point on secp256k1: {e}")
    return PublicKey(point.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint))


class PrivateKey:
    """secp256k1 private key held by the TEE operator."""

    def __init__(self, key: ec.EllipticCurvePrivateKey):
        if not isinstance(key.curve, ec.SECP256K1):
            raise InvalidKeyError(f"Expected a secp256k1 key, got {key.curve.name}")
        self._key = key

    @classmethod
    def generate(cls) -> "PrivateKey":
        return cls(ec.generate_private_key(CURVE))

    @classmethod
    def from_int(cls, secret: int) -> "PrivateKey":
        if not SECP256K1_MIN <= secret <= SECP256K1_MAX:
            raise InvalidKeyError("Private key is outside the secp256k1 scalar range")
        return cls(ec.derive_private_key(secret, CURVE))

    @classmethod
    def from_bytes(cls, data: bytes) -> "PrivateKey":
        if len(data) != PRIVATE_KEY_SIZE:
            raise InvalidKeyError(f"Private key must be {PRIVATE_KEY_SIZE} bytes, got {len(data)}")
        return cls.from_int(int.from_bytes(data, byteorder="big"))

    @classmethod
    def from_hex(cls, value: str) -> "PrivateKey":
        try:
            data = hex_to_bytes(value.strip())
        except ValueError as e:
            raise InvalidKeyError(f"Private key is not valid hex: {e}")
        return cls.from_bytes(data)

    @property
    def secret(self) -> int:
        return self._key.private_numbers().private_value

    def to_bytes(self) -> bytes:
        return self.secret.to_bytes(PRIVATE_KEY_SIZE, byteorder="big")

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()

    @property
    def public_key(self) -> PublicKey:
        return parse_public_key(self._key.public_key())

    def shared_point(self, peer: bytes) -> bytes:
        """Uncompressed ECDH point (65 bytes) with a peer SEC1 public key."""
        return coincurve.PublicKey(peer).multiply(self.to_bytes()).format(compressed=False)

    def __repr__(self) -> str:
        # never print the scalar
        return f"PrivateKey(public_key={self.public_key.to_hex()[:12]}…)"


PrivateKeyLike = Union[PrivateKey, ec.EllipticCurvePrivateKey, bytes, str, int]


def parse_private_key(value: PrivateKeyLike) -> PrivateKey:
    """
    Raises:
        InvalidKeyError: If the value is not a secp256k1 private key
    """
    if isinstance(value, PrivateKey):
        return value
    if isinstance(value, ec.EllipticCurvePrivateKey):
        return PrivateKey(value)
    if isinstance(value, bool):
        raise InvalidKeyError("Unsupported private key type: bool")
    if isinstance(value, int):
        return PrivateKey.from_int(value)
    if isinstance(value, (bytes, bytearray)):
        return PrivateKey.from_bytes(bytes(value))
    if isinstance(value, str):
        return PrivateKey.from_hex(value)
    raise InvalidKeyError(f"Unsupported private key type: {type(value).__name__}")


def generate_keypair() -> Tuple[PrivateKey, PublicKey]:
    """
    Generate a new encryption keypair for a ledger deployment.

    Returns:
        Tuple of (private_key, public_key)
    """
    private_key = PrivateKey.generate()
    public_key = private_key.public_key
    logger.info("Generated encryption keypair %s…", public_key.to_hex()[:12])
    return private_key, public_key
