"""
ECIES encryption of ledger balances.

Wire format of an encrypted amount::

    ephemeral_pubkey (65) || nonce (16) || tag (16) || ciphertext

The AES-256-GCM key is HKDF-SHA256 over ``ephemeral_pubkey || shared_point``,
where the shared point is the full 65-byte uncompressed ECDH point. This is
the layout eciesjs and eciespy produce with their default settings, so the
TEE and existing tooling read what this module writes.

Every call uses a fresh ephemeral key, so two encryptions of the same amount
never produce the same bytes.
"""
import os
import logging
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..exceptions import DecryptionError
from ..utils import hex_to_bytes, validate_amount
from .ec_constants import UNCOMPRESSED_POINT_SIZE
from .keys import CURVE, PrivateKey, PrivateKeyLike, PublicKeyLike, parse_private_key, parse_public_key

logger = logging.getLogger(__name__)

NONCE_SIZE = 16
TAG_SIZE = 16
KEY_SIZE = 32
HEADER_SIZE = UNCOMPRESSED_POINT_SIZE + NONCE_SIZE + TAG_SIZE


def _derive_key(ephemeral_public: bytes, shared_point: bytes) -> bytes:
    hkdf = HKDF(algorithm=hashes.SHA256(), length=KEY_SIZE, salt=None, info=None)
    return hkdf.derive(ephemeral_public + shared_point)


def encrypt_bytes(public_key: PublicKeyLike, plaintext: bytes) -> bytes:
    """
    Encrypt arbitrary bytes to a secp256k1 public key.

    Raises:
        InvalidKeyError: If the public key is malformed
    """
    receiver = parse_public_key(public_key)

    ephemeral = PrivateKey.generate()
    ephemeral_public = ephemeral.public_key.to_bytes()
    key = _derive_key(ephemeral_public, ephemeral.shared_point(receiver.to_bytes()))

    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    # AESGCM appends the tag; the wire format puts it before the ciphertext
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return ephemeral_public + nonce + tag + ciphertext


def decrypt_bytes(private_key: PrivateKeyLike, data: bytes) -> bytes:
    """
    Decrypt bytes produced by :func:`encrypt_bytes`.

    Raises:
        InvalidKeyError: If the private key is malformed
        DecryptionError: If the ciphertext is malformed or the key is wrong
    """
    key = parse_private_key(private_key)

    if len(data) < HEADER_SIZE:
        raise DecryptionError(f"Ciphertext too short ({len(data)} bytes)")

    ephemeral_public = data[:UNCOMPRESSED_POINT_SIZE]
    nonce = data[UNCOMPRESSED_POINT_SIZE:UNCOMPRESSED_POINT_SIZE + NONCE_SIZE]
    tag = data[UNCOMPRESSED_POINT_SIZE + NONCE_SIZE:HEADER_SIZE]
    ciphertext = data[HEADER_SIZE:]

    try:
        ec.EllipticCurvePublicKey.from_encoded_point(CURVE, ephemeral_public)
    except ValueError as e:
        raise DecryptionError(f"Ciphertext carries an invalid ephemeral key: {e}")

    aes_key = _derive_key(ephemeral_public, key.shared_point(ephemeral_public))
    try:
        return AESGCM(aes_key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag:
        raise DecryptionError("Authentication failed: wrong private key or corrupted ciphertext")


def encrypt(public_key: PublicKeyLike, amount: int) -> bytes:
    """
    Encrypt a balance amount.

    Args:
        public_key: Ledger encryption public key, in any accepted form
        amount: Unsigned amount in the ledger's smallest unit

    Returns:
        Encrypted amount bytes

    Raises:
        InvalidKeyError: If the public key is malformed
        ValueError: If the amount is negative or exceeds uint256
    """
    validate_amount(amount)
    encrypted = encrypt_bytes(public_key, str(amount).encode("ascii"))
    logger.debug("Encrypted amount to 0x%s…", encrypted[:8].hex())
    return encrypted


def decrypt(private_key: PrivateKeyLike, ciphertext: Union[bytes, str]) -> int:
    """
    Decrypt an encrypted amount.

    Args:
        private_key: TEE private key
        ciphertext: Encrypted amount as bytes or hex

    Returns:
        Plaintext amount

    Raises:
        DecryptionError: If the ciphertext cannot be decrypted to an amount
    """
    try:
        data = hex_to_bytes(ciphertext)
    except ValueError as e:
        raise DecryptionError(f"Ciphertext is not valid hex: {e}")

    plaintext = decrypt_bytes(private_key, data)
    try:
        text = plaintext.decode("ascii")
    except UnicodeDecodeError:
        raise DecryptionError("Decrypted payload is not an ASCII amount")
    if not text.isdigit():
        raise DecryptionError("Decrypted payload is not a decimal amount")
    return int(text)


def decrypt_balance(private_key: PrivateKeyLike, ciphertext: Union[bytes, str]) -> int:
    """
    Decrypt a ledger balance slot.

    Never-minted accounts hold an empty ciphertext, which reads as zero.
    """
    try:
        data = hex_to_bytes(ciphertext)
    except ValueError as e:
        raise DecryptionError(f"Ciphertext is not valid hex: {e}")
    if not data:
        return 0
    return decrypt(private_key, data)
