"""
Balance cipher for the private token SDK.

Balances are encrypted to the ledger's public key; only the TEE holding
the private key can read them.
"""
from .keys import (
    CURVE,
    PublicKey,
    PrivateKey,
    parse_public_key,
    parse_private_key,
    generate_keypair,
)
from .ecies import encrypt, decrypt, decrypt_balance, encrypt_bytes, decrypt_bytes

__all__ = [
    "CURVE",
    "PublicKey",
    "PrivateKey",
    "parse_public_key",
    "parse_private_key",
    "generate_keypair",
    "encrypt",
    "decrypt",
    "decrypt_balance",
    "encrypt_bytes",
    "decrypt_bytes",
]
