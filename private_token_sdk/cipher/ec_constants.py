"""
Constants for secp256k1 key handling.
"""

# Order of the secp256k1 group (N value)
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Valid private scalars are 1..N-1
SECP256K1_MIN = 1
SECP256K1_MAX = SECP256K1_N - 1

PRIVATE_KEY_SIZE = 32

# SEC1 point encodings
UNCOMPRESSED_POINT_SIZE = 65
COMPRESSED_POINT_SIZE = 33
# Uncompressed point without the 0x04 prefix, as Ethereum tooling prints it
RAW_POINT_SIZE = 64
UNCOMPRESSED_PREFIX = b"\x04"
