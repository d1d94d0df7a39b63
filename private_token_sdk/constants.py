"""
Protocol constants shared across the SDK.
"""

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = "0x0000000000000000000000000000000000000000000000000000000000000000"

# Ledger amounts are uint256 on-chain
MAX_UINT256 = (1 << 256) - 1

# Default payment attached to a transfer request (0.01 ETH)
DEFAULT_ESCROW_WEI = 10**16

# EIP-712 domain used by the compute marketplace for order signatures
ORDER_DOMAIN_NAME = "iExecODB"
ORDER_DOMAIN_VERSION = "5.0.0"

# Gas limit used when estimation fails for reasons other than a revert
DEFAULT_GAS_LIMIT = 300000
