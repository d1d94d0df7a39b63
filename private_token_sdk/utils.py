"""
Utility functions for the private token SDK.
"""
import time
from decimal import Decimal, InvalidOperation, localcontext
from typing import Callable, Optional, Union

from web3 import Web3

from .constants import MAX_UINT256, ZERO_ADDRESS
from .exceptions import InvalidRecipientError, OperationTimeoutError, SelfTransferError
from .models import TransferStage

# uint256 has 78 decimal digits; scale with room to spare instead of the default 28
_UNIT_PRECISION = 100


def to_hex(data: bytes) -> str:
    """Render bytes as lower-case, 0x-prefixed hex."""
    return "0x" + bytes(data).hex()


def hex_to_bytes(value: Union[str, bytes]) -> bytes:
    """
    Convert a hex string (with or without 0x prefix) to bytes.

    Bytes are returned unchanged so callers can accept both forms.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)


def is_zero_address(address: str) -> bool:
    return address.lower() == ZERO_ADDRESS


def checksum_address(address: str) -> str:
    """
    Validate and checksum an address.

    Raises:
        InvalidRecipientError: If the address is malformed
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidRecipientError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)


def same_address(left: str, right: str) -> bool:
    return left.lower() == right.lower()


def validate_recipient(
    recipient: str,
    sender: Optional[str] = None,
    stage: Optional[TransferStage] = None,
) -> str:
    """
    Apply the ledger's recipient rules client-side.

    Args:
        recipient: Recipient address
        sender: Sending account, if the call is a transfer
        stage: Stage to report on failure

    Returns:
        Checksummed recipient address

    Raises:
        InvalidRecipientError: Zero or malformed recipient
        SelfTransferError: Recipient equals sender
    """
    try:
        checksummed = checksum_address(recipient)
    except InvalidRecipientError as e:
        e.stage = stage
        raise
    if is_zero_address(checksummed):
        raise InvalidRecipientError("Recipient cannot be the zero address", stage=stage)
    if sender is not None and same_address(checksummed, sender):
        raise SelfTransferError("Cannot transfer to self", stage=stage)
    return checksummed


def validate_amount(amount: int) -> int:
    """Ensure an amount fits the ledger's uint256 field."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be an int, got {type(amount).__name__}")
    if amount < 0 or amount > MAX_UINT256:
        raise ValueError("Amount must be between 0 and 2**256 - 1")
    return amount


def to_base_units(amount: Union[str, int, Decimal], decimals: int) -> int:
    """
    Scale a human-readable token amount to the ledger's smallest unit.

    Args:
        amount: Amount in whole tokens, e.g. "100" or "0.5"
        decimals: Ledger decimal count

    Raises:
        ValueError: If the amount is negative, not a number, or finer
            than the smallest unit
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value < 0:
        raise ValueError(f"Invalid amount: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"Amount {amount} has more than {decimals} decimal places")
        return validate_amount(int(scaled))


def from_base_units(value: int, decimals: int) -> Decimal:
    """Inverse of :func:`to_base_units`."""
    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        return Decimal(value).scaleb(-decimals)


class Deadline:
    """
    Time budget shared by the network calls of one operation.

    A deadline created with ``timeout=None`` never expires.
    """

    def __init__(self, timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.timeout = timeout
        self._expires_at = None if timeout is None else clock() + timeout

    @property
    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining
        return remaining is not None and remaining <= 0

    def bound(self, default: float) -> float:
        """Return ``default`` clipped to the remaining budget."""
        remaining = self.remaining
        if remaining is None:
            return default
        return min(default, remaining)

    def check(self, operation: str, stage: Optional[TransferStage] = None) -> None:
        """
        Raises:
            OperationTimeoutError: If the deadline has passed
        """
        if self.expired:
            raise OperationTimeoutError(
                f"Deadline of {self.timeout}s exceeded before {operation}", stage=stage
            )
