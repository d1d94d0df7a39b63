"""
Exceptions for the private token SDK.

Every error carries the transfer stage it was raised in (``None`` when the
failing call was made outside a :class:`TransferOrchestrator` run).
"""
import builtins
from typing import Optional, TYPE_CHECKING

from .models import TransferStage

if TYPE_CHECKING:
    from .models import TxReceipt


class PrivateTokenError(Exception):
    """Base exception for all SDK errors."""

    retriable = False

    def __init__(self, message: str, stage: Optional[TransferStage] = None):
        self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage is not None:
            return f"[{self.stage.value}] {message}"
        return message


class InvalidKeyError(PrivateTokenError, ValueError):
    """Raised when a public or private key cannot be parsed."""
    pass


class DecryptionError(PrivateTokenError):
    """Raised when a ciphertext cannot be decrypted with the supplied key."""
    pass


class InvalidRecipientError(PrivateTokenError, ValueError):
    """Raised for a zero or malformed recipient address."""
    pass


class SelfTransferError(PrivateTokenError, ValueError):
    """Raised when sender and recipient are the same account."""
    pass


class SigningError(PrivateTokenError):
    """Raised when a request order cannot be signed by the requester."""
    pass


class NoOfferAvailableError(PrivateTokenError):
    """Raised when the marketplace has no usable offer for a resource."""

    retriable = True

    def __init__(self, message: str, resource: Optional[str] = None, stage: Optional[TransferStage] = None):
        self.resource = resource
        super().__init__(message, stage=stage)


class NetworkError(PrivateTokenError):
    """Raised when the marketplace or the RPC node cannot be reached."""

    retriable = True


class OperationTimeoutError(PrivateTokenError, builtins.TimeoutError):
    """
    Raised when a deadline expires before anything was submitted on-chain.

    Nothing was written to the ledger, so retrying is safe.
    """

    retriable = True


class TransactionRevertedError(PrivateTokenError):
    """Raised when a mined transaction has a failure status."""

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        receipt: Optional["TxReceipt"] = None,
        stage: Optional[TransferStage] = None,
    ):
        self.tx_hash = tx_hash
        self.receipt = receipt
        super().__init__(message, stage=stage)


class ConfirmationTimeoutError(PrivateTokenError, builtins.TimeoutError):
    """
    Raised when a submitted transaction was not confirmed in time.

    The on-chain outcome is unknown: the transfer may still be accepted.
    Callers must look the transaction up before resubmitting.
    """

    def __init__(self, message: str, tx_hash: Optional[str] = None, stage: Optional[TransferStage] = None):
        self.tx_hash = tx_hash
        super().__init__(message, stage=stage)


__all__ = [
    "PrivateTokenError",
    "InvalidKeyError",
    "DecryptionError",
    "InvalidRecipientError",
    "SelfTransferError",
    "SigningError",
    "NoOfferAvailableError",
    "NetworkError",
    "OperationTimeoutError",
    "TransactionRevertedError",
    "ConfirmationTimeoutError",
]
