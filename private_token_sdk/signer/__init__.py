"""
Signers for ledger transactions and marketplace orders.
"""
from typing import Any, Dict, Protocol

from eth_account.datastructures import SignedMessage
from eth_account.messages import SignableMessage


class Signer(Protocol):
    """Protocol for custom signers"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        ...

    def sign_message(self, signable_message: SignableMessage) -> SignedMessage:
        """Sign an EIP-191/EIP-712 message"""
        ...


from .local import LocalSigner  # noqa: E402

__all__ = ["Signer", "LocalSigner"]
