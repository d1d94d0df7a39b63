"""
Signer backed by a private key held in process memory.
"""
import logging
from typing import Any, Dict

from eth_account import Account
from eth_account.datastructures import SignedMessage
from eth_account.messages import SignableMessage
from eth_account.signers.local import LocalAccount

logger = logging.getLogger(__name__)


class LocalSigner:
    """Sign with an Ethereum private key."""

    def __init__(self, priv_key: str):
        """
        Args:
            priv_key: Hex private key, with or without 0x prefix

        Raises:
            ValueError: If the key is malformed
        """
        self.account: LocalAccount = Account.from_key(priv_key)
        logger.debug("Loaded local signer %s", self.account.address)

    @property
    def address(self) -> str:
        return self.account.address

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        return self.account.sign_transaction(transaction_dict)

    def sign_message(self, signable_message: SignableMessage) -> SignedMessage:
        return self.account.sign_message(signable_message)

    def __repr__(self) -> str:
        return f"LocalSigner(address={self.address})"
