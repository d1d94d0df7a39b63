"""
Interface of the encrypted ledger contract as seen by the SDK.

Two implementations exist: :class:`Web3Ledger` talks to a deployed
PrivateERC20 contract, :class:`InMemoryLedger` simulates one in-process.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from ..cipher import PublicKey
from ..exceptions import TransactionRevertedError
from ..models import (
    AppOrder, DatasetOrder, LedgerEvent, TransferRequestedEvent, TxReceipt, WorkerpoolOrder,
)
from ..utils import validate_recipient
from .events import event_matches

logger = logging.getLogger(__name__)

Cipher = Union[bytes, bytearray]


class EncryptedLedger(ABC):
    """
    Client-side binding of the encrypted ledger.

    Balances are only ever read and written as ciphertext. ``update_balance``
    is reserved to the oracle identity; transfer orchestration never calls it
    and only observes the resulting ``BalanceUpdate`` event.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        """Ledger contract address."""
        pass

    @property
    @abstractmethod
    def account(self) -> str:
        """Address that signs write calls."""
        pass

    @abstractmethod
    def encryption_public_key(self, timeout: Optional[float] = None) -> PublicKey:
        """
        Args:
            timeout: Upper bound in seconds for the read
        """
        pass

    @abstractmethod
    def decimals(self) -> int:
        pass

    @abstractmethod
    def read_balance(self, account: str) -> bytes:
        """
        Read the encrypted balance slot of an account.

        Returns:
            Ciphertext bytes, empty for accounts that were never minted
        """
        pass

    @abstractmethod
    def block_number(self) -> int:
        pass

    @abstractmethod
    def mint(self, to: str, encrypted_amount: Cipher, timeout: Optional[float] = None) -> TxReceipt:
        """
        Raises:
            InvalidRecipientError: If ``to`` is the zero address
        """
        pass

    @abstractmethod
    def send_transfer(
        self, to: str, encrypted_amount: Cipher, escrow_wei: int = 0, timeout: Optional[float] = None
    ) -> str:
        """
        Submit a transfer request without waiting for it to be mined.

        Args:
            timeout: Upper bound in seconds for each network request

        Returns:
            Transaction hash

        Raises:
            InvalidRecipientError: If ``to`` is the zero address
            SelfTransferError: If ``to`` is the calling account
            ConfirmationTimeoutError: If the broadcast may have reached the
                network without being acknowledged; do not resubmit
        """
        pass

    @abstractmethod
    def wait_for_receipt(self, tx_hash: str, timeout: Optional[float] = None) -> TxReceipt:
        """
        Raises:
            ConfirmationTimeoutError: If the transaction is not mined in time
        """
        pass

    @abstractmethod
    def update_balance(
        self,
        sender: str,
        recipient: str,
        new_sender_cipher: Cipher,
        new_recipient_cipher: Cipher,
        timeout: Optional[float] = None,
    ) -> TxReceipt:
        """Oracle-only settlement of a transfer."""
        pass

    @abstractmethod
    def store_orders(
        self,
        app_order: AppOrder,
        workerpool_order: WorkerpoolOrder,
        dataset_order: Optional[DatasetOrder] = None,
        timeout: Optional[float] = None,
    ) -> TxReceipt:
        pass

    @abstractmethod
    def get_events(self, event_name: str, from_block: int = 0, **filters) -> List[LedgerEvent]:
        """
        List ledger events of one type, oldest first.

        Args:
            event_name: Mint, TransferRequested, BalanceUpdate or OrdersStored
            from_block: First block to include
            **filters: Event model fields to match (addresses case-insensitive)
        """
        pass

    @abstractmethod
    def events_in_receipt(self, event_name: str, receipt: TxReceipt) -> List[LedgerEvent]:
        pass

    def request_transfer(
        self,
        to: str,
        encrypted_amount: Cipher,
        escrow_wei: int = 0,
        timeout: Optional[float] = None,
    ) -> TxReceipt:
        """
        Submit a transfer request and wait for it to be mined.

        Raises:
            InvalidRecipientError: If ``to`` is the zero address
            SelfTransferError: If ``to`` is the calling account
            TransactionRevertedError: If the transaction failed on-chain
            ConfirmationTimeoutError: If confirmation did not arrive in time
        """
        validate_recipient(to, self.account)
        tx_hash = self.send_transfer(to, encrypted_amount, escrow_wei)
        receipt = self.wait_for_receipt(tx_hash, timeout)
        if not receipt.succeeded:
            raise TransactionRevertedError(
                f"Transfer request {tx_hash} reverted", tx_hash=tx_hash, receipt=receipt
            )
        return receipt

    def find_transfer_requested(
        self,
        receipt: TxReceipt,
        encrypted_amount: Optional[Cipher] = None,
    ) -> Optional[TransferRequestedEvent]:
        """
        Locate the TransferRequested event of a mined transfer.

        When ``encrypted_amount`` is given only an event carrying exactly
        those ciphertext bytes matches.
        """
        filters = {}
        if encrypted_amount is not None:
            filters["encrypted_amount"] = bytes(encrypted_amount)
        for event in self.events_in_receipt("TransferRequested", receipt):
            if event_matches(event, **filters):
                return event
        logger.debug("No matching TransferRequested event in %s", receipt.tx_hash)
        return None
