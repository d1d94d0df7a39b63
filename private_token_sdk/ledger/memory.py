"""
In-process simulation of the PrivateERC20 ledger.

Used for tests, examples and dry runs. The simulation enforces the same
rules as the contract (owner-only mint, oracle-only settlement, zero and
self recipient reverts) and records events and receipts the way a chain
would, without any network access.
"""
import logging
import threading
from itertools import count
from typing import Dict, List, Optional

from web3 import Web3

from ..cipher import PublicKey, parse_public_key
from ..cipher.keys import PublicKeyLike
from ..constants import ZERO_ADDRESS
from ..exceptions import ConfirmationTimeoutError, InvalidRecipientError, TransactionRevertedError
from ..models import (
    EVENT_MODELS, AppOrder, BalanceUpdateEvent, DatasetOrder, LedgerEvent, MintEvent, OrdersStoredEvent,
    TransferRequestedEvent, TxReceipt, WorkerpoolOrder,
)
from ..utils import checksum_address, is_zero_address, same_address, validate_recipient
from .base import Cipher, EncryptedLedger
from .events import event_matches

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
_GAS_USED = 21000


class LedgerState:
    """Storage shared by every account connected to one simulated ledger."""

    def __init__(
        self,
        encryption_public_key: PublicKeyLike,
        owner: str,
        oracle: Optional[str] = None,
        decimals: int = 18,
        min_escrow_wei: int = 0,
        address: str = DEFAULT_LEDGER_ADDRESS,
    ):
        self.lock = threading.RLock()
        self.encryption_public_key = parse_public_key(encryption_public_key)
        self.owner = checksum_address(owner)
        self.oracle = checksum_address(oracle) if oracle else self.owner
        self.decimals = decimals
        self.min_escrow_wei = min_escrow_wei
        self.address = checksum_address(address)

        self.balances: Dict[str, bytes] = {}
        self.events: List[LedgerEvent] = []
        self.receipts: Dict[str, TxReceipt] = {}
        self.pending: Dict[str, TxReceipt] = {}
        self.stored_orders: Optional[Dict[str, object]] = None
        self.block_number = 0
        self.auto_mine = True
        self._nonces = count()

    def next_tx_hash(self, account: str, operation: str) -> str:
        return Web3.to_hex(Web3.keccak(text=f"{account}:{operation}:{next(self._nonces)}"))

    def mine_pending(self) -> List[TxReceipt]:
        """Mine every transaction held back while ``auto_mine`` was off."""
        with self.lock:
            mined = list(self.pending.values())
            self.receipts.update(self.pending)
            self.pending.clear()
            return mined


class InMemoryLedger(EncryptedLedger):
    """
    Ledger client bound to one account of a simulated ledger.

    Example:
        >>> ledger = InMemoryLedger.deploy(public_key, owner=deployer)
        >>> alice_view = ledger.connect(alice)
    """

    def __init__(self, state: LedgerState, account: str):
        self.state = state
        self._account = checksum_address(account)

    @classmethod
    def deploy(cls, encryption_public_key: PublicKeyLike, owner: str, **kwargs) -> "InMemoryLedger":
        """Create a fresh ledger and return the owner's client."""
        return cls(LedgerState(encryption_public_key, owner, **kwargs), owner)

    def connect(self, account: str) -> "InMemoryLedger":
        """Client for another account over the same ledger state."""
        return InMemoryLedger(self.state, account)

    @property
    def address(self) -> str:
        return self.state.address

    @property
    def account(self) -> str:
        return self._account

    def encryption_public_key(self, timeout: Optional[float] = None) -> PublicKey:
        return self.state.encryption_public_key

    def decimals(self) -> int:
        return self.state.decimals

    def read_balance(self, account: str) -> bytes:
        with self.state.lock:
            return self.state.balances.get(checksum_address(account), b"")

    def block_number(self) -> int:
        return self.state.block_number

    # -- transactions --------------------------------------------------------

    def _execute(self, operation: str, events: List[LedgerEvent], status: int = 1) -> str:
        """Mine a transaction in a new block; caller holds the state lock."""
        state = self.state
        tx_hash = state.next_tx_hash(self._account, operation)
        state.block_number += 1
        logs = []
        if status == 1:
            logs = [e.model_copy(update={"block_number": state.block_number, "tx_hash": tx_hash}) for e in events]
            state.events.extend(logs)
        receipt = TxReceipt(
            tx_hash=tx_hash,
            block_number=state.block_number,
            block_hash=Web3.to_hex(Web3.keccak(text=f"block:{state.block_number}")),
            status=status,
            gas_used=_GAS_USED,
            from_address=self._account,
            to_address=state.address,
            logs=logs,
        )
        if state.auto_mine:
            state.receipts[tx_hash] = receipt
        else:
            state.pending[tx_hash] = receipt
        logger.debug("%s %s in block %d (status %d)", operation, tx_hash, state.block_number, status)
        return tx_hash

    def _revert(self, operation: str, reason: str) -> TransactionRevertedError:
        logger.warning("%s reverted: %s", operation, reason)
        return TransactionRevertedError(f"{operation} reverted: {reason}")

    def _mined(self, tx_hash: str) -> TxReceipt:
        receipt = self.wait_for_receipt(tx_hash)
        if not receipt.succeeded:
            raise TransactionRevertedError(f"Transaction {tx_hash} reverted", tx_hash=tx_hash, receipt=receipt)
        return receipt

    def mint(self, to: str, encrypted_amount: Cipher, timeout: Optional[float] = None) -> TxReceipt:
        to = checksum_address(to)
        with self.state.lock:
            if not same_address(self._account, self.state.owner):
                raise self._revert("mint", "caller is not the owner")
            if is_zero_address(to):
                raise InvalidRecipientError("Cannot mint to zero address")
            self.state.balances[to] = bytes(encrypted_amount)
            tx_hash = self._execute("mint", [MintEvent(to=to, encrypted_amount=bytes(encrypted_amount))])
        return self._mined(tx_hash)

    def send_transfer(
        self, to: str, encrypted_amount: Cipher, escrow_wei: int = 0, timeout: Optional[float] = None
    ) -> str:
        to = validate_recipient(to, self._account)
        with self.state.lock:
            if escrow_wei < self.state.min_escrow_wei:
                # mined but failed, as an on-chain require on msg.value would
                return self._execute("transfer", [], status=0)
            event = TransferRequestedEvent(
                sender=self._account,
                recipient=to,
                encrypted_amount=bytes(encrypted_amount),
                escrow_wei=escrow_wei,
            )
            return self._execute("transfer", [event])

    def wait_for_receipt(self, tx_hash: str, timeout: Optional[float] = None) -> TxReceipt:
        with self.state.lock:
            receipt = self.state.receipts.get(tx_hash)
        if receipt is None:
            # nothing mines while the caller waits, so waiting longer cannot help
            raise ConfirmationTimeoutError(f"Transaction {tx_hash} not confirmed", tx_hash=tx_hash)
        return receipt

    def update_balance(
        self,
        sender: str,
        recipient: str,
        new_sender_cipher: Cipher,
        new_recipient_cipher: Cipher,
        timeout: Optional[float] = None,
    ) -> TxReceipt:
        sender = checksum_address(sender)
        recipient = checksum_address(recipient)
        with self.state.lock:
            if not same_address(self._account, self.state.oracle):
                raise self._revert("updateBalance", "caller is not the oracle")
            self.state.balances[sender] = bytes(new_sender_cipher)
            self.state.balances[recipient] = bytes(new_recipient_cipher)
            event = BalanceUpdateEvent(
                sender=sender,
                recipient=recipient,
                new_sender_cipher=bytes(new_sender_cipher),
                new_recipient_cipher=bytes(new_recipient_cipher),
            )
            tx_hash = self._execute("updateBalance", [event])
        return self._mined(tx_hash)

    def store_orders(
        self,
        app_order: AppOrder,
        workerpool_order: WorkerpoolOrder,
        dataset_order: Optional[DatasetOrder] = None,
        timeout: Optional[float] = None,
    ) -> TxReceipt:
        dataset_order = dataset_order or DatasetOrder.empty()
        with self.state.lock:
            if not same_address(self._account, self.state.owner):
                raise self._revert("storeOrders", "caller is not the owner")
            self.state.stored_orders = {
                "app": app_order,
                "workerpool": workerpool_order,
                "dataset": dataset_order,
            }
            event = OrdersStoredEvent(
                app=checksum_address(app_order.app),
                workerpool=checksum_address(workerpool_order.workerpool),
                dataset=checksum_address(dataset_order.dataset or ZERO_ADDRESS),
            )
            tx_hash = self._execute("storeOrders", [event])
        return self._mined(tx_hash)

    # -- events --------------------------------------------------------------

    def get_events(self, event_name: str, from_block: int = 0, **filters) -> List[LedgerEvent]:
        model = _event_model(event_name)
        with self.state.lock:
            events = list(self.state.events)
        return [
            e for e in events
            if isinstance(e, model) and e.block_number >= from_block and event_matches(e, **filters)
        ]

    def events_in_receipt(self, event_name: str, receipt: TxReceipt) -> List[LedgerEvent]:
        model = _event_model(event_name)
        return [log for log in receipt.logs if isinstance(log, model)]


def _event_model(event_name: str) -> type:
    try:
        return EVENT_MODELS[event_name]
    except KeyError:
        raise ValueError(f"Unknown ledger event: {event_name}")
