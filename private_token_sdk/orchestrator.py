"""
Transfer orchestration: encrypt, resolve offers, sign, publish, submit.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ._rate_limited_log import rate_limited_log
from .cipher import encrypt
from .config import ChainProfile
from .exceptions import (
    ConfirmationTimeoutError, NetworkError, OperationTimeoutError, PrivateTokenError,
    SigningError, TransactionRevertedError,
)
from .ledger import EncryptedLedger
from .marketplace import MarketplaceClient, OrderDomain, OrderResolver, RequestOrderBuilder
from .models import (
    BalanceUpdateEvent, RequestOrder, TransferIntent, TransferPayload, TransferRequestedEvent,
    TransferStage, TxReceipt,
)
from .signer import Signer
from .utils import Deadline, same_address, validate_amount, validate_recipient


@dataclass
class TransferResult:
    """Outcome of an accepted transfer request."""
    stage: TransferStage
    intent: TransferIntent
    request_order: RequestOrder
    tx_hash: str
    receipt: TxReceipt
    order_hash: Optional[str] = None
    event: Optional[TransferRequestedEvent] = None


class TransferOrchestrator:
    """
    Drive a confidential transfer through its stages::

        Idle -> AmountEncrypted -> OrdersResolved -> OrderSigned
             -> TransferSubmitted -> Settled | Rejected

    ``Settled`` certifies that the ledger accepted the transfer request, not
    that balances moved; use :meth:`wait_for_settlement` for the latter.

    Nothing is retried: resubmitting an accepted request would pay the
    escrow twice. Every raised :class:`PrivateTokenError` carries the stage
    it was raised in.
    """

    def __init__(
        self,
        profile: ChainProfile,
        ledger: EncryptedLedger,
        marketplace: MarketplaceClient,
        signer: Signer,
        resolver: Optional[OrderResolver] = None,
        builder: Optional[RequestOrderBuilder] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            profile: Chain profile; needs app, workerpool and hub addresses
            ledger: Ledger client signing as ``signer``
            marketplace: Marketplace client
            signer: Requester of the compute order and sender of the transfer
            resolver: Offer resolver (built from the profile by default)
            builder: Request order builder (built from the profile by default)
            logger: Optional logger instance
            sleep: Sleep function used between settlement polls

        Raises:
            ValueError: If the profile is incomplete or the ledger signs as
                another account
        """
        profile.require("app_address", "workerpool_address", "hub_address")
        if not same_address(ledger.account, signer.address):
            raise ValueError(f"Ledger account {ledger.account} does not match signer {signer.address}")

        self.profile = profile
        self.ledger = ledger
        self.marketplace = marketplace
        self.signer = signer
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

        domain = OrderDomain(chain_id=profile.chain_id, verifying_contract=profile.hub_address)
        self.resolver = resolver or OrderResolver(marketplace, domain, logger=self.logger)
        self.builder = builder or RequestOrderBuilder(domain, ledger.address, logger=self.logger)

        self._sender_locks: Dict[str, threading.Lock] = {}
        self._sender_locks_guard = threading.Lock()

    @property
    def sender(self) -> str:
        return self.signer.address

    def _sender_lock(self, sender: str) -> threading.Lock:
        with self._sender_locks_guard:
            return self._sender_locks.setdefault(sender.lower(), threading.Lock())

    def transfer(
        self,
        recipient: str,
        amount: int,
        escrow_wei: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> TransferResult:
        """
        Run one transfer to completion of the ledger request.

        Args:
            recipient: Recipient address
            amount: Amount in the ledger's smallest unit
            escrow_wei: Payment attached to the request (profile default if None)
            timeout: Overall budget in seconds for every network call

        Returns:
            TransferResult in stage ``Settled``

        Raises:
            ValueError: If the amount is not a uint256
            InvalidRecipientError, SelfTransferError: Invalid recipient (Idle)
            NoOfferAvailableError, NetworkError: Offer resolution failed
            OperationTimeoutError: Budget spent before anything was submitted
            SigningError: Order could not be signed or does not verify
            TransactionRevertedError: Request mined with failure (Rejected)
            ConfirmationTimeoutError: Request submitted, outcome unknown
        """
        validate_amount(amount)
        with self._sender_lock(self.sender):
            return self._run(recipient, amount, escrow_wei, Deadline(timeout))

    def _run(self, recipient: str, amount: int, escrow_wei: Optional[int], deadline: Deadline) -> TransferResult:
        stage = TransferStage.IDLE
        sender = self.sender
        if escrow_wei is None:
            escrow_wei = self.profile.escrow_wei
        try:
            recipient = validate_recipient(recipient, sender, stage=stage)

            deadline.check("reading the encryption key", stage)
            public_key = self.ledger.encryption_public_key(timeout=deadline.remaining)
            deadline.check("encrypting the amount", stage)
            encrypted_amount = encrypt(public_key, amount)
            intent = TransferIntent(
                sender=sender, recipient=recipient, encrypted_amount=encrypted_amount, escrow_wei=escrow_wei
            )
            stage = self._enter(TransferStage.AMOUNT_ENCRYPTED, f"cipher 0x{encrypted_amount[:8].hex()}…")

            deadline.check("resolving the app order", stage)
            app_order = self.resolver.fetch_app_order(
                self.profile.app_address, timeout=deadline.bound(self.marketplace.timeout)
            )
            deadline.check("resolving the workerpool order", stage)
            workerpool_order = self.resolver.fetch_workerpool_order(
                self.profile.workerpool_address, timeout=deadline.bound(self.marketplace.timeout)
            )
            stage = self._enter(TransferStage.ORDERS_RESOLVED, f"app {app_order.app}, workerpool {workerpool_order.workerpool}")

            payload = TransferPayload(encrypted_amount=encrypted_amount, sender=sender, recipient=recipient)
            unsigned = self.builder.build_request_order(app_order, workerpool_order, sender, payload)
            request_order = self.builder.sign(unsigned, self.signer)
            if not self.builder.verify(request_order):
                raise SigningError("Request order signature does not recover to the requester")
            stage = self._enter(TransferStage.ORDER_SIGNED, f"salt {request_order.salt[:10]}…")

            order_hash = None
            if self.profile.publish_orders:
                deadline.check("publishing the request order", stage)
                order_hash = self.marketplace.publish_request_order(
                    request_order, timeout=deadline.bound(self.marketplace.timeout)
                )

            deadline.check("submitting the transfer", stage)
            try:
                tx_hash = self.ledger.send_transfer(
                    recipient, encrypted_amount, escrow_wei, timeout=deadline.remaining
                )
            except ConfirmationTimeoutError as e:
                # the broadcast may have landed
                e.stage = self._enter(TransferStage.TRANSFER_SUBMITTED, f"{e.tx_hash} (unacknowledged)")
                raise
            stage = self._enter(TransferStage.TRANSFER_SUBMITTED, tx_hash)

            receipt = self.ledger.wait_for_receipt(tx_hash, deadline.bound(self.profile.confirmation_timeout))
            if not receipt.succeeded:
                stage = self._enter(TransferStage.REJECTED, tx_hash)
                raise TransactionRevertedError(
                    f"Transfer request {tx_hash} reverted", tx_hash=tx_hash, receipt=receipt, stage=stage
                )
            event = self.ledger.find_transfer_requested(receipt, encrypted_amount)
            stage = self._enter(TransferStage.SETTLED, tx_hash)

            return TransferResult(
                stage=stage,
                intent=intent,
                request_order=request_order,
                tx_hash=tx_hash,
                receipt=receipt,
                order_hash=order_hash,
                event=event,
            )
        except PrivateTokenError as e:
            if e.stage is None:
                e.stage = stage
            self.logger.error(f"Transfer failed: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error during transfer at {stage.value}: {e}")
            raise PrivateTokenError(f"Unexpected error during transfer: {e}", stage=stage) from e

    def _enter(self, stage: TransferStage, detail: str) -> TransferStage:
        self.logger.info(f"Transfer stage {stage.value}: {detail}")
        return stage

    def wait_for_settlement(
        self,
        result: TransferResult,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> BalanceUpdateEvent:
        """
        Wait for the oracle's BalanceUpdate for a transfer's account pair.

        Matching is by (sender, recipient) at or after the transfer's block;
        the ledger carries no transfer id.

        Raises:
            ConfirmationTimeoutError: If no update was observed in time
        """
        deadline = Deadline(timeout if timeout is not None else self.profile.confirmation_timeout)
        interval = poll_interval if poll_interval is not None else self.profile.poll_interval
        intent = result.intent

        while True:
            try:
                events = self.ledger.get_events(
                    "BalanceUpdate",
                    from_block=result.receipt.block_number,
                    sender=intent.sender,
                    recipient=intent.recipient,
                )
            except (NetworkError, OperationTimeoutError) as e:
                rate_limited_log(f"Polling BalanceUpdate failed: {e}", interval=30, logger_instance=self.logger)
                events = []
            if events:
                self.logger.info(f"Transfer {result.tx_hash} settled in block {events[0].block_number}")
                return events[0]
            if deadline.expired:
                raise ConfirmationTimeoutError(
                    f"No BalanceUpdate for transfer {result.tx_hash} within {deadline.timeout}s",
                    tx_hash=result.tx_hash,
                    stage=TransferStage.SETTLED,
                )
            self._sleep(deadline.bound(interval))
