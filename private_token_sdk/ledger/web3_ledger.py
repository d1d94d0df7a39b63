"""
Web3 binding of the PrivateERC20 ledger contract.
"""
import logging
from typing import Any, Callable, List, Optional, Tuple, TypeVar

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.logs import DISCARD
from web3.types import TxReceipt as Web3TxReceipt

from ..cipher import PublicKey, parse_public_key
from ..config import validate_service_url
from ..constants import DEFAULT_GAS_LIMIT
from ..exceptions import (
    ConfirmationTimeoutError, InvalidRecipientError, NetworkError, OperationTimeoutError,
    PrivateTokenError, SelfTransferError, SigningError, TransactionRevertedError,
)
from ..models import AppOrder, DatasetOrder, LedgerEvent, TxReceipt, WorkerpoolOrder
from ..signer import Signer
from ..utils import checksum_address, to_hex, validate_recipient
from .abi import PRIVATE_ERC20_ABI, app_order_tuple, dataset_order_tuple, workerpool_order_tuple
from .base import Cipher, EncryptedLedger
from .events import decode_event, event_matches

T = TypeVar("T")

# floor for per-call HTTP timeouts carved out of a nearly spent budget
MIN_RPC_TIMEOUT = 0.01


class Web3Ledger(EncryptedLedger):
    """
    Ledger client for a deployed PrivateERC20 contract.

    Read calls need only an RPC endpoint; write calls need a signer.
    """

    def __init__(
        self,
        rpc_url: str,
        ledger_address: str,
        signer: Optional[Signer] = None,
        timeout: int = 30,
        confirmation_timeout: float = 120.0,
        poll_interval: float = 0.1,
        gas_limit: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the ledger client

        Args:
            rpc_url: Ethereum RPC endpoint URL
            ledger_address: PrivateERC20 contract address
            signer: Signer for write calls (optional for read-only use)
            timeout: Timeout for individual RPC requests in seconds
            confirmation_timeout: Default time to wait for a receipt
            poll_interval: How often to poll for receipts, in seconds
            gas_limit: Fixed gas limit (estimated per call when None)
            logger: Optional logger instance

        Raises:
            ValueError: If the RPC URL is not https (unless localhost)
            InvalidRecipientError: If the ledger address is malformed
        """
        self.rpc_url = validate_service_url("rpc_url", rpc_url)
        self.signer = signer
        self.timeout = timeout
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self.gas_limit = gas_limit
        self.logger = logger or logging.getLogger(__name__)

        self.w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": timeout}))
        self._address = checksum_address(ledger_address)
        self.contract = self.w3.eth.contract(address=self._address, abi=PRIVATE_ERC20_ABI)

    @property
    def address(self) -> str:
        return self._address

    @property
    def account(self) -> str:
        """
        Raises:
            ValueError: If no signer is available
        """
        if self.signer is None:
            raise ValueError("No signer available")
        return self.signer.address

    # -- transport -----------------------------------------------------------

    def _bounded(self, timeout: Optional[float] = None) -> Tuple[Web3, Any]:
        """Web3 instance and contract whose HTTP requests end within ``timeout``."""
        if timeout is None or timeout >= self.timeout:
            return self.w3, self.contract
        w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": max(timeout, MIN_RPC_TIMEOUT)}))
        return w3, w3.eth.contract(address=self._address, abi=PRIVATE_ERC20_ABI)

    def _rpc(self, operation: str, call: Callable[[], T]) -> T:
        """Run an RPC call and map transport failures to SDK errors."""
        try:
            return call()
        except ContractLogicError as e:
            raise self._map_revert(operation, e)
        except requests.Timeout as e:
            self.logger.error(f"RPC timeout during {operation}: {e}")
            raise OperationTimeoutError(f"RPC timeout during {operation}: {e}")
        except (requests.RequestException, ConnectionError) as e:
            self.logger.error(f"RPC unreachable during {operation}: {e}")
            raise NetworkError(f"RPC unreachable during {operation}: {e}")

    def _map_revert(self, operation: str, error: ContractLogicError) -> PrivateTokenError:
        reason = str(error)
        lowered = reason.lower()
        self.logger.warning(f"{operation} reverted: {reason}")
        if "zero address" in lowered:
            return InvalidRecipientError(reason)
        if "to self" in lowered:
            return SelfTransferError(reason)
        return TransactionRevertedError(f"{operation} reverted: {reason}")

    # -- reads ---------------------------------------------------------------

    def encryption_public_key(self, timeout: Optional[float] = None) -> PublicKey:
        _, contract = self._bounded(timeout)
        raw = self._rpc("encryptionPublicKey", contract.functions.encryptionPublicKey().call)
        return parse_public_key(bytes(raw))

    def decimals(self) -> int:
        return int(self._rpc("decimals", self.contract.functions.decimals().call))

    def read_balance(self, account: str) -> bytes:
        account = checksum_address(account)
        return bytes(self._rpc("balanceOf", self.contract.functions.balanceOf(account).call))

    def block_number(self) -> int:
        return int(self._rpc("blockNumber", lambda: self.w3.eth.block_number))

    # -- writes --------------------------------------------------------------

    def _send(
        self,
        operation: str,
        build: Callable[[Any], Any],
        value: int = 0,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Estimate, build, sign and broadcast a contract call.

        Args:
            operation: Contract function name, for logs and errors
            build: Returns the contract function call for a contract instance
            value: Wei attached to the call
            timeout: Upper bound for each RPC request

        Returns:
            Transaction hash

        Raises:
            ConfirmationTimeoutError: If the broadcast request itself failed
                midway; the transaction may still be mined
        """
        from_address = self.account
        w3, contract = self._bounded(timeout)
        function = build(contract)
        nonce = self._rpc("getTransactionCount", lambda: w3.eth.get_transaction_count(from_address))

        gas = self.gas_limit
        if gas is None:
            try:
                gas = function.estimate_gas({"from": from_address, "value": value})
                # Add 10% buffer to gas estimate
                gas = int(gas * 1.1)
                self.logger.debug(f"Estimated gas for {operation}: {gas}")
            except ContractLogicError as e:
                raise self._map_revert(operation, e)
            except requests.Timeout as e:
                raise OperationTimeoutError(f"RPC timeout during {operation} gas estimation: {e}")
            except (requests.RequestException, ConnectionError) as e:
                raise NetworkError(f"RPC unreachable during {operation}: {e}")
            except Exception as e:
                # Fallback to default gas if estimation fails
                gas = DEFAULT_GAS_LIMIT
                self.logger.warning(f"Gas estimation failed, using default: {gas}. Error: {e}")

        tx_params = {
            "from": from_address,
            "nonce": nonce,
            "gas": gas,
            "value": value,
            "gasPrice": self._rpc("gasPrice", lambda: w3.eth.gas_price),
        }
        tx = function.build_transaction(tx_params)

        try:
            signed_tx = self.signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise SigningError(f"Failed to sign {operation} transaction: {e}")

        tx_hash_hex = to_hex(signed_tx.hash)
        try:
            self._rpc("sendRawTransaction", lambda: w3.eth.send_raw_transaction(signed_tx.raw_transaction))
        except (OperationTimeoutError, NetworkError) as e:
            raise ConfirmationTimeoutError(
                f"Broadcast of {operation} transaction {tx_hash_hex} did not complete; it may still be mined: {e}",
                tx_hash=tx_hash_hex,
            )
        self.logger.info(f"{operation} transaction sent: {tx_hash_hex}")
        return tx_hash_hex

    def _transact(self, operation: str, build: Callable[[Any], Any], timeout: Optional[float] = None) -> TxReceipt:
        tx_hash = self._send(operation, build)
        receipt = self.wait_for_receipt(tx_hash, timeout)
        if not receipt.succeeded:
            raise TransactionRevertedError(f"{operation} transaction {tx_hash} reverted", tx_hash=tx_hash, receipt=receipt)
        return receipt

    def wait_for_receipt(self, tx_hash: str, timeout: Optional[float] = None) -> TxReceipt:
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=timeout if timeout is not None else self.confirmation_timeout,
                poll_latency=self.poll_interval,
            )
        except TimeExhausted:
            raise ConfirmationTimeoutError(
                f"Transaction {tx_hash} not confirmed in time; its outcome is unknown", tx_hash=tx_hash
            )
        except (requests.RequestException, ConnectionError) as e:
            # already broadcast, so the outcome is just as unknown as on timeout
            raise ConfirmationTimeoutError(
                f"Lost RPC connection while waiting for {tx_hash}: {e}", tx_hash=tx_hash
            )
        return self._convert_receipt(receipt)

    def mint(self, to: str, encrypted_amount: Cipher, timeout: Optional[float] = None) -> TxReceipt:
        to = validate_recipient(to)
        data = bytes(encrypted_amount)
        return self._transact("mint", lambda contract: contract.functions.mint(to, data), timeout=timeout)

    def send_transfer(
        self, to: str, encrypted_amount: Cipher, escrow_wei: int = 0, timeout: Optional[float] = None
    ) -> str:
        to = validate_recipient(to, self.account)
        data = bytes(encrypted_amount)
        return self._send(
            "transfer", lambda contract: contract.functions.transfer(to, data), value=escrow_wei, timeout=timeout
        )

    def update_balance(
        self,
        sender: str,
        recipient: str,
        new_sender_cipher: Cipher,
        new_recipient_cipher: Cipher,
        timeout: Optional[float] = None,
    ) -> TxReceipt:
        args = (
            checksum_address(sender),
            checksum_address(recipient),
            bytes(new_sender_cipher),
            bytes(new_recipient_cipher),
        )
        return self._transact("updateBalance", lambda contract: contract.functions.updateBalance(*args), timeout=timeout)

    def store_orders(
        self,
        app_order: AppOrder,
        workerpool_order: WorkerpoolOrder,
        dataset_order: Optional[DatasetOrder] = None,
        timeout: Optional[float] = None,
    ) -> TxReceipt:
        args = (
            app_order_tuple(app_order),
            workerpool_order_tuple(workerpool_order),
            dataset_order_tuple(dataset_order or DatasetOrder.empty()),
        )
        return self._transact("storeOrders", lambda contract: contract.functions.storeOrders(*args), timeout=timeout)

    # -- events --------------------------------------------------------------

    def get_events(self, event_name: str, from_block: int = 0, **filters) -> List[LedgerEvent]:
        event = getattr(self.contract.events, event_name)
        logs = self._rpc(f"get_logs({event_name})", lambda: event.get_logs(from_block=from_block))
        decoded = [decode_event(log) for log in logs]
        return [e for e in decoded if event_matches(e, **filters)]

    def events_in_receipt(self, event_name: str, receipt: TxReceipt) -> List[LedgerEvent]:
        event = getattr(self.contract.events, event_name)
        processed = event().process_receipt({"logs": receipt.logs}, errors=DISCARD)
        return [decode_event(log) for log in processed]

    def _convert_receipt(self, web3_receipt: Web3TxReceipt) -> TxReceipt:
        """
        Convert Web3 receipt to our TxReceipt model
        """
        receipt_dict = dict(web3_receipt)

        # Convert bytes to hex strings
        for key, value in list(receipt_dict.items()):
            if isinstance(value, bytes):
                receipt_dict[key] = to_hex(value)

        return TxReceipt.model_validate(receipt_dict)
