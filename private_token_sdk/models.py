"""
Data models for the private token SDK.
"""
from enum import Enum
from typing import Annotated, Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, Field

from .constants import ZERO_ADDRESS, ZERO_BYTES32


def _to_int(value: Any) -> int:
    """Normalize marketplace/chain numbers to Python ints, refusing floats."""
    if isinstance(value, bool):
        raise ValueError("boolean is not a valid integer field")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text, 16)
        if text.isdigit():
            return int(text)
    raise ValueError(f"expected an integer or a decimal string, got {value!r}")


BigInt = Annotated[int, BeforeValidator(_to_int), Field(ge=0)]


class TransferStage(str, Enum):
    """States of the confidential transfer state machine."""
    IDLE = "Idle"
    AMOUNT_ENCRYPTED = "AmountEncrypted"
    ORDERS_RESOLVED = "OrdersResolved"
    ORDER_SIGNED = "OrderSigned"
    TRANSFER_SUBMITTED = "TransferSubmitted"
    SETTLED = "Settled"
    REJECTED = "Rejected"


class _Order(BaseModel):
    class Config:
        frozen = True
        extra = "ignore"


class AppOrder(_Order):
    """Signed offer to run an application."""
    app: str
    appprice: BigInt
    volume: BigInt
    tag: str = ZERO_BYTES32
    datasetrestrict: str = ZERO_ADDRESS
    workerpoolrestrict: str = ZERO_ADDRESS
    requesterrestrict: str = ZERO_ADDRESS
    salt: str = ZERO_BYTES32
    sign: str = "0x"

    @property
    def resource(self) -> str:
        return self.app

    @property
    def price(self) -> int:
        return self.appprice


class WorkerpoolOrder(_Order):
    """Signed offer of compute capacity by a worker pool."""
    workerpool: str
    workerpoolprice: BigInt
    volume: BigInt
    tag: str = ZERO_BYTES32
    category: BigInt = 0
    trust: BigInt = 0
    apprestrict: str = ZERO_ADDRESS
    datasetrestrict: str = ZERO_ADDRESS
    requesterrestrict: str = ZERO_ADDRESS
    salt: str = ZERO_BYTES32
    sign: str = "0x"

    @property
    def resource(self) -> str:
        return self.workerpool

    @property
    def price(self) -> int:
        return self.workerpoolprice


class DatasetOrder(_Order):
    """Signed offer of a dataset. Transfers use the empty order."""
    dataset: str = ZERO_ADDRESS
    datasetprice: BigInt = 0
    volume: BigInt = 0
    tag: str = ZERO_BYTES32
    apprestrict: str = ZERO_ADDRESS
    workerpoolrestrict: str = ZERO_ADDRESS
    requesterrestrict: str = ZERO_ADDRESS
    salt: str = ZERO_BYTES32
    sign: str = "0x"

    @classmethod
    def empty(cls) -> "DatasetOrder":
        return cls()

    @property
    def resource(self) -> str:
        return self.dataset

    @property
    def price(self) -> int:
        return self.datasetprice


OfferT = TypeVar("OfferT")


class OrderbookEntry(BaseModel, Generic[OfferT]):
    """One published offer as listed by the marketplace."""
    order_hash: str = Field(..., alias="orderHash")
    order: OfferT
    remaining: BigInt = 0
    signer: Optional[str] = None
    status: Optional[str] = None

    class Config:
        populate_by_name = True
        extra = "ignore"


class Orderbook(BaseModel, Generic[OfferT]):
    """Marketplace listing: total count plus the current page of entries."""
    count: int = 0
    orders: List[OrderbookEntry[OfferT]] = Field(default_factory=list)

    class Config:
        extra = "ignore"


class UnsignedRequestOrder(_Order):
    """Compute request tying an app and a worker pool to a transfer payload."""
    app: str
    appmaxprice: BigInt
    dataset: str = ZERO_ADDRESS
    datasetmaxprice: BigInt = 0
    workerpool: str
    workerpoolmaxprice: BigInt
    requester: str
    volume: BigInt = 1
    tag: str = ZERO_BYTES32
    category: BigInt = 0
    trust: BigInt = 0
    beneficiary: str
    callback: str
    params: str


class RequestOrder(UnsignedRequestOrder):
    """Request order bound to a salt and signed by the requester."""
    salt: str
    sign: str


class TransferPayload(BaseModel):
    """
    Opaque parameters handed to the TEE application.

    Rendered as ``"<0xcipher> <0xsender> <0xrecipient>"``, all lower-case.
    """
    encrypted_amount: bytes
    sender: str
    recipient: str

    class Config:
        frozen = True

    def to_params(self) -> str:
        return " ".join([
            "0x" + self.encrypted_amount.hex(),
            self.sender.lower(),
            self.recipient.lower(),
        ])

    @classmethod
    def from_params(cls, params: str) -> "TransferPayload":
        parts = params.split()
        if len(parts) != 3:
            raise ValueError(f"expected 3 whitespace separated fields, got {len(parts)}")
        cipher_hex = parts[0][2:] if parts[0].lower().startswith("0x") else parts[0]
        return cls(
            encrypted_amount=bytes.fromhex(cipher_hex),
            sender=parts[1].lower(),
            recipient=parts[2].lower(),
        )


class TransferIntent(BaseModel):
    """A transfer as submitted by the caller."""
    sender: str
    recipient: str
    encrypted_amount: bytes
    escrow_wei: BigInt = 0

    class Config:
        frozen = True


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    status: int
    gas_used: int = Field(..., alias="gasUsed")
    from_address: str = Field(..., alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    logs: List[Any] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class LedgerEvent(BaseModel):
    """Base for events emitted by the encrypted ledger."""
    block_number: int = 0
    tx_hash: Optional[str] = None

    class Config:
        frozen = True


class MintEvent(LedgerEvent):
    to: str
    encrypted_amount: bytes


class TransferRequestedEvent(LedgerEvent):
    sender: str
    recipient: str
    encrypted_amount: bytes
    escrow_wei: int = 0


class BalanceUpdateEvent(LedgerEvent):
    sender: str
    recipient: str
    new_sender_cipher: bytes
    new_recipient_cipher: bytes


class OrdersStoredEvent(LedgerEvent):
    app: str
    workerpool: str
    dataset: str


EVENT_MODELS: Dict[str, type] = {
    "Mint": MintEvent,
    "TransferRequested": TransferRequestedEvent,
    "BalanceUpdate": BalanceUpdateEvent,
    "OrdersStored": OrdersStoredEvent,
}
