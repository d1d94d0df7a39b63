"""
Decoding and matching of ledger events.
"""
from typing import Any, Dict, Mapping

from web3 import Web3

from ..models import EVENT_MODELS, LedgerEvent

# ABI argument name -> model field, per event
EVENT_ARGUMENTS: Dict[str, Dict[str, str]] = {
    "Mint": {
        "to": "to",
        "encryptedAmount": "encrypted_amount",
    },
    "TransferRequested": {
        "from": "sender",
        "to": "recipient",
        "encryptedAmount": "encrypted_amount",
        "escrow": "escrow_wei",
    },
    "BalanceUpdate": {
        "sender": "sender",
        "recipient": "recipient",
        "newSenderBalance": "new_sender_cipher",
        "newRecipientBalance": "new_recipient_cipher",
    },
    "OrdersStored": {
        "app": "app",
        "workerpool": "workerpool",
        "dataset": "dataset",
    },
}


def decode_event(event: Mapping[str, Any]) -> LedgerEvent:
    """
    Convert a web3 event (as returned by ``get_logs``/``process_receipt``)
    into the matching ledger event model.

    Raises:
        ValueError: If the event is not emitted by the ledger
    """
    name = event["event"]
    if name not in EVENT_ARGUMENTS:
        raise ValueError(f"Unknown ledger event: {name}")

    args = event["args"]
    fields = {field: args[arg] for arg, field in EVENT_ARGUMENTS[name].items()}
    tx_hash = event.get("transactionHash")
    if isinstance(tx_hash, (bytes, bytearray)):
        tx_hash = Web3.to_hex(tx_hash)
    return EVENT_MODELS[name](
        block_number=event.get("blockNumber") or 0,
        tx_hash=tx_hash,
        **fields,
    )


def event_matches(event: LedgerEvent, **filters: Any) -> bool:
    """Field equality check, case-insensitive for strings (addresses)."""
    for field, expected in filters.items():
        actual = getattr(event, field)
        if isinstance(actual, str) and isinstance(expected, str):
            if actual.lower() != expected.lower():
                return False
        elif actual != expected:
            return False
    return True
