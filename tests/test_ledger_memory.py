"""
Tests for the in-process ledger simulation.
"""
import pytest

from private_token_sdk.cipher import decrypt_balance, encrypt
from private_token_sdk.constants import ZERO_ADDRESS
from private_token_sdk.exceptions import (
    ConfirmationTimeoutError,
    InvalidRecipientError,
    SelfTransferError,
    TransactionRevertedError,
)
from private_token_sdk.models import BalanceUpdateEvent, MintEvent, TransferRequestedEvent

from conftest import TEST_ESCROW_WEI, make_app_order, make_workerpool_order

TOKENS = 10**18


def test_read_surface(memory_ledger, tee_public_key):
    assert memory_ledger.encryption_public_key() == tee_public_key
    assert memory_ledger.decimals() == 18
    assert memory_ledger.block_number() == 0


def test_never_minted_balance_is_empty(memory_ledger, tee_key, recipient_signer):
    cipher = memory_ledger.read_balance(recipient_signer.address)

    assert cipher == b""
    assert decrypt_balance(tee_key, cipher) == 0


def test_mint_stores_ciphertext(memory_ledger, tee_key, tee_public_key, sender_signer):
    encrypted = encrypt(tee_public_key, 1000 * TOKENS)

    receipt = memory_ledger.mint(sender_signer.address, encrypted)

    assert receipt.succeeded
    assert memory_ledger.read_balance(sender_signer.address) == encrypted
    assert decrypt_balance(tee_key, memory_ledger.read_balance(sender_signer.address)) == 1000 * TOKENS

    events = memory_ledger.events_in_receipt("Mint", receipt)
    assert len(events) == 1
    assert isinstance(events[0], MintEvent)
    assert events[0].encrypted_amount == encrypted
    assert events[0].block_number == receipt.block_number


def test_mint_to_zero_address(memory_ledger, tee_public_key):
    with pytest.raises(InvalidRecipientError, match="Cannot mint to zero address"):
        memory_ledger.mint(ZERO_ADDRESS, encrypt(tee_public_key, 100))

    assert memory_ledger.get_events("Mint") == []


def test_mint_is_owner_only(sender_ledger, sender_signer, tee_public_key):
    with pytest.raises(TransactionRevertedError, match="not the owner"):
        sender_ledger.mint(sender_signer.address, encrypt(tee_public_key, 100))


def test_transfer_emits_transfer_requested(memory_ledger, sender_ledger, tee_public_key, sender_signer, recipient_signer):
    memory_ledger.mint(sender_signer.address, encrypt(tee_public_key, 1000 * TOKENS))
    encrypted = encrypt(tee_public_key, 100 * TOKENS)

    receipt = sender_ledger.request_transfer(recipient_signer.address, encrypted, TEST_ESCROW_WEI)

    event = sender_ledger.find_transfer_requested(receipt, encrypted)
    assert isinstance(event, TransferRequestedEvent)
    assert event.sender == sender_signer.address
    assert event.recipient == recipient_signer.address
    assert event.encrypted_amount == encrypted
    assert event.escrow_wei == TEST_ESCROW_WEI
    assert event.tx_hash == receipt.tx_hash


def test_transfer_does_not_touch_balances(memory_ledger, sender_ledger, tee_public_key, sender_signer, recipient_signer):
    minted = encrypt(tee_public_key, 1000)
    memory_ledger.mint(sender_signer.address, minted)

    sender_ledger.request_transfer(recipient_signer.address, encrypt(tee_public_key, 100), TEST_ESCROW_WEI)

    assert sender_ledger.read_balance(sender_signer.address) == minted
    assert sender_ledger.read_balance(recipient_signer.address) == b""


def test_transfer_to_self(memory_ledger, sender_ledger, tee_public_key, sender_signer):
    memory_ledger.mint(sender_signer.address, encrypt(tee_public_key, 1000))

    with pytest.raises(SelfTransferError, match="Cannot transfer to self"):
        sender_ledger.request_transfer(sender_signer.address.lower(), encrypt(tee_public_key, 100), TEST_ESCROW_WEI)

    assert sender_ledger.get_events("TransferRequested") == []


def test_transfer_to_zero_address(sender_ledger, tee_public_key):
    with pytest.raises(InvalidRecipientError):
        sender_ledger.send_transfer(ZERO_ADDRESS, encrypt(tee_public_key, 1), TEST_ESCROW_WEI)


def test_insufficient_escrow_is_mined_as_failure(sender_ledger, tee_public_key, recipient_signer):
    tx_hash = sender_ledger.send_transfer(recipient_signer.address, encrypt(tee_public_key, 1), 0)

    receipt = sender_ledger.wait_for_receipt(tx_hash)
    assert receipt.status == 0
    assert receipt.logs == []

    with pytest.raises(TransactionRevertedError) as exc_info:
        sender_ledger.request_transfer(recipient_signer.address, encrypt(tee_public_key, 1), 0)
    assert exc_info.value.receipt.status == 0
    assert exc_info.value.tx_hash is not None


def test_unmined_transfer_times_out(memory_ledger, sender_ledger, tee_public_key, recipient_signer):
    memory_ledger.state.auto_mine = False
    tx_hash = sender_ledger.send_transfer(recipient_signer.address, encrypt(tee_public_key, 1), TEST_ESCROW_WEI)

    with pytest.raises(ConfirmationTimeoutError) as exc_info:
        sender_ledger.wait_for_receipt(tx_hash, timeout=1)
    assert exc_info.value.tx_hash == tx_hash

    mined = memory_ledger.state.mine_pending()
    assert [r.tx_hash for r in mined] == [tx_hash]
    assert sender_ledger.wait_for_receipt(tx_hash).succeeded


def test_update_balances(memory_ledger, tee_key, tee_public_key, sender_signer, recipient_signer):
    """Oracle writes the balances a TEE computed for a 100-token transfer."""
    sender, recipient = sender_signer.address, recipient_signer.address
    memory_ledger.mint(sender, encrypt(tee_public_key, 1000 * TOKENS))

    receipt = memory_ledger.update_balance(
        sender,
        recipient,
        encrypt(tee_public_key, 900 * TOKENS),
        encrypt(tee_public_key, 100 * TOKENS),
    )

    assert decrypt_balance(tee_key, memory_ledger.read_balance(sender)) == 900 * TOKENS
    assert decrypt_balance(tee_key, memory_ledger.read_balance(recipient)) == 100 * TOKENS
    [event] = memory_ledger.events_in_receipt("BalanceUpdate", receipt)
    assert isinstance(event, BalanceUpdateEvent)
    assert event.sender == sender
    assert event.recipient == recipient


def test_update_balance_is_oracle_only(sender_ledger, tee_public_key, sender_signer, recipient_signer):
    with pytest.raises(TransactionRevertedError, match="not the oracle"):
        sender_ledger.update_balance(
            sender_signer.address,
            recipient_signer.address,
            encrypt(tee_public_key, 0),
            encrypt(tee_public_key, 1),
        )


def test_separate_oracle(tee_public_key, owner_signer, provider_signer, sender_signer, recipient_signer):
    from private_token_sdk.ledger import InMemoryLedger

    ledger = InMemoryLedger.deploy(tee_public_key, owner=owner_signer.address, oracle=provider_signer.address)

    with pytest.raises(TransactionRevertedError):
        ledger.update_balance(sender_signer.address, recipient_signer.address, b"\x01", b"\x02")
    oracle = ledger.connect(provider_signer.address)
    assert oracle.update_balance(sender_signer.address, recipient_signer.address, b"\x01", b"\x02").succeeded


def test_balances_are_opaque(memory_ledger, tee_key, tee_public_key, sender_signer, recipient_signer):
    memory_ledger.mint(sender_signer.address, encrypt(tee_public_key, 500 * TOKENS))
    memory_ledger.mint(recipient_signer.address, encrypt(tee_public_key, 500 * TOKENS))

    first = memory_ledger.read_balance(sender_signer.address)
    second = memory_ledger.read_balance(recipient_signer.address)

    # same amount, different ciphertexts
    assert first != second
    assert decrypt_balance(tee_key, first) == decrypt_balance(tee_key, second)


def test_store_orders(memory_ledger):
    app_order = make_app_order()
    workerpool_order = make_workerpool_order()

    receipt = memory_ledger.store_orders(app_order, workerpool_order)

    [event] = memory_ledger.events_in_receipt("OrdersStored", receipt)
    assert event.app.lower() == app_order.app
    assert event.workerpool.lower() == workerpool_order.workerpool
    assert event.dataset == ZERO_ADDRESS
    assert memory_ledger.state.stored_orders["app"] == app_order


def test_store_orders_is_owner_only(sender_ledger):
    with pytest.raises(TransactionRevertedError):
        sender_ledger.store_orders(make_app_order(), make_workerpool_order())


def test_get_events_filters(memory_ledger, sender_ledger, tee_public_key, sender_signer, recipient_signer, provider_signer):
    sender_ledger.request_transfer(recipient_signer.address, encrypt(tee_public_key, 1), TEST_ESCROW_WEI)
    start = memory_ledger.block_number()
    sender_ledger.request_transfer(provider_signer.address, encrypt(tee_public_key, 2), TEST_ESCROW_WEI)

    assert len(memory_ledger.get_events("TransferRequested")) == 2
    to_recipient = memory_ledger.get_events("TransferRequested", recipient=recipient_signer.address.lower())
    assert [e.recipient for e in to_recipient] == [recipient_signer.address]
    later = memory_ledger.get_events("TransferRequested", from_block=start + 1)
    assert [e.recipient for e in later] == [provider_signer.address]


def test_unknown_event_name(memory_ledger):
    with pytest.raises(ValueError, match="Unknown ledger event"):
        memory_ledger.get_events("Approval")
