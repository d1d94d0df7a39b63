#!/usr/bin/env python3
"""
Walk through the ledger lifecycle on the in-memory simulation.

No network access is needed: the oracle step that a TEE task performs
on-chain is played by hand with the TEE key.
"""
from private_token_sdk import (
    InMemoryLedger,
    LocalSigner,
    decrypt_balance,
    encrypt,
    from_base_units,
    generate_keypair,
    to_base_units,
)

# Hardhat development accounts
OWNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ALICE_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
BOB_KEY = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"


def show_balances(ledger, tee_key, *accounts):
    for name, address in accounts:
        amount = decrypt_balance(tee_key, ledger.read_balance(address))
        print(f"  {name}: {from_base_units(amount, ledger.decimals())}")


def main():
    tee_key, tee_public_key = generate_keypair()
    owner, alice, bob = LocalSigner(OWNER_KEY), LocalSigner(ALICE_KEY), LocalSigner(BOB_KEY)
    accounts = [("alice", alice.address), ("bob", bob.address)]

    ledger = InMemoryLedger.deploy(tee_public_key, owner=owner.address)
    public_key = ledger.encryption_public_key()

    # 1. Mint
    ledger.mint(alice.address, encrypt(public_key, to_base_units("1000", 18)))
    print("After mint:")
    show_balances(ledger, tee_key, *accounts)

    # 2. Alice requests a transfer; only the ciphertext is visible on the ledger
    amount = to_base_units("100", 18)
    receipt = ledger.connect(alice.address).request_transfer(bob.address, encrypt(public_key, amount))
    event = ledger.find_transfer_requested(receipt)
    print(f"TransferRequested in block {event.block_number}: 0x{event.encrypted_amount[:16].hex()}…")

    # 3. The oracle recomputes both balances inside the enclave and writes them back
    sender_balance = decrypt_balance(tee_key, ledger.read_balance(alice.address))
    recipient_balance = decrypt_balance(tee_key, ledger.read_balance(bob.address))
    transferred = decrypt_balance(tee_key, event.encrypted_amount)
    ledger.update_balance(
        alice.address,
        bob.address,
        encrypt(public_key, sender_balance - transferred),
        encrypt(public_key, recipient_balance + transferred),
    )
    print("After settlement:")
    show_balances(ledger, tee_key, *accounts)


if __name__ == "__main__":
    main()
