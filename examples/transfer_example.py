#!/usr/bin/env python3
"""
Example of a confidential transfer on a configured network.
"""
import os

from private_token_sdk import (
    MarketplaceClient,
    NetworkConfig,
    LocalSigner,
    PrivateTokenError,
    TransferOrchestrator,
    Web3Ledger,
    to_base_units,
)


def main():
    """
    Demonstrate a transfer through the TransferOrchestrator.

    This example shows how to:
    1. Build a chain profile from networks.json and the environment
    2. Submit an encrypted transfer request
    3. Wait for the oracle to settle the balances
    """
    # Read configuration from environment
    NETWORK = os.environ.get("NETWORK", "arbitrum-sepolia")
    PRIVATE_KEY = os.environ.get("PRIVATE_KEY")
    RECIPIENT = os.environ.get("RECIPIENT")
    AMOUNT = os.environ.get("AMOUNT", "1")

    # Verify configuration
    if not PRIVATE_KEY:
        print("ERROR: PRIVATE_KEY environment variable is required")
        return

    if not RECIPIENT:
        print("ERROR: RECIPIENT environment variable is required")
        return

    # Hub and marketplace come from <NETWORK>_HUB_ADDRESS / <NETWORK>_MARKET_URL
    profile = NetworkConfig.get_profile(NETWORK)
    signer = LocalSigner(PRIVATE_KEY)
    print(f"Sender address: {signer.address}")

    ledger = Web3Ledger(
        profile.rpc_url,
        profile.ledger_address,
        signer=signer,
        confirmation_timeout=profile.confirmation_timeout,
    )
    marketplace = MarketplaceClient(profile.market_url, profile.chain_id, api_key=profile.market_api_key)
    orchestrator = TransferOrchestrator(profile, ledger, marketplace, signer)

    try:
        amount = to_base_units(AMOUNT, ledger.decimals())
        result = orchestrator.transfer(RECIPIENT, amount, timeout=60)

        print("Transfer requested successfully!")
        print(f"Transaction hash: {result.tx_hash}")
        print(f"Block number: {result.receipt.block_number}")
        print(f"Request order: {result.order_hash}")

        update = orchestrator.wait_for_settlement(result, timeout=300)
        print(f"Balances updated in block {update.block_number}")

    except PrivateTokenError as e:
        stage = e.stage.value if e.stage else "n/a"
        print(f"Transfer failed at stage {stage}: {e}")


if __name__ == "__main__":
    main()
