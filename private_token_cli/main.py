"""
private-token command line interface.

Signing commands read the sender key from the PRIVATE_KEY environment
variable; decryption reads the TEE key from TEE_PRIVATE_KEY unless
``--private-key`` is given.
"""
import json
import logging
import os
from contextlib import contextmanager
from typing import Optional

import typer

from private_token_sdk import (
    ChainProfile,
    LocalSigner,
    MarketplaceClient,
    NetworkConfig,
    OrderDomain,
    OrderResolver,
    PrivateTokenError,
    TransferOrchestrator,
    Web3Ledger,
    __version__,
    decrypt_balance,
    encrypt,
    from_base_units,
    generate_keypair,
    to_base_units,
)
from private_token_sdk.ledger import EncryptedLedger
from private_token_sdk.utils import to_hex

DEFAULT_NETWORK = "arbitrum-sepolia"

app = typer.Typer(
    name="private-token",
    help="Confidential token transfers over an encrypted ledger",
    no_args_is_help=True,
)

NETWORK_OPTION = typer.Option(DEFAULT_NETWORK, "--network", help="Network name from networks.json")
RPC_URL_OPTION = typer.Option(None, "--rpc-url", help="Override the RPC endpoint")
LEDGER_OPTION = typer.Option(None, "--ledger", help="Override the ledger contract address")
TEE_KEY_OPTION = typer.Option(None, "--private-key", help="TEE private key (default: $TEE_PRIVATE_KEY)")


def _echo_json(data) -> None:
    typer.echo(json.dumps(data, indent=2))


@contextmanager
def _handle_errors():
    """Report SDK and validation errors as a one-line message and exit 1."""
    try:
        yield
    except (PrivateTokenError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _profile(network: str, rpc_url: Optional[str] = None, ledger: Optional[str] = None) -> ChainProfile:
    overrides = {}
    if rpc_url:
        overrides["rpc_url"] = rpc_url
    if ledger:
        overrides["ledger_address"] = ledger
    return NetworkConfig.get_profile(network, **overrides)


def _signer() -> LocalSigner:
    key = os.environ.get("PRIVATE_KEY")
    if not key:
        raise ValueError("PRIVATE_KEY environment variable is required")
    return LocalSigner(key)


def _tee_key(private_key: Optional[str]) -> str:
    key = private_key or os.environ.get("TEE_PRIVATE_KEY")
    if not key:
        raise ValueError("Pass --private-key or set TEE_PRIVATE_KEY")
    return key


def _ledger(profile: ChainProfile, signer: Optional[LocalSigner] = None) -> EncryptedLedger:
    profile.require("ledger_address")
    return Web3Ledger(
        profile.rpc_url,
        profile.ledger_address,
        signer=signer,
        confirmation_timeout=profile.confirmation_timeout,
        poll_interval=profile.poll_interval,
    )


def _marketplace(profile: ChainProfile) -> MarketplaceClient:
    profile.require("market_url")
    return MarketplaceClient(profile.market_url, profile.chain_id, api_key=profile.market_api_key)


def _resolver(profile: ChainProfile) -> OrderResolver:
    domain = None
    if profile.hub_address:
        domain = OrderDomain(chain_id=profile.chain_id, verifying_contract=profile.hub_address)
    return OrderResolver(_marketplace(profile), domain)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"private-token {__version__}")
        raise typer.Exit()


@app.callback()
def cli(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING)


@app.command()
def keygen(out: Optional[str] = typer.Option(None, "--out", help="Write the keypair to this JSON file")):
    """Generate a ledger encryption keypair."""
    private_key, public_key = generate_keypair()
    keys = {"privateKey": private_key.to_hex(), "publicKey": public_key.to_hex()}
    if out:
        with open(out, "w", encoding="utf-8") as f:
            json.dump(keys, f, indent=2)
        os.chmod(out, 0o600)
        typer.echo(f"Keypair written to {out}")
        typer.echo(f"Public key: {keys['publicKey']}")
    else:
        _echo_json(keys)


@app.command("encrypt")
def encrypt_amount(
    amount: str = typer.Argument(..., help="Amount to encrypt"),
    public_key: Optional[str] = typer.Option(None, "--public-key", help="Encryption public key (default: read from the ledger)"),
    decimals: int = typer.Option(0, "--decimals", help="Scale the amount by 10**decimals"),
    network: str = NETWORK_OPTION,
    rpc_url: Optional[str] = RPC_URL_OPTION,
    ledger: Optional[str] = LEDGER_OPTION,
):
    """Encrypt an amount for the ledger."""
    with _handle_errors():
        key = public_key or _ledger(_profile(network, rpc_url, ledger)).encryption_public_key()
        typer.echo(to_hex(encrypt(key, to_base_units(amount, decimals))))


@app.command()
def decrypt(
    ciphertext: str = typer.Argument(..., help="Hex ciphertext"),
    decimals: int = typer.Option(0, "--decimals", help="Render in whole tokens"),
    private_key: Optional[str] = TEE_KEY_OPTION,
):
    """Decrypt an encrypted amount with the TEE key."""
    with _handle_errors():
        amount = decrypt_balance(_tee_key(private_key), ciphertext)
        typer.echo(format(from_base_units(amount, decimals), "f") if decimals else amount)


@app.command()
def balance(
    account: str = typer.Argument(..., help="Account address"),
    private_key: Optional[str] = TEE_KEY_OPTION,
    network: str = NETWORK_OPTION,
    rpc_url: Optional[str] = RPC_URL_OPTION,
    ledger: Optional[str] = LEDGER_OPTION,
):
    """Read an encrypted balance, decrypting it when a TEE key is available."""
    with _handle_errors():
        client = _ledger(_profile(network, rpc_url, ledger))
        cipher = client.read_balance(account)
        result = {"account": account, "encryptedBalance": to_hex(cipher)}
        if private_key or os.environ.get("TEE_PRIVATE_KEY"):
            amount = decrypt_balance(_tee_key(private_key), cipher)
            result["balance"] = format(from_base_units(amount, client.decimals()), "f")
        _echo_json(result)


@app.command()
def mint(
    to: str = typer.Argument(..., help="Recipient address"),
    amount: str = typer.Argument(..., help="Amount in whole tokens"),
    network: str = NETWORK_OPTION,
    rpc_url: Optional[str] = RPC_URL_OPTION,
    ledger: Optional[str] = LEDGER_OPTION,
):
    """Mint tokens (ledger owner only)."""
    with _handle_errors():
        client = _ledger(_profile(network, rpc_url, ledger), _signer())
        value = to_base_units(amount, client.decimals())
        receipt = client.mint(to, encrypt(client.encryption_public_key(), value))
        _echo_json({"txHash": receipt.tx_hash, "blockNumber": receipt.block_number, "to": to})


@app.command()
def transfer(
    to: str = typer.Argument(..., help="Recipient address"),
    amount: str = typer.Argument(..., help="Amount in whole tokens"),
    escrow_wei: Optional[int] = typer.Option(None, "--escrow-wei", help="Escrow attached to the request"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Budget in seconds before submission"),
    wait: bool = typer.Option(False, "--wait", help="Wait for the balance update"),
    wait_timeout: Optional[float] = typer.Option(None, "--wait-timeout", help="Seconds to wait for the balance update"),
    network: str = NETWORK_OPTION,
    rpc_url: Optional[str] = RPC_URL_OPTION,
    ledger: Optional[str] = LEDGER_OPTION,
):
    """Request a confidential transfer."""
    with _handle_errors():
        profile = _profile(network, rpc_url, ledger)
        signer = _signer()
        client = _ledger(profile, signer)
        orchestrator = TransferOrchestrator(profile, client, _marketplace(profile), signer)

        value = to_base_units(amount, client.decimals())
        result = orchestrator.transfer(to, value, escrow_wei=escrow_wei, timeout=timeout)
        output = {
            "stage": result.stage.value,
            "txHash": result.tx_hash,
            "blockNumber": result.receipt.block_number,
            "requestOrderHash": result.order_hash,
        }
        if wait:
            update = orchestrator.wait_for_settlement(result, timeout=wait_timeout)
            output["balanceUpdateTx"] = update.tx_hash
        _echo_json(output)


@app.command()
def store_orders(
    network: str = NETWORK_OPTION,
    rpc_url: Optional[str] = RPC_URL_OPTION,
    ledger: Optional[str] = LEDGER_OPTION,
):
    """Store the current marketplace offers on the ledger (owner only)."""
    with _handle_errors():
        profile = _profile(network, rpc_url, ledger)
        profile.require("app_address", "workerpool_address")
        resolver = _resolver(profile)
        app_order = resolver.fetch_app_order(profile.app_address)
        workerpool_order = resolver.fetch_workerpool_order(profile.workerpool_address)
        receipt = _ledger(profile, _signer()).store_orders(app_order, workerpool_order)
        _echo_json({"txHash": receipt.tx_hash, "app": app_order.app, "workerpool": workerpool_order.workerpool})


@app.command()
def offers(network: str = NETWORK_OPTION):
    """Show the offers a transfer would use."""
    with _handle_errors():
        profile = _profile(network)
        profile.require("app_address", "workerpool_address")
        resolver = _resolver(profile)
        app_order = resolver.fetch_app_order(profile.app_address)
        workerpool_order = resolver.fetch_workerpool_order(profile.workerpool_address)
        _echo_json({
            "app": {"address": app_order.app, "price": app_order.price, "tag": app_order.tag},
            "workerpool": {
                "address": workerpool_order.workerpool,
                "price": workerpool_order.price,
                "category": workerpool_order.category,
            },
        })


if __name__ == "__main__":
    app()
