"""
Tests for the private-token command line interface.
"""
import json
import os
import stat
from decimal import Decimal
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from private_token_cli import main as cli
from private_token_sdk.cipher import decrypt, encrypt

from conftest import OWNER_PRIV_KEY, SENDER_PRIV_KEY, TEE_PRIV_KEY, TEST_APP


@pytest.fixture
def ledger_views(memory_ledger):
    """Route the CLI's ledger construction to the in-memory ledger."""
    def _ledger(profile, signer=None):
        if signer is None:
            return memory_ledger
        return memory_ledger.connect(signer.address)

    with patch.object(cli, "_ledger", side_effect=_ledger):
        yield memory_ledger


@pytest.fixture
def test_profile(profile):
    with patch.object(cli, "_profile", return_value=profile):
        yield profile


runner = CliRunner()


def run(*argv):
    result = runner.invoke(cli.app, list(argv))
    return result.exit_code, result.stdout, result.output


def test_version():
    code, out, _ = run("--version")

    assert code == 0
    assert out.startswith("private-token ")


def test_unknown_command():
    code, _, _ = run("bogus")

    assert code == 2


def test_keygen_to_stdout():
    code, out, _ = run("keygen")

    keys = json.loads(out)
    assert code == 0
    assert keys["privateKey"].startswith("0x")
    assert len(keys["publicKey"]) == 2 + 65 * 2


def test_keygen_to_file(tmp_path):
    target = tmp_path / "tee-key.json"

    code, out, _ = run("keygen", "--out", str(target))

    assert code == 0
    keys = json.loads(target.read_text())
    assert keys["publicKey"] in out
    assert keys["privateKey"] not in out
    if os.name == "posix":
        assert stat.S_IMODE(target.stat().st_mode) == 0o600


def test_encrypt_then_decrypt(tee_key, tee_public_key):
    code, out, _ = run("encrypt", "1.5", "--decimals", "18", "--public-key", tee_public_key.to_hex())
    ciphertext = out.strip()

    assert code == 0
    assert decrypt(tee_key, ciphertext) == 15 * 10**17

    code, out, _ = run("decrypt", ciphertext, "--decimals", "18", "--private-key", TEE_PRIV_KEY)
    assert code == 0
    assert Decimal(out.strip()) == Decimal("1.5")


def test_decrypt_reads_key_from_env(monkeypatch, tee_public_key):
    monkeypatch.setenv("TEE_PRIVATE_KEY", TEE_PRIV_KEY)
    ciphertext = encrypt(tee_public_key, 42).hex()

    code, out, _ = run("decrypt", ciphertext)

    assert code == 0
    assert out.strip() == "42"


def test_decrypt_without_key():
    code, _, err = run("decrypt", "0x01")

    assert code == 1
    assert "Error: Pass --private-key or set TEE_PRIVATE_KEY" in err


def test_decrypt_with_wrong_key(tee_public_key):
    ciphertext = encrypt(tee_public_key, 42).hex()

    code, _, err = run("decrypt", ciphertext, "--private-key", "0x" + "22" * 32)

    assert code == 1
    assert err.startswith("Error:")


def test_encrypt_rejects_bad_amount(tee_public_key):
    code, _, err = run("encrypt", "0.5", "--public-key", tee_public_key.to_hex())

    assert code == 1
    assert "decimal places" in err


def test_mint_and_balance(monkeypatch, ledger_views, test_profile, tee_key, sender_signer):
    monkeypatch.setenv("PRIVATE_KEY", OWNER_PRIV_KEY)

    code, out, _ = run("mint", sender_signer.address, "1000")

    assert code == 0
    assert json.loads(out)["blockNumber"] == 1
    assert decrypt(tee_key, ledger_views.read_balance(sender_signer.address)) == 1000 * 10**18

    code, out, _ = run("balance", sender_signer.address, "--private-key", TEE_PRIV_KEY)
    balance = json.loads(out)
    assert code == 0
    assert Decimal(balance["balance"]) == 1000
    assert balance["encryptedBalance"].startswith("0x")


def test_balance_without_key_shows_ciphertext_only(ledger_views, test_profile, recipient_signer):
    code, out, _ = run("balance", recipient_signer.address)

    assert code == 0
    assert json.loads(out) == {"account": recipient_signer.address, "encryptedBalance": "0x"}


def test_mint_requires_owner(monkeypatch, ledger_views, test_profile, sender_signer):
    monkeypatch.setenv("PRIVATE_KEY", SENDER_PRIV_KEY)

    code, _, err = run("mint", sender_signer.address, "1")

    assert code == 1
    assert "caller is not the owner" in err


def test_mint_requires_private_key(ledger_views, test_profile, sender_signer):
    code, _, err = run("mint", sender_signer.address, "1")

    assert code == 1
    assert "PRIVATE_KEY environment variable is required" in err


def test_transfer(monkeypatch, ledger_views, test_profile, market_api, recipient_signer):
    monkeypatch.setenv("PRIVATE_KEY", SENDER_PRIV_KEY)

    code, out, _ = run("transfer", recipient_signer.address, "100")

    result = json.loads(out)
    assert code == 0
    assert result["stage"] == "Settled"
    assert result["requestOrderHash"] == "0x" + "ee" * 32
    [event] = ledger_views.get_events("TransferRequested")
    assert event.tx_hash == result["txHash"]


def test_transfer_rejected(monkeypatch, ledger_views, test_profile, market_api, recipient_signer):
    monkeypatch.setenv("PRIVATE_KEY", SENDER_PRIV_KEY)

    code, _, err = run("transfer", recipient_signer.address, "100", "--escrow-wei", "1")

    assert code == 1
    assert "[Rejected]" in err


def test_transfer_wait_times_out(monkeypatch, ledger_views, test_profile, market_api, recipient_signer):
    monkeypatch.setenv("PRIVATE_KEY", SENDER_PRIV_KEY)

    code, _, err = run("transfer", recipient_signer.address, "1", "--wait", "--wait-timeout", "0")

    assert code == 1
    assert "No BalanceUpdate" in err


def test_transfer_needs_marketplace(monkeypatch):
    monkeypatch.setenv("PRIVATE_KEY", SENDER_PRIV_KEY)

    code, _, err = run("transfer", "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC", "1")

    assert code == 1
    assert "ARBITRUM_SEPOLIA_MARKET_URL" in err


def test_offers(test_profile, market_api):
    code, out, _ = run("offers")

    offers = json.loads(out)
    assert code == 0
    assert offers["app"]["address"] == TEST_APP
    assert offers["workerpool"]["price"] == 100


def test_store_orders(monkeypatch, ledger_views, test_profile, market_api):
    monkeypatch.setenv("PRIVATE_KEY", OWNER_PRIV_KEY)

    code, out, _ = run("store-orders")

    assert code == 0
    assert json.loads(out)["app"] == TEST_APP
    assert ledger_views.state.stored_orders["app"].app == TEST_APP
