"""
Pytest fixtures for the private token SDK tests.
"""
import os
import time

import pytest
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from private_token_sdk import NetworkConfig
from private_token_sdk._rate_limited_log import reset_rate_limits
from private_token_sdk.cipher import PrivateKey
from private_token_sdk.config import ChainProfile
from private_token_sdk.constants import ZERO_BYTES32
from private_token_sdk.ledger import InMemoryLedger
from private_token_sdk.marketplace import MarketplaceClient, OrderDomain, signable_order
from private_token_sdk.models import AppOrder, WorkerpoolOrder
from private_token_sdk.signer import LocalSigner

# Constants for testing
TEST_CHAIN_ID = 421614
TEST_RPC_URL = "https://rpc.example.com"
TEST_MARKET_URL = "https://market.example.com"
TEST_LEDGER = "0x1234567890123456789012345678901234567890"
TEST_HUB = "0x3eca1b216a7df1c7689aeb259ffb83adfb894e7f"
TEST_APP = "0xbb21e58a72327a5fda6f5d3673f1fab6607aeab1"
TEST_WORKERPOOL = "0xb967057a21dc6a66a29721d96b8aa7454b7c383f"
TEST_ESCROW_WEI = 10**16

# Well-known development keys
OWNER_PRIV_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SENDER_PRIV_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
RECIPIENT_PRIV_KEY = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"
PROVIDER_PRIV_KEY = "0x7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6"
TEE_PRIV_KEY = "0x" + "11" * 32


@pytest.fixture(autouse=True)
def _patch_http_provider(monkeypatch):
    """
    Stub every Web3 HTTP call so no DNS / network traffic is triggered.
    Works for all tests because it is autouse.
    """
    def _dummy(self, method, params=None, _=None):      # signature match
        if method in {"eth_chainId"}:
            return {"jsonrpc": "2.0", "id": 1, "result": hex(TEST_CHAIN_ID)}
        if method in {"eth_gasPrice"}:
            return {"jsonrpc": "2.0", "id": 1, "result": "0x3b9aca00"}  # 1 gwei
        # everything else – return something harmless
        return {"jsonrpc": "2.0", "id": 1, "result": "0x0"}

    monkeypatch.setattr(HTTPProvider, "make_request", _dummy, raising=True)


@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Drop cached networks and any chain overrides from the environment."""
    for name in list(os.environ):
        if name.startswith(("ARBITRUM_SEPOLIA_", "SEPOLIA_", "LOCALHOST_", "TESTNET_")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("PRIVATE_KEY", raising=False)
    monkeypatch.delenv("TEE_PRIVATE_KEY", raising=False)
    NetworkConfig._networks_cache = None
    reset_rate_limits()
    yield
    NetworkConfig._networks_cache = None


@pytest.fixture
def tee_key():
    return PrivateKey.from_hex(TEE_PRIV_KEY)


@pytest.fixture
def tee_public_key(tee_key):
    return tee_key.public_key


@pytest.fixture
def owner_signer():
    return LocalSigner(OWNER_PRIV_KEY)


@pytest.fixture
def sender_signer():
    return LocalSigner(SENDER_PRIV_KEY)


@pytest.fixture
def recipient_signer():
    return LocalSigner(RECIPIENT_PRIV_KEY)


@pytest.fixture
def provider_signer():
    """Owner of the app and workerpool offers."""
    return LocalSigner(PROVIDER_PRIV_KEY)


@pytest.fixture
def memory_ledger(tee_public_key, owner_signer):
    """Ledger deployed by the owner, who is also the oracle."""
    return InMemoryLedger.deploy(tee_public_key, owner=owner_signer.address, min_escrow_wei=TEST_ESCROW_WEI)


@pytest.fixture
def sender_ledger(memory_ledger, sender_signer):
    return memory_ledger.connect(sender_signer.address)


@pytest.fixture
def domain():
    return OrderDomain(chain_id=TEST_CHAIN_ID, verifying_contract=TEST_HUB)


@pytest.fixture
def profile(memory_ledger):
    return ChainProfile(
        name="testnet",
        chain_id=TEST_CHAIN_ID,
        rpc_url=TEST_RPC_URL,
        ledger_address=memory_ledger.address,
        hub_address=TEST_HUB,
        app_address=TEST_APP,
        workerpool_address=TEST_WORKERPOOL,
        market_url=TEST_MARKET_URL,
        escrow_wei=TEST_ESCROW_WEI,
        confirmation_timeout=5,
        poll_interval=0.01,
    )


@pytest.fixture
def marketplace():
    return MarketplaceClient(TEST_MARKET_URL, TEST_CHAIN_ID, timeout=5)


def sign_offer(order, signer, domain):
    """Sign an app/workerpool offer the way its provider would."""
    signed = signer.sign_message(signable_order(order, domain))
    return order.model_copy(update={"sign": Web3.to_hex(signed.signature)})


def make_app_order(**overrides) -> AppOrder:
    fields = {
        "app": TEST_APP,
        "appprice": 0,
        "volume": 1000,
        "tag": "0x0000000000000000000000000000000000000000000000000000000000000003",
        "salt": "0x" + "ab" * 32,
    }
    fields.update(overrides)
    return AppOrder(**fields)


def make_workerpool_order(**overrides) -> WorkerpoolOrder:
    fields = {
        "workerpool": TEST_WORKERPOOL,
        "workerpoolprice": 100,
        "volume": 50,
        "tag": ZERO_BYTES32,
        "category": 0,
        "trust": 1,
        "salt": "0x" + "cd" * 32,
    }
    fields.update(overrides)
    return WorkerpoolOrder(**fields)


def orderbook_json(*entries):
    """Marketplace response body for a list of (order, remaining, signer) tuples."""
    orders = []
    for index, (order, remaining, signer) in enumerate(entries):
        orders.append({
            "orderHash": "0x" + f"{index + 1:064x}",
            "order": order.model_dump(),
            "remaining": remaining,
            "signer": signer,
        })
    return {"ok": True, "count": len(orders), "orders": orders}


@pytest.fixture
def app_orderbook(provider_signer, domain):
    order = sign_offer(make_app_order(), provider_signer, domain)
    return orderbook_json((order, 1000, provider_signer.address))


@pytest.fixture
def workerpool_orderbook(provider_signer, domain):
    order = sign_offer(make_workerpool_order(), provider_signer, domain)
    return orderbook_json((order, 50, provider_signer.address))


@pytest.fixture
def market_api(requests_mock, app_orderbook, workerpool_orderbook):
    """Marketplace with one signed offer of each kind that accepts request orders."""
    requests_mock.get(f"{TEST_MARKET_URL}/apporders", json=app_orderbook)
    requests_mock.get(f"{TEST_MARKET_URL}/workerpoolorders", json=workerpool_orderbook)
    requests_mock.post(
        f"{TEST_MARKET_URL}/requestorders",
        json={"ok": True, "published": {"orderHash": "0x" + "ee" * 32}},
    )
    return requests_mock
