"""
Chain configuration for the private token SDK.

Core components never look configuration up by themselves: callers build a
:class:`ChainProfile` once (usually through :class:`NetworkConfig`) and pass
it in explicitly.
"""
import json
import logging
import os
import urllib.parse
import importlib.resources
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import DEFAULT_ESCROW_WEI
from .models import BigInt

logger = logging.getLogger(__name__)


def validate_service_url(url_name: str, url: str) -> str:
    """
    Require https unless the URL points to the local machine.

    Raises:
        ValueError: For non-https remote URLs
    """
    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname or ""
    is_local = host in ("localhost", "127.0.0.1")
    if parsed.scheme != "https" and not is_local:
        raise ValueError(f"{url_name} must use https:// for security (got: {parsed.scheme}://)")
    return url.rstrip("/")


class ChainProfile(BaseModel):
    """Everything the SDK needs to know about one deployment."""
    name: str
    chain_id: int
    rpc_url: str
    ledger_address: Optional[str] = None
    hub_address: Optional[str] = None
    app_address: Optional[str] = None
    workerpool_address: Optional[str] = None
    market_url: Optional[str] = None
    market_api_key: Optional[str] = Field(default=None, repr=False)
    escrow_wei: BigInt = DEFAULT_ESCROW_WEI
    confirmation_timeout: float = 120.0
    poll_interval: float = 0.5
    publish_orders: bool = True

    class Config:
        frozen = True

    @field_validator("rpc_url")
    @classmethod
    def _check_rpc_url(cls, value: str) -> str:
        return validate_service_url("rpc_url", value)

    @field_validator("market_url")
    @classmethod
    def _check_market_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return validate_service_url("market_url", value)

    def missing(self, *fields: str) -> List[str]:
        """Names of the given optional fields that are not configured."""
        return [name for name in fields if getattr(self, name) is None]

    def require(self, *fields: str) -> None:
        """
        Raises:
            ValueError: If any of the fields is not configured
        """
        missing = self.missing(*fields)
        if missing:
            prefix = NetworkConfig.env_prefix(self.name)
            hints = ", ".join(f"{prefix}_{name.upper()}" for name in missing)
            raise ValueError(
                f"Chain profile '{self.name}' is missing {', '.join(missing)} "
                f"(set it explicitly or through {hints})"
            )


class NetworkConfig:
    """Loads bundled network definitions and builds chain profiles."""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    # profile field -> key in networks.json
    _FIELDS = {
        "rpc_url": "rpc",
        "ledger_address": "ledger",
        "hub_address": "hub",
        "app_address": "app",
        "workerpool_address": "workerpool",
        "market_url": "market",
        "market_api_key": "marketApiKey",
        "escrow_wei": "escrowWei",
    }

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load network configurations from the bundled networks.json.

        Returns:
            Dictionary of network name -> network definition
        """
        if cls._networks_cache is not None:
            return cls._networks_cache

        resource = importlib.resources.files("private_token_sdk").joinpath("networks.json")
        with resource.open("r", encoding="utf-8") as f:
            cls._networks_cache = json.load(f)
        logger.debug("Loaded %d network definitions", len(cls._networks_cache))
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Raises:
            ValueError: If the network is unknown
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network '{network}'. Available networks: {available}")
        return networks[network]

    @staticmethod
    def env_prefix(network: str) -> str:
        return network.upper().replace("-", "_")

    @classmethod
    def _lookup(cls, network: str, field: str, override: Optional[Any] = None) -> Optional[Any]:
        # explicit override > environment > bundled value
        if override is not None:
            return override
        env_value = os.environ.get(f"{cls.env_prefix(network)}_{field.upper()}")
        if env_value:
            return env_value
        return cls.get_network(network).get(cls._FIELDS[field])

    @classmethod
    def get_rpc_url(cls, network: str, override: Optional[str] = None) -> str:
        return cls._lookup(network, "rpc_url", override)

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        return int(cls.get_network(network)["chainId"])

    @classmethod
    def get_ledger_address(cls, network: str, override: Optional[str] = None) -> Optional[str]:
        return cls._lookup(network, "ledger_address", override)

    @classmethod
    def get_hub_address(cls, network: str, override: Optional[str] = None) -> Optional[str]:
        return cls._lookup(network, "hub_address", override)

    @classmethod
    def get_market_url(cls, network: str, override: Optional[str] = None) -> Optional[str]:
        return cls._lookup(network, "market_url", override)

    @classmethod
    def get_profile(cls, network: str, **overrides: Any) -> ChainProfile:
        """
        Build a chain profile for a bundled network.

        Args:
            network: Network name from networks.json
            **overrides: ChainProfile fields taking precedence over the
                environment and the bundled values

        Returns:
            ChainProfile
        """
        values: Dict[str, Any] = {
            "name": network,
            "chain_id": cls.get_chain_id(network),
        }
        for field in cls._FIELDS:
            value = cls._lookup(network, field, overrides.pop(field, None))
            if value is not None:
                values[field] = value
        values.update(overrides)
        return ChainProfile(**values)
