"""
HTTP client for the compute marketplace orderbook API.
"""
import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import validate_service_url
from ..exceptions import NetworkError, OperationTimeoutError
from ..models import AppOrder, Orderbook, RequestOrder, WorkerpoolOrder
from ..utils import checksum_address


class MarketplaceClient:
    """
    Read published app/workerpool offers and publish request orders.

    Endpoints::

        GET  /apporders?chainId=&app=
        GET  /workerpoolorders?chainId=&workerpool=[&category=]
        POST /requestorders?chainId=
    """

    def __init__(
        self,
        market_url: str,
        chain_id: int,
        api_key: Optional[str] = None,
        timeout: int = 30,
        retry_count: int = 3,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the marketplace client

        Args:
            market_url: Base URL of the marketplace API
            chain_id: Chain the orders belong to
            api_key: Optional API key sent in the Authorization header
            timeout: Request timeout in seconds
            retry_count: Retries for connection errors and 5xx responses
            logger: Optional logger instance

        Raises:
            ValueError: If the URL is not https (unless localhost)
        """
        self.market_url = validate_service_url("market_url", market_url)
        self.chain_id = chain_id
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        # Setup HTTP session with retries
        self.session = requests.Session()
        retries = Retry(
            total=retry_count,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            # publishing is not idempotent
            allowed_methods=["GET"],
            raise_on_status=False,
            connect=retry_count,
            read=retry_count,
            other=retry_count
        )
        self.session.mount("http://", HTTPAdapter(max_retries=retries))
        self.session.mount("https://", HTTPAdapter(max_retries=retries))
        if api_key:
            self.session.headers["Authorization"] = api_key

    def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any],
        json_body: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        url = f"{self.market_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                timeout=timeout if timeout is not None else self.timeout,
            )
            response.raise_for_status()

            # Check content type before attempting JSON parsing
            content_type = response.headers.get("Content-Type", "")
            if "application/json" not in content_type:
                self.logger.warning(f"Unexpected Content-Type: {content_type} (expected application/json)")

            result = response.json()
        except requests.Timeout as e:
            self.logger.error(f"Marketplace request timed out: {method} {path}")
            raise OperationTimeoutError(f"Marketplace request timed out: {method} {path}: {e}")
        except requests.RequestException as e:
            self.logger.error(f"Marketplace request failed: {e}")
            raise NetworkError(f"Marketplace request failed: {method} {path}: {e}")
        except ValueError as e:
            self.logger.error(f"Invalid JSON response from marketplace: {e}")
            raise NetworkError(f"Invalid JSON response from marketplace: {e}")

        if not isinstance(result, dict) or not result.get("ok", False):
            error = result.get("error") if isinstance(result, dict) else result
            raise NetworkError(f"Marketplace rejected {method} {path}: {error}")
        return result

    def _orderbook(self, path: str, params: Dict[str, Any], offer_type: type, timeout: Optional[float]) -> Orderbook:
        result = self._request("GET", path, params, timeout=timeout)
        try:
            orderbook = Orderbook[offer_type].model_validate(result)
        except ValidationError as e:
            raise NetworkError(f"Malformed orderbook from {path}: {e}")
        self.logger.debug(f"{path}: {orderbook.count} offers, {len(orderbook.orders)} in page")
        return orderbook

    def fetch_app_orderbook(self, app: str, timeout: Optional[float] = None) -> Orderbook:
        """
        List published offers for an app.

        Raises:
            NetworkError: If the marketplace is unreachable or returns an error
            OperationTimeoutError: If the request times out
        """
        params = {"chainId": self.chain_id, "app": checksum_address(app)}
        return self._orderbook("/apporders", params, AppOrder, timeout)

    def fetch_workerpool_orderbook(
        self,
        workerpool: str,
        category: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Orderbook:
        """
        List published offers for a worker pool.

        Raises:
            NetworkError: If the marketplace is unreachable or returns an error
            OperationTimeoutError: If the request times out
        """
        params: Dict[str, Any] = {"chainId": self.chain_id, "workerpool": checksum_address(workerpool)}
        if category is not None:
            params["category"] = category
        return self._orderbook("/workerpoolorders", params, WorkerpoolOrder, timeout)

    def publish_request_order(self, order: RequestOrder, timeout: Optional[float] = None) -> str:
        """
        Publish a signed request order.

        Returns:
            Order hash assigned by the marketplace
        """
        body = {"order": order.model_dump()}
        result = self._request("POST", "/requestorders", {"chainId": self.chain_id}, body, timeout=timeout)
        published = result.get("published") or {}
        order_hash = published.get("orderHash")
        if not order_hash:
            raise NetworkError(f"Missing orderHash in marketplace response: {result}")
        self.logger.info(f"Published request order {order_hash}")
        return order_hash
