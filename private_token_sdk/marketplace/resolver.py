"""
Resolution of marketplace offers for the transfer application and worker pool.
"""
import logging
from typing import Optional

from ..exceptions import NoOfferAvailableError
from ..models import AppOrder, Orderbook, OrderbookEntry, WorkerpoolOrder
from ..utils import same_address
from .client import MarketplaceClient
from .typed_data import OrderDomain, recover_order_signer


class OrderResolver:
    """
    Pick the offer a transfer will run against.

    Entries are considered in marketplace order; the first usable one wins.
    An entry is usable when it still has volume left and, if a domain is
    configured, its signature recovers to the signer the marketplace lists;
    entries listing no signer are then skipped.
    """

    def __init__(
        self,
        marketplace: MarketplaceClient,
        domain: Optional[OrderDomain] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.marketplace = marketplace
        self.domain = domain
        self.logger = logger or logging.getLogger(__name__)

    def _usable(self, entry: OrderbookEntry) -> bool:
        order = entry.order
        if order.volume <= 0 or entry.remaining <= 0:
            self.logger.debug(f"Skipping exhausted offer {entry.order_hash}")
            return False
        if self.domain is None:
            return True
        if entry.signer is None:
            self.logger.warning(f"Skipping offer {entry.order_hash}: marketplace lists no signer")
            return False
        try:
            recovered = recover_order_signer(order, self.domain)
        except Exception as e:
            self.logger.warning(f"Skipping offer {entry.order_hash} with unreadable signature: {e}")
            return False
        if not same_address(recovered, entry.signer):
            self.logger.warning(
                f"Skipping offer {entry.order_hash}: signed by {recovered}, listed signer {entry.signer}"
            )
            return False
        return True

    def _first_usable(self, orderbook: Orderbook, kind: str, resource: str):
        if orderbook.count == 0 or not orderbook.orders:
            raise NoOfferAvailableError(f"No {kind} order available for {resource}", resource=resource)
        for entry in orderbook.orders:
            if self._usable(entry):
                self.logger.info(f"Using {kind} order {entry.order_hash} at price {entry.order.price}")
                return entry.order
        raise NoOfferAvailableError(
            f"None of the {len(orderbook.orders)} {kind} orders for {resource} is usable", resource=resource
        )

    def fetch_app_order(self, app_address: str, timeout: Optional[float] = None) -> AppOrder:
        """
        Raises:
            NoOfferAvailableError: If no usable app order is published
            NetworkError: If the marketplace cannot be queried
        """
        orderbook = self.marketplace.fetch_app_orderbook(app_address, timeout=timeout)
        return self._first_usable(orderbook, "app", app_address)

    def fetch_workerpool_order(
        self,
        workerpool_address: str,
        category: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> WorkerpoolOrder:
        """
        Raises:
            NoOfferAvailableError: If no usable workerpool order is published
            NetworkError: If the marketplace cannot be queried
        """
        orderbook = self.marketplace.fetch_workerpool_orderbook(workerpool_address, category=category, timeout=timeout)
        return self._first_usable(orderbook, "workerpool", workerpool_address)
