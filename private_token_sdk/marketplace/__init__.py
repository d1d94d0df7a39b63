"""
Compute marketplace workflow: offers, request orders and their signatures.
"""
from .builder import RequestOrderBuilder
from .client import MarketplaceClient
from .resolver import OrderResolver
from .typed_data import OrderDomain, primary_type, recover_order_signer, signable_order, typed_data

__all__ = [
    "MarketplaceClient",
    "OrderResolver",
    "RequestOrderBuilder",
    "OrderDomain",
    "primary_type",
    "recover_order_signer",
    "signable_order",
    "typed_data",
]
