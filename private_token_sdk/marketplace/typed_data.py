"""
EIP-712 typed data for marketplace orders.
"""
from typing import Any, Dict, List, Union

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from pydantic import BaseModel
from web3 import Web3

from ..constants import ORDER_DOMAIN_NAME, ORDER_DOMAIN_VERSION
from ..models import AppOrder, DatasetOrder, UnsignedRequestOrder, WorkerpoolOrder
from ..utils import checksum_address, hex_to_bytes

DOMAIN_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

ORDER_TYPES: Dict[str, List[Dict[str, str]]] = {
    "AppOrder": [
        {"name": "app", "type": "address"},
        {"name": "appprice", "type": "uint256"},
        {"name": "volume", "type": "uint256"},
        {"name": "tag", "type": "bytes32"},
        {"name": "datasetrestrict", "type": "address"},
        {"name": "workerpoolrestrict", "type": "address"},
        {"name": "requesterrestrict", "type": "address"},
        {"name": "salt", "type": "bytes32"},
    ],
    "DatasetOrder": [
        {"name": "dataset", "type": "address"},
        {"name": "datasetprice", "type": "uint256"},
        {"name": "volume", "type": "uint256"},
        {"name": "tag", "type": "bytes32"},
        {"name": "apprestrict", "type": "address"},
        {"name": "workerpoolrestrict", "type": "address"},
        {"name": "requesterrestrict", "type": "address"},
        {"name": "salt", "type": "bytes32"},
    ],
    "WorkerpoolOrder": [
        {"name": "workerpool", "type": "address"},
        {"name": "workerpoolprice", "type": "uint256"},
        {"name": "volume", "type": "uint256"},
        {"name": "tag", "type": "bytes32"},
        {"name": "category", "type": "uint256"},
        {"name": "trust", "type": "uint256"},
        {"name": "apprestrict", "type": "address"},
        {"name": "datasetrestrict", "type": "address"},
        {"name": "requesterrestrict", "type": "address"},
        {"name": "salt", "type": "bytes32"},
    ],
    "RequestOrder": [
        {"name": "app", "type": "address"},
        {"name": "appmaxprice", "type": "uint256"},
        {"name": "dataset", "type": "address"},
        {"name": "datasetmaxprice", "type": "uint256"},
        {"name": "workerpool", "type": "address"},
        {"name": "workerpoolmaxprice", "type": "uint256"},
        {"name": "requester", "type": "address"},
        {"name": "volume", "type": "uint256"},
        {"name": "tag", "type": "bytes32"},
        {"name": "category", "type": "uint256"},
        {"name": "trust", "type": "uint256"},
        {"name": "beneficiary", "type": "address"},
        {"name": "callback", "type": "address"},
        {"name": "params", "type": "string"},
        {"name": "salt", "type": "bytes32"},
    ],
}

_PRIMARY_TYPES = {
    AppOrder: "AppOrder",
    DatasetOrder: "DatasetOrder",
    WorkerpoolOrder: "WorkerpoolOrder",
    UnsignedRequestOrder: "RequestOrder",
}


class OrderDomain(BaseModel):
    """EIP-712 domain of the marketplace hub contract."""
    chain_id: int
    verifying_contract: str
    name: str = ORDER_DOMAIN_NAME
    version: str = ORDER_DOMAIN_VERSION

    class Config:
        frozen = True

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": checksum_address(self.verifying_contract),
        }


def primary_type(order: BaseModel) -> str:
    for model, name in _PRIMARY_TYPES.items():
        if isinstance(order, model):
            return name
    raise TypeError(f"Not a marketplace order: {type(order).__name__}")


def _message(order: BaseModel, type_name: str, salt: str) -> Dict[str, Any]:
    message = {}
    for field in ORDER_TYPES[type_name]:
        name = field["name"]
        value = salt if name == "salt" else getattr(order, name)
        if field["type"] == "address":
            value = Web3.to_checksum_address(value)
        elif field["type"] == "bytes32":
            value = hex_to_bytes(value)
        message[name] = value
    return message


def typed_data(order: BaseModel, domain: OrderDomain, salt: Union[str, None] = None) -> Dict[str, Any]:
    """
    Full EIP-712 structure of an order.

    Args:
        order: App, workerpool, dataset or request order
        domain: Hub domain
        salt: Salt to bind; defaults to the order's own ``salt`` field
    """
    type_name = primary_type(order)
    if salt is None:
        salt = getattr(order, "salt")
    return {
        "types": {"EIP712Domain": DOMAIN_FIELDS, type_name: ORDER_TYPES[type_name]},
        "primaryType": type_name,
        "domain": domain.as_dict(),
        "message": _message(order, type_name, salt),
    }


def signable_order(order: BaseModel, domain: OrderDomain, salt: Union[str, None] = None) -> SignableMessage:
    return encode_typed_data(full_message=typed_data(order, domain, salt))


def recover_order_signer(order: BaseModel, domain: OrderDomain) -> str:
    """
    Recover the address that signed an order.

    Raises:
        ValueError: If the order has no signature or it is malformed
    """
    signature = hex_to_bytes(getattr(order, "sign"))
    if not signature:
        raise ValueError("Order is not signed")
    return Account.recover_message(signable_order(order, domain), signature=signature)
