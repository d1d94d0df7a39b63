"""
ABI of the PrivateERC20 ledger contract.
"""
from typing import Any, Dict, List, Tuple

from web3 import Web3

from ..models import AppOrder, DatasetOrder, WorkerpoolOrder
from ..utils import hex_to_bytes

APP_ORDER_COMPONENTS = [
    {"internalType": "address", "name": "app", "type": "address"},
    {"internalType": "uint256", "name": "appprice", "type": "uint256"},
    {"internalType": "uint256", "name": "volume", "type": "uint256"},
    {"internalType": "bytes32", "name": "tag", "type": "bytes32"},
    {"internalType": "address", "name": "datasetrestrict", "type": "address"},
    {"internalType": "address", "name": "workerpoolrestrict", "type": "address"},
    {"internalType": "address", "name": "requesterrestrict", "type": "address"},
    {"internalType": "bytes32", "name": "salt", "type": "bytes32"},
    {"internalType": "bytes", "name": "sign", "type": "bytes"},
]

WORKERPOOL_ORDER_COMPONENTS = [
    {"internalType": "address", "name": "workerpool", "type": "address"},
    {"internalType": "uint256", "name": "workerpoolprice", "type": "uint256"},
    {"internalType": "uint256", "name": "volume", "type": "uint256"},
    {"internalType": "bytes32", "name": "tag", "type": "bytes32"},
    {"internalType": "uint256", "name": "category", "type": "uint256"},
    {"internalType": "uint256", "name": "trust", "type": "uint256"},
    {"internalType": "address", "name": "apprestrict", "type": "address"},
    {"internalType": "address", "name": "datasetrestrict", "type": "address"},
    {"internalType": "address", "name": "requesterrestrict", "type": "address"},
    {"internalType": "bytes32", "name": "salt", "type": "bytes32"},
    {"internalType": "bytes", "name": "sign", "type": "bytes"},
]

DATASET_ORDER_COMPONENTS = [
    {"internalType": "address", "name": "dataset", "type": "address"},
    {"internalType": "uint256", "name": "datasetprice", "type": "uint256"},
    {"internalType": "uint256", "name": "volume", "type": "uint256"},
    {"internalType": "bytes32", "name": "tag", "type": "bytes32"},
    {"internalType": "address", "name": "apprestrict", "type": "address"},
    {"internalType": "address", "name": "workerpoolrestrict", "type": "address"},
    {"internalType": "address", "name": "requesterrestrict", "type": "address"},
    {"internalType": "bytes32", "name": "salt", "type": "bytes32"},
    {"internalType": "bytes", "name": "sign", "type": "bytes"},
]


def _view(name: str, inputs: List[Dict[str, Any]], output_type: str) -> Dict[str, Any]:
    return {
        "inputs": inputs,
        "name": name,
        "outputs": [{"internalType": output_type, "name": "", "type": output_type}],
        "stateMutability": "view",
        "type": "function",
    }


def _address(name: str, indexed: bool = False) -> Dict[str, Any]:
    return {"indexed": indexed, "internalType": "address", "name": name, "type": "address"}


def _bytes(name: str) -> Dict[str, Any]:
    return {"indexed": False, "internalType": "bytes", "name": name, "type": "bytes"}


PRIVATE_ERC20_ABI = [
    _view("encryptionPublicKey", [], "bytes"),
    _view("decimals", [], "uint8"),
    _view("name", [], "string"),
    _view("symbol", [], "string"),
    _view("balanceOf", [{"internalType": "address", "name": "account", "type": "address"}], "bytes"),
    {
        "inputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "bytes", "name": "encryptedAmount", "type": "bytes"},
        ],
        "name": "mint",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "bytes", "name": "encryptedAmount", "type": "bytes"},
        ],
        "name": "transfer",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "sender", "type": "address"},
            {"internalType": "address", "name": "recipient", "type": "address"},
            {"internalType": "bytes", "name": "newSenderBalance", "type": "bytes"},
            {"internalType": "bytes", "name": "newRecipientBalance", "type": "bytes"},
        ],
        "name": "updateBalance",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"components": APP_ORDER_COMPONENTS, "internalType": "struct IexecLibOrders_v5.AppOrder",
             "name": "appOrder", "type": "tuple"},
            {"components": WORKERPOOL_ORDER_COMPONENTS, "internalType": "struct IexecLibOrders_v5.WorkerpoolOrder",
             "name": "workerpoolOrder", "type": "tuple"},
            {"components": DATASET_ORDER_COMPONENTS, "internalType": "struct IexecLibOrders_v5.DatasetOrder",
             "name": "datasetOrder", "type": "tuple"},
        ],
        "name": "storeOrders",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [_address("to", indexed=True), _bytes("encryptedAmount")],
        "name": "Mint",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            _address("from", indexed=True),
            _address("to", indexed=True),
            _bytes("encryptedAmount"),
            {"indexed": False, "internalType": "uint256", "name": "escrow", "type": "uint256"},
        ],
        "name": "TransferRequested",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            _address("sender", indexed=True),
            _address("recipient", indexed=True),
            _bytes("newSenderBalance"),
            _bytes("newRecipientBalance"),
        ],
        "name": "BalanceUpdate",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [_address("app"), _address("workerpool"), _address("dataset")],
        "name": "OrdersStored",
        "type": "event",
    },
]


def _as_tuple(order: Any, components: List[Dict[str, Any]]) -> Tuple[Any, ...]:
    values = []
    for component in components:
        value = getattr(order, component["name"])
        if component["type"] == "address":
            value = Web3.to_checksum_address(value)
        elif component["type"].startswith("bytes"):
            value = hex_to_bytes(value)
        values.append(value)
    return tuple(values)


def app_order_tuple(order: AppOrder) -> Tuple[Any, ...]:
    return _as_tuple(order, APP_ORDER_COMPONENTS)


def workerpool_order_tuple(order: WorkerpoolOrder) -> Tuple[Any, ...]:
    return _as_tuple(order, WORKERPOOL_ORDER_COMPONENTS)


def dataset_order_tuple(order: DatasetOrder) -> Tuple[Any, ...]:
    return _as_tuple(order, DATASET_ORDER_COMPONENTS)
