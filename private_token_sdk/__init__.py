"""
Private token SDK - confidential token transfers over an encrypted ledger.
"""
from .version import __version__
from .cipher import PrivateKey, PublicKey, decrypt, decrypt_balance, encrypt, generate_keypair, parse_public_key
from .config import ChainProfile, NetworkConfig
from .exceptions import (
    PrivateTokenError,
    InvalidKeyError,
    DecryptionError,
    InvalidRecipientError,
    SelfTransferError,
    SigningError,
    NoOfferAvailableError,
    NetworkError,
    OperationTimeoutError,
    TransactionRevertedError,
    ConfirmationTimeoutError,
)
from .ledger import EncryptedLedger, InMemoryLedger, Web3Ledger
from .marketplace import MarketplaceClient, OrderDomain, OrderResolver, RequestOrderBuilder
from .models import (
    AppOrder,
    WorkerpoolOrder,
    DatasetOrder,
    UnsignedRequestOrder,
    RequestOrder,
    TransferPayload,
    TransferIntent,
    TransferStage,
    TxReceipt,
)
from .orchestrator import TransferOrchestrator, TransferResult
from .signer import LocalSigner, Signer
from .utils import from_base_units, to_base_units

__all__ = [
    "__version__",
    "PrivateKey",
    "PublicKey",
    "encrypt",
    "decrypt",
    "decrypt_balance",
    "generate_keypair",
    "parse_public_key",
    "ChainProfile",
    "NetworkConfig",
    "PrivateTokenError",
    "InvalidKeyError",
    "DecryptionError",
    "InvalidRecipientError",
    "SelfTransferError",
    "SigningError",
    "NoOfferAvailableError",
    "NetworkError",
    "OperationTimeoutError",
    "TransactionRevertedError",
    "ConfirmationTimeoutError",
    "EncryptedLedger",
    "InMemoryLedger",
    "Web3Ledger",
    "MarketplaceClient",
    "OrderDomain",
    "OrderResolver",
    "RequestOrderBuilder",
    "AppOrder",
    "WorkerpoolOrder",
    "DatasetOrder",
    "UnsignedRequestOrder",
    "RequestOrder",
    "TransferPayload",
    "TransferIntent",
    "TransferStage",
    "TxReceipt",
    "TransferOrchestrator",
    "TransferResult",
    "LocalSigner",
    "Signer",
    "from_base_units",
    "to_base_units",
]
