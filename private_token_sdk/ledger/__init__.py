"""
Clients for the encrypted PrivateERC20 ledger.
"""
from .base import EncryptedLedger
from .memory import InMemoryLedger, LedgerState
from .web3_ledger import Web3Ledger

__all__ = ["EncryptedLedger", "InMemoryLedger", "LedgerState", "Web3Ledger"]
