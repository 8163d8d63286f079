"""
Bankroll package - the bet ledger and its snapshot storage.
"""

from .store import LedgerStore
from .ledger import Ledger


__all__ = ["Ledger", "LedgerStore"]
