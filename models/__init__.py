# -*- coding: utf-8 -*-
"""
Models Package
--------------
Data models and the JSON-backed stores of the wallet balance tracker.
"""

from .balance_log import BalanceLog
from .wallet_history import HistoryStore
from .wallet_models import (
    BalanceLogEntry,
    BalanceLookup,
    ExtractionResult,
    Platform,
    ResolvedLink,
    ScrapeResult,
    TokenHolding,
    WalletHistoryEntry,
    WalletTarget,
)

__all__ = [
    "BalanceLog",
    "BalanceLogEntry",
    "BalanceLookup",
    "ExtractionResult",
    "HistoryStore",
    "Platform",
    "ResolvedLink",
    "ScrapeResult",
    "TokenHolding",
    "WalletHistoryEntry",
    "WalletTarget",
]
