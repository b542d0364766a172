# -*- coding: utf-8 -*-
"""
Balance Log
-----------
Rolling log of every balance lookup (data/wallet-cache.json), kept to the most
recent entries per wallet. Used for stats and for the last-highest-value
fallback shown when a wallet is temporarily unavailable.
"""

import json
import os
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from config.constants import BALANCE_LOG_ENTRIES_PER_WALLET, BALANCE_LOG_FILE
from models.wallet_models import STATUS_SUCCESS, BalanceLogEntry
from utils.helpers import print_error, safe_decimal_convert

TAG = "BalanceLog"


class BalanceLog:
    def __init__(self, storage_file: str = BALANCE_LOG_FILE, per_wallet: int = BALANCE_LOG_ENTRIES_PER_WALLET):
        self.storage_file = storage_file
        self.per_wallet = per_wallet
        self.entries: List[BalanceLogEntry] = []
        self._load_data()

    def _load_data(self):
        if not os.path.exists(self.storage_file):
            self.entries = []
            return
        try:
            with open(self.storage_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            self.entries = [BalanceLogEntry.from_dict(item) for item in data]
        except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError, AttributeError) as e:
            print_error(f"Error decoding {self.storage_file}: {e}. Starting with empty log.", tag=TAG)
            self.entries = []
        except OSError as e:
            print_error(f"Error loading balance log from {self.storage_file}: {e}", tag=TAG)
            self.entries = []

    def save_data(self):
        os.makedirs(os.path.dirname(self.storage_file) or ".", exist_ok=True)
        try:
            with open(self.storage_file, "w", encoding="utf-8") as f:
                json.dump([entry.to_dict() for entry in self.entries], f, indent=2)
        except OSError as e:
            print_error(f"Error saving balance log to {self.storage_file}: {e}", tag=TAG)

    def add_entry(self, wallet_name: str, balance: str, platform: str, status: str) -> BalanceLogEntry:
        entry = BalanceLogEntry(wallet_name=wallet_name, balance=balance, platform=platform, status=status)
        self.entries.append(entry)
        self._trim()
        self.save_data()
        return entry

    def _trim(self):
        # Keep the newest per_wallet entries of each wallet, preserving overall order
        seen: Dict[str, int] = defaultdict(int)
        kept = []
        for entry in reversed(self.entries):
            seen[entry.wallet_name] += 1
            if seen[entry.wallet_name] <= self.per_wallet:
                kept.append(entry)
        self.entries = list(reversed(kept))

    def get_wallet_history(self, wallet_name: str, limit: int = 10) -> List[BalanceLogEntry]:
        """Newest first."""
        history = [e for e in self.entries if e.wallet_name == wallet_name]
        history.sort(key=lambda e: e.timestamp, reverse=True)
        return history[:limit]

    def get_latest_by_wallet(self) -> Dict[str, BalanceLogEntry]:
        latest: Dict[str, BalanceLogEntry] = {}
        for entry in self.entries:
            current = latest.get(entry.wallet_name)
            if current is None or entry.timestamp >= current.timestamp:
                latest[entry.wallet_name] = entry
        return latest

    def _successful_values(self, wallet_name: str) -> List[Decimal]:
        values = []
        for entry in self.get_wallet_history(wallet_name, limit=self.per_wallet):
            if entry.status != STATUS_SUCCESS:
                continue
            value = safe_decimal_convert(entry.balance)
            if value is not None and value >= 0:
                values.append(value)
        return values

    def get_last_highest_value(self, wallet_name: str) -> Optional[str]:
        values = self._successful_values(wallet_name)
        if not values:
            return None
        return str(max(values))

    def get_wallet_stats(self, wallet_name: str) -> Optional[Dict[str, Any]]:
        """
        Summary over the successful lookups still in the log.

        change is current minus oldest; change_percent is relative to the
        oldest value.
        """
        values = self._successful_values(wallet_name)  # newest first
        if not values:
            return None

        current, oldest = values[0], values[-1]
        change = current - oldest
        change_percent = (change / oldest * 100) if oldest else Decimal(0)
        return {
            "current": current,
            "min": min(values),
            "max": max(values),
            "average": sum(values) / len(values),
            "change": change,
            "change_percent": change_percent.quantize(Decimal("0.01")),
            "samples": len(values),
        }
