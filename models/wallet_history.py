# -*- coding: utf-8 -*-
"""
Wallet History Store
--------------------
Last known balance per wallet, persisted as a JSON array in
data/wallet-history.json. The file is rewritten whole on every save and all
writes from the running process go through a single async writer lock.
"""

import asyncio
import json
import os
import tempfile
from typing import Callable, Dict, Iterable, Optional

from config.constants import WALLET_HISTORY_FILE
from models.wallet_models import WalletHistoryEntry
from utils.helpers import print_error, print_info, print_warning

TAG = "History"

HistoryMutation = Callable[[Dict[str, WalletHistoryEntry]], Optional[WalletHistoryEntry]]


class HistoryStore:
    """Manages the wallet-history file."""

    def __init__(self, storage_file: str = WALLET_HISTORY_FILE):
        self.storage_file = storage_file
        self._write_lock = asyncio.Lock()

    def load(self) -> Dict[str, WalletHistoryEntry]:
        """Entries keyed by wallet name. Missing or corrupt file → empty map."""
        if not os.path.exists(self.storage_file):
            return {}
        try:
            with open(self.storage_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError):
            print_error(f"Error decoding {self.storage_file}. Starting with empty history.", tag=TAG)
            return {}
        except OSError as e:
            print_error(f"Error reading {self.storage_file}: {e}", tag=TAG)
            return {}

        if not isinstance(data, list):
            print_warning(f"{self.storage_file} is not a JSON array, ignoring it", tag=TAG)
            return {}

        entries: Dict[str, WalletHistoryEntry] = {}
        for item in data:
            try:
                entry = WalletHistoryEntry.from_dict(item)
            except (KeyError, TypeError, AttributeError):
                print_warning(f"Skipping malformed history entry: {item!r}", tag=TAG)
                continue
            entries[entry.name] = entry
        return entries

    def save(self, entries: Dict[str, WalletHistoryEntry]) -> bool:
        """Rewrites the whole file atomically. Returns False if the write failed."""
        directory = os.path.dirname(self.storage_file) or "."
        os.makedirs(directory, exist_ok=True)

        payload = [entry.to_dict() for entry in entries.values()]
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".wallet-history-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.storage_file)
        except OSError as e:
            print_error(f"Error saving wallet history to {self.storage_file}: {e}", tag=TAG)
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            return False
        return True

    def get(self, name: str) -> Optional[WalletHistoryEntry]:
        return self.load().get(name)

    async def update(self, mutate: HistoryMutation) -> Optional[WalletHistoryEntry]:
        """
        Runs load → mutate → save under the writer lock.

        mutate edits the map in place and returns the entry it wrote, or None
        to leave the file untouched. Waiters acquire the lock in FIFO order,
        so concurrent updates land in the order they were issued.
        """
        async with self._write_lock:
            entries = self.load()
            written = mutate(entries)
            if written is None:
                return None
            if not self.save(entries):
                return None
            return written

    async def prune(self, active_names: Iterable[str]) -> int:
        """Removes entries for wallets no longer tracked. Returns how many went."""
        active = set(active_names)
        removed = []

        def drop_stale(entries: Dict[str, WalletHistoryEntry]) -> Optional[WalletHistoryEntry]:
            for name in list(entries):
                if name not in active:
                    removed.append(entries.pop(name))
            return removed[-1] if removed else None

        await self.update(drop_stale)
        if removed:
            print_info(f"Pruned {len(removed)} stale wallet(s) from history", tag=TAG)
        return len(removed)
