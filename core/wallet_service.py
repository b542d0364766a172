# -*- coding: utf-8 -*-
"""
Wallet Balance Service
----------------------
Owns the long-lived pieces of the balance tracker (shared browser, exchange
rate cache, history store, background git sync) and wires them into a
ScrapeCoordinator. Host applications call start() once at boot and stop()
on shutdown.
"""

import asyncio
from typing import Optional

from config.constants import BALANCE_LOG_FILE, WALLET_HISTORY_FILE
from models.balance_log import BalanceLog
from models.wallet_history import HistoryStore
from utils.exchange_rates import ExchangeRateCache
from utils.git_sync import GitSync, SyncWorker
from utils.helpers import print_info, print_warning
from wallets.browser_session import BrowserSessionManager
from wallets.scrape_coordinator import ScrapeCoordinator

TAG = "Service"


class WalletBalanceService:
    def __init__(
        self,
        history_file: str = WALLET_HISTORY_FILE,
        balance_log_file: Optional[str] = BALANCE_LOG_FILE,
        browser: Optional[BrowserSessionManager] = None,
        rates: Optional[ExchangeRateCache] = None,
        git_sync: Optional[GitSync] = None,
        enable_sync: bool = True,
    ):
        self.browser = browser or BrowserSessionManager()
        self.rates = rates or ExchangeRateCache()
        self.history = HistoryStore(history_file)
        self.git_sync = git_sync or GitSync(file_path=history_file)
        self.sync_worker = SyncWorker(self.git_sync) if enable_sync else None
        self.balance_log = BalanceLog(balance_log_file) if balance_log_file else None
        self.coordinator = ScrapeCoordinator(
            browser=self.browser,
            history=self.history,
            rates=self.rates,
            sync_worker=self.sync_worker,
            balance_log=self.balance_log,
        )

    async def start(self, launch_browser: bool = True) -> None:
        if self.sync_worker is not None:
            await asyncio.to_thread(self.git_sync.pull_remote)
            self.sync_worker.start()
        if launch_browser:
            try:
                await self.browser.start()
            except Exception as e:
                # Lookups still answer from history; scrapes report "Browser not available"
                print_warning(f"Browser failed to start: {e}", tag=TAG)

    async def stop(self) -> None:
        await self.browser.stop()
        if self.sync_worker is not None:
            await self.sync_worker.stop()
        print_info("Wallet service stopped", tag=TAG)

    async def __aenter__(self) -> "WalletBalanceService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
