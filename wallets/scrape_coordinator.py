# -*- coding: utf-8 -*-
"""
Scrape Coordinator
------------------
Single entry point for wallet balance lookups: resolves the link, drives the
shared browser through the platform extractor, converts the USD figure to BRL
and merges the outcome into the wallet history.

Nothing here raises to the caller. Every scraping failure comes back as data
(ScrapeResult.error / BalanceLookup.status) and the UI falls back to the last
known value.
"""

import asyncio
import itertools
import time
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Union

from config.constants import (
    EXTRACTION_MARGIN_SECONDS,
    INTER_WALLET_DELAY_SECONDS,
    MAX_CONSECUTIVE_FAILURES,
    MIN_WALLET_REFRESH_INTERVAL_SECONDS,
    USD_BRL_FALLBACK_RATE,
    USD_BRL_SANITY_RANGE,
)
from models.balance_log import BalanceLog
from models.wallet_history import HistoryStore
from models.wallet_models import (
    STATUS_SUCCESS,
    STATUS_TEMPORARY_ERROR,
    STATUS_UNAVAILABLE,
    BalanceLookup,
    Platform,
    ScrapeResult,
    TokenHolding,
    WalletHistoryEntry,
    WalletTarget,
    utc_now_iso,
)
from scrapers.debank_scraper import extract_debank_tokens
from scrapers.registry import PlatformExtractor, get_extractor
from scrapers.strategies import parse_decimal
from utils.exchange_rates import ExchangeRateCache
from utils.git_sync import SyncWorker
from utils.helpers import print_error, print_info, print_success, print_warning
from wallets.browser_session import BrowserSessionManager
from wallets.errors import PlatformUnsupportedError, ValueNotFoundError, WalletTrackerError

TAG = "Scraper"
TWO_PLACES = Decimal("0.01")

WalletInput = Union[WalletTarget, Dict[str, str]]


class ScrapeCoordinator:
    def __init__(
        self,
        browser: BrowserSessionManager,
        history: HistoryStore,
        rates: ExchangeRateCache,
        sync_worker: Optional[SyncWorker] = None,
        balance_log: Optional[BalanceLog] = None,
        inter_wallet_delay: float = INTER_WALLET_DELAY_SECONDS,
        min_refresh_interval: float = MIN_WALLET_REFRESH_INTERVAL_SECONDS,
        max_consecutive_failures: int = MAX_CONSECUTIVE_FAILURES,
        extraction_margin: float = EXTRACTION_MARGIN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.browser = browser
        self.history = history
        self.rates = rates
        self.sync_worker = sync_worker
        self.balance_log = balance_log
        self.inter_wallet_delay = inter_wallet_delay
        self.min_refresh_interval = min_refresh_interval
        self.max_consecutive_failures = max_consecutive_failures
        self.extraction_margin = extraction_margin
        self._clock = clock

        self._issue_sequence = itertools.count()
        self._applied_sequence: Dict[str, int] = {}
        self._last_refreshed: Dict[str, float] = {}

    @property
    def scrape_timeout(self) -> float:
        return self.browser.navigation_timeout + self.browser.settle_delay + self.extraction_margin

    # ------------------------------------------------------------------
    # Scraping
    # ------------------------------------------------------------------

    async def _scrape_page(self, target: WalletTarget, extractor: PlatformExtractor) -> ScrapeResult:
        async with self.browser.page() as page:
            await self.browser.navigate(page, target.link)
            extraction = await extractor.extract(page)
        if not extraction.found:
            raise ValueNotFoundError(extraction.error)
        value = parse_decimal(extraction.value)
        return ScrapeResult(value=str(value), success=True, platform=target.platform.value)

    async def scrape(self, target: WalletTarget) -> ScrapeResult:
        """Scrapes the USD net worth of one wallet. Never raises."""
        platform = target.platform.value
        extractor = get_extractor(target.platform)
        if extractor is None:
            return ScrapeResult.failure(platform, PlatformUnsupportedError.default_message)
        if not extractor.implemented:
            return ScrapeResult.failure(platform, extractor.unavailable_reason or "Not implemented")

        print_info(f"Scraping {target.name} ({platform})", tag=TAG)
        try:
            result = await asyncio.wait_for(self._scrape_page(target, extractor), timeout=self.scrape_timeout)
        except asyncio.TimeoutError:
            result = ScrapeResult.failure(platform, f"Scrape timed out after {self.scrape_timeout:.0f}s")
        except WalletTrackerError as e:
            result = ScrapeResult.failure(platform, str(e))
        except Exception as e:
            # Playwright crashes, closed targets, unexpected page shapes
            result = ScrapeResult.failure(platform, f"Unexpected scrape error: {e}")

        if result.success:
            print_success(f"{target.name}: ${result.value}", tag=TAG)
        else:
            print_warning(f"{target.name}: {result.error}", tag=TAG)
        return result

    async def scrape_tokens(self, target: WalletTarget) -> List[TokenHolding]:
        """DeBank per-token breakdown. Empty on any failure or other platforms."""
        if target.platform is not Platform.DEBANK:
            return []

        async def read_tokens() -> List[TokenHolding]:
            async with self.browser.page() as page:
                await self.browser.navigate(page, target.link)
                return await extract_debank_tokens(page)

        try:
            return await asyncio.wait_for(read_tokens(), timeout=self.scrape_timeout)
        except asyncio.TimeoutError:
            print_warning(f"{target.name}: token scrape timed out", tag=TAG)
        except WalletTrackerError as e:
            print_warning(f"{target.name}: {e}", tag=TAG)
        except Exception as e:
            print_error(f"{target.name}: unexpected token scrape error: {e}", tag=TAG)
        return []

    # ------------------------------------------------------------------
    # Balance lookup
    # ------------------------------------------------------------------

    async def usd_to_brl(self, amount_usd: Decimal) -> Decimal:
        rate = await self.rates.get_rate("USD")
        low, high = USD_BRL_SANITY_RANGE
        if not (Decimal(str(low)) <= rate <= Decimal(str(high))):
            print_warning(f"USD/BRL rate {rate} looks wrong, using {USD_BRL_FALLBACK_RATE}", tag=TAG)
            rate = Decimal(USD_BRL_FALLBACK_RATE)
        return (amount_usd * rate).quantize(TWO_PLACES)

    def _logged_fallback(self, name: str) -> Optional[str]:
        """Highest successful balance still in the rolling log, if any."""
        if self.balance_log is None:
            return None
        return self.balance_log.get_last_highest_value(name)

    def _report_existing(
        self, target: WalletTarget, entry: Optional[WalletHistoryEntry], error: str
    ) -> BalanceLookup:
        if entry is None or not entry.has_valid_balance():
            fallback = self._logged_fallback(target.name)
            if fallback is not None:
                return BalanceLookup(
                    name=target.name,
                    value=None,
                    status=STATUS_TEMPORARY_ERROR,
                    last_known_value=fallback,
                    platform=target.platform.value,
                    error=error,
                )
        if entry is None:
            return BalanceLookup(
                name=target.name, value=None, status=STATUS_UNAVAILABLE, platform=target.platform.value, error=error
            )
        last_known = entry.balance if entry.has_valid_balance() else None
        return BalanceLookup(
            name=target.name,
            value=entry.balance if entry.status == STATUS_SUCCESS else None,
            status=entry.status,
            last_known_value=last_known,
            platform=target.platform.value,
            error=error,
        )

    async def lookup_balance(self, name: str, link: str) -> BalanceLookup:
        """
        Scrapes one wallet and records the outcome in the history store.

        Success stores the BRL balance. A failure keeps the previous balance
        and marks it temporary_error. Without one, the highest value in the
        balance log stands in; with neither the wallet is unavailable.
        Unknown links are not scraped and leave the store untouched.
        """
        sequence = next(self._issue_sequence)
        target = WalletTarget.from_link(name, link)

        if target.platform is Platform.UNKNOWN:
            print_info(f"{name}: unsupported link, skipping", tag=TAG)
            return self._report_existing(target, self.history.get(name), PlatformUnsupportedError.default_message)

        result = await self.scrape(target)

        balance_brl: Optional[str] = None
        error = result.error
        if result.success:
            try:
                balance_brl = str(await self.usd_to_brl(Decimal(result.value)))
            except Exception as e:
                error = f"Conversion failed: {e}"
        fallback = self._logged_fallback(name) if balance_brl is None else None

        def apply(entries: Dict[str, WalletHistoryEntry]) -> Optional[WalletHistoryEntry]:
            if self._applied_sequence.get(name, -1) > sequence:
                # A lookup issued after this one already wrote
                return None
            self._applied_sequence[name] = sequence

            entry = entries.get(name)
            if balance_brl is not None:
                if entry is None:
                    entry = WalletHistoryEntry(name=name, balance=balance_brl, status=STATUS_SUCCESS)
                    entries[name] = entry
                entry.balance = balance_brl
                entry.status = STATUS_SUCCESS
                entry.last_updated = utc_now_iso()
            elif entry is not None and entry.has_valid_balance():
                entry.status = STATUS_TEMPORARY_ERROR
            elif fallback is not None:
                # History lost the balance but the log still has successful samples
                if entry is None:
                    entry = WalletHistoryEntry(name=name, balance=fallback, status=STATUS_TEMPORARY_ERROR)
                    entries[name] = entry
                entry.balance = fallback
                entry.status = STATUS_TEMPORARY_ERROR
            else:
                if entry is None:
                    entry = WalletHistoryEntry(name=name, balance="", status=STATUS_UNAVAILABLE)
                    entries[name] = entry
                entry.balance = ""
                entry.status = STATUS_UNAVAILABLE
                entry.last_updated = utc_now_iso()
            entry.platform = target.platform.value
            return entry

        written = await self.history.update(apply)
        entry = written if written is not None else self.history.get(name)

        if written is not None and self.sync_worker is not None:
            self.sync_worker.schedule(f"Update wallet balance: {name}")

        if self.balance_log is not None:
            status = STATUS_SUCCESS if balance_brl is not None else (entry.status if entry else STATUS_UNAVAILABLE)
            self.balance_log.add_entry(name, balance_brl or "", target.platform.value, status)

        if balance_brl is not None:
            return BalanceLookup(
                name=name,
                value=balance_brl,
                status=STATUS_SUCCESS,
                last_known_value=balance_brl,
                platform=target.platform.value,
            )
        return self._report_existing(target, entry, error or "Lookup failed")

    # ------------------------------------------------------------------
    # Refresh cycle
    # ------------------------------------------------------------------

    @staticmethod
    def _as_target(wallet: WalletInput) -> WalletTarget:
        if isinstance(wallet, WalletTarget):
            return wallet
        return WalletTarget.from_link(wallet["name"], wallet["link"])

    async def refresh_all(self, wallets: Iterable[WalletInput]) -> List[BalanceLookup]:
        """
        Looks up every wallet one after another.

        Wallets refreshed less than min_refresh_interval ago are skipped, the
        browser rests inter_wallet_delay between scrapes, and the cycle stops
        after max_consecutive_failures failures in a row.
        """
        targets = [self._as_target(w) for w in wallets]
        results: List[BalanceLookup] = []
        consecutive_failures = 0
        failures = 0
        scraped = 0

        for target in targets:
            last = self._last_refreshed.get(target.name)
            if last is not None and self._clock() - last < self.min_refresh_interval:
                print_info(f"{target.name}: refreshed recently, skipping", tag=TAG)
                continue

            if scraped and target.platform is not Platform.UNKNOWN and self.inter_wallet_delay > 0:
                await asyncio.sleep(self.inter_wallet_delay)

            lookup = await self.lookup_balance(target.name, target.link)
            results.append(lookup)
            if target.platform is Platform.UNKNOWN:
                continue

            scraped += 1
            self._last_refreshed[target.name] = self._clock()
            if lookup.status == STATUS_SUCCESS:
                consecutive_failures = 0
                continue

            failures += 1
            consecutive_failures += 1
            if consecutive_failures >= self.max_consecutive_failures:
                print_error(
                    f"{consecutive_failures} consecutive failures, aborting refresh cycle", tag=TAG
                )
                break

        if scraped and failures / scraped > 0.5:
            print_warning(f"High failure rate: {failures}/{scraped} wallets failed", tag=TAG)
        return results
