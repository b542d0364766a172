# -*- coding: utf-8 -*-
"""
Exchange Rate Cache
-------------------
BRL-pivot fiat conversion table backed by a free USD-pivot API.

- A snapshot younger than 30 minutes is served without any network call.
- Concurrent cache misses share a single in-flight fetch.
- On failure the previous snapshot is served; before the first success the
  hardcoded defaults are served. get_rates() never raises.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

import requests
from cachetools import TTLCache

from config.constants import (
    DEFAULT_EXCHANGE_RATES,
    EXCHANGE_RATE_API_URL,
    EXCHANGE_RATE_BASE,
    EXCHANGE_RATE_CACHE_SECONDS,
    EXCHANGE_RATE_REQUEST_TIMEOUT,
    PIVOT_CURRENCY,
)
from utils.helpers import print_error, print_info, print_warning
from utils.rate_limiter import exchange_rate_retry

TAG = "Rates"
_SNAPSHOT_KEY = "snapshot"


@dataclass(frozen=True)
class ExchangeRateSnapshot:
    """BRL per unit of each currency. BRL is always exactly 1."""

    USD: Decimal
    EUR: Decimal
    BRL: Decimal = Decimal("1")
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def rate_for(self, currency: str) -> Decimal:
        code = currency.upper()
        if code == PIVOT_CURRENCY:
            return Decimal("1")
        if code == "USD":
            return self.USD
        if code == "EUR":
            return self.EUR
        raise ValueError(f"Unsupported currency: {currency}")

    def as_dict(self) -> Dict[str, Decimal]:
        return {"USD": self.USD, "EUR": self.EUR, "BRL": self.BRL}


def default_snapshot() -> ExchangeRateSnapshot:
    return ExchangeRateSnapshot(
        USD=Decimal(DEFAULT_EXCHANGE_RATES["USD"]),
        EUR=Decimal(DEFAULT_EXCHANGE_RATES["EUR"]),
        BRL=Decimal(DEFAULT_EXCHANGE_RATES["BRL"]),
    )


def snapshot_from_usd_rates(payload: Dict[str, Any]) -> ExchangeRateSnapshot:
    """
    Derives BRL-pivot rates from a USD-pivot payload ``{"rates": {...}}``.

    USD->BRL comes straight from the payload; EUR->BRL is cross-multiplied as
    (1 / USD->EUR) * USD->BRL.
    """
    try:
        rates = payload["rates"]
        usd_to_brl = Decimal(str(rates["BRL"]))
        usd_to_eur = Decimal(str(rates["EUR"]))
    except (KeyError, TypeError, InvalidOperation) as e:
        raise ValueError(f"Unexpected exchange rate payload: {e}") from e
    if usd_to_brl <= 0 or usd_to_eur <= 0:
        raise ValueError("Exchange rates must be positive")
    eur_to_brl = (Decimal("1") / usd_to_eur) * usd_to_brl
    return ExchangeRateSnapshot(USD=usd_to_brl, EUR=eur_to_brl, BRL=Decimal("1"))


@exchange_rate_retry
def fetch_usd_rates() -> Dict[str, Any]:
    """GET .../latest/USD and return the parsed JSON body."""
    response = requests.get(
        f"{EXCHANGE_RATE_API_URL}/{EXCHANGE_RATE_BASE}", timeout=EXCHANGE_RATE_REQUEST_TIMEOUT
    )
    response.raise_for_status()
    return response.json()


class ExchangeRateCache:
    """Process-wide exchange rate table with a TTL and single-flight refresh."""

    def __init__(
        self,
        fetcher: Callable[[], Dict[str, Any]] = fetch_usd_rates,
        ttl: float = EXCHANGE_RATE_CACHE_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher
        self._cache = TTLCache(maxsize=1, ttl=ttl, timer=timer)
        self._lock = asyncio.Lock()
        # Survives TTL expiry so a failed refresh can still serve it
        self._last_snapshot: Optional[ExchangeRateSnapshot] = None

    @property
    def last_snapshot(self) -> Optional[ExchangeRateSnapshot]:
        return self._last_snapshot

    async def get_rates(self) -> ExchangeRateSnapshot:
        cached = self._cache.get(_SNAPSHOT_KEY)
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._cache.get(_SNAPSHOT_KEY)  # Re-check after lock
            if cached is not None:
                return cached

            try:
                payload = await asyncio.to_thread(self._fetcher)
                snapshot = snapshot_from_usd_rates(payload)
            except Exception as e:
                # Network, HTTP and payload errors all degrade to the fallback
                if self._last_snapshot is not None:
                    print_warning(
                        f"Exchange rate refresh failed ({e}); keeping rates from "
                        f"{self._last_snapshot.fetched_at.isoformat()}",
                        tag=TAG,
                    )
                    return self._last_snapshot
                print_error(f"Exchange rate refresh failed ({e}); using default rates", tag=TAG)
                return default_snapshot()

            self._cache[_SNAPSHOT_KEY] = snapshot
            self._last_snapshot = snapshot
            print_info(
                f"Exchange rates updated: USD={snapshot.USD:.4f} EUR={snapshot.EUR:.4f} BRL=1",
                tag=TAG,
            )
            return snapshot

    async def get_rate(self, currency: str) -> Decimal:
        if currency.upper() == PIVOT_CURRENCY:
            return Decimal("1")
        rates = await self.get_rates()
        return rates.rate_for(currency)

    async def convert(self, amount_brl: Decimal, target_currency: str) -> Decimal:
        """Converts a BRL amount into target_currency."""
        if target_currency.upper() == PIVOT_CURRENCY:
            return amount_brl
        rate = await self.get_rate(target_currency)
        return Decimal(amount_brl) / rate

    async def to_brl(self, amount: Decimal, source_currency: str) -> Decimal:
        """Converts an amount in source_currency into BRL."""
        if source_currency.upper() == PIVOT_CURRENCY:
            return amount
        rate = await self.get_rate(source_currency)
        return Decimal(amount) * rate
