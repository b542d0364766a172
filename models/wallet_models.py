# -*- coding: utf-8 -*-
"""
Wallet Tracker Data Models
--------------------------
Dataclasses exchanged between the link resolver, the extractors, the scrape
coordinator and the history store.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from utils.helpers import safe_decimal_convert

STATUS_SUCCESS = "success"
STATUS_TEMPORARY_ERROR = "temporary_error"
STATUS_UNAVAILABLE = "unavailable"
BALANCE_STATUSES = (STATUS_SUCCESS, STATUS_TEMPORARY_ERROR, STATUS_UNAVAILABLE)


class Platform(str, Enum):
    """Portfolio viewer a wallet link points to."""

    DEBANK = "debank"
    JUP = "jup"
    ETHERSCAN = "etherscan"
    BLOCKSCOUT = "blockscout"
    GENERIC_EXPLORER = "generic_explorer"
    UNKNOWN = "unknown"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ResolvedLink:
    platform: Platform
    address: Optional[str] = None
    parsed: bool = True  # False when the link is not a URL at all


@dataclass(frozen=True)
class WalletTarget:
    """A named wallet link, classified once per scrape attempt."""

    name: str
    link: str
    platform: Platform = Platform.UNKNOWN
    address: Optional[str] = None

    @classmethod
    def from_link(cls, name: str, link: str) -> "WalletTarget":
        # Imported here: link_resolver imports this module
        from wallets.link_resolver import resolve

        resolved = resolve(link)
        return cls(name=name, link=link, platform=resolved.platform, address=resolved.address)


@dataclass(frozen=True)
class ExtractionResult:
    """Raw output of a platform extractor: the matched text, if any."""

    value: Optional[str]
    found: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class TokenHolding:
    """One row of the DeBank per-token breakdown."""

    name: str
    value: Decimal
    balance: Optional[str] = None


@dataclass(frozen=True)
class ScrapeResult:
    """Outcome of one scrape invocation. Never mutated; retries build a new one."""

    value: Optional[str]
    success: bool
    platform: str
    error: Optional[str] = None

    @classmethod
    def failure(cls, platform: str, error: str) -> "ScrapeResult":
        return cls(value=None, success=False, platform=platform, error=error)


@dataclass
class WalletHistoryEntry:
    """Last known balance of a wallet, keyed by wallet name in the history store."""

    name: str
    balance: str
    status: str
    last_updated: str = field(default_factory=utc_now_iso)
    platform: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def has_valid_balance(self) -> bool:
        value = safe_decimal_convert(self.balance)
        return value is not None and value >= 0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "balance": self.balance,
            "lastUpdated": self.last_updated,
            "status": self.status,
        }
        if self.platform is not None:
            data["platform"] = self.platform
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WalletHistoryEntry":
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            name=str(data["name"]),
            balance=str(data.get("balance", "")),
            last_updated=str(data.get("lastUpdated") or utc_now_iso()),
            status=str(data.get("status", STATUS_UNAVAILABLE)),
            platform=data.get("platform"),
        )


@dataclass(frozen=True)
class BalanceLookup:
    """Answer returned to the CRUD layer for a wallet balance lookup."""

    name: str
    value: Optional[str]
    status: str
    last_known_value: Optional[str] = None
    platform: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "status": self.status,
            "lastKnownValue": self.last_known_value,
            "platform": self.platform,
            "error": self.error,
        }


@dataclass
class BalanceLogEntry:
    wallet_name: str
    balance: str
    platform: str
    status: str
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "walletName": self.wallet_name,
            "balance": self.balance,
            "platform": self.platform,
            "timestamp": self.timestamp,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BalanceLogEntry":
        return cls(
            wallet_name=str(data["walletName"]),
            balance=str(data.get("balance", "")),
            platform=str(data.get("platform", "")),
            status=str(data.get("status", STATUS_UNAVAILABLE)),
            timestamp=str(data.get("timestamp") or utc_now_iso()),
        )
