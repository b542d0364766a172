# -*- coding: utf-8 -*-
"""
Wallet Tracker Errors
---------------------
Failure taxonomy for the balance scraping pipeline. Scraping errors are
caught at the coordinator and returned as data (ScrapeResult.error); only
code below the coordinator raises them.
"""

from typing import Optional


class WalletTrackerError(Exception):
    """Base class for wallet tracker failures."""

    code = "wallet_tracker_error"
    default_message = "Wallet tracker error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class LinkUnparseableError(WalletTrackerError):
    code = "link_unparseable"
    default_message = "Link could not be parsed"


class PlatformUnsupportedError(WalletTrackerError):
    code = "platform_unsupported"
    default_message = "Unsupported platform"


class BrowserUnavailableError(WalletTrackerError):
    code = "browser_unavailable"
    default_message = "Browser not available"


class NavigationTimeoutError(WalletTrackerError):
    code = "navigation_timeout"
    default_message = "Navigation timed out"


class ValueNotFoundError(WalletTrackerError):
    code = "value_not_found"
    default_message = "Balance not found on page"


class ParseFailureError(WalletTrackerError):
    code = "parse_failure"
    default_message = "Matched text is not a valid number"


class SyncFailureError(WalletTrackerError):
    """Raised inside git sync; always caught and logged by GitSync."""

    code = "sync_failure"
    default_message = "Remote sync failed"
