# -*- coding: utf-8 -*-
"""
Configuration constants for the DeFi Wallet Balance Tracker
Endpoints, timeouts, file locations and the selector lists used to read
client-rendered portfolio pages.
"""

import os


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Exchange rate API (free tier, USD pivot)
EXCHANGE_RATE_API_URL = "https://api.exchangerate-api.com/v4/latest"
EXCHANGE_RATE_BASE = "USD"
EXCHANGE_RATE_CACHE_SECONDS = 30 * 60
EXCHANGE_RATE_REQUEST_TIMEOUT = 10
DEFAULT_EXCHANGE_RATES = {"USD": "5.5", "EUR": "6.0", "BRL": "1"}
SUPPORTED_CURRENCIES = ["BRL", "USD", "EUR"]
PIVOT_CURRENCY = "BRL"

# Scraped USD values are converted with a USD->BRL rate inside this band,
# otherwise the fallback rate is used
USD_BRL_SANITY_RANGE = (3.0, 7.0)
USD_BRL_FALLBACK_RATE = "5.5"

# Browser / navigation policy
NAVIGATION_TIMEOUT_SECONDS = 55
SETTLE_DELAY_SECONDS = _env_float("WALLET_TRACKER_SETTLE_SECONDS", 20.0)
EXTRACTION_MARGIN_SECONDS = 15
BROWSER_LAUNCH_TIMEOUT_SECONDS = 30
BROWSER_VIEWPORT = {"width": 1920, "height": 1080}
BROWSER_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--disable-extensions",
]
BROWSER_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]
BROWSER_EXTRA_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}
# Hides the most common automation fingerprints before any page script runs
STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = window.chrome || { runtime: {} };
"""
LOGIN_REDIRECT_MARKERS = ["login", "auth"]

# DeBank net worth extraction windows
DEBANK_HEADLINE_SCAN_LINES = 30
DEBANK_FALLBACK_SCAN_LINES = 50
DEBANK_MAX_PLAUSIBLE_VALUE = 10_000_000
EXPLORER_MIN_VALUE = 10

# DeBank class names are generated at build time and change between
# deployments, so every cell is looked up through an ordered fallback list
DEBANK_TOKEN_ROW_SELECTORS = [
    ".db-table-wrappedRow",
    '[class*="TokenWallet_table"] [class*="table_contentRow"]',
    '[class*="table_contentRow"]',
    '[class*="db-table-row"]',
]
DEBANK_TOKEN_NAME_SELECTORS = [
    "a.TokenWallet_detailLink__goYJR",
    '[class*="TokenWallet_detailLink"]',
    '[class*="token_name"]',
    '[class*="tokenName"]',
]
DEBANK_TOKEN_BALANCE_SELECTORS = [
    '[class*="TokenWallet_amount"]',
    '[class*="table_amount"]',
    ".db-table-cell:nth-child(3)",
]
DEBANK_TOKEN_VALUE_SELECTORS = [
    '[class*="TokenWallet_usdValue"]',
    '[class*="table_usdValue"]',
    ".db-table-cell:nth-child(4)",
    ".db-table-cell:last-child",
]

# Refresh cycle
MIN_WALLET_REFRESH_INTERVAL_SECONDS = 60
INTER_WALLET_DELAY_SECONDS = 20
MAX_CONSECUTIVE_FAILURES = 3

# File and Directory Constants
DATA_DIR = "data"
WALLET_HISTORY_FILE = os.environ.get(
    "WALLET_TRACKER_HISTORY_FILE", os.path.join(DATA_DIR, "wallet-history.json")
)
BALANCE_LOG_FILE = os.path.join(DATA_DIR, "wallet-cache.json")
BALANCE_LOG_ENTRIES_PER_WALLET = 20

# Git backup channel
GIT_REMOTE = os.environ.get("WALLET_TRACKER_GIT_REMOTE", "origin")
GIT_BRANCH = os.environ.get("WALLET_TRACKER_GIT_BRANCH", "main")
GIT_COMMAND_TIMEOUT_SECONDS = 60
GIT_AUTHOR_NAME = "Wallet Tracker Bot"
GIT_AUTHOR_EMAIL = "wallet-tracker@localhost"
# Markers of a managed hosting environment where git push would prompt for
# credentials
MANAGED_HOST_ENV_MARKERS = ["REPL_ID"]
GIT_SYNC_DISABLE_ENV = "WALLET_TRACKER_DISABLE_GIT_SYNC"

APP_VERSION = "1.0.0"
TABLE_FORMAT = "fancy_grid"
