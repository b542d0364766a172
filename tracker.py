# -*- coding: utf-8 -*-
"""
DeFi Wallet Balance Tracker
---------------------------
Command line front end for the wallet balance service. Looks up the net worth
behind DeBank / Jup.ag / block explorer links with a headless browser, keeps
the last known BRL balance per wallet in data/wallet-history.json and backs
that file up to the git remote.

Requirements:
- Python 3.10+
- pip install -e .
- playwright install chromium

Usage:
    python tracker.py resolve https://debank.com/profile/0x...
    python tracker.py rates --amount 1000 --currency USD
    python tracker.py lookup "Main wallet" https://debank.com/profile/0x...
    python tracker.py tokens https://debank.com/profile/0x...
    python tracker.py refresh wallets.json
    python tracker.py history
    python tracker.py stats "Main wallet"
    python tracker.py prune wallets.json
"""

import argparse
import asyncio
import json
import sys
import traceback
from decimal import Decimal, InvalidOperation
from typing import Dict, List

from colorama import init
from tabulate import tabulate

from config.constants import APP_VERSION, BALANCE_LOG_FILE, SUPPORTED_CURRENCIES, TABLE_FORMAT, WALLET_HISTORY_FILE
from core.wallet_service import WalletBalanceService
from models.balance_log import BalanceLog
from models.wallet_history import HistoryStore
from models.wallet_models import BalanceLookup, WalletTarget
from utils.exchange_rates import ExchangeRateCache
from utils.helpers import (
    format_currency,
    format_status,
    print_error,
    print_info,
    print_subheader,
    print_warning,
    shorten_address,
)
from wallets.browser_session import BrowserSessionManager
from wallets.link_resolver import resolve

init(autoreset=True)


def load_wallet_list(path: str) -> List[Dict[str, str]]:
    """Reads a JSON array of {"name": ..., "link": ...} objects."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of wallets")
    wallets = []
    for item in data:
        if not isinstance(item, dict) or not item.get("name") or not item.get("link"):
            print_warning(f"Skipping wallet without name/link: {item!r}")
            continue
        wallets.append({"name": str(item["name"]), "link": str(item["link"])})
    return wallets


def print_lookups(lookups: List[BalanceLookup]) -> None:
    rows = [
        [
            lookup.name,
            lookup.platform or "-",
            format_status(lookup.status),
            format_currency(lookup.value) if lookup.value else "-",
            format_currency(lookup.last_known_value) if lookup.last_known_value else "-",
            lookup.error or "",
        ]
        for lookup in lookups
    ]
    headers = ["Wallet", "Platform", "Status", "Balance", "Last known", "Error"]
    print(tabulate(rows, headers=headers, tablefmt=TABLE_FORMAT))


def build_service(args: argparse.Namespace) -> WalletBalanceService:
    return WalletBalanceService(
        history_file=args.history_file,
        balance_log_file=args.balance_log,
        browser=BrowserSessionManager(headless=not args.headful),
        enable_sync=not args.no_sync,
    )


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


async def cmd_resolve(args: argparse.Namespace) -> int:
    resolved = resolve(args.link)
    print(
        tabulate(
            [[resolved.platform.value, resolved.address or "-", "yes" if resolved.parsed else "no"]],
            headers=["Platform", "Address", "Parsed"],
            tablefmt=TABLE_FORMAT,
        )
    )
    return 0


async def cmd_rates(args: argparse.Namespace) -> int:
    cache = ExchangeRateCache()
    snapshot = await cache.get_rates()
    print_subheader(f"Exchange rates (BRL per unit, fetched {snapshot.fetched_at:%Y-%m-%d %H:%M} UTC)")
    rows = [[currency, f"{rate:.4f}"] for currency, rate in snapshot.as_dict().items()]
    print(tabulate(rows, headers=["Currency", "BRL"], tablefmt=TABLE_FORMAT))

    if args.amount is not None:
        try:
            amount = Decimal(args.amount)
        except InvalidOperation:
            print_error(f"Invalid amount: {args.amount}")
            return 1
        currency = args.currency.upper()
        brl = await cache.to_brl(amount, currency)
        print_info(f"{amount} {currency} = {format_currency(brl)}")
    return 0


async def cmd_lookup(args: argparse.Namespace) -> int:
    service = build_service(args)
    await service.start()
    try:
        lookup = await service.coordinator.lookup_balance(args.name, args.link)
    finally:
        await service.stop()
    print_lookups([lookup])
    if args.json:
        print(json.dumps(lookup.to_dict(), indent=2))
    return 0


async def cmd_tokens(args: argparse.Namespace) -> int:
    service = build_service(args)
    await service.start()
    try:
        holdings = await service.coordinator.scrape_tokens(WalletTarget.from_link("tokens", args.link))
    finally:
        await service.stop()
    if not holdings:
        print_warning("No token rows found")
        return 0
    rows = [[h.name, h.balance or "-", format_currency(h.value, "USD")] for h in holdings]
    print(tabulate(rows, headers=["Token", "Amount", "Value"], tablefmt=TABLE_FORMAT))
    return 0


async def cmd_refresh(args: argparse.Namespace) -> int:
    wallets = load_wallet_list(args.wallets)
    if not wallets:
        print_warning("Wallet list is empty")
        return 0
    service = build_service(args)
    await service.start()
    try:
        lookups = await service.coordinator.refresh_all(wallets)
    finally:
        await service.stop()
    print_lookups(lookups)
    return 0


async def cmd_history(args: argparse.Namespace) -> int:
    entries = HistoryStore(args.history_file).load()
    if not entries:
        print_info("Wallet history is empty")
        return 0
    rows = [
        [
            entry.name,
            entry.platform or "-",
            format_status(entry.status),
            format_currency(entry.balance) if entry.balance else "-",
            entry.last_updated,
            shorten_address(entry.id),
        ]
        for entry in sorted(entries.values(), key=lambda e: e.name.lower())
    ]
    print(tabulate(rows, headers=["Wallet", "Platform", "Status", "Balance", "Updated", "Id"], tablefmt=TABLE_FORMAT))
    return 0


async def cmd_stats(args: argparse.Namespace) -> int:
    log = BalanceLog(args.balance_log)
    stats = log.get_wallet_stats(args.name)
    if stats is None:
        print_warning(f"No successful lookups logged for {args.name}")
        return 0

    print_subheader(f"{args.name} ({stats['samples']} samples)")
    rows = [
        ["Current", format_currency(stats["current"])],
        ["Min", format_currency(stats["min"])],
        ["Max", format_currency(stats["max"])],
        ["Average", format_currency(stats["average"])],
        ["Change", f"{format_currency(stats['change'])} ({stats['change_percent']}%)"],
    ]
    print(tabulate(rows, tablefmt=TABLE_FORMAT))

    history = log.get_wallet_history(args.name, limit=args.limit)
    rows = [[e.timestamp, format_status(e.status), format_currency(e.balance) if e.balance else "-"] for e in history]
    print(tabulate(rows, headers=["Timestamp", "Status", "Balance"], tablefmt=TABLE_FORMAT))
    return 0


async def cmd_prune(args: argparse.Namespace) -> int:
    active = [wallet["name"] for wallet in load_wallet_list(args.wallets)]
    removed = await HistoryStore(args.history_file).prune(active)
    print_info(f"Removed {removed} stale entr{'y' if removed == 1 else 'ies'}")
    return 0


COMMANDS = {
    "resolve": cmd_resolve,
    "rates": cmd_rates,
    "lookup": cmd_lookup,
    "tokens": cmd_tokens,
    "refresh": cmd_refresh,
    "history": cmd_history,
    "stats": cmd_stats,
    "prune": cmd_prune,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DeFi Wallet Balance Tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python tracker.py lookup "Main" https://debank.com/profile/0xabc...
  python tracker.py refresh wallets.json --no-sync
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    parser.add_argument("--history-file", default=WALLET_HISTORY_FILE, help="Wallet history JSON file")
    parser.add_argument("--balance-log", default=BALANCE_LOG_FILE, help="Rolling balance log JSON file")
    parser.add_argument("--no-sync", action="store_true", help="Do not pull/push the history file with git")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("resolve", help="Identify the platform and address of a wallet link")
    p.add_argument("link")

    p = sub.add_parser("rates", help="Show the cached exchange rates")
    p.add_argument("--amount", help="Amount to convert to BRL")
    p.add_argument("--currency", default="USD", choices=SUPPORTED_CURRENCIES)

    p = sub.add_parser("lookup", help="Scrape one wallet and update its history entry")
    p.add_argument("name")
    p.add_argument("link")
    p.add_argument("--json", action="store_true", help="Also print the lookup as JSON")

    p = sub.add_parser("tokens", help="Per-token breakdown of a DeBank profile")
    p.add_argument("link")

    p = sub.add_parser("refresh", help="Look up every wallet in a JSON list")
    p.add_argument("wallets", help='JSON array of {"name": ..., "link": ...}')

    sub.add_parser("history", help="Show the stored wallet history")

    p = sub.add_parser("stats", help="Balance statistics from the rolling log")
    p.add_argument("name")
    p.add_argument("--limit", type=int, default=10)

    p = sub.add_parser("prune", help="Drop history entries for wallets no longer in the list")
    p.add_argument("wallets", help='JSON array of {"name": ..., "link": ...}')

    return parser


async def main_async(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return await COMMANDS[args.command](args)


def main() -> None:
    try:
        sys.exit(asyncio.run(main_async()))
    except KeyboardInterrupt:
        print("\nOperation cancelled by user. Exiting.")
    except (OSError, ValueError) as e:
        print_error(str(e))
        sys.exit(1)
    except Exception as e:
        print_error(f"An unexpected critical error occurred: {e}")
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
