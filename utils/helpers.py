# -*- coding: utf-8 -*-
"""
Utility functions for the DeFi Wallet Balance Tracker
Console log helpers (colored, optionally tagged by component) and small
number/format conversions shared across modules.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from utils.display_theme import theme


def _tagged(text: str, tag: Optional[str]) -> str:
    if not tag:
        return text
    return f"{theme.TAG}[{tag}]{theme.RESET} {text}"


def print_success(text: str, tag: Optional[str] = None):
    """Prints a success message."""
    print(f"{theme.SUCCESS}{theme.CHECKMARK}{theme.RESET} {_tagged(text, tag)}")


def print_error(text: str, tag: Optional[str] = None, is_network_issue: bool = False):
    """Prints an error message."""
    message = f"{theme.ERROR}{theme.CROSS} Error:{theme.RESET} {_tagged(text, tag)}"
    if is_network_issue:
        message += f"\n{theme.SUBTLE}   Network troubleshooting: Check connection and DNS settings{theme.RESET}"
    print(message)


def print_warning(text: str, tag: Optional[str] = None):
    """Prints a warning message."""
    print(f"{theme.WARNING}{theme.WARNING_SYMBOL} Warning:{theme.RESET} {_tagged(text, tag)}")


def print_info(text: str, tag: Optional[str] = None):
    """Prints an informational message."""
    print(f"{theme.INFO}{theme.INFO_SYMBOL}{theme.RESET} {_tagged(text, tag)}")


def print_subheader(text: str):
    """Prints a formatted subheader."""
    print(f"\n{theme.ACCENT}{text}{theme.RESET}")
    print(f"{theme.SUBTLE}{'─' * len(text)}{theme.RESET}")


def safe_float_convert(value: Any, default: float = 0.0) -> float:
    """Safely converts a value to float, returning default if conversion fails."""
    try:
        return float(value)
    except (ValueError, TypeError):
        return default


def safe_decimal_convert(value: Any) -> Optional[Decimal]:
    """Converts a plain decimal string (no separators) to Decimal, or None."""
    if value is None:
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def format_currency(value: Optional[Any], currency: str = "BRL", color: str = "") -> str:
    """Formats an amount with its currency symbol, handling None."""
    if value is None:
        return f"{theme.ERROR}N/A{theme.RESET}"
    symbols = {"BRL": "R$ ", "USD": "$", "EUR": "€"}
    amount = safe_float_convert(value)
    return f"{color or theme.SUCCESS}{symbols.get(currency, '')}{amount:,.2f}{theme.RESET}"


def format_status(status: str) -> str:
    """Colors a balance status label."""
    return f"{theme.status_color(status)}{status}{theme.RESET}"


def shorten_address(address: Optional[str]) -> str:
    """0x1234...abcd style display for long addresses / ids."""
    if not address:
        return "-"
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"
