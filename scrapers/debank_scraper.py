#!/usr/bin/env python3
"""
DeBank Scraper

Reads the net worth and the per-token breakdown from a rendered DeBank
profile page. DeBank is a client-rendered SPA with build-generated CSS class
names, so the net worth is read from the visible text and the token table is
located through ordered selector fallback lists.
"""

import re
from decimal import Decimal
from typing import List, Optional, Sequence

from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError

from config.constants import (
    DEBANK_FALLBACK_SCAN_LINES,
    DEBANK_HEADLINE_SCAN_LINES,
    DEBANK_MAX_PLAUSIBLE_VALUE,
    DEBANK_TOKEN_BALANCE_SELECTORS,
    DEBANK_TOKEN_NAME_SELECTORS,
    DEBANK_TOKEN_ROW_SELECTORS,
    DEBANK_TOKEN_VALUE_SELECTORS,
)
from models.wallet_models import ExtractionResult, TokenHolding
from scrapers.strategies import TextStrategy, run_text_strategies, try_parse_decimal
from utils.helpers import print_info, print_warning

TAG = "DeBank"

# "$12,345.67  +2.3%" / "$12,345.67 -0.41%": net worth with its 24h change
HEADLINE_PATTERN = re.compile(r"^\$\s?([\d,]+(?:\.\d+)?)\s+[+-]?\d+(?:\.\d+)?%")
LEADING_DOLLAR_PATTERN = re.compile(r"^\$\s?([\d,]+(?:\.\d+)?)")


def headline_with_change(lines: Sequence[str]) -> Optional[str]:
    """First pass: the headline net worth line, which carries a 24h % change."""
    for line in lines[:DEBANK_HEADLINE_SCAN_LINES]:
        match = HEADLINE_PATTERN.match(line)
        if match:
            return match.group(1)
    return None


def plausible_leading_dollar(lines: Sequence[str]) -> Optional[str]:
    """Second pass: first line starting with a plausible $ amount."""
    for line in lines[:DEBANK_FALLBACK_SCAN_LINES]:
        match = LEADING_DOLLAR_PATTERN.match(line)
        if not match:
            continue
        value = try_parse_decimal(match.group(1))
        if value is not None and 0 < value < DEBANK_MAX_PLAUSIBLE_VALUE:
            return match.group(1)
    return None


NET_WORTH_STRATEGIES: List[TextStrategy] = [headline_with_change, plausible_leading_dollar]


def extract_net_worth_from_text(text: Optional[str]) -> ExtractionResult:
    return run_text_strategies(text, NET_WORTH_STRATEGIES)


async def extract_debank_net_worth(page: Page) -> ExtractionResult:
    text = await page.inner_text("body")
    result = extract_net_worth_from_text(text)
    if result.found:
        print_info(f"Net worth text found: ${result.value}", tag=TAG)
    else:
        print_warning("No net worth line in the first page lines", tag=TAG)
    return result


async def _first_text(element: ElementHandle, selectors: Sequence[str]) -> Optional[str]:
    for selector in selectors:
        try:
            cell = await element.query_selector(selector)
            if cell is None:
                continue
            text = (await cell.inner_text()).strip()
        except PlaywrightError:
            continue
        if text:
            return text
    return None


async def _token_rows(page: Page) -> List[ElementHandle]:
    for selector in DEBANK_TOKEN_ROW_SELECTORS:
        try:
            rows = await page.query_selector_all(selector)
        except PlaywrightError:
            continue
        if rows:
            return rows
    return []


def _first_amount(text: str) -> Optional[Decimal]:
    # Value cells may carry extra lines (price change, chain label)
    for line in text.splitlines():
        value = try_parse_decimal(line)
        if value is not None:
            return value
    return None


async def extract_debank_tokens(page: Page) -> List[TokenHolding]:
    """
    Per-token breakdown of the wallet table.

    A row counts only when both its name and value cells resolve and the
    value is a positive number. No matching rows is a valid, empty result.
    """
    holdings: List[TokenHolding] = []
    for row in await _token_rows(page):
        name = await _first_text(row, DEBANK_TOKEN_NAME_SELECTORS)
        value_text = await _first_text(row, DEBANK_TOKEN_VALUE_SELECTORS)
        if not name or not value_text:
            continue
        value = _first_amount(value_text)
        if value is None or value <= 0:
            continue
        balance = await _first_text(row, DEBANK_TOKEN_BALANCE_SELECTORS)
        holdings.append(TokenHolding(name=name, value=value, balance=balance))

    print_info(f"Found {len(holdings)} token rows", tag=TAG)
    return holdings
