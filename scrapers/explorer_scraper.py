# -*- coding: utf-8 -*-
"""
Block explorer extractor (Etherscan, Blockscout and other address pages).

Explorer layouts differ per chain, so the value is read opportunistically:
the largest $ amount on the page within a plausible range.
"""

from typing import List, Optional, Sequence

from playwright.async_api import Page

from config.constants import DEBANK_MAX_PLAUSIBLE_VALUE, EXPLORER_MIN_VALUE
from models.wallet_models import ExtractionResult
from scrapers.strategies import TextStrategy, dollar_amounts, run_text_strategies


def largest_dollar_amount(lines: Sequence[str]) -> Optional[str]:
    best_raw, best_value = None, None
    for raw, value in dollar_amounts("\n".join(lines)):
        if not (EXPLORER_MIN_VALUE <= value < DEBANK_MAX_PLAUSIBLE_VALUE):
            continue
        if best_value is None or value > best_value:
            best_raw, best_value = raw, value
    return best_raw


EXPLORER_STRATEGIES: List[TextStrategy] = [largest_dollar_amount]


def extract_explorer_value_from_text(text: Optional[str]) -> ExtractionResult:
    return run_text_strategies(text, EXPLORER_STRATEGIES)


async def extract_explorer_value(page: Page) -> ExtractionResult:
    return extract_explorer_value_from_text(await page.inner_text("body"))
