"""Jup.ag portfolio extractor (no public API, no DOM scraper yet)."""

from playwright.async_api import Page

from models.wallet_models import ExtractionResult

NOT_IMPLEMENTED = "Not implemented"


async def extract_jupiter_net_worth(page: Page) -> ExtractionResult:
    return ExtractionResult(value=None, found=False, error=NOT_IMPLEMENTED)
