"""Platform → extractor registry used by the scrape coordinator."""

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from playwright.async_api import Page

from models.wallet_models import ExtractionResult, Platform
from scrapers.debank_scraper import extract_debank_net_worth
from scrapers.explorer_scraper import extract_explorer_value
from scrapers.jupiter_scraper import NOT_IMPLEMENTED, extract_jupiter_net_worth

PageExtractor = Callable[[Page], Awaitable[ExtractionResult]]


@dataclass(frozen=True)
class PlatformExtractor:
    platform: Platform
    extract: PageExtractor
    implemented: bool = True
    unavailable_reason: Optional[str] = None


EXTRACTORS: Dict[Platform, PlatformExtractor] = {
    Platform.DEBANK: PlatformExtractor(Platform.DEBANK, extract_debank_net_worth),
    Platform.JUP: PlatformExtractor(
        Platform.JUP, extract_jupiter_net_worth, implemented=False, unavailable_reason=NOT_IMPLEMENTED
    ),
    Platform.ETHERSCAN: PlatformExtractor(Platform.ETHERSCAN, extract_explorer_value),
    Platform.BLOCKSCOUT: PlatformExtractor(Platform.BLOCKSCOUT, extract_explorer_value),
    Platform.GENERIC_EXPLORER: PlatformExtractor(Platform.GENERIC_EXPLORER, extract_explorer_value),
}


def get_extractor(platform: Platform) -> Optional[PlatformExtractor]:
    """None for platforms with no extractor (Unknown)."""
    return EXTRACTORS.get(platform)


def register_extractor(extractor: PlatformExtractor) -> None:
    EXTRACTORS[extractor.platform] = extractor
