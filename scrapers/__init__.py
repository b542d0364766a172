"""Per-platform balance extractors."""

from .debank_scraper import extract_debank_net_worth, extract_debank_tokens, extract_net_worth_from_text
from .registry import EXTRACTORS, PlatformExtractor, get_extractor, register_extractor
from .strategies import parse_decimal

__all__ = [
    "EXTRACTORS",
    "PlatformExtractor",
    "extract_debank_net_worth",
    "extract_debank_tokens",
    "extract_net_worth_from_text",
    "get_extractor",
    "parse_decimal",
    "register_extractor",
]
