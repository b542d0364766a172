# -*- coding: utf-8 -*-
"""
Extraction strategy helpers shared by the platform scrapers.

A strategy is a pure function from the visible page lines to an optional raw
value. Strategies are kept in ordered lists and tried until one matches.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from models.wallet_models import ExtractionResult
from wallets.errors import ParseFailureError

TextStrategy = Callable[[Sequence[str]], Optional[str]]

_NUMBER_CHARS = re.compile(r"[\s$,]")
DOLLAR_AMOUNT_PATTERN = re.compile(r"\$\s?([\d,]+(?:\.\d+)?)")


def visible_lines(text: Optional[str]) -> List[str]:
    """Splits rendered page text into trimmed, non-empty lines."""
    if not text:
        return []
    return [line.strip() for line in text.splitlines() if line.strip()]


def parse_decimal(raw: Optional[str]) -> Decimal:
    """
    Parses a US-formatted amount such as "$1,234.56" or "54,188".

    Raises ParseFailureError for anything that is not a finite number.
    """
    if raw is None:
        raise ParseFailureError("No value to parse")
    cleaned = _NUMBER_CHARS.sub("", str(raw))
    if not cleaned:
        raise ParseFailureError(f"Not a number: {raw!r}")
    try:
        value = Decimal(cleaned)
    except InvalidOperation as e:
        raise ParseFailureError(f"Not a number: {raw!r}") from e
    if not value.is_finite():
        raise ParseFailureError(f"Not a number: {raw!r}")
    return value


def try_parse_decimal(raw: Optional[str]) -> Optional[Decimal]:
    try:
        return parse_decimal(raw)
    except ParseFailureError:
        return None


def dollar_amounts(text: str) -> Iterable[Tuple[str, Decimal]]:
    """Yields (raw, value) for every $-prefixed amount in text."""
    for match in DOLLAR_AMOUNT_PATTERN.finditer(text):
        value = try_parse_decimal(match.group(1))
        if value is not None:
            yield match.group(1), value


def run_text_strategies(text: Optional[str], strategies: Sequence[TextStrategy]) -> ExtractionResult:
    lines = visible_lines(text)
    for strategy in strategies:
        value = strategy(lines)
        if value is not None:
            return ExtractionResult(value=value, found=True)
    return ExtractionResult(value=None, found=False)
