# -*- coding: utf-8 -*-
"""
Link Resolver
-------------
Maps a user-supplied portfolio link to the platform that renders it and the
wallet address (or portfolio id) it refers to. Rules are hostname based and
ordered; the first matching rule wins.
"""

import re
from typing import Callable, List, Optional, Tuple
from urllib.parse import ParseResult, parse_qs, unquote, urlparse

from models.wallet_models import Platform, ResolvedLink
from wallets.errors import LinkUnparseableError

EVM_ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}")
_STRICT_EVM_ADDRESS = re.compile(r"^0x[a-fA-F0-9]{40}$")
_ADDRESS_PATH_PATTERN = re.compile(r"/address/(0x[a-fA-F0-9]{40})(?![a-fA-F0-9])")
_ADDRESS_QUERY_KEYS = ("address", "a")

UNKNOWN = ResolvedLink(platform=Platform.UNKNOWN, address=None)


def parse_link(link: str) -> ParseResult:
    """Parses a link as an absolute http(s) URL, raising LinkUnparseableError."""
    if not isinstance(link, str) or not link.strip():
        raise LinkUnparseableError("Empty link")
    try:
        parsed = urlparse(link.strip())
        # Accessing .port validates the netloc
        parsed.port
    except ValueError as e:
        raise LinkUnparseableError(f"Malformed link: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise LinkUnparseableError(f"Not an http(s) URL: {link!r}")
    return parsed


def _jupiter_portfolio_id(parsed: ParseResult) -> Optional[str]:
    segments = [s for s in unquote(parsed.path).split("/") if s]
    for index, segment in enumerate(segments[:-1]):
        if segment.lower() == "portfolio":
            return segments[index + 1]
    return None


def _address_in_path(parsed: ParseResult) -> Optional[str]:
    match = EVM_ADDRESS_PATTERN.search(unquote(parsed.path))
    return match.group(0) if match else None


def _explorer_address(parsed: ParseResult) -> Optional[str]:
    match = _ADDRESS_PATH_PATTERN.search(unquote(parsed.path))
    return match.group(1) if match else None


def _address_in_query(parsed: ParseResult) -> Optional[str]:
    params = parse_qs(parsed.query)
    for key in _ADDRESS_QUERY_KEYS:
        for value in params.get(key, []):
            if _STRICT_EVM_ADDRESS.match(value.strip()):
                return value.strip()
    return None


# (host keywords, platform, address extractor)
HostRule = Tuple[Tuple[str, ...], Platform, Callable[[ParseResult], Optional[str]]]

HOST_RULES: List[HostRule] = [
    (("jup.ag",), Platform.JUP, _jupiter_portfolio_id),
    (("debank",), Platform.DEBANK, _address_in_path),
    (("etherscan", "ethers", "blockscan"), Platform.ETHERSCAN, _explorer_address),
    (("blockscout",), Platform.BLOCKSCOUT, _explorer_address),
    (("polygonscan", "arbiscan", "optimistic"), Platform.GENERIC_EXPLORER, _explorer_address),
]


def resolve(link: str) -> ResolvedLink:
    """
    Classifies a wallet link. Never raises.

    Returns platform Unknown with no address when the link is malformed or
    nothing recognizable is found; callers treat that as "cannot scrape".
    """
    try:
        parsed = parse_link(link)
    except LinkUnparseableError:
        return ResolvedLink(platform=Platform.UNKNOWN, address=None, parsed=False)

    host = parsed.hostname.lower()
    for keywords, platform, extract in HOST_RULES:
        if any(keyword in host for keyword in keywords):
            address = extract(parsed)
            if address:
                return ResolvedLink(platform=platform, address=address)
            # A known host without an address is not usable
            return UNKNOWN

    address = _address_in_path(parsed) or _address_in_query(parsed)
    if address:
        return ResolvedLink(platform=Platform.GENERIC_EXPLORER, address=address)
    return UNKNOWN
