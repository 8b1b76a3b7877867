"""
Funding amount parsing for free-text grant and funder figures.

Handles the formats found in grant listings and funder profiles:
- "$50K" -> 50_000
- "$500K - $1M" -> min 500_000, max 1_000_000
- "Up to $30M" -> 30_000_000
- "$1,200,000" -> 1_200_000
- "£4 million" -> 4_000_000 (GBP)
- "Varies", "Not specified", "" -> 0 (unknown)

Zero is the "unknown" sentinel, never a literal zero-dollar amount.
"""

import re
from typing import Iterable, List, Optional, Union

from ..models.records import FundingRange

# Magnitude multipliers
_MAGNITUDE_MAP = {
    "k": 1_000,
    "m": 1_000_000,
    "b": 1_000_000_000,
    "bn": 1_000_000_000,
    "thousand": 1_000,
    "million": 1_000_000,
    "billion": 1_000_000_000,
}

_NUMBER = re.compile(r"\d[\d,]*(?:\.\d+)?")
# A suffix only counts when no letter follows it: "10 months" is 10, not 10M
_SUFFIX = re.compile(r"\s*(thousand|million|billion|bn|k|m|b)(?![a-z])", re.IGNORECASE)
_UP_TO = re.compile(r"up\s+to", re.IGNORECASE)

_CURRENCY_SYMBOLS = {"$": "USD", "£": "GBP", "€": "EUR"}
DEFAULT_CURRENCY = "USD"


def _amounts(text) -> List[float]:
    """Every numeric token in text with its own magnitude applied."""
    if not isinstance(text, str) or not text.strip():
        return []

    cleaned = _UP_TO.sub(" ", text)
    values = []
    for match in _NUMBER.finditer(cleaned):
        try:
            value = float(match.group(0).replace(",", ""))
        except ValueError:
            continue

        suffix = _SUFFIX.match(cleaned, match.end())
        if suffix:
            value *= _MAGNITUDE_MAP[suffix.group(1).lower()]
        values.append(value)
    return values


def parse_amount(text) -> float:
    """Value of the leading amount in text, 0 when there is none."""
    values = _amounts(text)
    return values[0] if values else 0


def parse_min(text) -> float:
    values = _amounts(text)
    return min(values) if values else 0


def parse_max(text) -> float:
    values = _amounts(text)
    return max(values) if values else 0


def detect_currency(text) -> str:
    if isinstance(text, str):
        for symbol, code in _CURRENCY_SYMBOLS.items():
            if symbol in text:
                return code
    return DEFAULT_CURRENCY


def parse_range(text) -> FundingRange:
    """Normalize a free-text funding label into a numeric range.

    Examples:
        "$500K - $1M" -> FundingRange(min=500000, max=1000000, currency="USD")
        "Varies" -> FundingRange(min=0, max=0), which reports is_unknown
    """
    values = _amounts(text)
    label = text if isinstance(text, str) else ""
    if not values:
        return FundingRange(min=0, max=0, currency=detect_currency(text), label=label)
    return FundingRange(
        min=min(values),
        max=max(values),
        currency=detect_currency(text),
        label=label,
    )


def format_funding(amount: Union[float, int, str, None]) -> str:
    """
    Format an amount for display.

    Examples:
        5_000_000 -> "$5M"
        1_500_000 -> "$1.5M"
        250_000 -> "$250,000"
        "Varies" -> "Varies"
    """
    if isinstance(amount, str):
        try:
            amount = float(amount.replace(",", ""))
        except ValueError:
            return amount
    if amount is None:
        return "Not specified"

    if amount >= 1_000_000:
        millions = re.sub(r"\.0$", "", f"{amount / 1_000_000:.1f}")
        return f"${millions}M"
    if float(amount).is_integer():
        return f"${int(amount):,}"
    return f"${amount:,.2f}"


def total_available_funding(grants: Iterable, today=None) -> float:
    """Sum of the maximum award over active grants with a known amount."""
    total = 0.0
    for grant in grants:
        funding: Optional[FundingRange] = getattr(grant, "funding", None)
        if funding is None or funding.is_unknown:
            continue
        if not grant.is_active(today):
            continue
        total += funding.max
    return total
