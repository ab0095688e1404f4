"""
Price parsing and comparison.

Display prices in the sheets are free text: "1.5 Cr", "85 L", "₹50,000",
"20-50 L", "12000 per sq ft". parse_to_number turns any of them into rupees
so they can be sorted and range-filtered. Unparseable input parses to 0,
which callers treat as "unknown, sorts lowest" rather than "free".
"""

import math
import re
from typing import Optional

PRICE_ON_REQUEST = "Price on Request"

_CURRENCY = re.compile(r"₹|\brs\.?|\binr\b|\$", re.IGNORECASE)

# Checked in order; the first unit found in a piece of text applies to it
_UNITS = [
    (re.compile(r"(?<![a-z])(?:cr|crs|crore|crores)(?![a-z])", re.IGNORECASE), 10_000_000),
    (re.compile(r"(?<![a-z])(?:l|lakh|lakhs|lac|lacs)(?![a-z])", re.IGNORECASE), 100_000),
    (re.compile(r"(?<![a-z])k(?![a-z])", re.IGNORECASE), 1_000),
]

_FIRST_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_RANGE_SEPARATOR = re.compile(r"\s*(?:-|–|—|\bto\b)\s*", re.IGNORECASE)


def _unit_of(text: str) -> Optional[int]:
    for pattern, multiplier in _UNITS:
        if pattern.search(text):
            return multiplier
    return None


def _amount(text: str) -> Optional[tuple[float, Optional[int]]]:
    """(leading number, unit) of one side of a range, or None without a number."""
    match = _FIRST_NUMBER.search(text)
    if not match:
        return None
    return float(match.group()), _unit_of(text)


def parse_to_number(display: Optional[str]) -> float:
    """
    Parse a display price into rupees.

    Ranges parse to their lower bound. Each side of a range carries its own
    unit and a bare side borrows its partner's, so "20-50 L" sorts with
    "20 L" and "50 L - 1 Cr" with "50 L".
    Never raises; returns 0 for anything unparseable.
    """
    if display is None:
        return 0.0
    text = str(display).strip()
    if not text:
        return 0.0

    cleaned = _CURRENCY.sub("", text).replace(",", "")

    sides = _RANGE_SEPARATOR.split(cleaned, maxsplit=1)
    if len(sides) == 2:
        low, high = _amount(sides[0]), _amount(sides[1])
        if low is not None and high is not None:
            low_unit = low[1] or high[1] or 1
            high_unit = high[1] or low[1] or 1
            return round(min(low[0] * low_unit, high[0] * high_unit), 2)

    amount = _amount(cleaned)
    if amount is None:
        return 0.0
    return round(amount[0] * (_unit_of(text) or 1), 2)


def compare_prices(a: Optional[str], b: Optional[str]) -> int:
    """Comparator for display prices: negative, zero or positive."""
    left, right = parse_to_number(a), parse_to_number(b)
    return (left > right) - (left < right)


def price_sort_key(display: Optional[str]) -> float:
    """Sort key equivalent to compare_prices."""
    return parse_to_number(display)


def format_price(raw) -> str:
    """
    Display string for a raw price cell.

    Strings that already carry a currency or unit pass through. Plain
    numbers are scaled to Cr / L / K.
    """
    text = "" if raw is None else str(raw).strip()
    if not text:
        return PRICE_ON_REQUEST

    if "₹" in text or any(pattern.search(text) for pattern, _ in _UNITS[:2]):
        return text

    try:
        value = float(text.replace(",", ""))
    except ValueError:
        return text
    if not math.isfinite(value) or value < 0:
        return text

    if value >= 10_000_000:
        return f"{value / 10_000_000:.2f} Cr"
    if value >= 100_000:
        return f"{value / 100_000:.0f} L"
    if value >= 1_000:
        return f"{value / 1_000:g}K"
    return f"{value:g}"
