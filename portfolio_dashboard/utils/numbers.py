"""
Numeric helpers shared by the market data adapters and the calculator.

All money math runs on Decimal. Floats coming from upstream libraries are
converted through ``str()`` so that ``2.005`` stays ``2.005`` instead of
its binary approximation ``2.00499999...``.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

Number = Union[Decimal, float, int, str]

_CURRENCY_SYMBOLS = re.compile(r"[₹$€£]")
_SEPARATORS = re.compile(r"[,\s]")
_LETTERS = re.compile(r"[A-Za-z]")


def to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    """Convert a number to Decimal. Returns None for None, NaN and infinities."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def round_to_decimals(value: Number, decimals: int = 2) -> Decimal:
    """
    Round half-up (away from zero on ties) to ``decimals`` places.

    2.005 -> 2.01, -2.005 -> -2.01, 1.005 -> 1.01
    """
    dec = to_decimal(value)
    if dec is None:
        raise ValueError(f"Cannot round non-finite value: {value!r}")
    quantum = Decimal(1).scaleb(-decimals)
    return dec.quantize(quantum, rounding=ROUND_HALF_UP)


def round_optional(value: Optional[Number], decimals: int = 2) -> Optional[Decimal]:
    if value is None:
        return None
    return round_to_decimals(value, decimals)


def calculate_percent_change(current_value: Decimal, original_value: Decimal) -> Decimal:
    """Percent change from original to current; 0 when original is 0."""
    if original_value == 0:
        return Decimal("0")
    return (current_value - original_value) / original_value * Decimal("100")


def extract_number(text: Optional[str]) -> Optional[Decimal]:
    """
    Pull a number out of scraped text such as "₹1,234.50" or "28.41x".
    Returns None if nothing numeric is left.
    """
    if not text:
        return None
    cleaned = _CURRENCY_SYMBOLS.sub("", text)
    cleaned = _SEPARATORS.sub("", cleaned)
    cleaned = _LETTERS.sub("", cleaned).strip()
    match = re.match(r"^[-+]?\d*\.?\d+", cleaned)
    if not match:
        return None
    return to_decimal(match.group(0))
