"""Numeric coercion helpers shared by providers and the bar normalizer."""

import math
from decimal import Decimal
from typing import Any


def to_number(value: Any) -> float | None:
    """Coerce a raw numeric field to a finite float.

    Accepts ints, floats, Decimals and numeric strings with thousands
    separators (e.g. "1,234.5", as quoted by Taiwan exchanges).

    Returns:
        The float value, or None if the input is missing, non-numeric,
        NaN, infinite or too large for a float.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            # ints beyond the float range, signalling Decimal NaN
            return None
    else:
        text = str(value).replace(",", "").strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None

    if not math.isfinite(number):
        return None
    return number


def safe_round(value: float | None, digits: int) -> float | None:
    """Round a value for display, passing None through."""
    if value is None or not math.isfinite(value):
        return None
    return round(value, digits)
