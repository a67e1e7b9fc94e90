"""Text formatting helpers shared by decoders and exporters."""

from __future__ import annotations

import math
from decimal import Decimal


def format_number(value: float) -> str:
    """Render a float the way preset editors display it.

    Integral values drop the fractional part ("-70", not "-70.0"), other
    values use the shortest round-trip digits without an exponent unless
    the magnitude is very small or very large.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))

    text = repr(value)
    if "e" not in text:
        return text
    if 1e-6 <= abs(value) < 1e21:
        return format(Decimal(text), "f")

    mantissa, exponent = text.split("e")
    sign = "-" if exponent.startswith("-") else "+"
    return f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0') or '0'}"


def rounded(value: float, digits: int = 2) -> float:
    """Round to ``digits`` decimals and normalise negative zero."""
    return round(value, digits) + 0.0
