"""Rounding and coercion helpers for currency amounts."""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    ``round`` uses banker's rounding, which would make 2.5 and 3.5 land on the
    same even number and drift totals computed from rate tables.
    """

    return int(Decimal(repr(float(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def coerce_amount(value: Any) -> int:
    """Turn an upstream amount into a non-negative integer.

    Accepts ints, floats and numeric strings (thousands separators and a
    leading currency code are tolerated). Anything else counts as 0.
    """

    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        for prefix in ("PKR", "Rs.", "Rs"):
            if cleaned.upper().startswith(prefix.upper()):
                cleaned = cleaned[len(prefix):].strip()
                break
        try:
            value = float(cleaned)
        except ValueError:
            return 0
    if not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(0, round_half_up(value))
