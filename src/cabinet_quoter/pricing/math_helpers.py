"""Utility helpers for money rounding and the pricing ladder."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import logging
import math

from cabinet_quoter.domain_models.values import safe_float as _safe_float

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_DOLLAR = Decimal("1")


def _quantize(value: Any, step: Decimal) -> float:
    numeric = _safe_float(value, 0.0)
    try:
        # quantize the shortest repr so 2.675 rounds to 2.68
        quantized = Decimal(repr(numeric)).quantize(step, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return 0.0
    return float(quantized)


def round_money(value: float | int | str | None) -> float:
    """Round ``value`` half-up to whole cents."""

    return _quantize(value, _CENT)


def round_dollars(value: float | int | str | None) -> float:
    """Round ``value`` half-up to whole dollars."""

    return _quantize(value, _DOLLAR)


def format_price(value: float | int | str | None, *, symbol: str = "$") -> str:
    """Format ``value`` the way the shop renders AUD amounts, e.g. ``$1,234.50``."""

    amount = round_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def compute_pricing_ladder(
    subtotal: float | int | str | None,
    *,
    wastage_factor: float | int | str | None = 0.0,
    markup_pct: float | int | str | None = 0.0,
    gst_rate: float | int | str | None = 0.0,
) -> dict[str, float]:
    """Return cumulative totals for each step of the pricing ladder.

    The ladder applies wastage, then markup, then GST.  Every intermediate
    amount is rounded to cents so the steps always add up to the total shown
    to the customer.
    """

    subtotal_val = round_money(subtotal)

    wastage = round_money(subtotal_val * _safe_float(wastage_factor, 0.0))
    with_wastage = round_money(subtotal_val + wastage)

    markup = round_money(with_wastage * _safe_float(markup_pct, 0.0))
    with_markup = round_money(with_wastage + markup)

    gst = round_money(with_markup * _safe_float(gst_rate, 0.0))
    total = round_money(with_markup + gst)

    return {
        "subtotal": subtotal_val,
        "wastage": wastage,
        "with_wastage": with_wastage,
        "markup": markup,
        "with_markup": with_markup,
        "gst": gst,
        "total": total,
    }


def apply_percentages(
    amount: float | int | str | None,
    *,
    markup_pct: float | int | str | None = 0.0,
    discount_pct: float | int | str | None = 0.0,
) -> float:
    """Apply a whole-number markup then discount percentage to ``amount``."""

    base = _safe_float(amount, 0.0)
    marked_up = base * (1.0 + _safe_float(markup_pct, 0.0) / 100.0)
    return marked_up * (1.0 - _safe_float(discount_pct, 0.0) / 100.0)


def roughly_equal(a: float | int | str | None, b: float | int | str | None, *, eps: float = 0.01) -> bool:
    """Return True when *a* and *b* are approximately equal within ``eps`` dollars."""

    try:
        a_val = float(a or 0.0)
    except (TypeError, ValueError):
        return False
    try:
        b_val = float(b or 0.0)
    except (TypeError, ValueError):
        return False
    try:
        eps_val = float(eps)
    except (TypeError, ValueError):
        eps_val = 0.0
    # a tiny epsilon absorbs float error when the difference sits exactly on eps
    return math.isclose(a_val, b_val, rel_tol=0.0, abs_tol=abs(eps_val) + 1e-9)


__all__ = [
    "apply_percentages",
    "compute_pricing_ladder",
    "format_price",
    "round_dollars",
    "round_money",
    "roughly_equal",
]
