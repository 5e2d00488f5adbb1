"""Domain-level value coercion helpers."""
from __future__ import annotations

import math
import re
from typing import Any


_UNIT_PATTERN = re.compile(r"(?i)(?:millimetres?|millimeters?|mm|sqm|m2)\.?\s*$")
_TRUTHY = {"1", "true", "t", "yes", "y", "on"}
_FALSY = {"0", "false", "f", "no", "n", "off", ""}


def coerce_float_or_none(value: Any) -> float | None:
    """Attempt to coerce the given value to ``float`` returning ``None`` on failure.

    Catalog rows come from spreadsheets and remote tables, so prices such as
    ``"$1,250.00"`` and dimensions such as ``"600 mm"`` are accepted.
    """

    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        coerced = float(value)
        return coerced if math.isfinite(coerced) else None
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        cleaned = cleaned.replace("$", "").replace(",", "").replace("\u00A0", " ")
        cleaned = _UNIT_PATTERN.sub("", cleaned).strip()
        if not cleaned:
            return None
        try:
            coerced = float(cleaned)
        except ValueError:
            return None
        return coerced if math.isfinite(coerced) else None
    if hasattr(value, "__float__"):
        try:
            coerced = float(value)
        except (TypeError, ValueError):
            return None
        return coerced if math.isfinite(coerced) else None
    return None


def to_float(value: Any, default: float | None = None) -> float | None:
    """Best-effort conversion of ``value`` to a float."""

    coerced = coerce_float_or_none(value)
    return default if coerced is None else coerced


def to_int(value: Any, default: int | None = None) -> int | None:
    """Best-effort conversion of ``value`` to an integer via rounding."""

    numeric = coerce_float_or_none(value)
    if numeric is None:
        return default
    return int(round(numeric))


def safe_float(value: Any, default: float = 0.0) -> float:
    """Return ``value`` coerced to ``float`` with NaN/Inf protection."""

    coerced = coerce_float_or_none(value)
    if coerced is None:
        return default
    return coerced


def or_default(value: Any, default: float) -> float:
    """Return ``value`` as a float, substituting ``default`` for missing or zero.

    Settings rows are stored as text and an empty or zero entry means "use the
    shop default" rather than a literal zero rate.
    """

    coerced = coerce_float_or_none(value)
    if not coerced:
        return float(default)
    return coerced


def to_bool(value: Any, default: bool = False) -> bool:
    """Interpret loose truthy/falsy flags from catalog rows."""

    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    return default


def to_text(value: Any) -> str | None:
    """Return a stripped string or ``None`` for blank values."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "coerce_float_or_none",
    "or_default",
    "safe_float",
    "to_bool",
    "to_float",
    "to_int",
    "to_text",
]
