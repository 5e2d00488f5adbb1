"""Global pricing settings parsed from the ``global_settings`` table."""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Iterable, Mapping

import logging

from cabinet_quoter.config import ConfigError, load_default_settings
from cabinet_quoter.domain_models.values import or_default, to_float

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingSettings:
    """Shop-wide rates used by the aggregator, cutlist and hardware costing.

    ``gst_rate``, ``wastage_factor`` and ``markup_pct`` are fractions (0.1 is
    ten percent).  The hardware markup and discount are whole-number
    percentages, matching how they are entered in the admin screens.
    """

    hmr_rate_per_sqm: float = 85.0
    hardware_base_cost: float = 45.0
    gst_rate: float = 0.1
    wastage_factor: float = 0.05
    markup_pct: float = 0.0
    hardware_markup_pct: float = 35.0
    hardware_discount_pct: float = 0.0
    default_material_rate: float = 85.0
    default_door_rate: float = 120.0
    default_side_thickness_mm: float = 18.0
    standard_width_mm: float = 600.0
    standard_height_mm: float = 720.0

    @classmethod
    def defaults(cls) -> "PricingSettings":
        """Return settings seeded from the bundled ``app_settings.json``."""

        try:
            raw = load_default_settings()
        except ConfigError as exc:
            logger.warning("Falling back to built-in pricing defaults: %s", exc)
            return cls()
        return cls.from_mapping(raw, base=cls())

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Any],
        *,
        base: "PricingSettings | None" = None,
    ) -> "PricingSettings":
        """Build settings from ``mapping``; missing, garbled or zero values keep ``base``."""

        base = base if base is not None else cls.defaults()
        values: dict[str, float] = {}
        for spec in fields(cls):
            current = getattr(base, spec.name)
            if spec.name in mapping:
                values[spec.name] = or_default(mapping[spec.name], current)
            else:
                values[spec.name] = current
        return cls(**values)

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Mapping[str, Any]],
        *,
        base: "PricingSettings | None" = None,
    ) -> "PricingSettings":
        """Parse ``global_settings`` rows of ``setting_key``/``setting_value`` pairs."""

        mapping: dict[str, Any] = {}
        for row in rows:
            key = str(row.get("setting_key") or "").strip()
            if not key:
                continue
            mapping[key] = row.get("setting_value")
        return cls.from_mapping(mapping, base=base)

    def with_overrides(self, **overrides: Any) -> "PricingSettings":
        """Return a copy with explicit overrides; zero is honoured here."""

        known = {spec.name for spec in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise TypeError(f"Unknown pricing settings: {', '.join(unknown)}")
        coerced: dict[str, float] = {}
        for key, value in overrides.items():
            numeric = to_float(value)
            if numeric is None:
                raise ValueError(f"Pricing setting {key!r} must be numeric, got {value!r}")
            coerced[key] = numeric
        return replace(self, **coerced)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


__all__ = ["PricingSettings"]
