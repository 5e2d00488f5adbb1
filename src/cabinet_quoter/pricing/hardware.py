"""Hardware costing: brand requirements and priced hinge/runner sets."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

import logging

from cabinet_quoter.domain_models.catalog import (
    CabinetType,
    HardwareOption,
    HardwareRequirement,
    HardwareSet,
)

from .math_helpers import apply_percentages, round_money
from .settings import PricingSettings

logger = logging.getLogger(__name__)

CATEGORY_HINGE = "hinge"
CATEGORY_RUNNER = "runner"
NO_BRAND = "none"


def requirement_quantity(
    requirement: HardwareRequirement,
    cabinet_type: CabinetType,
    quantity: int = 1,
) -> float:
    """Return how many units ``requirement`` needs for ``quantity`` cabinets."""

    units = requirement.units_per_scope
    if requirement.unit_scope == "per_door":
        return units * cabinet_type.door_count * quantity
    if requirement.unit_scope == "per_drawer":
        return units * cabinet_type.drawer_count * quantity
    return units * quantity


def hardware_cost(
    cabinet_type: CabinetType,
    brand_id: str | None,
    requirements: Iterable[HardwareRequirement],
    options: Iterable[HardwareOption],
    quantity: int = 1,
) -> float:
    """Cost the cabinet's hardware requirements with products from ``brand_id``.

    Requirements without an option for the brand are skipped.  No brand (or
    the explicit ``"none"`` choice) costs nothing.
    """

    if not brand_id or brand_id == NO_BRAND:
        return 0.0

    by_requirement: dict[str, HardwareOption] = {}
    for option in options:
        if option.hardware_brand_id != brand_id or option.product is None:
            continue
        by_requirement.setdefault(option.requirement_id, option)

    total = 0.0
    for requirement in requirements:
        if requirement.cabinet_type_id and requirement.cabinet_type_id != cabinet_type.id:
            continue
        option = by_requirement.get(requirement.id)
        if option is None or option.product is None:
            logger.debug(
                "No %s option for requirement %s (%s)",
                brand_id,
                requirement.id,
                requirement.hardware_type,
            )
            continue
        units = requirement_quantity(requirement, cabinet_type, quantity)
        total += units * option.product.cost_per_unit
    return round_money(total)


@dataclass(frozen=True)
class HardwarePricing:
    """Priced hardware set; every amount already covers ``quantity`` sets."""

    set_name: str
    brand_name: str
    quantity: int
    base_cost: float
    marked_up_cost: float
    final_cost: float
    markup_pct: float
    discount_pct: float


@dataclass(frozen=True)
class CabinetHardware:
    total_cost: float
    breakdown: Mapping[str, HardwarePricing] = field(default_factory=dict)


class HardwareCatalog:
    """Hardware sets with shop markup/discount and configured defaults."""

    def __init__(
        self,
        sets: Iterable[HardwareSet],
        settings: PricingSettings | None = None,
        *,
        default_hinge_set_id: str | None = None,
        default_runner_set_id: str | None = None,
    ) -> None:
        self.sets: tuple[HardwareSet, ...] = tuple(sets)
        self.settings = settings if settings is not None else PricingSettings.defaults()
        self._configured_defaults = {
            CATEGORY_HINGE: default_hinge_set_id,
            CATEGORY_RUNNER: default_runner_set_id,
        }

    def find(self, set_id: str | None) -> HardwareSet | None:
        if not set_id:
            return None
        for hardware_set in self.sets:
            if hardware_set.id == set_id:
                return hardware_set
        return None

    def default_set(self, category: str) -> HardwareSet | None:
        """Configured default, then the flagged default, then the first set in ``category``."""

        configured = self.find(self._configured_defaults.get(category))
        if configured is not None:
            return configured

        in_category = [hardware_set for hardware_set in self.sets if hardware_set.category == category]
        for hardware_set in in_category:
            if hardware_set.is_default:
                return hardware_set
        return in_category[0] if in_category else None

    def set_cost(self, hardware_set: HardwareSet, quantity: int = 1) -> HardwarePricing:
        base = hardware_set.base_cost
        markup = self.settings.hardware_markup_pct
        discount = self.settings.hardware_discount_pct
        marked_up = apply_percentages(base, markup_pct=markup)
        final = apply_percentages(base, markup_pct=markup, discount_pct=discount)
        return HardwarePricing(
            set_name=hardware_set.set_name,
            brand_name=hardware_set.brand_name,
            quantity=quantity,
            base_cost=round_money(base * quantity),
            marked_up_cost=round_money(marked_up * quantity),
            final_cost=round_money(final * quantity),
            markup_pct=markup,
            discount_pct=discount,
        )

    def _resolve(self, category: str, selected: Mapping[str, str]) -> HardwareSet | None:
        chosen = self.find(selected.get(category))
        if chosen is not None and chosen.category == category:
            return chosen
        return self.default_set(category)

    def cabinet_hardware(
        self,
        cabinet_type: CabinetType,
        selected: Mapping[str, str] | None = None,
        quantity: int = 1,
    ) -> CabinetHardware:
        """Price hinges for door cabinets and runners for drawer cabinets."""

        selected = selected or {}
        breakdown: dict[str, HardwarePricing] = {}

        if cabinet_type.door_count > 0:
            hinge_set = self._resolve(CATEGORY_HINGE, selected)
            if hinge_set is not None:
                hinges = max(cabinet_type.door_count, 1) * quantity
                breakdown[CATEGORY_HINGE] = self.set_cost(hinge_set, hinges)

        if cabinet_type.drawer_count > 0:
            runner_set = self._resolve(CATEGORY_RUNNER, selected)
            if runner_set is not None:
                runners = cabinet_type.drawer_count * quantity
                breakdown[CATEGORY_RUNNER] = self.set_cost(runner_set, runners)

        total = round_money(sum(item.final_cost for item in breakdown.values()))
        return CabinetHardware(total_cost=total, breakdown=breakdown)

    def options(self, category: str) -> Sequence[HardwareSet]:
        """Sets in ``category``: defaults first, then by ``brand - set`` name."""

        in_category = [hardware_set for hardware_set in self.sets if hardware_set.category == category]
        return sorted(in_category, key=lambda item: (not item.is_default, item.display_name))


__all__ = [
    "CATEGORY_HINGE",
    "CATEGORY_RUNNER",
    "CabinetHardware",
    "HardwareCatalog",
    "HardwarePricing",
    "NO_BRAND",
    "hardware_cost",
    "requirement_quantity",
]
