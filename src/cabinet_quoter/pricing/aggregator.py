"""Cabinet price aggregation.

The aggregator prices a single cabinet configuration by walking its parts and
evaluating their formulas, bucketing the results into carcass, doors and
hardware, and then running the shop's pricing ladder (wastage, markup, GST).

Part formulas come in two flavours that historically share the
``width_formula`` column:

* cost formulas reference a rate variable (``mat_rate_per_sqm``,
  ``door_cost``, ``color_cost`` or ``finish_cost``) and yield currency
  directly; the result is multiplied by the part quantity.
* dimension formulas yield millimetres; the part is then priced by area using
  the rate for its kind.

Formulas are always evaluated for a single cabinet (``qty`` is bound to 1) so
that the total is exactly ``unit_price * quantity``.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

import logging

from cabinet_quoter.config import AppEnvironment
from cabinet_quoter.domain_models.catalog import (
    PART_KIND_CARCASS,
    PART_KIND_DOOR,
    PART_KIND_HARDWARE,
    CabinetPart,
    CabinetType,
    Color,
    DoorStyle,
    Finish,
)
from cabinet_quoter.formula import FormulaKind, FormulaVariables, evaluate_formula, formula_kind

from .math_helpers import compute_pricing_ladder, round_money
from .settings import PricingSettings

logger = logging.getLogger(__name__)

METHOD_FORMULA = "formula"
METHOD_AREA = "area"
METHOD_UNIT = "unit"


class PricingError(ValueError):
    """Raised when a price request cannot be priced."""


@dataclass(frozen=True)
class PriceRequest:
    """Inputs for pricing one cabinet line.

    Dimensions left as ``None`` fall back to the cabinet type defaults.
    ``hardware_cost`` is the per-cabinet cost of selected hardware, and the
    surcharges are flat per-cabinet amounts.
    """

    cabinet_type: CabinetType
    width: float | None = None
    height: float | None = None
    depth: float | None = None
    quantity: int = 1
    door_style: DoorStyle | None = None
    finish: Finish | None = None
    color: Color | None = None
    hardware_cost: float = 0.0
    color_surcharge: float = 0.0
    finish_surcharge: float = 0.0
    left_side_width: float | None = None
    right_side_width: float | None = None
    left_side_depth: float | None = None
    right_side_depth: float | None = None
    apply_dimension_multiplier: bool = False

    def dimensions(self) -> tuple[float, float, float]:
        cabinet = self.cabinet_type
        width = cabinet.default_width_mm if self.width is None else float(self.width)
        height = cabinet.default_height_mm if self.height is None else float(self.height)
        depth = cabinet.default_depth_mm if self.depth is None else float(self.depth)
        return width, height, depth


@dataclass(frozen=True)
class PartCost:
    part_name: str
    kind: str
    quantity: int
    method: str
    unit_cost: float
    cost: float
    width_mm: float = 0.0
    height_mm: float = 0.0
    area_sqm: float = 0.0


@dataclass(frozen=True)
class PriceBreakdown:
    """Itemised price for one cabinet line; money values are rounded to cents."""

    base: float
    carcass: float
    doors: float
    hardware: float
    surcharges: float
    subtotal: float
    dimension_multiplier: float
    wastage: float
    markup: float
    gst: float
    unit_price: float
    total_price: float
    quantity: int
    parts: tuple[PartCost, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["parts"] = [asdict(part) for part in self.parts]
        return data


def dimension_multiplier(
    width: float,
    height: float,
    *,
    standard_width_mm: float = 600.0,
    standard_height_mm: float = 720.0,
) -> float:
    """Return the oversize multiplier; standard or smaller fronts return 1."""

    if standard_width_mm <= 0 or standard_height_mm <= 0:
        return 1.0
    return max(1.0, (width / standard_width_mm) * (height / standard_height_mm))


class PriceAggregator:
    """Price cabinet configurations against a fixed set of :class:`PricingSettings`."""

    def __init__(self, settings: PricingSettings | None = None, *, strict: bool | None = None) -> None:
        self.settings = settings if settings is not None else PricingSettings.defaults()
        self.strict = AppEnvironment.from_env().strict_formulas if strict is None else strict

    def formula_variables(self, request: PriceRequest) -> FormulaVariables:
        """Bind the formula namespace for ``request`` (evaluated per cabinet)."""

        settings = self.settings
        cabinet = request.cabinet_type
        width, height, depth = request.dimensions()

        style_rate = request.door_style.base_rate_per_sqm if request.door_style else 0.0
        finish_rate = request.finish.rate_per_sqm if request.finish else 0.0
        color_rate = request.color.surcharge_rate_per_sqm if request.color else 0.0

        return FormulaVariables(
            width=width,
            height=height,
            depth=depth,
            qty=1,
            mat_rate_per_sqm=settings.hmr_rate_per_sqm or settings.default_material_rate,
            door_cost=(style_rate + finish_rate) or settings.default_door_rate,
            color_cost=color_rate,
            finish_cost=finish_rate,
            left_width=request.left_side_width or cabinet.left_side_width_mm,
            right_width=request.right_side_width or cabinet.right_side_width_mm,
            left_depth=request.left_side_depth or cabinet.left_side_depth_mm,
            right_depth=request.right_side_depth or cabinet.right_side_depth_mm,
            side_thickness_mm=settings.default_side_thickness_mm,
        )

    def price_part(self, part: CabinetPart, variables: FormulaVariables) -> PartCost:
        """Return the per-cabinet cost line for ``part``."""

        quantity = part.quantity
        cost_formula = part.cost_formula
        if not cost_formula and formula_kind(part.width_formula) is FormulaKind.COST:
            cost_formula = part.width_formula

        if cost_formula:
            unit_cost = evaluate_formula(cost_formula, variables, strict=self.strict)
            return PartCost(
                part_name=part.part_name,
                kind=part.kind,
                quantity=quantity,
                method=METHOD_FORMULA,
                unit_cost=unit_cost,
                cost=unit_cost * quantity,
            )

        if part.kind == PART_KIND_HARDWARE:
            unit_cost = self.settings.hardware_base_cost
            return PartCost(
                part_name=part.part_name,
                kind=part.kind,
                quantity=quantity,
                method=METHOD_UNIT,
                unit_cost=unit_cost,
                cost=unit_cost * quantity,
            )

        width_mm = evaluate_formula(part.width_formula, variables, strict=self.strict)
        height_mm = evaluate_formula(part.height_formula, variables, strict=self.strict)
        panel_area = (width_mm / 1000.0) * (height_mm / 1000.0)
        if part.kind == PART_KIND_DOOR:
            rate = variables.door_cost + variables.color_cost
        else:
            rate = variables.mat_rate_per_sqm
        return PartCost(
            part_name=part.part_name,
            kind=part.kind,
            quantity=quantity,
            method=METHOD_AREA,
            unit_cost=panel_area * rate,
            cost=panel_area * quantity * rate,
            width_mm=width_mm,
            height_mm=height_mm,
            area_sqm=panel_area * quantity,
        )

    def _panel_costs(self, request: PriceRequest, variables: FormulaVariables) -> list[PartCost]:
        """Per-panel fallback for cabinet types without configured parts."""

        cabinet = request.cabinet_type
        width, height, depth = variables.width, variables.height, variables.depth
        rate = variables.mat_rate_per_sqm
        door_rate = variables.door_cost + variables.color_cost

        panels = [
            ("Back", PART_KIND_CARCASS, cabinet.backs_qty, width, height, rate),
            ("Bottom", PART_KIND_CARCASS, cabinet.bottoms_qty, width, depth, rate),
            ("Side", PART_KIND_CARCASS, cabinet.sides_qty, height, depth, rate),
        ]
        if cabinet.door_count > 0:
            panels.append(("Door", PART_KIND_DOOR, cabinet.door_count, width, height, door_rate))

        lines: list[PartCost] = []
        for name, kind, qty, panel_w, panel_h, panel_rate in panels:
            area = (panel_w / 1000.0) * (panel_h / 1000.0)
            lines.append(
                PartCost(
                    part_name=name,
                    kind=kind,
                    quantity=qty,
                    method=METHOD_AREA,
                    unit_cost=area * panel_rate,
                    cost=area * qty * panel_rate,
                    width_mm=panel_w,
                    height_mm=panel_h,
                    area_sqm=area * qty,
                )
            )
        return lines

    def price(self, request: PriceRequest) -> PriceBreakdown:
        """Price ``request`` and return the itemised :class:`PriceBreakdown`."""

        width, height, depth = request.dimensions()
        if min(width, height, depth) <= 0:
            raise PricingError(
                f"Dimensions must be positive, got {width:g}x{height:g}x{depth:g} mm"
            )
        if request.quantity < 1:
            raise PricingError(f"Quantity must be at least 1, got {request.quantity}")

        variables = self.formula_variables(request)
        cabinet = request.cabinet_type
        if cabinet.parts:
            lines = [self.price_part(part, variables) for part in cabinet.parts]
        else:
            logger.debug("No parts configured for %s; using panel fallback", cabinet.name)
            lines = self._panel_costs(request, variables)

        buckets = {PART_KIND_CARCASS: 0.0, PART_KIND_DOOR: 0.0, PART_KIND_HARDWARE: 0.0}
        for line in lines:
            buckets[line.kind] += line.cost
        buckets[PART_KIND_HARDWARE] += float(request.hardware_cost or 0.0)

        surcharges = float(request.color_surcharge or 0.0) + float(request.finish_surcharge or 0.0)
        base = cabinet.base_price
        raw_subtotal = base + sum(buckets.values()) + surcharges

        multiplier = 1.0
        if request.apply_dimension_multiplier:
            multiplier = dimension_multiplier(
                width,
                height,
                standard_width_mm=self.settings.standard_width_mm,
                standard_height_mm=self.settings.standard_height_mm,
            )

        ladder = compute_pricing_ladder(
            raw_subtotal * multiplier,
            wastage_factor=self.settings.wastage_factor,
            markup_pct=self.settings.markup_pct,
            gst_rate=self.settings.gst_rate,
        )
        unit_price = ladder["total"]

        breakdown = PriceBreakdown(
            base=round_money(base),
            carcass=round_money(buckets[PART_KIND_CARCASS]),
            doors=round_money(buckets[PART_KIND_DOOR]),
            hardware=round_money(buckets[PART_KIND_HARDWARE]),
            surcharges=round_money(surcharges),
            subtotal=ladder["subtotal"],
            dimension_multiplier=multiplier,
            wastage=ladder["wastage"],
            markup=ladder["markup"],
            gst=ladder["gst"],
            unit_price=unit_price,
            total_price=round_money(unit_price * request.quantity),
            quantity=request.quantity,
            parts=tuple(lines),
        )
        logger.debug(
            "Priced %s %gx%gx%g qty %d: unit %.2f total %.2f",
            cabinet.name,
            width,
            height,
            depth,
            request.quantity,
            breakdown.unit_price,
            breakdown.total_price,
        )
        return breakdown


def calculate_cabinet_price(
    cabinet_type: CabinetType,
    width: float | None = None,
    height: float | None = None,
    depth: float | None = None,
    quantity: int = 1,
    *,
    settings: PricingSettings | None = None,
    strict: bool | None = None,
    **options: Any,
) -> PriceBreakdown:
    """Convenience wrapper pricing one cabinet with a throwaway aggregator.

    Extra keyword ``options`` are forwarded to :class:`PriceRequest`
    (``door_style``, ``finish``, ``color``, ``hardware_cost`` and so on).
    """

    request = PriceRequest(
        cabinet_type=cabinet_type,
        width=width,
        height=height,
        depth=depth,
        quantity=quantity,
        **options,
    )
    return PriceAggregator(settings, strict=strict).price(request)


def breakdown_summary(breakdown: PriceBreakdown) -> Mapping[str, float]:
    """Return the headline money figures of ``breakdown`` for display."""

    return {
        "carcass": breakdown.carcass,
        "doors": breakdown.doors,
        "hardware": breakdown.hardware,
        "surcharges": breakdown.surcharges,
        "subtotal": breakdown.subtotal,
        "gst": breakdown.gst,
        "unit_price": breakdown.unit_price,
        "total_price": breakdown.total_price,
    }


__all__ = [
    "METHOD_AREA",
    "METHOD_FORMULA",
    "METHOD_UNIT",
    "PartCost",
    "PriceAggregator",
    "PriceBreakdown",
    "PriceRequest",
    "PricingError",
    "breakdown_summary",
    "calculate_cabinet_price",
    "dimension_multiplier",
]
