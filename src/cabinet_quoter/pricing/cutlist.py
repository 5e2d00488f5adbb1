"""Cutlist generation and CSV export for cabinet orders."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import logging

import pandas as pd

from cabinet_quoter.domain_models.catalog import (
    PART_KIND_CARCASS,
    PART_KIND_DOOR,
    PART_KIND_HARDWARE,
    CabinetPart,
    CabinetType,
    DoorStyle,
    Finish,
)
from cabinet_quoter.formula import FormulaKind, FormulaVariables, evaluate_formula, formula_kind

from .aggregator import PricingError
from .math_helpers import format_price, round_money
from .settings import PricingSettings

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Cabinet Type",
    "Dimensions (W×H×D)",
    "Quantity",
    "Part Name",
    "Part Width (mm)",
    "Part Height (mm)",
    "Part Quantity",
    "Part Area (m²)",
    "Type",
    "Unit Cost",
    "Total Cost",
]

_KIND_LABELS = {
    PART_KIND_CARCASS: "Carcass",
    PART_KIND_DOOR: "Door",
    PART_KIND_HARDWARE: "Hardware",
}


@dataclass(frozen=True)
class CutlistLine:
    part_name: str
    width_mm: float
    height_mm: float
    quantity: int
    area_sqm: float
    kind: str


@dataclass(frozen=True)
class Cutlist:
    cabinet_name: str
    width: float
    height: float
    depth: float
    quantity: int
    lines: tuple[CutlistLine, ...] = field(default_factory=tuple)
    carcass_cost: float = 0.0
    door_cost: float = 0.0
    hardware_cost: float = 0.0
    total_cost: float = 0.0

    @property
    def unit_cost(self) -> float:
        if self.quantity <= 0:
            return 0.0
        return round_money(self.total_cost / self.quantity)

    def area_for(self, kind: str) -> float:
        return sum(line.area_sqm for line in self.lines if line.kind == kind)


def part_dimensions(part: CabinetPart, variables: FormulaVariables) -> tuple[float, float]:
    """Return the ``(width_mm, height_mm)`` of ``part``.

    Cost formulas and formulas that fail to evaluate contribute 0 mm.
    """

    def _dimension(text: str | None) -> float:
        if formula_kind(text) is not FormulaKind.DIMENSION:
            return 0.0
        return max(evaluate_formula(text, variables), 0.0)

    return _dimension(part.width_formula), _dimension(part.height_formula)


def generate_cutlist(
    cabinet_type: CabinetType,
    width: float,
    height: float,
    depth: float,
    quantity: int = 1,
    settings: PricingSettings | None = None,
    *,
    door_style: DoorStyle | None = None,
    finish: Finish | None = None,
) -> Cutlist:
    """Build the cutlist and material cost summary for one cabinet line.

    Raises :class:`PricingError` for non-positive dimensions or a quantity
    below one.
    """

    if min(width, height, depth) <= 0:
        raise PricingError(
            f"Dimensions must be positive, got {width:g}x{height:g}x{depth:g} mm"
        )
    if quantity < 1:
        raise PricingError(f"Quantity must be at least 1, got {quantity}")

    settings = settings if settings is not None else PricingSettings.defaults()
    variables = FormulaVariables(
        width=width,
        height=height,
        depth=depth,
        qty=1,
        left_width=cabinet_type.left_side_width_mm,
        right_width=cabinet_type.right_side_width_mm,
        left_depth=cabinet_type.left_side_depth_mm,
        right_depth=cabinet_type.right_side_depth_mm,
        side_thickness_mm=settings.default_side_thickness_mm,
    )

    lines: list[CutlistLine] = []
    for part in cabinet_type.parts:
        part_w, part_h = part_dimensions(part, variables)
        area = (part_w / 1000.0) * (part_h / 1000.0)
        lines.append(
            CutlistLine(
                part_name=part.part_name,
                width_mm=part_w,
                height_mm=part_h,
                quantity=part.quantity * quantity,
                area_sqm=area * part.quantity * quantity,
                kind=part.kind,
            )
        )

    wastage = 1.0 + settings.wastage_factor
    carcass_area = sum(line.area_sqm for line in lines if line.kind == PART_KIND_CARCASS)
    door_area = sum(line.area_sqm for line in lines if line.kind == PART_KIND_DOOR)
    hardware_units = sum(line.quantity for line in lines if line.kind == PART_KIND_HARDWARE)

    door_rate = (finish.rate_per_sqm if finish else 0.0) + (
        door_style.base_rate_per_sqm if door_style else 0.0
    )
    carcass_cost = carcass_area * settings.hmr_rate_per_sqm * wastage
    door_cost = door_area * door_rate * wastage
    hardware_cost = hardware_units * settings.hardware_base_cost
    total = (carcass_cost + door_cost + hardware_cost) * (1.0 + settings.gst_rate)

    return Cutlist(
        cabinet_name=cabinet_type.name,
        width=float(width),
        height=float(height),
        depth=float(depth),
        quantity=quantity,
        lines=tuple(lines),
        carcass_cost=round_money(carcass_cost),
        door_cost=round_money(door_cost),
        hardware_cost=round_money(hardware_cost),
        total_cost=round_money(total),
    )


def cutlists_to_frame(cutlists: Iterable[Cutlist]) -> pd.DataFrame:
    """Flatten ``cutlists`` into one row per part using the export columns."""

    records: list[dict[str, object]] = []
    for cutlist in cutlists:
        dims = f"{cutlist.width:g}×{cutlist.height:g}×{cutlist.depth:g}"
        for line in cutlist.lines:
            records.append(
                {
                    "Cabinet Type": cutlist.cabinet_name,
                    "Dimensions (W×H×D)": dims,
                    "Quantity": cutlist.quantity,
                    "Part Name": line.part_name,
                    "Part Width (mm)": f"{line.width_mm:g}",
                    "Part Height (mm)": f"{line.height_mm:g}",
                    "Part Quantity": line.quantity,
                    "Part Area (m²)": f"{line.area_sqm:.4f}",
                    "Type": _KIND_LABELS.get(line.kind, "Carcass"),
                    "Unit Cost": format_price(cutlist.unit_cost),
                    "Total Cost": format_price(cutlist.total_cost),
                }
            )
    return pd.DataFrame.from_records(records, columns=CSV_COLUMNS)


def export_cutlists_csv(cutlists: Iterable[Cutlist], path: str | Path | None = None) -> str:
    """Return the cutlist CSV text, also writing it to ``path`` when given."""

    frame = cutlists_to_frame(cutlists)
    text = frame.to_csv(index=False, lineterminator="\n")
    if path is not None:
        destination = Path(path)
        destination.write_text(text, encoding="utf-8")
        logger.info("Wrote %d cutlist rows to %s", len(frame), destination)
    return text


__all__ = [
    "CSV_COLUMNS",
    "Cutlist",
    "CutlistLine",
    "cutlists_to_frame",
    "export_cutlists_csv",
    "generate_cutlist",
    "part_dimensions",
]
