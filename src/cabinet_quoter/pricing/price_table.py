"""Static price tables: one row per width band, one column per finish."""
from __future__ import annotations

from typing import Iterable, Sequence

import logging

import pandas as pd

from cabinet_quoter.domain_models.catalog import CabinetType, Color, DoorStyle, Finish, PriceRange

from .aggregator import PriceAggregator, PriceRequest
from .math_helpers import round_dollars

logger = logging.getLogger(__name__)

SIZE_COLUMN = "Size"


def _bands(*bounds: tuple[int, int]) -> list[PriceRange]:
    ranges = []
    for low, high in bounds:
        label = f"{low}mm" if low == high else f"{low}-{high}mm"
        ranges.append(PriceRange(label=label, min_width_mm=float(low), max_width_mm=float(high)))
    return ranges


BASE_ONE_DOOR_RANGES = _bands(*[(low, low + 49) for low in range(150, 600, 50)], (600, 600))
BASE_TWO_DOOR_RANGES = _bands(
    (400, 449),
    (450, 499),
    (500, 549),
    (600, 649),
    (700, 749),
    (800, 849),
    (900, 949),
    (1000, 1049),
    (1200, 1200),
)
DRAWER_RANGES = _bands((600, 800), (800, 1000), (1000, 1200))
DEFAULT_RANGES = _bands((300, 600), (600, 900), (900, 1200))


def width_ranges_for(cabinet_type: CabinetType) -> list[PriceRange]:
    """Pick the width bands for ``cabinet_type`` from its category and name."""

    name = cabinet_type.name
    if cabinet_type.category == "base":
        if "1 Door" in name or "1door" in name:
            return list(BASE_ONE_DOOR_RANGES)
        if "2 Door" in name or "2door" in name:
            return list(BASE_TWO_DOOR_RANGES)
        if "Drawer" in name or "drawer" in name:
            return list(DRAWER_RANGES)
    return list(DEFAULT_RANGES)


def generate_price_table(
    cabinet_type: CabinetType,
    finishes: Sequence[Finish],
    aggregator: PriceAggregator,
    price_ranges: Iterable[PriceRange] | None = None,
    *,
    door_style: DoorStyle | None = None,
    color: Color | None = None,
    hardware_cost: float | None = None,
) -> pd.DataFrame:
    """Price each width band at its minimum width for every finish.

    Height and depth are the cabinet defaults.  Prices are GST inclusive and
    rounded to whole dollars.  ``hardware_cost`` defaults to the shop's base
    hardware cost.
    """

    ranges = list(price_ranges) if price_ranges is not None else width_ranges_for(cabinet_type)
    if hardware_cost is None:
        hardware_cost = aggregator.settings.hardware_base_cost

    records: list[dict[str, object]] = []
    for price_range in ranges:
        row: dict[str, object] = {SIZE_COLUMN: price_range.label}
        for finish in finishes:
            request = PriceRequest(
                cabinet_type=cabinet_type,
                width=price_range.min_width_mm,
                height=cabinet_type.default_height_mm,
                depth=cabinet_type.default_depth_mm,
                quantity=1,
                door_style=door_style,
                finish=finish,
                color=color,
                hardware_cost=hardware_cost,
            )
            row[finish.name] = round_dollars(aggregator.price(request).unit_price)
        records.append(row)

    columns = [SIZE_COLUMN, *(finish.name for finish in finishes)]
    frame = pd.DataFrame.from_records(records, columns=columns)
    logger.debug("Built %dx%d price table for %s", len(frame), len(finishes), cabinet_type.name)
    return frame.set_index(SIZE_COLUMN)


__all__ = [
    "BASE_ONE_DOOR_RANGES",
    "BASE_TWO_DOOR_RANGES",
    "DEFAULT_RANGES",
    "DRAWER_RANGES",
    "SIZE_COLUMN",
    "generate_price_table",
    "width_ranges_for",
]
