"""Pricing engine for cabinet configurations."""

from .aggregator import (
    PartCost,
    PriceAggregator,
    PriceBreakdown,
    PriceRequest,
    PricingError,
    calculate_cabinet_price,
    dimension_multiplier,
)
from .cutlist import Cutlist, CutlistLine, export_cutlists_csv, generate_cutlist
from .hardware import HardwareCatalog, HardwarePricing, hardware_cost, requirement_quantity
from .math_helpers import compute_pricing_ladder, format_price, round_money, roughly_equal
from .price_table import generate_price_table, width_ranges_for
from .settings import PricingSettings

__all__ = [
    "Cutlist",
    "CutlistLine",
    "HardwareCatalog",
    "HardwarePricing",
    "PartCost",
    "PriceAggregator",
    "PriceBreakdown",
    "PriceRequest",
    "PricingError",
    "PricingSettings",
    "calculate_cabinet_price",
    "compute_pricing_ladder",
    "dimension_multiplier",
    "export_cutlists_csv",
    "format_price",
    "generate_cutlist",
    "generate_price_table",
    "hardware_cost",
    "requirement_quantity",
    "round_money",
    "roughly_equal",
    "width_ranges_for",
]
