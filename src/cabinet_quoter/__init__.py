"""Formula-driven pricing for configurable kitchen cabinets."""
from __future__ import annotations

from .catalog import Catalog, CatalogError, load_catalog
from .config import ConfigError
from .formula import FormulaError, FormulaVariables, evaluate_formula
from .pricing.aggregator import (
    PriceAggregator,
    PriceBreakdown,
    PriceRequest,
    PricingError,
    calculate_cabinet_price,
)
from .pricing.settings import PricingSettings

__version__ = "0.1.0"

__all__ = [
    "Catalog",
    "CatalogError",
    "ConfigError",
    "FormulaError",
    "FormulaVariables",
    "PriceAggregator",
    "PriceBreakdown",
    "PriceRequest",
    "PricingError",
    "PricingSettings",
    "__version__",
    "calculate_cabinet_price",
    "evaluate_formula",
    "load_catalog",
]
