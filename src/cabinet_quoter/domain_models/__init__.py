"""Domain model value utilities and catalog entities."""

from .catalog import (
    CabinetPart,
    CabinetType,
    Color,
    DoorStyle,
    Finish,
    HardwareOption,
    HardwareProduct,
    HardwareRequirement,
    HardwareSet,
    HardwareSetItem,
    PriceRange,
)
from .values import (
    coerce_float_or_none,
    or_default,
    safe_float,
    to_bool,
    to_float,
    to_int,
    to_text,
)

__all__ = [
    "CabinetPart",
    "CabinetType",
    "Color",
    "DoorStyle",
    "Finish",
    "HardwareOption",
    "HardwareProduct",
    "HardwareRequirement",
    "HardwareSet",
    "HardwareSetItem",
    "PriceRange",
    "coerce_float_or_none",
    "or_default",
    "safe_float",
    "to_bool",
    "to_float",
    "to_int",
    "to_text",
]
