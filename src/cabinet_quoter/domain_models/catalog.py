"""Catalog entities read from the shop database tables.

Every entity is a frozen dataclass with a ``from_row`` constructor that accepts
the loose mappings returned by the catalog sources (JSON documents, CSV
exports or REST rows).  Missing or garbled fields fall back to the same
defaults the shop applies when a row is incomplete.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from .values import safe_float, to_bool, to_float, to_int, to_text

PART_KIND_CARCASS = "carcass"
PART_KIND_DOOR = "door"
PART_KIND_HARDWARE = "hardware"

UNIT_SCOPES = ("per_cabinet", "per_door", "per_drawer")


def _row_id(row: Mapping[str, Any]) -> str:
    return str(row.get("id") or "").strip()


@dataclass(frozen=True)
class CabinetPart:
    """A named sub-component of a cabinet with its sizing/cost formulas."""

    id: str
    part_name: str
    cabinet_type_id: str | None = None
    quantity: int = 1
    width_formula: str | None = None
    height_formula: str | None = None
    cost_formula: str | None = None
    is_door: bool = False
    is_hardware: bool = False
    material_thickness_mm: float | None = None
    material_density_kg_per_sqm: float | None = None
    weight_multiplier: float | None = None

    @property
    def kind(self) -> str:
        if self.is_door:
            return PART_KIND_DOOR
        if self.is_hardware:
            return PART_KIND_HARDWARE
        return PART_KIND_CARCASS

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CabinetPart":
        quantity = to_int(row.get("quantity"))
        return cls(
            id=_row_id(row),
            part_name=to_text(row.get("part_name") or row.get("name")) or "Part",
            cabinet_type_id=to_text(row.get("cabinet_type_id")),
            quantity=1 if quantity is None else max(quantity, 0),
            width_formula=to_text(row.get("width_formula")),
            height_formula=to_text(row.get("height_formula")),
            cost_formula=to_text(row.get("cost_formula")),
            is_door=to_bool(row.get("is_door")),
            is_hardware=to_bool(row.get("is_hardware")),
            material_thickness_mm=to_float(row.get("material_thickness_mm")),
            material_density_kg_per_sqm=to_float(row.get("material_density_kg_per_sqm")),
            weight_multiplier=to_float(row.get("weight_multiplier")),
        )


@dataclass(frozen=True)
class CabinetType:
    """A catalog cabinet with default/limit dimensions and panel counts."""

    id: str
    name: str
    category: str = "base"
    cabinet_style: str = "standard"
    default_width_mm: float = 600.0
    default_height_mm: float = 720.0
    default_depth_mm: float = 560.0
    min_width_mm: float = 100.0
    max_width_mm: float = 2000.0
    min_height_mm: float = 100.0
    max_height_mm: float = 3000.0
    min_depth_mm: float = 100.0
    max_depth_mm: float = 1000.0
    door_count: int = 0
    drawer_count: int = 0
    backs_qty: int = 1
    bottoms_qty: int = 1
    sides_qty: int = 2
    base_price: float = 0.0
    left_side_width_mm: float | None = None
    right_side_width_mm: float | None = None
    left_side_depth_mm: float | None = None
    right_side_depth_mm: float | None = None
    parts: tuple[CabinetPart, ...] = field(default_factory=tuple)

    @property
    def is_corner(self) -> bool:
        return self.cabinet_style == "corner"

    def with_parts(self, parts: Iterable[CabinetPart]) -> "CabinetType":
        return replace(self, parts=tuple(parts))

    @classmethod
    def from_row(
        cls,
        row: Mapping[str, Any],
        parts: Iterable[CabinetPart] | None = None,
    ) -> "CabinetType":
        raw_parts = row.get("cabinet_parts") or ()
        if parts is None:
            parts = [
                part if isinstance(part, CabinetPart) else CabinetPart.from_row(part)
                for part in raw_parts
                if isinstance(part, (Mapping, CabinetPart))
            ]

        def _dim(key: str, default: float) -> float:
            value = to_float(row.get(key))
            return default if not value else value

        def _count(*keys: str, default: int = 0) -> int:
            for key in keys:
                value = to_int(row.get(key))
                if value:
                    return value
            return default

        return cls(
            id=_row_id(row),
            name=to_text(row.get("name")) or "Cabinet",
            category=(to_text(row.get("category")) or "base").lower(),
            cabinet_style=(to_text(row.get("cabinet_style")) or "standard").lower(),
            default_width_mm=_dim("default_width_mm", 600.0),
            default_height_mm=_dim("default_height_mm", 720.0),
            default_depth_mm=_dim("default_depth_mm", 560.0),
            min_width_mm=_dim("min_width_mm", 100.0),
            max_width_mm=_dim("max_width_mm", 2000.0),
            min_height_mm=_dim("min_height_mm", 100.0),
            max_height_mm=_dim("max_height_mm", 3000.0),
            min_depth_mm=_dim("min_depth_mm", 100.0),
            max_depth_mm=_dim("max_depth_mm", 1000.0),
            door_count=_count("door_qty", "door_count"),
            drawer_count=_count("drawer_count"),
            backs_qty=_count("backs_qty", default=1),
            bottoms_qty=_count("bottoms_qty", default=1),
            sides_qty=_count("sides_qty", default=2),
            base_price=safe_float(row.get("base_price")),
            left_side_width_mm=to_float(row.get("left_side_width_mm")),
            right_side_width_mm=to_float(row.get("right_side_width_mm")),
            left_side_depth_mm=to_float(row.get("left_side_depth_mm")),
            right_side_depth_mm=to_float(row.get("right_side_depth_mm")),
            parts=tuple(parts),
        )


@dataclass(frozen=True)
class DoorStyle:
    id: str
    name: str
    base_rate_per_sqm: float = 0.0
    material_density_kg_per_sqm: float = 12.0
    thickness_mm: float = 18.0
    weight_factor: float = 1.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DoorStyle":
        return cls(
            id=_row_id(row),
            name=to_text(row.get("name")) or "Door style",
            base_rate_per_sqm=safe_float(row.get("base_rate_per_sqm")),
            material_density_kg_per_sqm=to_float(row.get("material_density_kg_per_sqm")) or 12.0,
            thickness_mm=to_float(row.get("thickness_mm")) or 18.0,
            weight_factor=to_float(row.get("weight_factor")) or 1.0,
        )


@dataclass(frozen=True)
class Finish:
    id: str
    name: str
    rate_per_sqm: float = 0.0
    door_style_id: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Finish":
        return cls(
            id=_row_id(row),
            name=to_text(row.get("name")) or "Finish",
            rate_per_sqm=safe_float(row.get("rate_per_sqm")),
            door_style_id=to_text(row.get("door_style_id")),
        )


@dataclass(frozen=True)
class Color:
    id: str
    name: str
    door_style_id: str | None = None
    surcharge_rate_per_sqm: float = 0.0
    minimum_order_amount: float = 0.0
    service_fee_tier1_max: float = 0.0
    service_fee_tier1_amount: float = 0.0
    service_fee_tier2_max: float = 0.0
    service_fee_tier2_amount: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Color":
        return cls(
            id=_row_id(row),
            name=to_text(row.get("name")) or "Color",
            door_style_id=to_text(row.get("door_style_id")),
            surcharge_rate_per_sqm=safe_float(row.get("surcharge_rate_per_sqm")),
            minimum_order_amount=safe_float(row.get("minimum_order_amount")),
            service_fee_tier1_max=safe_float(row.get("service_fee_tier1_max")),
            service_fee_tier1_amount=safe_float(row.get("service_fee_tier1_amount")),
            service_fee_tier2_max=safe_float(row.get("service_fee_tier2_max")),
            service_fee_tier2_amount=safe_float(row.get("service_fee_tier2_amount")),
        )


@dataclass(frozen=True)
class HardwareProduct:
    id: str
    name: str
    cost_per_unit: float = 0.0
    hardware_brand_id: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HardwareProduct":
        return cls(
            id=_row_id(row),
            name=to_text(row.get("name")) or "Hardware",
            cost_per_unit=safe_float(row.get("cost_per_unit")),
            hardware_brand_id=to_text(row.get("hardware_brand_id")),
        )


@dataclass(frozen=True)
class HardwareRequirement:
    """How many units of a hardware type a cabinet needs, and per what."""

    id: str
    cabinet_type_id: str | None = None
    hardware_type: str | None = None
    unit_scope: str = "per_cabinet"
    units_per_scope: float = 1.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HardwareRequirement":
        hardware_type = row.get("hardware_type")
        if isinstance(hardware_type, Mapping):
            hardware_type = hardware_type.get("name")
        scope = (to_text(row.get("unit_scope")) or "per_cabinet").lower()
        units = to_float(row.get("units_per_scope"))
        return cls(
            id=_row_id(row),
            cabinet_type_id=to_text(row.get("cabinet_type_id")),
            hardware_type=to_text(hardware_type),
            unit_scope=scope if scope in UNIT_SCOPES else "per_cabinet",
            units_per_scope=1.0 if units is None else units,
        )


@dataclass(frozen=True)
class HardwareOption:
    """The product a brand supplies for a given requirement."""

    id: str
    requirement_id: str
    hardware_brand_id: str
    product: HardwareProduct | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HardwareOption":
        product_row = row.get("hardware_product")
        product = HardwareProduct.from_row(product_row) if isinstance(product_row, Mapping) else None
        return cls(
            id=_row_id(row),
            requirement_id=str(row.get("requirement_id") or ""),
            hardware_brand_id=str(row.get("hardware_brand_id") or ""),
            product=product,
        )


@dataclass(frozen=True)
class HardwareSetItem:
    product: HardwareProduct
    quantity: int = 1


@dataclass(frozen=True)
class HardwareSet:
    id: str
    set_name: str
    category: str
    brand_name: str = ""
    hardware_brand_id: str | None = None
    is_default: bool = False
    items: tuple[HardwareSetItem, ...] = field(default_factory=tuple)

    @property
    def display_name(self) -> str:
        return f"{self.brand_name} - {self.set_name}"

    @property
    def base_cost(self) -> float:
        return sum(item.product.cost_per_unit * item.quantity for item in self.items)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HardwareSet":
        brand = row.get("hardware_brands") or row.get("brand") or {}
        brand_name = brand.get("name") if isinstance(brand, Mapping) else brand
        items: list[HardwareSetItem] = []
        for item in row.get("hardware_set_items") or row.get("items") or ():
            if not isinstance(item, Mapping):
                continue
            product_row = item.get("hardware_products") or item.get("product") or {}
            if not isinstance(product_row, Mapping) or not product_row:
                continue
            product = HardwareProduct.from_row(
                {"id": item.get("hardware_product_id"), **product_row}
            )
            items.append(HardwareSetItem(product=product, quantity=to_int(item.get("quantity")) or 1))
        return cls(
            id=_row_id(row),
            set_name=to_text(row.get("set_name")) or "Set",
            category=(to_text(row.get("category")) or "").lower(),
            brand_name=to_text(brand_name) or "",
            hardware_brand_id=to_text(row.get("hardware_brand_id")),
            is_default=to_bool(row.get("is_default")),
            items=tuple(items),
        )


@dataclass(frozen=True)
class PriceRange:
    label: str
    min_width_mm: float
    max_width_mm: float
    id: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PriceRange":
        min_width = safe_float(row.get("min_width_mm"))
        max_width = to_float(row.get("max_width_mm"), min_width) or min_width
        label = to_text(row.get("label")) or f"{min_width:g}-{max_width:g}mm"
        return cls(label=label, min_width_mm=min_width, max_width_mm=max_width, id=_row_id(row))


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
    "PART_KIND_CARCASS",
    "PART_KIND_DOOR",
    "PART_KIND_HARDWARE",
    "PriceRange",
    "UNIT_SCOPES",
]
