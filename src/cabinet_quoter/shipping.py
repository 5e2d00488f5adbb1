"""Shipping weight, volume and package size estimates for cabinets."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import logging

from cabinet_quoter.config import ConfigError, load_named_config
from cabinet_quoter.domain_models.catalog import (
    PART_KIND_CARCASS,
    PART_KIND_DOOR,
    PART_KIND_HARDWARE,
    CabinetPart,
    CabinetType,
    DoorStyle,
)
from cabinet_quoter.domain_models.values import safe_float
from cabinet_quoter.formula import FormulaVariables
from cabinet_quoter.pricing.cutlist import part_dimensions

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_PADDING_MM = 50.0
DEFAULT_HARDWARE_WEIGHT_KG = 2.5
STANDARD_FRONT_AREA_MM2 = 600.0 * 720.0


def _shipping_defaults() -> dict[str, float]:
    try:
        raw = load_named_config("shipping")
    except ConfigError as exc:
        logger.warning("Shipping defaults unavailable, using built-ins: %s", exc)
        raw = {}
    return {
        "package_padding_mm": safe_float(raw.get("package_padding_mm"), DEFAULT_PACKAGE_PADDING_MM),
        "hardware_weight_kg": safe_float(raw.get("hardware_weight_kg"), DEFAULT_HARDWARE_WEIGHT_KG),
        "carcass_weight_per_sqm": safe_float(raw.get("carcass_weight_per_sqm"), 12.0),
        "carcass_thickness_mm": safe_float(raw.get("carcass_thickness_mm"), 18.0),
    }


@dataclass(frozen=True)
class MaterialSpec:
    """Sheet material used for a group of parts."""

    material_type: str = "HMR"
    weight_per_sqm: float = 12.0
    thickness_mm: float = 18.0
    weight_factor: float = 1.0

    @classmethod
    def carcass_default(cls) -> "MaterialSpec":
        defaults = _shipping_defaults()
        return cls(
            weight_per_sqm=defaults["carcass_weight_per_sqm"],
            thickness_mm=defaults["carcass_thickness_mm"],
        )

    @classmethod
    def from_door_style(cls, door_style: DoorStyle) -> "MaterialSpec":
        return cls(
            material_type=door_style.name,
            weight_per_sqm=door_style.material_density_kg_per_sqm,
            thickness_mm=door_style.thickness_mm,
            weight_factor=door_style.weight_factor,
        )


@dataclass(frozen=True)
class PartVolume:
    part_name: str
    quantity: int
    area_sqm: float
    thickness_mm: float
    volume_cubic_m: float
    weight_kg: float
    is_door: bool


@dataclass(frozen=True)
class CabinetVolume:
    cabinet_name: str
    total_volume_cubic_m: float
    total_weight_kg: float
    carcass_volume_cubic_m: float
    doors_volume_cubic_m: float
    parts: tuple[PartVolume, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PackageDimensions:
    length_mm: float
    width_mm: float
    height_mm: float

    @property
    def cubic_m(self) -> float:
        return (self.length_mm * self.width_mm * self.height_mm) / 1_000_000_000


@dataclass(frozen=True)
class WeightEstimate:
    carcass_weight_kg: float
    door_weight_kg: float
    hardware_weight_kg: float
    total_weight_kg: float
    package: PackageDimensions


def _variables(width: float, height: float, depth: float) -> FormulaVariables:
    return FormulaVariables(width=width, height=height, depth=depth, qty=1)


def calculate_cabinet_volume(
    cabinet_name: str,
    width: float,
    height: float,
    depth: float,
    quantity: int,
    parts: Iterable[CabinetPart],
    material: MaterialSpec | None = None,
    door_style: DoorStyle | None = None,
) -> CabinetVolume:
    """Return per-part and total volume/weight for ``quantity`` cabinets.

    Door parts use the door style's material when one is given; every other
    part uses ``material``.  Parts whose dimensions come out at or below zero
    are skipped.
    """

    material = material if material is not None else MaterialSpec.carcass_default()
    door_material = MaterialSpec.from_door_style(door_style) if door_style is not None else None
    variables = _variables(width, height, depth)

    lines: list[PartVolume] = []
    carcass_volume = 0.0
    doors_volume = 0.0
    for part in parts:
        part_w, part_h = part_dimensions(part, variables)
        if part_w <= 0 or part_h <= 0:
            continue

        area = (part_w * part_h) / 1_000_000
        spec = door_material if part.is_door and door_material is not None else material
        pieces = part.quantity * quantity
        volume = (area * spec.thickness_mm / 1000.0) * spec.weight_factor * pieces
        weight = area * spec.weight_per_sqm * spec.weight_factor * pieces

        lines.append(
            PartVolume(
                part_name=part.part_name,
                quantity=pieces,
                area_sqm=area,
                thickness_mm=spec.thickness_mm,
                volume_cubic_m=volume,
                weight_kg=weight,
                is_door=part.is_door,
            )
        )
        if part.is_door:
            doors_volume += volume
        else:
            carcass_volume += volume

    return CabinetVolume(
        cabinet_name=cabinet_name,
        total_volume_cubic_m=carcass_volume + doors_volume,
        total_weight_kg=sum(line.weight_kg for line in lines),
        carcass_volume_cubic_m=carcass_volume,
        doors_volume_cubic_m=doors_volume,
        parts=tuple(lines),
    )


def package_dimensions(
    width: float,
    height: float,
    depth: float,
    padding: float | None = None,
) -> PackageDimensions:
    """Return the padded carton for one cabinet (length follows width)."""

    if padding is None:
        padding = _shipping_defaults()["package_padding_mm"]
    return PackageDimensions(
        length_mm=width + padding,
        width_mm=depth + padding,
        height_mm=height + padding,
    )


def estimate_weight(
    cabinet_type: CabinetType,
    width: float,
    height: float,
    depth: float,
    quantity: int = 1,
    door_style: DoorStyle | None = None,
) -> WeightEstimate:
    """Estimate the shipping weight of ``quantity`` cabinets of ``cabinet_type``.

    Carcass parts use their own density and weight multiplier (12 kg/m² and 1
    by default); door parts use the door style.  Each hardware part adds
    2.5 kg scaled by the front area relative to a 600x720 mm cabinet.  Every
    figure covers all ``quantity`` cabinets, so the parts add up to the total.
    """

    defaults = _shipping_defaults()
    variables = _variables(width, height, depth)

    carcass = 0.0
    doors = 0.0
    hardware = 0.0
    size_multiplier = (width * height) / STANDARD_FRONT_AREA_MM2
    for part in cabinet_type.parts:
        pieces = part.quantity or 1
        if part.kind == PART_KIND_HARDWARE:
            hardware += defaults["hardware_weight_kg"] * size_multiplier * pieces
            continue

        part_w, part_h = part_dimensions(part, variables)
        area = (part_w / 1000.0) * (part_h / 1000.0)
        if part.kind == PART_KIND_DOOR:
            density = door_style.material_density_kg_per_sqm if door_style else 12.0
            factor = door_style.weight_factor if door_style else 1.0
            doors += area * density * factor * pieces
        elif part.kind == PART_KIND_CARCASS:
            density = part.material_density_kg_per_sqm or defaults["carcass_weight_per_sqm"]
            factor = part.weight_multiplier or 1.0
            carcass += area * density * factor * pieces

    carcass *= quantity
    doors *= quantity
    hardware *= quantity
    return WeightEstimate(
        carcass_weight_kg=carcass,
        door_weight_kg=doors,
        hardware_weight_kg=hardware,
        total_weight_kg=carcass + doors + hardware,
        package=package_dimensions(width, height, depth, defaults["package_padding_mm"]),
    )


__all__ = [
    "CabinetVolume",
    "MaterialSpec",
    "PackageDimensions",
    "PartVolume",
    "WeightEstimate",
    "calculate_cabinet_volume",
    "estimate_weight",
    "package_dimensions",
]
