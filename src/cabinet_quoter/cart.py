"""Shopping cart lines, validation and colour service fees."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Iterator, Mapping

from cabinet_quoter.config import ConfigError, load_default_limits
from cabinet_quoter.configurator import CabinetConfiguration
from cabinet_quoter.domain_models.catalog import Color
from cabinet_quoter.domain_models.values import safe_float
from cabinet_quoter.pricing.aggregator import PriceBreakdown
from cabinet_quoter.pricing.math_helpers import round_money, roughly_equal

logger = logging.getLogger(__name__)

TIER_1 = "tier1"
TIER_2 = "tier2"

_BUILTIN_LIMITS = {
    "max_width_mm": 3000.0,
    "max_height_mm": 3000.0,
    "max_depth_mm": 1000.0,
    "max_quantity": 100.0,
    "price_tolerance": 0.01,
}


class CartError(ValueError):
    """Raised when a cart operation would leave the cart invalid."""


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class CartItem:
    cabinet_type_id: str | None
    door_style_id: str | None
    color_id: str | None
    finish_id: str | None
    width_mm: float
    height_mm: float
    depth_mm: float
    quantity: int
    unit_price: float
    total_price: float
    hardware_brand_id: str | None = None
    notes: str | None = None
    id: str = field(default_factory=_new_id)

    @classmethod
    def from_configuration(
        cls,
        configuration: CabinetConfiguration,
        breakdown: PriceBreakdown,
    ) -> "CartItem":
        return cls(
            cabinet_type_id=configuration.cabinet_type_id,
            door_style_id=configuration.door_style_id,
            color_id=configuration.color_id,
            finish_id=configuration.finish_id,
            width_mm=configuration.width,
            height_mm=configuration.height,
            depth_mm=configuration.depth,
            quantity=configuration.quantity,
            unit_price=breakdown.unit_price,
            total_price=breakdown.total_price,
            hardware_brand_id=configuration.hardware_brand_id,
            notes=configuration.notes,
        )

    def configuration_key(self) -> tuple[Any, ...]:
        return (
            self.cabinet_type_id,
            self.door_style_id,
            self.color_id,
            self.finish_id,
            self.hardware_brand_id,
            self.width_mm,
            self.height_mm,
            self.depth_mm,
        )

    def with_quantity(self, quantity: int) -> "CartItem":
        return replace(self, quantity=quantity, total_price=round_money(self.unit_price * quantity))


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


def _cart_limits() -> dict[str, float]:
    try:
        raw = load_default_limits()
    except ConfigError as exc:
        logger.warning("Cart limits unavailable, using built-ins: %s", exc)
        raw = {}
    return {key: safe_float(raw.get(key), default) for key, default in _BUILTIN_LIMITS.items()}


def validate_cart_item(
    item: CartItem,
    *,
    limits: Mapping[str, float] | None = None,
) -> list[ValidationError]:
    """Return every problem with ``item``; an empty list means it is valid."""

    limits = _cart_limits() if limits is None else {**_BUILTIN_LIMITS, **limits}
    errors: list[ValidationError] = []

    for name, label in (
        ("cabinet_type_id", "Cabinet type"),
        ("door_style_id", "Door style"),
        ("color_id", "Color"),
        ("finish_id", "Finish"),
    ):
        if not getattr(item, name):
            errors.append(ValidationError(name, f"{label} is required"))

    for name, label, limit_key in (
        ("width_mm", "Width", "max_width_mm"),
        ("height_mm", "Height", "max_height_mm"),
        ("depth_mm", "Depth", "max_depth_mm"),
    ):
        value = getattr(item, name)
        if not value or value <= 0:
            errors.append(ValidationError(name, f"{label} must be greater than 0"))
        elif value > limits[limit_key]:
            errors.append(ValidationError(name, f"{label} cannot exceed {limits[limit_key]:g}mm"))

    quantity = item.quantity
    if not quantity or quantity <= 0:
        errors.append(ValidationError("quantity", "Quantity must be at least 1"))
    elif quantity > limits["max_quantity"]:
        errors.append(ValidationError("quantity", f"Quantity cannot exceed {limits['max_quantity']:g}"))

    unit_price = item.unit_price
    total_price = item.total_price
    if not unit_price or unit_price <= 0:
        errors.append(ValidationError("unit_price", "Unit price must be greater than 0"))
    if not total_price or total_price <= 0:
        errors.append(ValidationError("total_price", "Total price must be greater than 0"))
    if unit_price and total_price and quantity and quantity > 0:
        if not roughly_equal(total_price, unit_price * quantity, eps=limits["price_tolerance"]):
            errors.append(ValidationError("total_price", "Total price does not match unit price × quantity"))

    return errors


class Cart:
    """Ordered cart lines; lines with the same configuration are merged."""

    def __init__(self, items: Iterable[CartItem] = (), *, validate: bool = True) -> None:
        self._items: list[CartItem] = []
        self.validate = validate
        for item in items:
            self.add(item)

    def __iter__(self) -> Iterator[CartItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items)

    def _check(self, item: CartItem) -> None:
        if not self.validate:
            return
        errors = validate_cart_item(item)
        if errors:
            detail = "; ".join(f"{error.field}: {error.message}" for error in errors)
            raise CartError(f"Invalid cart item: {detail}")

    def _index_of(self, item_id: str) -> int:
        for index, existing in enumerate(self._items):
            if existing.id == item_id:
                return index
        raise CartError(f"No cart item with id {item_id}")

    def find(self, item_id: str) -> CartItem:
        return self._items[self._index_of(item_id)]

    def add(self, item: CartItem) -> CartItem:
        """Add ``item``, folding it into an existing line with the same configuration."""

        self._check(item)
        key = item.configuration_key()
        for index, existing in enumerate(self._items):
            if existing.configuration_key() != key:
                continue
            merged = replace(existing, unit_price=item.unit_price).with_quantity(
                existing.quantity + item.quantity
            )
            self._check(merged)
            self._items[index] = merged
            logger.debug("Merged cart line %s to quantity %d", existing.id, merged.quantity)
            return merged
        self._items.append(item)
        return item

    def remove(self, item_id: str) -> CartItem:
        return self._items.pop(self._index_of(item_id))

    def update_quantity(self, item_id: str, quantity: int) -> CartItem | None:
        """Set a line's quantity; zero or less removes the line and returns ``None``."""

        index = self._index_of(item_id)
        if quantity <= 0:
            self._items.pop(index)
            return None
        updated = self._items[index].with_quantity(quantity)
        self._check(updated)
        self._items[index] = updated
        return updated

    def merge(self, other: "Cart | Iterable[CartItem]") -> "Cart":
        """Fold every line of ``other`` into this cart."""

        for item in list(other):
            self.add(replace(item, id=_new_id()))
        return self

    def clear(self) -> None:
        self._items.clear()

    @property
    def subtotal(self) -> float:
        return round_money(sum(item.total_price for item in self._items))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)


@dataclass(frozen=True)
class ColorServiceFee:
    color_id: str
    color_name: str
    color_total: float
    service_fee: float
    tier: str
    minimum_required: float


@dataclass(frozen=True)
class ServiceFeeSummary:
    fees: tuple[ColorServiceFee, ...] = ()

    @property
    def total(self) -> float:
        return round_money(sum(fee.service_fee for fee in self.fees))


def color_service_fees(
    items: Iterable[CartItem],
    colors: Mapping[str, Color] | Iterable[Color],
) -> ServiceFeeSummary:
    """Small-order fees for colours whose cart total is under their minimum order.

    Tier 1 applies up to ``service_fee_tier1_max``; above that, tier 2 applies
    up to ``service_fee_tier2_max``.  Larger totals pay no fee.
    """

    by_id = dict(colors) if isinstance(colors, Mapping) else {color.id: color for color in colors}
    totals: dict[str, float] = {}
    for item in items:
        if item.color_id:
            totals[item.color_id] = totals.get(item.color_id, 0.0) + item.total_price

    fees: list[ColorServiceFee] = []
    for color_id, color_total in totals.items():
        color = by_id.get(color_id)
        if color is None or color.minimum_order_amount <= 0:
            continue
        if color_total >= color.minimum_order_amount:
            continue

        fee, tier = 0.0, ""
        if color_total <= color.service_fee_tier1_max:
            fee, tier = color.service_fee_tier1_amount, TIER_1
        elif color_total <= color.service_fee_tier2_max:
            fee, tier = color.service_fee_tier2_amount, TIER_2

        if fee > 0:
            fees.append(
                ColorServiceFee(
                    color_id=color_id,
                    color_name=color.name,
                    color_total=round_money(color_total),
                    service_fee=fee,
                    tier=tier,
                    minimum_required=color.minimum_order_amount,
                )
            )
    return ServiceFeeSummary(fees=tuple(fees))


__all__ = [
    "Cart",
    "CartError",
    "CartItem",
    "ColorServiceFee",
    "ServiceFeeSummary",
    "TIER_1",
    "TIER_2",
    "ValidationError",
    "color_service_fees",
    "validate_cart_item",
]
