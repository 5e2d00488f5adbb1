"""Cabinet configuration state, validation and live pricing."""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from cabinet_quoter.catalog import Catalog, CatalogError
from cabinet_quoter.config import ConfigError, load_default_limits
from cabinet_quoter.domain_models.catalog import CabinetType
from cabinet_quoter.domain_models.values import safe_float, to_float, to_int, to_text
from cabinet_quoter.pricing.aggregator import PriceAggregator, PriceBreakdown, PriceRequest
from cabinet_quoter.pricing.hardware import hardware_cost

logger = logging.getLogger(__name__)

SOURCE_LEGACY = "legacy"
SOURCE_PRODUCT = "product"
SOURCE_UNIFIED = "unified"

DEFAULT_DEVIATION_WARNING_RATIO = 0.5


class ConfigurationError(ValueError):
    """Raised when a configuration change is malformed."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CabinetConfiguration:
    """Flat configurator state for one cabinet line."""

    cabinet_type_id: str
    width: float
    height: float
    depth: float
    quantity: int = 1
    left_side_width: float | None = None
    right_side_width: float | None = None
    left_side_depth: float | None = None
    right_side_depth: float | None = None
    door_style_id: str | None = None
    color_id: str | None = None
    finish_id: str | None = None
    hardware_brand_id: str | None = None
    notes: str | None = None
    source: str = SOURCE_UNIFIED
    created_at: datetime = field(default_factory=_now, compare=False)
    updated_at: datetime = field(default_factory=_now, compare=False)

    def selection_key(self) -> tuple[Any, ...]:
        """Identity of the configured product, ignoring quantity and notes."""

        return (
            self.cabinet_type_id,
            self.width,
            self.height,
            self.depth,
            self.left_side_width,
            self.right_side_width,
            self.left_side_depth,
            self.right_side_depth,
            self.door_style_id,
            self.color_id,
            self.finish_id,
            self.hardware_brand_id,
        )


@dataclass(frozen=True)
class ConfigurationValidation:
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ConfigurationComparison:
    identical: bool
    differences: tuple[str, ...] = ()


def default_configuration(cabinet_type: CabinetType) -> CabinetConfiguration:
    """Return the starting configuration for ``cabinet_type``.

    Corner cabinets also get side dimensions, taken from the type when set and
    otherwise from its default width and depth.
    """

    corner: dict[str, float] = {}
    if cabinet_type.is_corner:
        corner = {
            "right_side_width": cabinet_type.right_side_width_mm or cabinet_type.default_width_mm,
            "left_side_width": cabinet_type.left_side_width_mm or cabinet_type.default_width_mm,
            "right_side_depth": cabinet_type.right_side_depth_mm or cabinet_type.default_depth_mm,
            "left_side_depth": cabinet_type.left_side_depth_mm or cabinet_type.default_depth_mm,
        }
    return CabinetConfiguration(
        cabinet_type_id=cabinet_type.id,
        width=cabinet_type.default_width_mm,
        height=cabinet_type.default_height_mm,
        depth=cabinet_type.default_depth_mm,
        quantity=1,
        source=SOURCE_UNIFIED,
        **corner,
    )


def _limits() -> Mapping[str, Any]:
    try:
        return load_default_limits()
    except ConfigError as exc:
        logger.warning("Configurator limits unavailable, using built-ins: %s", exc)
        return {}


def validate_configuration(
    config: CabinetConfiguration,
    cabinet_type: CabinetType,
    *,
    limits: Mapping[str, Any] | None = None,
) -> ConfigurationValidation:
    """Check ``config`` against the dimension limits of ``cabinet_type``."""

    limits = _limits() if limits is None else limits
    errors: list[str] = []
    warnings: list[str] = []

    checks = (
        ("Width", config.width, cabinet_type.min_width_mm, cabinet_type.max_width_mm, cabinet_type.default_width_mm),
        ("Height", config.height, cabinet_type.min_height_mm, cabinet_type.max_height_mm, cabinet_type.default_height_mm),
        ("Depth", config.depth, cabinet_type.min_depth_mm, cabinet_type.max_depth_mm, cabinet_type.default_depth_mm),
    )
    ratio = safe_float(limits.get("deviation_warning_ratio"), DEFAULT_DEVIATION_WARNING_RATIO)
    for label, value, low, high, default in checks:
        if value < low or value > high:
            errors.append(f"{label} must be between {low:g}mm and {high:g}mm")
        elif default > 0 and ratio > 0 and abs(value - default) / default > ratio:
            warnings.append(
                f"{label} of {value:g}mm differs from the standard {default:g}mm by more than {ratio:.0%}"
            )

    if cabinet_type.is_corner:
        if not config.right_side_width or not config.left_side_width:
            errors.append("Corner cabinets require both left and right side widths")
        if not config.right_side_depth or not config.left_side_depth:
            errors.append("Corner cabinets require both left and right side depths")

    max_quantity = to_int(limits.get("max_quantity"))
    if config.quantity < 1:
        errors.append("Quantity must be at least 1")
    elif max_quantity and config.quantity > max_quantity:
        errors.append(f"Quantity cannot exceed {max_quantity}")

    return ConfigurationValidation(errors=tuple(errors), warnings=tuple(warnings))


def clone_configuration(config: CabinetConfiguration, **changes: Any) -> CabinetConfiguration:
    """Return a copy of ``config`` with ``changes`` applied and a fresh ``updated_at``."""

    known = {spec.name for spec in dataclasses.fields(config)}
    unknown = sorted(set(changes) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration fields: {', '.join(unknown)}")
    changes.setdefault("updated_at", _now())
    return dataclasses.replace(config, **changes)


def _fmt(value: float | None) -> str:
    return "unset" if value is None else f"{value:g}mm"


def compare_configurations(a: CabinetConfiguration, b: CabinetConfiguration) -> ConfigurationComparison:
    """List the human-readable differences between two configurations."""

    differences: list[str] = []
    for label, left, right in (
        ("Width", a.width, b.width),
        ("Height", a.height, b.height),
        ("Depth", a.depth, b.depth),
        ("Right Side Width", a.right_side_width, b.right_side_width),
        ("Left Side Width", a.left_side_width, b.left_side_width),
        ("Right Side Depth", a.right_side_depth, b.right_side_depth),
        ("Left Side Depth", a.left_side_depth, b.left_side_depth),
    ):
        if left != right:
            differences.append(f"{label}: {_fmt(left)} → {_fmt(right)}")

    if a.cabinet_type_id != b.cabinet_type_id:
        differences.append("Cabinet type changed")
    if a.door_style_id != b.door_style_id:
        differences.append("Door style changed")
    if a.color_id != b.color_id:
        differences.append("Color changed")
    if a.finish_id != b.finish_id:
        differences.append("Finish changed")
    if a.hardware_brand_id != b.hardware_brand_id:
        differences.append("Hardware brand changed")
    if a.quantity != b.quantity:
        differences.append(f"Quantity: {a.quantity} → {b.quantity}")

    return ConfigurationComparison(identical=not differences, differences=tuple(differences))


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _nested_id(raw: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, Mapping):
            value = value.get("id")
        text = to_text(value)
        if text:
            return text
    return None


def convert_legacy_configuration(raw: Mapping[str, Any]) -> CabinetConfiguration:
    """Convert a stored legacy configurator payload.

    Legacy payloads embed whole catalog rows (``cabinetType``, ``doorStyle``,
    ``color`` ...) and camelCase corner dimensions.  Missing dimensions fall
    back to the embedded cabinet type and then to 300x720x560 mm.
    """

    if not isinstance(raw, Mapping):
        raise ConfigurationError("Legacy configuration must be a mapping")

    cabinet = raw.get("cabinetType") or raw.get("cabinet_type") or {}
    if not isinstance(cabinet, Mapping):
        cabinet = {}

    def _dimension(key: str, default_key: str, fallback: float) -> float:
        value = to_float(raw.get(key))
        if value:
            return value
        return to_float(cabinet.get(default_key)) or fallback

    cabinet_type_id = _nested_id(raw, "cabinetType", "cabinet_type", "cabinet_type_id", "cabinetTypeId")
    return CabinetConfiguration(
        cabinet_type_id=cabinet_type_id or "",
        width=_dimension("width", "default_width_mm", 300.0),
        height=_dimension("height", "default_height_mm", 720.0),
        depth=_dimension("depth", "default_depth_mm", 560.0),
        quantity=to_int(raw.get("quantity")) or 1,
        right_side_width=to_float(_first(raw, "rightSideWidth", "right_side_width")),
        left_side_width=to_float(_first(raw, "leftSideWidth", "left_side_width")),
        right_side_depth=to_float(_first(raw, "rightSideDepth", "right_side_depth")),
        left_side_depth=to_float(_first(raw, "leftSideDepth", "left_side_depth")),
        door_style_id=_nested_id(raw, "doorStyle", "door_style", "door_style_id"),
        color_id=_nested_id(raw, "color", "color_id"),
        finish_id=_nested_id(raw, "finish", "finish_id"),
        hardware_brand_id=_nested_id(raw, "hardwareBrand", "hardware_brand", "hardware_brand_id"),
        notes=to_text(raw.get("notes")),
        source=SOURCE_LEGACY,
    )


@dataclass(frozen=True)
class LivePrice:
    """Result of pricing the current configurator state."""

    configuration: CabinetConfiguration
    validation: ConfigurationValidation
    breakdown: PriceBreakdown | None = None

    @property
    def is_valid(self) -> bool:
        return self.breakdown is not None

    @property
    def errors(self) -> tuple[str, ...]:
        return self.validation.errors


Subscriber = Callable[[LivePrice], None]


class Configurator:
    """Holds configurator state and reprices it on every change."""

    def __init__(
        self,
        catalog: Catalog,
        aggregator: PriceAggregator | None = None,
        cabinet_type_id: str | None = None,
        *,
        configuration: CabinetConfiguration | None = None,
    ) -> None:
        if configuration is None and not cabinet_type_id:
            raise ConfigurationError("A cabinet type id or starting configuration is required")
        self.catalog = catalog
        self.aggregator = (
            aggregator if aggregator is not None else PriceAggregator(catalog.pricing_settings())
        )
        type_id = configuration.cabinet_type_id if configuration is not None else cabinet_type_id
        self.cabinet_type = catalog.cabinet_type(type_id)
        self.state = configuration if configuration is not None else default_configuration(self.cabinet_type)
        self._subscribers: list[Subscriber] = []
        self.live_price = self._compute()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for price updates and return an unsubscribe function."""

        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def update(self, **changes: Any) -> LivePrice:
        """Apply ``changes`` to the state, reprice and notify subscribers."""

        cabinet_type = self.cabinet_type
        new_type_id = changes.get("cabinet_type_id")
        if new_type_id and new_type_id != self.state.cabinet_type_id:
            cabinet_type = self.catalog.cabinet_type(new_type_id)
        state = clone_configuration(self.state, **changes)
        # state and type change together or not at all
        self.cabinet_type = cabinet_type
        self.state = state
        return self._publish()

    def reset(self) -> LivePrice:
        self.state = default_configuration(self.cabinet_type)
        return self._publish()

    def _publish(self) -> LivePrice:
        self.live_price = self._compute()
        for callback in list(self._subscribers):
            callback(self.live_price)
        return self.live_price

    def _compute(self) -> LivePrice:
        state = self.state
        validation = validate_configuration(state, self.cabinet_type)
        try:
            door_style = self.catalog.optional("door_style", state.door_style_id)
            finish = self.catalog.optional("finish", state.finish_id)
            color = self.catalog.optional("color", state.color_id)
        except CatalogError as exc:
            validation = dataclasses.replace(validation, errors=(*validation.errors, str(exc)))

        if not validation.is_valid:
            logger.debug("Configuration for %s is invalid: %s", self.cabinet_type.name, validation.errors)
            return LivePrice(configuration=state, validation=validation)

        hardware = hardware_cost(
            self.cabinet_type,
            state.hardware_brand_id,
            self.catalog.requirements_for(self.cabinet_type.id),
            self.catalog.hardware_options,
            quantity=1,
        )
        request = PriceRequest(
            cabinet_type=self.cabinet_type,
            width=state.width,
            height=state.height,
            depth=state.depth,
            quantity=state.quantity,
            door_style=door_style,
            finish=finish,
            color=color,
            hardware_cost=hardware,
            left_side_width=state.left_side_width,
            right_side_width=state.right_side_width,
            left_side_depth=state.left_side_depth,
            right_side_depth=state.right_side_depth,
        )
        breakdown = self.aggregator.price(request)
        return LivePrice(configuration=state, validation=validation, breakdown=breakdown)


__all__ = [
    "CabinetConfiguration",
    "ConfigurationComparison",
    "ConfigurationError",
    "ConfigurationValidation",
    "Configurator",
    "LivePrice",
    "SOURCE_LEGACY",
    "SOURCE_PRODUCT",
    "SOURCE_UNIFIED",
    "clone_configuration",
    "compare_configurations",
    "convert_legacy_configuration",
    "default_configuration",
    "validate_configuration",
]
