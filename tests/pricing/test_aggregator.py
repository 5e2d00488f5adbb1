from __future__ import annotations

from dataclasses import replace

import pytest

from cabinet_quoter.catalog import Catalog
from cabinet_quoter.domain_models.catalog import CabinetPart, CabinetType
from cabinet_quoter.formula import FormulaError
from cabinet_quoter.pricing.aggregator import (
    METHOD_AREA,
    METHOD_FORMULA,
    METHOD_UNIT,
    PriceAggregator,
    PriceRequest,
    PricingError,
    breakdown_summary,
    calculate_cabinet_price,
    dimension_multiplier,
)
from cabinet_quoter.pricing.math_helpers import round_money
from cabinet_quoter.pricing.settings import PricingSettings


def _cabinet_with_parts(*parts: CabinetPart, **overrides: object) -> CabinetType:
    cabinet = CabinetType(id="test", name="Test Cabinet", door_count=1)
    return replace(cabinet, parts=tuple(parts), **overrides)


def test_parts_are_priced_by_area_into_buckets(catalog: Catalog, flat_settings: PricingSettings) -> None:
    request = PriceRequest(cabinet_type=catalog.cabinet_type("base-1d"))

    breakdown = PriceAggregator(flat_settings, strict=True).price(request)

    # back 0.432 m² + two sides 0.4032 m² at 85/m²
    assert breakdown.carcass == pytest.approx(105.26)
    # no door style or finish, so the default door rate of 120/m² applies
    assert breakdown.doors == pytest.approx(51.84)
    assert breakdown.hardware == pytest.approx(90.0)
    assert breakdown.subtotal == pytest.approx(247.1)
    assert breakdown.unit_price == pytest.approx(247.1)
    assert [line.method for line in breakdown.parts] == [METHOD_AREA, METHOD_AREA, METHOD_AREA, METHOD_UNIT]


def test_ladder_adds_wastage_and_gst(catalog: Catalog, settings: PricingSettings) -> None:
    breakdown = calculate_cabinet_price(catalog.cabinet_type("base-1d"), settings=settings, strict=True)

    assert breakdown.wastage == pytest.approx(12.36, abs=0.01)
    assert breakdown.unit_price == pytest.approx(247.1 * 1.05 * 1.1, abs=0.02)
    assert breakdown.unit_price == pytest.approx(
        breakdown.subtotal + breakdown.wastage + breakdown.markup + breakdown.gst, abs=1e-9
    )


def test_door_rate_combines_style_finish_and_colour(catalog: Catalog, flat_settings: PricingSettings) -> None:
    request = PriceRequest(
        cabinet_type=catalog.cabinet_type("base-1d"),
        door_style=catalog.door_style("shaker"),
        finish=catalog.finish("satin"),
        color=catalog.color("navy"),
    )

    breakdown = PriceAggregator(flat_settings).price(request)

    # (100 style + 50 finish + 20 colour) per m² over a 0.432 m² door
    assert breakdown.doors == pytest.approx(0.432 * 170, abs=0.01)


def test_total_is_unit_price_times_quantity(catalog: Catalog, settings: PricingSettings) -> None:
    aggregator = PriceAggregator(settings)
    cabinet = catalog.cabinet_type("base-1d")

    single = aggregator.price(PriceRequest(cabinet_type=cabinet, quantity=1))
    triple = aggregator.price(PriceRequest(cabinet_type=cabinet, quantity=3))

    assert triple.unit_price == single.unit_price
    assert triple.total_price == round_money(single.unit_price * 3)
    assert triple.quantity == 3


def test_pricing_is_repeatable(catalog: Catalog, settings: PricingSettings) -> None:
    aggregator = PriceAggregator(settings)
    cabinet = catalog.cabinet_type("base-1d")

    first = aggregator.price(PriceRequest(cabinet_type=cabinet, width=600))
    second = aggregator.price(PriceRequest(cabinet_type=cabinet, width=600))

    assert first == second


@pytest.mark.parametrize("cabinet_id", ["base-1d", "drawer-3"])
@pytest.mark.parametrize(
    "dimension,smaller,bigger",
    [
        ("width", 450.0, 900.0),
        ("height", 600.0, 870.0),
        ("depth", 300.0, 650.0),
    ],
)
def test_price_never_drops_as_a_dimension_grows(
    catalog: Catalog, settings: PricingSettings, cabinet_id: str, dimension: str, smaller: float, bigger: float
) -> None:
    aggregator = PriceAggregator(settings, strict=True)
    cabinet = catalog.cabinet_type(cabinet_id)

    small = aggregator.price(PriceRequest(cabinet_type=cabinet, **{dimension: smaller}))
    large = aggregator.price(PriceRequest(cabinet_type=cabinet, **{dimension: bigger}))

    assert large.unit_price >= small.unit_price
    assert large.total_price >= small.total_price


def test_cabinets_without_parts_use_panel_fallback(catalog: Catalog, flat_settings: PricingSettings) -> None:
    breakdown = PriceAggregator(flat_settings).price(PriceRequest(cabinet_type=catalog.cabinet_type("drawer-3")))

    names = [line.part_name for line in breakdown.parts]
    assert names == ["Back", "Bottom", "Side"]
    # back 0.432 + bottom 0.336 + two sides 0.4032 m² at 85/m²
    assert breakdown.carcass == pytest.approx(133.82)
    assert breakdown.doors == 0.0


def test_panel_fallback_adds_doors_when_the_cabinet_has_them(flat_settings: PricingSettings) -> None:
    cabinet = CabinetType(id="wall", name="Wall 2 Door", category="wall", door_count=2)

    breakdown = PriceAggregator(flat_settings).price(PriceRequest(cabinet_type=cabinet))

    door = breakdown.parts[-1]
    assert door.part_name == "Door"
    assert door.quantity == 2
    assert breakdown.doors == pytest.approx(0.432 * 2 * 120)


def test_cost_formulas_yield_currency_times_part_quantity(flat_settings: PricingSettings) -> None:
    shelf = CabinetPart(
        id="shelf",
        part_name="Shelf",
        quantity=2,
        cost_formula="(width/1000*depth/1000)*qty*mat_rate_per_sqm",
    )
    legacy = CabinetPart(
        id="legacy",
        part_name="Kicker",
        width_formula="(width/1000*100/1000)*mat_rate_per_sqm",
    )
    cabinet = _cabinet_with_parts(shelf, legacy)

    breakdown = PriceAggregator(flat_settings, strict=True).price(PriceRequest(cabinet_type=cabinet))

    shelf_line, legacy_line = breakdown.parts
    assert shelf_line.method == METHOD_FORMULA
    assert shelf_line.unit_cost == pytest.approx(0.6 * 0.56 * 85)
    assert shelf_line.cost == pytest.approx(0.6 * 0.56 * 85 * 2)
    assert legacy_line.method == METHOD_FORMULA
    assert legacy_line.cost == pytest.approx(0.06 * 85)


def test_corner_side_dimensions_reach_formulas(catalog: Catalog, flat_settings: PricingSettings) -> None:
    corner = catalog.cabinet_type("corner")
    aggregator = PriceAggregator(flat_settings, strict=True)

    default = aggregator.price(PriceRequest(cabinet_type=corner))
    wider = aggregator.price(PriceRequest(cabinet_type=corner, left_side_width=600))

    assert default.parts[0].width_mm == pytest.approx(800.0)
    assert wider.parts[0].width_mm == pytest.approx(1000.0)


def test_strict_aggregator_raises_on_bad_formulas() -> None:
    broken = CabinetPart(id="bad", part_name="Bad", width_formula="width +* 2", height_formula="height")
    cabinet = _cabinet_with_parts(broken)

    with pytest.raises(FormulaError):
        PriceAggregator(PricingSettings(), strict=True).price(PriceRequest(cabinet_type=cabinet))

    lenient = PriceAggregator(PricingSettings(), strict=False).price(PriceRequest(cabinet_type=cabinet))
    assert lenient.carcass == 0.0


def test_strict_flag_defaults_to_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CABINET_QUOTER_STRICT_FORMULAS", "1")

    assert PriceAggregator(PricingSettings()).strict is True


def test_base_price_and_surcharges_feed_the_subtotal(flat_settings: PricingSettings) -> None:
    cabinet = CabinetType(id="plain", name="Plain", base_price=100.0)
    request = PriceRequest(
        cabinet_type=cabinet,
        hardware_cost=20.0,
        color_surcharge=5.0,
        finish_surcharge=7.5,
    )

    breakdown = PriceAggregator(flat_settings).price(request)

    assert breakdown.base == 100.0
    assert breakdown.surcharges == pytest.approx(12.5)
    assert breakdown.hardware == pytest.approx(20.0)
    assert breakdown.subtotal == pytest.approx(
        100.0 + breakdown.carcass + breakdown.doors + 20.0 + 12.5, abs=0.01
    )


@pytest.mark.parametrize(
    "overrides",
    [
        {"width": 0},
        {"height": -10},
        {"quantity": 0},
    ],
)
def test_invalid_requests_are_rejected(overrides: dict[str, float], catalog: Catalog) -> None:
    request = PriceRequest(cabinet_type=catalog.cabinet_type("base-1d"), **overrides)

    with pytest.raises(PricingError):
        PriceAggregator(PricingSettings()).price(request)


def test_dimension_multiplier_only_scales_oversize_fronts() -> None:
    assert dimension_multiplier(600, 720) == 1.0
    assert dimension_multiplier(300, 720) == 1.0
    assert dimension_multiplier(1200, 720) == pytest.approx(2.0)
    assert dimension_multiplier(1200, 720, standard_width_mm=0) == 1.0


def test_dimension_multiplier_applies_when_requested(catalog: Catalog, flat_settings: PricingSettings) -> None:
    cabinet = catalog.cabinet_type("base-1d")
    aggregator = PriceAggregator(flat_settings)

    plain = aggregator.price(PriceRequest(cabinet_type=cabinet, width=1200))
    scaled = aggregator.price(PriceRequest(cabinet_type=cabinet, width=1200, apply_dimension_multiplier=True))

    assert scaled.dimension_multiplier == pytest.approx(2.0)
    assert scaled.subtotal == pytest.approx(plain.subtotal * 2, abs=0.02)


def test_breakdown_serialises_for_display(catalog: Catalog, settings: PricingSettings) -> None:
    breakdown = PriceAggregator(settings).price(PriceRequest(cabinet_type=catalog.cabinet_type("base-1d")))

    data = breakdown.to_dict()
    summary = breakdown_summary(breakdown)

    assert data["parts"][0]["part_name"] == "Back"
    assert summary["total_price"] == breakdown.total_price
