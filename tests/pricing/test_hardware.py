from __future__ import annotations

import pytest

from cabinet_quoter.catalog import Catalog
from cabinet_quoter.domain_models.catalog import (
    CabinetType,
    HardwareOption,
    HardwareProduct,
    HardwareRequirement,
)
from cabinet_quoter.pricing.hardware import (
    CATEGORY_HINGE,
    CATEGORY_RUNNER,
    HardwareCatalog,
    hardware_cost,
    requirement_quantity,
)
from cabinet_quoter.pricing.settings import PricingSettings


@pytest.mark.parametrize(
    "scope,expected",
    [
        ("per_door", 2 * 2 * 3),
        ("per_drawer", 2 * 4 * 3),
        ("per_cabinet", 2 * 3),
    ],
)
def test_requirement_quantity_follows_unit_scope(scope: str, expected: float) -> None:
    cabinet = CabinetType(id="c", name="C", door_count=2, drawer_count=4)
    requirement = HardwareRequirement(id="r", unit_scope=scope, units_per_scope=2)

    assert requirement_quantity(requirement, cabinet, quantity=3) == expected


def test_hardware_cost_uses_the_selected_brand(catalog: Catalog) -> None:
    cabinet = catalog.cabinet_type("base-1d")
    requirements = catalog.requirements_for("base-1d")

    # two hinges per door at $10 plus four legs at $5
    assert hardware_cost(cabinet, "blum", requirements, catalog.hardware_options) == pytest.approx(40.0)
    assert hardware_cost(cabinet, "blum", requirements, catalog.hardware_options, quantity=2) == pytest.approx(80.0)


@pytest.mark.parametrize("brand", [None, "", "none", "unknown-brand"])
def test_hardware_cost_is_zero_without_a_matching_brand(catalog: Catalog, brand: str | None) -> None:
    cabinet = catalog.cabinet_type("base-1d")

    assert hardware_cost(cabinet, brand, catalog.requirements_for("base-1d"), catalog.hardware_options) == 0.0


def test_hardware_cost_skips_requirements_for_other_cabinets() -> None:
    cabinet = CabinetType(id="mine", name="Mine")
    product = HardwareProduct(id="p", name="Leg", cost_per_unit=3.0)
    requirements = [
        HardwareRequirement(id="r1", cabinet_type_id="mine", units_per_scope=4),
        HardwareRequirement(id="r2", cabinet_type_id="other", units_per_scope=10),
    ]
    options = [
        HardwareOption(id="o1", requirement_id="r1", hardware_brand_id="b", product=product),
        HardwareOption(id="o2", requirement_id="r2", hardware_brand_id="b", product=product),
    ]

    assert hardware_cost(cabinet, "b", requirements, options) == pytest.approx(12.0)


def test_set_cost_applies_markup_then_discount(catalog: Catalog) -> None:
    settings = PricingSettings().with_overrides(hardware_discount_pct=10)
    hardware = catalog.hardware_catalog(settings)
    blum = hardware.find("set-blum")
    assert blum is not None

    pricing = hardware.set_cost(blum, quantity=2)

    assert pricing.base_cost == pytest.approx(40.0)
    assert pricing.marked_up_cost == pytest.approx(54.0)
    assert pricing.final_cost == pytest.approx(48.6)
    assert pricing.brand_name == "Blum"


def test_cabinet_hardware_prices_hinges_and_runners(catalog: Catalog) -> None:
    hardware = HardwareCatalog(catalog.hardware_sets, PricingSettings())

    door_cabinet = hardware.cabinet_hardware(catalog.cabinet_type("base-1d"), quantity=2)
    drawer_cabinet = hardware.cabinet_hardware(catalog.cabinet_type("drawer-3"))

    assert set(door_cabinet.breakdown) == {CATEGORY_HINGE}
    assert door_cabinet.breakdown[CATEGORY_HINGE].set_name == "Clip Top"
    assert door_cabinet.total_cost == pytest.approx(20 * 1.35 * 2)
    assert set(drawer_cabinet.breakdown) == {CATEGORY_RUNNER}
    assert drawer_cabinet.total_cost == pytest.approx(30 * 1.35 * 3)


def test_selected_set_must_match_its_category(catalog: Catalog) -> None:
    hardware = HardwareCatalog(catalog.hardware_sets, PricingSettings())
    cabinet = catalog.cabinet_type("base-1d")

    chosen = hardware.cabinet_hardware(cabinet, {CATEGORY_HINGE: "set-hettich"})
    mismatched = hardware.cabinet_hardware(cabinet, {CATEGORY_HINGE: "set-runner"})

    assert chosen.breakdown[CATEGORY_HINGE].set_name == "Sensys"
    assert mismatched.breakdown[CATEGORY_HINGE].set_name == "Clip Top"


def test_default_set_prefers_configured_then_flagged(catalog: Catalog) -> None:
    configured = catalog.hardware_catalog(PricingSettings())
    unconfigured = HardwareCatalog(catalog.hardware_sets, PricingSettings())

    assert configured.default_set(CATEGORY_HINGE).id == "set-hettich"
    assert unconfigured.default_set(CATEGORY_HINGE).id == "set-blum"
    assert unconfigured.default_set("handle") is None


def test_options_list_defaults_first_then_by_display_name(catalog: Catalog) -> None:
    hardware = HardwareCatalog(catalog.hardware_sets, PricingSettings())

    names = [item.display_name for item in hardware.options(CATEGORY_HINGE)]

    assert names == ["Blum - Clip Top", "Hettich - Sensys"]
