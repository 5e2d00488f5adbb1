from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from cabinet_quoter import config
from cabinet_quoter.catalog import Catalog, JSONCatalogSource, load_catalog
from cabinet_quoter.pricing.settings import PricingSettings


_CATALOG_DOCUMENT: dict[str, Any] = {
    "cabinet_types": [
        {
            "id": "base-1d",
            "name": "Base 1 Door",
            "category": "base",
            "default_width_mm": 600,
            "default_height_mm": 720,
            "default_depth_mm": 560,
            "min_width_mm": 150,
            "max_width_mm": 1200,
            "min_height_mm": 600,
            "max_height_mm": 900,
            "min_depth_mm": 300,
            "max_depth_mm": 700,
            "door_qty": 1,
        },
        {
            "id": "drawer-3",
            "name": "3 Drawer Base",
            "category": "base",
            "default_width_mm": 600,
            "default_height_mm": 720,
            "default_depth_mm": 560,
            "drawer_count": 3,
        },
        {
            "id": "corner",
            "name": "Corner Base",
            "category": "base",
            "cabinet_style": "corner",
            "default_width_mm": 900,
            "default_height_mm": 720,
            "default_depth_mm": 560,
            "left_side_width_mm": 400,
            "right_side_width_mm": 400,
            "door_qty": 1,
            "cabinet_parts": [
                {
                    "id": "corner-back",
                    "part_name": "Back",
                    "width_formula": "left_width+right_width",
                    "height_formula": "height",
                },
            ],
        },
    ],
    "cabinet_parts": [
        {
            "id": "p-back",
            "cabinet_type_id": "base-1d",
            "part_name": "Back",
            "quantity": 1,
            "width_formula": "width",
            "height_formula": "height",
        },
        {
            "id": "p-side",
            "cabinet_type_id": "base-1d",
            "part_name": "Side",
            "quantity": 2,
            "width_formula": "depth",
            "height_formula": "height",
        },
        {
            "id": "p-door",
            "cabinet_type_id": "base-1d",
            "part_name": "Door",
            "quantity": 1,
            "width_formula": "width",
            "height_formula": "height",
            "is_door": True,
        },
        {
            "id": "p-hinge",
            "cabinet_type_id": "base-1d",
            "part_name": "Hinge",
            "quantity": 2,
            "is_hardware": True,
        },
    ],
    "door_styles": [
        {
            "id": "shaker",
            "name": "Shaker",
            "base_rate_per_sqm": 100,
            "material_density_kg_per_sqm": 15,
            "thickness_mm": 20,
            "weight_factor": 1.2,
        },
    ],
    "finishes": [
        {"id": "satin", "name": "Satin", "rate_per_sqm": 50, "door_style_id": "shaker"},
        {"id": "gloss", "name": "Gloss", "rate_per_sqm": 80},
        {"id": "raw", "name": "Raw", "rate_per_sqm": 0, "door_style_id": "slab"},
    ],
    "colors": [
        {"id": "white", "name": "White", "surcharge_rate_per_sqm": 0},
        {
            "id": "navy",
            "name": "Navy",
            "surcharge_rate_per_sqm": 20,
            "minimum_order_amount": 500,
            "service_fee_tier1_max": 200,
            "service_fee_tier1_amount": 50,
            "service_fee_tier2_max": 400,
            "service_fee_tier2_amount": 25,
        },
    ],
    "hardware_products": [
        {"id": "p-blum-hinge", "name": "Blum hinge", "cost_per_unit": 10, "hardware_brand_id": "blum"},
        {"id": "p-blum-leg", "name": "Blum leg", "cost_per_unit": 5, "hardware_brand_id": "blum"},
    ],
    "cabinet_hardware_requirements": [
        {
            "id": "req-hinge",
            "cabinet_type_id": "base-1d",
            "hardware_type": {"name": "Hinge"},
            "unit_scope": "per_door",
            "units_per_scope": 2,
        },
        {
            "id": "req-leg",
            "cabinet_type_id": "base-1d",
            "hardware_type": "Leg",
            "unit_scope": "per_cabinet",
            "units_per_scope": 4,
        },
    ],
    "cabinet_hardware_options": [
        {
            "id": "o-hinge",
            "requirement_id": "req-hinge",
            "hardware_brand_id": "blum",
            "hardware_product_id": "p-blum-hinge",
        },
        {
            "id": "o-leg",
            "requirement_id": "req-leg",
            "hardware_brand_id": "blum",
            "hardware_product": {"id": "p-blum-leg", "name": "Blum leg", "cost_per_unit": 5},
        },
    ],
    "hardware_brand_sets": [
        {
            "id": "set-hettich",
            "set_name": "Sensys",
            "category": "hinge",
            "hardware_brands": {"name": "Hettich"},
            "hardware_set_items": [
                {"hardware_product_id": "h1", "quantity": 2, "hardware_products": {"name": "Sensys hinge", "cost_per_unit": 8}},
            ],
        },
        {
            "id": "set-blum",
            "set_name": "Clip Top",
            "category": "hinge",
            "is_default": True,
            "hardware_brands": {"name": "Blum"},
            "hardware_set_items": [
                {"hardware_product_id": "b1", "quantity": 2, "hardware_products": {"name": "Clip hinge", "cost_per_unit": 10}},
            ],
        },
        {
            "id": "set-runner",
            "set_name": "Tandembox",
            "category": "runner",
            "hardware_brands": {"name": "Blum"},
            "hardware_set_items": [
                {"hardware_product_id": "r1", "quantity": 1, "hardware_products": {"name": "Runner pair", "cost_per_unit": 30}},
            ],
        },
    ],
    "price_ranges": [
        {"id": "r2", "cabinet_type_id": "base-1d", "label": "450-599mm", "min_width_mm": 450, "max_width_mm": 599},
        {"id": "r1", "cabinet_type_id": "base-1d", "label": "300-449mm", "min_width_mm": 300, "max_width_mm": 449},
    ],
    "global_settings": [
        {"setting_key": "hmr_rate_per_sqm", "setting_value": "85"},
        {"setting_key": "gst_rate", "setting_value": "0.1"},
        {"setting_key": "default_hinge_set_id", "setting_value": "set-hettich"},
    ],
}


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        config.APP_SETTINGS_ENV_VAR,
        config.STRICT_FORMULAS_ENV_VAR,
        config.CATALOG_URL_ENV_VAR,
        config.CATALOG_KEY_ENV_VAR,
    ):
        monkeypatch.delenv(name, raising=False)
    config.load_app_settings(reload=True)


@pytest.fixture
def settings() -> PricingSettings:
    return PricingSettings()


@pytest.fixture
def flat_settings() -> PricingSettings:
    """Settings without wastage or GST so unit prices equal the raw subtotal."""

    return PricingSettings().with_overrides(wastage_factor=0, gst_rate=0)


@pytest.fixture
def catalog_document() -> dict[str, Any]:
    return copy.deepcopy(_CATALOG_DOCUMENT)


@pytest.fixture
def catalog(catalog_document: dict[str, Any]) -> Catalog:
    return load_catalog(JSONCatalogSource(catalog_document))


@pytest.fixture
def catalog_path(tmp_path: Path, catalog_document: dict[str, Any]) -> Path:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog_document), encoding="utf-8")
    return path
