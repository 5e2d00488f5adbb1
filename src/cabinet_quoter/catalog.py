"""Catalog sources and the in-memory catalog they load into.

A catalog source returns plain rows per shop table.  Three sources are
provided: a single JSON document, a directory of CSV exports and a read-only
REST client for PostgREST-style backends.  :func:`load_catalog` turns the rows
into typed entities.
"""
from __future__ import annotations

import json
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd
import requests

from cabinet_quoter.config import AppEnvironment, ConfigError, load_named_config
from cabinet_quoter.domain_models.catalog import (
    CabinetPart,
    CabinetType,
    Color,
    DoorStyle,
    Finish,
    HardwareOption,
    HardwareProduct,
    HardwareRequirement,
    HardwareSet,
    PriceRange,
)
from cabinet_quoter.pricing.hardware import HardwareCatalog
from cabinet_quoter.pricing.settings import PricingSettings

logger = logging.getLogger(__name__)

TABLE_CABINET_TYPES = "cabinet_types"
TABLE_CABINET_PARTS = "cabinet_parts"
TABLE_DOOR_STYLES = "door_styles"
TABLE_FINISHES = "finishes"
TABLE_COLORS = "colors"
TABLE_HARDWARE_PRODUCTS = "hardware_products"
TABLE_HARDWARE_REQUIREMENTS = "cabinet_hardware_requirements"
TABLE_HARDWARE_OPTIONS = "cabinet_hardware_options"
TABLE_HARDWARE_SETS = "hardware_brand_sets"
TABLE_PRICE_RANGES = "price_ranges"
TABLE_GLOBAL_SETTINGS = "global_settings"

TABLES = (
    TABLE_CABINET_TYPES,
    TABLE_CABINET_PARTS,
    TABLE_DOOR_STYLES,
    TABLE_FINISHES,
    TABLE_COLORS,
    TABLE_HARDWARE_PRODUCTS,
    TABLE_HARDWARE_REQUIREMENTS,
    TABLE_HARDWARE_OPTIONS,
    TABLE_HARDWARE_SETS,
    TABLE_PRICE_RANGES,
    TABLE_GLOBAL_SETTINGS,
)

DEFAULT_REST_PATH = "/rest/v1"
DEFAULT_TIMEOUT_S = 15.0


class CatalogError(LookupError):
    """Raised when catalog data cannot be fetched or an entity is missing."""


Row = dict[str, Any]


class CatalogSource:
    """Abstract base for catalog row providers."""

    name: str = "base"

    def fetch(self, table: str) -> list[Row]:
        """Return every row of ``table``; unknown tables yield an empty list."""

        raise NotImplementedError


class JSONCatalogSource(CatalogSource):
    """Rows from one JSON document keyed by table name."""

    name = "json"

    def __init__(self, source: str | Path | Mapping[str, Any]) -> None:
        if isinstance(source, Mapping):
            self._document: Mapping[str, Any] = source
            self.path: Path | None = None
        else:
            self.path = Path(source)
            self._document = self._read(self.path)

    @staticmethod
    def _read(path: Path) -> Mapping[str, Any]:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise CatalogError(f"Catalog file not found: {path}") from exc
        except json.JSONDecodeError as exc:
            raise CatalogError(f"Malformed catalog JSON in {path.name}: {exc}") from exc
        if not isinstance(raw, Mapping):
            raise CatalogError(f"Catalog root must be an object in {path.name}")
        return raw

    def fetch(self, table: str) -> list[Row]:
        rows = self._document.get(table) or []
        if not isinstance(rows, list):
            raise CatalogError(f"Catalog table {table!r} must be a list of rows")
        return [dict(row) for row in rows if isinstance(row, Mapping)]


class CSVCatalogSource(CatalogSource):
    """Rows from ``<directory>/<table>.csv`` exports.

    Nested relations (hardware set items, embedded products) cannot be
    expressed in flat CSV, so tables that depend on them come back without
    those relations.
    """

    name = "csv"

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise CatalogError(f"Catalog directory not found: {self.directory}")

    def fetch(self, table: str) -> list[Row]:
        path = self.directory / f"{table}.csv"
        if not path.exists():
            logger.debug("No CSV export for %s in %s", table, self.directory)
            return []
        try:
            frame = pd.read_csv(path, encoding="utf-8-sig", dtype=str, keep_default_na=False)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
            raise CatalogError(f"Failed to read {path.name}: {exc}") from exc
        rows: list[Row] = []
        for record in frame.to_dict(orient="records"):
            rows.append({key: (None if value == "" else value) for key, value in record.items()})
        return rows


class RestCatalogSource(CatalogSource):
    """Read-only client for ``GET {base_url}/rest/v1/{table}?select=*``."""

    name = "rest"

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        session: requests.Session | None = None,
        timeout: float | None = None,
        rest_path: str | None = None,
    ) -> None:
        if not base_url:
            raise CatalogError("A catalog base URL is required")
        defaults = _catalog_defaults()
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout if timeout is not None else defaults["request_timeout_s"]
        self.rest_path = "/" + (rest_path or defaults["rest_path"]).strip("/")
        self.session = session if session is not None else requests.Session()

    @classmethod
    def from_env(cls, *, session: requests.Session | None = None) -> "RestCatalogSource":
        env = AppEnvironment.from_env()
        if not env.catalog_url:
            raise CatalogError("CABINET_QUOTER_CATALOG_URL is not set")
        return cls(env.catalog_url, env.catalog_key, session=session)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def url_for(self, table: str) -> str:
        return f"{self.base_url}{self.rest_path}/{table}"

    def fetch(self, table: str) -> list[Row]:
        url = self.url_for(table)
        try:
            r = self.session.get(
                url,
                params={"select": "*"},
                headers=self._headers(),
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "?"
            raise CatalogError(f"HTTP {status} fetching {table} from {url}") from exc
        except requests.RequestException as exc:
            raise CatalogError(f"Failed to fetch {table} from {url}: {exc}") from exc
        except ValueError as exc:
            raise CatalogError(f"Unexpected non-JSON payload for {table}") from exc

        if not isinstance(data, list):
            raise CatalogError(f"Unexpected payload for {table}: expected a list of rows")
        logger.debug("Fetched %d %s rows from %s", len(data), table, url)
        return [dict(row) for row in data if isinstance(row, Mapping)]


def _catalog_defaults() -> dict[str, Any]:
    try:
        raw = load_named_config("catalog")
    except ConfigError as exc:
        logger.warning("Catalog defaults unavailable, using built-ins: %s", exc)
        raw = {}
    timeout = raw.get("request_timeout_s")
    try:
        timeout_s = float(timeout) if timeout is not None else DEFAULT_TIMEOUT_S
    except (TypeError, ValueError):
        timeout_s = DEFAULT_TIMEOUT_S
    if not math.isfinite(timeout_s) or timeout_s <= 0:
        timeout_s = DEFAULT_TIMEOUT_S
    return {
        "request_timeout_s": timeout_s,
        "rest_path": str(raw.get("rest_path") or DEFAULT_REST_PATH),
    }


@dataclass
class Catalog:
    """Typed catalog entities indexed by id."""

    cabinet_types: dict[str, CabinetType] = field(default_factory=dict)
    door_styles: dict[str, DoorStyle] = field(default_factory=dict)
    finishes: dict[str, Finish] = field(default_factory=dict)
    colors: dict[str, Color] = field(default_factory=dict)
    hardware_products: dict[str, HardwareProduct] = field(default_factory=dict)
    hardware_requirements: list[HardwareRequirement] = field(default_factory=list)
    hardware_options: list[HardwareOption] = field(default_factory=list)
    hardware_sets: list[HardwareSet] = field(default_factory=list)
    price_ranges: dict[str, list[PriceRange]] = field(default_factory=dict)
    settings_rows: list[Row] = field(default_factory=list)

    @staticmethod
    def _lookup(table: Mapping[str, Any], kind: str, entity_id: str | None) -> Any:
        if not entity_id:
            raise CatalogError(f"No {kind} id given")
        try:
            return table[entity_id]
        except KeyError:
            raise CatalogError(f"Unknown {kind}: {entity_id}") from None

    def cabinet_type(self, cabinet_type_id: str | None) -> CabinetType:
        return self._lookup(self.cabinet_types, "cabinet type", cabinet_type_id)

    def door_style(self, door_style_id: str | None) -> DoorStyle:
        return self._lookup(self.door_styles, "door style", door_style_id)

    def finish(self, finish_id: str | None) -> Finish:
        return self._lookup(self.finishes, "finish", finish_id)

    def color(self, color_id: str | None) -> Color:
        return self._lookup(self.colors, "color", color_id)

    def optional(self, kind: str, entity_id: str | None) -> Any:
        """Return the entity or ``None`` when ``entity_id`` is blank."""

        if not entity_id:
            return None
        getter = {
            "door_style": self.door_style,
            "finish": self.finish,
            "color": self.color,
            "cabinet_type": self.cabinet_type,
        }[kind]
        return getter(entity_id)

    def find_cabinet_type(self, key: str) -> CabinetType:
        """Look a cabinet type up by id, then by case-insensitive name."""

        if key in self.cabinet_types:
            return self.cabinet_types[key]
        lowered = key.strip().lower()
        for cabinet_type in self.cabinet_types.values():
            if cabinet_type.name.lower() == lowered:
                return cabinet_type
        raise CatalogError(f"Unknown cabinet type: {key}")

    def parts_for(self, cabinet_type_id: str) -> tuple[CabinetPart, ...]:
        return self.cabinet_type(cabinet_type_id).parts

    def finishes_for(self, door_style_id: str | None) -> list[Finish]:
        return [
            finish
            for finish in self.finishes.values()
            if not door_style_id or finish.door_style_id in (None, door_style_id)
        ]

    def requirements_for(self, cabinet_type_id: str) -> list[HardwareRequirement]:
        return [req for req in self.hardware_requirements if req.cabinet_type_id == cabinet_type_id]

    def price_ranges_for(self, cabinet_type_id: str) -> list[PriceRange] | None:
        return self.price_ranges.get(cabinet_type_id)

    def pricing_settings(self, base: PricingSettings | None = None) -> PricingSettings:
        return PricingSettings.from_rows(self.settings_rows, base=base)

    def setting_text(self, key: str) -> str | None:
        for row in self.settings_rows:
            if row.get("setting_key") == key:
                value = row.get("setting_value")
                return str(value).strip() if value not in (None, "") else None
        return None

    def hardware_catalog(self, settings: PricingSettings | None = None) -> HardwareCatalog:
        if settings is None:
            settings = self.pricing_settings()
        return HardwareCatalog(
            self.hardware_sets,
            settings,
            default_hinge_set_id=self.setting_text("default_hinge_set_id"),
            default_runner_set_id=self.setting_text("default_runner_set_id"),
        )


def _index(rows: Iterable[Row], factory: Any) -> dict[str, Any]:
    entities: dict[str, Any] = {}
    for row in rows:
        entity = factory(row)
        if not entity.id:
            logger.warning("Skipping %s row without an id", factory.__qualname__.split(".")[0])
            continue
        entities[entity.id] = entity
    return entities


def load_catalog(source: CatalogSource) -> Catalog:
    """Fetch every table from ``source`` and build a :class:`Catalog`."""

    rows = {table: source.fetch(table) for table in TABLES}

    parts_by_type: dict[str, list[CabinetPart]] = defaultdict(list)
    for row in rows[TABLE_CABINET_PARTS]:
        part = CabinetPart.from_row(row)
        if part.cabinet_type_id:
            parts_by_type[part.cabinet_type_id].append(part)

    cabinet_types: dict[str, CabinetType] = {}
    for row in rows[TABLE_CABINET_TYPES]:
        cabinet_type = CabinetType.from_row(row)
        if not cabinet_type.id:
            logger.warning("Skipping cabinet type row without an id: %s", cabinet_type.name)
            continue
        if not cabinet_type.parts and parts_by_type.get(cabinet_type.id):
            cabinet_type = cabinet_type.with_parts(parts_by_type[cabinet_type.id])
        cabinet_types[cabinet_type.id] = cabinet_type

    price_ranges: dict[str, list[PriceRange]] = defaultdict(list)
    for row in rows[TABLE_PRICE_RANGES]:
        cabinet_type_id = str(row.get("cabinet_type_id") or "")
        if cabinet_type_id:
            price_ranges[cabinet_type_id].append(PriceRange.from_row(row))
    for ranges in price_ranges.values():
        ranges.sort(key=lambda item: item.min_width_mm)

    products = _index(rows[TABLE_HARDWARE_PRODUCTS], HardwareProduct.from_row)
    options: list[HardwareOption] = []
    for row in rows[TABLE_HARDWARE_OPTIONS]:
        option = HardwareOption.from_row(row)
        if option.product is None:
            product = products.get(str(row.get("hardware_product_id") or ""))
            if product is not None:
                option = replace(option, product=product)
        options.append(option)

    catalog = Catalog(
        cabinet_types=cabinet_types,
        door_styles=_index(rows[TABLE_DOOR_STYLES], DoorStyle.from_row),
        finishes=_index(rows[TABLE_FINISHES], Finish.from_row),
        colors=_index(rows[TABLE_COLORS], Color.from_row),
        hardware_products=products,
        hardware_requirements=[HardwareRequirement.from_row(row) for row in rows[TABLE_HARDWARE_REQUIREMENTS]],
        hardware_options=options,
        hardware_sets=sorted(
            (HardwareSet.from_row(row) for row in rows[TABLE_HARDWARE_SETS]),
            key=lambda item: item.set_name,
        ),
        price_ranges=dict(price_ranges),
        settings_rows=list(rows[TABLE_GLOBAL_SETTINGS]),
    )
    logger.info(
        "Loaded catalog from %s source: %d cabinet types, %d door styles, %d colors",
        source.name,
        len(catalog.cabinet_types),
        len(catalog.door_styles),
        len(catalog.colors),
    )
    return catalog


__all__ = [
    "Catalog",
    "CatalogError",
    "CatalogSource",
    "CSVCatalogSource",
    "JSONCatalogSource",
    "RestCatalogSource",
    "TABLES",
    "load_catalog",
]
