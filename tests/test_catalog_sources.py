from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import requests

from cabinet_quoter.catalog import (
    TABLE_CABINET_TYPES,
    Catalog,
    CatalogError,
    CSVCatalogSource,
    JSONCatalogSource,
    RestCatalogSource,
    load_catalog,
)


class _FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, *, bad_json: bool = False) -> None:
        self.payload = payload
        self.status_code = status_code
        self.bad_json = bad_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self) -> Any:
        if self.bad_json:
            raise ValueError("no JSON object could be decoded")
        return self.payload


class _FakeSession:
    def __init__(self, responses: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.responses = responses or {}
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        table = url.rsplit("/", 1)[-1]
        response = self.responses.get(table, [])
        if isinstance(response, _FakeResponse):
            return response
        return _FakeResponse(response)


def test_json_source_loads_a_catalog_from_disk(catalog_path: Path) -> None:
    catalog = load_catalog(JSONCatalogSource(catalog_path))

    assert set(catalog.cabinet_types) == {"base-1d", "drawer-3", "corner"}
    assert [part.part_name for part in catalog.parts_for("base-1d")] == ["Back", "Side", "Door", "Hinge"]
    assert catalog.parts_for("drawer-3") == ()


@pytest.mark.parametrize(
    "content,message",
    [
        ("{not json", "Malformed catalog JSON"),
        ("[1, 2]", "must be an object"),
    ],
)
def test_json_source_rejects_bad_documents(tmp_path: Path, content: str, message: str) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(CatalogError, match=message):
        JSONCatalogSource(path)


def test_json_source_rejects_missing_files_and_non_list_tables(tmp_path: Path) -> None:
    with pytest.raises(CatalogError, match="not found"):
        JSONCatalogSource(tmp_path / "missing.json")

    source = JSONCatalogSource({TABLE_CABINET_TYPES: {"id": "x"}})
    with pytest.raises(CatalogError):
        source.fetch(TABLE_CABINET_TYPES)
    assert source.fetch("colors") == []


def test_csv_source_reads_exports_and_blanks_become_none(tmp_path: Path) -> None:
    (tmp_path / "cabinet_types.csv").write_text(
        "id,name,category,default_width_mm,door_qty,base_price\n"
        "base-1d,Base 1 Door,Base,600,1,\n",
        encoding="utf-8",
    )
    (tmp_path / "cabinet_parts.csv").write_text(
        "id,cabinet_type_id,part_name,quantity,width_formula,height_formula,is_door\n"
        "p1,base-1d,Back,1,width,height,false\n"
        "p2,base-1d,Door,1,width-4,height-4,true\n",
        encoding="utf-8",
    )
    source = CSVCatalogSource(tmp_path)

    rows = source.fetch("cabinet_types")
    catalog = load_catalog(source)

    assert rows[0]["base_price"] is None
    cabinet = catalog.cabinet_type("base-1d")
    assert cabinet.category == "base"
    assert cabinet.door_count == 1
    assert cabinet.base_price == 0.0
    assert [part.is_door for part in cabinet.parts] == [False, True]
    assert source.fetch("colors") == []


def test_csv_source_requires_an_existing_directory(tmp_path: Path) -> None:
    with pytest.raises(CatalogError):
        CSVCatalogSource(tmp_path / "nowhere")


def test_rest_source_sends_key_headers_and_select(catalog_document: dict[str, Any]) -> None:
    session = _FakeSession(catalog_document)
    source = RestCatalogSource("https://shop.example.com/", "anon-key", session=session, timeout=5)

    catalog = load_catalog(source)

    first = session.calls[0]
    assert first["url"] == "https://shop.example.com/rest/v1/cabinet_types"
    assert first["params"] == {"select": "*"}
    assert first["headers"]["apikey"] == "anon-key"
    assert first["headers"]["Authorization"] == "Bearer anon-key"
    assert first["timeout"] == 5
    assert "base-1d" in catalog.cabinet_types


def test_rest_source_omits_auth_without_a_key() -> None:
    session = _FakeSession()
    source = RestCatalogSource("https://shop.example.com", session=session, rest_path="api")

    assert source.fetch("colors") == []
    assert session.calls[0]["url"] == "https://shop.example.com/api/colors"
    assert "apikey" not in session.calls[0]["headers"]


@pytest.mark.parametrize(
    "response,message",
    [
        (_FakeResponse(status_code=503), "HTTP 503"),
        (_FakeResponse(bad_json=True), "non-JSON"),
        (_FakeResponse({"message": "nope"}), "expected a list"),
    ],
)
def test_rest_source_wraps_failures(response: _FakeResponse, message: str) -> None:
    source = RestCatalogSource("https://shop.example.com", session=_FakeSession({"colors": response}))

    with pytest.raises(CatalogError, match=message):
        source.fetch("colors")


def test_rest_source_wraps_connection_errors() -> None:
    session = _FakeSession(error=requests.ConnectionError("refused"))
    source = RestCatalogSource("https://shop.example.com", session=session)

    with pytest.raises(CatalogError, match="Failed to fetch colors"):
        source.fetch("colors")


def test_rest_source_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(CatalogError):
        RestCatalogSource.from_env(session=_FakeSession())

    monkeypatch.setenv("CABINET_QUOTER_CATALOG_URL", "https://shop.example.com")
    monkeypatch.setenv("CABINET_QUOTER_CATALOG_KEY", "secret")
    source = RestCatalogSource.from_env(session=_FakeSession())

    assert source.base_url == "https://shop.example.com"
    assert source.api_key == "secret"


def test_catalog_lookups(catalog: Catalog) -> None:
    assert catalog.find_cabinet_type("base 1 door").id == "base-1d"
    assert catalog.find_cabinet_type("corner").name == "Corner Base"
    assert catalog.optional("finish", None) is None
    assert catalog.optional("color", "navy").surcharge_rate_per_sqm == 20.0
    with pytest.raises(CatalogError, match="Unknown cabinet type"):
        catalog.find_cabinet_type("pantry")
    with pytest.raises(CatalogError, match="Unknown finish"):
        catalog.finish("matte")
    with pytest.raises(CatalogError, match="No color id"):
        catalog.color("")


def test_finishes_are_filtered_by_door_style(catalog: Catalog) -> None:
    shaker = {finish.id for finish in catalog.finishes_for("shaker")}

    assert shaker == {"satin", "gloss"}
    assert len(catalog.finishes_for(None)) == 3


def test_catalog_resolves_relations_and_settings(catalog: Catalog) -> None:
    ranges = catalog.price_ranges_for("base-1d")
    hinge_option = next(option for option in catalog.hardware_options if option.id == "o-hinge")

    assert ranges is not None and [item.label for item in ranges] == ["300-449mm", "450-599mm"]
    assert catalog.price_ranges_for("drawer-3") is None
    assert hinge_option.product is not None and hinge_option.product.cost_per_unit == 10.0
    assert [item.set_name for item in catalog.hardware_sets] == ["Clip Top", "Sensys", "Tandembox"]
    assert catalog.pricing_settings().hmr_rate_per_sqm == 85.0
    assert catalog.setting_text("default_hinge_set_id") == "set-hettich"
    assert catalog.setting_text("missing") is None
