from __future__ import annotations

import pytest

from cabinet_quoter.pricing.math_helpers import (
    apply_percentages,
    compute_pricing_ladder,
    format_price,
    round_dollars,
    round_money,
    roughly_equal,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (2.675, 2.68),
        (1.005, 1.01),
        (0.125, 0.13),
        (-0.125, -0.13),
        ("12.345", 12.35),
        (None, 0.0),
        ("n/a", 0.0),
    ],
)
def test_round_money_rounds_half_up_to_cents(raw: object, expected: float) -> None:
    assert round_money(raw) == expected


def test_round_dollars_rounds_half_up() -> None:
    assert round_dollars(10.5) == 11.0
    assert round_dollars(10.49) == 10.0


@pytest.mark.parametrize(
    "value,expected",
    [
        (1234.5, "$1,234.50"),
        (0, "$0.00"),
        (-5, "-$5.00"),
        ("1999.999", "$2,000.00"),
    ],
)
def test_format_price_renders_aud_amounts(value: object, expected: str) -> None:
    assert format_price(value) == expected


def test_compute_pricing_ladder_applies_wastage_markup_then_gst() -> None:
    totals = compute_pricing_ladder(100.0, wastage_factor=0.05, markup_pct=0.2, gst_rate=0.1)

    assert totals["subtotal"] == pytest.approx(100.0)
    assert totals["wastage"] == pytest.approx(5.0)
    assert totals["with_wastage"] == pytest.approx(105.0)
    assert totals["markup"] == pytest.approx(21.0)
    assert totals["with_markup"] == pytest.approx(126.0)
    assert totals["gst"] == pytest.approx(12.6)
    assert totals["total"] == pytest.approx(138.6)


def test_compute_pricing_ladder_steps_add_up_to_total() -> None:
    totals = compute_pricing_ladder(247.104, wastage_factor=0.05, gst_rate=0.1)

    assert totals["subtotal"] == 247.1
    assert totals["total"] == pytest.approx(
        totals["subtotal"] + totals["wastage"] + totals["markup"] + totals["gst"], abs=1e-9
    )


def test_compute_pricing_ladder_tolerates_garbled_rates() -> None:
    totals = compute_pricing_ladder("50", wastage_factor=None, markup_pct="oops", gst_rate=0.1)

    assert totals["with_markup"] == pytest.approx(50.0)
    assert totals["total"] == pytest.approx(55.0)


def test_apply_percentages_uses_whole_number_percentages() -> None:
    assert apply_percentages(100, markup_pct=35) == pytest.approx(135.0)
    assert apply_percentages(100, markup_pct=35, discount_pct=10) == pytest.approx(121.5)
    assert apply_percentages(None, markup_pct=35) == 0.0


def test_roughly_equal_handles_tolerance() -> None:
    assert roughly_equal(10.0, 10.005)
    assert roughly_equal(10.0, 10.01)
    assert not roughly_equal(10.0, 10.02)
    assert roughly_equal(100.0, 100.4, eps=0.5)
    assert not roughly_equal("abc", 1.0)
