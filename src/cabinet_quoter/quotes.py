"""Saved quotes and deposit/balance payment schedules."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from cabinet_quoter.cart import Cart, CartItem
from cabinet_quoter.config import ConfigError, load_named_config
from cabinet_quoter.domain_models.values import safe_float, to_int
from cabinet_quoter.pricing.math_helpers import round_money
from cabinet_quoter.pricing.settings import PricingSettings

logger = logging.getLogger(__name__)

PAYMENT_DEPOSIT = "deposit"
PAYMENT_BALANCE = "balance"
PAYMENT_FULL = "full"


class QuoteError(ValueError):
    """Raised for malformed quotes and payment requests."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Quote:
    """Named snapshot of cart lines, priced GST-exclusive per line."""

    name: str
    items: tuple[CartItem, ...]
    gst_rate: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=_now)
    notes: str | None = None

    @property
    def subtotal(self) -> float:
        return round_money(sum(item.total_price for item in self.items))

    @property
    def gst(self) -> float:
        return round_money(self.subtotal * self.gst_rate)

    @property
    def total(self) -> float:
        return round_money(self.subtotal + self.gst)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_cart(self) -> Cart:
        """Rebuild a cart from the quote; lines keep their quoted prices."""

        cart = Cart(self.items, validate=False)
        cart.validate = True
        return cart

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "item_count": self.item_count,
            "subtotal": self.subtotal,
            "gst": self.gst,
            "total": self.total,
            "notes": self.notes,
        }


def create_quote(
    name: str,
    cart: Cart,
    *,
    gst_rate: float | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Quote:
    """Snapshot ``cart`` under ``name``."""

    cleaned = (name or "").strip()
    if not cleaned:
        raise QuoteError("A quote needs a name")
    if not len(cart):
        raise QuoteError("Cannot create a quote from an empty cart")
    if gst_rate is None:
        gst_rate = PricingSettings.defaults().gst_rate
    quote = Quote(
        name=cleaned,
        items=cart.items,
        gst_rate=gst_rate,
        created_at=now or _now(),
        notes=notes,
    )
    logger.info("Created quote %r with %d lines totalling %.2f", quote.name, len(quote.items), quote.total)
    return quote


@dataclass(frozen=True)
class PaymentSchedule:
    deposit_amount: float
    deposit_pct: float
    balance_amount: float
    balance_pct: float
    total_amount: float
    deposit_due: datetime
    balance_due: datetime


def _payment_defaults() -> dict[str, float]:
    try:
        raw = load_named_config("payments")
    except ConfigError as exc:
        logger.warning("Payment defaults unavailable, using built-ins: %s", exc)
        raw = {}
    return {
        "deposit_pct": safe_float(raw.get("deposit_pct"), 20.0),
        "deposit_due_days": float(to_int(raw.get("deposit_due_days"), 7) or 7),
        "balance_due_days": float(to_int(raw.get("balance_due_days"), 30) or 30),
    }


def calculate_payment_schedule(
    total: float,
    deposit_pct: float | None = None,
    deposit_due_days: int | None = None,
    balance_due_days: int | None = None,
    now: datetime | None = None,
) -> PaymentSchedule:
    """Split ``total`` into a deposit and balance with due dates.

    The deposit is rounded to cents and the balance is whatever remains, so
    the two always add back up to the total.
    """

    defaults = _payment_defaults()
    deposit_pct = defaults["deposit_pct"] if deposit_pct is None else deposit_pct
    deposit_days = int(defaults["deposit_due_days"]) if deposit_due_days is None else deposit_due_days
    balance_days = int(defaults["balance_due_days"]) if balance_due_days is None else balance_due_days
    if not 0 <= deposit_pct <= 100:
        raise QuoteError(f"Deposit percentage must be between 0 and 100, got {deposit_pct}")

    start = now or _now()
    deposit = round_money(total * (deposit_pct / 100.0))
    balance = round_money(total - deposit)
    return PaymentSchedule(
        deposit_amount=deposit,
        deposit_pct=deposit_pct,
        balance_amount=balance,
        balance_pct=100.0 - deposit_pct,
        total_amount=total,
        deposit_due=start + timedelta(days=deposit_days),
        balance_due=start + timedelta(days=balance_days),
    )


def format_payment_schedule(schedule: PaymentSchedule) -> str:
    return "\n".join(
        [
            f"Deposit ({schedule.deposit_pct:g}%): ${schedule.deposit_amount:.2f}"
            f" - Due {schedule.deposit_due:%d/%m/%Y}",
            f"Balance ({schedule.balance_pct:g}%): ${schedule.balance_amount:.2f}"
            f" - Due {schedule.balance_due:%d/%m/%Y}",
            f"Total: ${schedule.total_amount:.2f}",
        ]
    )


@dataclass(frozen=True)
class PaymentCheck:
    valid: bool
    message: str | None = None


def validate_payment_amount(amount: float, schedule: PaymentSchedule, kind: str) -> PaymentCheck:
    """Check that ``amount`` is exactly the scheduled ``kind`` payment (to the cent)."""

    expected = {
        PAYMENT_DEPOSIT: (schedule.deposit_amount, "Deposit amount"),
        PAYMENT_BALANCE: (schedule.balance_amount, "Balance amount"),
        PAYMENT_FULL: (schedule.total_amount, "Full payment amount"),
    }
    if kind not in expected:
        raise QuoteError(f"Unknown payment type: {kind}")
    target, label = expected[kind]
    if round_money(amount) != round_money(target):
        return PaymentCheck(False, f"{label} must be exactly ${target:.2f}")
    return PaymentCheck(True)


__all__ = [
    "PAYMENT_BALANCE",
    "PAYMENT_DEPOSIT",
    "PAYMENT_FULL",
    "PaymentCheck",
    "PaymentSchedule",
    "Quote",
    "QuoteError",
    "calculate_payment_schedule",
    "create_quote",
    "format_payment_schedule",
    "validate_payment_amount",
]
