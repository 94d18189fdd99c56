"""Weight-based delivery charge and cart totals."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from ..config import settings
from ..models.domain import CartLine, CartQuote, ResolvedAddress

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def round_money(value: float) -> float:
    """Round to 2 decimal places, halves away from zero."""
    return float(Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP))


def compute_delivery_charge(total_weight_grams: float, per_kg_rate: float | None = None) -> float:
    """Charge for shipping ``total_weight_grams``.

    One kilogram's rate is the minimum; above that the charge scales with the
    exact weight. Zero (or negative) weight ships free.
    """
    rate = settings.default_per_kg_rate if per_kg_rate is None else per_kg_rate
    grams = max(total_weight_grams or 0, 0)
    if grams <= 0:
        return 0.0
    scaled = Decimal(str(rate)) * Decimal(str(grams)) / Decimal(1000)
    charge = max(Decimal(str(rate)), scaled.quantize(CENTS, rounding=ROUND_HALF_UP))
    return float(charge.quantize(CENTS, rounding=ROUND_HALF_UP))


def total_weight_grams(lines: Iterable[CartLine]) -> float:
    total = 0.0
    for line in lines:
        weight = line.unit_weight_grams or 0
        if weight < 0:
            logger.warning(f"Ignoring negative unit weight {weight}g on cart line")
            weight = 0
        total += weight * max(line.quantity, 0)
    return total


def effective_unit_price(line: CartLine) -> float:
    if line.discount_price is not None:
        return line.discount_price
    if line.discount and line.discount > 0 and line.original_price:
        return round_money(line.original_price * (1 - line.discount / 100))
    return line.price


def select_per_kg_rate(resolved: Optional[ResolvedAddress], default: float | None = None) -> float:
    """Use the resolved shipping cost when the address is deliverable, else the flat rate."""
    fallback = settings.default_per_kg_rate if default is None else default
    if resolved is None or not resolved.serviceable or not resolved.shipping_cost or resolved.shipping_cost <= 0:
        return fallback
    return float(resolved.shipping_cost)


def quote_cart(lines: Iterable[CartLine], per_kg_rate: float | None = None) -> CartQuote:
    lines = list(lines)
    rate = settings.default_per_kg_rate if per_kg_rate is None else per_kg_rate
    subtotal = round_money(sum(effective_unit_price(line) * max(line.quantity, 0) for line in lines))
    weight = total_weight_grams(lines)
    delivery_charge = compute_delivery_charge(weight, rate)
    return CartQuote(
        subtotal=subtotal,
        total_weight_grams=weight,
        per_kg_rate=rate,
        delivery_charge=delivery_charge,
        total=round_money(subtotal + delivery_charge),
    )
