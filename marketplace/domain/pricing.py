"""
Volume discount and tax pricing.

Pure functions over ``Decimal``: the same unit prices and quantities always
produce the same figures, so a cart preview and the order committed from it
agree to the cent. Discount and tax are rounded half-up to cents; every other
figure is an exact sum or difference of cent values.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from marketplace.domain.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

TAX_RATE = Decimal("0.07")

# (minimum quantity, rate), highest threshold first
DISCOUNT_TIERS = (
    (10, Decimal("0.10")),
    (5, Decimal("0.05")),
)


def to_money(value) -> Decimal:
    """Quantize a Decimal (or a str/int) to cents."""
    if isinstance(value, float):
        raise TypeError("Money must not be a float")
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    discount_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


def discount_rate(quantity: int) -> Decimal:
    """Volume discount rate for a line of ``quantity`` units."""
    for threshold, rate in DISCOUNT_TIERS:
        if quantity >= threshold:
            return rate
    return Decimal("0")


def price_line(unit_price: Decimal, quantity: int) -> PricedLine:
    """Price one line: subtotal, volume discount and line total."""
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    unit_price = to_money(unit_price)
    if unit_price < 0:
        raise ValidationError("Price must be non-negative")

    subtotal = unit_price * quantity
    discount_amount = to_money(subtotal * discount_rate(quantity))
    return PricedLine(
        unit_price=unit_price,
        quantity=quantity,
        subtotal=subtotal,
        discount_amount=discount_amount,
        line_total=subtotal - discount_amount,
    )


def price_order(lines: Iterable[PricedLine]) -> OrderTotals:
    """Aggregate priced lines into order totals with tax."""
    subtotal = ZERO
    discount = ZERO
    for line in lines:
        subtotal += line.line_total
        discount += line.discount_amount

    tax = to_money(subtotal * TAX_RATE)
    return OrderTotals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=subtotal + tax,
    )
