"""
Cart read model: cart lines joined with catalog data and priced for preview.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from marketplace.domain.pricing import OrderTotals, PricedLine, price_line, price_order


@dataclass(frozen=True)
class CartLine:
    """One cart line with the catalog fields needed to price and show it."""
    supply_id: UUID
    name: str
    unit: str
    unit_price: Decimal
    quantity: int
    image: str | None = None


@dataclass(frozen=True)
class PricedCartLine:
    line: CartLine
    priced: PricedLine

    @property
    def supply_id(self) -> UUID:
        return self.line.supply_id


@dataclass(frozen=True)
class PricedCartView:
    cart_id: UUID
    user_id: UUID
    lines: list[PricedCartLine] = field(default_factory=list)
    totals: OrderTotals = field(default_factory=lambda: price_order([]))

    @property
    def total_items(self) -> int:
        return sum(entry.line.quantity for entry in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines


def price_cart(cart_id: UUID, user_id: UUID, lines: list[CartLine]) -> PricedCartView:
    """Price every line of a cart with the same engine checkout uses."""
    priced = [
        PricedCartLine(line=line, priced=price_line(line.unit_price, line.quantity))
        for line in lines
    ]
    return PricedCartView(
        cart_id=cart_id,
        user_id=user_id,
        lines=priced,
        totals=price_order(entry.priced for entry in priced),
    )
