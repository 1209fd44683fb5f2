"""
Domain model for Order aggregate.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from marketplace.domain.exceptions import InvalidTransitionError, ValidationError
from marketplace.domain.pricing import OrderTotals, PricedLine, price_order


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

CANCELLABLE_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items()
    if OrderStatus.CANCELLED in targets
)


@dataclass(frozen=True)
class ShippingInfo:
    """Shipping destination captured at checkout."""
    address: str
    city: str
    state: str
    zip: str
    phone: str
    country: str = "USA"
    notes: str | None = None

    REQUIRED_FIELDS = ("address", "city", "state", "zip", "phone")

    def __post_init__(self):
        missing = [
            name for name in self.REQUIRED_FIELDS
            if not (getattr(self, name) or "").strip()
        ]
        if missing:
            raise ValidationError(f"Missing shipping fields: {', '.join(missing)}")
        if not (self.country or "").strip():
            raise ValidationError("Shipping country must not be blank")


class OrderItem:
    """Order line with prices frozen at purchase time."""

    def __init__(
        self,
        supply_id: UUID,
        supply_name: str,
        quantity: int,
        unit_price: Decimal,
        discount: Decimal,
        subtotal: Decimal,
    ):
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if unit_price < 0:
            raise ValueError("Price must be non-negative")

        self.supply_id = supply_id
        self.supply_name = supply_name
        self.quantity = quantity
        self.unit_price = unit_price
        self.discount = discount
        self.subtotal = subtotal

    @classmethod
    def from_priced_line(cls, supply_id: UUID, supply_name: str, line: PricedLine) -> OrderItem:
        return cls(
            supply_id=supply_id,
            supply_name=supply_name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            discount=line.discount_amount,
            subtotal=line.line_total,
        )

    def as_priced_line(self) -> PricedLine:
        return PricedLine(
            unit_price=self.unit_price,
            quantity=self.quantity,
            subtotal=self.subtotal + self.discount,
            discount_amount=self.discount,
            line_total=self.subtotal,
        )


class Order:
    """Order aggregate root.

    Items and totals are fixed at creation; only the status (and the
    shipping/delivery stamps that go with it) changes afterwards, and only
    along ``ALLOWED_TRANSITIONS``.
    """

    def __init__(
        self,
        user_id: UUID,
        shipping: ShippingInfo,
        items: list[OrderItem],
        totals: OrderTotals,
        id: UUID | None = None,
        status: OrderStatus = OrderStatus.PENDING,
        created_at: datetime | None = None,
        shipped_at: datetime | None = None,
        delivered_at: datetime | None = None,
        tracking_number: str | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.shipping = shipping
        self._items = list(items)
        self.totals = totals
        self._status = status
        self.created_at = created_at
        self.shipped_at = shipped_at
        self.delivered_at = delivered_at
        self.tracking_number = tracking_number

    @classmethod
    def place(cls, user_id: UUID, shipping: ShippingInfo, items: list[OrderItem]) -> Order:
        """Create a pending order whose totals are derived from its items."""
        if not items:
            raise ValidationError("Cannot place an order without items")
        totals = price_order(item.as_priced_line() for item in items)
        return cls(user_id=user_id, shipping=shipping, items=items, totals=totals)

    @property
    def items(self) -> list[OrderItem]:
        """Get order items (immutable)."""
        return list(self._items)

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def discount(self) -> Decimal:
        return self.totals.discount

    @property
    def tax(self) -> Decimal:
        return self.totals.tax

    @property
    def total(self) -> Decimal:
        return self.totals.total

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self._status]

    def _transition(self, target: OrderStatus) -> OrderStatus:
        if not self.can_transition_to(target):
            raise InvalidTransitionError(self.id, self._status.value, target.value)
        previous = self._status
        self._status = target
        return previous

    def start_processing(self) -> OrderStatus:
        """Move a pending order into processing."""
        return self._transition(OrderStatus.PROCESSING)

    def ship(self, tracking_number: str, shipped_at: datetime) -> OrderStatus:
        """Mark order as shipped with a carrier tracking number."""
        if not (tracking_number or "").strip():
            raise ValidationError("Tracking number is required to ship an order")
        previous = self._transition(OrderStatus.SHIPPED)
        self.tracking_number = tracking_number.strip()
        self.shipped_at = shipped_at
        return previous

    def deliver(self, delivered_at: datetime) -> OrderStatus:
        """Mark order as delivered."""
        previous = self._transition(OrderStatus.DELIVERED)
        self.delivered_at = delivered_at
        return previous

    def cancel(self) -> OrderStatus:
        """Cancel order. Only pending or processing orders can be cancelled."""
        return self._transition(OrderStatus.CANCELLED)
