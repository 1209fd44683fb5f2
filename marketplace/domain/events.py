"""
Domain events written to the transactional outbox.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


class EventVersion(str, Enum):
    """Event version for upcasting."""
    V1 = "1.0"


@dataclass
class DomainEvent:
    """Base domain event."""
    aggregate_id: UUID
    # event_id, event_type, version and occurred_at are set in subclasses,
    # after the payload fields, to avoid dataclass field ordering issues


@dataclass
class OrderPlaced(DomainEvent):
    """Checkout committed a new order."""
    user_id: UUID
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    items_count: int
    event_id: UUID = field(default_factory=uuid4)
    event_type: str = "OrderPlaced"
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderCancelled(DomainEvent):
    """Order cancelled and its stock returned."""
    from_status: str
    restocked: list[dict] = field(default_factory=list)
    skipped_supply_ids: list[str] = field(default_factory=list)
    event_id: UUID = field(default_factory=uuid4)
    event_type: str = "OrderCancelled"
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderStatusChanged(DomainEvent):
    """Order advanced along its fulfilment path."""
    from_status: str
    to_status: str
    tracking_number: str | None = None
    event_id: UUID = field(default_factory=uuid4)
    event_type: str = "OrderStatusChanged"
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""
