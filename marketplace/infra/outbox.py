"""
Transactional Outbox pattern implementation.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from django.db import models
from django.db.models import F
from django.utils import timezone

from marketplace.domain.events import DomainEvent
from marketplace.infra.models import TimeStampedModel


logger = logging.getLogger(__name__)


class OutboxEvent(TimeStampedModel):
    """Outbox event for transactional outbox pattern."""
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    aggregate_id = models.UUIDField()
    aggregate_type = models.CharField(max_length=50)
    event_type = models.CharField(max_length=100)
    event_data = models.JSONField()
    processed = models.BooleanField(default=False)
    processed_at = models.DateTimeField(null=True, blank=True)
    retry_count = models.IntegerField(default=0)

    class Meta:
        indexes = [
            models.Index(fields=("processed", "created_at"), name="outbox_pending_idx"),
            models.Index(fields=("aggregate_id", "aggregate_type"), name="outbox_aggregate_idx"),
        ]


class OutboxRepository:
    """Repository for outbox events."""

    def add_event(self, event: DomainEvent, aggregate_type: str) -> UUID:
        """Add event to outbox. Must run in the transaction of the state change."""
        if not event.occurred_at:
            event.occurred_at = timezone.now().isoformat()
        outbox_event = OutboxEvent.objects.create(
            id=event.event_id,
            aggregate_id=event.aggregate_id,
            aggregate_type=aggregate_type,
            event_type=event.event_type,
            event_data=self._serialize_event(event),
        )
        logger.debug(
            "outbox_event_added",
            extra={"event_type": event.event_type, "aggregate_id": str(event.aggregate_id)},
        )
        return outbox_event.id

    def get_unprocessed_events(self, limit: int = 100) -> list[OutboxEvent]:
        """Get unprocessed events, oldest first, locking them against other relays."""
        return list(
            OutboxEvent.objects
            .select_for_update(skip_locked=True)
            .filter(processed=False)
            .order_by("created_at")[:limit]
        )

    def mark_processed(self, event_id: UUID) -> None:
        OutboxEvent.objects.filter(id=event_id).update(
            processed=True,
            processed_at=timezone.now(),
        )

    def increment_retry(self, event_id: UUID) -> None:
        OutboxEvent.objects.filter(id=event_id).update(
            retry_count=F("retry_count") + 1,
        )

    def _serialize_event(self, event: DomainEvent) -> dict:
        """Serialize event to a JSON-safe dict."""
        data = {}
        for key, value in event.__dict__.items():
            data[key] = self._to_json(value)
        return data

    def _to_json(self, value):
        if isinstance(value, (UUID, Decimal)):
            return str(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, list):
            return [self._to_json(item) for item in value]
        if isinstance(value, dict):
            return {key: self._to_json(item) for key, item in value.items()}
        return value
