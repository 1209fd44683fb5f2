"""
Relay for publishing outbox events.
"""
from __future__ import annotations

import logging
from typing import Callable

from django.db import transaction

from marketplace.infra.outbox import OutboxEvent, OutboxRepository

logger = logging.getLogger(__name__)
events_logger = logging.getLogger("marketplace.events")


def log_publisher(event: OutboxEvent) -> None:
    """Publish an event as a structured log line on ``marketplace.events``."""
    events_logger.info(
        event.event_type,
        extra={
            "event_id": str(event.id),
            "aggregate_id": str(event.aggregate_id),
            "aggregate_type": event.aggregate_type,
            "event_data": event.event_data,
        },
    )


class OutboxRelay:
    """Publishes unprocessed outbox events in creation order."""

    def __init__(
        self,
        outbox_repo: OutboxRepository | None = None,
        publisher: Callable[[OutboxEvent], None] | None = None,
    ):
        self.outbox_repo = outbox_repo or OutboxRepository()
        self.publisher = publisher or log_publisher

    @transaction.atomic
    def process_outbox_events(self, limit: int = 100) -> int:
        """Publish up to ``limit`` events; return how many were published."""
        events = self.outbox_repo.get_unprocessed_events(limit=limit)
        processed_count = 0

        for event in events:
            try:
                self.publisher(event)
            except Exception as e:
                # Keep the event for the next run and move on
                self.outbox_repo.increment_retry(event.id)
                logger.error(
                    "outbox_publish_failed",
                    extra={
                        "event_id": str(event.id),
                        "event_type": event.event_type,
                        "error": str(e),
                    },
                    exc_info=True,
                )
                continue
            self.outbox_repo.mark_processed(event.id)
            processed_count += 1

        return processed_count
