"""Event dispatcher that stores notification events and publishes them."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from idpsync.core.config import get_settings
from idpsync.events_engine.config import get_event_engine_config
from idpsync.events_engine.publisher import (
    EventPublishError,
    EventPublisher,
    NullEventPublisher,
    SnsEventPublisher,
)
from idpsync.events_engine.schemas import EventEnvelope
from idpsync.models.platform_event import DeliveryState, PlatformEvent

_dispatcher: Optional["EventDispatcher"] = None

LOGGER = logging.getLogger("idpsync.events_engine.dispatcher")


class EventDispatcher:
    """Persists each event as an outbox row, then attempts delivery.

    Delivery failures are recorded on the row and logged; they never abort
    the sync invocation that raised the event.
    """

    def __init__(
        self,
        *,
        publisher: EventPublisher,
        default_source: str,
        max_attempts: int = 3,
    ) -> None:
        self._publisher = publisher
        self._default_source = default_source
        self._max_attempts = max(1, max_attempts)

    def publish_event(
        self,
        session: Session,
        *,
        event_type: str,
        payload: Dict[str, Any],
        subject: Optional[str] = None,
        source: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> PlatformEvent:
        envelope = EventEnvelope(
            event_type=event_type,
            payload=payload,
            subject=subject,
            source=source or self._default_source,
            occurred_at=occurred_at or datetime.now(timezone.utc),
        )

        record = PlatformEvent(
            event_id=str(envelope.event_id),
            event_type=envelope.event_type,
            source=envelope.source,
            subject=envelope.subject,
            occurred_at=envelope.occurred_at,
            payload=envelope.payload,
            delivery_state=DeliveryState.PENDING,
            delivery_attempts=0,
        )
        session.add(record)
        session.flush()

        self._deliver(record, envelope)
        session.flush()
        return record

    def _deliver(self, record: PlatformEvent, envelope: EventEnvelope) -> None:
        for attempt in range(1, self._max_attempts + 1):
            record.delivery_attempts = attempt
            try:
                self._publisher.publish(envelope)
            except EventPublishError as exc:
                record.last_error = str(exc)[:1024]
                LOGGER.warning(
                    "events_engine_publish_attempt_failed",
                    extra={
                        "event_id": record.event_id,
                        "event_type": record.event_type,
                        "attempt": attempt,
                        "error": str(exc),
                    },
                )
                continue
            record.delivery_state = DeliveryState.SUCCEEDED
            record.last_error = None
            LOGGER.info(
                "events_engine_published",
                extra={
                    "event_id": record.event_id,
                    "event_type": record.event_type,
                    "subject": record.subject,
                    "attempts": attempt,
                },
            )
            return

        record.delivery_state = DeliveryState.FAILED
        LOGGER.error(
            "events_engine_publish_failed",
            extra={
                "event_id": record.event_id,
                "event_type": record.event_type,
                "attempts": self._max_attempts,
            },
        )


def get_event_dispatcher() -> EventDispatcher:
    """Return the singleton event dispatcher for the application."""

    global _dispatcher
    if _dispatcher is not None:
        return _dispatcher

    config = get_event_engine_config(get_settings())
    if config.topic_arn:
        publisher: EventPublisher = SnsEventPublisher(topic_arn=config.topic_arn, region_name=config.region)
    else:
        publisher = NullEventPublisher()

    _dispatcher = EventDispatcher(publisher=publisher, default_source=config.source)
    return _dispatcher


def set_event_dispatcher(dispatcher: Optional[EventDispatcher]) -> None:
    """Override the cached dispatcher (primarily for tests)."""

    global _dispatcher
    _dispatcher = dispatcher
