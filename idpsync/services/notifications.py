"""Notification events raised by the sync services."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from idpsync.codec.telemetry import Telemetry
from idpsync.events_engine import EventDispatcher, get_event_dispatcher
from idpsync.models.gateway import MessageGateway
from idpsync.models.message import ForwardState, TerminatedMessage

GATEWAY_DOWN = "gateway.down"
GATEWAY_RECOVERED = "gateway.recovered"
FORWARD_STATE_CHANGED = "forward_message.state_changed"
TELEMETRY_DECODED = "telemetry.decoded"


class SyncNotifier:
    def __init__(self, session: Session, dispatcher: Optional[EventDispatcher] = None) -> None:
        self._session = session
        self._dispatcher = dispatcher or get_event_dispatcher()

    def gateway_availability_changed(self, gateway: MessageGateway, *, reason: Optional[str] = None) -> None:
        self._dispatcher.publish_event(
            self._session,
            event_type=GATEWAY_RECOVERED if gateway.alive else GATEWAY_DOWN,
            subject=gateway.name,
            payload={
                "gateway": gateway.name,
                "url": gateway.url,
                "alive": gateway.alive,
                "changed_at": gateway.alive_changed_at.isoformat() if gateway.alive_changed_at else None,
                "reason": reason,
            },
        )

    def forward_state_changed(self, message: TerminatedMessage, *, previous_state: int) -> None:
        if message.is_closed:
            outcome = "success" if message.state == ForwardState.DELIVERED else "failure"
        else:
            outcome = "pending"
        self._dispatcher.publish_event(
            self._session,
            event_type=FORWARD_STATE_CHANGED,
            subject=str(message.message_id),
            payload={
                "forward_message_id": message.message_id,
                "mobile_id": message.mobile_id,
                "access_id": message.access_id,
                "previous_state": ForwardState.describe(previous_state),
                "state": message.state,
                "state_desc": message.state_desc,
                "is_closed": message.is_closed,
                "outcome": outcome,
                "error_id": message.error_id,
                "error_desc": message.error_desc,
            },
        )

    def telemetry_decoded(self, telemetry: Telemetry, *, message_id: int) -> None:
        self._dispatcher.publish_event(
            self._session,
            event_type=TELEMETRY_DECODED,
            subject=telemetry.mobile_id,
            occurred_at=telemetry.timestamp,
            payload={"message_id": message_id, "telemetry": telemetry.to_record()},
        )
