"""Delivery status tracking for mobile-terminated (forward) messages."""

from __future__ import annotations

from typing import Any, Dict, List

from idpsync.models.api_call_log import GatewayOperation
from idpsync.models.categories import RecordCategory
from idpsync.models.gateway import Mailbox, MessageGateway
from idpsync.models.message import ForwardState, TerminatedMessage
from idpsync.schemas.gateway import ForwardStatus, ForwardStatusesResponse, GatewayAuth, PollFilter
from idpsync.services.polling import GatewayPoller


class TerminatedStatusPoller(GatewayPoller):
    """Merges gateway delivery statuses into stored forward messages.

    A status only causes a write when its state code differs from the stored
    one; a message that has closed stays closed.
    """

    operation = GatewayOperation.GET_FORWARD_STATUSES

    def _fetch(self, auth: GatewayAuth, poll: PollFilter, url: str) -> ForwardStatusesResponse:
        return self._gateway.get_forward_statuses(auth, poll, url)

    def _items(self, response: ForwardStatusesResponse) -> List[ForwardStatus]:
        return response.statuses

    def _process(self, mailbox: Mailbox, gateway: MessageGateway, items: List[ForwardStatus]) -> int:
        changed = 0
        for status in items:
            message: TerminatedMessage = self._store.get(
                RecordCategory.MOBILE_TERMINATED, message_id=status.forward_message_id
            )
            if message is None:
                self._logger.warning(
                    "forward_status_unknown_message",
                    extra={"forward_message_id": status.forward_message_id, "access_id": mailbox.access_id},
                )
                continue
            if message.state == status.state:
                continue

            previous_state = message.state
            merge = self._store.upsert_merge(
                RecordCategory.MOBILE_TERMINATED,
                self._status_values(message, status, gateway),
            )
            if merge.changed:
                changed += 1
                self._logger.info(
                    "forward_message_state_changed",
                    extra={
                        "forward_message_id": message.message_id,
                        "previous_state": ForwardState.describe(previous_state),
                        "state": message.state_desc,
                        "is_closed": message.is_closed,
                    },
                )
                self._notifier.forward_state_changed(message, previous_state=previous_state)
        return changed

    def _status_values(
        self,
        message: TerminatedMessage,
        status: ForwardStatus,
        gateway: MessageGateway,
    ) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "message_id": status.forward_message_id,
            "state": status.state,
            "state_desc": ForwardState.describe(status.state),
            "is_closed": message.is_closed or status.is_closed,
        }
        if status.state_utc is not None:
            values["state_utc"] = status.state_utc
        if status.reference_number is not None:
            values["reference_number"] = status.reference_number
        if status.error_id:
            values["error_id"] = status.error_id
            values["error_desc"] = self._gateway.describe_error(status.error_id, gateway.url)
        return values
