"""Submission of mobile-terminated (forward) messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from idpsync.codec import build_command
from idpsync.codec.transforms import wakeup_seconds_for
from idpsync.core.config import AppSettings, get_settings
from idpsync.core.errors import ErrorKind, GatewayLogicalError, GatewayTransportError, classify
from idpsync.gateway.client import GatewayApi, get_gateway_client
from idpsync.gateway.timefmt import utcnow
from idpsync.models.api_call_log import GatewayOperation
from idpsync.models.categories import RecordCategory
from idpsync.models.gateway import Mailbox
from idpsync.models.message import ForwardState
from idpsync.schemas.gateway import ForwardMessage, MessagePayload, Submission
from idpsync.services.call_log import CallLogService
from idpsync.services.mailboxes import MailboxDirectory
from idpsync.services.message_store import MessageStore
from idpsync.services.notifications import SyncNotifier
from idpsync.services.outage import OutageTracker


class InvalidSubmissionError(ValueError):
    """Raised when a submission is malformed before anything is sent to the gateway."""


@dataclass
class SubmissionResult:
    destination_id: str
    forward_message_id: Optional[int] = None
    user_message_id: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    error_id: Optional[int] = None
    error_desc: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.forward_message_id is not None


class OutboundSubmitter:
    """Encodes a command (or takes a raw payload), submits it and records the forward message."""

    def __init__(
        self,
        session: Session,
        *,
        gateway_client: Optional[GatewayApi] = None,
        settings: Optional[AppSettings] = None,
        notifier: Optional[SyncNotifier] = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._gateway = gateway_client or get_gateway_client()
        self._store = MessageStore(session)
        self._call_log = CallLogService(session, self._settings)
        self._outage = OutageTracker(session)
        self._mailboxes = MailboxDirectory(session)
        self._notifier = notifier or SyncNotifier(session)
        self._logger = logging.getLogger("idpsync.services.submitter")

    def submit(
        self,
        destination_id: str,
        *,
        command: Optional[str] = None,
        raw_payload: Optional[Sequence[int]] = None,
        user_message_id: Optional[int] = None,
    ) -> SubmissionResult:
        if (command is None) == (raw_payload is None):
            raise InvalidSubmissionError("Provide exactly one of command or raw_payload")
        if raw_payload is not None and (
            len(raw_payload) < 2 or any(not 0 <= byte <= 255 for byte in raw_payload)
        ):
            raise InvalidSubmissionError("raw_payload needs SIN and MIN and only byte values (0-255)")

        payload = build_command(command) if command is not None else None
        mailbox = self._mailboxes.mailbox_for_mobile(destination_id)
        gateway = self._mailboxes.gateway_for(mailbox)
        message = ForwardMessage(
            destination_id=destination_id,
            user_message_id=user_message_id,
            payload=payload,
            raw_payload=list(raw_payload) if raw_payload is not None else None,
        )
        result = SubmissionResult(destination_id=destination_id, user_message_id=user_message_id)

        call_time = utcnow()
        try:
            response = self._gateway.submit_messages(
                MailboxDirectory.credentials(mailbox), [message], gateway.url
            )
        except GatewayTransportError as exc:
            self._record_call(mailbox, gateway.url, call_time, success=False, error_desc=str(exc)[:512])
            if self._outage.mark_down(gateway, now=call_time):
                self._notifier.gateway_availability_changed(gateway, reason=str(exc))
            result.error_kind = classify(exc)
            result.error_desc = str(exc)
            return result

        if self._outage.mark_alive(gateway, now=call_time):
            self._notifier.gateway_availability_changed(gateway)

        if response.error_id != 0:
            description = self._gateway.describe_error(response.error_id, gateway.url)
            self._record_call(
                mailbox, gateway.url, call_time, success=False, error_id=response.error_id, error_desc=description
            )
            error = GatewayLogicalError(response.error_id, description)
            self._logger.warning(
                "forward_submit_rejected",
                extra={"destination_id": destination_id, "error_id": response.error_id, "error": description},
            )
            result.error_kind = error.kind
            result.error_id = response.error_id
            result.error_desc = description
            return result

        self._record_call(mailbox, gateway.url, call_time, success=True, error_id=0)

        for submission in response.submissions:
            if submission.error_id:
                description = self._gateway.describe_error(submission.error_id, gateway.url)
                self._logger.warning(
                    "forward_submission_failed",
                    extra={
                        "destination_id": submission.destination_id or destination_id,
                        "forward_message_id": submission.forward_message_id,
                        "error_id": submission.error_id,
                        "error": description,
                    },
                )
                if result.forward_message_id is None:
                    result.error_kind = ErrorKind.LOGICAL_API
                    result.error_id = submission.error_id
                    result.error_desc = description
                continue

            self._store.insert_if_absent(
                RecordCategory.MOBILE_TERMINATED,
                self._terminated_values(mailbox, message, submission, call_time),
            )
            if submission.terminal_wakeup_period is not None:
                self._store.upsert_merge(
                    RecordCategory.MOBILE,
                    {
                        "mobile_id": submission.destination_id or destination_id,
                        "wakeup_period": wakeup_seconds_for(submission.terminal_wakeup_period),
                    },
                )
            if result.forward_message_id is None:
                result.forward_message_id = submission.forward_message_id
                result.error_kind = result.error_id = result.error_desc = None
            self._logger.info(
                "forward_message_submitted",
                extra={
                    "destination_id": destination_id,
                    "forward_message_id": submission.forward_message_id,
                    "command": command,
                },
            )
        return result

    def _record_call(self, mailbox: Mailbox, url: str, call_time: datetime, **fields: Any) -> None:
        self._call_log.record(
            operation=GatewayOperation.SUBMIT_MESSAGES,
            access_id=mailbox.access_id,
            gateway_url=url,
            message_count=1,
            call_time=call_time,
            **fields,
        )

    def _terminated_values(
        self,
        mailbox: Mailbox,
        message: ForwardMessage,
        submission: Submission,
        call_time: datetime,
    ) -> Dict[str, Any]:
        payload: Optional[MessagePayload] = message.payload
        raw: Optional[List[int]] = message.raw_payload
        if payload is not None:
            sin, min_, name = payload.sin, payload.min, payload.name
        else:
            sin = raw[0] if raw else None
            min_ = raw[1] if raw and len(raw) > 1 else None
            name = None
        return {
            "message_id": submission.forward_message_id,
            "mobile_id": submission.destination_id or message.destination_id,
            "access_id": mailbox.access_id,
            "user_message_id": submission.user_message_id or message.user_message_id,
            "sin": sin,
            "min": min_,
            "name": name,
            "payload": payload.model_dump(by_alias=True, exclude_none=True) if payload is not None else None,
            "raw_payload": bytes(raw) if raw else None,
            "state": ForwardState.SUBMITTED.value,
            "state_desc": ForwardState.SUBMITTED.name,
            "is_closed": False,
            "message_utc": call_time,
            "state_utc": submission.state_utc or call_time,
            "scheduled_send_utc": submission.scheduled_send_utc,
            "ota_message_size": submission.ota_message_size,
            "ttl_days": self._settings.message_ttl_days,
        }
