"""Watermark-driven pagination shared by the gateway pollers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, List, Optional, Tuple

from sqlalchemy.orm import Session

from idpsync.core.config import AppSettings, get_settings
from idpsync.core.errors import (
    DataIntegrityError,
    ErrorKind,
    GatewayLogicalError,
    GatewayTransportError,
    classify,
)
from idpsync.gateway.client import GatewayApi, get_gateway_client
from idpsync.gateway.timefmt import normalize_gateway_time, to_gateway_time, utcnow
from idpsync.models.api_call_log import GatewayOperation
from idpsync.models.gateway import Mailbox, MessageGateway
from idpsync.schemas.gateway import GatewayAuth, PollFilter
from idpsync.services.call_log import CallLogService
from idpsync.services.mailboxes import MailboxDirectory
from idpsync.services.message_store import MessageStore
from idpsync.services.notifications import SyncNotifier
from idpsync.services.outage import OutageTracker
from idpsync.services.watermark import WatermarkTracker


@dataclass
class MailboxSyncResult:
    access_id: str
    operation: GatewayOperation
    pages: int = 0
    received: int = 0
    written: int = 0
    truncated: bool = False
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error_kind is None

    def fail(self, exc: BaseException) -> "MailboxSyncResult":
        self.error_kind = classify(exc)
        self.error = str(exc)
        return self


@dataclass
class SyncCycleResult:
    operation: GatewayOperation
    mailboxes: List[MailboxSyncResult] = field(default_factory=list)
    trimmed_call_logs: int = 0

    @property
    def written(self) -> int:
        return sum(result.written for result in self.mailboxes)


class GatewayPoller:
    """Pulls one gateway operation for every enabled mailbox.

    Each page produces exactly one call log row and is committed together
    with the records it wrote. Transport failures mark the gateway down and
    move on to the next mailbox; logical gateway errors stop the mailbox;
    anything unclassified propagates to the caller.
    """

    operation: ClassVar[GatewayOperation]
    supports_id_cursor: ClassVar[bool] = False

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
        self._watermark = WatermarkTracker(self._call_log, self._settings.default_lookback_hours)
        self._outage = OutageTracker(session)
        self._mailboxes = MailboxDirectory(session)
        self._notifier = notifier or SyncNotifier(session)
        self._logger = logging.getLogger(f"idpsync.services.{self.operation.value}")

    def run(self) -> SyncCycleResult:
        cycle = SyncCycleResult(operation=self.operation)
        for mailbox in self._mailboxes.enabled_mailboxes():
            cycle.mailboxes.append(self.poll_mailbox(mailbox))
        cycle.trimmed_call_logs = self._call_log.enforce_retention()
        self._session.commit()
        self._logger.info(
            "sync_cycle_completed",
            extra={
                "operation": self.operation.value,
                "mailboxes": len(cycle.mailboxes),
                "failed": sum(1 for result in cycle.mailboxes if not result.success),
                "written": cycle.written,
            },
        )
        return cycle

    def poll_mailbox(self, mailbox: Mailbox) -> MailboxSyncResult:
        result = MailboxSyncResult(access_id=mailbox.access_id, operation=self.operation)
        try:
            gateway = self._mailboxes.gateway_for(mailbox)
        except DataIntegrityError as exc:
            self._logger.warning("mailbox_skipped", extra={"access_id": mailbox.access_id, "error": str(exc)})
            return result.fail(exc)

        auth = MailboxDirectory.credentials(mailbox)
        poll = self._watermark.next_filter(mailbox.access_id, self.operation)

        for _ in range(self._settings.max_poll_pages):
            call_time = utcnow()
            try:
                response = self._fetch(auth, poll, gateway.url)
            except GatewayTransportError as exc:
                self._call_log.record(
                    operation=self.operation,
                    access_id=mailbox.access_id,
                    gateway_url=gateway.url,
                    poll=poll,
                    success=False,
                    error_desc=str(exc)[:512],
                    call_time=call_time,
                )
                if self._outage.mark_down(gateway, now=call_time):
                    self._notifier.gateway_availability_changed(gateway, reason=str(exc))
                self._session.commit()
                return result.fail(exc)

            result.pages += 1
            if self._outage.mark_alive(gateway, now=call_time):
                self._notifier.gateway_availability_changed(gateway)

            if response.error_id != 0:
                description = self._gateway.describe_error(response.error_id, gateway.url)
                self._call_log.record(
                    operation=self.operation,
                    access_id=mailbox.access_id,
                    gateway_url=gateway.url,
                    poll=poll,
                    success=False,
                    error_id=response.error_id,
                    error_desc=description,
                    call_time=call_time,
                )
                self._session.commit()
                return result.fail(GatewayLogicalError(response.error_id, description))

            items = self._items(response)
            result.received += len(items)
            result.written += self._process(mailbox, gateway, items)

            next_start_id, next_start_utc = self._continuation(response, call_time)
            self._call_log.record(
                operation=self.operation,
                access_id=mailbox.access_id,
                gateway_url=gateway.url,
                poll=poll,
                success=True,
                error_id=0,
                next_start_id=next_start_id,
                next_start_utc=next_start_utc,
                message_count=len(items),
                call_time=call_time,
            )
            self._session.commit()

            if not response.more:
                return result
            if next_start_id is not None:
                poll = PollFilter(start_message_id=next_start_id)
            else:
                poll = PollFilter(start_time_utc=next_start_utc)

        result.truncated = True
        self._logger.warning(
            "poll_page_limit_reached",
            extra={"access_id": mailbox.access_id, "pages": result.pages},
        )
        return result

    def _continuation(self, response: Any, call_time: datetime) -> Tuple[Optional[int], str]:
        next_start_id = getattr(response, "next_start_id", None) if self.supports_id_cursor else None
        if next_start_id is not None and next_start_id <= 0:
            next_start_id = None
        if response.next_start_utc:
            next_start_utc = normalize_gateway_time(response.next_start_utc)
        else:
            next_start_utc = to_gateway_time(call_time)
        return next_start_id, next_start_utc

    def _fetch(self, auth: GatewayAuth, poll: PollFilter, url: str) -> Any:
        raise NotImplementedError

    def _items(self, response: Any) -> List[Any]:
        raise NotImplementedError

    def _process(self, mailbox: Mailbox, gateway: MessageGateway, items: List[Any]) -> int:
        raise NotImplementedError
