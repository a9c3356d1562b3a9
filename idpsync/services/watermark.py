"""Choose the pagination cursor for the next poll of a mailbox."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from idpsync.core.config import get_settings
from idpsync.gateway.timefmt import normalize_gateway_time, to_gateway_time, utcnow
from idpsync.models.api_call_log import GatewayOperation
from idpsync.schemas.gateway import PollFilter
from idpsync.services.call_log import CallLogService


class WatermarkTracker:
    """Derives cursors from the newest successful call log row.

    An id cursor wins over a time cursor; with neither, polling starts
    ``lookback_hours`` in the past. Failed calls never move the watermark.
    """

    def __init__(self, call_log: CallLogService, lookback_hours: Optional[int] = None) -> None:
        self._call_log = call_log
        self._lookback = timedelta(
            hours=lookback_hours if lookback_hours is not None else get_settings().default_lookback_hours
        )
        self._logger = logging.getLogger("idpsync.services.watermark")

    def next_filter(
        self,
        access_id: str,
        operation: GatewayOperation,
        now: Optional[datetime] = None,
    ) -> PollFilter:
        latest = self._call_log.latest_successful(access_id, operation)

        if latest is not None and latest.next_start_id is not None and latest.next_start_id > 0:
            poll = PollFilter(start_message_id=latest.next_start_id)
        elif latest is not None and latest.next_start_utc:
            poll = PollFilter(start_time_utc=normalize_gateway_time(latest.next_start_utc))
        else:
            poll = PollFilter(start_time_utc=to_gateway_time((now or utcnow()) - self._lookback))

        self._logger.debug(
            "watermark_selected",
            extra={
                "access_id": access_id,
                "operation": operation.value,
                "start_message_id": poll.start_message_id,
                "start_utc": poll.start_time_utc,
                "call_log_id": latest.id if latest is not None else None,
            },
        )
        return poll
