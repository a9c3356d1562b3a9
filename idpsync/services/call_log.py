"""Append-only record of gateway calls, with bounded retention."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from idpsync.core.config import AppSettings, get_settings
from idpsync.gateway.timefmt import utcnow
from idpsync.models.api_call_log import ApiCallLog, GatewayOperation
from idpsync.schemas.gateway import PollFilter


class CallLogService:
    def __init__(self, session: Session, settings: Optional[AppSettings] = None) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._logger = logging.getLogger("idpsync.services.call_log")

    def record(
        self,
        *,
        operation: GatewayOperation,
        access_id: str,
        gateway_url: Optional[str],
        poll: Optional[PollFilter] = None,
        success: bool,
        error_id: Optional[int] = None,
        error_desc: Optional[str] = None,
        next_start_id: Optional[int] = None,
        next_start_utc: Optional[str] = None,
        message_count: int = 0,
        call_time: Optional[datetime] = None,
    ) -> ApiCallLog:
        entry = ApiCallLog(
            call_time=call_time or utcnow(),
            operation=operation.value,
            access_id=access_id,
            gateway_url=gateway_url,
            start_message_id=poll.start_message_id if poll else None,
            start_utc=poll.start_time_utc if poll else None,
            success=success,
            error_id=error_id,
            error_desc=error_desc,
            next_start_id=next_start_id,
            next_start_utc=next_start_utc,
            message_count=message_count,
            ttl_days=self._settings.api_call_log_ttl_days,
        )
        self._session.add(entry)
        self._session.flush()

        log = self._logger.info if success else self._logger.warning
        log(
            "api_call_recorded",
            extra={
                "call_log_id": entry.id,
                "operation": entry.operation,
                "access_id": access_id,
                "success": success,
                "error_id": error_id,
                "message_count": message_count,
                "next_start_id": next_start_id,
                "next_start_utc": next_start_utc,
            },
        )
        return entry

    def latest_successful(self, access_id: str, operation: GatewayOperation) -> Optional[ApiCallLog]:
        stmt = (
            select(ApiCallLog)
            .where(ApiCallLog.access_id == access_id)
            .where(ApiCallLog.operation == operation.value)
            .where(ApiCallLog.success.is_(True))
            .order_by(ApiCallLog.id.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def enforce_retention(self, max_rows: Optional[int] = None) -> int:
        """Delete the oldest rows beyond ``max_rows``.

        The newest successful row of every (mailbox, operation) survives
        regardless, since it carries that pair's watermark.
        """

        limit = max(max_rows if max_rows is not None else self._settings.max_api_call_logs, 10)
        cutoff = self._session.scalar(
            select(ApiCallLog.id).order_by(ApiCallLog.id.desc()).offset(limit - 1).limit(1)
        )
        if cutoff is None:
            return 0

        watermarks = (
            select(func.max(ApiCallLog.id))
            .where(ApiCallLog.success.is_(True))
            .group_by(ApiCallLog.access_id, ApiCallLog.operation)
        )
        result = self._session.execute(
            delete(ApiCallLog)
            .where(ApiCallLog.id < cutoff)
            .where(ApiCallLog.id.not_in(watermarks))
            .execution_options(synchronize_session=False)
        )
        removed = result.rowcount or 0
        if removed:
            self._logger.info("api_call_logs_trimmed", extra={"removed": removed, "retained": limit})
        return removed
