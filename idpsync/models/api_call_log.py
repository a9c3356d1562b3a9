"""Append-only log of gateway API calls; also the source of polling watermarks."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from idpsync.models.base import Base
from idpsync.models.types import SequenceId, UTCDateTime


class GatewayOperation(str, Enum):
    """Native gateway operation names recorded in the call log."""

    GET_RETURN_MESSAGES = "get_return_messages"
    GET_FORWARD_STATUSES = "get_forward_statuses"
    SUBMIT_MESSAGES = "submit_messages"


class ApiCallLog(Base):
    """One synchronization attempt against a gateway."""

    __tablename__ = "api_call_logs"
    __table_args__ = (
        Index("ix_api_call_logs_watermark", "access_id", "operation", "success", "id"),
    )

    id: Mapped[int] = mapped_column(SequenceId, primary_key=True, autoincrement=True)
    call_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    operation: Mapped[str] = mapped_column(String(length=64), nullable=False)
    access_id: Mapped[str] = mapped_column(String(length=64), nullable=False)
    gateway_url: Mapped[Optional[str]] = mapped_column(String(length=512), nullable=True)

    start_message_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    start_utc: Mapped[Optional[str]] = mapped_column(String(length=32), nullable=True)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error_desc: Mapped[Optional[str]] = mapped_column(String(length=512), nullable=True)

    next_start_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    next_start_utc: Mapped[Optional[str]] = mapped_column(String(length=32), nullable=True)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ttl_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7)


class ImmutableRecordError(RuntimeError):
    """Raised when code attempts to modify an append-only row."""


@event.listens_for(ApiCallLog, "before_update")
def _reject_call_log_update(mapper, connection, target: ApiCallLog) -> None:  # noqa: ARG001
    raise ImmutableRecordError(f"api_call_logs row {target.id} is append-only")
