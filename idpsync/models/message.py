"""Mobile-originated and mobile-terminated message records."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, Optional

from sqlalchemy import BigInteger, Boolean, Index, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from idpsync.models.base import Base, TimestampMixin
from idpsync.models.types import GUID, JSONType, UTCDateTime


class ForwardState(IntEnum):
    """Delivery state codes reported by the gateway for forward messages."""

    SUBMITTED = 0
    DELIVERED = 1
    ERROR = 2
    DELIVERY_FAILED = 3
    TIMED_OUT = 4
    CANCELLED = 5
    WAITING = 6
    BROADCAST_SUBMITTED = 7
    SENDING_IN_PROGRESS = 8

    @classmethod
    def describe(cls, code: int) -> str:
        try:
            return cls(code).name
        except ValueError:
            return "UNKNOWN"


class OriginatedMessage(TimestampMixin, Base):
    """Inbound message from a terminal; written once, never updated."""

    __tablename__ = "mobile_originated_messages"
    __table_args__ = (
        Index("ix_mobile_originated_messages_mobile", "mobile_id"),
        Index("ix_mobile_originated_messages_receive_utc", "receive_utc"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    message_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    mobile_id: Mapped[str] = mapped_column(String(length=32), nullable=False)
    access_id: Mapped[str] = mapped_column(String(length=64), nullable=False)
    sin: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(length=128), nullable=True)
    message_utc: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    receive_utc: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    region_name: Mapped[Optional[str]] = mapped_column(String(length=32), nullable=True)
    ota_message_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    raw_payload: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    payload: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    decoded: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    ttl_days: Mapped[int] = mapped_column(Integer, nullable=False, default=90)


class TerminatedMessage(TimestampMixin, Base):
    """Outbound command and the latest delivery status reported for it."""

    __tablename__ = "mobile_terminated_messages"
    __table_args__ = (
        Index("ix_mobile_terminated_messages_mobile", "mobile_id"),
        Index("ix_mobile_terminated_messages_open", "access_id", "is_closed"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    message_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    mobile_id: Mapped[str] = mapped_column(String(length=32), nullable=False)
    access_id: Mapped[str] = mapped_column(String(length=64), nullable=False)
    user_message_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    sin: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(length=128), nullable=True)
    payload: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    raw_payload: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)

    state: Mapped[int] = mapped_column(Integer, nullable=False, default=ForwardState.SUBMITTED)
    state_desc: Mapped[Optional[str]] = mapped_column(String(length=32), nullable=True)
    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error_desc: Mapped[Optional[str]] = mapped_column(String(length=255), nullable=True)
    reference_number: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    message_utc: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    state_utc: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    scheduled_send_utc: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    ota_message_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    ttl_days: Mapped[int] = mapped_column(Integer, nullable=False, default=90)
