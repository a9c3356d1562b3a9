"""Remote terminal metadata."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from idpsync.models.base import Base, TimestampMixin
from idpsync.models.types import GUID, JSONType, UTCDateTime


class Mobile(TimestampMixin, Base):
    """Last-seen state of a terminal, merged from any message carrying device metadata."""

    __tablename__ = "mobiles"
    __table_args__ = (Index("ix_mobiles_access_id", "access_id"),)

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    mobile_id: Mapped[str] = mapped_column(String(length=32), unique=True, nullable=False)
    access_id: Mapped[Optional[str]] = mapped_column(String(length=64), nullable=True)

    last_message_received: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    last_satellite_region: Mapped[Optional[str]] = mapped_column(String(length=32), nullable=True)
    last_registration: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    wakeup_period: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    modem_hw_version: Mapped[Optional[str]] = mapped_column(String(length=32), nullable=True)
    modem_sw_version: Mapped[Optional[str]] = mapped_column(String(length=32), nullable=True)
    modem_product_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    broadcast_ids: Mapped[Optional[List[int]]] = mapped_column(JSONType, nullable=True)

    location_fix_status: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    location_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location_altitude: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    location_speed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    location_heading: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    location_timestamp: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
