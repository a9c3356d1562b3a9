"""Message gateway and mailbox models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from idpsync.models.base import Base, TimestampMixin
from idpsync.models.types import GUID, UTCDateTime


class MessageGateway(TimestampMixin, Base):
    """Remote polling endpoint; ``alive`` is owned by the outage tracker."""

    __tablename__ = "message_gateways"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(length=120), unique=True, nullable=False)
    url: Mapped[str] = mapped_column(String(length=512), nullable=False)
    alive: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    alive_changed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    mailboxes: Mapped[List["Mailbox"]] = relationship("Mailbox", back_populates="gateway")


class Mailbox(TimestampMixin, Base):
    """Gateway account whose credentials cover a group of terminals."""

    __tablename__ = "mailboxes"
    __table_args__ = (Index("ix_mailboxes_gateway", "gateway_id"),)

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    access_id: Mapped[str] = mapped_column(String(length=64), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(length=255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(length=255), nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    gateway_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        GUID(),
        ForeignKey("message_gateways.id", ondelete="SET NULL"),
        nullable=True,
    )

    gateway: Mapped[Optional[MessageGateway]] = relationship("MessageGateway", back_populates="mailboxes")
