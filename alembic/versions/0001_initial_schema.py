"""Initial schema for gateways, mailboxes, terminals, messages and call logs."""

from __future__ import annotations
from typing import Union, Sequence

from alembic import op
import sqlalchemy as sa
from idpsync.models.types import GUID, JSONType, SequenceId, UTCDateTime

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", UTCDateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", UTCDateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    """Initial schema for the sync engine."""
    op.create_table(
        "message_gateways",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("url", sa.String(length=512), nullable=False),
        sa.Column("alive", sa.Boolean(), nullable=False),
        sa.Column("alive_changed_at", UTCDateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_message_gateways")),
        sa.UniqueConstraint("name", name=op.f("uq_message_gateways_name")),
    )

    op.create_table(
        "mailboxes",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("access_id", sa.String(length=64), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("gateway_id", GUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["gateway_id"],
            ["message_gateways.id"],
            name=op.f("fk_mailboxes_gateway_id_message_gateways"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_mailboxes")),
        sa.UniqueConstraint("access_id", name=op.f("uq_mailboxes_access_id")),
    )
    op.create_index(op.f("ix_mailboxes_gateway"), "mailboxes", ["gateway_id"], unique=False)

    op.create_table(
        "mobiles",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("mobile_id", sa.String(length=32), nullable=False),
        sa.Column("access_id", sa.String(length=64), nullable=True),
        sa.Column("last_message_received", UTCDateTime(), nullable=True),
        sa.Column("last_satellite_region", sa.String(length=32), nullable=True),
        sa.Column("last_registration", UTCDateTime(), nullable=True),
        sa.Column("wakeup_period", sa.Integer(), nullable=True),
        sa.Column("modem_hw_version", sa.String(length=32), nullable=True),
        sa.Column("modem_sw_version", sa.String(length=32), nullable=True),
        sa.Column("modem_product_id", sa.Integer(), nullable=True),
        sa.Column("broadcast_ids", JSONType(), nullable=True),
        sa.Column("location_fix_status", sa.Integer(), nullable=True),
        sa.Column("location_latitude", sa.Float(), nullable=True),
        sa.Column("location_longitude", sa.Float(), nullable=True),
        sa.Column("location_altitude", sa.Integer(), nullable=True),
        sa.Column("location_speed", sa.Integer(), nullable=True),
        sa.Column("location_heading", sa.Integer(), nullable=True),
        sa.Column("location_timestamp", UTCDateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_mobiles")),
        sa.UniqueConstraint("mobile_id", name=op.f("uq_mobiles_mobile_id")),
    )
    op.create_index(op.f("ix_mobiles_access_id"), "mobiles", ["access_id"], unique=False)

    op.create_table(
        "mobile_originated_messages",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("message_id", sa.BigInteger(), nullable=False),
        sa.Column("mobile_id", sa.String(length=32), nullable=False),
        sa.Column("access_id", sa.String(length=64), nullable=False),
        sa.Column("sin", sa.Integer(), nullable=True),
        sa.Column("min", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=128), nullable=True),
        sa.Column("message_utc", UTCDateTime(), nullable=True),
        sa.Column("receive_utc", UTCDateTime(), nullable=True),
        sa.Column("region_name", sa.String(length=32), nullable=True),
        sa.Column("ota_message_size", sa.Integer(), nullable=True),
        sa.Column("raw_payload", sa.LargeBinary(), nullable=True),
        sa.Column("payload", JSONType(), nullable=True),
        sa.Column("decoded", JSONType(), nullable=True),
        sa.Column("ttl_days", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_mobile_originated_messages")),
        sa.UniqueConstraint("message_id", name=op.f("uq_mobile_originated_messages_message_id")),
    )
    op.create_index(
        op.f("ix_mobile_originated_messages_mobile"), "mobile_originated_messages", ["mobile_id"], unique=False
    )
    op.create_index(
        op.f("ix_mobile_originated_messages_receive_utc"),
        "mobile_originated_messages",
        ["receive_utc"],
        unique=False,
    )

    op.create_table(
        "mobile_terminated_messages",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("message_id", sa.BigInteger(), nullable=False),
        sa.Column("mobile_id", sa.String(length=32), nullable=False),
        sa.Column("access_id", sa.String(length=64), nullable=False),
        sa.Column("user_message_id", sa.BigInteger(), nullable=True),
        sa.Column("sin", sa.Integer(), nullable=True),
        sa.Column("min", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=128), nullable=True),
        sa.Column("payload", JSONType(), nullable=True),
        sa.Column("raw_payload", sa.LargeBinary(), nullable=True),
        sa.Column("state", sa.Integer(), nullable=False),
        sa.Column("state_desc", sa.String(length=32), nullable=True),
        sa.Column("is_closed", sa.Boolean(), nullable=False),
        sa.Column("error_id", sa.Integer(), nullable=True),
        sa.Column("error_desc", sa.String(length=255), nullable=True),
        sa.Column("reference_number", sa.BigInteger(), nullable=True),
        sa.Column("message_utc", UTCDateTime(), nullable=True),
        sa.Column("state_utc", UTCDateTime(), nullable=True),
        sa.Column("scheduled_send_utc", UTCDateTime(), nullable=True),
        sa.Column("ota_message_size", sa.Integer(), nullable=True),
        sa.Column("ttl_days", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_mobile_terminated_messages")),
        sa.UniqueConstraint("message_id", name=op.f("uq_mobile_terminated_messages_message_id")),
    )
    op.create_index(
        op.f("ix_mobile_terminated_messages_mobile"), "mobile_terminated_messages", ["mobile_id"], unique=False
    )
    op.create_index(
        op.f("ix_mobile_terminated_messages_open"),
        "mobile_terminated_messages",
        ["access_id", "is_closed"],
        unique=False,
    )

    op.create_table(
        "api_call_logs",
        sa.Column("id", SequenceId, autoincrement=True, nullable=False),
        sa.Column("call_time", UTCDateTime(), nullable=False),
        sa.Column("operation", sa.String(length=64), nullable=False),
        sa.Column("access_id", sa.String(length=64), nullable=False),
        sa.Column("gateway_url", sa.String(length=512), nullable=True),
        sa.Column("start_message_id", sa.BigInteger(), nullable=True),
        sa.Column("start_utc", sa.String(length=32), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("error_id", sa.Integer(), nullable=True),
        sa.Column("error_desc", sa.String(length=512), nullable=True),
        sa.Column("next_start_id", sa.BigInteger(), nullable=True),
        sa.Column("next_start_utc", sa.String(length=32), nullable=True),
        sa.Column("message_count", sa.Integer(), nullable=False),
        sa.Column("ttl_days", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_api_call_logs")),
    )
    op.create_index(
        op.f("ix_api_call_logs_watermark"),
        "api_call_logs",
        ["access_id", "operation", "success", "id"],
        unique=False,
    )

    delivery_state = sa.Enum(
        "pending",
        "succeeded",
        "failed",
        name="platform_event_delivery_state",
        native_enum=False,
    )
    op.create_table(
        "platform_events",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("event_id", sa.String(length=128), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("source", sa.String(length=128), nullable=False),
        sa.Column("subject", sa.String(length=128), nullable=True),
        sa.Column("occurred_at", UTCDateTime(), nullable=False),
        sa.Column("payload", JSONType(), nullable=False),
        sa.Column("delivery_state", delivery_state, nullable=False),
        sa.Column("delivery_attempts", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.String(length=1024), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_platform_events")),
        sa.UniqueConstraint("event_id", name=op.f("uq_platform_events_event_id")),
    )
    op.create_index(op.f("ix_platform_events_event_type"), "platform_events", ["event_type"], unique=False)
    op.create_index(op.f("ix_platform_events_occurred_at"), "platform_events", ["occurred_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_platform_events_occurred_at"), table_name="platform_events")
    op.drop_index(op.f("ix_platform_events_event_type"), table_name="platform_events")
    op.drop_table("platform_events")
    op.drop_index(op.f("ix_api_call_logs_watermark"), table_name="api_call_logs")
    op.drop_table("api_call_logs")
    op.drop_index(op.f("ix_mobile_terminated_messages_open"), table_name="mobile_terminated_messages")
    op.drop_index(op.f("ix_mobile_terminated_messages_mobile"), table_name="mobile_terminated_messages")
    op.drop_table("mobile_terminated_messages")
    op.drop_index(op.f("ix_mobile_originated_messages_receive_utc"), table_name="mobile_originated_messages")
    op.drop_index(op.f("ix_mobile_originated_messages_mobile"), table_name="mobile_originated_messages")
    op.drop_table("mobile_originated_messages")
    op.drop_index(op.f("ix_mobiles_access_id"), table_name="mobiles")
    op.drop_table("mobiles")
    op.drop_index(op.f("ix_mailboxes_gateway"), table_name="mailboxes")
    op.drop_table("mailboxes")
    op.drop_table("message_gateways")
