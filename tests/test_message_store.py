from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import event, func, select

from idpsync.core.database import get_engine, session_scope
from idpsync.models import Mobile, OriginatedMessage, RecordCategory
from idpsync.services.message_store import InsertOutcome, MessageStore


def _originated(message_id: int, **overrides):
    values = {
        "message_id": message_id,
        "mobile_id": "01097623SKY2C68",
        "access_id": "MB-1",
        "sin": 0,
        "min": 72,
        "receive_utc": datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc),
        "payload": {"Name": "replyPosition"},
        "ttl_days": 90,
    }
    values.update(overrides)
    return values


def test_insert_if_absent_never_overwrites() -> None:
    with session_scope() as session:
        store = MessageStore(session)
        first = store.insert_if_absent(RecordCategory.MOBILE_ORIGINATED, _originated(42))
        second = store.insert_if_absent(
            RecordCategory.MOBILE_ORIGINATED, _originated(42, mobile_id="OTHER", payload={"Name": "changed"})
        )

    assert first is InsertOutcome.CREATED
    assert second is InsertOutcome.ALREADY_PRESENT

    with session_scope() as session:
        rows = session.scalars(select(OriginatedMessage)).all()
        assert len(rows) == 1
        assert rows[0].mobile_id == "01097623SKY2C68"
        assert rows[0].payload == {"Name": "replyPosition"}


def test_insert_if_absent_requires_key() -> None:
    with session_scope() as session:
        store = MessageStore(session)
        with pytest.raises(ValueError):
            store.insert_if_absent(RecordCategory.MOBILE_ORIGINATED, _originated(None))


def test_upsert_merge_creates_then_overlays_changed_fields() -> None:
    with session_scope() as session:
        store = MessageStore(session)
        created = store.upsert_merge(
            RecordCategory.MOBILE,
            {"mobile_id": "01097623SKY2C68", "access_id": "MB-1", "wakeup_period": 5, "location_heading": 90},
        )
        assert created.created

    with session_scope() as session:
        store = MessageStore(session)
        merged = store.upsert_merge(RecordCategory.MOBILE, {"mobile_id": "01097623SKY2C68", "wakeup_period": 600})
        assert merged.changed == ("wakeup_period",)

    with session_scope() as session:
        mobile = session.scalars(select(Mobile)).one()
        assert mobile.wakeup_period == 600
        assert mobile.location_heading == 90
        assert mobile.access_id == "MB-1"
        assert session.scalar(select(func.count()).select_from(Mobile)) == 1


def test_upsert_merge_skips_write_when_nothing_changed() -> None:
    received = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    with session_scope() as session:
        MessageStore(session).upsert_merge(
            RecordCategory.MOBILE,
            {"mobile_id": "01097623SKY2C68", "last_message_received": received, "wakeup_period": 5},
        )

    statements = []

    def _capture(conn, cursor, statement, parameters, context, executemany):  # noqa: ARG001
        statements.append(statement)

    engine = get_engine()
    event.listen(engine, "before_cursor_execute", _capture)
    try:
        with session_scope() as session:
            result = MessageStore(session).upsert_merge(
                RecordCategory.MOBILE,
                {
                    "mobile_id": "01097623SKY2C68",
                    # naive value denoting the same instant
                    "last_message_received": received.replace(tzinfo=None),
                    "wakeup_period": 5,
                },
            )
    finally:
        event.remove(engine, "before_cursor_execute", _capture)

    assert not result.created
    assert result.changed == ()
    assert not any(statement.lstrip().upper().startswith("UPDATE") for statement in statements)


def test_upsert_merge_with_alternate_key() -> None:
    with session_scope() as session:
        store = MessageStore(session)
        store.upsert_merge(RecordCategory.MOBILE, {"mobile_id": "A", "access_id": "MB-1"})
        result = store.upsert_merge(
            RecordCategory.MOBILE,
            {"mobile_id": "A", "access_id": "MB-1", "wakeup_period": 30},
            key=("mobile_id", "access_id"),
        )

    assert result.changed == ("wakeup_period",)


def test_categories_resolve_to_their_tables() -> None:
    assert {category: category.table_name for category in RecordCategory} == {
        RecordCategory.MOBILE: "mobiles",
        RecordCategory.MOBILE_ORIGINATED: "mobile_originated_messages",
        RecordCategory.MOBILE_TERMINATED: "mobile_terminated_messages",
    }
    assert RecordCategory.MOBILE_TERMINATED.key == ("message_id",)
