from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import event, select

from conftest import GATEWAY_URL, return_page, seed_mailbox
from idpsync.core.database import get_engine, session_scope
from idpsync.core.errors import ErrorKind, GatewayProtocolError, GatewayTransportError
from idpsync.gateway.client import IdpGatewayClient
from idpsync.gateway.timefmt import parse_gateway_time
from idpsync.models import ApiCallLog, MessageGateway, Mobile, OriginatedMessage, PlatformEvent
from idpsync.schemas.gateway import ReturnMessagesResponse
from idpsync.services.notifications import GATEWAY_DOWN, GATEWAY_RECOVERED, TELEMETRY_DECODED
from idpsync.services.sync import run_originated_cycle


def _position(message_id: int = 37730177, mobile_id: str = "01174907SKYFDA4"):
    return {
        "ID": message_id,
        "MobileID": mobile_id,
        "MessageUTC": "2024-03-15 12:10:00",
        "ReceiveUTC": "2024-03-15 12:10:03",
        "SIN": 0,
        "RegionName": "AMERRB16",
        "OTAMessageSize": 14,
        "RawPayload": [0, 72, 1, 2],
        "Payload": {
            "Name": "replyPosition",
            "SIN": 0,
            "MIN": 72,
            "IsForward": False,
            "Fields": [
                {"Name": "fixStatus", "Value": "1"},
                {"Name": "latitude", "Value": "2717104"},
                {"Name": "longitude", "Value": "-4550914"},
                {"Name": "heading", "Value": "45"},
                {"Name": "dayOfMonth", "Value": "15"},
                {"Name": "minuteOfDay", "Value": "729"},
            ],
        },
    }


def _call_logs(session):
    return session.scalars(select(ApiCallLog).order_by(ApiCallLog.id)).all()


def test_new_message_is_stored_and_cursor_defaults_to_call_time(gateway) -> None:
    seed_mailbox()
    gateway.queue("get_return_messages", return_page([_position()]))

    before = datetime.now(timezone.utc).replace(microsecond=0)
    result = run_originated_cycle(gateway_client=gateway)
    after = datetime.now(timezone.utc)

    [mailbox] = result.mailboxes
    assert mailbox.success
    assert (mailbox.pages, mailbox.received, mailbox.written) == (1, 1, 1)

    with session_scope() as session:
        message = session.scalars(select(OriginatedMessage)).one()
        assert message.message_id == 37730177
        assert message.access_id == "MB-1"
        assert message.raw_payload == bytes([0, 72, 1, 2])
        assert message.payload["Name"] == "replyPosition"

        [entry] = _call_logs(session)
        assert entry.success
        assert entry.message_count == 1
        assert entry.next_start_id is None
        assert before <= parse_gateway_time(entry.next_start_utc) <= after

    poll = gateway.calls["get_return_messages"][0]["poll"]
    assert poll.start_message_id is None
    assert poll.start_time_utc is not None


def test_redelivered_messages_are_not_duplicated(gateway) -> None:
    seed_mailbox()
    gateway.queue("get_return_messages", return_page([_position()]), return_page([_position()]))

    run_originated_cycle(gateway_client=gateway)
    second = run_originated_cycle(gateway_client=gateway)

    assert second.mailboxes[0].written == 0
    with session_scope() as session:
        assert len(session.scalars(select(OriginatedMessage)).all()) == 1
        assert len(_call_logs(session)) == 2


def test_decoded_position_updates_mobile_and_emits_event(gateway, event_dispatcher_stub) -> None:
    seed_mailbox()
    gateway.queue("get_return_messages", return_page([_position()]))

    run_originated_cycle(gateway_client=gateway)

    with session_scope() as session:
        mobile = session.scalars(select(Mobile)).one()
        assert mobile.access_id == "MB-1"
        assert mobile.last_satellite_region == "AMERRB16"
        assert mobile.location_latitude == pytest.approx(45.285067)
        assert mobile.location_heading == 90
        assert mobile.location_timestamp == datetime(2024, 3, 15, 12, 9, tzinfo=timezone.utc)

        message = session.scalars(select(OriginatedMessage)).one()
        assert message.decoded["longitude"] == pytest.approx(-75.848567)

        events = session.scalars(select(PlatformEvent)).all()
        assert [event.event_type for event in events] == [TELEMETRY_DECODED]
        assert events[0].subject == "01174907SKYFDA4"

    assert len(event_dispatcher_stub.stub_publisher.envelopes) == 1


def test_decoded_telemetry_is_part_of_the_single_insert(gateway) -> None:
    seed_mailbox()
    gateway.queue("get_return_messages", return_page([_position()]))
    statements = []

    def _capture(conn, cursor, statement, parameters, context, executemany):  # noqa: ARG001
        statements.append(statement.lstrip().upper())

    engine = get_engine()
    event.listen(engine, "before_cursor_execute", _capture)
    try:
        run_originated_cycle(gateway_client=gateway)
    finally:
        event.remove(engine, "before_cursor_execute", _capture)

    touching = [statement for statement in statements if "MOBILE_ORIGINATED_MESSAGES" in statement]
    assert sum(1 for statement in touching if statement.startswith("INSERT")) == 1
    assert not any(statement.startswith("UPDATE") for statement in touching)
    with session_scope() as session:
        assert session.scalars(select(OriginatedMessage)).one().decoded["latitude"] == pytest.approx(45.285067)


def test_ingestion_summary_is_logged_at_info(gateway, caplog) -> None:
    seed_mailbox()
    gateway.queue("get_return_messages", return_page([_position()]))
    caplog.set_level(logging.INFO, logger="idpsync")

    result = run_originated_cycle(gateway_client=gateway)

    assert result.mailboxes[0].success
    [record] = [record for record in caplog.records if record.getMessage() == "return_messages_ingested"]
    assert (record.access_id, record.received, record.inserted) == ("MB-1", 1, 1)


def test_application_messages_are_stored_without_decoding(gateway) -> None:
    seed_mailbox()
    message = {
        "ID": 5001,
        "MobileID": "01174907SKYFDA4",
        "ReceiveUTC": "2024-03-15 12:10:03",
        "SIN": 128,
        "RawPayload": [128, 1, 42],
    }
    gateway.queue("get_return_messages", return_page([message]))

    run_originated_cycle(gateway_client=gateway)

    with session_scope() as session:
        stored = session.scalars(select(OriginatedMessage)).one()
        assert (stored.sin, stored.min) == (128, 1)
        assert stored.decoded is None
        assert session.scalars(select(Mobile)).one().last_message_received is not None


def test_pagination_follows_id_cursor_until_page_limit(gateway) -> None:
    seed_mailbox()
    gateway.queue(
        "get_return_messages",
        return_page([_position(1)], more=True, next_start_id=2),
        return_page([_position(2)], more=True, next_start_id=3, next_start_utc="2024-03-15 12:11:00"),
        return_page([_position(3)], more=True, next_start_id=4),
    )

    result = run_originated_cycle(gateway_client=gateway)

    [mailbox] = result.mailboxes
    assert mailbox.truncated
    assert mailbox.pages == 3
    polls = [call["poll"] for call in gateway.calls["get_return_messages"]]
    assert [poll.start_message_id for poll in polls[1:]] == [2, 3]

    with session_scope() as session:
        entries = _call_logs(session)
        assert [entry.next_start_id for entry in entries] == [2, 3, 4]
        assert [entry.start_message_id for entry in entries[1:]] == [2, 3]

    gateway.queue("get_return_messages", return_page())
    run_originated_cycle(gateway_client=gateway)
    assert gateway.calls["get_return_messages"][-1]["poll"].start_message_id == 4


def test_pagination_stops_when_gateway_reports_no_more(gateway) -> None:
    seed_mailbox()
    gateway.queue(
        "get_return_messages",
        return_page([_position(1)], more=True, next_start_utc="2024-03-15 12:11:00"),
        return_page([_position(2)], more=False, next_start_utc="2024-03-15 12:12:00"),
    )

    result = run_originated_cycle(gateway_client=gateway)

    assert not result.mailboxes[0].truncated
    assert result.written == 2
    second_poll = gateway.calls["get_return_messages"][1]["poll"]
    assert second_poll.start_time_utc == "2024-03-15 12:11:00"


def test_transport_failure_marks_gateway_down_once(gateway) -> None:
    seed_mailbox()
    failure = GatewayTransportError("Failed to reach gateway: timed out", gateway_url=GATEWAY_URL)
    gateway.queue("get_return_messages", failure, failure, return_page())

    first = run_originated_cycle(gateway_client=gateway)
    second = run_originated_cycle(gateway_client=gateway)

    assert first.mailboxes[0].error_kind is ErrorKind.TRANSPORT
    assert second.mailboxes[0].error_kind is ErrorKind.TRANSPORT

    with session_scope() as session:
        assert session.scalars(select(MessageGateway)).one().alive is False
        assert [event.event_type for event in session.scalars(select(PlatformEvent))] == [GATEWAY_DOWN]
        entries = _call_logs(session)
        assert [entry.success for entry in entries] == [False, False]

    run_originated_cycle(gateway_client=gateway)

    with session_scope() as session:
        assert session.scalars(select(MessageGateway)).one().alive is True
        event_types = [event.event_type for event in session.scalars(select(PlatformEvent))]
        assert event_types == [GATEWAY_DOWN, GATEWAY_RECOVERED]


def test_failed_calls_do_not_move_the_watermark(gateway) -> None:
    seed_mailbox()
    failure = GatewayTransportError("HTTP 503", gateway_url=GATEWAY_URL, status_code=503)
    gateway.queue(
        "get_return_messages",
        return_page(next_start_id=77),
        failure,
        return_page(),
    )

    run_originated_cycle(gateway_client=gateway)
    run_originated_cycle(gateway_client=gateway)
    run_originated_cycle(gateway_client=gateway)

    polls = [call["poll"] for call in gateway.calls["get_return_messages"]]
    assert [poll.start_message_id for poll in polls[1:]] == [77, 77]


def test_logical_error_stops_mailbox_and_other_mailboxes_continue(gateway) -> None:
    seed_mailbox("MB-1")
    seed_mailbox("MB-2")
    rejected = ReturnMessagesResponse.model_validate({"ErrorID": 100, "Messages": None, "More": True})
    gateway.queue("get_return_messages", rejected, return_page([_position()]))

    result = run_originated_cycle(gateway_client=gateway)

    first, second = result.mailboxes
    assert first.access_id == "MB-1"
    assert first.error_kind is ErrorKind.LOGICAL_API
    assert "ERR_INVALID_ACCESS_ID" in first.error
    assert second.success and second.written == 1

    with session_scope() as session:
        failed = session.scalars(select(ApiCallLog).where(ApiCallLog.access_id == "MB-1")).one()
        assert failed.success is False
        assert failed.error_id == 100
        assert failed.error_desc == "ERR_INVALID_ACCESS_ID"


def test_disabled_mailboxes_are_not_polled(gateway) -> None:
    seed_mailbox("MB-1", enabled=False)

    result = run_originated_cycle(gateway_client=gateway)

    assert result.mailboxes == []
    assert gateway.calls["get_return_messages"] == []


def test_unclassified_failures_propagate(gateway) -> None:
    seed_mailbox()
    gateway.queue(
        "get_return_messages",
        GatewayProtocolError("Gateway rejected request with HTTP 400", gateway_url=GATEWAY_URL, status_code=400),
    )

    with pytest.raises(GatewayProtocolError):
        run_originated_cycle(gateway_client=gateway)

    with session_scope() as session:
        assert _call_logs(session) == []


def test_lookback_window_used_for_first_poll(gateway) -> None:
    seed_mailbox()
    gateway.queue("get_return_messages", return_page())

    run_originated_cycle(gateway_client=gateway)

    started = parse_gateway_time(gateway.calls["get_return_messages"][0]["poll"].start_time_utc)
    expected = datetime.now(timezone.utc) - timedelta(hours=48)
    assert abs((started - expected).total_seconds()) < 60


def test_http_timeout_through_real_client_counts_as_transport() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    seed_mailbox()
    client = IdpGatewayClient(transport=httpx.MockTransport(handler))
    try:
        result = run_originated_cycle(gateway_client=client)
    finally:
        client.close()

    assert result.mailboxes[0].error_kind is ErrorKind.TRANSPORT
