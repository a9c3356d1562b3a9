from __future__ import annotations

from datetime import datetime, timezone

import pytest

from idpsync.codec import COMMANDS, UnknownCommandError, build_command, decode_message, is_vendor_locked
from idpsync.codec.telemetry import Location, PingReply, Registration, TxMetrics
from idpsync.codec.transforms import ping_clock, unwrap_later, wakeup_seconds_for
from idpsync.schemas.gateway import ReturnMessage


def _message(min_: int, fields, *, name=None, message_utc="2024-03-15 12:00:00", sin=0) -> ReturnMessage:
    return ReturnMessage.model_validate(
        {
            "ID": 1001,
            "MobileID": "01097623SKY2C68",
            "MessageUTC": message_utc,
            "ReceiveUTC": message_utc,
            "SIN": sin,
            "RegionName": "AMERRB16",
            "OTAMessageSize": 22,
            "Payload": {"Name": name, "SIN": sin, "MIN": min_, "IsForward": False, "Fields": fields},
        }
    )


def test_position_report_decodes_coordinates_and_fix_time() -> None:
    message = _message(
        72,
        [
            {"Name": "fixStatus", "Value": "1"},
            {"Name": "latitude", "Value": "2717104"},
            {"Name": "longitude", "Value": "-4550914"},
            {"Name": "altitude", "Value": "91"},
            {"Name": "speed", "Value": "0"},
            {"Name": "heading", "Value": "45"},
            {"Name": "dayOfMonth", "Value": "14"},
            {"Name": "minuteOfDay", "Value": "725"},
        ],
        name="replyPosition",
    )

    telemetry = decode_message(message)

    assert isinstance(telemetry, Location)
    assert telemetry.latitude == pytest.approx(45.285067)
    assert telemetry.longitude == pytest.approx(-75.848567)
    assert telemetry.heading == 90
    assert telemetry.fix_time == datetime(2024, 3, 14, 12, 5, tzinfo=timezone.utc)

    updates = telemetry.mobile_updates()
    assert updates["location_latitude"] == pytest.approx(45.285067)
    assert updates["location_heading"] == 90
    assert updates["location_timestamp"] == datetime(2024, 3, 14, 12, 5, tzinfo=timezone.utc)


def test_registration_builds_versions_and_registration_time() -> None:
    message = _message(
        0,
        [
            {"Name": "hardwareMajorVersion", "Value": 5},
            {"Name": "hardwareMinorVersion", "Value": 2},
            {"Name": "softwareMajorVersion", "Value": 3},
            {"Name": "softwareMinorVersion", "Value": 1},
            {"Name": "product", "Value": 6},
            {"Name": "wakeupPeriod", "Value": "Minutes10"},
            {"Name": "lastResetReason", "Value": "PowerOn"},
        ],
    )

    telemetry = decode_message(message)

    assert isinstance(telemetry, Registration)
    assert telemetry.name == "modemRegistration"
    assert telemetry.hardware_version == "5.2"
    assert telemetry.software_version == "3.1"
    assert telemetry.wakeup_period == 600
    assert telemetry.last_registration == datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    assert telemetry.mobile_updates() == {
        "modem_hw_version": "5.2",
        "modem_sw_version": "3.1",
        "modem_product_id": 6,
        "wakeup_period": 600,
        "last_registration": datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc),
    }


def test_unknown_and_invalid_fields_are_dropped() -> None:
    message = _message(
        70,
        [
            {"Name": "wakeupPeriod", "Value": "2"},
            {"Name": "mobileInitiated", "Value": "maybe"},
            {"Name": "firmwareBlob", "Value": "abc"},
        ],
    )

    telemetry = decode_message(message)

    assert telemetry is not None
    assert telemetry.to_record()["wakeup_period"] == 60
    assert "mobile_initiated" not in telemetry.to_record()


def test_unsupported_schema_and_vendor_lock_yield_nothing() -> None:
    unsupported = _message(200, [{"Name": "x", "Value": "1"}])
    locked = _message(255, [], sin=15)

    assert decode_message(unsupported) is None
    assert is_vendor_locked(locked)
    assert decode_message(locked) is None


def test_ping_reply_latency_without_wrap() -> None:
    message = _message(
        112,
        [{"Name": "requestTime", "Value": "3600"}, {"Name": "responseTime", "Value": "3610"}],
        message_utc="2024-03-15 01:00:15",
    )

    telemetry = decode_message(message)

    assert isinstance(telemetry, PingReply)
    assert telemetry.latency.mobile_terminated == 10
    assert telemetry.latency.mobile_originated == 5
    assert telemetry.latency.round_trip == 15


def test_ping_reply_latency_across_clock_wrap() -> None:
    # 65000 s is 18:03:20; the modem clock wrapped to 100 before replying.
    message = _message(
        112,
        [{"Name": "requestTime", "Value": "65000"}, {"Name": "responseTime", "Value": "100"}],
        message_utc="2024-03-15 18:14:00",
    )

    telemetry = decode_message(message)

    assert telemetry.response_time == 65636
    assert telemetry.receive_time == 65640
    assert telemetry.latency.round_trip == 640


def test_ping_clock_helpers() -> None:
    assert ping_clock(datetime(2024, 1, 1, 18, 14, 0, tzinfo=timezone.utc)) == 104
    assert unwrap_later(3600, 3610) == 3610
    assert unwrap_later(80000, 1000) == 66536
    assert unwrap_later(30000, 25000) == 4136


def test_tx_metrics_follow_packet_type_mask() -> None:
    counters = [
        {"Name": "PacketsTotal", "Value": "10"},
        {"Name": "PacketsSuccess", "Value": "9"},
        {"Name": "PacketsFailed", "Value": "1"},
    ]
    message = _message(
        100,
        [
            {"Name": "period", "Value": "2"},
            {"Name": "packetTypeMask", "Value": "5"},
            {
                "Name": "txMetrics",
                "Elements": [{"Index": 0, "Fields": counters}, {"Index": 1, "Fields": counters}],
            },
        ],
    )

    telemetry = decode_message(message)

    assert isinstance(telemetry, TxMetrics)
    assert telemetry.metrics_period == "LastFullMinute"
    assert [metric.type for metric in telemetry.metrics] == ["ack", "0.5s subframe 0.5 rate"]
    assert telemetry.metrics[0].segments_failed == 1


def test_wakeup_codes() -> None:
    assert wakeup_seconds_for(3) == 180
    assert wakeup_seconds_for("Minutes10") == 600
    assert wakeup_seconds_for("9") == 1200
    assert wakeup_seconds_for("Fortnightly") == 5
    assert wakeup_seconds_for(42) == 5


def test_ping_command_stamps_request_time() -> None:
    payload = build_command("pingModem", now=datetime(2024, 1, 1, 1, 0, 0, tzinfo=timezone.utc))

    assert (payload.sin, payload.min, payload.is_forward) == (0, 112, True)
    assert [(field.name, field.value) for field in payload.fields] == [("requestTime", "3600")]


def test_reset_command_payload() -> None:
    payload = build_command("modemReset")

    wire = payload.model_dump(by_alias=True, exclude_none=True)
    assert wire["Name"] == "Reset"
    assert wire["MIN"] == 68
    assert wire["Fields"] == [{"Name": "resetType", "Value": "0", "Type": "enum"}]


def test_unknown_command_lists_catalog() -> None:
    with pytest.raises(UnknownCommandError) as excinfo:
        build_command("selfDestruct")

    assert excinfo.value.valid_commands == sorted(COMMANDS)
    assert "getLocation" in str(excinfo.value)
