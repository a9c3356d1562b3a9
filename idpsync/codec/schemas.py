"""Declarative decode tables for the modem's core (SIN 0) message schemas."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type

from idpsync.codec import telemetry, transforms
from idpsync.schemas.gateway import ArrayElement, MessageField

logger = logging.getLogger("idpsync.codec.schemas")

CORE_SIN = 0

Values = Dict[str, Any]


@dataclass(frozen=True)
class FieldRule:
    attribute: str
    transform: Callable[[MessageField], Any]


@dataclass(frozen=True)
class MessageSchema:
    """Decode table for one (SIN, MIN) pair.

    ``finalize`` derives attributes that depend on more than one field or on
    the message's receive time; it receives and returns the attribute dict.
    """

    sin: int
    min: int
    name: str
    model: Type[telemetry.Telemetry]
    fields: Mapping[str, FieldRule]
    finalize: Optional[Callable[[Values, Optional[datetime]], Values]] = field(default=None)


def _rules(**mapping: Tuple[str, Callable[[MessageField], Any]]) -> Mapping[str, FieldRule]:
    return MappingProxyType({name: FieldRule(attr, fn) for name, (attr, fn) in mapping.items()})


def _version(values: Values, major: str, minor: str) -> Optional[str]:
    if values.get(major) is None:
        return None
    return f"{values[major]}.{values.get(minor, 0)}"


def _finalize_registration(values: Values, received: Optional[datetime], *, registered: bool) -> Values:
    hardware = _version(values, "hardware_major_version", "hardware_minor_version")
    if hardware is not None:
        values["hardware_version"] = hardware
        values["software_version"] = _version(values, "software_major_version", "software_minor_version")
    else:
        values.pop("product_id", None)
    if registered and received is not None:
        values["last_registration"] = received
    return values


def _finalize_protocol_error(values: Values, received: Optional[datetime]) -> Values:
    if "error_code" in values:
        values["error_description"] = transforms.protocol_error_description(values["error_code"])
    return values


def _finalize_location(values: Values, received: Optional[datetime]) -> Values:
    day = values.get("day_of_month")
    minute = values.get("minute_of_day")
    if received is not None and day is not None and minute is not None:
        try:
            values["fix_time"] = transforms.timestamp_from_day_minute(received, day, minute)
        except ValueError:
            logger.warning(
                "codec_location_time_invalid",
                extra={"day_of_month": day, "minute_of_day": minute},
            )
    return values


_PACKET_TYPES = {
    0: "ack",
    1: "0.5s subframe 0.33 rate",
    2: "0.5s subframe 0.5 rate",
    3: "0.5s subframe 0.75 rate",
    5: "1s subframe 0.33 rate",
    6: "1s subframe 0.5 rate",
}

_PACKET_COUNTERS = {
    "PacketsTotal": "segments_total",
    "PacketsSuccess": "segments_ok",
    "PacketsFailed": "segments_failed",
}


def _finalize_tx_metrics(values: Values, received: Optional[datetime]) -> Values:
    packets: List[ArrayElement] = values.pop("packet_types", None) or []
    mask = values.get("packet_type_mask") or 0
    metrics = []
    index = 0
    for bit in range(8):
        if not (mask >> bit) & 1:
            continue
        if index >= len(packets):
            logger.warning(
                "codec_tx_metrics_truncated",
                extra={"packet_type_mask": mask, "elements": len(packets)},
            )
            break
        metric: Values = {"type": _PACKET_TYPES.get(bit, "undefined")}
        for counter in packets[index].fields:
            attribute = _PACKET_COUNTERS.get(counter.name)
            if attribute is not None and counter.value is not None:
                metric[attribute] = int(counter.value)
        metrics.append(telemetry.TxPacketMetric(**metric))
        index += 1
    values["metrics"] = metrics
    return values


def _finalize_ping_reply(values: Values, received: Optional[datetime]) -> Values:
    request = values.get("request_time")
    response = values.get("response_time")
    if request is None or response is None or received is None:
        return values
    receive = transforms.ping_clock(received)
    response = transforms.unwrap_later(request, response)
    receive = transforms.unwrap_later(response, receive)
    mobile_terminated = response - request
    mobile_originated = receive - response
    values.update(
        response_time=response,
        receive_time=receive,
        latency=telemetry.PingLatency(
            mobile_terminated=mobile_terminated,
            mobile_originated=mobile_originated,
            round_trip=mobile_terminated + mobile_originated,
        ),
    )
    return values


def _finalize_network_ping(values: Values, received: Optional[datetime]) -> Values:
    request = values.get("request_time")
    if request is None or received is None:
        return values
    receive = transforms.unwrap_later(request, transforms.ping_clock(received))
    values.update(receive_time=receive, latency=receive - request)
    return values


def _finalize_broadcast_ids(values: Values, received: Optional[datetime]) -> Values:
    groups: List[ArrayElement] = values.pop("broadcast_groups", None) or []
    broadcast_ids = []
    for element in groups:
        for entry in element.fields:
            if entry.value is not None:
                broadcast_ids.append(int(entry.value))
    values["broadcast_ids"] = broadcast_ids
    return values


_REGISTRATION_FIELDS = _rules(
    hardwareMajorVersion=("hardware_major_version", transforms.integer),
    hardwareMinorVersion=("hardware_minor_version", transforms.integer),
    softwareMajorVersion=("software_major_version", transforms.integer),
    softwareMinorVersion=("software_minor_version", transforms.integer),
    product=("product_id", transforms.integer),
    wakeupPeriod=("wakeup_period", transforms.wakeup_period),
    lastResetReason=("last_reset_reason", transforms.text),
    virtualCarrier=("virtual_carrier", transforms.integer),
    beam=("beam", transforms.integer),
    vain=("vain", transforms.integer),
    operatorTxState=("operator_tx_state", transforms.integer),
    userTxState=("user_tx_state", transforms.integer),
    broadcastIDCount=("broadcast_id_count", transforms.integer),
)


def _registration(min_: int, name: str, *, registered: bool) -> MessageSchema:
    return MessageSchema(
        sin=CORE_SIN,
        min=min_,
        name=name,
        model=telemetry.Registration,
        fields=_REGISTRATION_FIELDS,
        finalize=lambda values, received: _finalize_registration(values, received, registered=registered),
    )


_SCHEMA_LIST = (
    _registration(0, "modemRegistration", registered=True),
    _registration(1, "modemProtocolReset", registered=False),
    _registration(97, "modemConfiguration", registered=False),
    MessageSchema(
        sin=CORE_SIN,
        min=2,
        name="modemProtocolError",
        model=telemetry.ProtocolError,
        fields=_rules(
            messageReference=("message_reference", transforms.integer),
            errorCode=("error_code", transforms.integer),
            errorInfo=("error_info", transforms.integer),
        ),
        finalize=_finalize_protocol_error,
    ),
    MessageSchema(
        sin=CORE_SIN,
        min=70,
        name="sleepSchedule",
        model=telemetry.SleepSchedule,
        fields=_rules(
            wakeupPeriod=("wakeup_period", transforms.wakeup_period),
            mobileInitiated=("mobile_initiated", transforms.boolean),
            messageReference=("message_reference", transforms.integer),
        ),
    ),
    MessageSchema(
        sin=CORE_SIN,
        min=72,
        name="replyPosition",
        model=telemetry.Location,
        fields=_rules(
            fixStatus=("fix_status", transforms.integer),
            latitude=("latitude", transforms.coordinate),
            longitude=("longitude", transforms.coordinate),
            altitude=("altitude", transforms.integer),
            speed=("speed", transforms.integer),
            heading=("heading", transforms.heading),
            dayOfMonth=("day_of_month", transforms.integer),
            minuteOfDay=("minute_of_day", transforms.integer),
        ),
        finalize=_finalize_location,
    ),
    MessageSchema(
        sin=CORE_SIN,
        min=98,
        name="lastRxInfo",
        model=telemetry.LastRxInfo,
        fields=_rules(
            sipValid=("sip_valid", transforms.boolean),
            subframe=("subframe", transforms.integer),
            packets=("segments_detected", transforms.integer),
            packetsOK=("segments_ok", transforms.integer),
            frequencyOffset=("frequency_offset", transforms.integer),
            timingOffset=("timing_offset", transforms.integer),
            packetCNO=("segment_cn", transforms.integer),
            uwCNO=("uw_cn", transforms.integer),
            uwRSSI=("uw_rssi", transforms.integer),
            uwSymbols=("uw_symbols", transforms.integer),
            uwErrors=("uw_errors", transforms.integer),
            packetSymbols=("segment_symbols", transforms.integer),
            packetErrors=("segment_errors", transforms.integer),
        ),
    ),
    MessageSchema(
        sin=CORE_SIN,
        min=99,
        name="rxMetrics",
        model=telemetry.RxMetrics,
        fields=_rules(
            period=("metrics_period", transforms.metrics_period),
            numSegments=("segments", transforms.integer),
            numSegmentsOk=("segments_ok", transforms.integer),
            AvgCN0=("average_cn", transforms.integer),
            SamplesCN0=("samples_cn", transforms.integer),
            ChannelErrorRate=("channel_error_rate", transforms.integer),
            uwErrorRate=("uw_error_rate", transforms.integer),
        ),
    ),
    MessageSchema(
        sin=CORE_SIN,
        min=100,
        name="txMetrics",
        model=telemetry.TxMetrics,
        fields=_rules(
            period=("metrics_period", transforms.metrics_period),
            packetTypeMask=("packet_type_mask", transforms.integer),
            txMetrics=("packet_types", transforms.elements),
        ),
        finalize=_finalize_tx_metrics,
    ),
    MessageSchema(
        sin=CORE_SIN,
        min=112,
        name="pingReply",
        model=telemetry.PingReply,
        fields=_rules(
            requestTime=("request_time", transforms.integer),
            responseTime=("response_time", transforms.integer),
        ),
        finalize=_finalize_ping_reply,
    ),
    MessageSchema(
        sin=CORE_SIN,
        min=113,
        name="pingRequest",
        model=telemetry.NetworkPingRequest,
        fields=_rules(requestSent=("request_time", transforms.integer)),
        finalize=_finalize_network_ping,
    ),
    MessageSchema(
        sin=CORE_SIN,
        min=115,
        name="broadcastIds",
        model=telemetry.BroadcastIds,
        fields=_rules(broadcastIDs=("broadcast_groups", transforms.elements)),
        finalize=_finalize_broadcast_ids,
    ),
)

SCHEMAS: Mapping[Tuple[int, int], MessageSchema] = MappingProxyType(
    {(schema.sin, schema.min): schema for schema in _SCHEMA_LIST}
)
