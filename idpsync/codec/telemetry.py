"""Typed telemetry records produced by the decoder, one model per message schema."""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class Telemetry(BaseModel):
    """Common envelope for a decoded mobile-originated message."""

    model_config = ConfigDict(extra="forbid")

    # telemetry attribute -> Mobile column
    MOBILE_ATTRIBUTES: ClassVar[Mapping[str, str]] = {}

    mobile_id: str
    name: Optional[str] = None
    sin: int
    min: int
    timestamp: Optional[datetime] = None

    def mobile_updates(self) -> Dict[str, Any]:
        """Mobile columns carried by this record, skipping absent values."""

        updates: Dict[str, Any] = {}
        for attribute, column in self.MOBILE_ATTRIBUTES.items():
            value = getattr(self, attribute)
            if value is not None:
                updates[column] = value
        return updates

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Registration(Telemetry):
    MOBILE_ATTRIBUTES: ClassVar[Mapping[str, str]] = {
        "hardware_version": "modem_hw_version",
        "software_version": "modem_sw_version",
        "product_id": "modem_product_id",
        "wakeup_period": "wakeup_period",
        "last_registration": "last_registration",
    }

    hardware_major_version: Optional[int] = None
    hardware_minor_version: Optional[int] = None
    software_major_version: Optional[int] = None
    software_minor_version: Optional[int] = None
    hardware_version: Optional[str] = None
    software_version: Optional[str] = None
    product_id: Optional[int] = None
    wakeup_period: Optional[int] = None
    last_reset_reason: Optional[str] = None
    virtual_carrier: Optional[int] = None
    beam: Optional[int] = None
    vain: Optional[int] = None
    operator_tx_state: Optional[int] = None
    user_tx_state: Optional[int] = None
    broadcast_id_count: Optional[int] = None
    last_registration: Optional[datetime] = None


class ProtocolError(Telemetry):
    message_reference: Optional[int] = None
    error_code: Optional[int] = None
    error_description: Optional[str] = None
    error_info: Optional[int] = None


class SleepSchedule(Telemetry):
    MOBILE_ATTRIBUTES: ClassVar[Mapping[str, str]] = {"wakeup_period": "wakeup_period"}

    wakeup_period: Optional[int] = None
    mobile_initiated: Optional[bool] = None
    message_reference: Optional[int] = None


class Location(Telemetry):
    MOBILE_ATTRIBUTES: ClassVar[Mapping[str, str]] = {
        "fix_status": "location_fix_status",
        "latitude": "location_latitude",
        "longitude": "location_longitude",
        "altitude": "location_altitude",
        "speed": "location_speed",
        "heading": "location_heading",
        "fix_time": "location_timestamp",
    }

    fix_status: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[int] = None
    speed: Optional[int] = None
    heading: Optional[int] = None
    day_of_month: Optional[int] = None
    minute_of_day: Optional[int] = None
    fix_time: Optional[datetime] = None


class LastRxInfo(Telemetry):
    sip_valid: Optional[bool] = None
    subframe: Optional[int] = None
    segments_detected: Optional[int] = None
    segments_ok: Optional[int] = None
    frequency_offset: Optional[int] = None
    timing_offset: Optional[int] = None
    segment_cn: Optional[int] = None
    uw_cn: Optional[int] = None
    uw_rssi: Optional[int] = None
    uw_symbols: Optional[int] = None
    uw_errors: Optional[int] = None
    segment_symbols: Optional[int] = None
    segment_errors: Optional[int] = None


class RxMetrics(Telemetry):
    metrics_period: Optional[str] = None
    segments: Optional[int] = None
    segments_ok: Optional[int] = None
    average_cn: Optional[int] = None
    samples_cn: Optional[int] = None
    channel_error_rate: Optional[int] = None
    uw_error_rate: Optional[int] = None


class TxPacketMetric(BaseModel):
    type: str
    segments_total: Optional[int] = None
    segments_ok: Optional[int] = None
    segments_failed: Optional[int] = None


class TxMetrics(Telemetry):
    metrics_period: Optional[str] = None
    packet_type_mask: Optional[int] = None
    metrics: List[TxPacketMetric] = Field(default_factory=list)


class PingLatency(BaseModel):
    mobile_terminated: int
    mobile_originated: int
    round_trip: int


class PingReply(Telemetry):
    request_time: Optional[int] = None
    response_time: Optional[int] = None
    receive_time: Optional[int] = None
    latency: Optional[PingLatency] = None


class NetworkPingRequest(Telemetry):
    request_time: Optional[int] = None
    receive_time: Optional[int] = None
    latency: Optional[int] = None


class BroadcastIds(Telemetry):
    MOBILE_ATTRIBUTES: ClassVar[Mapping[str, str]] = {"broadcast_ids": "broadcast_ids"}

    broadcast_ids: Optional[List[int]] = None
