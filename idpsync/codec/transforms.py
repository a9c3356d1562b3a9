"""Field value transforms used by the decode tables.

Every transform takes the gateway ``MessageField`` and returns the decoded
value, raising ``ValueError``/``TypeError`` when the value is unusable.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from idpsync.schemas.gateway import ArrayElement, MessageField

logger = logging.getLogger("idpsync.codec.transforms")

COORDINATE_SCALE = 60000
COORDINATE_PLACES = Decimal("0.000001")

PING_CLOCK_MODULUS = 65536
SECONDS_PER_DAY = 86400

DEFAULT_WAKEUP_SECONDS = 5

WAKEUP_SECONDS: Dict[int, int] = {
    0: 5,
    1: 30,
    2: 60,
    3: 180,
    4: 600,
    5: 1800,
    6: 120,
    7: 300,
    8: 900,
    9: 1200,
}

WAKEUP_NAMES: Dict[str, int] = {
    "None": 0,
    "Seconds30": 1,
    "Seconds60": 2,
    "Minutes3": 3,
    "Minutes10": 4,
    "Minutes30": 5,
    "Minutes2": 6,
    "Minutes5": 7,
    "Minutes15": 8,
    "Minutes20": 9,
}

METRICS_PERIODS = (
    "SinceReset",
    "LastPartialMinute",
    "LastFullMinute",
    "LastPartialHour",
    "LastFullHour",
    "LastPartialDay",
    "LastFullDay",
)

PROTOCOL_ERRORS: Dict[int, str] = {
    1: "Unable to allocate message buffer",
    2: "Unknown message type",
}


def _raw(field: MessageField) -> str:
    if field.value is None:
        raise ValueError(f"field {field.name} has no value")
    return field.value.strip()


def integer(field: MessageField) -> int:
    return int(_raw(field))


def text(field: MessageField) -> str:
    return _raw(field)


def boolean(field: MessageField) -> bool:
    raw = _raw(field).lower()
    if raw in ("true", "1"):
        return True
    if raw in ("false", "0"):
        return False
    raise ValueError(f"field {field.name} is not a boolean: {field.value!r}")


def elements(field: MessageField) -> List[ArrayElement]:
    if field.elements is None:
        raise ValueError(f"field {field.name} is not an array")
    return list(field.elements)


def coordinate(field: MessageField) -> float:
    """Degrees from the modem's 1/60000-degree integer, rounded half-up to 6 places."""

    degrees = Decimal(integer(field)) / Decimal(COORDINATE_SCALE)
    return float(degrees.quantize(COORDINATE_PLACES, rounding=ROUND_HALF_UP))


def heading(field: MessageField) -> int:
    return integer(field) * 2


def wakeup_seconds_for(code: Any) -> int:
    """Seconds for a wakeup period given as enum index or enum name."""

    key: Optional[int]
    if isinstance(code, int):
        key = code
    else:
        raw = str(code).strip()
        key = int(raw) if raw.lstrip("-").isdigit() else WAKEUP_NAMES.get(raw)
    if key is None or key not in WAKEUP_SECONDS:
        logger.warning("codec_wakeup_period_unrecognized", extra={"wakeup_code": code})
        return DEFAULT_WAKEUP_SECONDS
    return WAKEUP_SECONDS[key]


def wakeup_period(field: MessageField) -> int:
    return wakeup_seconds_for(_raw(field))


def metrics_period(field: MessageField) -> str:
    raw = _raw(field)
    if raw in METRICS_PERIODS:
        return raw
    index = int(raw)
    if 0 <= index < len(METRICS_PERIODS):
        return METRICS_PERIODS[index]
    return "Reserved"


def protocol_error_description(code: Optional[int]) -> str:
    return PROTOCOL_ERRORS.get(code, "UNHANDLED ERROR")


def timestamp_from_day_minute(reference: datetime, day_of_month: int, minute_of_day: int) -> datetime:
    """Absolute UTC time from the reference's year/month plus day-of-month and minute-of-day."""

    reference = reference.astimezone(timezone.utc) if reference.tzinfo else reference
    return datetime(
        reference.year,
        reference.month,
        day_of_month,
        minute_of_day // 60,
        minute_of_day % 60,
        tzinfo=timezone.utc,
    )


def ping_clock(moment: datetime) -> int:
    """Seconds-of-day of ``moment`` on the modem's 16-bit ping clock."""

    moment = moment.astimezone(timezone.utc) if moment.tzinfo else moment
    return (moment.hour * 3600 + moment.minute * 60 + moment.second) % PING_CLOCK_MODULUS


def unwrap_later(earlier: int, later: int) -> int:
    """Undo a ping clock wrap between two readings taken in order."""

    if later < earlier:
        later += PING_CLOCK_MODULUS
        if later > SECONDS_PER_DAY - 1:
            later -= SECONDS_PER_DAY
    return later
