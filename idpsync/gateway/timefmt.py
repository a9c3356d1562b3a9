"""Conversions between Python datetimes and the gateway's timestamp strings.

The gateway speaks UTC as ``YYYY-MM-DD hh:mm:ss`` with no zone designator.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union

GATEWAY_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_gateway_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(GATEWAY_TIME_FORMAT)


def parse_gateway_time(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a gateway or ISO-8601 timestamp; empty values yield ``None``."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip().replace("T", " ")
        if text.endswith("Z"):
            text = text[:-1]
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_gateway_time(value: Union[str, datetime]) -> str:
    """Return ``value`` in the gateway format regardless of how it was stored."""

    parsed = parse_gateway_time(value)
    if parsed is None:
        raise ValueError("cannot normalize an empty timestamp")
    return to_gateway_time(parsed)
