"""Catalog of outbound modem commands."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Tuple

from idpsync.codec.transforms import ping_clock
from idpsync.gateway.timefmt import utcnow
from idpsync.schemas.gateway import MessageField, MessagePayload


class UnknownCommandError(ValueError):
    """Raised when a command name is not in the catalog."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.valid_commands = sorted(COMMANDS)
        super().__init__(f"Unknown command {name!r}; valid commands: {', '.join(self.valid_commands)}")


@dataclass(frozen=True)
class CommandSpec:
    sin: int
    min: int
    payload_name: str
    fields: Tuple[Tuple[str, str, str], ...] = ()
    # Fields whose value depends on the moment of encoding.
    stamped: Optional[Callable[[datetime], Tuple[Tuple[str, str, str], ...]]] = None
    description: str = ""

    def build(self, now: datetime) -> MessagePayload:
        entries: List[Tuple[str, str, str]] = list(self.fields)
        if self.stamped is not None:
            entries.extend(self.stamped(now))
        return MessagePayload(
            name=self.payload_name,
            sin=self.sin,
            min=self.min,
            is_forward=True,
            fields=[MessageField(name=name, value=value, type=kind) for name, value, kind in entries],
        )


def _ping_request_time(now: datetime) -> Tuple[Tuple[str, str, str], ...]:
    return (("requestTime", str(ping_clock(now)), "unsignedint"),)


COMMANDS: Mapping[str, CommandSpec] = MappingProxyType(
    {
        "modemReset": CommandSpec(
            sin=0,
            min=68,
            payload_name="Reset",
            fields=(("resetType", "0", "enum"),),
            description="Reset the modem, preserving its configuration",
        ),
        "getLocation": CommandSpec(
            sin=0,
            min=72,
            payload_name="getLocation",
            description="Request a position report",
        ),
        "getConfiguration": CommandSpec(
            sin=0,
            min=97,
            payload_name="getConfiguration",
            description="Request the modem configuration",
        ),
        "pingModem": CommandSpec(
            sin=0,
            min=112,
            payload_name="pingModem",
            stamped=_ping_request_time,
            description="Measure round-trip latency to the modem",
        ),
    }
)


def build_command(name: str, now: Optional[datetime] = None) -> MessagePayload:
    """Encode the catalog command ``name`` as a forward message payload."""

    command = COMMANDS.get(name)
    if command is None:
        raise UnknownCommandError(name)
    return command.build(now or utcnow())
