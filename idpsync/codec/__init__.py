"""Stateless codec for modem field-array messages."""

from .commands import COMMANDS, UnknownCommandError, build_command  # noqa: F401
from .decoder import decode_message, is_vendor_locked  # noqa: F401
from .telemetry import Telemetry  # noqa: F401
