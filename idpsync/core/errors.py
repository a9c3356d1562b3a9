"""Error taxonomy shared by the gateway client and the sync services."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """How a failure is handled by a sync invocation."""

    TRANSPORT = "transport"
    LOGICAL_API = "logical_api"
    DATA_INTEGRITY = "data_integrity"
    FATAL = "fatal"


class SyncError(Exception):
    """Base class for classified sync failures."""

    kind: ErrorKind = ErrorKind.FATAL


class GatewayTransportError(SyncError):
    """Gateway unreachable, timed out, or answered with a server-side failure.

    Counts as a "gateway down" signal and is retried on the next cycle.
    """

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, *, gateway_url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.gateway_url = gateway_url
        self.status_code = status_code


class GatewayProtocolError(SyncError):
    """Gateway answered with something this client cannot use (client error, bad body)."""

    kind = ErrorKind.FATAL

    def __init__(self, message: str, *, gateway_url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.gateway_url = gateway_url
        self.status_code = status_code


class GatewayLogicalError(SyncError):
    """Gateway call succeeded at the transport level but reported a non-zero ErrorID."""

    kind = ErrorKind.LOGICAL_API

    def __init__(self, error_id: int, description: str) -> None:
        super().__init__(f"Gateway error {error_id}: {description}")
        self.error_id = error_id
        self.description = description


class DataIntegrityError(SyncError):
    """A referenced mailbox, gateway, terminal or message is missing locally."""

    kind = ErrorKind.DATA_INTEGRITY


def classify(exc: BaseException) -> ErrorKind:
    """Return the taxonomy tag for any exception."""

    if isinstance(exc, SyncError):
        return exc.kind
    return ErrorKind.FATAL
