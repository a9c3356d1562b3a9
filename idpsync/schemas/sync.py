"""Request/response schemas for the trigger API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from idpsync.core.errors import ErrorKind
from idpsync.models.api_call_log import GatewayOperation


class SyncTriggerRequest(BaseModel):
    past_due: bool = Field(default=False, description="Set by schedulers that fired late.")


class MailboxSyncResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    access_id: str
    operation: GatewayOperation
    pages: int
    received: int
    written: int
    truncated: bool
    success: bool
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None


class SyncCycleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    operation: GatewayOperation
    written: int
    trimmed_call_logs: int
    mailboxes: List[MailboxSyncResponse]


class ForwardMessageRequest(BaseModel):
    destination_id: str = Field(..., min_length=1, max_length=32)
    command: Optional[str] = Field(default=None, max_length=64)
    raw_payload: Optional[List[int]] = Field(default=None, min_length=2)
    user_message_id: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _one_payload(self) -> "ForwardMessageRequest":
        if (self.command is None) == (self.raw_payload is None):
            raise ValueError("Provide exactly one of command or raw_payload")
        if self.raw_payload is not None and any(not 0 <= byte <= 255 for byte in self.raw_payload):
            raise ValueError("raw_payload values must be bytes (0-255)")
        return self


class ForwardMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    destination_id: str
    forward_message_id: Optional[int] = None
    user_message_id: Optional[int] = None
    accepted: bool
    error_kind: Optional[ErrorKind] = None
    error_id: Optional[int] = None
    error_desc: Optional[str] = None


class CommandResponse(BaseModel):
    name: str
    sin: int
    min: int
    description: str


class OpenForwardMessagesResponse(BaseModel):
    access_id: str
    forward_message_ids: List[int]
