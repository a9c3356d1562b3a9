"""Wire schemas for the gateway REST API.

Aliases carry the gateway's field names; attribute names match the local
column names so validated records can be written to the store directly.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from idpsync.gateway.timefmt import parse_gateway_time


class GatewayModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ArrayElement(GatewayModel):
    index: Optional[int] = Field(default=None, alias="Index")
    fields: List["MessageField"] = Field(default_factory=list, alias="Fields")


class MessageField(GatewayModel):
    name: str = Field(..., alias="Name")
    value: Optional[str] = Field(default=None, alias="Value")
    type: Optional[str] = Field(default=None, alias="Type")
    elements: Optional[List[ArrayElement]] = Field(default=None, alias="Elements")

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "True" if value else "False"
        return str(value)


class MessagePayload(GatewayModel):
    """Decoded field-array form of a message, as rendered by the gateway."""

    name: Optional[str] = Field(default=None, alias="Name")
    sin: int = Field(..., alias="SIN")
    min: int = Field(..., alias="MIN")
    is_forward: bool = Field(default=False, alias="IsForward")
    fields: List[MessageField] = Field(default_factory=list, alias="Fields")


class GatewayAuth(GatewayModel):
    access_id: str
    password: str


class PollFilter(GatewayModel):
    """Pagination cursor for a poll; exactly one cursor kind is set."""

    start_message_id: Optional[int] = None
    start_time_utc: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one_cursor(self) -> "PollFilter":
        if (self.start_message_id is None) == (self.start_time_utc is None):
            raise ValueError("PollFilter requires exactly one of start_message_id or start_time_utc")
        return self


GatewayTime = Annotated[Optional[datetime], BeforeValidator(parse_gateway_time)]


class ReturnMessage(GatewayModel):
    """Mobile-originated message as delivered by ``get_return_messages``."""

    message_id: int = Field(..., alias="ID")
    mobile_id: str = Field(..., alias="MobileID")
    message_utc: GatewayTime = Field(default=None, alias="MessageUTC")
    receive_utc: GatewayTime = Field(default=None, alias="ReceiveUTC")
    sin: Optional[int] = Field(default=None, alias="SIN")
    min: Optional[int] = Field(default=None, alias="MIN")
    region_name: Optional[str] = Field(default=None, alias="RegionName")
    ota_message_size: Optional[int] = Field(default=None, alias="OTAMessageSize")
    raw_payload: Optional[List[int]] = Field(default=None, alias="RawPayload")
    payload: Optional[MessagePayload] = Field(default=None, alias="Payload")

    @model_validator(mode="after")
    def _fill_codec_ids(self) -> "ReturnMessage":
        if self.payload is not None:
            self.sin = self.payload.sin if self.sin is None else self.sin
            self.min = self.payload.min if self.min is None else self.min
        elif self.raw_payload:
            self.sin = self.raw_payload[0] if self.sin is None else self.sin
            if self.min is None and len(self.raw_payload) > 1:
                self.min = self.raw_payload[1]
        return self


class ReturnMessagesResponse(GatewayModel):
    error_id: int = Field(..., alias="ErrorID")
    messages: List[ReturnMessage] = Field(default_factory=list, alias="Messages")
    more: bool = Field(default=False, alias="More")
    next_start_utc: str = Field(default="", alias="NextStartUTC")
    next_start_id: int = Field(default=-1, alias="NextStartID")

    @field_validator("messages", mode="before")
    @classmethod
    def _null_messages(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("next_start_utc", mode="before")
    @classmethod
    def _null_cursor(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("next_start_id", mode="before")
    @classmethod
    def _null_id(cls, value: Any) -> Any:
        return -1 if value is None else value


class ForwardStatus(GatewayModel):
    forward_message_id: int = Field(..., alias="ForwardMessageID")
    error_id: int = Field(default=0, alias="ErrorID")
    is_closed: bool = Field(default=False, alias="IsClosed")
    reference_number: Optional[int] = Field(default=None, alias="ReferenceNumber")
    state: int = Field(..., alias="State")
    state_utc: GatewayTime = Field(default=None, alias="StateUTC")


class ForwardStatusesResponse(GatewayModel):
    error_id: int = Field(..., alias="ErrorID")
    statuses: List[ForwardStatus] = Field(default_factory=list, alias="Statuses")
    more: bool = Field(default=False, alias="More")
    next_start_utc: str = Field(default="", alias="NextStartUTC")

    @field_validator("statuses", mode="before")
    @classmethod
    def _null_statuses(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("next_start_utc", mode="before")
    @classmethod
    def _null_cursor(cls, value: Any) -> Any:
        return "" if value is None else value


class ForwardMessage(GatewayModel):
    """Outbound message submitted through ``submit_messages``."""

    destination_id: str = Field(..., alias="DestinationID")
    user_message_id: Optional[int] = Field(default=None, alias="UserMessageID")
    payload: Optional[MessagePayload] = Field(default=None, alias="Payload")
    raw_payload: Optional[List[Annotated[int, Field(ge=0, le=255)]]] = Field(default=None, alias="RawPayload")

    @model_validator(mode="after")
    def _one_payload(self) -> "ForwardMessage":
        if (self.payload is None) == (self.raw_payload is None):
            raise ValueError("ForwardMessage requires exactly one of payload or raw_payload")
        return self

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Submission(GatewayModel):
    forward_message_id: int = Field(..., alias="ForwardMessageID")
    destination_id: Optional[str] = Field(default=None, alias="DestinationID")
    error_id: int = Field(default=0, alias="ErrorID")
    user_message_id: Optional[int] = Field(default=None, alias="UserMessageID")
    ota_message_size: Optional[int] = Field(default=None, alias="OTAMessageSize")
    state_utc: GatewayTime = Field(default=None, alias="StateUTC")
    scheduled_send_utc: GatewayTime = Field(default=None, alias="ScheduledSendUTC")
    terminal_wakeup_period: Optional[Any] = Field(default=None, alias="TerminalWakeupPeriod")


class SubmitResponse(GatewayModel):
    error_id: int = Field(..., alias="ErrorID")
    submissions: List[Submission] = Field(default_factory=list, alias="Submissions")

    @field_validator("submissions", mode="before")
    @classmethod
    def _null_submissions(cls, value: Any) -> Any:
        return [] if value is None else value


ArrayElement.model_rebuild()
