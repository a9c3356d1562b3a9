"""Outbound command submission."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from idpsync.api.dependencies import get_submitter
from idpsync.core.errors import ErrorKind
from idpsync.schemas.sync import ForwardMessageRequest, ForwardMessageResponse
from idpsync.services.submitter import OutboundSubmitter

router = APIRouter()


@router.post(
    "",
    response_model=ForwardMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_forward_message(
    payload: ForwardMessageRequest,
    response: Response,
    submitter: OutboundSubmitter = Depends(get_submitter),
) -> ForwardMessageResponse:
    result = submitter.submit(
        payload.destination_id,
        command=payload.command,
        raw_payload=payload.raw_payload,
        user_message_id=payload.user_message_id,
    )
    if not result.accepted:
        if result.error_kind is ErrorKind.TRANSPORT:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        else:
            response.status_code = status.HTTP_502_BAD_GATEWAY
    return ForwardMessageResponse.model_validate(result)
