"""Manual and scheduler triggers for the sync cycles."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from idpsync.api.dependencies import get_gateway
from idpsync.gateway.client import GatewayApi
from idpsync.schemas.sync import SyncCycleResponse, SyncTriggerRequest
from idpsync.services.sync import run_originated_cycle, run_terminated_cycle

router = APIRouter()


@router.post("/return-messages", response_model=SyncCycleResponse)
def sync_return_messages(
    payload: Optional[SyncTriggerRequest] = None,
    gateway: GatewayApi = Depends(get_gateway),
) -> SyncCycleResponse:
    past_due = payload.past_due if payload is not None else False
    result = run_originated_cycle(past_due=past_due, gateway_client=gateway)
    return SyncCycleResponse.model_validate(result)


@router.post("/forward-statuses", response_model=SyncCycleResponse)
def sync_forward_statuses(
    payload: Optional[SyncTriggerRequest] = None,
    gateway: GatewayApi = Depends(get_gateway),
) -> SyncCycleResponse:
    past_due = payload.past_due if payload is not None else False
    result = run_terminated_cycle(past_due=past_due, gateway_client=gateway)
    return SyncCycleResponse.model_validate(result)
