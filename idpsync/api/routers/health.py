"""Health check endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from idpsync.api.dependencies import get_db_session
from idpsync.models.gateway import MessageGateway

router = APIRouter()


@router.get("/healthz", summary="Liveness probe")
def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Database reachability and gateway availability")
def readiness_check(session: Session = Depends(get_db_session)) -> Dict[str, Any]:
    gateways = session.scalars(select(MessageGateway).order_by(MessageGateway.name)).all()
    return {
        "status": "ok",
        "gateways": {gateway.name: "alive" if gateway.alive else "down" for gateway in gateways},
    }
