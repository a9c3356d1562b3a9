"""Trigger-facing entry points; each call owns exactly one storage session."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from idpsync.core.database import session_scope
from idpsync.gateway.client import GatewayApi
from idpsync.services.originated import OriginatedPoller
from idpsync.services.polling import SyncCycleResult
from idpsync.services.submitter import OutboundSubmitter, SubmissionResult
from idpsync.services.terminated import TerminatedStatusPoller

logger = logging.getLogger("idpsync.services.sync")


def _warn_past_due(trigger: str, past_due: bool) -> None:
    if past_due:
        logger.warning("sync_trigger_past_due", extra={"trigger": trigger})


def run_originated_cycle(past_due: bool = False, gateway_client: Optional[GatewayApi] = None) -> SyncCycleResult:
    _warn_past_due("get_return_messages", past_due)
    with session_scope() as session:
        return OriginatedPoller(session, gateway_client=gateway_client).run()


def run_terminated_cycle(past_due: bool = False, gateway_client: Optional[GatewayApi] = None) -> SyncCycleResult:
    _warn_past_due("get_forward_statuses", past_due)
    with session_scope() as session:
        return TerminatedStatusPoller(session, gateway_client=gateway_client).run()


def submit_forward_message(
    destination_id: str,
    *,
    command: Optional[str] = None,
    raw_payload: Optional[Sequence[int]] = None,
    user_message_id: Optional[int] = None,
    gateway_client: Optional[GatewayApi] = None,
) -> SubmissionResult:
    with session_scope() as session:
        return OutboundSubmitter(session, gateway_client=gateway_client).submit(
            destination_id,
            command=command,
            raw_payload=raw_payload,
            user_message_id=user_message_id,
        )
