"""Dependency injection helpers for FastAPI routes."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from idpsync.core.database import get_session
from idpsync.gateway.client import GatewayApi, get_gateway_client
from idpsync.services.mailboxes import MailboxDirectory
from idpsync.services.message_store import MessageStore
from idpsync.services.submitter import OutboundSubmitter


def get_db_session() -> Session:
    yield from get_session()


def get_gateway() -> GatewayApi:
    return get_gateway_client()


def get_submitter(
    session: Session = Depends(get_db_session),
    gateway: GatewayApi = Depends(get_gateway),
) -> OutboundSubmitter:
    return OutboundSubmitter(session, gateway_client=gateway)


def get_message_store(session: Session = Depends(get_db_session)) -> MessageStore:
    return MessageStore(session)


def get_mailbox_directory(session: Session = Depends(get_db_session)) -> MailboxDirectory:
    return MailboxDirectory(session)
