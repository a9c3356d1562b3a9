"""Mailbox-scoped queries."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from idpsync.api.dependencies import get_mailbox_directory, get_message_store
from idpsync.schemas.sync import OpenForwardMessagesResponse
from idpsync.services.mailboxes import MailboxDirectory
from idpsync.services.message_store import MessageStore

router = APIRouter()


@router.get("/{access_id}/open-forward-messages", response_model=OpenForwardMessagesResponse)
def open_forward_messages(
    access_id: str,
    directory: MailboxDirectory = Depends(get_mailbox_directory),
    store: MessageStore = Depends(get_message_store),
) -> OpenForwardMessagesResponse:
    mailbox = directory.get_mailbox(access_id)
    return OpenForwardMessagesResponse(
        access_id=mailbox.access_id,
        forward_message_ids=store.open_terminated_ids(mailbox.access_id),
    )
