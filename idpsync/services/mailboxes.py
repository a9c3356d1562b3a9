"""Resolution of mailboxes, gateways and terminals."""

from __future__ import annotations

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from idpsync.core.errors import DataIntegrityError
from idpsync.models.gateway import Mailbox, MessageGateway
from idpsync.models.mobile import Mobile
from idpsync.schemas.gateway import GatewayAuth


class MailboxDirectory:
    def __init__(self, session: Session) -> None:
        self._session = session

    def enabled_mailboxes(self) -> List[Mailbox]:
        stmt = select(Mailbox).where(Mailbox.enabled.is_(True)).order_by(Mailbox.access_id)
        return list(self._session.scalars(stmt))

    def get_mailbox(self, access_id: str) -> Mailbox:
        mailbox = self._session.scalar(select(Mailbox).where(Mailbox.access_id == access_id))
        if mailbox is None:
            raise DataIntegrityError(f"Mailbox {access_id} not found")
        return mailbox

    def gateway_for(self, mailbox: Mailbox) -> MessageGateway:
        if mailbox.gateway is None:
            raise DataIntegrityError(f"Mailbox {mailbox.access_id} has no gateway")
        return mailbox.gateway

    def mailbox_for_mobile(self, mobile_id: str) -> Mailbox:
        mobile = self._session.scalar(select(Mobile).where(Mobile.mobile_id == mobile_id))
        if mobile is None:
            raise DataIntegrityError(f"Mobile {mobile_id} not found")
        if not mobile.access_id:
            raise DataIntegrityError(f"Mobile {mobile_id} is not assigned to a mailbox")
        return self.get_mailbox(mobile.access_id)

    @staticmethod
    def credentials(mailbox: Mailbox) -> GatewayAuth:
        return GatewayAuth(access_id=mailbox.access_id, password=mailbox.password)
