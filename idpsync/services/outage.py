"""Edge-triggered gateway availability tracking."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from idpsync.gateway.timefmt import utcnow
from idpsync.models.gateway import MessageGateway


class OutageTracker:
    """Flips a gateway's ``alive`` flag and reports whether it actually changed."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._logger = logging.getLogger("idpsync.services.outage")

    def mark_alive(self, gateway: MessageGateway, now: Optional[datetime] = None) -> bool:
        return self._transition(gateway, alive=True, now=now)

    def mark_down(self, gateway: MessageGateway, now: Optional[datetime] = None) -> bool:
        return self._transition(gateway, alive=False, now=now)

    def _transition(self, gateway: MessageGateway, *, alive: bool, now: Optional[datetime]) -> bool:
        if gateway.alive == alive:
            return False

        gateway.alive = alive
        gateway.alive_changed_at = now or utcnow()
        self._session.add(gateway)
        self._session.flush()

        if alive:
            self._logger.info("gateway_recovered", extra={"gateway": gateway.name, "url": gateway.url})
        else:
            self._logger.error("gateway_down", extra={"gateway": gateway.name, "url": gateway.url})
        return True
