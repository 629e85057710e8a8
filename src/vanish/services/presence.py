"""Join/leave handling on top of the connection registry."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vanish.db.time import Clock, utcnow
from vanish.models.user import USER_STATUS_OFFLINE, USER_STATUS_ONLINE
from vanish.services import users as user_service
from vanish.services.connections import BaseChannel, ConnectionRegistry

logger = logging.getLogger(__name__)


class PresenceService:
    """Registers channels under identities and publishes online/offline status."""

    def __init__(self, connections: ConnectionRegistry, *, clock: Clock = utcnow) -> None:
        self.connections = connections
        self.clock = clock

    async def join(self, db: Session, identity: str, channel: BaseChannel) -> None:
        """Attach ``channel`` to ``identity`` and announce the identity online."""
        self.connections.join(identity, channel)
        self._record(db, identity, USER_STATUS_ONLINE)
        await self.connections.broadcast(
            "userStatus", {"phoneNumber": identity, "status": USER_STATUS_ONLINE}
        )

    async def leave(self, db: Session, channel: BaseChannel) -> list[str]:
        """Detach ``channel``; identities left without channels go offline."""
        offline = self.connections.leave(channel)
        for identity in offline:
            self._record(db, identity, USER_STATUS_OFFLINE)
            await self.connections.broadcast(
                "userStatus", {"phoneNumber": identity, "status": USER_STATUS_OFFLINE}
            )
        return offline

    def _record(self, db: Session, identity: str, status: str) -> None:
        try:
            user_service.set_status(db, identity, status, self.clock())
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Could not record %s as %s: %s", identity, status, exc)
