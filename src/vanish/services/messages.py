"""Persist and fan out ciphertext messages for active sessions."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vanish.db.time import Clock
from vanish.models import SESSION_STATUS_ACTIVE, Message
from vanish.schemas.chat import MessageResponse
from vanish.services.connections import ConnectionRegistry
from vanish.services.locks import SessionLocks
from vanish.services.sessions import SessionRegistry

logger = logging.getLogger(__name__)


def serialize_message(message: Message) -> dict[str, Any]:
    """Serialize a Message into its wire form."""
    return MessageResponse.model_validate(message).to_wire()


class MessageRelay:
    """Accepts messages for active sessions and renews their inactivity clock.

    Sends are fire-and-forget: a message for an unknown, pending, expired or
    past-deadline session is dropped without telling the sender.
    """

    def __init__(
        self,
        sessions: SessionRegistry,
        connections: ConnectionRegistry,
        locks: SessionLocks,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.sessions = sessions
        self.connections = connections
        self.locks = locks
        self.clock = clock or sessions.clock

    async def send(
        self,
        db: Session,
        session_id: str,
        sender: str,
        encrypted_content: str,
        iv: str,
    ) -> Message | None:
        """Persist one message and deliver it to every participant channel.

        The session lock is held through fan-out so delivery order matches
        persistence order within a session.
        """
        async with self.locks.hold(session_id):
            try:
                stored = self._persist(db, session_id, sender, encrypted_content, iv)
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("Failed to store message for %s: %s", session_id, exc, exc_info=True)
                return None
            if stored is None:
                return None

            message, participants = stored
            payload = serialize_message(message)
            for participant in participants:
                await self.connections.emit(participant, "message", payload)
            return message

    def _persist(
        self,
        db: Session,
        session_id: str,
        sender: str,
        encrypted_content: str,
        iv: str,
    ) -> tuple[Message, list[str]] | None:
        session = self.sessions.get(db, session_id, refresh=True)
        if session is None:
            logger.debug("Dropped message for unknown session %s", session_id)
            return None
        if session.status != SESSION_STATUS_ACTIVE:
            logger.debug("Dropped message for %s session %s", session.status, session_id)
            return None
        if not session.has_participant(sender):
            logger.info("Dropped message from non-participant %s in %s", sender, session_id)
            return None

        participants = session.participants
        now = self.clock()
        observed = session.expires_at
        if observed is None or observed < now:
            logger.debug("Dropped message for session %s past its deadline", session_id)
            return None

        if not self.sessions.renew(db, session_id, observed, now):
            db.rollback()
            logger.info("Dropped message for %s: session changed concurrently", session_id)
            return None

        message = Message(
            session_id=session_id,
            sender=sender,
            encrypted_content=encrypted_content,
            iv=iv,
            created_at=now,
        )
        db.add(message)
        db.commit()
        db.refresh(message)
        return message, participants

    def history(self, db: Session, session_id: str) -> list[Message]:
        """Return the persisted messages of a session in write order."""
        return (
            db.query(Message)
            .filter(Message.session_id == session_id)
            .order_by(Message.created_at, Message.id)
            .all()
        )
