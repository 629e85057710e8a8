"""Best-effort typing indicator fan-out."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from vanish.services.connections import ConnectionRegistry
from vanish.services.sessions import SessionRegistry

logger = logging.getLogger(__name__)


class TypingRelay:
    """Forward typing state to the other participant. Never persisted."""

    def __init__(self, sessions: SessionRegistry, connections: ConnectionRegistry) -> None:
        self.sessions = sessions
        self.connections = connections

    async def notify_typing(self, db: Session, session_id: str, sender: str, is_typing: bool) -> int:
        """Return the number of channels the indicator reached."""
        session = self.sessions.get(db, session_id)
        if session is None:
            logger.debug("Dropped typing event for unknown session %s", session_id)
            return 0

        payload = {"sessionId": session_id, "sender": sender, "isTyping": is_typing}
        delivered = 0
        for participant in session.participants:
            if participant != sender:
                delivered += await self.connections.emit(participant, "typing", payload)
        return delivered
