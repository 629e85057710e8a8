"""Session lifecycle: request, respond, renewal and expiry transitions.

States::

    pending --accept--> active          (expires_at = now + ttl)
    pending --reject--> [deleted]
    active  --message-> active          (expires_at = now + ttl)
    active  --sweep---> expired         (messages purged, tombstone kept)

Renewal and expiry are compare-and-swap updates so a stale read can never
overwrite a newer transition.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from vanish.core.settings import settings
from vanish.db.time import Clock, utcnow
from vanish.models import (
    SESSION_STATUS_ACTIVE,
    SESSION_STATUS_EXPIRED,
    SESSION_STATUS_PENDING,
    SESSION_STATUS_REJECTED,
    ChatSession,
)
from vanish.models.chat_session import ordered_pair
from vanish.schemas.chat import ChatSessionResponse
from vanish.services.connections import ConnectionRegistry
from vanish.services.errors import (
    ConflictError,
    InvalidRequestError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)


def serialize_session(session: ChatSession) -> dict[str, Any]:
    """Serialize a ChatSession into its wire form."""
    return ChatSessionResponse.model_validate(session).to_wire()


class SessionRegistry:
    """Owns the chat session state machine."""

    def __init__(
        self,
        connections: ConnectionRegistry,
        *,
        clock: Clock = utcnow,
        ttl: timedelta | None = None,
        notify_on_reject: bool | None = None,
    ) -> None:
        self.connections = connections
        self.clock = clock
        self.ttl = ttl if ttl is not None else settings.session_ttl
        self.notify_on_reject = (
            settings.notify_on_reject if notify_on_reject is None else notify_on_reject
        )

    # --- Reads ----------------------------------------------------------------------
    def get(self, db: Session, session_id: str, *, refresh: bool = False) -> ChatSession | None:
        """Return a session by id, optionally bypassing the identity map."""
        if refresh:
            return db.get(ChatSession, session_id, populate_existing=True)
        return db.get(ChatSession, session_id)

    def require(self, db: Session, session_id: str) -> ChatSession:
        session = self.get(db, session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def find_open_for_pair(self, db: Session, first: str, second: str) -> ChatSession | None:
        """Return the non-expired session for an unordered pair, if any."""
        one, two = ordered_pair(first, second)
        return (
            db.query(ChatSession)
            .filter(
                ChatSession.participant_one == one,
                ChatSession.participant_two == two,
                ChatSession.status.notin_([SESSION_STATUS_EXPIRED, SESSION_STATUS_REJECTED]),
            )
            .first()
        )

    def list_for(self, db: Session, identity: str) -> list[ChatSession]:
        """Return every session ``identity`` takes part in, newest first."""
        return (
            db.query(ChatSession)
            .filter(
                or_(
                    ChatSession.participant_one == identity,
                    ChatSession.participant_two == identity,
                )
            )
            .order_by(desc(ChatSession.created_at))
            .all()
        )

    def find_expired(
        self,
        db: Session,
        now: datetime,
        limit: int | None = None,
        exclude: Collection[str] = (),
    ) -> list[ChatSession]:
        """Return active sessions whose deadline lies before ``now``.

        Ids in ``exclude`` are left out, so callers can page past sessions
        they already tried.
        """
        query = db.query(ChatSession).filter(
            ChatSession.status == SESSION_STATUS_ACTIVE,
            ChatSession.expires_at < now,
        )
        if exclude:
            query = query.filter(ChatSession.id.notin_(list(exclude)))
        query = query.order_by(ChatSession.expires_at)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    # --- Control plane ------------------------------------------------------------
    async def create_request(
        self,
        db: Session,
        from_identity: str,
        to_identity: str,
        encryption_key: str | None,
    ) -> ChatSession:
        """Create a pending session and notify the invited identity."""
        from_identity = (from_identity or "").strip()
        to_identity = (to_identity or "").strip()
        if not from_identity or not to_identity:
            raise InvalidRequestError("Both from and to are required")
        if from_identity == to_identity:
            raise InvalidRequestError("Cannot chat with yourself")

        if self.find_open_for_pair(db, from_identity, to_identity) is not None:
            raise ConflictError("Chat already exists or pending")

        one, two = ordered_pair(from_identity, to_identity)
        now = self.clock()
        session = ChatSession(
            participant_one=one,
            participant_two=two,
            initiated_by=from_identity,
            status=SESSION_STATUS_PENDING,
            encryption_key=encryption_key,
            last_activity=now,
            created_at=now,
            updated_at=now,
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        logger.info("Chat request %s from %s to %s", session.id, from_identity, to_identity)

        await self.connections.emit(to_identity, "newRequest", serialize_session(session))
        return session

    async def respond(
        self,
        db: Session,
        session_id: str,
        status: str,
        accepted_by: str | None,
    ) -> ChatSession | None:
        """Accept or reject a pending request.

        Returns the activated session, or None when the request was rejected
        and its record removed.
        """
        session = self.require(db, session_id)
        if session.status != SESSION_STATUS_PENDING:
            raise ConflictError(f"Session is {session.status}, not pending")

        if status == SESSION_STATUS_ACTIVE:
            return await self._accept(db, session, accepted_by)
        if status == SESSION_STATUS_REJECTED:
            await self._reject(db, session)
            return None
        raise InvalidRequestError(f"Unsupported status {status!r}")

    async def _accept(self, db: Session, session: ChatSession, accepted_by: str | None) -> ChatSession:
        if not accepted_by or not session.has_participant(accepted_by):
            raise InvalidRequestError("acceptedBy must be a participant of the session")

        now = self.clock()
        session.status = SESSION_STATUS_ACTIVE
        session.accepted_by = accepted_by
        session.last_activity = now
        session.expires_at = now + self.ttl
        db.commit()
        db.refresh(session)
        logger.info("Chat %s started, expires at %s", session.id, session.expires_at)

        payload = serialize_session(session)
        for participant in session.participants:
            await self.connections.emit(participant, "chatStarted", payload)
        return session

    async def _reject(self, db: Session, session: ChatSession) -> None:
        session_id = session.id
        initiator = session.initiated_by
        rejected_by = session.participants[1]
        db.delete(session)
        db.commit()
        logger.info("Chat request %s rejected by %s", session_id, rejected_by)

        if self.notify_on_reject:
            await self.connections.emit(
                initiator,
                "requestRejected",
                {"sessionId": session_id, "rejectedBy": rejected_by},
            )

    # --- Transitions shared with the relay and the sweeper ------------------------
    def renew(self, db: Session, session_id: str, observed_expires_at: datetime, now: datetime) -> bool:
        """Push the deadline to ``now + ttl`` if nobody moved it since it was read.

        Does not commit. Returns False when the session is no longer active or
        its deadline changed underneath the caller.
        """
        updated = (
            db.query(ChatSession)
            .filter(
                ChatSession.id == session_id,
                ChatSession.status == SESSION_STATUS_ACTIVE,
                ChatSession.expires_at == observed_expires_at,
            )
            .update(
                {
                    ChatSession.last_activity: now,
                    ChatSession.expires_at: now + self.ttl,
                    ChatSession.updated_at: now,
                },
                synchronize_session="fetch",
            )
        )
        return updated == 1

    def expire(self, db: Session, session_id: str, observed_expires_at: datetime) -> bool:
        """Flip an active session to expired if its deadline is still the one read.

        Does not commit. This is the commit point that removes the session
        from future sweeps.
        """
        updated = (
            db.query(ChatSession)
            .filter(
                ChatSession.id == session_id,
                ChatSession.status == SESSION_STATUS_ACTIVE,
                ChatSession.expires_at == observed_expires_at,
            )
            .update(
                {
                    ChatSession.status: SESSION_STATUS_EXPIRED,
                    ChatSession.updated_at: self.clock(),
                },
                synchronize_session="fetch",
            )
        )
        return updated == 1
