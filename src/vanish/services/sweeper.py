"""Background expiry of inactive chat sessions.

The ExpirySweeper periodically scans for active sessions whose sliding
deadline has passed. For each one it:

- deletes every message owned by the session (irrecoverable),
- flips the session to ``expired`` (the commit point),
- notifies both participants with ``chatExpired``.

Message deletion is committed before the status flip, so a sweep that dies
halfway leaves the session active and past due; the next tick finds it again
and converges on the same end state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vanish.core.settings import settings
from vanish.db.session import session_scope
from vanish.db.time import Clock
from vanish.models import SESSION_STATUS_ACTIVE, Message
from vanish.services.connections import ConnectionRegistry
from vanish.services.locks import SessionLocks
from vanish.services.sessions import SessionRegistry

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]


class ExpirySweeper:
    """Periodically expires sessions that have been idle past their TTL.

    The interval is a polling period, not a deadline: a session may outlive
    its ``expires_at`` by up to one interval.
    """

    def __init__(
        self,
        sessions: SessionRegistry,
        connections: ConnectionRegistry,
        locks: SessionLocks,
        *,
        session_factory: SessionFactory = session_scope,
        clock: Clock | None = None,
        interval: float | None = None,
        batch_size: int = 100,
    ) -> None:
        self.sessions = sessions
        self.connections = connections
        self.locks = locks
        self.session_factory = session_factory
        self.clock = clock or sessions.clock
        self.interval = interval if interval is not None else settings.sweep_interval_seconds
        self.batch_size = batch_size
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())
            logger.info("ExpirySweeper started (interval %.1fs)", self.interval)

    async def stop(self) -> None:
        """Stop the background sweep loop and wait for the current pass."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None
        logger.info("ExpirySweeper stopped")

    async def _run(self) -> None:
        interval = max(0.1, float(self.interval))

        while not self._stopping.is_set():
            try:
                await self.sweep_once()
            except SQLAlchemyError as e:
                logger.warning("ExpirySweeper store error, retrying next tick: %s", e)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.error("ExpirySweeper encountered data error: %s", e, exc_info=True)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                pass

    async def sweep_once(self) -> list[str]:
        """Run a single sweep and return the ids of sessions it expired."""
        with self.session_factory() as db:
            return await self._sweep_with_session(db)

    async def _sweep_with_session(self, db: Session) -> list[str]:
        now = self.clock()
        expired: list[str] = []
        skipped: set[str] = set()

        # Drain in batches so a backlog is cleared within one tick. Sessions
        # that could not be expired stay due and are skipped until the next tick.
        while True:
            batch = [
                session.id
                for session in self.sessions.find_expired(
                    db, now, limit=self.batch_size, exclude=skipped
                )
            ]
            if not batch:
                break
            logger.debug("Found %d sessions past their deadline", len(batch))

            for session_id in batch:
                try:
                    if await self._expire_one(db, session_id, now):
                        expired.append(session_id)
                        continue
                except SQLAlchemyError as e:
                    db.rollback()
                    logger.warning("Failed to expire session %s, will retry: %s", session_id, e)
                skipped.add(session_id)

            if len(batch) < self.batch_size:
                break
        return expired

    async def _expire_one(self, db: Session, session_id: str, now: datetime) -> bool:
        async with self.locks.hold(session_id):
            session = self.sessions.get(db, session_id, refresh=True)
            if session is None or session.status != SESSION_STATUS_ACTIVE:
                return False
            observed = session.expires_at
            if observed is None or observed >= now:
                # Renewed by a message while we were waiting for the lock.
                return False
            participants = session.participants

            purged = (
                db.query(Message)
                .filter(Message.session_id == session_id)
                .delete(synchronize_session="fetch")
            )
            db.commit()

            if not self.sessions.expire(db, session_id, observed):
                db.rollback()
                logger.info("Session %s changed before expiry; skipping", session_id)
                return False
            db.commit()
            logger.info("Expired session %s and purged %d messages", session_id, purged)

            for participant in participants:
                await self.connections.emit(participant, "chatExpired", {"sessionId": session_id})
            return True
