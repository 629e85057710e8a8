# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from contextlib import nullcontext
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["SWEEPER_ENABLED"] = "false"

from vanish.api.v1.dependencies import get_chat_hub_dep
from vanish.db.session import Base
from vanish.db.session import get_db as app_get_session
from vanish.main import app as fastapi_app
from vanish.models import SESSION_STATUS_ACTIVE, ChatSession, Message, User
from vanish.models.chat_session import ordered_pair
from vanish.services.connections import BaseChannel
from vanish.services.errors import ChannelClosedError
from vanish.services.hub import ChatHub, build_hub

TEST_DB_URL = "sqlite://"
SESSION_TTL = timedelta(seconds=600)


class FrozenClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class RecordingChannel(BaseChannel):
    """In-memory channel that records every frame sent to it."""

    def __init__(self, channel_id: str | None = None) -> None:
        super().__init__(channel_id)
        self.frames: list[dict[str, Any]] = []
        self.closed = False

    async def _transmit(self, frame: dict[str, Any]) -> None:
        if self.closed:
            raise ChannelClosedError("channel closed")
        self.frames.append(frame)

    def events(self, name: str) -> list[Any]:
        return [frame["data"] for frame in self.frames if frame["event"] == name]

    def names(self) -> list[str]:
        return [frame["event"] for frame in self.frames]


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def hub(db_session: Session, clock: FrozenClock) -> ChatHub:
    """A fresh hub whose realtime work runs on the test session and clock."""
    return build_hub(
        clock=clock,
        session_factory=lambda: nullcontext(db_session),
        ttl=SESSION_TTL,
        sweep_interval=30.0,
        notify_on_reject=True,
        hangup_on_disconnect=False,
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(app: FastAPI, db_session: Session, hub: ChatHub) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_chat_hub_dep] = lambda: hub
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_chat_hub_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def alice(db_session: Session, clock: FrozenClock) -> User:
    user = User(phone_number="+15550001", name="Alice", gender="female", last_seen=clock())
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def bob(db_session: Session, clock: FrozenClock) -> User:
    user = User(phone_number="+15550002", name="Bob", gender="male", last_seen=clock())
    db_session.add(user)
    db_session.commit()
    return user


def make_session(
    db: Session,
    clock: FrozenClock,
    initiator: str = "+15550001",
    invitee: str = "+15550002",
    *,
    status: str = SESSION_STATUS_ACTIVE,
    key: str | None = "k1",
) -> ChatSession:
    """Insert a session directly, bypassing the request flow."""
    one, two = ordered_pair(initiator, invitee)
    now = clock()
    session = ChatSession(
        participant_one=one,
        participant_two=two,
        initiated_by=initiator,
        accepted_by=invitee if status == SESSION_STATUS_ACTIVE else None,
        status=status,
        encryption_key=key,
        last_activity=now,
        expires_at=now + SESSION_TTL if status == SESSION_STATUS_ACTIVE else None,
        created_at=now,
        updated_at=now,
    )
    db.add(session)
    db.commit()
    return session


def make_message(db: Session, session: ChatSession, sender: str, content: str = "ct") -> Message:
    message = Message(
        session_id=session.id,
        sender=sender,
        encrypted_content=content,
        iv=f"iv-{content}",
        created_at=session.last_activity,
    )
    db.add(message)
    db.commit()
    return message
