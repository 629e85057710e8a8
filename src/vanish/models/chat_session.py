"""Models describing ephemeral chat sessions between two identities."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from vanish.db.session import Base
from vanish.db.time import UTCDateTime, utcnow

SESSION_STATUS_PENDING = "pending"
SESSION_STATUS_ACTIVE = "active"
SESSION_STATUS_REJECTED = "rejected"
SESSION_STATUS_EXPIRED = "expired"

SESSION_STATUSES = (
    SESSION_STATUS_PENDING,
    SESSION_STATUS_ACTIVE,
    SESSION_STATUS_REJECTED,
    SESSION_STATUS_EXPIRED,
)


def _new_id() -> str:
    return uuid4().hex


def ordered_pair(first: str, second: str) -> tuple[str, str]:
    """Return the two identities in canonical (sorted) order."""
    return (first, second) if first <= second else (second, first)


class ChatSession(Base):
    """One ephemeral conversation between exactly two identities.

    The participant pair is stored sorted so lookups are order-insensitive.
    The encryption key is opaque to the server: clients export the shared
    symmetric key and the server only hands it back to the participants.
    """

    __tablename__ = "chat_session"
    __table_args__ = (
        CheckConstraint("participant_one <> participant_two", name="ck_chat_session_distinct"),
        Index("ix_chat_session_pair", "participant_one", "participant_two"),
        Index("ix_chat_session_status_expires", "status", "expires_at"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    participant_one: Mapped[str] = mapped_column(String(32), nullable=False)
    participant_two: Mapped[str] = mapped_column(String(32), nullable=False)

    initiated_by: Mapped[str] = mapped_column(String(32), nullable=False)
    accepted_by: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=SESSION_STATUS_PENDING)
    encryption_key: Mapped[str | None] = mapped_column(Text, nullable=True)

    last_activity: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def participants(self) -> list[str]:
        """Return both identities, initiator first."""
        other = (
            self.participant_two
            if self.participant_one == self.initiated_by
            else self.participant_one
        )
        return [self.initiated_by, other]

    def has_participant(self, identity: str) -> bool:
        """Return True if ``identity`` is one of the two participants."""
        return identity in (self.participant_one, self.participant_two)
