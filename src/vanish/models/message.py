"""Models describing ciphertext messages owned by a chat session."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from vanish.db.session import Base
from vanish.db.time import UTCDateTime, utcnow


class Message(Base):
    """Encrypted message exchanged inside a chat session.

    Messages are stored on the server but are never decrypted. They are
    immutable once written and are purged together when their session expires.
    """

    __tablename__ = "chat_message"
    __table_args__ = (Index("ix_chat_message_session_created", "session_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("chat_session.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender: Mapped[str] = mapped_column(String(32), nullable=False)

    # Client-side AES-GCM output; the nonce must be unique per message under the session key.
    encrypted_content: Mapped[str] = mapped_column(Text, nullable=False)
    iv: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
