"""Directory entries keyed by phone number."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from vanish.db.session import Base
from vanish.db.time import UTCDateTime, utcnow

USER_STATUS_ONLINE = "online"
USER_STATUS_OFFLINE = "offline"


class User(Base):
    """A registered identity. The phone number is the only key the relays use."""

    __tablename__ = "user_account"

    phone_number: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    gender: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=USER_STATUS_OFFLINE)
    last_seen: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
