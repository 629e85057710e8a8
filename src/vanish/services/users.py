"""Directory helpers for registering, finding and tracking users."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.orm import Session

from vanish.models.user import USER_STATUS_OFFLINE, User
from vanish.schemas.user import RegisterRequest
from vanish.services.errors import ConflictError, InvalidRequestError, UserNotFoundError

__all__ = [
    "get_user",
    "register_user",
    "login_user",
    "search_users",
    "set_status",
]


def get_user(db: Session, phone_number: str) -> User | None:
    """Return a single user by phone number."""
    return db.get(User, phone_number)


def register_user(db: Session, data: RegisterRequest) -> User:
    """Persist a new directory entry; phone numbers are unique."""
    if get_user(db, data.phone_number) is not None:
        raise ConflictError("User already exists")

    db_user = User(
        phone_number=data.phone_number,
        name=data.name,
        gender=data.gender,
        status=USER_STATUS_OFFLINE,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def login_user(db: Session, phone_number: str) -> User:
    """Return the user for ``phone_number``. There is no secret to check."""
    phone_number = phone_number.strip()
    if not phone_number:
        raise InvalidRequestError("Phone number required")
    user = get_user(db, phone_number)
    if user is None:
        raise UserNotFoundError("User not found. Please register first.")
    return user


def search_users(db: Session, query: str, limit: int = 10) -> Sequence[User]:
    """Return users whose phone number contains ``query``, case-insensitively."""
    query = query.strip()
    if not query:
        raise InvalidRequestError("Search query required")
    pattern = "%" + query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
    return (
        db.query(User)
        .filter(User.phone_number.ilike(pattern, escape="\\"))
        .order_by(User.phone_number)
        .limit(limit)
        .all()
    )


def set_status(db: Session, phone_number: str, status: str, seen_at: datetime) -> User | None:
    """Record presence for a registered user. Unknown numbers are ignored."""
    user = get_user(db, phone_number)
    if user is None:
        return None
    user.status = status
    user.last_seen = seen_at
    db.commit()
    return user
