"""Shared API dependencies."""

from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from vanish.db.session import get_db
from vanish.services.errors import (
    ChatError,
    ConflictError,
    InvalidRequestError,
    SessionNotFoundError,
    UserNotFoundError,
)
from vanish.services.hub import ChatHub, get_chat_hub


def get_chat_hub_dep() -> ChatHub:
    """Return the shared chat hub for dependency injection."""
    return get_chat_hub()


# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

# Type alias for the realtime component hub
HubDep = Annotated[ChatHub, Depends(get_chat_hub_dep)]


def raise_http_error(exc: ChatError) -> NoReturn:
    """Translate a domain error into the matching HTTP error.

    Args:
        exc: The domain exception raised by a service

    Raises:
        HTTPException: 400 for invalid requests and conflicts, 404 for unknown
            sessions or users
    """
    if isinstance(exc, (SessionNotFoundError, UserNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (InvalidRequestError, ConflictError)):
        code = status.HTTP_400_BAD_REQUEST
    else:  # pragma: no cover - every ChatError subclass is mapped above
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    raise HTTPException(status_code=code, detail=str(exc)) from exc
