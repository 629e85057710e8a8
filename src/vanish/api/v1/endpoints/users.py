"""User directory search."""

from __future__ import annotations

from fastapi import APIRouter, Query

from vanish.core.settings import settings
from vanish.schemas.user import UserResponse
from vanish.services import users as user_service
from vanish.services.errors import ChatError

from ..dependencies import SessionDep, raise_http_error

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search", response_model=list[UserResponse])
async def search_users(db: SessionDep, query: str = Query("")) -> list[UserResponse]:
    """Return users whose phone number contains ``query``."""
    try:
        users = user_service.search_users(db, query, limit=settings.user_search_limit)
    except ChatError as exc:
        raise_http_error(exc)
    return [UserResponse.model_validate(user) for user in users]
