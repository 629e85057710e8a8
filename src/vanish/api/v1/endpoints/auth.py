"""Registration and login endpoints.

Identity is the bare phone number; there is no secret proof.
"""

from __future__ import annotations

from fastapi import APIRouter

from vanish.schemas.user import LoginRequest, RegisterRequest, UserResponse
from vanish.services import users as user_service
from vanish.services.errors import ChatError

from ..dependencies import SessionDep, raise_http_error

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse)
async def register(data: RegisterRequest, db: SessionDep) -> UserResponse:
    """Add a phone number to the directory."""
    try:
        user = user_service.register_user(db, data)
    except ChatError as exc:
        raise_http_error(exc)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=UserResponse)
async def login(data: LoginRequest, db: SessionDep) -> UserResponse:
    """Look up a registered phone number."""
    try:
        user = user_service.login_user(db, data.phone_number)
    except ChatError as exc:
        raise_http_error(exc)
    return UserResponse.model_validate(user)
