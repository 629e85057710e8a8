"""Chat request/response endpoints feeding the session registry."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from vanish.schemas.chat import (
    ChatRequestCreate,
    ChatRespond,
    ChatSessionResponse,
    RejectedResponse,
)
from vanish.services.errors import ChatError

from ..dependencies import HubDep, SessionDep, raise_http_error

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post(
    "/request",
    response_model=ChatSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_chat(data: ChatRequestCreate, db: SessionDep, hub: HubDep) -> ChatSessionResponse:
    """Invite another identity to a new ephemeral session."""
    try:
        session = await hub.sessions.create_request(db, data.from_, data.to, data.encryption_key)
    except ChatError as exc:
        raise_http_error(exc)
    return ChatSessionResponse.model_validate(session)


@router.post("/respond", response_model=ChatSessionResponse | RejectedResponse)
async def respond_to_chat(
    data: ChatRespond, db: SessionDep, hub: HubDep
) -> ChatSessionResponse | RejectedResponse:
    """Accept or reject a pending request."""
    try:
        session = await hub.sessions.respond(db, data.session_id, data.status, data.accepted_by)
    except ChatError as exc:
        raise_http_error(exc)
    if session is None:
        return RejectedResponse(session_id=data.session_id)
    return ChatSessionResponse.model_validate(session)


@router.get("/sessions", response_model=list[ChatSessionResponse])
async def list_sessions(
    db: SessionDep, hub: HubDep, phone: str = Query(..., min_length=1)
) -> list[ChatSessionResponse]:
    """List every session an identity takes part in, newest first."""
    return [ChatSessionResponse.model_validate(s) for s in hub.sessions.list_for(db, phone)]


@router.get("/sessions/{session_id}", response_model=ChatSessionResponse)
async def get_session(session_id: str, db: SessionDep, hub: HubDep) -> ChatSessionResponse:
    """Return a single session, including expired tombstones."""
    try:
        session = hub.sessions.require(db, session_id)
    except ChatError as exc:
        raise_http_error(exc)
    return ChatSessionResponse.model_validate(session)
