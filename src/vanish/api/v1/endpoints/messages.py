"""Message history endpoint for hydrating a session after (re)connect."""

from __future__ import annotations

from fastapi import APIRouter

from vanish.schemas.chat import MessageResponse

from ..dependencies import HubDep, SessionDep

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/{session_id}", response_model=list[MessageResponse])
async def get_messages(session_id: str, db: SessionDep, hub: HubDep) -> list[MessageResponse]:
    """Return the ciphertext history of a session, oldest first.

    Expired sessions have no messages left, so this returns an empty list.
    """
    return [MessageResponse.model_validate(m) for m in hub.messages.history(db, session_id)]
