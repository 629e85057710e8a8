"""Chat session and message Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field, model_validator

from .common import CamelModel


class ChatRequestCreate(CamelModel):
    """Schema for requesting a new chat session with another identity."""

    from_: str = Field(..., alias="from", min_length=1, description="Requesting identity")
    to: str = Field(..., min_length=1, description="Invited identity")
    encryption_key: str | None = Field(
        None, description="Exported symmetric key material, opaque to the server"
    )


class ChatRespond(CamelModel):
    """Schema for accepting or rejecting a pending chat request."""

    session_id: str = Field(..., min_length=1)
    status: Literal["active", "rejected"]
    accepted_by: str | None = None

    @model_validator(mode="after")
    def _accepted_by_required(self) -> ChatRespond:
        if self.status == "active" and not self.accepted_by:
            raise ValueError("acceptedBy is required when accepting a request")
        return self


class ChatSessionResponse(CamelModel):
    """Schema for chat session information returned by the API and events."""

    id: str
    participants: list[str]
    status: str
    initiated_by: str
    accepted_by: str | None = None
    encryption_key: str | None = None
    last_activity: datetime
    expires_at: datetime | None = None
    created_at: datetime


class RejectedResponse(CamelModel):
    """Body returned when a pending request is rejected."""

    message: str = "rejected"
    session_id: str


class MessageResponse(CamelModel):
    """Schema for a persisted ciphertext message."""

    id: int
    session_id: str
    sender: str
    encrypted_content: str
    iv: str
    created_at: datetime
