"""User directory Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from .common import CamelModel


class RegisterRequest(CamelModel):
    """Schema for registering a phone number in the directory."""

    phone_number: str = Field(..., description="Phone number used as the identity")
    name: str = Field(..., description="Display name")
    gender: Literal["male", "female"] = Field(..., description="Profile gender")

    @field_validator("phone_number", "name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class LoginRequest(CamelModel):
    """Schema for login submissions. Identity is the bare phone number."""

    phone_number: str = Field(..., min_length=1, description="Registered phone number")


class UserResponse(CamelModel):
    """Directory entry returned by the API."""

    phone_number: str
    name: str
    gender: str
    status: str
    last_seen: datetime
