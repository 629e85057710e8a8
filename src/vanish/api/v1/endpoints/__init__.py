"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .chat import router as chat_router
from .messages import router as messages_router
from .realtime import router as realtime_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "chat_router",
    "messages_router",
    "realtime_router",
    "users_router",
]
