# src/vanish/main.py
"""Main entry point for the Vanish application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from vanish.api.v1 import (
    auth_router,
    chat_router,
    messages_router,
    realtime_router,
    users_router,
)
from vanish.core.settings import settings
from vanish.db.session import create_tables
from vanish.services.hub import ChatHub, get_chat_hub

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Vanish API",
    description="Ephemeral end-to-end encrypted chat sessions and call signaling",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(chat_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")
app.include_router(realtime_router, prefix="/api/v1")


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Surface persistence failures as a generic server error."""
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Store unavailable"},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report missing or malformed fields as an invalid request (400)."""
    logger.info("Invalid request on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    if settings.auto_create_tables:
        create_tables()
    hub = get_chat_hub()
    if settings.sweeper_enabled:
        await hub.sweeper.start()
    app.state.chat_hub = hub


@app.on_event("shutdown")
async def on_shutdown() -> None:
    hub: ChatHub | None = getattr(app.state, "chat_hub", None)
    if hub:
        await hub.sweeper.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Ephemeral end-to-end encrypted chat sessions and call signaling",
        "docs": "/docs",
        "websocket": "/api/v1/ws",
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("vanish.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
