# src/welo_stage/main.py
"""Main entry point for the Welo application."""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from welo_stage.api.v1 import (
    auth_router,
    chats_router,
    messages_router,
    realtime_router,
    users_router,
)
from welo_stage.core.settings import settings
from welo_stage.db.session import SessionLocal, create_tables
from welo_stage.repositories.conversation_store import ConversationStore
from welo_stage.services.delivery import DeliveryEngine
from welo_stage.services.errors import ChatServiceError, StorageFailureError
from welo_stage.services.presence import PresenceTable

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Welo API",
    description="Two-party direct messaging with presence and read receipts",
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
app.include_router(chats_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")
app.include_router(realtime_router)


def configure_services(
    application: FastAPI,
    session_factory: Callable[[], Session] = SessionLocal,
) -> DeliveryEngine:
    """Build the per-instance presence table, store and delivery engine.

    The presence table lives on ``application.state`` and is only reached
    through the engine or request dependencies.
    """
    presence = PresenceTable()
    store = ConversationStore(session_factory)
    engine = DeliveryEngine(presence, store)
    application.state.presence = presence
    application.state.store = store
    application.state.delivery = engine
    return engine


configure_services(app)


@app.exception_handler(ChatServiceError)
async def handle_chat_service_error(request: Request, exc: ChatServiceError) -> JSONResponse:
    """Translate service rejections into JSON error responses."""
    if isinstance(exc, StorageFailureError):
        logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": "Server error"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.on_event("startup")
async def on_startup() -> None:
    create_tables()


@app.get("/health")
async def health_check() -> dict[str, object]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok", "online_users": len(app.state.presence)}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "websocket": "/ws",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("welo_stage.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
