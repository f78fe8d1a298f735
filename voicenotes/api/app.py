"""
FastAPI application factory.

``create_app()`` assembles the application with error handlers, routers,
the progress WebSocket, and the health endpoint. The module-level ``app``
instance allows ``uvicorn voicenotes.api.app:app --reload``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voicenotes.api import websocket
from voicenotes.api.middleware.error_handler import register_error_handlers
from voicenotes.api.routes import auth, processing, recordings
from voicenotes.core.config import get_settings
from voicenotes.core.models import HealthResponse
from voicenotes.services import orchestrator
from voicenotes.services.storage.database import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Create tables on startup; stop any running batch and close the DB on shutdown."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    await init_db()
    logger.info("Voice Notes API started (stt=%s)", settings.stt_provider)
    yield
    await orchestrator.cleanup()
    await close_db()
    logger.info("Voice Notes API stopped")


def create_app() -> FastAPI:
    """Build and return a fully configured FastAPI application."""

    app = FastAPI(
        title="Voice Notes",
        description="Batch transcription and map annotation of GPS-tagged voice notes.",
        version="0.1.0",
        lifespan=lifespan,
    )

    # -- CORS (authorization UI) --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level, not under /api/v1) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse(timestamp=datetime.now(UTC))

    # -- REST routes --
    app.include_router(recordings.router, prefix="/api/v1")
    app.include_router(processing.router, prefix="/api/v1")
    app.include_router(auth.router, prefix="/api/v1")

    # -- WebSocket --
    app.include_router(websocket.router)

    return app


app = create_app()
