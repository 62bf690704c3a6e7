"""FastAPI web application for the Debox discussion server."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_default_config
from discussion_engine.database import DatabaseManager
from discussion_engine.service import DiscussionService
from web.discussion_manager import DiscussionManager
from web.endpoints.discussions import router as discussions_router, ws_router as discussions_ws_router
from web.endpoints.system import router as system_router
from web.endpoints.v1.auth import router as auth_v1_router

logger: logging.Logger = logging.getLogger(__name__)

# Global discussion manager, created on first use
discussion_manager: DiscussionManager | None = None


def get_discussion_manager() -> DiscussionManager:
    """Return the process-wide discussion manager, building it from config."""
    global discussion_manager
    if discussion_manager is None:
        config = get_default_config()
        db = DatabaseManager(config.get_database_path())
        service = DiscussionService(db, config.discussion)
        discussion_manager = DiscussionManager(service, config.scheduler)
    return discussion_manager


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown."""
    manager = get_discussion_manager()

    logger.info("Resuming timers for active discussions...")
    manager.resume_timers()

    yield

    await manager.shutdown()


def get_allowed_origins() -> list[str] | None:
    """Get CORS origins from environment or use development defaults."""
    env_origins: str | None = os.environ.get("ALLOWED_ORIGINS")
    if env_origins:
        return [origin.strip() for origin in env_origins.split(",")]
    return None


app: FastAPI = FastAPI(
    title="Debox Discussion Server",
    description="Real-time structured debates: discussions, phases, messages and votes",
    version="1.0.0",
    lifespan=lifespan,
)

allowed_origins: list[str] | None = get_allowed_origins()

if allowed_origins:
    logger.info(f"Setting CORS allowed origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    logger.info("No ALLOWED_ORIGINS set, using development CORS settings")

    # Development: Allow any localhost/127.0.0.1
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(system_router, prefix="/v1")
app.include_router(auth_v1_router, prefix="/v1")
app.include_router(discussions_router, prefix="/v1")
app.include_router(discussions_ws_router, prefix="/v1")
