from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from src.impersonate.api.middlewares import setup_middlewares
from src.impersonate.api.v1.router import api_router
from src.impersonate.auth.manager import AuthManager
from src.impersonate.core.config import Settings, get_settings
from src.impersonate.core.exceptions import setup_exception_handlers
from src.impersonate.core.logging import get_logger, setup_logging
from src.impersonate.core.redis import close_redis
from src.impersonate.events import EventDispatcher, create_event_dispatcher
from src.impersonate.services.impersonate_manager import ImpersonateManager
from src.impersonate.services.redirects import RedirectResolver
from src.impersonate.session import MemorySessionRegistry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings: Settings = app.state.settings
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    yield

    logger.info("Closing connections...")
    await close_redis()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "impersonate", "description": "Start, stop and inspect user impersonation"},
]


def create_app(
    settings: Settings | None = None,
    auth: AuthManager | None = None,
    events: EventDispatcher | None = None,
    session_registry: MemorySessionRegistry | None = None,
) -> FastAPI:
    """Build the application.

    User providers are registered on ``auth`` (or later through
    ``app.state.impersonate_manager.auth``) under the provider names used
    in ``settings.guards``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Session-based user impersonation",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.impersonate_manager = ImpersonateManager(
        auth or AuthManager(settings),
        settings,
        events or create_event_dispatcher(),
        RedirectResolver.for_router(app.router),
    )

    setup_exception_handlers(app)
    setup_middlewares(app, settings, session_registry)

    app.include_router(api_router)

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn (``session-impersonate`` console script)."""
    settings = get_settings()
    uvicorn.run(
        "src.impersonate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        access_log=True,
    )


if __name__ == "__main__":
    run()
