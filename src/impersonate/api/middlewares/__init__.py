"""Application middlewares."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI

from src.impersonate.core.config import Settings
from src.impersonate.session import MemorySessionRegistry

from .logging_context import logging_context_middleware
from .session import SessionMiddleware

__all__ = [
    "setup_middlewares",
    "SessionMiddleware",
    "logging_context_middleware",
]


def setup_middlewares(
    app: FastAPI, settings: Settings, registry: MemorySessionRegistry | None = None
) -> None:
    """Configure all application middlewares.

    Starlette wraps each added middleware around the previous ones, so the
    last one added runs first on the request.
    """
    # Session - innermost, sees the request id bound by the logging middleware
    app.add_middleware(SessionMiddleware, settings=settings, registry=registry)

    # Logging context - binds request_id to structlog context
    @app.middleware("http")
    async def _logging_context(request, call_next):  # type: ignore[no-untyped-def]
        return await logging_context_middleware(request, call_next)

    # Correlation ID - generates/propagates X-Request-ID
    app.add_middleware(CorrelationIdMiddleware)
