"""Impersonation errors and the exception handlers that render them."""

from typing import Any

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.impersonate.core.logging import get_logger

logger = get_logger(__name__)


class ImpersonationError(Exception):
    """Base exception for impersonation failures."""


class MissingProviderError(ImpersonationError):
    """Raised when a guard has no user provider configured."""

    def __init__(self, guard: str | None):
        self.guard = guard
        super().__init__(f"Missing user provider for guard '{guard}'")


class InvalidProviderError(ImpersonationError):
    """Raised when a guard's provider name is not registered."""

    def __init__(self, guard: str | None):
        self.guard = guard
        super().__init__(f"Invalid user provider for guard '{guard}'")


class UserNotFoundError(ImpersonationError):
    """Raised when a provider has no record for the requested id."""

    def __init__(self, model: str | None, id: Any):
        self.model = model
        self.id = id
        super().__init__(f"No query results for model [{model}] {id}")


def _error_response(status_code: int, detail: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "request_id": correlation_id.get(),
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(exc.status_code, exc.detail)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error_response(exc.status_code, exc.detail)

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(request: Request, exc: UserNotFoundError) -> JSONResponse:
        return _error_response(404, "User not found")

    @app.exception_handler(ImpersonationError)
    async def impersonation_error_handler(
        request: Request, exc: ImpersonationError
    ) -> JSONResponse:
        logger.error(
            "Impersonation misconfigured",
            error=str(exc),
            path=request.url.path,
        )
        return _error_response(500, "Impersonation is misconfigured")

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=correlation_id.get(),
            path=request.url.path,
        )
        return _error_response(500, "Internal server error")
