"""Server-side session middleware.

Loads the visitor session named by the session cookie, exposes it to
handlers as ``request.state.session_context`` and writes queued cookies
back on the way out.
"""

import re
import secrets

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.impersonate.core.config import Settings
from src.impersonate.core.logging import bind_impersonation_context
from src.impersonate.core.redis import get_redis
from src.impersonate.session import (
    CookieJar,
    MemorySessionRegistry,
    RedisSessionStore,
    SessionContext,
    SessionStore,
)

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{32,128}$")


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionMiddleware(BaseHTTPMiddleware):
    """Middleware that opens the visitor session for each request.

    Sessions live in Redis when it is configured and reachable, otherwise
    in a process-local registry.
    """

    def __init__(
        self,
        app: ASGIApp,
        settings: Settings,
        registry: MemorySessionRegistry | None = None,
    ):
        super().__init__(app)
        self.settings = settings
        self.registry = registry if registry is not None else MemorySessionRegistry()

    async def open_store(self, session_id: str) -> SessionStore:
        redis = await get_redis()
        if redis is not None:
            return RedisSessionStore(
                redis,
                session_id,
                prefix=self.settings.redis_session_prefix,
                ttl=self.settings.session_lifetime_seconds,
            )
        return self.registry.open(session_id)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        session_id = request.cookies.get(self.settings.session_cookie, "")
        if not _SESSION_ID_RE.match(session_id):
            session_id = new_session_id()

        ctx = SessionContext(
            store=await self.open_store(session_id),
            cookies=dict(request.cookies),
            cookie_jar=CookieJar(default_max_age=self.settings.remember_cookie_max_age),
        )
        request.state.session_context = ctx

        impersonator_id = await ctx.store.get(self.settings.session_key)
        if impersonator_id is not None:
            bind_impersonation_context(
                impersonator_id,
                await ctx.store.get(self.settings.session_guard),
                await ctx.store.get(self.settings.session_guard_using),
            )

        response = await call_next(request)

        secure = self.settings.session_cookie_secure
        ctx.cookie_jar.apply(response, secure=secure)
        response.set_cookie(
            self.settings.session_cookie,
            session_id,
            max_age=self.settings.session_lifetime_seconds,
            secure=secure,
            httponly=True,
            samesite="lax",
        )
        return response
