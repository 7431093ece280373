"""Visitor session storage and request context."""

from src.impersonate.session.context import CookieJar, QueuedCookie, SessionContext
from src.impersonate.session.store import (
    MemorySessionRegistry,
    MemorySessionStore,
    RedisSessionStore,
    SessionStore,
)

__all__ = [
    "CookieJar",
    "MemorySessionRegistry",
    "MemorySessionStore",
    "QueuedCookie",
    "RedisSessionStore",
    "SessionContext",
    "SessionStore",
]
