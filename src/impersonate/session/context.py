"""Request-scoped session context.

Every impersonation operation receives a SessionContext explicitly instead
of reaching for ambient request state, so the state machine can run against
any session backend (or none, in tests).
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from starlette.responses import Response

from src.impersonate.session.store import MemorySessionStore, SessionStore


@dataclass(frozen=True)
class QueuedCookie:
    """A cookie waiting to be written to the outbound response."""

    name: str
    value: str
    max_age: int | None = None

    @property
    def expired(self) -> bool:
        return self.max_age is not None and self.max_age <= 0


class CookieJar:
    """Outbound cookie queue.

    Cookies are queued during request handling and written to the response
    by the session middleware. Queuing a name twice keeps the latest value.
    """

    def __init__(self, default_max_age: int | None = None):
        self.default_max_age = default_max_age
        self._queued: dict[str, QueuedCookie] = {}

    def queue(self, name: str, value: str, max_age: int | None = None) -> None:
        self._queued[name] = QueuedCookie(
            name=name,
            value=value,
            max_age=max_age if max_age is not None else self.default_max_age,
        )

    def forget(self, name: str) -> None:
        """Queue an expired cookie so the browser drops it."""
        self._queued[name] = QueuedCookie(name=name, value="", max_age=0)

    def has_queued(self, name: str) -> bool:
        return name in self._queued

    def get_queued(self, name: str) -> QueuedCookie | None:
        return self._queued.get(name)

    @property
    def queued(self) -> list[QueuedCookie]:
        return list(self._queued.values())

    def apply(self, response: Response, secure: bool = False) -> None:
        for cookie in self._queued.values():
            if cookie.expired:
                response.delete_cookie(cookie.name, secure=secure, httponly=True)
            else:
                response.set_cookie(
                    cookie.name,
                    cookie.value,
                    max_age=cookie.max_age,
                    secure=secure,
                    httponly=True,
                    samesite="lax",
                )


@dataclass
class SessionContext:
    """Everything one request needs to read and change a visitor session.

    Attributes:
        store: The visitor's session store
        cookies: Inbound request cookies (read-only)
        cookie_jar: Outbound cookie queue for the response
    """

    store: SessionStore
    cookies: Mapping[str, str] = field(default_factory=dict)
    cookie_jar: CookieJar = field(default_factory=CookieJar)
    guards: dict[str, Any] = field(default_factory=dict)  # resolved guards, by name

    @classmethod
    def in_memory(
        cls,
        session_id: str = "test",
        cookies: Mapping[str, str] | None = None,
        data: dict[str, Any] | None = None,
    ) -> "SessionContext":
        """Build a context over a throwaway in-memory session."""
        return cls(store=MemorySessionStore(session_id, data), cookies=dict(cookies or {}))
