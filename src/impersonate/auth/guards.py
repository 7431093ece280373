"""Session-backed authentication guard."""

import hashlib
import secrets
from typing import Any

from src.impersonate.auth.contracts import Authenticatable, UserProvider
from src.impersonate.core.logging import get_logger
from src.impersonate.session.context import SessionContext

logger = get_logger(__name__)


class SessionGuard:
    """Guard that keeps the logged-in user id in the visitor session.

    ``login``/``logout`` also manage the remember-me cookie; the quiet
    variants only change the session and leave cookies alone.
    """

    def __init__(
        self,
        name: str,
        provider: UserProvider,
        ctx: SessionContext,
        remember_max_age: int | None = None,
    ):
        self.name = name
        self.provider = provider
        self.ctx = ctx
        self.remember_max_age = remember_max_age
        self._user: Authenticatable | None = None
        self._logged_out = False

    @property
    def _class_hash(self) -> str:
        return hashlib.sha1(type(self).__name__.encode()).hexdigest()

    @property
    def session_key(self) -> str:
        return f"login_{self.name}_{self._class_hash}"

    @property
    def recaller_name(self) -> str:
        return f"remember_{self.name}_{self._class_hash}"

    async def id(self) -> Any:
        user = await self.user()
        return user.id if user is not None else None

    async def user(self) -> Authenticatable | None:
        if self._logged_out:
            return None
        if self._user is not None:
            return self._user

        user_id = await self.ctx.store.get(self.session_key)
        if user_id is not None:
            self._user = await self.provider.retrieve_by_id(user_id)
        return self._user

    async def check(self) -> bool:
        return await self.user() is not None

    async def guest(self) -> bool:
        return not await self.check()

    async def quiet_login(self, user: Authenticatable) -> None:
        await self.ctx.store.put(self.session_key, user.id)
        self._user = user
        self._logged_out = False

    async def quiet_logout(self) -> None:
        await self.ctx.store.forget(self.session_key)
        self._user = None
        self._logged_out = True

    async def login(self, user: Authenticatable, remember: bool = False) -> None:
        await self.quiet_login(user)
        if remember:
            token = getattr(user, "remember_token", None)
            if not token:
                token = secrets.token_hex(30)
                # Providers persisting users are expected to save this field
                if hasattr(user, "remember_token"):
                    user.remember_token = token  # type: ignore[attr-defined]
            self.ctx.cookie_jar.queue(
                self.recaller_name, f"{user.id}|{token}", max_age=self.remember_max_age
            )
        logger.info("User logged in", guard=self.name, user_id=str(user.id), remember=remember)

    async def logout(self) -> None:
        user = await self.user()
        await self.quiet_logout()
        if self.recaller_name in self.ctx.cookies or self.ctx.cookie_jar.has_queued(
            self.recaller_name
        ):
            self.ctx.cookie_jar.forget(self.recaller_name)
        logger.info(
            "User logged out",
            guard=self.name,
            user_id=str(user.id) if user is not None else None,
        )
