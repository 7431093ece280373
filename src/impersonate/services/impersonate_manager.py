"""Impersonation state machine - enter, query and leave impersonated sessions."""

from dataclasses import dataclass
from typing import Any

from src.impersonate.auth.contracts import Authenticatable
from src.impersonate.auth.manager import AuthManager
from src.impersonate.core.config import Settings
from src.impersonate.core.exceptions import (
    ImpersonationError,
    InvalidProviderError,
    MissingProviderError,
    UserNotFoundError,
)
from src.impersonate.core.logging import get_logger
from src.impersonate.events import EventDispatcher, LeaveImpersonation, TakeImpersonation
from src.impersonate.services.redirects import RedirectResolver
from src.impersonate.session.context import SessionContext

logger = get_logger(__name__)


@dataclass(frozen=True)
class ImpersonationResult:
    """Outcome of take/leave. Truthy only on success; carries the cause otherwise."""

    ok: bool
    error: Exception | None = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> "ImpersonationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: Exception) -> "ImpersonationResult":
        return cls(ok=False, error=error)


class ImpersonateManager:
    """Service that swaps the authenticated identity of a visitor session.

    The impersonation record (impersonator id, the guard the impersonator
    was logged in with, and the guard the impersonated user is logged in
    with) lives in the session. It is written as a unit by ``take`` and
    removed as a unit by ``leave``/``clear``.
    """

    def __init__(
        self,
        auth: AuthManager,
        settings: Settings,
        events: EventDispatcher | None = None,
        redirects: RedirectResolver | None = None,
    ):
        self.auth = auth
        self.settings = settings
        self.events = events or EventDispatcher()
        self.redirects = redirects or RedirectResolver.for_router(None)

    @staticmethod
    def get_remember_prefix(guard: str) -> str:
        return f"remember_{guard}"

    @property
    def _record_keys(self) -> tuple[str, str, str]:
        return (
            self.settings.session_key,
            self.settings.session_guard,
            self.settings.session_guard_using,
        )

    # --- Identity resolution ---

    async def find_user_by_id(self, id: Any, guard_name: str | None = None) -> Authenticatable:
        """Resolve a user through the provider of ``guard_name``.

        Args:
            id: The user identifier
            guard_name: Guard whose provider to use (default guard if None)

        Returns:
            The resolved user

        Raises:
            MissingProviderError: If the guard has no provider configured
            InvalidProviderError: If the provider is not registered
            UserNotFoundError: If the provider has no user with this id
        """
        guard_name = guard_name or self.settings.default_guard

        provider_name = self.auth.get_provider_name(guard_name)
        if not provider_name:
            raise MissingProviderError(guard_name)

        try:
            provider = self.auth.create_user_provider(provider_name)
        except ValueError as e:
            raise InvalidProviderError(guard_name) from e

        user = await provider.retrieve_by_id(id)
        if user is None:
            provider_config = self.settings.providers.get(provider_name)
            raise UserNotFoundError(provider_config.model if provider_config else None, id)

        return user

    # --- State queries ---

    async def is_impersonating(self, ctx: SessionContext) -> bool:
        return await ctx.store.has(self.settings.session_key)

    async def get_impersonator_id(self, ctx: SessionContext) -> Any:
        return await ctx.store.get(self.settings.session_key)

    async def get_impersonator(self, ctx: SessionContext) -> Authenticatable | None:
        impersonator_id = await self.get_impersonator_id(ctx)
        if impersonator_id is None:
            return None
        return await self.find_user_by_id(
            impersonator_id, await self.get_impersonator_guard_name(ctx)
        )

    async def get_impersonator_guard_name(self, ctx: SessionContext) -> str | None:
        return await ctx.store.get(self.settings.session_guard)

    async def get_impersonator_guard_using_name(self, ctx: SessionContext) -> str | None:
        return await ctx.store.get(self.settings.session_guard_using)

    async def get_current_auth_guard_name(self, ctx: SessionContext) -> str | None:
        """Name of the first configured guard with an authenticated user.

        Guards that cannot be built (no provider, unregistered provider or
        driver) have nobody logged in and are skipped.
        """
        for name in self.auth.guard_names():
            try:
                guard = self.auth.guard(name, ctx)
            except ValueError as e:
                logger.debug("Skipping unusable guard", guard=name, error=str(e))
                continue
            if await guard.check():
                return name
        return None

    # --- Transitions ---

    async def take(
        self,
        ctx: SessionContext,
        from_user: Authenticatable,
        to_user: Authenticatable,
        guard_name: str | None = None,
    ) -> ImpersonationResult:
        """Log ``to_user`` in on ``guard_name``, remembering ``from_user``.

        Any failure rolls the session back to how it was before the call
        and is returned as a failed result instead of raised.
        """
        guard_name = guard_name or self.settings.default_impersonator_guard
        current_guard: str | None = None
        previous_user: Authenticatable | None = None
        snapshot: dict[str, Any] = {}
        logged_out = False

        try:
            current_guard = await self.get_current_auth_guard_name(ctx)
            snapshot = await self._snapshot(ctx, current_guard)

            await self._save_auth_cookie_in_session(ctx, current_guard)

            await ctx.store.put(self.settings.session_key, from_user.id)
            await ctx.store.put(self.settings.session_guard, current_guard)
            await ctx.store.put(self.settings.session_guard_using, guard_name)

            current = self.auth.guard(current_guard, ctx)
            previous_user = await current.user()
            await current.quiet_logout()
            logged_out = True

            await self.auth.guard(guard_name, ctx).quiet_login(to_user)

        except Exception as e:
            logger.warning(
                "Failed to take impersonation",
                impersonator_id=str(from_user.id),
                impersonated_id=str(to_user.id),
                guard=guard_name,
                error=str(e),
                exc_info=e,
            )
            await self._rollback_take(ctx, snapshot, current_guard, previous_user, logged_out)
            return ImpersonationResult.failure(e)

        await self.events.dispatch(TakeImpersonation(impersonator=from_user, impersonated=to_user))
        return ImpersonationResult.success()

    async def leave(self, ctx: SessionContext) -> ImpersonationResult:
        """Log the impersonator back in and end the impersonation.

        On failure the impersonation record is kept so the call can be retried.
        """
        try:
            impersonator_id = await self.get_impersonator_id(ctx)
            if impersonator_id is None:
                raise ImpersonationError("Not currently impersonating")

            impersonator_guard = await self.get_impersonator_guard_name(ctx)
            guard_using = await self.get_impersonator_guard_using_name(ctx)

            impersonated = await self.auth.guard(guard_using, ctx).user()
            impersonator = await self.find_user_by_id(impersonator_id, impersonator_guard)

            current_guard = await self.get_current_auth_guard_name(ctx)
            await self.auth.guard(current_guard, ctx).quiet_logout()
            await self.auth.guard(impersonator_guard, ctx).quiet_login(impersonator)

            await self._extract_auth_cookie_from_session(ctx, impersonator_guard)

            await self.clear(ctx)

        except Exception as e:
            logger.warning("Failed to leave impersonation", error=str(e), exc_info=e)
            return ImpersonationResult.failure(e)

        await self.events.dispatch(
            LeaveImpersonation(impersonator=impersonator, impersonated=impersonated)
        )
        return ImpersonationResult.success()

    async def clear(self, ctx: SessionContext) -> None:
        """Remove the impersonation record. Captured remember cookies are left alone."""
        for key in self._record_keys:
            await ctx.store.forget(key)

    # --- Redirects ---

    def get_take_redirect_to(self) -> str:
        return self.redirects.resolve(self.settings.take_redirect_to)

    async def get_leave_redirect_to(self, ctx: SessionContext) -> str:
        """Resolve the leave redirect, consuming a one-shot session override if set."""
        target = self.settings.leave_redirect_to
        override_key = self.settings.leave_redirect_session_key

        if await ctx.store.has(override_key):
            target = await ctx.store.get(override_key)
            await ctx.store.forget(override_key)

        return self.redirects.resolve(target)

    async def set_leave_redirect_to(self, ctx: SessionContext, target: str) -> None:
        await ctx.store.put(self.settings.leave_redirect_session_key, target)

    # --- Remember cookie preservation ---

    async def _save_auth_cookie_in_session(
        self, ctx: SessionContext, guard: str | None
    ) -> None:
        if guard is None:
            return

        prefix = self.get_remember_prefix(guard)
        name, value = next(
            ((key, val) for key, val in ctx.cookies.items() if prefix in key),
            (None, None),
        )
        if not name or not value:
            return

        await ctx.store.put(prefix, [name, value])

    async def _extract_auth_cookie_from_session(
        self, ctx: SessionContext, guard: str | None
    ) -> None:
        if guard is None:
            return

        prefix = self.get_remember_prefix(guard)
        entry = await ctx.store.get(prefix)
        if not entry:
            return

        name, value = entry
        ctx.cookie_jar.queue(name, value)
        await ctx.store.forget(prefix)

    # --- Rollback ---

    async def _snapshot(self, ctx: SessionContext, guard: str | None) -> dict[str, Any]:
        keys = list(self._record_keys)
        if guard is not None:
            keys.append(self.get_remember_prefix(guard))
        return {key: await ctx.store.get(key) for key in keys}

    async def _rollback_take(
        self,
        ctx: SessionContext,
        snapshot: dict[str, Any],
        current_guard: str | None,
        previous_user: Authenticatable | None,
        logged_out: bool,
    ) -> None:
        try:
            for key, value in snapshot.items():
                if value is None:
                    await ctx.store.forget(key)
                else:
                    await ctx.store.put(key, value)

            if logged_out and previous_user is not None:
                await self.auth.guard(current_guard, ctx).quiet_login(previous_user)
        except Exception as e:
            logger.error("Failed to roll back impersonation", error=str(e), exc_info=e)
