"""Property-based tests for take/leave round trips using Hypothesis."""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from src.impersonate.auth import AuthManager, InMemoryUserProvider
from src.impersonate.core.config import GuardSettings, Settings
from src.impersonate.services import ImpersonateManager
from src.impersonate.session import SessionContext
from tests.factories import UserFactory

pytestmark = pytest.mark.unit

GUARDS = ["web", "admin", "api"]

guard_names = st.sampled_from(GUARDS)
cookie_values = st.text(
    alphabet=st.characters(min_codepoint=33, max_codepoint=126, exclude_characters=";,\\\""),
    min_size=1,
    max_size=80,
)


def build_manager() -> ImpersonateManager:
    config = Settings(
        app_env="testing",
        guards={name: GuardSettings(provider="users") for name in GUARDS},
        redis_url=None,
    )
    operator = UserFactory.superuser(id=1)
    target = UserFactory.build(id=2)
    auth = AuthManager(config, {"users": InMemoryUserProvider([operator, target])})
    return ImpersonateManager(auth, config)


async def round_trip(
    start_guard: str, take_guard: str, remember: str | None
) -> tuple[SessionContext, ImpersonateManager]:
    manager = build_manager()
    operator = await manager.find_user_by_id(1, start_guard)
    target = await manager.find_user_by_id(2, take_guard)

    cookies = {f"remember_{start_guard}_{'0' * 40}": remember} if remember is not None else {}
    ctx = SessionContext.in_memory(cookies=cookies)
    await manager.auth.guard(start_guard, ctx).quiet_login(operator)

    assert await manager.take(ctx, operator, target, take_guard)
    assert await manager.leave(ctx)
    return ctx, manager


@given(start_guard=guard_names, take_guard=guard_names)
@settings(max_examples=50)
def test_round_trip_restores_original_login(start_guard: str, take_guard: str) -> None:
    """After take then leave the operator is back on the guard they started on."""

    async def scenario() -> None:
        ctx, manager = await round_trip(start_guard, take_guard, None)

        assert await manager.get_current_auth_guard_name(ctx) == start_guard
        user = await manager.auth.guard(start_guard, ctx).user()
        assert user is not None
        assert user.id == 1
        assert not await manager.is_impersonating(ctx)

    asyncio.run(scenario())


@given(start_guard=guard_names, take_guard=guard_names, value=cookie_values)
@settings(max_examples=50)
def test_round_trip_reissues_identical_remember_cookie(
    start_guard: str, take_guard: str, value: str
) -> None:
    """The operator's remember cookie comes back byte for byte."""

    async def scenario() -> None:
        ctx, manager = await round_trip(start_guard, take_guard, value)

        queued = ctx.cookie_jar.queued
        assert [(c.name, c.value) for c in queued] == [
            (f"remember_{start_guard}_{'0' * 40}", value)
        ]
        assert await ctx.store.get(manager.get_remember_prefix(start_guard)) is None

    asyncio.run(scenario())


@given(calls=st.integers(min_value=1, max_value=5), start_guard=guard_names)
@settings(max_examples=25)
def test_clear_is_idempotent(calls: int, start_guard: str) -> None:
    """Any number of clears leaves the same session as one."""

    async def scenario() -> None:
        manager = build_manager()
        operator = await manager.find_user_by_id(1, start_guard)
        target = await manager.find_user_by_id(2, start_guard)
        ctx = SessionContext.in_memory()
        await manager.auth.guard(start_guard, ctx).quiet_login(operator)
        assert await manager.take(ctx, operator, target, start_guard)

        for _ in range(calls):
            await manager.clear(ctx)

        assert not await manager.is_impersonating(ctx)
        assert await manager.get_impersonator_guard_name(ctx) is None
        assert await manager.get_impersonator_guard_using_name(ctx) is None

    asyncio.run(scenario())
