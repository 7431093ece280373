"""Root test fixtures shared across all test types.

Builds an impersonation stack over in-memory sessions and users:
guards "web", "admin" and "api" (scanned in that order), all resolving
users through in-memory providers.
"""

import os

# Keep a developer's .env from leaking Redis into the tests
os.environ.setdefault("APP_ENV", "testing")
os.environ.pop("REDIS_URL", None)

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import AsyncGenerator

import pytest
from fakeredis import aioredis as fakeredis_aio
from redis.asyncio import Redis

from src.impersonate.auth import AuthManager, InMemoryUserProvider, SessionGuard
from src.impersonate.core import redis as redis_core
from src.impersonate.core.config import GuardSettings, ProviderSettings, Settings, get_settings
from src.impersonate.events import EventDispatcher, LeaveImpersonation, TakeImpersonation
from src.impersonate.models import User
from src.impersonate.services import ImpersonateManager
from src.impersonate.session import SessionContext
from tests.factories import UserFactory

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


# --- Settings and users ---


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="testing",
        guards={
            "web": GuardSettings(provider="users"),
            "admin": GuardSettings(provider="admins"),
            "api": GuardSettings(provider="users"),
        },
        providers={
            "users": ProviderSettings(model="User"),
            "admins": ProviderSettings(model="Admin"),
        },
        redis_url=None,
    )


@pytest.fixture
def operator() -> User:
    return UserFactory.superuser(id=1)


@pytest.fixture
def target() -> User:
    return UserFactory.build(id=2)


@pytest.fixture
def other_user() -> User:
    return UserFactory.build(id=3)


@pytest.fixture
def user_provider(operator: User, target: User, other_user: User) -> InMemoryUserProvider:
    return InMemoryUserProvider([operator, target, other_user])


# --- Impersonation stack ---


@pytest.fixture
def auth(settings: Settings, user_provider: InMemoryUserProvider) -> AuthManager:
    return AuthManager(settings, {"users": user_provider, "admins": user_provider})


@pytest.fixture
def dispatched() -> list:
    """Events dispatched through the `events` fixture, in order."""
    return []


@pytest.fixture
def events(dispatched: list) -> EventDispatcher:
    dispatcher = EventDispatcher()
    dispatcher.listen(TakeImpersonation, dispatched.append)
    dispatcher.listen(LeaveImpersonation, dispatched.append)
    return dispatcher


@pytest.fixture
def manager(auth: AuthManager, settings: Settings, events: EventDispatcher) -> ImpersonateManager:
    return ImpersonateManager(auth, settings, events)


@pytest.fixture
def ctx() -> SessionContext:
    return SessionContext.in_memory()


@pytest.fixture
async def logged_in_ctx(ctx: SessionContext, auth: AuthManager, operator: User) -> SessionContext:
    """Session with the operator logged in on the "web" guard."""
    await auth.guard("web", ctx).quiet_login(operator)
    return ctx


@pytest.fixture
def web_recaller(auth: AuthManager, ctx: SessionContext) -> str:
    """Name of the remember cookie the "web" guard issues."""
    guard = auth.guard("web", ctx)
    assert isinstance(guard, SessionGuard)
    return guard.recaller_name


# --- Redis Test Fixtures (shared) ---


@pytest.fixture
async def fake_redis() -> AsyncGenerator[Redis]:
    """Provides a fakeredis client for testing.

    Returns an in-memory Redis implementation that behaves like
    a real Redis server but doesn't require external dependencies.
    """
    client = fakeredis_aio.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def mock_redis(fake_redis: Redis, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[Redis]:
    """Patches get_redis() to return fakeredis client.

    Patches both src.impersonate.core.redis and the session middleware,
    which imports get_redis directly.
    """
    redis_core.reset_redis_state()

    async def _get_fake_redis() -> Redis:
        return fake_redis

    monkeypatch.setattr("src.impersonate.core.redis.get_redis", _get_fake_redis)
    monkeypatch.setattr("src.impersonate.api.middlewares.session.get_redis", _get_fake_redis)
    yield fake_redis
    redis_core.reset_redis_state()


@pytest.fixture
async def mock_redis_unavailable(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[None]:
    """Patches get_redis() to return None (simulates Redis unavailable)."""
    redis_core.reset_redis_state()

    async def _get_none() -> None:
        return None

    monkeypatch.setattr("src.impersonate.core.redis.get_redis", _get_none)
    monkeypatch.setattr("src.impersonate.api.middlewares.session.get_redis", _get_none)
    yield
    redis_core.reset_redis_state()
