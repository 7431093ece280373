"""Tests for the guard and provider registry."""

import pytest

from src.impersonate.auth import AuthManager, InMemoryUserProvider, SessionGuard
from src.impersonate.core.config import GuardSettings, Settings
from src.impersonate.session import SessionContext

pytestmark = pytest.mark.unit


class TestGuards:
    def test_guard_names_follow_configuration_order(self, auth):
        assert auth.guard_names() == ["web", "admin", "api"]

    def test_creates_session_guard(self, auth, ctx):
        guard = auth.guard("web", ctx)

        assert isinstance(guard, SessionGuard)
        assert guard.name == "web"

    def test_default_guard_when_name_is_none(self, auth, ctx):
        assert auth.guard(None, ctx).name == "web"

    def test_guard_is_cached_per_context(self, auth, ctx):
        assert auth.guard("web", ctx) is auth.guard("web", ctx)
        assert auth.guard("web", ctx) is not auth.guard("web", SessionContext.in_memory())

    def test_unknown_guard(self, auth, ctx):
        with pytest.raises(ValueError, match="not defined"):
            auth.guard("nope", ctx)

    def test_unknown_driver(self, user_provider, ctx):
        settings = Settings(guards={"web": GuardSettings(driver="token", provider="users")})
        auth = AuthManager(settings, {"users": user_provider})

        with pytest.raises(ValueError, match="token"):
            auth.guard("web", ctx)

    def test_custom_driver(self, user_provider, ctx):
        settings = Settings(guards={"web": GuardSettings(driver="custom", provider="users")})
        auth = AuthManager(settings, {"users": user_provider})
        auth.extend("custom", lambda name, provider, ctx, settings: SessionGuard(name, provider, ctx))

        assert isinstance(auth.guard("web", ctx), SessionGuard)

    def test_remember_max_age_comes_from_settings(self, auth, ctx, settings):
        guard = auth.guard("web", ctx)

        assert guard.remember_max_age == settings.remember_cookie_max_age


class TestProviders:
    def test_provider_name_for_guard(self, auth):
        assert auth.get_provider_name("admin") == "admins"
        assert auth.get_provider_name("nope") is None

    def test_create_registered_provider(self, auth, user_provider):
        assert auth.create_user_provider("users") is user_provider

    def test_unregistered_provider(self, auth):
        with pytest.raises(ValueError, match="ghosts"):
            auth.create_user_provider("ghosts")

    def test_register_provider(self, auth):
        provider = InMemoryUserProvider()
        auth.register_provider("ghosts", provider)

        assert auth.create_user_provider("ghosts") is provider
