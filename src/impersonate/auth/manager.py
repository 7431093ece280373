"""Registry of guards and user providers, keyed by name."""

from collections.abc import Callable, Mapping

from src.impersonate.auth.contracts import Guard, UserProvider
from src.impersonate.auth.guards import SessionGuard
from src.impersonate.core.config import Settings
from src.impersonate.session.context import SessionContext

GuardFactory = Callable[[str, UserProvider, SessionContext, Settings], Guard]


def _create_session_guard(
    name: str, provider: UserProvider, ctx: SessionContext, settings: Settings
) -> Guard:
    return SessionGuard(name, provider, ctx, remember_max_age=settings.remember_cookie_max_age)


class AuthManager:
    """Resolves guards and providers from configuration.

    Guards are configured in ``settings.guards`` (name -> driver + provider
    name); provider implementations are registered here by provider name.
    Guard instances are cached per SessionContext.
    """

    def __init__(self, settings: Settings, providers: Mapping[str, UserProvider] | None = None):
        self.settings = settings
        self._providers: dict[str, UserProvider] = dict(providers or {})
        self._guard_drivers: dict[str, GuardFactory] = {"session": _create_session_guard}

    def register_provider(self, name: str, provider: UserProvider) -> None:
        self._providers[name] = provider

    def extend(self, driver: str, factory: GuardFactory) -> None:
        """Register a custom guard driver."""
        self._guard_drivers[driver] = factory

    def guard_names(self) -> list[str]:
        return list(self.settings.guards)

    def get_provider_name(self, guard_name: str) -> str | None:
        config = self.settings.guards.get(guard_name)
        return config.provider if config is not None else None

    def create_user_provider(self, provider_name: str | None) -> UserProvider:
        """Look up a registered provider.

        Raises:
            ValueError: If no provider is registered under ``provider_name``
        """
        if provider_name is None or provider_name not in self._providers:
            raise ValueError(f"Authentication user provider [{provider_name}] is not defined.")
        return self._providers[provider_name]

    def guard(self, name: str | None, ctx: SessionContext) -> Guard:
        """Get the named guard bound to ``ctx`` (default guard if name is None).

        Raises:
            ValueError: If the guard, its driver or its provider is not defined
        """
        name = name or self.settings.default_guard
        if name in ctx.guards:
            return ctx.guards[name]

        config = self.settings.guards.get(name)
        if config is None:
            raise ValueError(f"Auth guard [{name}] is not defined.")

        factory = self._guard_drivers.get(config.driver)
        if factory is None:
            raise ValueError(f"Auth driver [{config.driver}] for guard [{name}] is not defined.")

        guard = factory(name, self.create_user_provider(config.provider), ctx, self.settings)
        ctx.guards[name] = guard
        return guard
