"""Redirect target resolution - route name first, literal address second."""

from collections.abc import Callable, Sequence

from starlette.routing import NoMatchFound, Router

from src.impersonate.core.logging import get_logger

logger = get_logger(__name__)

# A strategy returns the resolved address, or None if it does not apply
ResolveStrategy = Callable[[str], str | None]

# Configured target meaning "redirect to the Referer"
BACK = "back"


def literal_strategy(target: str) -> str | None:
    return target


def route_name_strategy(router: Router) -> ResolveStrategy:
    """Resolve ``target`` as a named route of ``router``."""

    def resolve(target: str) -> str | None:
        try:
            return str(router.url_path_for(target))
        except NoMatchFound:
            return None

    return resolve


class RedirectResolver:
    """Tries each strategy in order and returns the first address found."""

    def __init__(self, strategies: Sequence[ResolveStrategy]):
        self.strategies = list(strategies)

    @classmethod
    def for_router(cls, router: Router | None) -> "RedirectResolver":
        strategies: list[ResolveStrategy] = []
        if router is not None:
            strategies.append(route_name_strategy(router))
        strategies.append(literal_strategy)
        return cls(strategies)

    def resolve(self, target: str) -> str:
        for strategy in self.strategies:
            address = strategy(target)
            if address is not None:
                return address
        logger.warning("Redirect target could not be resolved", target=target)
        return target
