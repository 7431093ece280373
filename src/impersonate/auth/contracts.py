"""Capability interfaces for identities, guards and user providers."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Authenticatable(Protocol):
    """Anything with an identifier a provider can look up again."""

    id: Any


class UserProvider(Protocol):
    """Resolves persisted identities by id."""

    async def retrieve_by_id(self, id: Any) -> Authenticatable | None: ...


class Guard(Protocol):
    """A named authentication context bound to one visitor session.

    The quiet variants change who is logged in without touching
    remember-me cookies.
    """

    name: str

    async def check(self) -> bool: ...

    async def user(self) -> Authenticatable | None: ...

    async def quiet_login(self, user: Authenticatable) -> None: ...

    async def quiet_logout(self) -> None: ...
