"""User providers - map an identifier back to a persisted identity."""

from collections.abc import Callable, Iterable
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from src.impersonate.auth.contracts import Authenticatable
from src.impersonate.core.logging import get_logger

logger = get_logger(__name__)


class InMemoryUserProvider:
    """Provider over a fixed set of users, keyed by ``id``.

    Useful for tests and for small deployments with static operator lists.
    """

    def __init__(self, users: Iterable[Authenticatable] = ()):
        self._users: dict[Any, Authenticatable] = {}
        for user in users:
            self.add(user)

    def add(self, user: Authenticatable) -> None:
        self._users[user.id] = user

    async def retrieve_by_id(self, id: Any) -> Authenticatable | None:
        return self._users.get(id)


class DatabaseUserProvider:
    """Provider that loads users by primary key through SQLAlchemy.

    Args:
        session_factory: Callable returning an async context manager that
                         yields an AsyncSession (e.g. an async_sessionmaker)
        model: The SQLModel table class to load
    """

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        model: type[SQLModel],
    ):
        self.session_factory = session_factory
        self.model = model

    async def retrieve_by_id(self, id: Any) -> Authenticatable | None:
        async with self.session_factory() as session:
            user = await session.get(self.model, id)
        if user is None:
            logger.debug("User not found", model=self.model.__name__, user_id=str(id))
        return user  # type: ignore[return-value]
