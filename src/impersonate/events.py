"""Impersonation events and a fire-and-forget dispatcher."""

import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from src.impersonate.core.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[Any], Awaitable[None] | None]


@dataclass(frozen=True)
class TakeImpersonation:
    """An operator started acting as another user."""

    impersonator: Any
    impersonated: Any


@dataclass(frozen=True)
class LeaveImpersonation:
    """An operator stopped acting as another user."""

    impersonator: Any
    impersonated: Any


class EventDispatcher:
    """In-process event sink.

    A failing listener is logged and the remaining listeners still run.
    Nothing a listener raises reaches the caller.
    """

    def __init__(self) -> None:
        self._listeners: dict[type, list[Listener]] = defaultdict(list)

    def listen(self, event_type: type, listener: Listener) -> None:
        """Register a sync or async listener for an event type."""
        self._listeners[event_type].append(listener)

    def has_listeners(self, event_type: type) -> bool:
        return bool(self._listeners.get(event_type))

    async def dispatch(self, event: Any) -> None:
        for listener in list(self._listeners.get(type(event), [])):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(
                    "Event listener failed",
                    event=type(event).__name__,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                )


def _user_id(user: Any) -> str | None:
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id is not None else None


async def log_take_impersonation(event: TakeImpersonation) -> None:
    logger.info(
        "Impersonation started",
        impersonator_id=_user_id(event.impersonator),
        impersonated_id=_user_id(event.impersonated),
    )


async def log_leave_impersonation(event: LeaveImpersonation) -> None:
    logger.info(
        "Impersonation ended",
        impersonator_id=_user_id(event.impersonator),
        impersonated_id=_user_id(event.impersonated),
    )


def create_event_dispatcher() -> EventDispatcher:
    """Dispatcher with the default audit-log listeners registered."""
    events = EventDispatcher()
    events.listen(TakeImpersonation, log_take_impersonation)
    events.listen(LeaveImpersonation, log_leave_impersonation)
    return events
