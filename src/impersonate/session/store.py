"""Per-visitor session stores.

A session store is a small key-value map scoped to one visitor. Values
must be JSON-compatible so every backend can persist them.
"""

import json
from typing import Any, Protocol

from redis.asyncio import Redis


class SessionStore(Protocol):
    """Key-value session storage for a single visitor."""

    id: str

    async def get(self, key: str, default: Any = None) -> Any: ...

    async def put(self, key: str, value: Any) -> None: ...

    async def forget(self, key: str) -> None: ...

    async def has(self, key: str) -> bool: ...

    async def all(self) -> dict[str, Any]: ...


class MemorySessionStore:
    """Session store backed by a plain dict.

    Pass an existing dict to share state across requests (the in-memory
    session registry does this), or omit it for a throwaway session.
    """

    def __init__(self, session_id: str, data: dict[str, Any] | None = None):
        self.id = session_id
        self._data = data if data is not None else {}

    async def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    async def put(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def forget(self, key: str) -> None:
        self._data.pop(key, None)

    async def has(self, key: str) -> bool:
        return self._data.get(key) is not None

    async def all(self) -> dict[str, Any]:
        return dict(self._data)


class MemorySessionRegistry:
    """Process-local registry of in-memory sessions keyed by session id.

    Used when Redis is not configured. Sessions do not survive a restart
    and are not shared between worker processes.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, dict[str, Any]] = {}

    def open(self, session_id: str) -> MemorySessionStore:
        return MemorySessionStore(session_id, self._sessions.setdefault(session_id, {}))

    def clear(self) -> None:
        self._sessions.clear()


class RedisSessionStore:
    """Session store backed by a Redis hash.

    Each visitor session is one hash at ``<prefix>:<session_id>``; field
    values are JSON encoded. Every write refreshes the hash TTL.
    """

    def __init__(self, redis: Redis, session_id: str, prefix: str = "session", ttl: int = 7200):
        self.id = session_id
        self.redis = redis
        self.ttl = ttl
        self._key = f"{prefix}:{session_id}"

    async def get(self, key: str, default: Any = None) -> Any:
        raw = await self.redis.hget(self._key, key)  # type: ignore[misc]
        if raw is None:
            return default
        return json.loads(raw)

    async def put(self, key: str, value: Any) -> None:
        pipe = self.redis.pipeline()
        pipe.hset(self._key, key, json.dumps(value, default=str))
        pipe.expire(self._key, self.ttl)
        await pipe.execute()

    async def forget(self, key: str) -> None:
        await self.redis.hdel(self._key, key)  # type: ignore[misc]

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    async def all(self) -> dict[str, Any]:
        raw = await self.redis.hgetall(self._key)  # type: ignore[misc]
        return {field: json.loads(value) for field, value in raw.items()}
