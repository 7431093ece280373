"""Redis connection backing server-side sessions.

Sessions live in Redis when ``REDIS_URL`` is set and the server answers a
ping. Otherwise ``get_redis`` returns None and the session middleware keeps
sessions in process memory. One failed attempt is remembered until
``close_redis``/``reset_redis_state`` so a dead server is not dialled on
every request.
"""

from urllib.parse import urlsplit

from redis.asyncio import ConnectionPool, Redis

from src.impersonate.core.config import Settings, get_settings
from src.impersonate.core.logging import get_logger

logger = get_logger(__name__)

_pool: ConnectionPool | None = None
_redis: Redis | None = None
_connection_attempted: bool = False


def redacted_url(url: str) -> str:
    """Redis URL safe for logs: credentials dropped, host/port/db kept."""
    parts = urlsplit(url)
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return f"{parts.scheme}://{host}{parts.path}"


async def _connect(settings: Settings) -> Redis:
    global _pool, _redis

    _pool = ConnectionPool.from_url(
        settings.redis_url,  # type: ignore[arg-type]
        max_connections=settings.redis_pool_size,
        decode_responses=True,
    )
    _redis = Redis(connection_pool=_pool)
    await _redis.ping()  # type: ignore[misc]
    return _redis


async def _disconnect() -> None:
    global _pool, _redis

    if _redis is not None:
        await _redis.aclose()
    if _pool is not None:
        await _pool.disconnect()
    _redis = None
    _pool = None


async def get_redis() -> Redis | None:
    """Redis client for the session store, or None to use in-memory sessions."""
    global _connection_attempted

    if _redis is not None:
        return _redis
    if _connection_attempted:
        return None

    _connection_attempted = True
    settings = get_settings()

    if not settings.redis_url:
        logger.info("Session store: in-memory (REDIS_URL not set)")
        return None

    url = redacted_url(settings.redis_url)
    try:
        client = await _connect(settings)
    except Exception as e:
        logger.warning(
            "Session store: Redis unreachable, using in-memory",
            redis_url=url,
            error=str(e),
        )
        await _disconnect()
        return None

    logger.info("Session store: Redis", redis_url=url, pool_size=settings.redis_pool_size)
    return client


async def close_redis() -> None:
    """Close the pool on shutdown and allow a fresh connection attempt."""
    global _connection_attempted

    if _redis is not None:
        logger.info("Redis session store closed")
    await _disconnect()
    _connection_attempted = False


def reset_redis_state() -> None:
    """Forget the client without closing it (tests swap in fakeredis)."""
    global _pool, _redis, _connection_attempted
    _redis = None
    _pool = None
    _connection_attempted = False
