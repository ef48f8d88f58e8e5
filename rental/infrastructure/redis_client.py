"""Redis async connection pool."""

import redis.asyncio as aioredis

from rental.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool.

    No connection is opened until the first command is sent.
    """
    return aioredis.Redis(connection_pool=_pool)
