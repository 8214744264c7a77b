"""Redis connection — used for rate limiting auth endpoints.

Learn: Redis is optional. The pool is created in the app lifespan; when
it is missing (no server, or tests that never run the lifespan)
get_redis() raises and callers skip whatever needed it.
"""

from typing import Optional

import redis.asyncio as aioredis

from inkwell.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Verify connection
    await client.ping()
    _redis = client
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis client. Raises RuntimeError if not initialized."""
    if _redis is None:
        raise RuntimeError("Redis not initialized")
    return _redis
