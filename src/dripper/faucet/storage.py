"""Redis connection helper shared by the quota store and the retry queue."""

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


async def connect_redis(redis_url: str | None, purpose: str) -> Redis | None:
    """Connect to Redis, returning None when it is unavailable.

    Parameters
    ----------
    redis_url : str | None
        Redis connection URL. None disables Redis.
    purpose : str
        What the connection is for, used in log messages.

    Returns
    -------
    Redis | None
        A connected client, or None to use in-memory storage.
    """
    if not redis_url:
        return None

    client = Redis.from_url(redis_url, decode_responses=True)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning(
            "Redis connection failed, using in-memory %s",
            purpose,
            extra={"url": redis_url, "error": str(e)},
        )
        await client.aclose()
        return None

    logger.info("Redis connected for %s", purpose, extra={"url": redis_url})
    return client
