"""Retry queue for transfers that exhausted every submission tier.

Addresses are kept in a set (Redis ``TransactionQueue`` in production) until
a later failure drains a random sample of them into one batch.
"""

import json
import logging
import random

from redis.asyncio import Redis

from dripper.observability.metrics import RETRY_QUEUE_SIZE

from .storage import connect_redis

logger = logging.getLogger(__name__)

QUEUE_KEY = "TransactionQueue"


class RetryQueueStore:
    """Set of destination addresses awaiting a batched retry.

    Parameters
    ----------
    redis_url : str | None
        Redis connection URL. If None, uses in-memory storage.
    """

    def __init__(self, redis_url: str | None = None):
        self._redis_url = redis_url
        self._redis: Redis | None = None
        self._memory_queue: set[str] = set()

    async def connect(self) -> None:
        """Connect to Redis if configured."""
        self._redis = await connect_redis(self._redis_url, "retry queue")

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def add(self, address: str) -> None:
        """Queue an address for the next batch."""
        if self._redis is not None:
            await self._redis.sadd(QUEUE_KEY, json.dumps(address))
        else:
            self._memory_queue.add(address)
        logger.info("Address queued for batch retry", extra={"address": address})

    async def remove(self, address: str) -> None:
        """Drop an address from the queue."""
        if self._redis is not None:
            await self._redis.srem(QUEUE_KEY, json.dumps(address))
        else:
            self._memory_queue.discard(address)

    async def size(self) -> int:
        """Number of queued addresses."""
        if self._redis is not None:
            size = int(await self._redis.scard(QUEUE_KEY))
        else:
            size = len(self._memory_queue)
        RETRY_QUEUE_SIZE.set(size)
        return size

    async def sample(self, count: int) -> list[str]:
        """Return up to ``count`` distinct queued addresses at random.

        Parameters
        ----------
        count : int
            Maximum number of addresses to return.

        Returns
        -------
        list[str]
            The sampled addresses; the queue is left unchanged.
        """
        if self._redis is not None:
            members = await self._redis.srandmember(QUEUE_KEY, count)
            return [json.loads(member) for member in members or []]
        return random.sample(sorted(self._memory_queue), min(count, len(self._memory_queue)))
