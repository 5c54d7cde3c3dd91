"""Daily drip quota for Dripper.

Features:
- One drip per identity per UTC calendar day
- Day-bucketed Redis keys that expire on their own
- In-memory fallback for development
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from redis.asyncio import Redis

from .storage import connect_redis

logger = logging.getLogger(__name__)

DAY_SECONDS = 86400


def _get_utc_date() -> str:
    """Get current UTC date string for consistent day boundaries."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


@dataclass(frozen=True)
class QuotaKey:
    """Identity a daily drip is counted against.

    External requests are keyed by destination address alone, internal ones
    by the (requester, address) pair.
    """

    address: str
    requester_id: str | None = None

    @property
    def identity(self) -> str:
        if self.requester_id is None:
            return self.address
        return f"{self.requester_id}:{self.address}"


class QuotaStore:
    """Records which identities already received a drip today.

    Uses Redis for persistence in production, with in-memory fallback
    for development/testing.

    Parameters
    ----------
    redis_url : str | None
        Redis connection URL. If None, uses in-memory storage.
    """

    def __init__(self, redis_url: str | None = None):
        self._redis_url = redis_url
        self._redis: Redis | None = None

        # In-memory fallback: day -> identities
        self._memory_drips: dict[str, set[str]] = {}

    async def connect(self) -> None:
        """Connect to Redis if configured."""
        self._redis = await connect_redis(self._redis_url, "drip quota")

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    def _get_day_key(self, key: QuotaKey, day: str) -> str:
        """Get Redis key for an identity's drip on a UTC day."""
        return f"dripper:drip:{day}:{key.identity}"

    async def has_dripped_today(self, key: QuotaKey) -> bool:
        """Check whether a drip was already recorded today.

        Parameters
        ----------
        key : QuotaKey
            The identity to check.

        Returns
        -------
        bool
            True if the identity already received a drip this UTC day.
        """
        day = _get_utc_date()
        if self._redis is not None:
            return bool(await self._redis.exists(self._get_day_key(key, day)))
        return key.identity in self._memory_drips.get(day, set())

    async def record_drip(self, key: QuotaKey) -> None:
        """Record a successful drip for an identity.

        Parameters
        ----------
        key : QuotaKey
            The identity that received the drip.
        """
        day = _get_utc_date()
        if self._redis is not None:
            day_key = self._get_day_key(key, day)
            await self._redis.set(day_key, str(time.time()), ex=DAY_SECONDS)
            logger.debug("Drip recorded", extra={"day_key": day_key})
            return

        # Earlier days can never be queried again
        self._memory_drips = {day: self._memory_drips.get(day, set())}
        self._memory_drips[day].add(key.identity)

    async def reset(self, key: QuotaKey) -> None:
        """Forget today's drip for an identity (admin function).

        Parameters
        ----------
        key : QuotaKey
            The identity to reset.
        """
        day = _get_utc_date()
        if self._redis is not None:
            await self._redis.delete(self._get_day_key(key, day))
        else:
            self._memory_drips.get(day, set()).discard(key.identity)

        logger.info("Drip quota reset", extra={"identity": key.identity})
