"""Tests for the daily drip quota store."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from dripper.faucet.quota import DAY_SECONDS, QuotaKey, QuotaStore
from dripper.faucet.storage import connect_redis

ADDRESS = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"


class TestQuotaKey:
    """Tests for QuotaKey identities."""

    def test_external_identity(self):
        """External keys are the address alone."""
        assert QuotaKey(ADDRESS).identity == ADDRESS

    def test_internal_identity(self):
        """Internal keys pair the requester with the address."""
        assert QuotaKey(ADDRESS, "U123").identity == f"U123:{ADDRESS}"

    def test_requesters_are_independent(self):
        """Different requesters produce different identities."""
        assert QuotaKey(ADDRESS, "U1").identity != QuotaKey(ADDRESS, "U2").identity


class TestQuotaStoreMemory:
    """Tests for QuotaStore with in-memory storage."""

    @pytest.fixture
    def store(self):
        return QuotaStore()

    @pytest.mark.asyncio
    async def test_fresh_identity_has_not_dripped(self, store):
        """An unseen identity has not dripped today."""
        assert await store.has_dripped_today(QuotaKey(ADDRESS)) is False

    @pytest.mark.asyncio
    async def test_record_then_check(self, store):
        """A recorded drip is seen by later checks."""
        await store.record_drip(QuotaKey(ADDRESS))

        assert await store.has_dripped_today(QuotaKey(ADDRESS)) is True

    @pytest.mark.asyncio
    async def test_external_and_internal_are_separate(self, store):
        """An internal drip does not consume the external quota."""
        await store.record_drip(QuotaKey(ADDRESS, "U123"))

        assert await store.has_dripped_today(QuotaKey(ADDRESS)) is False
        assert await store.has_dripped_today(QuotaKey(ADDRESS, "U999")) is False

    @pytest.mark.asyncio
    async def test_new_day_resets_quota(self, store):
        """A drip recorded yesterday does not count today."""
        with patch("dripper.faucet.quota._get_utc_date", return_value="2024-01-01"):
            await store.record_drip(QuotaKey(ADDRESS))
        with patch("dripper.faucet.quota._get_utc_date", return_value="2024-01-02"):
            assert await store.has_dripped_today(QuotaKey(ADDRESS)) is False

    @pytest.mark.asyncio
    async def test_old_days_are_pruned(self, store):
        """Recording on a new day drops earlier buckets."""
        with patch("dripper.faucet.quota._get_utc_date", return_value="2024-01-01"):
            await store.record_drip(QuotaKey(ADDRESS))
        with patch("dripper.faucet.quota._get_utc_date", return_value="2024-01-02"):
            await store.record_drip(QuotaKey("other"))

        assert list(store._memory_drips) == ["2024-01-02"]

    @pytest.mark.asyncio
    async def test_reset(self, store):
        """reset() forgets today's drip."""
        await store.record_drip(QuotaKey(ADDRESS))
        await store.reset(QuotaKey(ADDRESS))

        assert await store.has_dripped_today(QuotaKey(ADDRESS)) is False


class TestQuotaStoreRedis:
    """Tests for QuotaStore with mocked Redis."""

    @pytest.fixture
    def store(self):
        store = QuotaStore(redis_url="redis://localhost:6379")
        store._redis = AsyncMock()
        return store

    @pytest.mark.asyncio
    async def test_has_dripped_today(self, store):
        """The check is an EXISTS on the day-bucketed key."""
        store._redis.exists.return_value = 1

        with patch("dripper.faucet.quota._get_utc_date", return_value="2024-01-01"):
            assert await store.has_dripped_today(QuotaKey(ADDRESS)) is True

        store._redis.exists.assert_awaited_once_with(f"dripper:drip:2024-01-01:{ADDRESS}")

    @pytest.mark.asyncio
    async def test_record_drip_sets_expiry(self, store):
        """Recorded keys expire after a day."""
        with patch("dripper.faucet.quota._get_utc_date", return_value="2024-01-01"):
            await store.record_drip(QuotaKey(ADDRESS, "U1"))

        args, kwargs = store._redis.set.call_args
        assert args[0] == f"dripper:drip:2024-01-01:U1:{ADDRESS}"
        assert kwargs["ex"] == DAY_SECONDS

    @pytest.mark.asyncio
    async def test_redis_errors_propagate(self, store):
        """Storage failures reach the caller."""
        store._redis.exists.side_effect = RedisConnectionError("down")

        with pytest.raises(RedisConnectionError):
            await store.has_dripped_today(QuotaKey(ADDRESS))

    @pytest.mark.asyncio
    async def test_close(self, store):
        """close() closes the client."""
        client = store._redis

        await store.close()

        client.aclose.assert_awaited_once()
        assert store._redis is None


class TestConnectRedis:
    """Tests for the shared Redis connection helper."""

    @pytest.mark.asyncio
    async def test_no_url(self):
        """No URL means no client."""
        assert await connect_redis(None, "test") is None

    @pytest.mark.asyncio
    async def test_connected(self):
        """A reachable server yields a client."""
        client = MagicMock()
        client.ping = AsyncMock()
        with patch("dripper.faucet.storage.Redis.from_url", return_value=client) as from_url:
            result = await connect_redis("redis://localhost:6379", "test")

        assert result is client
        from_url.assert_called_once_with("redis://localhost:6379", decode_responses=True)

    @pytest.mark.asyncio
    async def test_unreachable_falls_back(self):
        """An unreachable server yields None and closes the client."""
        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        client.aclose = AsyncMock()
        with patch("dripper.faucet.storage.Redis.from_url", return_value=client):
            result = await connect_redis("redis://invalid:9999", "test")

        assert result is None
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_falls_back_to_memory(self):
        """QuotaStore keeps working in memory when Redis is unreachable."""
        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        client.aclose = AsyncMock()
        store = QuotaStore(redis_url="redis://invalid:9999")
        with patch("dripper.faucet.storage.Redis.from_url", return_value=client):
            await store.connect()

        assert store._redis is None
        await store.record_drip(QuotaKey(ADDRESS))
        assert await store.has_dripped_today(QuotaKey(ADDRESS)) is True
