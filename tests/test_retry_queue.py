"""Tests for the batch retry queue."""

import json
from unittest.mock import AsyncMock

import pytest
from prometheus_client import REGISTRY

from dripper.faucet.retry_queue import QUEUE_KEY, RetryQueueStore


class TestRetryQueueMemory:
    """Tests for RetryQueueStore with in-memory storage."""

    @pytest.fixture
    def queue(self):
        return RetryQueueStore()

    @pytest.mark.asyncio
    async def test_add_and_size(self, queue):
        """Added addresses are counted once each."""
        await queue.add("a")
        await queue.add("b")
        await queue.add("a")

        assert await queue.size() == 2

    @pytest.mark.asyncio
    async def test_size_updates_gauge(self, queue):
        """size() publishes the queue size gauge."""
        await queue.add("a")
        await queue.size()

        assert REGISTRY.get_sample_value("dripper_retry_queue_size") == 1

    @pytest.mark.asyncio
    async def test_remove(self, queue):
        """Removed addresses leave the queue."""
        await queue.add("a")
        await queue.remove("a")
        await queue.remove("missing")

        assert await queue.size() == 0

    @pytest.mark.asyncio
    async def test_sample_is_distinct_and_bounded(self, queue):
        """sample() returns distinct members, at most count."""
        for i in range(10):
            await queue.add(f"addr-{i}")

        sample = await queue.sample(4)

        assert len(sample) == 4
        assert len(set(sample)) == 4
        assert await queue.size() == 10

    @pytest.mark.asyncio
    async def test_sample_more_than_size(self, queue):
        """Sampling beyond the size returns every member."""
        await queue.add("a")

        assert await queue.sample(5) == ["a"]


class TestRetryQueueRedis:
    """Tests for RetryQueueStore with mocked Redis."""

    @pytest.fixture
    def queue(self):
        queue = RetryQueueStore(redis_url="redis://localhost:6379")
        queue._redis = AsyncMock()
        return queue

    @pytest.mark.asyncio
    async def test_add_stores_json(self, queue):
        """Addresses are stored JSON-encoded in the shared set."""
        await queue.add("5Grw")

        queue._redis.sadd.assert_awaited_once_with(QUEUE_KEY, json.dumps("5Grw"))

    @pytest.mark.asyncio
    async def test_remove(self, queue):
        """remove() deletes the JSON-encoded member."""
        await queue.remove("5Grw")

        queue._redis.srem.assert_awaited_once_with(QUEUE_KEY, json.dumps("5Grw"))

    @pytest.mark.asyncio
    async def test_size(self, queue):
        """size() is the set cardinality."""
        queue._redis.scard.return_value = 21

        assert await queue.size() == 21

    @pytest.mark.asyncio
    async def test_sample_decodes_members(self, queue):
        """sample() decodes JSON members."""
        queue._redis.srandmember.return_value = [json.dumps("a"), json.dumps("b")]

        assert await queue.sample(2) == ["a", "b"]
        queue._redis.srandmember.assert_awaited_once_with(QUEUE_KEY, 2)
