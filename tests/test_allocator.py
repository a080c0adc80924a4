"""Sequential allocator tests against the mocked Redis counter."""

import asyncio

import pytest
import redis.asyncio as redis

from shortlink.allocator import SequentialAllocator
from shortlink.exceptions import CounterUnavailableError


@pytest.mark.asyncio
async def test_first_value_is_one_then_increments(allocator, cache_store) -> None:
    assert await allocator.next() == 1
    assert await allocator.next() == 2
    assert cache_store["url_counter"] == "2"


@pytest.mark.asyncio
async def test_custom_initial_value(mock_redis) -> None:
    allocator = SequentialAllocator(mock_redis, key="links", initial=100)
    assert await allocator.next() == 100
    assert await allocator.next() == 101


@pytest.mark.asyncio
async def test_custom_initial_value_seeds_once(mock_redis) -> None:
    allocator = SequentialAllocator(mock_redis, key="links", initial=100)
    for _ in range(3):
        await allocator.next()

    assert mock_redis.set.await_count == 1
    assert mock_redis.incrby.await_count == 3


@pytest.mark.asyncio
async def test_default_initial_value_never_seeds(allocator, mock_redis) -> None:
    await allocator.next()
    await allocator.next()
    mock_redis.set.assert_not_called()


@pytest.mark.asyncio
async def test_concurrent_atomic_allocations_are_distinct(allocator) -> None:
    values = await asyncio.gather(*(allocator.next() for _ in range(50)))
    assert len(set(values)) == 50
    assert sorted(values) == list(range(1, 51))


@pytest.mark.asyncio
async def test_atomic_failure_without_fallback_raises(allocator, mock_redis) -> None:
    mock_redis.incrby.side_effect = redis.ConnectionError("down")
    with pytest.raises(CounterUnavailableError):
        await allocator.next()
    mock_redis.get.assert_not_called()


@pytest.mark.asyncio
async def test_fallback_reads_then_writes(mock_redis, cache_store) -> None:
    mock_redis.incrby.side_effect = redis.ResponseError("unsupported")
    allocator = SequentialAllocator(mock_redis, allow_non_atomic_fallback=True)

    assert await allocator.next() == 1
    assert cache_store["url_counter"] == "1"

    cache_store["url_counter"] = "41"
    assert await allocator.next() == 42
    assert cache_store["url_counter"] == "42"


@pytest.mark.asyncio
async def test_fallback_is_not_race_free(mock_redis) -> None:
    # Both callers read the same pre-increment value.
    mock_redis.incrby.side_effect = redis.ResponseError("unsupported")
    mock_redis.get.side_effect = None
    mock_redis.get.return_value = "7"

    first = SequentialAllocator(mock_redis, allow_non_atomic_fallback=True)
    second = SequentialAllocator(mock_redis, allow_non_atomic_fallback=True)

    assert await first.next() == await second.next() == 8


@pytest.mark.asyncio
async def test_fallback_failure_raises(mock_redis) -> None:
    mock_redis.incrby.side_effect = redis.ConnectionError("down")
    mock_redis.get.side_effect = redis.ConnectionError("down")
    allocator = SequentialAllocator(mock_redis, allow_non_atomic_fallback=True)

    with pytest.raises(CounterUnavailableError):
        await allocator.next()
