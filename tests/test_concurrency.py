"""Tests for the bounded-concurrency async map."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dorametrics.concurrency import concurrent_map
from dorametrics.errors import ConfigurationError


@pytest.mark.asyncio
async def test_empty_input_returns_empty_list_without_calling_worker():
    """Verify an empty item list never invokes the worker."""
    calls = []

    async def worker(item):
        calls.append(item)
        return item

    assert await concurrent_map([], 3, worker) == []
    assert calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrency", [1, 2, 5])
async def test_never_exceeds_concurrency_in_flight(concurrency):
    """Verify at most `concurrency` worker calls are in flight at once."""
    in_flight = 0
    peak = 0

    async def worker(item):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        return item

    results = await concurrent_map(list(range(12)), concurrency, worker)

    assert sorted(results) == list(range(12))
    assert peak == concurrency


@pytest.mark.asyncio
async def test_failing_item_is_skipped_and_others_complete():
    """Verify one raising item contributes nothing and does not abort the rest."""

    async def worker(item):
        await asyncio.sleep(0)
        if item == 3:
            raise RuntimeError("boom")
        return item * 10

    results = await concurrent_map([1, 2, 3, 4], 2, worker)

    assert sorted(results) == [10, 20, 40]


@pytest.mark.asyncio
async def test_none_results_are_dropped():
    """Verify worker results of None are excluded from the output."""

    async def worker(item):
        return None if item % 2 else item

    results = await concurrent_map([1, 2, 3, 4, 5, 6], 3, worker)

    assert sorted(results) == [2, 4, 6]


@pytest.mark.asyncio
async def test_spawns_no_more_workers_than_items():
    """Verify a high concurrency limit with few items still processes each item once."""
    seen = []

    async def worker(item):
        seen.append(item)
        await asyncio.sleep(0)
        return item

    results = await concurrent_map(["a", "b"], 10, worker)

    assert sorted(results) == ["a", "b"]
    assert sorted(seen) == ["a", "b"]


@pytest.mark.asyncio
async def test_invalid_concurrency_raises():
    """Verify concurrency below 1 is rejected."""

    async def worker(item):
        return item

    with pytest.raises(ConfigurationError):
        await concurrent_map([1], 0, worker)
