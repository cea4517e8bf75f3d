import asyncio
import pytest

from services.browser.concurrency_limiter import ConcurrencyLimiter


@pytest.mark.asyncio
async def test_slots_are_counted():
    limiter = ConcurrencyLimiter(2)

    await limiter.acquire_slot()
    await limiter.acquire_slot()
    assert limiter.active_count == 2
    assert limiter.available_slots == 0

    limiter.release_slot()
    limiter.release_slot()

    assert limiter.stats == {
        "max_concurrent": 2,
        "active": 0,
        "available": 2,
        "peak": 2,
        "total_acquired": 2,
    }


@pytest.mark.asyncio
async def test_acquire_waits_for_free_slot():
    limiter = ConcurrencyLimiter(1)
    await limiter.acquire_slot()

    waiter = asyncio.create_task(limiter.acquire_slot())
    await asyncio.sleep(0)
    assert not waiter.done()

    limiter.release_slot()
    await asyncio.wait_for(waiter, timeout=1.0)
    assert limiter.active_count == 1
    assert limiter.peak_count == 1


def test_release_without_acquire():
    limiter = ConcurrencyLimiter(1)
    with pytest.raises(RuntimeError):
        limiter.release_slot()


def test_rejects_zero():
    with pytest.raises(ValueError):
        ConcurrencyLimiter(0)
