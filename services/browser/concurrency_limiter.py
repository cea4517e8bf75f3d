import asyncio
from structlog import get_logger  # type: ignore

from config.scraper_config import ScraperConfig

logger = get_logger(__name__)


class ConcurrencyLimiter:
    def __init__(self, max_concurrent: int = ScraperConfig.DEFAULT_CONCURRENCY):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._active_count = 0
        self._peak_count = 0
        self._total_acquired = 0

        logger.info("[ConcurrencyLimiter] Initialized", max_concurrent=max_concurrent)

    async def acquire_slot(self) -> None:
        await self._semaphore.acquire()
        self._active_count += 1
        self._total_acquired += 1
        self._peak_count = max(self._peak_count, self._active_count)

    def release_slot(self) -> None:
        if self._active_count <= 0:
            raise RuntimeError("release_slot called with no slot held")
        self._active_count -= 1
        self._semaphore.release()

    @property
    def active_count(self) -> int:
        return self._active_count

    @property
    def peak_count(self) -> int:
        return self._peak_count

    @property
    def available_slots(self) -> int:
        return self.max_concurrent - self._active_count

    @property
    def stats(self) -> dict:
        return {
            "max_concurrent": self.max_concurrent,
            "active": self._active_count,
            "available": self.available_slots,
            "peak": self._peak_count,
            "total_acquired": self._total_acquired,
        }
