import asyncio
from typing import Awaitable, Callable, List, Optional, TypeVar
from structlog import get_logger  # type: ignore

from config.scraper_config import ScraperConfig
from models.page_model import (
    ExtractedPage,
    LiveData,
    PageClassification,
    VerificationResult,
)
from services.browser.browser_pool import BrowserPool
from services.browser.engine import BrowserEngine
from services.browser.scraper import Scraper

logger = get_logger(__name__)

R = TypeVar("R")


def pool_limit(parallel: int, url_count: int) -> int:
    """Clamp requested parallelism to the URL count and the pool's bounds."""
    limit = min(parallel, max(url_count, 1))
    return max(ScraperConfig.MIN_CONCURRENCY, min(limit, ScraperConfig.MAX_CONCURRENCY))


class BatchScraper:
    def __init__(self, scraper: Scraper):
        self.scraper = scraper

    @classmethod
    async def run(
        cls,
        urls: List[str],
        parallel: int = ScraperConfig.DEFAULT_CONCURRENCY,
        timeout_ms: int = ScraperConfig.PAGE_TIMEOUT_MS,
        raw: bool = False,
        engine: Optional[BrowserEngine] = None,
    ) -> List[ExtractedPage]:
        """Open a pool sized for the batch, fetch every URL, close the pool."""
        async with BrowserPool(pool_limit(parallel, len(urls)), engine=engine) as pool:
            batch = cls(Scraper(pool))
            return await batch.fetch_batch(urls, timeout_ms=timeout_ms, raw=raw)

    async def fetch_batch(
        self,
        urls: List[str],
        timeout_ms: int = ScraperConfig.PAGE_TIMEOUT_MS,
        raw: bool = False,
    ) -> List[ExtractedPage]:
        logger.info(f"[BatchScraper] Fetching {len(urls)} URLs")
        results = await self._gather(
            urls,
            lambda url: self.scraper.fetch(url, timeout_ms=timeout_ms, raw=raw),
            lambda url, error: ExtractedPage.dead(url, error),
        )
        ok = sum(1 for r in results if r.classification == PageClassification.OK)
        logger.info(f"[BatchScraper] Done: {ok}/{len(urls)} OK")
        return results

    async def verify_batch(
        self,
        urls: List[str],
        timeout_ms: int = ScraperConfig.CHECK_TIMEOUT_MS,
    ) -> List[VerificationResult]:
        logger.info(f"[BatchScraper] Verifying {len(urls)} URLs")
        return await self._gather(
            urls,
            lambda url: self.scraper.verify(url, timeout_ms=timeout_ms),
            lambda url, error: VerificationResult(
                url=url, classification=PageClassification.DEAD, note=error
            ),
        )

    async def refresh_batch(
        self,
        urls: List[str],
        timeout_ms: int = ScraperConfig.PAGE_TIMEOUT_MS,
    ) -> List[LiveData]:
        logger.info(f"[BatchScraper] Refreshing data for {len(urls)} URLs")
        return await self._gather(
            urls,
            lambda url: self.scraper.refresh(url, timeout_ms=timeout_ms),
            self.scraper.live_extractor.failed,
        )

    async def _gather(
        self,
        urls: List[str],
        task: Callable[[str], Awaitable[R]],
        on_error: Callable[[str, str], R],
    ) -> List[R]:
        """Run one task per URL; an unexpected exception becomes that URL's failure record."""
        results = await asyncio.gather(*(task(url) for url in urls), return_exceptions=True)

        records: List[R] = []
        for url, result in zip(urls, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error("[BatchScraper] Unexpected failure", url=url, error=repr(result))
                records.append(on_error(url, f"Unexpected error: {result}"))
            else:
                records.append(result)
        return records
