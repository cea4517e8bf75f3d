from typing import Optional, Tuple
from structlog import get_logger  # type: ignore

from config.scraper_config import ScraperConfig
from exceptions.custom_exceptions import AcquireError, ExtractionError, NavigationError
from models.page_model import (
    ExtractedPage,
    LiveData,
    PageClassification,
    VerificationResult,
)
from services.browser.browser_pool import BrowserPool, PageHandle
from services.browser.content_detector import ContentDetector
from services.browser.data_extractor import DataExtractor
from services.browser.live_data_extractor import LiveDataExtractor
from services.browser.page_fetcher import PageFetcher
from utils.text_utils import truncate

logger = get_logger(__name__)


class Scraper:
    def __init__(
        self,
        pool: BrowserPool,
        fetcher: Optional[PageFetcher] = None,
        detector: Optional[ContentDetector] = None,
        extractor: Optional[DataExtractor] = None,
        live_extractor: Optional[LiveDataExtractor] = None,
    ):
        self.pool = pool
        self.fetcher = fetcher or PageFetcher()
        self.detector = detector or ContentDetector()
        self.extractor = extractor or DataExtractor()
        self.live_extractor = live_extractor or LiveDataExtractor()

    async def fetch(
        self,
        url: str,
        timeout_ms: int = ScraperConfig.PAGE_TIMEOUT_MS,
        raw: bool = False,
    ) -> ExtractedPage:
        """Fetch, classify and extract one URL. Never raises for per-URL failures."""
        logger.info(f"[Scraper] Fetching: {truncate(url, 60)}")

        try:
            async with self.pool.page() as handle:
                return await self._fetch_with_handle(handle, url, timeout_ms, raw)
        except AcquireError as e:
            logger.warning("[Scraper] Could not acquire tab", url=url, error=e.message)
            return ExtractedPage.dead(url, e.message)

    async def _fetch_with_handle(
        self, handle: PageHandle, url: str, timeout_ms: int, raw: bool
    ) -> ExtractedPage:
        try:
            outcome = await self.fetcher.navigate_or_raise(handle, url, timeout_ms)
        except NavigationError as e:
            return ExtractedPage.dead(url, e.message)

        if verdict := self.detector.classify_navigation(url, outcome):
            classification, note = verdict
            alert = f"Redirected to: {note}" if classification == PageClassification.REDIRECT else note
            return ExtractedPage(
                url=url,
                classification=classification,
                title=outcome.title,
                alerts=[alert] if alert else [],
            )

        try:
            html = await self._read_content(handle)
            classification, note = self._classify_content(html)
        except ExtractionError as e:
            return ExtractedPage.dead(url, e.message, title=outcome.title)

        try:
            page = self.extractor.extract(
                html,
                url,
                classification=classification,
                alerts=[note] if note else [],
                raw=raw,
            )
        except Exception as e:
            logger.exception("[Scraper] Extraction failed", url=url)
            return ExtractedPage.dead(url, f"Extraction failed: {e}", title=outcome.title)

        logger.info(f"[Scraper] Done: {truncate(url, 60)}", classification=classification.value)
        return page

    async def verify(
        self,
        url: str,
        timeout_ms: int = ScraperConfig.CHECK_TIMEOUT_MS,
    ) -> VerificationResult:
        """Classify a link without extracting its content."""
        logger.info(f"[Scraper] Verifying: {truncate(url, 60)}")

        try:
            async with self.pool.page() as handle:
                outcome = await self.fetcher.navigate_with_retry(handle, url, timeout_ms)

                if verdict := self.detector.classify_navigation(url, outcome):
                    classification, note = verdict
                    return VerificationResult(
                        url=url, classification=classification, outcome=outcome, note=note
                    )

                try:
                    html = await self._read_content(handle)
                except ExtractionError:
                    # The link itself resolved; only the body could not be read
                    return VerificationResult(
                        url=url, classification=PageClassification.OK, outcome=outcome
                    )

                try:
                    classification, note = self._classify_content(html)
                except ExtractionError as e:
                    return VerificationResult(
                        url=url, classification=PageClassification.DEAD, outcome=outcome, note=e.message
                    )
                return VerificationResult(
                    url=url, classification=classification, outcome=outcome, note=note
                )
        except AcquireError as e:
            return VerificationResult(
                url=url, classification=PageClassification.DEAD, note=e.message
            )

    async def refresh(
        self,
        url: str,
        timeout_ms: int = ScraperConfig.PAGE_TIMEOUT_MS,
    ) -> LiveData:
        """Pull live figures (amounts, percentages, followers) from a page."""
        logger.info(f"[Scraper] Refreshing data: {truncate(url, 60)}")

        try:
            async with self.pool.page() as handle:
                try:
                    await self.fetcher.navigate_or_raise(handle, url, timeout_ms)
                    html = await self._read_content(handle)
                    return self._extract_live(url, html)
                except (NavigationError, ExtractionError) as e:
                    return self.live_extractor.failed(url, e.message)
        except AcquireError as e:
            return self.live_extractor.failed(url, e.message)

    async def _read_content(self, handle: PageHandle) -> str:
        try:
            return await self.fetcher.read_content(handle)
        except Exception as e:
            logger.warning("[Scraper] Could not read page content", error=str(e))
            raise ExtractionError(f"Failed to get page content: {e}") from e

    def _classify_content(self, html: str) -> Tuple[PageClassification, Optional[str]]:
        try:
            return self.detector.classify_content(html)
        except Exception as e:
            logger.warning("[Scraper] Could not parse page content", error=str(e))
            raise ExtractionError(f"Failed to parse page content: {e}") from e

    def _extract_live(self, url: str, html: str) -> LiveData:
        try:
            return self.live_extractor.extract(url, html)
        except Exception as e:
            logger.warning("[Scraper] Could not parse page content", url=url, error=str(e))
            raise ExtractionError(f"Failed to parse page content: {e}") from e
