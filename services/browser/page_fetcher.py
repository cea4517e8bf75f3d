import asyncio
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple
from structlog import get_logger  # type: ignore

from config.scraper_config import ScraperConfig
from exceptions.custom_exceptions import NavigationError
from models.page_model import ErrorKind, NavigationOutcome
from services.browser.browser_pool import PageHandle

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry a failed navigation (status_guess == 0) after a fixed delay."""
    retries: int = ScraperConfig.RETRIES
    delay_s: float = ScraperConfig.RETRY_DELAY_S


class PageFetcher:
    def __init__(
        self,
        retry_policy: Optional[RetryPolicy] = None,
        error_rules: Optional[List[Tuple[str, ErrorKind]]] = None,
        title_rules: Optional[List[Tuple[Tuple[str, ...], int]]] = None,
    ):
        self.retry_policy = retry_policy or RetryPolicy()
        self.error_rules = error_rules or ScraperConfig.NAVIGATION_ERROR_RULES
        self.title_rules = title_rules or ScraperConfig.TITLE_STATUS_RULES

    async def navigate(
        self,
        handle: PageHandle,
        url: str,
        timeout_ms: int = ScraperConfig.PAGE_TIMEOUT_MS,
    ) -> NavigationOutcome:
        """Single navigation attempt bounded by a hard timeout."""
        started = time.monotonic()
        tab = handle.tab

        try:
            http_status = await asyncio.wait_for(
                tab.goto(url, timeout_ms), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            logger.warning("[PageFetcher] Navigation timeout", url=url, timeout_ms=timeout_ms)
            return NavigationOutcome(
                error_kind=ErrorKind.TIMEOUT,
                error="Navigation timeout",
                elapsed_ms=self._elapsed_ms(started),
            )
        except Exception as e:
            kind = self.classify_error(str(e))
            logger.warning("[PageFetcher] Navigation failed", url=url, error_kind=kind.value, error=str(e)[:200])
            return NavigationOutcome(
                error_kind=kind,
                error=str(e),
                elapsed_ms=self._elapsed_ms(started),
            )

        title = await self._read_title(handle)
        final_url = await self._read_url(handle)

        outcome = NavigationOutcome(
            status_guess=self.guess_status(title),
            http_status=http_status,
            title=title,
            final_url=final_url,
            elapsed_ms=self._elapsed_ms(started),
        )
        logger.debug(
            "[PageFetcher] Navigated",
            url=url,
            status_guess=outcome.status_guess,
            http_status=http_status,
            elapsed_ms=outcome.elapsed_ms,
        )
        return outcome

    async def navigate_with_retry(
        self,
        handle: PageHandle,
        url: str,
        timeout_ms: int = ScraperConfig.PAGE_TIMEOUT_MS,
    ) -> NavigationOutcome:
        outcome = await self.navigate(handle, url, timeout_ms)
        attempts = 1

        while outcome.status_guess == 0 and attempts <= self.retry_policy.retries:
            logger.info(
                "[PageFetcher] Retrying navigation",
                url=url,
                attempt=attempts + 1,
                error_kind=outcome.error_kind.value if outcome.error_kind else None,
            )
            await asyncio.sleep(self.retry_policy.delay_s)
            outcome = await self.navigate(handle, url, timeout_ms)
            attempts += 1

        return outcome.model_copy(update={"attempts": attempts})

    async def navigate_or_raise(
        self,
        handle: PageHandle,
        url: str,
        timeout_ms: int = ScraperConfig.PAGE_TIMEOUT_MS,
    ) -> NavigationOutcome:
        """navigate_with_retry, raising NavigationError once retries are spent."""
        outcome = await self.navigate_with_retry(handle, url, timeout_ms)
        if outcome.status_guess == 0:
            raise NavigationError(
                outcome.error_kind or ErrorKind.NETWORK_ERROR,
                outcome.error or "Navigation failed",
            )
        return outcome

    async def read_content(self, handle: PageHandle) -> str:
        return await handle.tab.content()

    def classify_error(self, message: str) -> ErrorKind:
        for needle, kind in self.error_rules:
            if needle in message:
                return kind
        return ErrorKind.NETWORK_ERROR

    def guess_status(self, title: Optional[str]) -> int:
        """Approximate status from the page title; not a real protocol status."""
        if title:
            lowered = title.lower()
            for needles, status in self.title_rules:
                if any(needle in lowered for needle in needles):
                    return status
        return 200

    async def _read_title(self, handle: PageHandle) -> Optional[str]:
        try:
            return await handle.tab.title()
        except Exception as e:
            logger.debug("[PageFetcher] Could not read title", error=str(e))
            return None

    async def _read_url(self, handle: PageHandle) -> Optional[str]:
        try:
            return await handle.tab.current_url()
        except Exception as e:
            logger.debug("[PageFetcher] Could not read current URL", error=str(e))
            return None

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
