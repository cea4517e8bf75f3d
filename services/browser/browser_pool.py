import asyncio
import itertools
from contextlib import asynccontextmanager
from typing import Optional, AsyncGenerator, Callable
from structlog import get_logger  # type: ignore

from config.scraper_config import ScraperConfig
from exceptions.custom_exceptions import AcquireError, BrowserPoolConfigError
from services.browser.concurrency_limiter import ConcurrencyLimiter
from services.browser.engine import BrowserEngine, EngineTab, PlaywrightEngine

logger = get_logger(__name__)


class PageHandle:
    """One open tab plus the pool slot it occupies. Released exactly once."""

    def __init__(self, handle_id: int, tab: EngineTab, on_release: Callable[["PageHandle"], None]):
        self.handle_id = handle_id
        self._tab = tab
        self._on_release = on_release
        self._released = False

    @property
    def tab(self) -> EngineTab:
        if self._released:
            raise RuntimeError(f"Page handle {self.handle_id} already released")
        return self._tab

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        if self._released:
            logger.warning("[PageHandle] Ignoring second release", handle_id=self.handle_id)
            return
        self._released = True
        try:
            await self._tab.close()
        except Exception as e:
            logger.warning("[PageHandle] Tab close failed", handle_id=self.handle_id, error=str(e))
        finally:
            self._on_release(self)


class BrowserPool:
    def __init__(
        self,
        limit: int = ScraperConfig.DEFAULT_CONCURRENCY,
        engine: Optional[BrowserEngine] = None,
        user_agent: str = ScraperConfig.USER_AGENT,
    ):
        if not ScraperConfig.MIN_CONCURRENCY <= limit <= ScraperConfig.MAX_CONCURRENCY:
            raise BrowserPoolConfigError(
                f"Pool limit must be between {ScraperConfig.MIN_CONCURRENCY} "
                f"and {ScraperConfig.MAX_CONCURRENCY}, got {limit}"
            )

        self.limit = limit
        self.user_agent = user_agent
        self.engine = engine or PlaywrightEngine()
        self.limiter = ConcurrencyLimiter(limit)

        self._ids = itertools.count(1)
        self._outstanding: set[int] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self._drain_task: Optional[asyncio.Task] = None
        self._started = False
        self._closed = False

        logger.info("[BrowserPool] Configured", limit=limit)

    async def __aenter__(self) -> "BrowserPool":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        if self._started:
            return
        if self._closed:
            raise RuntimeError("BrowserPool is closed")

        logger.info("[BrowserPool] Starting engine...")
        await self.engine.launch()
        self._drain_task = asyncio.create_task(self._drain_events())
        self._started = True
        logger.info("[BrowserPool] Pool ready", limit=self.limit)

    async def _drain_events(self) -> None:
        """Consume the engine event stream so it never backs up."""
        try:
            async for event in self.engine.events():
                logger.debug("[BrowserPool] Engine event", engine_event=str(event))
        except Exception as e:
            logger.warning("[BrowserPool] Engine event stream failed", error=str(e))
        logger.debug("[BrowserPool] Engine event stream closed")

    async def _open_handle(self) -> PageHandle:
        if not self._started or self._closed:
            raise AcquireError("Browser pool is not running")

        await self.limiter.acquire_slot()
        tab: Optional[EngineTab] = None
        try:
            tab = await self.engine.new_tab()
            await tab.set_user_agent(self.user_agent)
        except BaseException as e:
            if tab is not None:
                try:
                    await tab.close()
                except Exception as close_error:
                    logger.warning("[BrowserPool] Failed to close broken tab", error=str(close_error))
            self.limiter.release_slot()
            if isinstance(e, Exception):
                logger.warning("[BrowserPool] Tab creation failed", error=str(e))
                raise AcquireError(f"Browser error: {e}") from e
            raise

        handle = PageHandle(next(self._ids), tab, self._release_handle)
        self._outstanding.add(handle.handle_id)
        self._idle.clear()
        return handle

    def _release_handle(self, handle: PageHandle) -> None:
        self._outstanding.discard(handle.handle_id)
        self.limiter.release_slot()
        if not self._outstanding:
            self._idle.set()

    @asynccontextmanager
    async def page(self) -> AsyncGenerator[PageHandle, None]:
        handle = await self._open_handle()
        try:
            yield handle
        finally:
            await handle.release()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if not self._started:
            return

        logger.info("[BrowserPool] Closing pool...", outstanding=len(self._outstanding))
        try:
            await asyncio.wait_for(
                self._idle.wait(), timeout=ScraperConfig.SHUTDOWN_GRACE_MS / 1000
            )
        except asyncio.TimeoutError:
            logger.warning(
                "[BrowserPool] Closing with handles still open",
                outstanding=len(self._outstanding),
            )

        try:
            await self.engine.close()
        finally:
            if self._drain_task is not None:
                try:
                    await asyncio.wait_for(self._drain_task, timeout=1.0)
                except asyncio.TimeoutError:
                    self._drain_task.cancel()
                self._drain_task = None
        logger.info("[BrowserPool] Pool closed")

    @property
    def stats(self) -> dict:
        return {
            "limit": self.limit,
            "outstanding": len(self._outstanding),
            **self.limiter.stats,
        }
