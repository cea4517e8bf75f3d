import asyncio
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, List, Optional
from playwright.async_api import async_playwright, Browser, Page, Playwright
from structlog import get_logger  # type: ignore

from config.scraper_config import ScraperConfig
from exceptions.custom_exceptions import LaunchError

logger = get_logger(__name__)


class EngineTab(ABC):
    """One open browser tab."""

    @abstractmethod
    async def set_user_agent(self, user_agent: str) -> None: ...

    @abstractmethod
    async def goto(self, url: str, timeout_ms: int) -> Optional[int]:
        """Navigate and return the protocol status if the engine exposes one."""

    @abstractmethod
    async def title(self) -> Optional[str]: ...

    @abstractmethod
    async def current_url(self) -> Optional[str]: ...

    @abstractmethod
    async def content(self) -> str: ...

    @abstractmethod
    async def close(self) -> None: ...


class BrowserEngine(ABC):
    """A single browser process that hands out tabs."""

    @abstractmethod
    async def launch(self) -> None: ...

    @abstractmethod
    async def new_tab(self) -> EngineTab: ...

    @abstractmethod
    def events(self) -> AsyncIterator[Any]:
        """Engine event stream; ends when the connection to the browser closes."""

    @abstractmethod
    async def close(self) -> None: ...


class PlaywrightTab(EngineTab):
    def __init__(self, page: Page):
        self._page = page

    async def set_user_agent(self, user_agent: str) -> None:
        await self._page.set_extra_http_headers({"User-Agent": user_agent})

    async def goto(self, url: str, timeout_ms: int) -> Optional[int]:
        response = await self._page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=timeout_ms,
        )
        return response.status if response else None

    async def title(self) -> Optional[str]:
        return await self._page.title()

    async def current_url(self) -> Optional[str]:
        return self._page.url or None

    async def content(self) -> str:
        return await self._page.content()

    async def close(self) -> None:
        await self._page.close()


class PlaywrightEngine(BrowserEngine):
    def __init__(
        self,
        headless: bool = ScraperConfig.HEADLESS,
        args: Optional[List[str]] = None,
    ):
        self.headless = headless
        self.args = args if args is not None else list(ScraperConfig.BROWSER_ARGS)

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._events: "asyncio.Queue[Any]" = asyncio.Queue()

    async def launch(self) -> None:
        logger.info("[PlaywrightEngine] Launching Chromium", headless=self.headless)
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless, args=self.args
            )
        except Exception as e:
            logger.exception("[PlaywrightEngine] Launch failed")
            if self._playwright:
                try:
                    await self._playwright.stop()
                except Exception as stop_error:
                    logger.warning("[PlaywrightEngine] Playwright stop failed", error=str(stop_error))
                self._playwright = None
            raise LaunchError(
                f"Failed to launch Chromium. Is it installed? ({e})"
            ) from e

        self._browser.on("disconnected", lambda _: self._events.put_nowait(None))
        logger.info("[PlaywrightEngine] Browser ready", version=self._browser.version)

    async def new_tab(self) -> EngineTab:
        if self._browser is None:
            raise RuntimeError("Engine not launched")
        page = await self._browser.new_page()
        page.on("crash", lambda p: self._events.put_nowait(("crash", p.url)))
        return PlaywrightTab(page)

    async def events(self) -> AsyncIterator[Any]:
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        # Ends the event stream even if "disconnected" never fired
        self._events.put_nowait(None)
        logger.info("[PlaywrightEngine] Browser closed")
