"""
Pytest configuration and fixtures for browser service tests.
Provides a synthetic browser engine that scripts navigation results and
counts concurrently open tabs, so no real Chromium is needed.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional

import pytest

from exceptions.custom_exceptions import LaunchError
from services.browser.engine import BrowserEngine, EngineTab

DEFAULT_HTML = "<html><head><title>Example</title></head><body><main><h1>Example</h1><p>Plain example page body.</p></main></body></html>"


@dataclass
class FakeResponse:
    title: Optional[str] = "Example"
    html: str = DEFAULT_HTML
    final_url: Optional[str] = None
    http_status: Optional[int] = None
    error: Optional[str] = None
    hang: bool = False
    delay: float = 0.0
    content_error: Optional[str] = None


class FakeTab(EngineTab):
    def __init__(self, engine: "FakeEngine"):
        self.engine = engine
        self.user_agent: Optional[str] = None
        self.closed = False
        self._response: Optional[FakeResponse] = None
        self._url: Optional[str] = None

    async def set_user_agent(self, user_agent: str) -> None:
        if self.engine.fail_user_agent:
            raise RuntimeError("Network.setUserAgentOverride failed")
        self.user_agent = user_agent

    async def goto(self, url: str, timeout_ms: int) -> Optional[int]:
        self.engine.goto_calls.append(url)
        response = self.engine.next_response(url)
        if response.hang:
            await asyncio.Event().wait()
        if response.delay:
            await asyncio.sleep(response.delay)
        if response.error:
            raise RuntimeError(response.error)
        self._response = response
        self._url = response.final_url or url
        return response.http_status

    async def title(self) -> Optional[str]:
        return self._response.title if self._response else None

    async def current_url(self) -> Optional[str]:
        return self._url

    async def content(self) -> str:
        if self._response is None:
            return ""
        if self._response.content_error:
            raise RuntimeError(self._response.content_error)
        return self._response.html

    async def close(self) -> None:
        self.closed = True
        self.engine.open_tabs -= 1


class FakeEngine(BrowserEngine):
    def __init__(
        self,
        responses: Optional[Dict[str, List[FakeResponse]]] = None,
        fail_launch: bool = False,
        fail_new_tab: bool = False,
        fail_user_agent: bool = False,
    ):
        self.responses = responses or {}
        self.fail_launch = fail_launch
        self.fail_new_tab = fail_new_tab
        self.fail_user_agent = fail_user_agent

        self.launched = False
        self.closed = False
        self.open_tabs = 0
        self.max_open_tabs = 0
        self.tabs: List[FakeTab] = []
        self.goto_calls: List[str] = []
        self._events: "asyncio.Queue" = asyncio.Queue()

    def next_response(self, url: str) -> FakeResponse:
        queue = self.responses.get(url)
        if not queue:
            return FakeResponse()
        # The last scripted response repeats
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def emit(self, event) -> None:
        self._events.put_nowait(event)

    async def launch(self) -> None:
        if self.fail_launch:
            raise LaunchError("Failed to launch Chromium. Is it installed?")
        self.launched = True

    async def new_tab(self) -> EngineTab:
        if self.fail_new_tab:
            raise RuntimeError("Target.createTarget failed")
        tab = FakeTab(self)
        self.tabs.append(tab)
        self.open_tabs += 1
        self.max_open_tabs = max(self.max_open_tabs, self.open_tabs)
        return tab

    async def events(self):
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event

    async def close(self) -> None:
        self.closed = True
        self._events.put_nowait(None)


@pytest.fixture
def make_engine():
    """Factory for FakeEngine instances."""
    def _make(**kwargs) -> FakeEngine:
        return FakeEngine(**kwargs)
    return _make


@pytest.fixture
def fake_response():
    """Factory for FakeResponse instances."""
    return FakeResponse
