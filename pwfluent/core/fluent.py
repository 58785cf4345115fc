"""Fluent facade
----------------
Queues browser set-up steps and runs them when the object is awaited:

    p = PlaywrightFluent()
    await (
        p.with_browser("chromium")
        .with_options(headless=True)
        .record_requests_to("/foobar")
        .with_mocks(mocks)
        .navigate_to("http://localhost:1234/app")
    )
    await p.wait_for_stability_of(lambda: len(p.get_recorded_requests_to("/foobar")))

Mocks and recordings declared before the page exists are installed as soon as
the page is created, before the first navigation.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from pwfluent.network.mock_loader import load_mocks_file
from pwfluent.network.mocks import MockLike, MockRouter
from pwfluent.network.recorder import RequestCallback, RequestRecorder, TakeAllPredicate, take_all
from pwfluent.network.request_info import RecordedRequest
from pwfluent.selectors.chain import SelectorChain
from pwfluent.selectors.resolver import FluentSelector, NoActivePageError, SelectorResolver
from pwfluent.utils.config import BrowserType, Settings, get_settings
from pwfluent.utils.logger import bind, get_logger, unbind
from pwfluent.utils.timing import (
    Predicate,
    ValueProducer,
    WaitUntilOptions,
    measure,
    wait_for_stability_of,
    wait_until,
)

QueuedAction = Callable[[], Awaitable[None]]


class PlaywrightFluent:
    """Owns one browser/page plus the recorder and mock router scoped to it."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.log = get_logger(__name__)
        self.recorder = RequestRecorder()
        self.mock_router = MockRouter()
        self.resolver = SelectorResolver(self.current_page)

        self._actions: List[QueuedAction] = []
        self._browser_type: BrowserType = self.settings.BROWSER_TYPE
        self._launch_overrides: dict = {}
        self._pending_recordings: List[tuple] = []

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    # ---------- Awaitable queue ----------

    def __await__(self):
        return self._run_queued_actions().__await__()

    async def _run_queued_actions(self) -> "PlaywrightFluent":
        actions, self._actions = self._actions, []
        for action in actions:
            await action()
        return self

    # ---------- Accessors ----------

    def current_page(self) -> Optional[Page]:
        return self._page

    def current_browser(self) -> Optional[Browser]:
        return self._browser

    def _require_page(self, what: str) -> Page:
        if self._page is None:
            raise NoActivePageError(f"Cannot {what} because no browser has been launched")
        return self._page

    def _is_torn_down(self) -> bool:
        if self._page is None:
            return False
        if self._page.is_closed():
            return True
        return self._browser is not None and not self._browser.is_connected()

    # ---------- Queued set-up steps ----------

    def with_browser(self, name: BrowserType | str | None = None) -> "PlaywrightFluent":
        if name is not None:
            self._browser_type = BrowserType(name)
        self._actions.append(self._launch)
        return self

    def with_options(self, **launch_options: Any) -> "PlaywrightFluent":
        """Playwright launch options (headless, slow_mo, ...) overriding the settings."""
        self._launch_overrides.update(launch_options)
        return self

    def with_mocks(self, mocks: Iterable[MockLike]) -> "PlaywrightFluent":
        mocks = list(mocks)

        async def _register() -> None:
            self.mock_router.with_mocks(mocks)
            if self._page is not None:
                await self.mock_router.install(self._page)

        self._actions.append(_register)
        return self

    def with_mocks_from_file(self, path: Path | str) -> "PlaywrightFluent":
        return self.with_mocks(load_mocks_file(path))

    def record_requests_to(
        self,
        url_fragment: str,
        take_all_predicate: TakeAllPredicate = take_all,
        on_request: Optional[RequestCallback] = None,
    ) -> "PlaywrightFluent":
        async def _record() -> None:
            if self._page is None:
                self._pending_recordings.append((url_fragment, take_all_predicate, on_request))
                return
            self.recorder.start(self._page, url_fragment, take_all_predicate, on_request)

        self._actions.append(_record)
        return self

    def navigate_to(self, url: str) -> "PlaywrightFluent":
        async def _navigate() -> None:
            page = self._require_page(f"navigate to '{url}'")
            self.log.info(f"Navigating to {url}")
            await page.goto(url, timeout=self.settings.NAVIGATION_TIMEOUT)

        self._actions.append(_navigate)
        return self

    @measure("launch browser")
    async def _launch(self) -> None:
        launch_kwargs = self.settings.playwright_launch_kwargs()
        launch_kwargs.update(self._launch_overrides)

        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self._browser_type.value)
        self._browser = await launcher.launch(**launch_kwargs)
        self._context = await self._browser.new_context(**self.settings.playwright_context_kwargs())
        self._page = await self._context.new_page()
        bind(browser=self._browser_type.value)
        self.log.info(f"Launched {self._browser_type.value} (headless={launch_kwargs.get('headless')})")

        if self.mock_router.mocks:
            await self.mock_router.install(self._page)
        pending, self._pending_recordings = self._pending_recordings, []
        for url_fragment, predicate, callback in pending:
            self.recorder.start(self._page, url_fragment, predicate, callback)

    async def close(self) -> None:
        """Close the browser; the Browser object stays reachable through current_browser()."""
        self._actions = []
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        unbind("browser")

    async def __aenter__(self) -> "PlaywrightFluent":
        return await self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- Selectors ----------

    def selector(self, selector: str) -> FluentSelector:
        return FluentSelector(SelectorChain.root(selector), self.resolver)

    def selector_from_state(self, state: dict | str) -> FluentSelector:
        return FluentSelector.from_state(state, self.resolver)

    # ---------- Recorded requests ----------

    def get_recorded_requests_to(self, url_fragment: str) -> List[RecordedRequest]:
        return self.recorder.get_recorded_requests_to(url_fragment)

    def get_last_recorded_request_to(self, url_fragment: str) -> Optional[RecordedRequest]:
        return self.recorder.get_last_recorded_request_to(url_fragment)

    def clear_recorded_requests_to(self, url_fragment: str) -> None:
        self.recorder.clear_recorded_requests_to(url_fragment)

    # ---------- Waits ----------

    async def wait_until(
        self,
        predicate: Predicate,
        options: Optional[WaitUntilOptions] = None,
        error_message: Optional[str] = None,
        **overrides: Any,
    ) -> None:
        """Runs queued steps first, then polls; aborts if the page or browser closes."""
        await self._run_queued_actions()
        opts = options or WaitUntilOptions.from_settings(**overrides)
        await wait_until(predicate, opts, error_message=error_message, is_cancelled=self._is_torn_down)

    async def wait_for_stability_of(
        self,
        producer: ValueProducer,
        options: Optional[WaitUntilOptions] = None,
        error_message: Optional[str] = None,
        **overrides: Any,
    ) -> Any:
        await self._run_queued_actions()
        opts = options or WaitUntilOptions.from_settings(**overrides)
        return await wait_for_stability_of(producer, opts, error_message=error_message, is_cancelled=self._is_torn_down)
