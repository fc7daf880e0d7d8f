import asyncio
from typing import Any, Optional

import pytest
from playwright.async_api import Error
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from cas_browser_harness.browser import playwright_backend
from cas_browser_harness.browser.playwright_backend import (
    PlaywrightBackend,
    PlaywrightBrowser,
    PlaywrightPage,
)
from cas_browser_harness.config import LaunchOptions
from cas_browser_harness.errors import (
    DNSResolutionError,
    DriverFaultError,
    InteractionError,
    LaunchError,
    NavigationTimeoutError,
)

URL = "https://localhost:8443/cas/login"


class StubElement:
    def __init__(self, data: Optional[dict] = None, error: Optional[Exception] = None) -> None:
        self.data = data or {"visible": True, "text": "Enter token", "summary": '<input id="token">'}
        self.error = error
        self.disposed = 0

    async def evaluate(self, script: str) -> dict:
        if self.error is not None:
            raise self.error
        return self.data

    async def dispose(self) -> None:
        self.disposed += 1


class StubPage:
    def __init__(self) -> None:
        self.url = URL
        self.element: Optional[StubElement] = None
        self.query_error: Optional[Exception] = None
        self.action_error: Optional[Exception] = None
        self.goto_error: Optional[Exception] = None
        self.summary = 'title="CAS" body="Log In"'

    async def query_selector(self, selector: str) -> Optional[StubElement]:
        if self.query_error is not None:
            raise self.query_error
        return self.element

    async def evaluate(self, script: str) -> str:
        return self.summary

    async def goto(self, url: str, **kwargs: Any) -> None:
        if self.goto_error is not None:
            raise self.goto_error

    async def fill(self, selector: str, text: str, **kwargs: Any) -> None:
        if self.action_error is not None:
            raise self.action_error

    async def click(self, selector: str, **kwargs: Any) -> None:
        if self.action_error is not None:
            raise self.action_error


class StubContext:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class StubBrowser:
    def __init__(self, context_error: Optional[Exception] = None, hang: bool = False) -> None:
        self.context_error = context_error
        self.hang = hang
        self.context_kwargs: dict[str, Any] = {}
        self.closed = False

    async def new_context(self, **kwargs: Any) -> StubContext:
        self.context_kwargs = kwargs
        if self.hang:
            await asyncio.Event().wait()
        if self.context_error is not None:
            raise self.context_error
        return StubContext()

    async def close(self) -> None:
        self.closed = True


class StubChromium:
    def __init__(self, browser: StubBrowser) -> None:
        self.browser = browser
        self.launch_kwargs: dict[str, Any] = {}

    async def launch(self, **kwargs: Any) -> StubBrowser:
        self.launch_kwargs = kwargs
        return self.browser


class StubDriver:
    def __init__(self, browser: StubBrowser) -> None:
        self.chromium = StubChromium(browser)
        self.stopped = False

    async def stop(self) -> None:
        self.stopped = True


def install_driver(monkeypatch: pytest.MonkeyPatch, browser: StubBrowser) -> StubDriver:
    driver = StubDriver(browser)

    class Manager:
        async def start(self) -> StubDriver:
            return driver

    monkeypatch.setattr(playwright_backend, "async_playwright", Manager)
    return driver


def inspect(page: StubPage, selector: str = "#token"):
    return asyncio.run(PlaywrightPage(page).inspect(selector))


def test_launch_applies_options(monkeypatch: pytest.MonkeyPatch) -> None:
    browser = StubBrowser()
    driver = install_driver(monkeypatch, browser)
    options = LaunchOptions(
        trust_all_certificates=True,
        headless=False,
        window_size=(1024, 768),
        proxy="http://proxy:3128",
    )

    handle = asyncio.run(PlaywrightBackend().launch(options))

    assert isinstance(handle, PlaywrightBrowser)
    assert driver.chromium.launch_kwargs["headless"] is False
    assert driver.chromium.launch_kwargs["proxy"] == {"server": "http://proxy:3128"}
    assert browser.context_kwargs["ignore_https_errors"] is True
    assert browser.context_kwargs["viewport"] == {"width": 1024, "height": 768}
    assert not driver.stopped


def test_failed_launch_releases_started_browser(monkeypatch: pytest.MonkeyPatch) -> None:
    browser = StubBrowser(context_error=Error("Browser closed unexpectedly"))
    driver = install_driver(monkeypatch, browser)

    with pytest.raises(LaunchError, match="Browser closed unexpectedly"):
        asyncio.run(PlaywrightBackend().launch(LaunchOptions()))

    assert browser.closed
    assert driver.stopped


def test_cancelled_launch_releases_started_browser(monkeypatch: pytest.MonkeyPatch) -> None:
    browser = StubBrowser(hang=True)
    driver = install_driver(monkeypatch, browser)

    async def scenario() -> None:
        task = asyncio.ensure_future(PlaywrightBackend().launch(LaunchOptions()))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert browser.closed
    assert driver.stopped


def test_inspect_reports_visible_element_and_disposes_it() -> None:
    page = StubPage()
    page.element = StubElement()

    state = inspect(page)

    assert state.present and state.visible and state.settled
    assert state.text == "Enter token"
    assert page.element.disposed == 1


def test_inspect_of_missing_element_summarises_page() -> None:
    page = StubPage()

    state = inspect(page, "#loginErrorsPanel")

    assert not state.present
    assert state.settled
    assert state.summary == page.summary


def test_inspect_during_navigation_is_unsettled() -> None:
    page = StubPage()
    page.element = StubElement(error=Error("Execution context was destroyed, most likely because of a navigation"))

    state = inspect(page)

    assert not state.present
    assert not state.settled
    assert page.element.disposed == 1


@pytest.mark.parametrize("message", ["Target crashed", "Target page, context or browser has been closed"])
def test_inspect_of_lost_page_is_driver_fault(message: str) -> None:
    page = StubPage()
    page.query_error = Error(message)

    with pytest.raises(DriverFaultError, match=message):
        inspect(page)


def test_goto_on_crashed_page_is_driver_fault() -> None:
    page = StubPage()
    page.goto_error = Error("Navigation failed because page crashed!")

    with pytest.raises(DriverFaultError):
        asyncio.run(PlaywrightPage(page).goto(URL, timeout=5))


def test_goto_failures_are_classified() -> None:
    page = StubPage()
    handle = PlaywrightPage(page)

    page.goto_error = Error("net::ERR_NAME_NOT_RESOLVED at https://nope.invalid/")
    with pytest.raises(DNSResolutionError):
        asyncio.run(handle.goto("https://nope.invalid/", timeout=5))

    page.goto_error = PlaywrightTimeoutError("Timeout 5000ms exceeded.")
    with pytest.raises(NavigationTimeoutError):
        asyncio.run(handle.goto(URL, timeout=5))


@pytest.mark.parametrize("action", ["fill", "click"])
def test_interaction_errors_are_translated(action: str) -> None:
    page = StubPage()
    handle = PlaywrightPage(page)

    def run() -> None:
        if action == "fill":
            asyncio.run(handle.fill("#username", "casuser", timeout=1))
        else:
            asyncio.run(handle.click("#fm1 [type=submit]", timeout=1))

    page.action_error = PlaywrightTimeoutError("Timeout 1000ms exceeded.")
    with pytest.raises(InteractionError) as excinfo:
        run()
    assert excinfo.value.selector in ("#username", "#fm1 [type=submit]")

    page.action_error = Error("Element is outside of the viewport")
    with pytest.raises(InteractionError):
        run()

    page.action_error = Error("Target crashed")
    with pytest.raises(DriverFaultError):
        run()
