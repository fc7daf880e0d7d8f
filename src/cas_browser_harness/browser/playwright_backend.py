"""Playwright-powered browser engine implementation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import Error, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import LaunchOptions
from ..errors import (
    CertificateError,
    ConnectionFailedError,
    DNSResolutionError,
    DriverFaultError,
    InteractionError,
    LaunchError,
    NavigationError,
    NavigationTimeoutError,
)
from ..models import ElementState
from .base import BrowserBackend, BrowserHandle, PageHandle

LOGGER = logging.getLogger(__name__)

_CERTIFICATE_MARKERS = (
    "ERR_CERT_",
    "ERR_SSL_",
    "ERR_BAD_SSL_CLIENT_AUTH_CERT",
    "SEC_ERROR_",
    "SSL_ERROR_",
    "MOZILLA_PKIX_ERROR_",
)
_DNS_MARKERS = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_NAME_RESOLUTION_FAILED",
    "NS_ERROR_UNKNOWN_HOST",
)
_CONNECTION_MARKERS = (
    "ERR_CONNECTION_",
    "ERR_ADDRESS_UNREACHABLE",
    "ERR_EMPTY_RESPONSE",
    "ERR_TIMED_OUT",
    "ERR_INTERNET_DISCONNECTED",
    "ERR_PROXY_CONNECTION_FAILED",
    "NS_ERROR_CONNECTION_REFUSED",
    "NS_ERROR_NET_RESET",
    "NS_ERROR_NET_TIMEOUT",
)
_DISCONNECT_MARKERS = (
    "Target page, context or browser has been closed",
    "Target closed",
    "Browser has been closed",
    "browser has disconnected",
    "Connection closed",
    "Target crashed",
    "page crashed",
)
# Raised while a page is between documents; the next poll sees the new one.
_TRANSIENT_MARKERS = (
    "Execution context was destroyed",
    "Cannot find context with specified id",
    "Element is not attached to the DOM",
    "frame was detached",
)

_ELEMENT_STATE_JS = """
(el) => {
  const style = window.getComputedStyle(el);
  const rect = el.getBoundingClientRect();
  const onPage = rect.right + window.scrollX > 0 && rect.bottom + window.scrollY > 0;
  const visible = rect.width > 0 && rect.height > 0
    && style.display !== 'none'
    && style.visibility !== 'hidden'
    && style.opacity !== '0'
    && onPage;
  const html = el.outerHTML || '';
  return {
    visible,
    text: (el.innerText !== undefined ? el.innerText : el.textContent) || '',
    summary: html.length > 200 ? html.slice(0, 200) + '...' : html,
  };
}
"""

_PAGE_SUMMARY_JS = """
() => {
  const body = document.body ? (document.body.innerText || '') : '';
  return `title=${JSON.stringify(document.title)} body=${JSON.stringify(body.slice(0, 160))}`;
}
"""


def classify_navigation_failure(
    url: str,
    message: str,
    *,
    elapsed: float = 0.0,
    timed_out: bool = False,
) -> NavigationError:
    """Map an engine navigation failure onto the matching ``NavigationError`` subtype."""

    detail = message.splitlines()[0] if message else None
    if timed_out:
        return NavigationTimeoutError(url, elapsed=elapsed, detail=detail)
    if any(marker in message for marker in _CERTIFICATE_MARKERS):
        return CertificateError(url, elapsed=elapsed, detail=detail)
    if any(marker in message for marker in _DNS_MARKERS):
        return DNSResolutionError(url, elapsed=elapsed, detail=detail)
    if any(marker in message for marker in _CONNECTION_MARKERS):
        return ConnectionFailedError(url, elapsed=elapsed, detail=detail)
    return NavigationError(url, elapsed=elapsed, detail=detail)


def is_disconnect(exc: BaseException) -> bool:
    message = str(exc)
    return any(marker in message for marker in _DISCONNECT_MARKERS)


def is_transient(exc: BaseException) -> bool:
    message = str(exc)
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class PlaywrightPage(PageHandle):
    """Page handle backed by a Playwright page."""

    def __init__(self, page: Any) -> None:
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str, *, timeout: float) -> Optional[int]:
        try:
            response = await self._page.goto(url, wait_until="load", timeout=_to_timeout(timeout))
        except PlaywrightTimeoutError as exc:
            raise classify_navigation_failure(
                url, str(exc), elapsed=timeout, timed_out=True
            ) from exc
        except Error as exc:
            if is_disconnect(exc):
                raise DriverFaultError(str(exc), operation="goto") from exc
            raise classify_navigation_failure(url, str(exc)) from exc
        return response.status if response is not None else None

    async def fill(self, selector: str, text: str, *, timeout: float) -> None:
        try:
            await self._page.fill(selector, text, timeout=_to_timeout(timeout))
        except PlaywrightTimeoutError as exc:
            raise InteractionError(
                f"No editable element matched {selector!r} within {timeout:.2f}s",
                selector=selector,
            ) from exc
        except Error as exc:
            raise self._translate(exc, "fill", selector) from exc

    async def click(self, selector: str, *, timeout: float) -> None:
        try:
            await self._page.click(selector, timeout=_to_timeout(timeout))
        except PlaywrightTimeoutError as exc:
            raise InteractionError(
                f"No clickable element matched {selector!r} within {timeout:.2f}s",
                selector=selector,
            ) from exc
        except Error as exc:
            raise self._translate(exc, "click", selector) from exc

    async def inspect(self, selector: str) -> ElementState:
        try:
            element = await self._page.query_selector(selector)
            if element is None:
                summary = await self._page.evaluate(_PAGE_SUMMARY_JS)
                return ElementState(present=False, summary=summary)
            try:
                data = await element.evaluate(_ELEMENT_STATE_JS)
            finally:
                await _dispose(element)
        except Error as exc:
            if is_transient(exc):
                LOGGER.debug("Page changed while inspecting %s: %s", selector, exc)
                return ElementState(settled=False, summary="page navigating")
            raise self._translate(exc, "inspect", selector) from exc
        return ElementState(
            present=True,
            visible=bool(data.get("visible")),
            text=data.get("text"),
            summary=data.get("summary"),
        )

    async def title(self) -> str:
        try:
            return await self._page.title()
        except Error as exc:
            if is_transient(exc):
                return ""
            raise self._translate(exc, "title", "document") from exc

    async def cookies(self) -> list[dict[str, Any]]:
        try:
            return [dict(cookie) for cookie in await self._page.context.cookies()]
        except Error as exc:
            raise self._translate(exc, "cookies", "document") from exc

    async def screenshot(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            await self._page.screenshot(path=str(path))
        except Error as exc:
            raise self._translate(exc, "screenshot", "document") from exc

    async def close(self) -> None:
        try:
            await self._page.close()
        except Error as exc:
            if not is_disconnect(exc):
                raise
            LOGGER.debug("Page already gone: %s", exc)

    @staticmethod
    def _translate(exc: Error, operation: str, selector: str) -> Exception:
        if is_disconnect(exc):
            return DriverFaultError(str(exc), operation=operation)
        return InteractionError(f"{operation} failed for {selector!r}: {exc}", selector=selector)


class PlaywrightBrowser(BrowserHandle):
    """A Chromium process with one shared browser context."""

    def __init__(self, playwright: Any, browser: Any, context: Any) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context

    async def new_page(self) -> PageHandle:
        try:
            page = await self._context.new_page()
        except Error as exc:
            raise DriverFaultError(str(exc), operation="new_page") from exc
        return PlaywrightPage(page)

    async def close(self) -> None:
        LOGGER.debug("Stopping Playwright browser")
        try:
            await self._context.close()
        except Error as exc:
            if not is_disconnect(exc):
                raise
            LOGGER.debug("Browser context already gone: %s", exc)
        finally:
            try:
                await self._browser.close()
            finally:
                await self._playwright.stop()


class PlaywrightBackend(BrowserBackend):
    """Launch Chromium through Playwright."""

    async def launch(self, options: LaunchOptions) -> BrowserHandle:
        LOGGER.debug("Starting Playwright browser (headless=%s)", options.headless)
        try:
            playwright = await async_playwright().start()
        except (Error, OSError) as exc:
            raise LaunchError(f"Could not start Playwright driver: {exc}") from exc

        launch_kwargs: dict[str, Any] = {
            "headless": options.headless,
            "args": list(options.args),
            "slow_mo": options.slow_mo_ms,
        }
        if options.channel:
            launch_kwargs["channel"] = options.channel
        if options.proxy:
            launch_kwargs["proxy"] = {"server": options.proxy}
        width, height = options.window_size

        browser = None
        try:
            browser = await playwright.chromium.launch(**launch_kwargs)
            context = await browser.new_context(
                viewport={"width": width, "height": height},
                ignore_https_errors=options.trust_all_certificates,
                extra_http_headers=dict(options.extra_headers) or None,
            )
        except Error as exc:
            await _discard(playwright, browser)
            raise LaunchError(f"Could not launch browser: {exc}") from exc
        except BaseException:
            await _discard(playwright, browser)
            raise
        return PlaywrightBrowser(playwright, browser, context)


async def _dispose(element: Any) -> None:
    try:
        await element.dispose()
    except Error as exc:
        if not (is_disconnect(exc) or is_transient(exc)):
            raise
        LOGGER.debug("Element handle already gone: %s", exc)


async def _discard(playwright: Any, browser: Any) -> None:
    """Tear down a half-started launch."""

    try:
        if browser is not None:
            await browser.close()
    finally:
        await playwright.stop()


def _to_timeout(timeout: Optional[float]) -> Optional[int]:
    if timeout is None:
        return None
    return int(timeout * 1000)
