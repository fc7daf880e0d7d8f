"""Scenario-facing page context."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    TypeVar,
)

from . import assertions, login
from .browser.base import PageHandle
from .config import HarnessSettings, WaitPolicy
from .errors import (
    DriverFaultError,
    InteractionError,
    NavigationError,
    NavigationInProgressError,
    NavigationTimeoutError,
    SessionClosedError,
)
from .models import Credentials, ElementState, LoadState, LoginResult, NavigationResult
from .waiting import PollResult, bounded, poll_until

if TYPE_CHECKING:
    from .session import Session

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")

# Extra time granted to the engine to report its own navigation timeout.
NAVIGATION_GRACE = 5.0


class Page:
    """A browsing context belonging to one :class:`Session`.

    Every scenario operation is a method here: navigation, form driving and
    the read-only assertions. Methods fail with ``SessionClosedError`` once the
    page or its session has been closed.
    """

    def __init__(self, session: "Session", handle: PageHandle) -> None:
        self._session = session
        self._handle = handle
        self._load_state = LoadState.IDLE
        self._closed = False
        self._navigating: Optional[str] = None
        self._last_navigation: Optional[NavigationResult] = None
        self._navigation_error: Optional[NavigationError] = None

    def __repr__(self) -> str:
        return f"Page(url={self.url!r}, load_state={self._load_state.value})"

    @property
    def session(self) -> "Session":
        return self._session

    @property
    def settings(self) -> HarnessSettings:
        return self._session.settings

    @property
    def url(self) -> str:
        if self._closed:
            return ""
        return self._handle.url

    @property
    def load_state(self) -> LoadState:
        return self._load_state

    @property
    def is_closed(self) -> bool:
        return self._closed or self._session.is_closed

    @property
    def last_navigation(self) -> Optional[NavigationResult]:
        return self._last_navigation

    @property
    def navigation_error(self) -> Optional[NavigationError]:
        """The failure of the most recent :meth:`goto`, if it failed."""

        return self._navigation_error

    # Navigation & form driving

    async def goto(self, url: str, *, timeout: Optional[float] = None) -> NavigationResult:
        """Navigate to ``url`` and wait for the load event."""

        self.ensure_usable("goto")
        timeout = timeout or self.settings.timeouts.navigation
        loop = asyncio.get_running_loop()
        async with self.navigation(f"goto {url}"):
            self._load_state = LoadState.LOADING
            self._navigation_error = None
            started = loop.time()
            LOGGER.info("Navigating to %s", url)
            try:
                finished, status = await bounded(
                    self._handle.goto(url, timeout=timeout),
                    self._session.closed_event,
                    timeout + NAVIGATION_GRACE,
                )
                if not finished:
                    if self._session.is_closed:
                        raise DriverFaultError(
                            f"Session closed while navigating to {url}", operation="goto"
                        )
                    raise NavigationTimeoutError(
                        url,
                        elapsed=loop.time() - started,
                        detail="browser did not report back",
                    )
            except NavigationError as exc:
                self._navigation_error = exc
                LOGGER.warning("Navigation to %s failed: %s", url, exc)
                raise
            finally:
                self._load_state = LoadState.IDLE
            self._last_navigation = NavigationResult(
                url=self._handle.url or url,
                status=status,
                elapsed=loop.time() - started,
            )
        LOGGER.debug("Loaded %s in %.2fs", url, self._last_navigation.elapsed)
        return self._last_navigation

    async def login_with(
        self,
        credentials: Credentials,
        *,
        timeout: Optional[float] = None,
    ) -> LoginResult:
        """Submit the login form and report which screen it led to."""

        return await login.login_with(self, credentials, timeout=timeout)

    async def complete_challenge(
        self,
        token: str,
        *,
        timeout: Optional[float] = None,
    ) -> LoginResult:
        """Answer the MFA challenge screen with a one-time token."""

        return await login.complete_challenge(self, token, timeout=timeout)

    async def type(self, selector: str, text: str, *, timeout: Optional[float] = None) -> None:
        """Replace the value of the input matching ``selector`` with ``text``."""

        await self.fill(selector, text, timeout=timeout)

    async def click(self, selector: str, *, timeout: Optional[float] = None) -> None:
        self.ensure_usable("click")
        await self._interact(
            "click",
            selector,
            self._handle.click(selector, timeout=self._interaction_timeout(timeout)),
            timeout,
        )

    async def submit_form(self, form_selector: str, *, timeout: Optional[float] = None) -> None:
        """Click the submit control of the form matching ``form_selector``."""

        await self.click(f"{form_selector} [type=submit]", timeout=timeout)

    async def fill(self, selector: str, text: str, *, timeout: Optional[float] = None) -> None:
        self.ensure_usable("type")
        await self._interact(
            "fill",
            selector,
            self._handle.fill(selector, text, timeout=self._interaction_timeout(timeout)),
            timeout,
        )

    # Assertions

    async def assert_visibility(self, selector: str, *, timeout: Optional[float] = None) -> None:
        await assertions.assert_visibility(self, selector, timeout=timeout)

    async def assert_invisibility(self, selector: str, *, timeout: Optional[float] = None) -> None:
        await assertions.assert_invisibility(self, selector, timeout=timeout)

    async def assert_absence(self, selector: str, *, timeout: Optional[float] = None) -> None:
        await assertions.assert_absence(self, selector, timeout=timeout)

    async def assert_text(
        self,
        selector: str,
        expected: str,
        *,
        exact: bool = True,
        timeout: Optional[float] = None,
    ) -> None:
        await assertions.assert_text(self, selector, expected, exact=exact, timeout=timeout)

    async def assert_cookie(self, name: str, *, timeout: Optional[float] = None) -> None:
        await assertions.assert_cookie(self, name, timeout=timeout)

    async def assert_url(self, fragment: str, *, timeout: Optional[float] = None) -> None:
        await assertions.assert_url(self, fragment, timeout=timeout)

    # Queries

    async def title(self) -> str:
        self.ensure_usable("read the title")
        return await self._handle.title()

    async def cookies(self) -> list[dict[str, Any]]:
        self.ensure_usable("read cookies")
        return await self._handle.cookies()

    async def screenshot(self, path: Path) -> Path:
        self.ensure_usable("take a screenshot")
        await self._handle.screenshot(path)
        LOGGER.info("Saved screenshot to %s", path)
        return path

    async def wait_for(
        self,
        selector: str,
        predicate: Callable[[ElementState], bool],
        policy: WaitPolicy,
    ) -> PollResult[ElementState]:
        """Poll the element matching ``selector`` until ``predicate`` holds."""

        return await self.poll(lambda: self._handle.inspect(selector), predicate, policy)

    async def poll(
        self,
        probe: Callable[[], Awaitable[T]],
        predicate: Callable[[T], bool],
        policy: WaitPolicy,
    ) -> PollResult[T]:
        async def guarded() -> T:
            if self.is_closed:
                raise DriverFaultError("Page closed while waiting", operation="poll")
            return await probe()

        return await poll_until(guarded, predicate, policy, aborted=self._session.closed_event)

    async def wait_for_any(
        self,
        selectors: Mapping[K, str],
        policy: WaitPolicy,
    ) -> PollResult[dict[K, ElementState]]:
        """Poll several selectors together until at least one of them is visible."""

        async def probe() -> dict[K, ElementState]:
            keys = list(selectors)
            states = await asyncio.gather(*(self._handle.inspect(selectors[key]) for key in keys))
            return dict(zip(keys, states))

        return await self.poll(probe, lambda states: any(s.visible for s in states.values()), policy)

    async def inspect(self, selector: str) -> ElementState:
        self.ensure_usable("inspect")
        return await self._handle.inspect(selector)

    # Lifecycle

    def ensure_usable(self, operation: str) -> None:
        self._session.ensure_ready(operation)
        if self._closed:
            raise SessionClosedError(f"Cannot {operation}: page is closed")

    @asynccontextmanager
    async def navigation(self, description: str) -> AsyncIterator[None]:
        """Mark a top-level navigation as in flight for the duration of the block."""

        if self._navigating is not None:
            raise NavigationInProgressError(
                f"Cannot start {description!r} while {self._navigating!r} is in flight"
            )
        self._navigating = description
        try:
            yield
        finally:
            self._navigating = None

    async def close(self) -> None:
        """Close this page; the session stays open."""

        if self._closed:
            return
        self._session.forget(self)
        await self.release()

    async def release(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._handle.close()

    def _interaction_timeout(self, timeout: Optional[float]) -> float:
        return timeout or self.settings.timeouts.interaction

    async def _interact(
        self,
        operation: str,
        selector: str,
        call: Awaitable[None],
        timeout: Optional[float],
    ) -> None:
        ceiling = self._interaction_timeout(timeout) + NAVIGATION_GRACE
        finished, _ = await bounded(call, self._session.closed_event, ceiling)
        if finished:
            return
        if self._session.is_closed:
            raise DriverFaultError(f"Session closed during {operation}", operation=operation)
        raise InteractionError(
            f"{operation} on {selector!r} did not complete within {ceiling:.2f}s",
            selector=selector,
        )
