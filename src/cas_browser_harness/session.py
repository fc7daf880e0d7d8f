"""Browser session lifecycle."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from types import TracebackType
from typing import AsyncIterator, Optional

from .browser.base import BrowserBackend, BrowserHandle
from .config import HarnessSettings, LaunchOptions
from .errors import SessionClosedError
from .factory import build_backend
from .models import SessionState
from .page import Page

LOGGER = logging.getLogger(__name__)


class Session:
    """One browser process owned by a single scenario.

    A session is ``ready`` once launched and ``closed`` after :meth:`close`.
    Closing releases every page it opened and then the browser itself; waits
    pending on its pages end as driver faults.
    """

    def __init__(
        self,
        backend: BrowserBackend,
        options: LaunchOptions,
        settings: HarnessSettings,
    ) -> None:
        self._backend = backend
        self.options = options
        self.settings = settings
        self._state = SessionState.STARTING
        self._handle: Optional[BrowserHandle] = None
        self._pages: list[Page] = []
        self._closed = asyncio.Event()
        self._closing: Optional[asyncio.Future] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._state is SessionState.CLOSED

    @property
    def pages(self) -> list[Page]:
        return list(self._pages)

    @property
    def closed_event(self) -> asyncio.Event:
        """Event set as soon as the session starts closing."""

        return self._closed

    async def start(self) -> None:
        """Launch the browser process."""

        if self._state is not SessionState.STARTING:
            raise SessionClosedError(f"Session cannot start from state {self._state.value}")
        try:
            self._handle = await self._backend.launch(self.options)
        except BaseException:
            self._state = SessionState.CLOSED
            self._closed.set()
            raise
        self._state = SessionState.READY
        LOGGER.info(
            "Browser session ready (headless=%s, trust_all_certificates=%s)",
            self.options.headless,
            self.options.trust_all_certificates,
        )

    def ensure_ready(self, operation: str) -> None:
        if self._state is not SessionState.READY:
            raise SessionClosedError(f"Cannot {operation}: session is {self._state.value}")

    async def new_page(self) -> Page:
        """Open a page owned by this session."""

        self.ensure_ready("open a page")
        if self._handle is None:
            raise SessionClosedError("Cannot open a page: session has no browser")
        handle = await self._handle.new_page()
        page = Page(self, handle)
        self._pages.append(page)
        LOGGER.debug("Opened page %d", len(self._pages))
        return page

    async def close(self) -> None:
        """Release the session; every caller shares one release and its outcome."""

        if self._closing is None:
            LOGGER.info("Closing browser session")
            self._state = SessionState.CLOSED
            self._closed.set()
            self._closing = asyncio.ensure_future(self._release())
        await asyncio.shield(self._closing)

    def forget(self, page: Page) -> None:
        if page in self._pages:
            self._pages.remove(page)

    async def _release(self) -> None:
        pages, self._pages = self._pages, []
        handle, self._handle = self._handle, None
        try:
            for page in pages:
                await page.release()
        finally:
            if handle is not None:
                await handle.close()
        LOGGER.debug("Browser session released")

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()


async def launch(
    options: Optional[LaunchOptions] = None,
    *,
    backend: Optional[BrowserBackend] = None,
    settings: Optional[HarnessSettings] = None,
) -> Session:
    """Start a browser and return a ready session.

    The caller owns the session and must close it; prefer :func:`open_session`
    or ``async with await launch(...)``.
    """

    settings = settings or HarnessSettings()
    session = Session(
        backend or build_backend(settings),
        options or settings.launch,
        settings,
    )
    await session.start()
    return session


@asynccontextmanager
async def open_session(
    options: Optional[LaunchOptions] = None,
    *,
    backend: Optional[BrowserBackend] = None,
    settings: Optional[HarnessSettings] = None,
) -> AsyncIterator[Session]:
    """Launch a session for the duration of an ``async with`` block."""

    session = await launch(options, backend=backend, settings=settings)
    try:
        yield session
    finally:
        await session.close()
