"""Browser engine abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from ..config import LaunchOptions
from ..models import ElementState


class PageHandle(ABC):
    """One browsing context inside a running browser.

    Implementations translate engine failures into harness errors: navigation
    failures into ``NavigationError`` subtypes, a lost connection into
    ``DriverFaultError`` and failed input into ``InteractionError``.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Return the current URL."""

    @abstractmethod
    async def goto(self, url: str, *, timeout: float) -> Optional[int]:
        """Navigate and wait for the load event, returning the HTTP status if known."""

    @abstractmethod
    async def fill(self, selector: str, text: str, *, timeout: float) -> None:
        """Replace the value of an input field."""

    @abstractmethod
    async def click(self, selector: str, *, timeout: float) -> None:
        """Click the element matching ``selector``."""

    @abstractmethod
    async def inspect(self, selector: str) -> ElementState:
        """Return a read-only snapshot of the element matching ``selector``."""

    @abstractmethod
    async def title(self) -> str:
        """Return the document title."""

    @abstractmethod
    async def cookies(self) -> list[dict[str, Any]]:
        """Return cookies visible to this page."""

    @abstractmethod
    async def screenshot(self, path: Path) -> None:
        """Write a PNG screenshot of the viewport."""

    @abstractmethod
    async def close(self) -> None:
        """Close the browsing context."""


class BrowserHandle(ABC):
    """A running browser process."""

    @abstractmethod
    async def new_page(self) -> PageHandle:
        """Open a new page."""

    @abstractmethod
    async def close(self) -> None:
        """Terminate the browser and release its resources."""


class BrowserBackend(ABC):
    """Factory for browser processes."""

    @abstractmethod
    async def launch(self, options: LaunchOptions) -> BrowserHandle:
        """Start a browser configured by ``options`` or raise ``LaunchError``."""
