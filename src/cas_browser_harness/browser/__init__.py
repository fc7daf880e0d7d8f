"""Browser engine seam used by sessions and pages."""

from .base import BrowserBackend, BrowserHandle, PageHandle

__all__ = ["BrowserBackend", "BrowserHandle", "PageHandle"]
