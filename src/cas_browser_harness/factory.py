"""Factories for constructing components from settings."""

from __future__ import annotations

from .browser.base import BrowserBackend
from .browser.playwright_backend import PlaywrightBackend
from .config import HarnessSettings


def build_backend(settings: HarnessSettings) -> BrowserBackend:
    backend = settings.backend.lower()
    if backend == "playwright":
        return PlaywrightBackend()
    raise ValueError(f"Unsupported browser backend: {settings.backend}")
