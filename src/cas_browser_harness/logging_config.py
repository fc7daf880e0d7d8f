"""Logging setup for scenario runs."""

from __future__ import annotations

import logging
import os


def configure_logging(level: str = "INFO") -> None:
    numeric_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
    logging.getLogger("playwright").setLevel(os.getenv("NOISY_LOG_LEVEL", "WARNING"))


def mask_principal(principal: str) -> str:
    """Return ``principal`` with all but its first and last characters hidden."""

    if len(principal) <= 2:
        return "*" * len(principal)
    return f"{principal[0]}{'*' * (len(principal) - 2)}{principal[-1]}"
