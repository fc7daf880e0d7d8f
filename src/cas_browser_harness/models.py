"""Shared models used across the scenario harness."""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class SessionState(str, enum.Enum):
    """Lifecycle of a browser session."""

    STARTING = "starting"
    READY = "ready"
    CLOSED = "closed"


class LoadState(str, enum.Enum):
    """Load state of a page."""

    LOADING = "loading"
    IDLE = "idle"


class WaitOutcome(str, enum.Enum):
    """Terminal state of a single polled wait."""

    SATISFIED = "satisfied"
    TIMED_OUT = "timed_out"
    DRIVER_FAULT = "driver_fault"


class LoginOutcome(str, enum.Enum):
    """Screen reached after submitting the login form."""

    SUCCESS = "success"
    CHALLENGE = "challenge"
    REJECTED = "rejected"


class Credentials(BaseModel):
    """Principal and secret supplied by a scenario."""

    model_config = ConfigDict(frozen=True)

    principal: str
    secret: SecretStr

    @classmethod
    def of(cls, principal: str, secret: str) -> "Credentials":
        return cls(principal=principal, secret=SecretStr(secret))


class ElementState(BaseModel):
    """Snapshot of what a selector matched at one poll."""

    present: bool = False
    visible: bool = False
    settled: bool = Field(default=True, description="False when the page was between documents.")
    text: Optional[str] = None
    summary: Optional[str] = None

    def describe(self) -> str:
        if not self.present:
            detail = f" [{self.summary}]" if self.summary else ""
            return f"no matching element{detail}"
        shown = "visible" if self.visible else "hidden"
        return f"{shown} element {self.summary or ''}".rstrip()


class NavigationResult(BaseModel):
    """Outcome of a successful navigation."""

    url: str
    status: Optional[int] = None
    elapsed: float = 0.0


class LoginResult(BaseModel):
    """Outcome of a completed login attempt."""

    outcome: LoginOutcome
    indicator: str = Field(description="Selector of the indicator that resolved the login.")
    url: Optional[str] = None
    elapsed: float = 0.0
