"""Error taxonomy for the scenario harness."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import ElementState


class HarnessError(RuntimeError):
    """Base class for failures raised by the harness."""


class LaunchError(HarnessError):
    """Raised when the browser process cannot be started."""


class SessionClosedError(HarnessError):
    """Raised when a session or one of its pages is used after release."""


class DriverFaultError(HarnessError):
    """Raised when the connection to the browser is lost mid-operation."""

    def __init__(self, message: str, *, operation: Optional[str] = None) -> None:
        super().__init__(message)
        self.operation = operation


class NavigationError(HarnessError):
    """Raised when a page fails to reach the idle load state."""

    reason = "navigation failed"

    def __init__(
        self,
        url: str,
        *,
        elapsed: float = 0.0,
        detail: Optional[str] = None,
    ) -> None:
        message = f"{self.reason}: {url} after {elapsed:.2f}s"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.url = url
        self.elapsed = elapsed
        self.detail = detail


class CertificateError(NavigationError):
    reason = "TLS certificate rejected"


class DNSResolutionError(NavigationError):
    reason = "host could not be resolved"


class ConnectionFailedError(NavigationError):
    reason = "connection failed"


class NavigationTimeoutError(NavigationError):
    reason = "navigation timed out"


class NavigationInProgressError(HarnessError):
    """Raised when a second navigation is issued on a page that is still navigating."""


class InteractionError(HarnessError):
    """Raised when typing into or clicking an element fails."""

    def __init__(self, message: str, *, selector: str) -> None:
        super().__init__(message)
        self.selector = selector


class LoginFlowError(HarnessError):
    """Raised when a login neither succeeds, challenges nor is rejected in time."""


class AssertionTimeoutError(AssertionError):
    """Raised when an asserted page condition was not met before the deadline."""

    def __init__(
        self,
        operation: str,
        selector: str,
        *,
        elapsed: float,
        last_state: Optional["ElementState"] = None,
        expectation: Optional[str] = None,
    ) -> None:
        message = f"{operation} failed for {selector!r} after {elapsed:.2f}s"
        if expectation:
            message = f"{message}: expected {expectation}"
        if last_state is not None:
            message = f"{message}; last observed {last_state.describe()}"
        super().__init__(message)
        self.operation = operation
        self.selector = selector
        self.elapsed = elapsed
        self.last_state = last_state
