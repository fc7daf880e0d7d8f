"""Browser harness for CAS authentication-flow scenarios."""

from .config import HarnessSettings, LaunchOptions, LoginSelectors, WaitPolicy, load_settings
from .errors import (
    AssertionTimeoutError,
    CertificateError,
    ConnectionFailedError,
    DNSResolutionError,
    DriverFaultError,
    HarnessError,
    InteractionError,
    LaunchError,
    LoginFlowError,
    NavigationError,
    NavigationInProgressError,
    NavigationTimeoutError,
    SessionClosedError,
)
from .logging_config import configure_logging
from .models import Credentials, LoginOutcome, LoginResult, NavigationResult
from .page import Page
from .session import Session, launch, open_session

__all__ = [
    "AssertionTimeoutError",
    "CertificateError",
    "ConnectionFailedError",
    "Credentials",
    "DNSResolutionError",
    "DriverFaultError",
    "HarnessError",
    "HarnessSettings",
    "InteractionError",
    "LaunchError",
    "LaunchOptions",
    "LoginFlowError",
    "LoginOutcome",
    "LoginResult",
    "LoginSelectors",
    "NavigationError",
    "NavigationInProgressError",
    "NavigationResult",
    "NavigationTimeoutError",
    "Page",
    "Session",
    "SessionClosedError",
    "WaitPolicy",
    "configure_logging",
    "launch",
    "load_settings",
    "open_session",
]
