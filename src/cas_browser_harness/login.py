"""Multi-step CAS login protocol."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .errors import DriverFaultError, InteractionError, LoginFlowError
from .logging_config import mask_principal
from .models import Credentials, ElementState, LoginOutcome, LoginResult, WaitOutcome
from .waiting import PollResult

if TYPE_CHECKING:
    from .page import Page

LOGGER = logging.getLogger(__name__)


async def login_with(
    page: "Page",
    credentials: Credentials,
    *,
    timeout: Optional[float] = None,
) -> LoginResult:
    """Fill and submit the login form, then wait for the screen it leads to.

    The submission may take several server round-trips before the next page
    renders, so the indicators are polled until exactly one of the success
    banner, the MFA challenge field or the error banner is visible.
    """

    page.ensure_usable("log in")
    if page.navigation_error is not None:
        raise LoginFlowError(
            f"Login form unavailable: {page.navigation_error}"
        ) from page.navigation_error

    selectors = page.settings.selectors
    timeouts = page.settings.timeouts
    LOGGER.info("Logging in as %s at %s", mask_principal(credentials.principal), page.url)

    async with page.navigation("login"):
        form = await page.wait_for(
            selectors.username,
            lambda state: state.visible,
            timeouts.poll(timeouts.login_form),
        )
        _raise_on_fault(form, "login form lookup")
        if not form.satisfied:
            raise LoginFlowError(
                f"Login field {selectors.username!r} did not appear on {page.url} "
                f"within {form.elapsed:.2f}s; last observed {_describe(form.last)}"
            )

        try:
            await page.fill(selectors.username, credentials.principal)
            await page.fill(selectors.password, credentials.secret.get_secret_value())
            await page.click(selectors.submit)
        except InteractionError as exc:
            raise LoginFlowError(
                f"Could not submit the login form on {page.url}: {exc}"
            ) from exc

        indicators = {
            LoginOutcome.SUCCESS: selectors.success,
            LoginOutcome.CHALLENGE: selectors.challenge,
            LoginOutcome.REJECTED: selectors.rejected,
        }
        result = await _await_indicator(page, indicators, timeout or timeouts.login)

    LOGGER.info("Login as %s ended in %s", mask_principal(credentials.principal), result.outcome.value)
    return result


async def complete_challenge(
    page: "Page",
    token: str,
    *,
    timeout: Optional[float] = None,
) -> LoginResult:
    """Enter a one-time token on the challenge screen and submit it."""

    page.ensure_usable("answer the challenge")
    selectors = page.settings.selectors
    timeouts = page.settings.timeouts

    async with page.navigation("challenge"):
        field = await page.wait_for(
            selectors.challenge,
            lambda state: state.visible,
            timeouts.poll(timeouts.login_form),
        )
        _raise_on_fault(field, "challenge lookup")
        if not field.satisfied:
            raise LoginFlowError(
                f"Challenge field {selectors.challenge!r} is not shown on {page.url}; "
                f"last observed {_describe(field.last)}"
            )
        try:
            await page.fill(selectors.challenge, token)
            await page.click(selectors.challenge_submit)
        except InteractionError as exc:
            raise LoginFlowError(f"Could not submit the challenge on {page.url}: {exc}") from exc

        indicators = {
            LoginOutcome.SUCCESS: selectors.success,
            LoginOutcome.REJECTED: selectors.rejected,
        }
        return await _await_indicator(page, indicators, timeout or timeouts.login)


async def _await_indicator(
    page: "Page",
    indicators: dict[LoginOutcome, str],
    timeout: float,
) -> LoginResult:
    polled = await page.wait_for_any(indicators, page.settings.timeouts.poll(timeout))
    _raise_on_fault(polled, "login")
    if not polled.satisfied:
        expected = ", ".join(f"{o.value}={s!r}" for o, s in indicators.items())
        raise LoginFlowError(
            f"No login outcome on {page.url} after {polled.elapsed:.2f}s; "
            f"none of {expected} became visible"
        )

    visible = [outcome for outcome, state in (polled.last or {}).items() if state.visible]
    if not visible:
        raise LoginFlowError(f"Login outcome on {page.url} vanished before it could be read")
    if len(visible) > 1:
        names = ", ".join(outcome.value for outcome in visible)
        raise LoginFlowError(f"Ambiguous login outcome on {page.url}: {names} all visible")
    outcome = visible[0]
    return LoginResult(
        outcome=outcome,
        indicator=indicators[outcome],
        url=page.url,
        elapsed=polled.elapsed,
    )


def _raise_on_fault(result: PollResult, operation: str) -> None:
    if result.outcome is WaitOutcome.DRIVER_FAULT:
        raise DriverFaultError(
            f"Browser connection lost during {operation} after {result.elapsed:.2f}s",
            operation=operation,
        ) from result.fault


def _describe(state: Optional[ElementState]) -> str:
    return state.describe() if state is not None else "nothing"
