"""Read-only page assertions built on condition polling."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from .errors import AssertionTimeoutError, DriverFaultError
from .models import ElementState, WaitOutcome
from .waiting import PollResult

if TYPE_CHECKING:
    from .page import Page

LOGGER = logging.getLogger(__name__)


async def assert_visibility(page: "Page", selector: str, *, timeout: Optional[float] = None) -> None:
    """Wait until ``selector`` matches an element that is rendered on the page."""

    await _expect_element(
        page,
        "assert_visibility",
        selector,
        lambda state: state.present and state.visible,
        "a visible element",
        timeout,
    )


async def assert_invisibility(page: "Page", selector: str, *, timeout: Optional[float] = None) -> None:
    """Wait until ``selector`` matches nothing visible; a hidden element passes."""

    await _expect_element(
        page,
        "assert_invisibility",
        selector,
        lambda state: state.settled and not state.visible,
        "no visible element",
        timeout,
    )


async def assert_absence(page: "Page", selector: str, *, timeout: Optional[float] = None) -> None:
    """Wait until ``selector`` matches no element at all."""

    await _expect_element(
        page,
        "assert_absence",
        selector,
        lambda state: state.settled and not state.present,
        "no matching element",
        timeout,
    )


async def assert_text(
    page: "Page",
    selector: str,
    expected: str,
    *,
    exact: bool = True,
    timeout: Optional[float] = None,
) -> None:
    """Wait until the text of ``selector`` equals (or with ``exact=False`` contains) ``expected``."""

    def matches(state: ElementState) -> bool:
        if not state.present or state.text is None:
            return False
        if exact:
            return state.text.strip() == expected
        return expected in state.text

    await _expect_element(
        page,
        "assert_text",
        selector,
        matches,
        f"text {'==' if exact else 'containing'} {expected!r}",
        timeout,
    )


async def assert_cookie(page: "Page", name: str, *, timeout: Optional[float] = None) -> None:
    """Wait until the browser holds a cookie called ``name``, e.g. the CAS ``TGC``."""

    page.ensure_usable("assert_cookie")
    policy = page.settings.timeouts.assertion.with_timeout(timeout)
    result = await page.poll(
        page.cookies,
        lambda cookies: any(cookie.get("name") == name for cookie in cookies),
        policy,
    )
    target = f"cookie:{name}"
    _raise_on_failure(result, "assert_cookie", target, "cookie to be set", None)


async def assert_url(page: "Page", fragment: str, *, timeout: Optional[float] = None) -> None:
    """Wait until the page URL contains ``fragment``."""

    page.ensure_usable("assert_url")
    policy = page.settings.timeouts.assertion.with_timeout(timeout)

    async def current_url() -> str:
        return page.url

    result = await page.poll(current_url, lambda url: fragment in url, policy)
    last = ElementState(present=True, visible=True, summary=result.last) if result.last else None
    _raise_on_failure(result, "assert_url", f"url:{fragment}", f"URL containing {fragment!r}", last)


async def _expect_element(
    page: "Page",
    operation: str,
    selector: str,
    predicate: Callable[[ElementState], bool],
    expectation: str,
    timeout: Optional[float],
) -> None:
    page.ensure_usable(operation)
    policy = page.settings.timeouts.assertion.with_timeout(timeout)
    result = await page.wait_for(selector, predicate, policy)
    _raise_on_failure(result, operation, selector, expectation, result.last)


def _raise_on_failure(
    result: PollResult,
    operation: str,
    target: str,
    expectation: str,
    last_state: Optional[ElementState],
) -> None:
    if result.outcome is WaitOutcome.SATISFIED:
        LOGGER.debug("%s %r satisfied after %.2fs", operation, target, result.elapsed)
        return
    if result.outcome is WaitOutcome.DRIVER_FAULT:
        raise DriverFaultError(
            f"{operation} for {target!r} aborted after {result.elapsed:.2f}s: "
            "browser connection lost",
            operation=operation,
        ) from result.fault
    LOGGER.info("%s %r timed out after %.2fs", operation, target, result.elapsed)
    raise AssertionTimeoutError(
        operation,
        target,
        elapsed=result.elapsed,
        last_state=last_state,
        expectation=expectation,
    )
