"""Condition polling shared by every wait in the harness.

The harness exposes no fixed-delay primitive. Callers describe the page
state they expect and :func:`poll_until` probes for it with a growing
interval until it holds, the ceiling passes, or the session goes away.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .config import WaitPolicy
from .errors import DriverFaultError
from .models import WaitOutcome

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PollResult(Generic[T]):
    """How a polled wait ended and the last value it observed."""

    outcome: WaitOutcome
    elapsed: float
    last: Optional[T] = None
    fault: Optional[DriverFaultError] = None

    @property
    def satisfied(self) -> bool:
        return self.outcome is WaitOutcome.SATISFIED


async def poll_until(
    probe: Callable[[], Awaitable[T]],
    predicate: Callable[[T], bool],
    policy: WaitPolicy,
    *,
    aborted: Optional[asyncio.Event] = None,
) -> PollResult[T]:
    """Probe until ``predicate`` holds or ``policy.timeout`` elapses.

    ``aborted`` is set when the owning session closes; a wait in progress then
    ends as ``DRIVER_FAULT`` instead of running to its deadline. Every probe is
    bounded by the time remaining, so a hung engine call ends the wait as
    ``TIMED_OUT``.
    """

    loop = asyncio.get_running_loop()
    started = loop.time()
    deadline = started + policy.timeout
    interval = policy.interval
    last: Optional[T] = None

    def _result(outcome: WaitOutcome, fault: Optional[DriverFaultError] = None) -> PollResult[T]:
        return PollResult(outcome=outcome, elapsed=loop.time() - started, last=last, fault=fault)

    while True:
        if aborted is not None and aborted.is_set():
            return _result(WaitOutcome.DRIVER_FAULT)
        budget = max(deadline - loop.time(), policy.interval)
        try:
            finished, value = await bounded(probe(), aborted, budget)
        except DriverFaultError as exc:
            LOGGER.debug("Probe lost the browser connection: %s", exc)
            return _result(WaitOutcome.DRIVER_FAULT, exc)
        if not finished:
            if aborted is not None and aborted.is_set():
                return _result(WaitOutcome.DRIVER_FAULT)
            return _result(WaitOutcome.TIMED_OUT)
        last = value
        if predicate(value):
            return _result(WaitOutcome.SATISFIED)

        remaining = deadline - loop.time()
        if remaining <= 0:
            return _result(WaitOutcome.TIMED_OUT)
        if await _pause(min(interval, remaining), aborted):
            return _result(WaitOutcome.DRIVER_FAULT)
        interval = min(interval * policy.backoff, policy.max_interval)


async def bounded(
    awaitable: Awaitable[T],
    aborted: Optional[asyncio.Event],
    timeout: float,
) -> tuple[bool, Optional[T]]:
    """Await ``awaitable`` for at most ``timeout`` seconds or until ``aborted`` fires.

    Returns ``(True, value)`` when it finished, ``(False, None)`` otherwise.
    """

    task = asyncio.ensure_future(awaitable)
    waiters: set[asyncio.Future] = {task}
    if aborted is not None:
        waiters.add(asyncio.ensure_future(aborted.wait()))
    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()
    if task in done:
        return True, task.result()
    return False, None


async def _pause(delay: float, aborted: Optional[asyncio.Event]) -> bool:
    """Sleep for ``delay`` seconds; return True if ``aborted`` fired first."""

    if aborted is None:
        await asyncio.sleep(delay)
        return False
    try:
        await asyncio.wait_for(aborted.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True
