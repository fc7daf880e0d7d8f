import asyncio

import pytest

from cas_browser_harness.config import WaitPolicy
from cas_browser_harness.errors import DriverFaultError
from cas_browser_harness.models import WaitOutcome
from cas_browser_harness.waiting import bounded, poll_until


def _policy(**overrides: float) -> WaitPolicy:
    values = {"timeout": 1.0, "interval": 0.01, "backoff": 1.5, "max_interval": 0.05}
    values.update(overrides)
    return WaitPolicy(**values)


def test_resolves_shortly_after_condition_becomes_true() -> None:
    async def scenario():
        loop = asyncio.get_running_loop()
        ready_at = loop.time() + 0.2

        async def probe() -> float:
            return loop.time()

        return await poll_until(probe, lambda now: now >= ready_at, _policy(timeout=5.0))

    result = asyncio.run(scenario())

    assert result.outcome is WaitOutcome.SATISFIED
    assert 0.2 <= result.elapsed < 0.2 + 0.05 + 0.2


def test_times_out_with_last_observation() -> None:
    async def probe() -> str:
        return "still loading"

    result = asyncio.run(poll_until(probe, lambda value: False, _policy(timeout=0.3)))

    assert result.outcome is WaitOutcome.TIMED_OUT
    assert result.last == "still loading"
    assert 0.3 <= result.elapsed < 0.6


def test_interval_backs_off_up_to_ceiling() -> None:
    calls: list[int] = []

    async def probe() -> int:
        calls.append(1)
        return len(calls)

    policy = _policy(timeout=0.5, interval=0.01, backoff=2.0, max_interval=0.08)
    asyncio.run(poll_until(probe, lambda value: False, policy))

    assert 5 <= len(calls) <= 15


def test_hung_probe_does_not_outlive_the_deadline() -> None:
    async def probe() -> None:
        await asyncio.sleep(60)

    result = asyncio.run(poll_until(probe, lambda value: True, _policy(timeout=0.2)))

    assert result.outcome is WaitOutcome.TIMED_OUT
    assert result.elapsed < 1.0


def test_abort_during_pause_ends_as_driver_fault() -> None:
    async def scenario():
        aborted = asyncio.Event()

        async def probe() -> bool:
            return False

        asyncio.get_running_loop().call_later(0.1, aborted.set)
        return await poll_until(
            probe,
            lambda value: value,
            _policy(timeout=10.0, max_interval=1.0),
            aborted=aborted,
        )

    result = asyncio.run(scenario())

    assert result.outcome is WaitOutcome.DRIVER_FAULT
    assert result.elapsed < 1.0


def test_probe_fault_ends_as_driver_fault() -> None:
    async def probe() -> None:
        raise DriverFaultError("Target closed")

    result = asyncio.run(poll_until(probe, lambda value: True, _policy()))

    assert result.outcome is WaitOutcome.DRIVER_FAULT
    assert isinstance(result.fault, DriverFaultError)


def test_unexpected_probe_errors_propagate() -> None:
    async def probe() -> None:
        raise ValueError("bad selector")

    with pytest.raises(ValueError, match="bad selector"):
        asyncio.run(poll_until(probe, lambda value: True, _policy()))


def test_bounded_reports_unfinished_work() -> None:
    async def scenario():
        fast = await bounded(asyncio.sleep(0, result="done"), None, 1.0)
        slow = await bounded(asyncio.sleep(10), None, 0.05)
        return fast, slow

    fast, slow = asyncio.run(scenario())

    assert fast == (True, "done")
    assert slow == (False, None)
