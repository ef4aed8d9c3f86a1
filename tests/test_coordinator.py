import asyncio
import random

import pytest

from conftest import DelayedSource, make_address
from ceprace.coordinator import RaceCoordinator, RacePolicy, Report, race
from ceprace.errors import InvalidInputError, ScopeCancelledError, SourceError
from ceprace.models import Failure, Success, TimedOut
from ceprace.scope import CancellationScope


# --- END-TO-END SCENARIOS (timeout 1s) ---

@pytest.mark.asyncio
async def test_first_success_wins():
    a = DelayedSource("A", 0.1, result=make_address("A", "06341655"))
    b = DelayedSource("B", 0.3)

    outcome = await race("06341655", [a, b], timeout=1.0)

    assert isinstance(outcome, Success)
    assert outcome.result.identifier == "06341655"
    assert outcome.source_name == "A"


@pytest.mark.asyncio
async def test_first_error_wins_under_fail_fast():
    a = DelayedSource("A", 0.05, error="not found")
    b = DelayedSource("B", 0.08)

    outcome = await race("06341655", [a, b], timeout=1.0)

    assert isinstance(outcome, Failure)
    assert outcome.source_name == "A"
    assert outcome.message == "not found"


@pytest.mark.asyncio
async def test_everything_slower_than_deadline_times_out():
    a = DelayedSource("A", 1.2)
    b = DelayedSource("B", 1.2)

    loop = asyncio.get_running_loop()
    started = loop.time()
    outcome = await race("06341655", [a, b], timeout=1.0)

    assert outcome == TimedOut(1.0)
    assert loop.time() - started < 1.15


@pytest.mark.asyncio
async def test_zero_sources_fail_fast():
    with pytest.raises(InvalidInputError):
        await race("06341655", [], timeout=1.0)


# --- INPUT VALIDATION ---

@pytest.mark.parametrize("timeout", [0, -1.0, None, float("nan"), float("inf")])
def test_invalid_timeout_rejected(timeout):
    a = DelayedSource("A", 0.1)
    with pytest.raises(InvalidInputError):
        RaceCoordinator([a], timeout=timeout)
    assert a.calls == 0


def test_unknown_policy_rejected():
    with pytest.raises(InvalidInputError):
        RaceCoordinator([DelayedSource("A", 0.1)], timeout=1.0, policy="best_effort")


def test_policy_accepts_string_value():
    coordinator = RaceCoordinator([DelayedSource("A", 0.1)], timeout=1.0, policy="await_all_or_success")
    assert coordinator.policy is RacePolicy.AWAIT_ALL_OR_SUCCESS


def test_invalid_input_is_value_error():
    with pytest.raises(ValueError):
        RaceCoordinator([], timeout=1.0)


# --- ORDERING & TIMEOUT DOMINANCE ---

@pytest.mark.asyncio
async def test_fastest_success_wins_regardless_of_order():
    slow = DelayedSource("slow", 0.2)
    fast = DelayedSource("fast", 0.02)

    outcome = await race("01153000", [slow, fast], timeout=1.0)

    assert outcome.source_name == "fast"


@pytest.mark.asyncio
async def test_success_just_before_deadline_is_not_a_timeout():
    a = DelayedSource("A", 0.15)

    outcome = await race("01153000", [a], timeout=0.25)

    assert isinstance(outcome, Success)


@pytest.mark.asyncio
async def test_enqueued_report_beats_fired_deadline():
    coordinator = RaceCoordinator([DelayedSource("A", 1)], timeout=0.01)
    queue = asyncio.Queue(maxsize=1)
    scope = CancellationScope(timeout=0.01)
    await asyncio.wait_for(scope.wait(), timeout=1.0)
    assert scope.expired

    queue.put_nowait(Report("A", result=make_address("A")))
    outcome = await coordinator._select(queue, scope)

    assert isinstance(outcome, Success)
    assert outcome.source_name == "A"


@pytest.mark.asyncio
async def test_error_only_sources_time_out_when_slow():
    a = DelayedSource("A", 0.5, error="boom")

    outcome = await race("01153000", [a], timeout=0.05)

    assert isinstance(outcome, TimedOut)


# --- CANCELLATION & LATE ARRIVALS ---

@pytest.mark.asyncio
async def test_losers_observe_cancellation():
    fast = DelayedSource("fast", 0.01)
    slow = DelayedSource("slow", 5)

    await race("01153000", [fast, slow], timeout=1.0)
    await asyncio.sleep(0.05)

    assert slow.started
    assert slow.cancelled
    assert slow.scope.cancelled
    assert not slow.finished


@pytest.mark.asyncio
async def test_timeout_cancels_all_sources():
    a = DelayedSource("A", 5)
    b = DelayedSource("B", 5)

    await race("01153000", [a, b], timeout=0.05)
    await asyncio.sleep(0.05)

    assert a.cancelled and b.cancelled


@pytest.mark.asyncio
async def test_late_arrival_is_discarded():
    fast = DelayedSource("fast", 0.01)
    stubborn = DelayedSource("stubborn", 0.1, stubborn=True)

    loop = asyncio.get_running_loop()
    started = loop.time()
    outcome = await race("01153000", [fast, stubborn], timeout=1.0)
    returned_after = loop.time() - started

    # Coordinator does not wait for the stubborn source.
    assert returned_after < 0.1

    await asyncio.sleep(0.2)

    assert stubborn.cancelled
    assert stubborn.finished
    assert isinstance(outcome, Success)
    assert outcome.source_name == "fast"


@pytest.mark.asyncio
async def test_error_after_timeout_is_discarded():
    a = DelayedSource("A", 0.1, error="late failure", stubborn=True)

    outcome = await race("01153000", [a], timeout=0.02)
    await asyncio.sleep(0.2)

    assert outcome == TimedOut(0.02)
    assert a.finished


@pytest.mark.asyncio
async def test_parent_cancellation_aborts_race():
    parent = CancellationScope()
    a = DelayedSource("A", 5)

    async def cancel_soon():
        await asyncio.sleep(0.02)
        parent.cancel()

    canceller = asyncio.ensure_future(cancel_soon())
    with pytest.raises(ScopeCancelledError):
        await race("01153000", [a], timeout=1.0, parent=parent)
    await canceller
    await asyncio.sleep(0)

    assert a.cancelled


@pytest.mark.asyncio
async def test_parent_deadline_counts_as_timeout():
    parent = CancellationScope(timeout=0.03)

    outcome = await race("01153000", [DelayedSource("A", 5)], timeout=1.0, parent=parent)

    assert isinstance(outcome, TimedOut)
    # Reports the deadline the race actually had, not its own longer one.
    assert 0 < outcome.timeout <= 0.03


# --- SOURCE ERRORS ARE DATA ---

class ExplodingSource:
    name = "exploding"

    async def fetch(self, query, scope):
        raise RuntimeError("kaboom")


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_failure():
    outcome = await race("01153000", [ExplodingSource()], timeout=1.0)

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, SourceError)
    assert outcome.source_name == "exploding"
    assert "kaboom" in outcome.message


# --- AWAIT_ALL_OR_SUCCESS POLICY ---

@pytest.mark.asyncio
async def test_await_all_prefers_later_success():
    a = DelayedSource("A", 0.02, error="not found")
    b = DelayedSource("B", 0.08)

    outcome = await race("06341655", [a, b], timeout=1.0, policy=RacePolicy.AWAIT_ALL_OR_SUCCESS)

    assert isinstance(outcome, Success)
    assert outcome.source_name == "B"


@pytest.mark.asyncio
async def test_await_all_reports_first_failure_when_all_fail():
    a = DelayedSource("A", 0.02, error="first")
    b = DelayedSource("B", 0.05, error="second")

    outcome = await race("06341655", [a, b], timeout=1.0, policy="await_all_or_success")

    assert isinstance(outcome, Failure)
    assert outcome.message == "first"


@pytest.mark.asyncio
async def test_await_all_failure_then_deadline_reports_failure():
    a = DelayedSource("A", 0.01, error="not found")
    b = DelayedSource("B", 5)

    outcome = await race("06341655", [a, b], timeout=0.1, policy="await_all_or_success")

    assert isinstance(outcome, Failure)
    assert outcome.source_name == "A"


# --- AT-MOST-ONE-OUTCOME UNDER FUZZED LATENCIES ---

@pytest.mark.asyncio
@pytest.mark.parametrize("policy", list(RacePolicy))
async def test_fuzzed_races_resolve_exactly_once(policy):
    rng = random.Random(1655)
    timeout = 0.05

    for _ in range(25):
        sources = [
            DelayedSource(f"S{i}", rng.uniform(0, 0.08), error="nope" if rng.random() < 0.3 else None)
            for i in range(rng.randint(1, 4))
        ]
        outcome = await race("06341650", sources, timeout=timeout, policy=policy)

        assert isinstance(outcome, (Success, Failure, TimedOut))
        if isinstance(outcome, Success):
            winner = next(s for s in sources if s.name == outcome.source_name)
            assert winner.error is None
        elif isinstance(outcome, Failure):
            assert outcome.message == "nope"
        for source in sources:
            assert source.calls == 1

    await asyncio.sleep(0.01)
