import asyncio
import enum
import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from .engines.base import AddressSource
from .errors import InvalidInputError, ScopeCancelledError, SourceError
from .models import Address, Failure, Outcome, Success, TimedOut
from .scope import CancellationScope

logger = logging.getLogger(__name__)


class RacePolicy(str, enum.Enum):
    """How failures are weighed against later successes."""

    # First report of either kind ends the race.
    FAIL_FAST = "fail_fast"
    # Only a success, or every source failing, ends the race early.
    AWAIT_ALL_OR_SUCCESS = "await_all_or_success"


@dataclass(frozen=True)
class Report:
    """What one source task puts on the completion queue."""
    source_name: str
    result: Optional[Address] = None
    error: Optional[SourceError] = None


class RaceCoordinator:
    """
    Orchestrator Class.
    Races one query against every source and resolves to exactly one Outcome.

    Args:
        sources: Providers to race. Must not be empty.
        timeout: Race deadline in seconds. Must be positive.
        policy: RacePolicy (or its string value) deciding whether a failure is terminal.

    Raises:
        InvalidInputError: On empty sources, non-positive timeout or unknown policy.
    """

    def __init__(
        self,
        sources: Iterable[AddressSource],
        timeout: float,
        policy: Union[RacePolicy, str] = RacePolicy.FAIL_FAST
    ) -> None:
        self.sources: Tuple[AddressSource, ...] = tuple(sources)
        if not self.sources:
            raise InvalidInputError("race requires at least one source")
        if timeout is None or not math.isfinite(timeout) or timeout <= 0:
            raise InvalidInputError(f"race timeout must be positive, got {timeout}")
        try:
            self.policy = RacePolicy(policy)
        except ValueError:
            raise InvalidInputError(f"unknown race policy {policy!r}") from None
        self.timeout = float(timeout)

    async def race(self, query: str, parent: Optional[CancellationScope] = None) -> Outcome:
        """
        Runs the race and returns the single terminal outcome.

        Args:
            query: Key passed unchanged to every source
            parent: Enclosing scope; cancelling it aborts the race

        Returns:
            Success, Failure or TimedOut

        Raises:
            ScopeCancelledError: If the parent scope is cancelled before any outcome exists
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        # Sized to the source count so a late reporter never blocks.
        queue: asyncio.Queue = asyncio.Queue(maxsize=len(self.sources))

        logger.info(f"Racing {query} across {', '.join(s.name for s in self.sources)} (timeout {self.timeout}s)")

        with CancellationScope(self.timeout, parent=parent) as scope:
            for source in self.sources:
                scope.spawn(self._run_source(source, query, scope, queue), name=f"race:{source.name}")

            outcome = await self._select(queue, scope)

            # Stop the stragglers; their reports stay unread and die with the queue.
            scope.cancel()

        elapsed = loop.time() - started
        if outcome is None:
            logger.warning(f"Race for {query} aborted by enclosing scope after {elapsed:.3f}s")
            raise ScopeCancelledError("race cancelled by enclosing scope")

        logger.info(f"Race for {query} resolved as {type(outcome).__name__} in {elapsed:.3f}s")
        return outcome

    @staticmethod
    async def _run_source(
        source: AddressSource,
        query: str,
        scope: CancellationScope,
        queue: asyncio.Queue
    ) -> None:
        try:
            result = await source.fetch(query, scope)
        except ScopeCancelledError:
            logger.debug(f"{source.name}: skipped, scope already cancelled")
            return
        except SourceError as e:
            report = Report(source.name, error=e)
        except Exception as e:
            # Unexpected failures are still data, attributed to the source.
            logger.error(f"{source.name} raised {type(e).__name__}: {e}")
            report = Report(source.name, error=SourceError(source.name, f"{type(e).__name__}: {e}"))
        else:
            report = Report(source.name, result=result)

        logger.debug(f"{source.name}: reported {'error' if report.error else 'result'}")
        queue.put_nowait(report)

    async def _select(self, queue: asyncio.Queue, scope: CancellationScope) -> Optional[Outcome]:
        """Applies the policy to reports as they arrive. None means aborted by the parent."""
        failures: List[SourceError] = []

        while True:
            report = await self._next_report(queue, scope)

            if report is None:
                if not scope.expired:
                    return None
                if failures:
                    return Failure(failures[0])
                return TimedOut(scope.budget)

            if report.error is None:
                return Success(report.result)

            logger.info(f"{report.source_name} failed: {report.error.message}")
            failures.append(report.error)
            if self.policy is RacePolicy.FAIL_FAST or len(failures) == len(self.sources):
                return Failure(failures[0])

    @staticmethod
    async def _next_report(queue: asyncio.Queue, scope: CancellationScope) -> Optional[Report]:
        """
        Returns the next report, or None once the scope is cancelled.
        Reports already on the queue always win over a deadline that fired meanwhile.
        """
        if not queue.empty():
            return queue.get_nowait()
        if scope.cancelled:
            return None

        getter = asyncio.ensure_future(queue.get())
        expiry = asyncio.ensure_future(scope.wait())
        try:
            await asyncio.wait({getter, expiry}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            expiry.cancel()
            if not getter.done():
                getter.cancel()

        if getter.done() and not getter.cancelled():
            return getter.result()
        if not queue.empty():
            return queue.get_nowait()
        return None


async def race(
    query: str,
    sources: Iterable[AddressSource],
    timeout: float,
    policy: Union[RacePolicy, str] = RacePolicy.FAIL_FAST,
    parent: Optional[CancellationScope] = None
) -> Outcome:
    """Builds a one-shot coordinator and runs a single race."""
    return await RaceCoordinator(sources, timeout, policy).race(query, parent=parent)
