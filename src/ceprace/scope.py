"""
Cancellation scopes for asyncio tasks.

A scope carries an optional absolute deadline, cancels itself when the deadline
passes, and cancels every task and child scope bound to it when it is cancelled.
Cancellation only flows downward: a child never cancels its parent.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional, Set

from .errors import ScopeCancelledError

logger = logging.getLogger(__name__)


class CancellationScope:
    """
    Propagating cancellation signal with an optional deadline.

    Must be created from inside a running event loop.

    Args:
        timeout: Seconds until the scope expires. None means no own deadline.
        parent: Enclosing scope. Its deadline also bounds this scope, and
            cancelling it cancels this scope.
    """

    def __init__(self, timeout: Optional[float] = None, parent: Optional["CancellationScope"] = None) -> None:
        self._loop = asyncio.get_running_loop()
        self._parent = parent
        self._children: Set["CancellationScope"] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._event = asyncio.Event()
        self._cancelled = False
        self._expired = False
        self._timer: Optional[asyncio.TimerHandle] = None

        now = self._loop.time()
        deadline = None if timeout is None else now + timeout
        budget = timeout
        if parent is not None and parent.deadline is not None:
            if deadline is None or parent.deadline < deadline:
                deadline = parent.deadline
                budget = max(0.0, parent.deadline - now)
        self.deadline: Optional[float] = deadline
        # Seconds this scope was actually given, after a parent's earlier deadline.
        self.budget: Optional[float] = budget

        if parent is not None:
            if parent.cancelled:
                self._cancel(expired=parent.expired)
                return
            parent._children.add(self)

        if deadline is not None:
            self._timer = self._loop.call_at(deadline, self._expire)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        """True when the scope was cancelled by its deadline (its own or a parent's)."""
        return self._expired

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._loop.time())

    def cancel(self) -> None:
        """Cancels the scope, its spawned tasks and its children. Idempotent."""
        self._cancel(expired=False)

    def _expire(self) -> None:
        self._timer = None
        if not self._cancelled:
            logger.debug("Cancellation scope deadline reached")
        self._cancel(expired=True)

    def _cancel(self, expired: bool) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._expired = expired

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        self._event.set()

        for task in list(self._tasks):
            task.cancel()

        children, self._children = self._children, set()
        for child in children:
            child._cancel(expired=expired)

        if self._parent is not None:
            self._parent._children.discard(self)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ScopeCancelledError("scope expired" if self._expired else "scope cancelled")

    async def wait(self) -> None:
        """Suspends until the scope is cancelled."""
        await self._event.wait()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> asyncio.Task:
        """
        Starts a task bound to this scope.

        The scope holds a reference to the task until it finishes and cancels
        it if the scope is cancelled first.

        Raises:
            ScopeCancelledError: If the scope is already cancelled.
        """
        if self._cancelled:
            coro.close()
            raise ScopeCancelledError("cannot spawn into a cancelled scope")
        task = self._loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def __enter__(self) -> "CancellationScope":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cancel()
