"""
Cooperative Schedulers

A panel runs its tick loop and its delayed shot-clock reset on one
single-threaded scheduling context. The context needs only two things:

    now_ms()                   monotonic instant in milliseconds
    call_later(delay_ms, cb)   run cb once after delay_ms, returning a
                               handle with cancel()

Implementations:
    AsyncioScheduler  - backed by an asyncio event loop (production)
    ManualScheduler   - virtual time advanced explicitly (tests, replays)
"""

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def now_ms(self) -> int: ...

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop's monotonic clock."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()

    def now_ms(self) -> int:
        return int(self.loop.time() * 1000)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay_ms / 1000.0, callback)


class ManualHandle:
    """Handle for a callback queued on a ManualScheduler."""

    def __init__(self, when: int, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """
    Deterministic scheduler driven by explicit calls to advance().

    Callbacks due at the same instant run in the order they were scheduled.
    A callback may schedule further callbacks; those run within the same
    advance() if they fall due before its target time.

    Example::

        sched = ManualScheduler()
        sched.call_later(150, fire)
        sched.advance(100)   # nothing yet
        sched.advance(50)    # fire() runs at t=150
    """

    def __init__(self, start_ms: int = 0):
        self._now = start_ms
        self._queue: List[Tuple[int, int, ManualHandle]] = []
        self._seq = itertools.count()

    def now_ms(self) -> int:
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self._now + max(0, int(delay_ms)), callback)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of queued, non-cancelled callbacks."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled())

    def advance(self, delta_ms: int) -> int:
        """
        Move virtual time forward, running every callback that falls due.

        Returns:
            Number of callbacks executed
        """
        if delta_ms < 0:
            raise ValueError("ManualScheduler cannot move backwards")

        target = self._now + delta_ms
        executed = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._now = when
            handle.callback()
            executed += 1
        self._now = target
        return executed

    def run_until(self, when_ms: int) -> int:
        """Advance to an absolute virtual instant."""
        return self.advance(max(0, when_ms - self._now))
