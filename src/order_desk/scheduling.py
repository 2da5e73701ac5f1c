"""
Timer sources for debouncing and toast expiry.

Both the Debouncer and the ErrorNormalizer take a Scheduler instead of
calling asyncio directly, so tests can drive time by hand with
ManualScheduler. The clock is unitless: LoopScheduler counts seconds,
ManualScheduler counts whatever the test advances it by.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, List, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class LoopScheduler:
    """Schedules callbacks on the running asyncio event loop."""

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback, *args)


@dataclass(order=True)
class ManualTimer:
    when: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple = field(compare=False, default=())
    cancelled: bool = field(compare=False, default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    A scheduler whose clock only moves when advance() is called.

    Callbacks due within the advanced window run in deadline order, with
    now() reporting each callback's own deadline while it runs.
    """

    def __init__(self, start: float = 0) -> None:
        self._now = start
        self._timers: List[ManualTimer] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualTimer:
        timer = ManualTimer(self._now + delay, next(self._seq), callback, args)
        heapq.heappush(self._timers, timer)
        return timer

    def advance(self, amount: float) -> None:
        target = self._now + amount
        while self._timers and self._timers[0].when <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = timer.when
            timer.callback(*timer.args)
        self._now = target

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)
