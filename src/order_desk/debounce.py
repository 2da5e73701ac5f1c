from __future__ import annotations

import logging
from typing import Callable, Generic, Optional, TypeVar

from .scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    """
    Collapse bursts of values into a single delayed commit.

    Each schedule() call cancels the pending commit and starts a new quiet
    window; the last value scheduled in a burst is committed exactly once
    when a full window passes without another call.

    Attributes:
        delay: Length of the quiet window, in scheduler time-units
    """

    def __init__(self, commit: Callable[[T], None], delay: float, scheduler: Scheduler) -> None:
        self.delay = delay
        self._commit = commit
        self._scheduler = scheduler
        self._handle: Optional[TimerHandle] = None
        self._value: Optional[T] = None
        self._disposed = False

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, value: T) -> None:
        if self._disposed:
            logger.debug("Ignoring schedule() on a disposed debouncer")
            return
        self.cancel()
        self._value = value
        self._handle = self._scheduler.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            self._value = None

    def flush(self) -> None:
        """Commit the pending value now instead of waiting out the window."""
        if self._handle is None:
            return
        self._handle.cancel()
        self._fire()

    def dispose(self) -> None:
        self.cancel()
        self._disposed = True

    def _fire(self) -> None:
        value = self._value
        self._handle = None
        self._value = None
        if self._disposed:
            return
        self._commit(value)  # type: ignore[arg-type]
