"""Anchor-based elapsed time counter used by every timer in the application."""

from typing import Callable, Optional

from ..models import ClockState
from ..utils import now_ms

TimeSource = Callable[[], int]


class Clock:
    """
    Drift-resistant elapsed-time counter.

    Elapsed time is always recomputed from the stored start anchor and the
    accumulated total, so how often it is read has no effect on accuracy.
    """

    def __init__(self, time_source: Optional[TimeSource] = None):
        self._time_source = time_source or now_ms
        self._accumulated_seconds = 0
        self._running_since_ms: Optional[int] = None

    @property
    def is_running(self) -> bool:
        return self._running_since_ms is not None

    def now_ms(self) -> int:
        return int(self._time_source())

    def start(self) -> None:
        """Start counting; does nothing if already running."""
        if self._running_since_ms is not None:
            return
        self._running_since_ms = self.now_ms()

    def pause(self) -> None:
        """Fold the running interval into the accumulated total and stop."""
        if self._running_since_ms is None:
            return
        folded = self._accumulated_seconds + self._running_delta(self.now_ms())
        self._accumulated_seconds = folded
        self._running_since_ms = None

    def reset(self) -> None:
        self._accumulated_seconds = 0
        self._running_since_ms = None

    def cap(self, limit_seconds: int) -> None:
        """Clamp a paused clock's total to ``limit_seconds``."""
        if self._running_since_ms is None:
            self._accumulated_seconds = min(self._accumulated_seconds, max(0, int(limit_seconds)))

    def elapsed(self) -> int:
        """Elapsed whole seconds; never mutates the clock."""
        if self._running_since_ms is None:
            return self._accumulated_seconds
        return self._accumulated_seconds + self._running_delta(self.now_ms())

    def state(self) -> ClockState:
        return ClockState(self._accumulated_seconds, self._running_since_ms)

    def _running_delta(self, now: int) -> int:
        return max(0, (now - self._running_since_ms) // 1000)
