"""Half timer service for the Game Stats Tracker application."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from ..errors import InvalidConfiguration, TimerStateError
from ..models import Half, HalfTimerState, TimerPhase
from ..utils import DEFAULT_HALF_MINUTES, MAX_HALF_MINUTES, MIN_HALF_MINUTES
from ..utils.constants import COUNTDOWN_SECONDS
from .clock import Clock, TimeSource

logger = logging.getLogger(__name__)


class TimerEventType(Enum):
    TICK = "tick"
    COUNTDOWN = "countdown"
    HALF_TIME_UP = "half_time_up"
    GAME_COMPLETE = "game_complete"
    SECOND_HALF_READY = "second_half_ready"
    RESET = "reset"


@dataclass(frozen=True)
class TimerEvent:
    """Notification sent to timer listeners."""
    type: TimerEventType
    half: Half
    elapsed_seconds: int
    remaining_seconds: int


TimerListener = Callable[[TimerEvent], None]


class HalfTimer:
    """
    Two-half game timer built on :class:`Clock`.

    Counts up within each half and reports the countdown to the end of the
    half. Reaching the half length pauses the timer automatically; that check
    runs on every read, so the timer is correct whether or not anything calls
    :meth:`tick`.
    """

    def __init__(self, half_minutes: int = DEFAULT_HALF_MINUTES, time_source: Optional[TimeSource] = None):
        self._half_duration_seconds = self._validate_minutes(half_minutes) * 60
        self._clock = Clock(time_source)
        self._half = Half.FIRST
        self._time_up = False
        self._listeners: List[TimerListener] = []
        self._last_tick_second: Optional[int] = None
        self._last_countdown_second: Optional[int] = None

    # ------------------------------------------------------------------
    # Configuration helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _validate_minutes(minutes: int) -> int:
        try:
            value = int(minutes)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"Half length must be a whole number of minutes, got {minutes!r}") from None
        if not MIN_HALF_MINUTES <= value <= MAX_HALF_MINUTES:
            raise InvalidConfiguration(
                f"Half length must be between {MIN_HALF_MINUTES} and {MAX_HALF_MINUTES} minutes"
            )
        return value

    def set_half_minutes(self, minutes: int) -> None:
        """Change the half length and reset the game.

        Raises:
            InvalidConfiguration: If the timer is running or the value is out of range.
                The timer state is unchanged in both cases.
        """

        self._refresh()
        if self._clock.is_running:
            raise InvalidConfiguration("Pause the timer before changing the half length")
        value = self._validate_minutes(minutes)
        self._half_duration_seconds = value * 60
        self.reset_game()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def subscribe(self, listener: TimerListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: TimerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event_type: TimerEventType) -> None:
        elapsed = min(self._clock.elapsed(), self._half_duration_seconds)
        event = TimerEvent(event_type, self._half, elapsed, self._half_duration_seconds - elapsed)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Timer listener %r failed on %s", listener, event_type.value)

    # ------------------------------------------------------------------
    # Core timer controls
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start or resume the current half.

        Raises:
            TimerStateError: If the current half has already run out.
        """

        self._refresh()
        if self._time_up:
            raise TimerStateError("Time is up for this half")
        self._clock.start()

    def pause(self) -> None:
        """Pause the current half; does nothing if not running."""

        self._refresh()
        self._clock.pause()

    def start_second_half(self) -> None:
        """Move from a finished first half to a paused second half."""

        self._refresh()
        if self._half is not Half.FIRST or not self._time_up:
            raise TimerStateError("The second half can only start once the first half is over")
        self._clock.reset()
        self._half = Half.SECOND
        self._time_up = False
        self._last_tick_second = None
        self._last_countdown_second = None
        logger.info("Second half ready (%d min)", self._half_duration_seconds // 60)
        self._emit(TimerEventType.SECOND_HALF_READY)

    def reset_game(self) -> None:
        """Return to a paused, zeroed first half."""

        self._clock.reset()
        self._half = Half.FIRST
        self._time_up = False
        self._last_tick_second = None
        self._last_countdown_second = None
        self._emit(TimerEventType.RESET)

    def tick(self) -> HalfTimerState:
        """Recompute from the clock anchor and notify listeners of changes.

        Meant to be called on a short interval by whatever drives the display.
        """

        self._refresh()
        elapsed = self.elapsed()
        if elapsed != self._last_tick_second:
            self._last_tick_second = elapsed
            self._emit(TimerEventType.TICK)

        remaining = self._half_duration_seconds - elapsed
        if (
            self._clock.is_running
            and 0 < remaining <= COUNTDOWN_SECONDS
            and remaining != self._last_countdown_second
        ):
            self._last_countdown_second = remaining
            self._emit(TimerEventType.COUNTDOWN)
        return self.state()

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @property
    def half(self) -> Half:
        return self._half

    @property
    def half_duration_seconds(self) -> int:
        return self._half_duration_seconds

    @property
    def half_minutes(self) -> int:
        return self._half_duration_seconds // 60

    @property
    def is_running(self) -> bool:
        self._refresh()
        return self._clock.is_running

    @property
    def is_time_up(self) -> bool:
        self._refresh()
        return self._time_up

    @property
    def phase(self) -> TimerPhase:
        self._refresh()
        return TimerPhase.for_half(self._half, running=self._clock.is_running, time_up=self._time_up)

    def elapsed(self) -> int:
        """Elapsed seconds in the current half, never past the half length."""

        self._refresh()
        return min(self._clock.elapsed(), self._half_duration_seconds)

    def remaining(self) -> int:
        return self._half_duration_seconds - self.elapsed()

    def total_seconds(self) -> int:
        """Game seconds across both halves."""

        elapsed = self.elapsed()
        if self._half is Half.FIRST:
            return elapsed
        return self._half_duration_seconds + elapsed

    def state(self) -> HalfTimerState:
        elapsed = self.elapsed()
        return HalfTimerState(
            half=self._half,
            phase=self.phase,
            clock=self._clock.state(),
            half_duration_seconds=self._half_duration_seconds,
            elapsed_seconds=elapsed,
            remaining_seconds=self._half_duration_seconds - elapsed,
            total_seconds=self.total_seconds(),
            is_time_up=self._time_up,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _refresh(self) -> None:
        """Enter the time-up state once the half length has been reached."""

        if self._time_up:
            return
        if self._clock.elapsed() < self._half_duration_seconds:
            return
        self._clock.pause()
        self._clock.cap(self._half_duration_seconds)
        self._time_up = True
        if self._half is Half.FIRST:
            logger.info("First half complete")
            self._emit(TimerEventType.HALF_TIME_UP)
        else:
            logger.info("Second half complete")
            self._emit(TimerEventType.GAME_COMPLETE)
