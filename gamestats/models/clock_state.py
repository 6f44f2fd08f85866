"""
Timer state models for the Game Stats Tracker application.

These are plain snapshots; the running logic lives in
:mod:`gamestats.services.clock` and :mod:`gamestats.services.timer_service`.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class Half(Enum):
    """Playing period of a two-half game."""
    FIRST = 1
    SECOND = 2


class TimerPhase(Enum):
    """Combined half/run state of the half timer."""
    FIRST_RUNNING = "first_running"
    FIRST_PAUSED = "first_paused"
    FIRST_TIME_UP = "first_time_up"
    SECOND_RUNNING = "second_running"
    SECOND_PAUSED = "second_paused"
    SECOND_TIME_UP = "second_time_up"

    @classmethod
    def for_half(cls, half: Half, *, running: bool, time_up: bool) -> "TimerPhase":
        prefix = "FIRST" if half is Half.FIRST else "SECOND"
        if time_up:
            return cls[f"{prefix}_TIME_UP"]
        return cls[f"{prefix}_RUNNING" if running else f"{prefix}_PAUSED"]


@dataclass(frozen=True)
class ClockState:
    """
    Anchor-based clock snapshot.

    Attributes:
        accumulated_seconds: Whole seconds folded in by earlier pauses
        running_since_ms: Epoch milliseconds of the last start, None while paused
    """
    accumulated_seconds: int = 0
    running_since_ms: Optional[int] = None

    @property
    def is_running(self) -> bool:
        return self.running_since_ms is not None

    def elapsed_at(self, now_ms: int) -> int:
        """Elapsed whole seconds as of ``now_ms``."""
        if self.running_since_ms is None:
            return self.accumulated_seconds
        return self.accumulated_seconds + max(0, (now_ms - self.running_since_ms) // 1000)

    def to_json(self) -> Dict[str, Any]:
        return {
            "accumulatedSeconds": self.accumulated_seconds,
            "runningSinceEpochMs": self.running_since_ms,
        }


@dataclass(frozen=True)
class HalfTimerState:
    """Read-only view of a half timer at one instant."""
    half: Half
    phase: TimerPhase
    clock: ClockState
    half_duration_seconds: int
    elapsed_seconds: int
    remaining_seconds: int
    total_seconds: int
    is_time_up: bool

    @property
    def is_running(self) -> bool:
        return self.phase in (TimerPhase.FIRST_RUNNING, TimerPhase.SECOND_RUNNING)

    def to_json(self) -> Dict[str, Any]:
        return {
            "half": self.half.value,
            "phase": self.phase.value,
            "clock": self.clock.to_json(),
            "halfDurationSeconds": self.half_duration_seconds,
            "halfMinutes": self.half_duration_seconds // 60,
            "elapsedSeconds": self.elapsed_seconds,
            "remainingSeconds": self.remaining_seconds,
            "totalSeconds": self.total_seconds,
            "isTimeUp": self.is_time_up,
            "isRunning": self.is_running,
        }
