"""
Goal models for the Game Stats Tracker application.

This module contains the GoalEvent dataclass, the immutable GoalHistory
snapshot stored on game records, and the merged display view shared by both.
"""
import heapq
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ..utils import fmt_clock, parse_clock


class Side(Enum):
    """Which team scored."""
    US = "us"
    THEM = "them"

    @property
    def history_key(self) -> str:
        """Key used for this side in a serialised goal history."""
        return "our" if self is Side.US else "their"

    @property
    def label(self) -> str:
        return "Us" if self is Side.US else "Them"

    @classmethod
    def parse(cls, value: Any) -> "Side":
        """Accept a Side, its value, or a history key ("our"/"their")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in ("our", "us", "ours"):
            return cls.US
        if text in ("their", "them", "theirs"):
            return cls.THEM
        raise ValueError(f"Unknown side: {value!r}")


@dataclass(frozen=True)
class GoalEvent:
    """
    A single scoring event.

    Attributes:
        side: Team that scored
        game_clock_seconds: Game seconds at which the goal was logged
        sequence: Insertion order; unique within a game
        timestamp_ms: Wall-clock epoch milliseconds when the goal was logged
    """
    side: Side
    game_clock_seconds: int
    sequence: int
    timestamp_ms: Optional[int] = None

    @property
    def minute(self) -> int:
        return self.game_clock_seconds // 60

    @property
    def time(self) -> str:
        return fmt_clock(self.game_clock_seconds)

    def moved_to(self, game_clock_seconds: int) -> "GoalEvent":
        """Copy of this event at a new clock position, same sequence."""
        return replace(self, game_clock_seconds=int(game_clock_seconds))

    def to_json(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "minute": self.minute,
            "gameClockSeconds": self.game_clock_seconds,
            "sequence": self.sequence,
            "timestamp": self.timestamp_ms,
        }

    @classmethod
    def from_json(cls, side: Side, data: Dict[str, Any], fallback_sequence: int) -> "GoalEvent":
        """
        Create a GoalEvent from a stored goal entry.

        Older entries only carry ``time`` ("M:SS") and ``minute``; the clock
        position is recovered from whichever is present.
        """
        seconds = data.get("gameClockSeconds")
        if seconds is None and data.get("time"):
            try:
                seconds = parse_clock(data["time"])
            except ValueError:
                seconds = None
        if seconds is None:
            seconds = int(data.get("minute") or 0) * 60

        sequence = data.get("sequence")
        return cls(
            side=side,
            game_clock_seconds=max(0, int(seconds)),
            sequence=int(sequence) if sequence is not None else fallback_sequence,
            timestamp_ms=data.get("timestamp"),
        )


def _display_key(goal: GoalEvent) -> Tuple[int, int]:
    return (goal.game_clock_seconds, goal.sequence)


class MergedGoals:
    """
    Finite, restartable view of goals in display order.

    Each iteration merges the per-side sequences lazily by
    ``(game_clock_seconds, sequence)``.
    """

    def __init__(self, *sides: Iterable[GoalEvent]):
        self._sides = tuple(tuple(goals) for goals in sides)

    def __iter__(self) -> Iterator[GoalEvent]:
        ordered = [sorted(goals, key=_display_key) for goals in self._sides]
        return heapq.merge(*ordered, key=_display_key)

    def __len__(self) -> int:
        return sum(len(goals) for goals in self._sides)

    def describe(self) -> str:
        """Human readable timeline, e.g. ``"0:10 Us; 3:05 Them"``."""
        parts = [f"{goal.time} {goal.side.label}" for goal in self]
        return "; ".join(parts) if parts else "No goals recorded"


@dataclass(frozen=True)
class GoalHistory:
    """Immutable snapshot of both teams' goals for one game."""
    us: Tuple[GoalEvent, ...] = field(default_factory=tuple)
    them: Tuple[GoalEvent, ...] = field(default_factory=tuple)

    def for_side(self, side: Side) -> Tuple[GoalEvent, ...]:
        return self.us if side is Side.US else self.them

    def merged(self) -> MergedGoals:
        return MergedGoals(self.us, self.them)

    def resized(self, side: Side, count: int, clock_seconds: int) -> "GoalHistory":
        """
        Return a history whose ``side`` holds exactly ``count`` goals.

        Surplus goals are dropped newest first; missing goals are appended at
        ``clock_seconds``.
        """
        count = max(0, int(count))
        goals = sorted(self.for_side(side), key=lambda goal: goal.sequence)
        if len(goals) > count:
            goals = goals[:count]
        else:
            next_sequence = max((g.sequence for g in self.us + self.them), default=0) + 1
            while len(goals) < count:
                goals.append(GoalEvent(side, max(0, int(clock_seconds)), next_sequence))
                next_sequence += 1
        if side is Side.US:
            return replace(self, us=tuple(goals))
        return replace(self, them=tuple(goals))

    def to_json(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            Side.US.history_key: [goal.to_json() for goal in self.us],
            Side.THEM.history_key: [goal.to_json() for goal in self.them],
        }

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> "GoalHistory":
        """Create a GoalHistory from its stored form; missing data yields an empty history."""
        if not data:
            return cls()
        sequence = 0
        sides = {}
        for side in Side:
            goals = []
            for entry in data.get(side.history_key) or []:
                sequence += 1
                goals.append(GoalEvent.from_json(side, entry or {}, fallback_sequence=sequence))
            sides[side] = tuple(goals)
        return cls(us=sides[Side.US], them=sides[Side.THEM])
