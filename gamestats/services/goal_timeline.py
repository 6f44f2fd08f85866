"""Goal timeline service for the Game Stats Tracker application."""

import itertools
import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import CapacityExceeded, InvalidConfiguration
from ..models import GoalEvent, GoalHistory, MergedGoals, Side
from ..utils import MAX_GOALS_PER_SIDE, now_ms

logger = logging.getLogger(__name__)


class GoalTimeline:
    """
    Ordered, mutable log of goals for one game.

    Each side keeps its goals in insertion order. Every goal gets a sequence
    number from a single counter, which gives a stable total order even when
    two goals share a clock position.
    """

    def __init__(self, max_per_side: int = MAX_GOALS_PER_SIDE, time_source: Optional[Callable[[], int]] = None):
        if max_per_side < 1:
            raise InvalidConfiguration("Goal capacity must be at least 1")
        self.max_per_side = max_per_side
        self._time_source = time_source or now_ms
        self._goals: Dict[Side, List[GoalEvent]] = {Side.US: [], Side.THEM: []}
        self._sequence = itertools.count(1)

    def add_goal(self, side: Side, game_clock_seconds: int) -> GoalEvent:
        """
        Append a goal for ``side`` at ``game_clock_seconds``.

        Raises:
            CapacityExceeded: If the side already holds the maximum number of goals
            InvalidConfiguration: If the clock position is negative
        """
        side = Side.parse(side)
        seconds = int(game_clock_seconds)
        if seconds < 0:
            raise InvalidConfiguration("Goal clock position cannot be negative")
        if self.is_full(side):
            raise CapacityExceeded(f"Maximum {self.max_per_side} goals reached for {side.label}")

        goal = GoalEvent(side, seconds, next(self._sequence), int(self._time_source()))
        self._goals[side].append(goal)
        logger.debug("Goal %s at %s (seq %d)", side.label, goal.time, goal.sequence)
        return goal

    def remove_last(self, side: Side) -> Optional[GoalEvent]:
        """Remove the most recently added goal for ``side``; None if there is none."""
        goals = self._goals[Side.parse(side)]
        if not goals:
            return None
        latest = max(range(len(goals)), key=lambda idx: goals[idx].sequence)
        return goals.pop(latest)

    def edit_entry(self, side: Side, index: int, new_clock_seconds: int) -> GoalEvent:
        """
        Move the goal at ``index`` (insertion order) to a new clock position.

        Raises:
            IndexError: If there is no goal at ``index``
            InvalidConfiguration: If the new clock position is negative
        """
        goals = self._goals[Side.parse(side)]
        if not 0 <= index < len(goals):
            raise IndexError(f"No goal at position {index}")
        if int(new_clock_seconds) < 0:
            raise InvalidConfiguration("Goal clock position cannot be negative")
        goals[index] = goals[index].moved_to(new_clock_seconds)
        return goals[index]

    def goals(self, side: Side) -> Tuple[GoalEvent, ...]:
        return tuple(self._goals[Side.parse(side)])

    def count(self, side: Side) -> int:
        return len(self._goals[Side.parse(side)])

    def is_full(self, side: Side) -> bool:
        return self.count(side) >= self.max_per_side

    def merged(self) -> MergedGoals:
        """All goals in display order, as of this call."""
        return MergedGoals(self._goals[Side.US], self._goals[Side.THEM])

    def snapshot(self) -> GoalHistory:
        return GoalHistory(us=tuple(self._goals[Side.US]), them=tuple(self._goals[Side.THEM]))

    def reset(self) -> None:
        self._goals = {Side.US: [], Side.THEM: []}
        self._sequence = itertools.count(1)
