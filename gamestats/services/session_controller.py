"""
Live game session for the Game Stats Tracker application.

The SessionController composes the half timer, the player minutes clock, the
goal timeline and the stat ledger into one in-progress game, and turns that
game into a GameRecord when it is committed.
"""
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import InvalidConfiguration, StoreError
from ..models import GameRecord, GameType, GoalEvent, Side, Stat, StatLedger
from ..utils import DEFAULT_HALF_MINUTES, default_game_date, fmt_clock, parse_clock, sanitize_input
from ..utils.constants import GOAL_LOCK_MS, MAX_NAME_LENGTH, MAX_NOTES_LENGTH
from .clock import Clock, TimeSource
from .goal_timeline import GoalTimeline
from .sync_engine import SyncEngine
from .timer_service import HalfTimer

logger = logging.getLogger(__name__)


class CommitStatus(Enum):
    COMMITTED = "committed"
    NEEDS_CONFIRMATION = "needs_confirmation"


@dataclass
class CommitResult:
    """
    Outcome of :meth:`SessionController.commit`.

    A ``NEEDS_CONFIRMATION`` result persisted nothing; call ``commit(force=True)``
    to save anyway. A ``COMMITTED`` result may still carry a store ``error``,
    in which case the record was kept locally.
    """
    status: CommitStatus
    warnings: List[str] = field(default_factory=list)
    record: Optional[GameRecord] = None
    error: Optional[StoreError] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "warnings": list(self.warnings),
            "record": self.record.to_json() if self.record else None,
            "error": str(self.error) if self.error else None,
        }


class SessionController:
    """One in-progress game, from kickoff to commit."""

    def __init__(
        self,
        sync_engine: SyncEngine,
        half_minutes: int = DEFAULT_HALF_MINUTES,
        time_source: Optional[TimeSource] = None,
    ):
        self.sync_engine = sync_engine
        self.timer = HalfTimer(half_minutes, time_source)
        self.player_clock = Clock(time_source)
        self.timeline = GoalTimeline(time_source=time_source)
        self.ledger = StatLedger()
        self._time_source = self.player_clock.now_ms
        self._goal_lock_until_ms: Optional[int] = None
        self._lock = threading.RLock()

        self.date = default_game_date()
        self.player_name = ""
        self.opponent = ""
        self.game_type = GameType.LEAGUE
        self.notes = ""

    # ------------------------------------------------------------------
    # Game info
    # ------------------------------------------------------------------
    def set_game_info(
        self,
        date: Optional[str] = None,
        player_name: Optional[str] = None,
        opponent: Optional[str] = None,
        game_type: Optional[Any] = None,
        notes: Optional[str] = None,
    ) -> None:
        """
        Update any of the scalar game fields; ``None`` leaves a field as is.

        Text is sanitised and cut to its maximum length.

        Raises:
            InvalidConfiguration: If ``game_type`` is not a known game type
        """
        with self._lock:
            if game_type is not None:
                try:
                    self.game_type = GameType.parse(game_type)
                except ValueError as exc:
                    raise InvalidConfiguration(str(exc)) from None
            if date is not None:
                self.date = sanitize_input(date).strip()
            if player_name is not None:
                self.player_name = sanitize_input(player_name, MAX_NAME_LENGTH)
            if opponent is not None:
                self.opponent = sanitize_input(opponent, MAX_NAME_LENGTH)
            if notes is not None:
                self.notes = sanitize_input(notes, MAX_NOTES_LENGTH)

    def set_half_minutes(self, minutes: int) -> None:
        self.timer.set_half_minutes(minutes)

    # ------------------------------------------------------------------
    # Player minutes
    # ------------------------------------------------------------------
    def start_player_timer(self) -> None:
        self.player_clock.start()

    def pause_player_timer(self) -> None:
        self.player_clock.pause()

    def reset_player_timer(self) -> None:
        self.player_clock.reset()

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------
    @property
    def goal_locked(self) -> bool:
        return self._goal_lock_until_ms is not None and self._time_source() < self._goal_lock_until_ms

    def add_goal(self, side: Side) -> Optional[GoalEvent]:
        """
        Log a goal at the current game clock position.

        Returns:
            The new goal, or None when rejected as a double tap

        Raises:
            CapacityExceeded: If the side already has the maximum number of goals
        """
        with self._lock:
            if self.goal_locked:
                logger.debug("Ignoring goal for %s inside the lock window", side)
                return None
            goal = self.timeline.add_goal(side, self.timer.total_seconds())
            self._goal_lock_until_ms = self._time_source() + GOAL_LOCK_MS
            return goal

    def add_our_goal(self) -> Optional[GoalEvent]:
        return self.add_goal(Side.US)

    def add_their_goal(self) -> Optional[GoalEvent]:
        return self.add_goal(Side.THEM)

    def remove_last_goal(self, side: Side) -> Optional[GoalEvent]:
        with self._lock:
            if self.goal_locked:
                return None
            return self.timeline.remove_last(side)

    def edit_goal(self, side: Side, index: int, clock_text: str) -> GoalEvent:
        """Move a goal to a new ``M:SS`` clock position."""
        try:
            seconds = parse_clock(clock_text)
        except ValueError as exc:
            raise InvalidConfiguration(str(exc)) from None
        with self._lock:
            return self.timeline.edit_entry(side, index, seconds)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------
    def increment_stat(self, stat: Stat) -> int:
        with self._lock:
            return self.ledger.increment(stat)

    def decrement_stat(self, stat: Stat) -> int:
        with self._lock:
            return self.ledger.decrement(stat)

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    def build_record(self) -> GameRecord:
        """Assemble the in-progress game as a draft record."""
        with self._lock:
            return GameRecord(
                date=self.date,
                player_name=self.player_name,
                opponent=self.opponent,
                game_type=self.game_type,
                goal_history=self.timeline.snapshot(),
                stats=self.ledger.counters(),
                halftime_minutes=self.timer.half_minutes,
                halftime_elapsed_seconds=self.timer.elapsed(),
                game_clock_seconds=self.timer.total_seconds(),
                player_seconds_played=self.player_clock.elapsed(),
                game_notes=self.notes,
            )

    def commit(self, force: bool = False) -> CommitResult:
        """
        Save the current game.

        Stat warnings block the save unless ``force`` is set. The draft is
        captured and the per-game state reset before the sync engine is
        called, so goals and stats logged while the save is in flight belong
        to the next game. The record is kept whether or not the remote store
        accepts it.

        Raises:
            InvalidConfiguration: If the date or player name is missing
        """
        with self._lock:
            draft = self.build_record()
            missing = draft.missing_fields()
            if missing:
                raise InvalidConfiguration(f"Missing required fields: {', '.join(missing)}")

            warnings = self.ledger.validate()
            if warnings and not force:
                return CommitResult(CommitStatus.NEEDS_CONFIRMATION, warnings=warnings)
            self._reset_game_state()

        result = self.sync_engine.save(draft)
        logger.info(
            "Committed game vs %s (%d-%d)%s",
            draft.opponent or "-", draft.our_goals, draft.their_goals,
            " locally only" if result.error else "",
        )
        return CommitResult(CommitStatus.COMMITTED, warnings=warnings, record=result.record, error=result.error)

    def _reset_game_state(self) -> None:
        self.ledger.reset()
        self.timeline.reset()
        self.notes = ""
        self._goal_lock_until_ms = None

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def state(self) -> Dict[str, Any]:
        with self._lock:
            history = self.timeline.snapshot()
            merged = history.merged()
            player_seconds = self.player_clock.elapsed()
            return {
                "gameInfo": {
                    "date": self.date,
                    "playerName": self.player_name,
                    "opponent": self.opponent,
                    "gameType": self.game_type.value,
                    "gameNotes": self.notes,
                },
                "timer": self.timer.state().to_json(),
                "playerTimer": {
                    "isRunning": self.player_clock.is_running,
                    "secondsPlayed": player_seconds,
                    "minutesPlayed": fmt_clock(player_seconds),
                },
                "goals": {
                    "ourGoals": len(history.us),
                    "theirGoals": len(history.them),
                    "goalHistory": history.to_json(),
                    "timeline": [dict(goal.to_json(), side=goal.side.value) for goal in merged],
                    "summary": merged.describe(),
                    "locked": self.goal_locked,
                },
                "stats": self.ledger.snapshot().to_json(),
                "warnings": self.ledger.validate(),
            }
