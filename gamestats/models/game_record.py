"""
GameRecord model for the Game Stats Tracker application.

A GameRecord is the persisted, immutable result of one game. Scores, result,
totals and rates are computed from the goal history and the stat counters
every time they are read, so they can never drift from the primary data.
"""
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..errors import InvalidConfiguration
from .goal_event import GoalHistory, Side
from .stat_ledger import STAT_NAMES, derive_stats, normalize_counters
from ..utils import (
    DEFAULT_HALF_MINUTES, LOCAL_ID_PREFIX, MAX_HALF_MINUTES, MIN_HALF_MINUTES, RECORD_VERSION,
    fmt_clock, now_iso, parse_clock,
)


class GameType(Enum):
    """Competition category of a game."""
    LEAGUE = "League"
    TOURNAMENT = "Tournament"
    SHOWCASE = "Showcase"
    SCRIMMAGE = "Scrimmage"

    @classmethod
    def parse(cls, value: Any) -> "GameType":
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).strip().lower() == member.value.lower():
                return member
        raise ValueError(f"Unknown game type: {value!r}")


class GameResult(Enum):
    WIN = "Win"
    LOSS = "Loss"
    TIE = "Tie"


class SyncState(Enum):
    """Whether a record is confirmed durable in the remote store."""
    LOCAL_ONLY = "local-only"
    SYNCED = "synced"


def game_result_for(our_goals: int, their_goals: int) -> GameResult:
    if our_goals > their_goals:
        return GameResult.WIN
    if our_goals < their_goals:
        return GameResult.LOSS
    return GameResult.TIE


def is_local_id(record_id: Optional[str]) -> bool:
    return not record_id or str(record_id).startswith(LOCAL_ID_PREFIX)


def _edited_half_minutes(value: Any) -> int:
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"Half length must be a whole number of minutes, got {value!r}") from None
    if not MIN_HALF_MINUTES <= minutes <= MAX_HALF_MINUTES:
        raise InvalidConfiguration(
            f"Half length must be between {MIN_HALF_MINUTES} and {MAX_HALF_MINUTES} minutes"
        )
    return minutes


# Fields a history edit may change directly
EDITABLE_TEXT_FIELDS = {
    "date": "date",
    "playerName": "player_name",
    "opponent": "opponent",
    "gameNotes": "game_notes",
}

REQUIRED_FIELDS = ["date", "playerName"]


@dataclass(frozen=True)
class GameRecord:
    """
    Represents one completed game.

    Attributes:
        date: Game date (YYYY-MM-DD)
        player_name: Tracked player's name
        opponent: Opposing team
        game_type: Competition category
        goal_history: Both teams' goals; the source of the score
        stats: Ledger counters keyed by stat field name
        halftime_minutes: Configured half length
        halftime_elapsed_seconds: Elapsed seconds of the active half at commit
        game_clock_seconds: Total game seconds at commit
        player_seconds_played: Player minutes timer at commit, in seconds
        game_notes: Free text notes
        id: Remote id, or a ``local_`` id while only cached locally
        client_id: Stable identity assigned at creation; survives re-sync
        created_at: ISO timestamp of creation
        last_modified: ISO timestamp of the last save or edit
        sync_state: Whether the remote store has confirmed the record
        user_pin: Scope the record belongs to
        version: Record layout version
    """
    date: str
    player_name: str
    opponent: str = ""
    game_type: GameType = GameType.LEAGUE
    goal_history: GoalHistory = field(default_factory=GoalHistory)
    stats: Dict[str, int] = field(default_factory=dict)
    halftime_minutes: int = DEFAULT_HALF_MINUTES
    halftime_elapsed_seconds: int = 0
    game_clock_seconds: int = 0
    player_seconds_played: int = 0
    game_notes: str = ""
    id: Optional[str] = None
    client_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: Optional[str] = None
    last_modified: Optional[str] = None
    sync_state: SyncState = SyncState.LOCAL_ONLY
    user_pin: Optional[str] = None
    version: str = RECORD_VERSION

    def __post_init__(self) -> None:
        object.__setattr__(self, "stats", normalize_counters(self.stats))

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    @property
    def our_goals(self) -> int:
        return len(self.goal_history.us)

    @property
    def their_goals(self) -> int:
        return len(self.goal_history.them)

    @property
    def game_result(self) -> GameResult:
        return game_result_for(self.our_goals, self.their_goals)

    @property
    def halftime_complete(self) -> bool:
        return self.halftime_elapsed_seconds >= self.halftime_minutes * 60

    @property
    def halftime_remaining_seconds(self) -> int:
        return max(0, self.halftime_minutes * 60 - self.halftime_elapsed_seconds)

    @property
    def is_local_only(self) -> bool:
        return self.sync_state is SyncState.LOCAL_ONLY

    def derived(self) -> Dict[str, Any]:
        return derive_stats(self.stats)

    def missing_fields(self) -> List[str]:
        """Required fields that are empty."""
        values = {"date": self.date, "playerName": self.player_name}
        return [name for name in REQUIRED_FIELDS if not str(values[name] or "").strip()]

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------
    def with_updates(self, patch: Mapping[str, Any]) -> "GameRecord":
        """
        Apply an edit and return the new record.

        Accepts the stored (camelCase) field names. Derived and metadata fields
        in the patch are ignored because they are recomputed. ``ourGoals`` /
        ``theirGoals`` resize the goal history when they disagree with it.

        Raises:
            ValueError: If the game type is not recognised
            InvalidConfiguration: If the half length is not 1 to 90 minutes
        """
        changes: Dict[str, Any] = {}
        for key, attr in EDITABLE_TEXT_FIELDS.items():
            if key in patch and patch[key] is not None:
                changes[attr] = str(patch[key])
        if patch.get("gameType") is not None:
            changes["game_type"] = GameType.parse(patch["gameType"])
        if patch.get("halftimeMinutes") is not None:
            changes["halftime_minutes"] = _edited_half_minutes(patch["halftimeMinutes"])

        stat_patch = {name: patch[name] for name in STAT_NAMES if name in patch}
        if stat_patch:
            merged = dict(self.stats)
            merged.update(stat_patch)
            changes["stats"] = normalize_counters(merged)

        history = self.goal_history
        if isinstance(patch.get("goalHistory"), Mapping):
            history = GoalHistory.from_json(patch["goalHistory"])
        for side, key in ((Side.US, "ourGoals"), (Side.THEM, "theirGoals")):
            if patch.get(key) is not None and int(patch[key]) != len(history.for_side(side)):
                history = history.resized(side, int(patch[key]), self.game_clock_seconds)
        changes["goal_history"] = history
        changes["last_modified"] = now_iso()
        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------
    def to_json(self) -> Dict[str, Any]:
        """
        Convert the record to its stored document form.

        Returns:
            Dictionary with camelCase keys, including every derived field
        """
        data: Dict[str, Any] = {
            "id": self.id,
            "clientId": self.client_id,
            "date": self.date,
            "playerName": self.player_name,
            "opponent": self.opponent,
            "gameType": self.game_type.value,
            "ourGoals": self.our_goals,
            "theirGoals": self.their_goals,
            "gameResult": self.game_result.value,
            "goalHistory": self.goal_history.to_json(),
            "halftimeMinutes": self.halftime_minutes,
            "halftimeElapsed": fmt_clock(self.halftime_elapsed_seconds),
            "halftimeElapsedSeconds": self.halftime_elapsed_seconds,
            "halftimeRemaining": fmt_clock(self.halftime_remaining_seconds),
            "halftimeComplete": self.halftime_complete,
            "gameClockSeconds": self.game_clock_seconds,
            "playerMinutesPlayed": fmt_clock(self.player_seconds_played),
            "playerSecondsPlayed": self.player_seconds_played,
            "gameNotes": self.game_notes,
            "createdAt": self.created_at,
            "lastModified": self.last_modified,
            "syncState": self.sync_state.value,
            "userPin": self.user_pin,
            "version": self.version,
        }
        data.update(self.stats)
        data.update(self.derived())
        return data

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "GameRecord":
        """
        Create a GameRecord from a stored document.

        Older documents may be missing newer fields; every absent field falls
        back to its default. A document with scores but no goal history gets
        placeholder goals so the score is preserved.
        """
        history = GoalHistory.from_json(data.get("goalHistory"))
        for side, key in ((Side.US, "ourGoals"), (Side.THEM, "theirGoals")):
            stored = data.get(key)
            if stored is not None and not history.for_side(side):
                history = history.resized(side, int(stored), 0)

        elapsed = data.get("halftimeElapsedSeconds")
        if elapsed is None and data.get("halftimeElapsed"):
            try:
                elapsed = parse_clock(data["halftimeElapsed"])
            except ValueError:
                elapsed = 0

        try:
            game_type = GameType.parse(data.get("gameType") or GameType.LEAGUE.value)
        except ValueError:
            game_type = GameType.LEAGUE

        record_id = data.get("id")
        stored_state = data.get("syncState")
        if stored_state in (SyncState.SYNCED.value, SyncState.LOCAL_ONLY.value):
            sync_state = SyncState(stored_state)
        else:
            sync_state = SyncState.LOCAL_ONLY if is_local_id(record_id) else SyncState.SYNCED

        kwargs: Dict[str, Any] = {}
        # Documents written before clientId existed use their id as identity
        client_id = data.get("clientId") or record_id
        if client_id:
            kwargs["client_id"] = str(client_id)

        return cls(
            date=str(data.get("date") or ""),
            player_name=str(data.get("playerName") or ""),
            opponent=str(data.get("opponent") or ""),
            game_type=game_type,
            goal_history=history,
            stats=normalize_counters(data),
            halftime_minutes=int(data.get("halftimeMinutes") or DEFAULT_HALF_MINUTES),
            halftime_elapsed_seconds=int(elapsed or 0),
            game_clock_seconds=int(data.get("gameClockSeconds") or 0),
            player_seconds_played=int(data.get("playerSecondsPlayed") or 0),
            game_notes=str(data.get("gameNotes") or ""),
            id=str(record_id) if record_id is not None else None,
            created_at=data.get("createdAt"),
            last_modified=data.get("lastModified"),
            sync_state=sync_state,
            user_pin=data.get("userPin"),
            version=str(data.get("version") or "1.0"),
            **kwargs,
        )
