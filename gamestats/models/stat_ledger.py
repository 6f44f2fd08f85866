"""
StatLedger model for the Game Stats Tracker application.

The ledger is the one mutable aggregate of per-game counters. Everything that
is derived from the counters (totals, conversion rates) is computed by the
pure functions in this module and never stored as primary state.
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from ..errors import InvalidConfiguration


class Stat(Enum):
    """Closed set of ledger counters, valued by their stored field name."""
    GOALS_LEFT = "goalsLeft"
    GOALS_RIGHT = "goalsRight"
    SHOTS_LEFT = "shotsLeft"
    SHOTS_RIGHT = "shotsRight"
    ASSISTS = "assists"
    PASS_COMPLETIONS = "passCompletions"
    CORNERS_TAKEN = "cornersTaken"
    CORNER_CONVERSIONS = "cornerConversions"
    OFFENSIVE_1V1_ATTEMPTS = "offensive1v1Attempts"
    OFFENSIVE_1V1_WON = "offensive1v1Won"
    DEFENSIVE_1V1_ATTEMPTS = "defensive1v1Attempts"
    DEFENSIVE_1V1_WON = "defensive1v1Won"
    FREE_KICKS_TAKEN = "freeKicksTaken"
    FREE_KICKS_MADE = "freeKicksMade"
    DEFENSIVE_TACKLES = "defensiveTackles"
    DEFENSIVE_FAILURES = "defensiveFailures"
    DEFENSIVE_DISRUPTION = "defensiveDisruption"
    DEFENSIVE_DISTRIBUTION = "defensiveDistribution"
    FOULS = "fouls"
    CARDS = "cards"
    GK_SHOTS_SAVED = "gkShotsSaved"
    GK_GOALS_AGAINST = "gkGoalsAgainst"

    @classmethod
    def parse(cls, value: Union["Stat", str]) -> "Stat":
        """Resolve a Stat from itself, its field name, or its member name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise InvalidConfiguration(f"Unknown stat: {value!r}") from None


STAT_NAMES = [stat.value for stat in Stat]

# (rate field, numerator, denominator) for the simple ratio rates
_SIMPLE_RATES = [
    ("cornerConversionRate", Stat.CORNER_CONVERSIONS, Stat.CORNERS_TAKEN),
    ("offensive1v1Rate", Stat.OFFENSIVE_1V1_WON, Stat.OFFENSIVE_1V1_ATTEMPTS),
    ("defensive1v1Rate", Stat.DEFENSIVE_1V1_WON, Stat.DEFENSIVE_1V1_ATTEMPTS),
    ("freeKickConversionRate", Stat.FREE_KICKS_MADE, Stat.FREE_KICKS_TAKEN),
    ("defensiveDistributionRate", Stat.DEFENSIVE_DISTRIBUTION, Stat.DEFENSIVE_DISRUPTION),
]

# (warning, larger-than, smaller) pairs checked by validate_stats
_CONSISTENCY_CHECKS = [
    ("Left foot goals exceed shots", Stat.GOALS_LEFT, Stat.SHOTS_LEFT),
    ("Right foot goals exceed shots", Stat.GOALS_RIGHT, Stat.SHOTS_RIGHT),
    ("Corner conversions exceed corners taken", Stat.CORNER_CONVERSIONS, Stat.CORNERS_TAKEN),
    ("Offensive 1v1 won exceed attempts", Stat.OFFENSIVE_1V1_WON, Stat.OFFENSIVE_1V1_ATTEMPTS),
    ("Defensive 1v1 won exceed attempts", Stat.DEFENSIVE_1V1_WON, Stat.DEFENSIVE_1V1_ATTEMPTS),
    ("Free kicks made exceed attempts", Stat.FREE_KICKS_MADE, Stat.FREE_KICKS_TAKEN),
    ("Defensive failures exceed tackles", Stat.DEFENSIVE_FAILURES, Stat.DEFENSIVE_TACKLES),
    ("Defensive distribution exceed disruption", Stat.DEFENSIVE_DISTRIBUTION, Stat.DEFENSIVE_DISRUPTION),
]

DERIVED_FIELDS = ["totalGoals", "totalShots", "goalConversionRate", "defensiveTackleRate"] + [
    name for name, _, _ in _SIMPLE_RATES
]


def _coerce_count(value: Any) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, number)


def normalize_counters(raw: Optional[Mapping[str, Any]]) -> Dict[str, int]:
    """
    Build a full counter mapping from possibly partial or dirty data.

    Missing fields default to 0; negative or non-numeric values become 0 and
    fractional values are floored.
    """
    raw = raw or {}
    return {name: _coerce_count(raw.get(name, 0)) for name in STAT_NAMES}


def format_rate(numerator: int, denominator: int) -> str:
    """
    Format a ratio as a one-decimal percentage.

    Example:
        >>> format_rate(1, 3)
        '33.3%'
        >>> format_rate(0, 0)
        '0%'
    """
    if not denominator:
        return "0%"
    return f"{numerator / denominator * 100:.1f}%"


def derive_stats(counters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Compute totals and every derived rate from raw counters."""
    c = normalize_counters(counters)
    total_goals = c["goalsLeft"] + c["goalsRight"]
    total_shots = c["shotsLeft"] + c["shotsRight"]
    tackles = c["defensiveTackles"]

    derived: Dict[str, Any] = {
        "totalGoals": total_goals,
        "totalShots": total_shots,
        "goalConversionRate": format_rate(total_goals, total_shots),
        "defensiveTackleRate": format_rate(tackles - c["defensiveFailures"], tackles),
    }
    for name, numerator, denominator in _SIMPLE_RATES:
        derived[name] = format_rate(c[numerator.value], c[denominator.value])
    return derived


def validate_stats(counters: Optional[Mapping[str, Any]]) -> List[str]:
    """Return soft warnings for internally inconsistent counters."""
    c = normalize_counters(counters)
    return [
        message
        for message, larger, smaller in _CONSISTENCY_CHECKS
        if c[larger.value] > c[smaller.value]
    ]


@dataclass(frozen=True)
class StatSnapshot:
    """Immutable copy of the ledger with derived values computed at capture time."""
    counters: Mapping[str, int] = field(default_factory=dict)
    derived: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "counters", MappingProxyType(dict(self.counters)))
        object.__setattr__(self, "derived", MappingProxyType(dict(self.derived)))

    def get(self, name: str, default: Any = None) -> Any:
        if name in self.counters:
            return self.counters[name]
        return self.derived.get(name, default)

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.counters)
        data.update(self.derived)
        return data


class StatLedger:
    """Mutable counters for a single in-progress game."""

    def __init__(self, counters: Optional[Mapping[str, Any]] = None):
        self._counters = normalize_counters(counters)

    def get(self, stat: Union[Stat, str]) -> int:
        return self._counters[Stat.parse(stat).value]

    def set(self, stat: Union[Stat, str], value: int) -> int:
        """Set a counter directly (used by corrections); negatives become 0."""
        name = Stat.parse(stat).value
        self._counters[name] = _coerce_count(value)
        return self._counters[name]

    def increment(self, stat: Union[Stat, str]) -> int:
        name = Stat.parse(stat).value
        self._counters[name] += 1
        return self._counters[name]

    def decrement(self, stat: Union[Stat, str]) -> int:
        """Decrease a counter by one; a counter already at 0 stays at 0."""
        name = Stat.parse(stat).value
        if self._counters[name] > 0:
            self._counters[name] -= 1
        return self._counters[name]

    def counters(self) -> Dict[str, int]:
        return dict(self._counters)

    def reset(self) -> None:
        self._counters = normalize_counters(None)

    def snapshot(self) -> StatSnapshot:
        counters = dict(self._counters)
        return StatSnapshot(counters=counters, derived=derive_stats(counters))

    def validate(self) -> List[str]:
        return validate_stats(self._counters)
