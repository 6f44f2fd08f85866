"""
Models package for the Game Stats Tracker.

This package contains the core data models used throughout the application.
"""
from .clock_state import ClockState, Half, HalfTimerState, TimerPhase
from .goal_event import GoalEvent, GoalHistory, MergedGoals, Side
from .stat_ledger import (
    Stat, StatLedger, StatSnapshot, STAT_NAMES, DERIVED_FIELDS,
    derive_stats, format_rate, normalize_counters, validate_stats
)
from .game_record import GameRecord, GameResult, GameType, SyncState, game_result_for, is_local_id

__all__ = [
    "ClockState", "Half", "HalfTimerState", "TimerPhase",
    "GoalEvent", "GoalHistory", "MergedGoals", "Side",
    "Stat", "StatLedger", "StatSnapshot", "STAT_NAMES", "DERIVED_FIELDS",
    "derive_stats", "format_rate", "normalize_counters", "validate_stats",
    "GameRecord", "GameResult", "GameType", "SyncState", "game_result_for", "is_local_id"
]
