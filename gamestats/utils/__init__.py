"""
Utilities package for the Game Stats Tracker.

This package contains utility functions and constants used throughout the application.
"""
from .time_utils import fmt_clock, parse_clock, now_ts, now_ms, now_iso, default_game_date
from .text_utils import sanitize_input
from .constants import (
    APP_TITLE, DEFAULT_HALF_MINUTES, MIN_HALF_MINUTES, MAX_HALF_MINUTES,
    MAX_GOALS_PER_SIDE, LOCAL_ID_PREFIX, RECORD_VERSION
)

__all__ = [
    "fmt_clock", "parse_clock", "now_ts", "now_ms", "now_iso", "default_game_date",
    "sanitize_input", "APP_TITLE", "DEFAULT_HALF_MINUTES", "MIN_HALF_MINUTES",
    "MAX_HALF_MINUTES", "MAX_GOALS_PER_SIDE", "LOCAL_ID_PREFIX", "RECORD_VERSION"
]
