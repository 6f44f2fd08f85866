"""
Utility functions for the Game Stats Tracker application.

This module contains common time helpers used throughout the application.
"""
import datetime
import time
from zoneinfo import ZoneInfo

from .constants import GAME_DATE_TIMEZONE


def fmt_clock(seconds: int) -> str:
    """
    Format seconds as an M:SS game clock string.

    Args:
        seconds: Number of seconds to format

    Returns:
        Formatted time string in M:SS format

    Example:
        >>> fmt_clock(90)
        '1:30'
        >>> fmt_clock(2710)
        '45:10'
    """
    seconds = max(0, int(seconds))
    m = seconds // 60
    s = seconds % 60
    return f"{m}:{s:02d}"


def parse_clock(text: str) -> int:
    """
    Parse an M:SS (or MM:SS) game clock string back into seconds.

    Raises:
        ValueError: If the text is not a valid clock string
    """
    minutes, _, secs = str(text).strip().partition(":")
    if not secs:
        raise ValueError(f"Invalid clock value: {text!r}")
    return int(minutes) * 60 + int(secs)


def now_ts() -> float:
    """
    Get current timestamp in epoch seconds.

    Returns:
        Current time as floating point epoch seconds
    """
    return time.time()


def now_ms() -> int:
    """Get current timestamp in whole epoch milliseconds."""
    return int(time.time() * 1000)


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")


def default_game_date() -> str:
    """Today's date (YYYY-MM-DD) in the league's home timezone."""
    try:
        return datetime.datetime.now(ZoneInfo(GAME_DATE_TIMEZONE)).date().isoformat()
    except (KeyError, ValueError):
        return datetime.date.today().isoformat()
