"""
Exception types for the Game Stats Tracker.

Synchronous components (timers, goal timeline, stat ledger) raise these to
reject a call outright. Store errors are classified so the sync engine can
decide whether an operation is worth retrying.
"""
from typing import Optional


class GameStatsError(Exception):
    """Base class for all application errors."""
    pass


class CapacityExceeded(GameStatsError):
    """Raised when the goal timeline for a side is full."""
    pass


class InvalidConfiguration(GameStatsError, ValueError):
    """Raised for out-of-range settings or unknown names."""
    pass


class TimerStateError(GameStatsError):
    """Raised when a timer transition is not valid from the current state."""
    pass


class StoreError(GameStatsError):
    """
    Failure reported by a remote game store.

    Attributes:
        code: Short machine-readable error code (e.g. ``"unavailable"``)
        original: Underlying exception, when there is one
    """

    retryable = False

    def __init__(self, message: str, code: str = "unknown", original: Optional[BaseException] = None):
        super().__init__(message)
        self.code = code
        self.original = original


class TransientStoreError(StoreError):
    """Network or server failure; safe to retry."""

    retryable = True


class PermanentStoreError(StoreError):
    """Failure that will not go away on retry (e.g. permission denied)."""
    pass


class NotFoundError(StoreError):
    """The referenced game record does not exist."""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message, code="not-found", original=original)
