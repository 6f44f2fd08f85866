"""
Game Stats Tracker

Records a youth-soccer player's per-game statistics during live play,
persists completed games to a remote store with a local fallback, and lets
the history be edited, filtered and exported.

This package provides the live session engine, the sync engine and a Flask
JSON API on top of them.
"""
from .config import Config
from .errors import (
    GameStatsError, CapacityExceeded, InvalidConfiguration, TimerStateError,
    StoreError, TransientStoreError, PermanentStoreError, NotFoundError
)
from .models import GameRecord, GoalEvent, Side, Stat, StatLedger
from .services import HalfTimer, GoalTimeline, SessionController, SyncEngine, ServiceFactory
from .ui import create_app, run_web_app
from .utils import fmt_clock, now_ts, APP_TITLE

__version__ = "1.0.0"

__all__ = [
    "Config", "GameStatsError", "CapacityExceeded", "InvalidConfiguration", "TimerStateError",
    "StoreError", "TransientStoreError", "PermanentStoreError", "NotFoundError",
    "GameRecord", "GoalEvent", "Side", "Stat", "StatLedger",
    "HalfTimer", "GoalTimeline", "SessionController", "SyncEngine", "ServiceFactory",
    "create_app", "run_web_app", "fmt_clock", "now_ts", "APP_TITLE"
]
