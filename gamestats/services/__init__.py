"""
Services package for the Game Stats Tracker.

This package contains the live session engine, the sync engine with its
stores and cache, and the history analytics.
"""
from .clock import Clock
from .timer_service import HalfTimer, TimerEvent, TimerEventType
from .goal_timeline import GoalTimeline
from .game_store import GameStore, HttpGameStore, InMemoryGameStore
from .persistence_service import PersistenceService
from .sync_engine import SyncEngine, SyncResult, SyncStatus
from .session_controller import CommitResult, CommitStatus, SessionController
from .analytics_service import AnalyticsService, HistoryExporter, HistorySummary
from .service_factory import ServiceFactory

__all__ = [
    "Clock", "HalfTimer", "TimerEvent", "TimerEventType", "GoalTimeline",
    "GameStore", "HttpGameStore", "InMemoryGameStore", "PersistenceService",
    "SyncEngine", "SyncResult", "SyncStatus",
    "CommitResult", "CommitStatus", "SessionController",
    "AnalyticsService", "HistoryExporter", "HistorySummary", "ServiceFactory"
]
