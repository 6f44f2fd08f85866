"""
Service factory for the Game Stats Tracker.

Builds the store, cache, sync engine, session and analytics services from a
:class:`Config` and wires their dependencies together.
"""
import logging
import time
from typing import Callable, Dict, Optional

from ..config import Config
from .analytics_service import AnalyticsService, HistoryExporter
from .clock import TimeSource
from .game_store import GameStore, HttpGameStore, InMemoryGameStore
from .persistence_service import PersistenceService
from .session_controller import SessionController
from .sync_engine import SyncEngine

logger = logging.getLogger(__name__)


class ServiceFactory:
    """
    Factory for creating service instances with their dependencies injected.

    The store, cache and sync engine are created once per factory and shared,
    so every service sees the same record list.
    """

    def __init__(
        self,
        config: type = Config,
        store: Optional[GameStore] = None,
        time_source: Optional[TimeSource] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self._store = store
        self._time_source = time_source
        self._sleep = sleep
        self._persistence_service: Optional[PersistenceService] = None
        self._sync_engine: Optional[SyncEngine] = None
        self._export_service: Optional[HistoryExporter] = None

    def create_session_controller(self) -> SessionController:
        return SessionController(
            self.get_sync_engine(),
            half_minutes=self.config.HALF_MINUTES,
            time_source=self._time_source,
        )

    def create_analytics_service(self) -> AnalyticsService:
        return AnalyticsService(self.get_sync_engine(), exporter=self._get_export_service())

    def create_complete_service_suite(self) -> Dict[str, object]:
        """
        Create every service the web app needs.

        Returns:
            Dictionary with ``session``, ``sync``, ``analytics`` and ``persistence``
        """
        return {
            'session': self.create_session_controller(),
            'sync': self.get_sync_engine(),
            'analytics': self.create_analytics_service(),
            'persistence': self._get_persistence_service(),
        }

    def get_store(self) -> GameStore:
        if self._store is None:
            if self.config.STORE_URL:
                logger.info("Using remote game store at %s", self.config.STORE_URL)
                self._store = HttpGameStore(self.config.STORE_URL, timeout=self.config.STORE_TIMEOUT)
            else:
                logger.info("No store URL configured; keeping games in memory")
                self._store = InMemoryGameStore()
        return self._store

    def get_sync_engine(self) -> SyncEngine:
        """Get the shared sync engine."""
        if self._sync_engine is None:
            kwargs = {}
            if self._time_source is not None:
                kwargs['time_source'] = self._time_source
            self._sync_engine = SyncEngine(
                self.get_store(),
                self._get_persistence_service(),
                self.config.USER_PIN,
                max_attempts=self.config.RETRY_ATTEMPTS,
                base_delay=self.config.RETRY_DELAY,
                sleep=self._sleep,
                **kwargs,
            )
        return self._sync_engine

    def _get_persistence_service(self) -> PersistenceService:
        """Get singleton persistence service."""
        if self._persistence_service is None:
            self._persistence_service = PersistenceService(self.config.CACHE_DIR)
        return self._persistence_service

    def _get_export_service(self) -> HistoryExporter:
        """Get singleton export service."""
        if self._export_service is None:
            self._export_service = HistoryExporter()
        return self._export_service
