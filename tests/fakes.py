"""Shared test doubles and builders."""
import shutil
import tempfile
import threading
import unittest

from gamestats.models import GameRecord, GoalHistory
from gamestats.services import InMemoryGameStore, PersistenceService, SyncEngine

TEST_PIN = "1234"


class FakeTime:
    """Controllable epoch-millisecond time source."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(round(seconds * 1000))


class BlockingStore(InMemoryGameStore):
    """Holds every save until released."""

    def __init__(self):
        super().__init__()
        self.save_started = threading.Event()
        self.release = threading.Event()

    def save(self, data):
        self.save_started.set()
        self.release.wait(5)
        return super().save(data)


def make_record(**overrides) -> GameRecord:
    """A committed-game record with a 2-1 score and a few stats."""
    values = dict(
        date="2024-09-14",
        player_name="Sam",
        opponent="Rovers",
        goal_history=GoalHistory.from_json({
            "our": [{"gameClockSeconds": 10}, {"gameClockSeconds": 185}],
            "their": [{"gameClockSeconds": 2710}],
        }),
        stats={"goalsLeft": 1, "shotsLeft": 3, "assists": 1},
        halftime_minutes=30,
        halftime_elapsed_seconds=1800,
        game_clock_seconds=2710,
        player_seconds_played=1500,
    )
    values.update(overrides)
    return GameRecord(**values)


class EngineTestCase(unittest.TestCase):
    """Sync engine over an in-memory store and a temporary cache directory."""

    def setUp(self) -> None:
        self.cache_dir = tempfile.mkdtemp()
        self.time = FakeTime()
        self.sleeps = []
        self.store = self.make_store()
        self.cache = PersistenceService(self.cache_dir)
        self.engine = self.make_engine()

    def tearDown(self) -> None:
        shutil.rmtree(self.cache_dir, ignore_errors=True)

    def make_store(self) -> InMemoryGameStore:
        return InMemoryGameStore()

    def make_engine(self, store=None, scope: str = TEST_PIN) -> SyncEngine:
        return SyncEngine(
            store if store is not None else self.store, self.cache, scope,
            sleep=self.sleeps.append, time_source=self.time,
        )
