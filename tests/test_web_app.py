"""Tests for the Flask JSON API."""

import csv
import io
import threading

from fakes import TEST_PIN, BlockingStore, EngineTestCase
from gamestats.config import Config
from gamestats.services import ServiceFactory
from gamestats.ui import create_app


class WebAppTestCase(EngineTestCase):
    def setUp(self) -> None:
        super().setUp()
        cache_dir = self.cache_dir

        class TestConfig(Config):
            STORE_URL = ''
            CACHE_DIR = cache_dir
            USER_PIN = TEST_PIN
            HALF_MINUTES = 30

        factory = ServiceFactory(TestConfig, store=self.store, time_source=self.time, sleep=lambda seconds: None)
        self.app = create_app(factory)
        self.app.config["TESTING"] = True
        self.client = self.app.test_client()

    def set_info(self, **fields):
        payload = {"date": "2024-09-14", "playerName": "Sam", "opponent": "Rovers"}
        payload.update(fields)
        return self.client.post("/api/game-info", json=payload)

    def commit_game(self):
        self.set_info()
        return self.client.post("/api/commit", json={}).get_json()


class LiveSessionApiTests(WebAppTestCase):
    def test_index(self) -> None:
        data = self.client.get("/").get_json()

        self.assertEqual(data["userPin"], "1234")
        self.assertEqual(data["tickIntervalSeconds"], 0.1)

    def test_state_endpoint(self) -> None:
        response = self.client.get("/api/state")

        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertIs(data["success"], True)
        self.assertEqual(data["session"]["timer"]["halfMinutes"], 30)
        self.assertEqual(data["sync"]["userPin"], "1234")

    def test_timer_controls(self) -> None:
        self.assertEqual(self.client.post("/api/timer/start").status_code, 200)
        self.time.advance(65)

        data = self.client.post("/api/timer/pause").get_json()
        self.assertEqual(data["session"]["timer"]["elapsedSeconds"], 65)
        self.assertIs(data["session"]["timer"]["isRunning"], False)

        self.assertEqual(self.client.post("/api/timer/second-half").status_code, 400)
        self.assertEqual(self.client.post("/api/timer/rewind").status_code, 404)

    def test_configure_half_length(self) -> None:
        data = self.client.post("/api/timer/configure", json={"halfMinutes": 45}).get_json()
        self.assertEqual(data["session"]["timer"]["halfMinutes"], 45)

        response = self.client.post("/api/timer/configure", json={"halfMinutes": 120})
        self.assertEqual(response.status_code, 400)
        self.assertIs(response.get_json()["success"], False)

    def test_goals_and_double_tap(self) -> None:
        first = self.client.post("/api/goals/us").get_json()
        second = self.client.post("/api/goals/us").get_json()

        self.assertIs(first["accepted"], True)
        self.assertIs(second["accepted"], False)
        self.assertEqual(second["session"]["goals"]["ourGoals"], 1)

        self.time.advance(1)
        removed = self.client.delete("/api/goals/us/last").get_json()
        self.assertEqual(removed["removed"]["sequence"], 1)
        self.assertEqual(self.client.post("/api/goals/sideline").status_code, 400)

    def test_stat_counters(self) -> None:
        data = self.client.post("/api/stats/shotsLeft/increment").get_json()
        self.assertEqual(data["value"], 1)

        self.assertEqual(self.client.post("/api/stats/shotsLeft/decrement").get_json()["value"], 0)
        self.assertEqual(self.client.post("/api/stats/shotsLeft/decrement").get_json()["value"], 0)
        self.assertEqual(self.client.post("/api/stats/headers/increment").status_code, 400)

    def test_commit_flow(self) -> None:
        self.set_info()
        self.client.post("/api/stats/goalsLeft/increment")

        response = self.client.post("/api/commit", json={})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()["warnings"], ["Left foot goals exceed shots"])
        self.assertEqual(len(self.store), 0)

        response = self.client.post("/api/commit", json={"force": True})
        data = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data["status"], "committed")
        self.assertEqual(data["record"]["id"], "game1")
        self.assertIsNone(data["error"])

    def test_commit_without_player_is_rejected(self) -> None:
        self.set_info(playerName="")
        response = self.client.post("/api/commit", json={"force": True})
        self.assertEqual(response.status_code, 400)


class HistoryApiTests(WebAppTestCase):
    def test_history_edit_and_delete(self) -> None:
        self.commit_game()

        history = self.client.get("/api/history").get_json()
        self.assertEqual(history["summary"]["totalGames"], 1)
        game_id = history["games"][0]["id"]

        edited = self.client.put(f"/api/history/{game_id}", json={"opponent": "City", "assists": 2}).get_json()
        self.assertEqual(edited["record"]["opponent"], "City")
        self.assertIs(edited["synced"], True)
        self.assertNotIn("warnings", edited)
        self.assertEqual(self.client.get(f"/api/history/{game_id}").get_json()["record"]["assists"], 2)
        self.assertEqual(self.client.get("/api/history?opponent=city").get_json()["games"][0]["id"], game_id)
        self.assertEqual(self.client.get("/api/history/filters").get_json()["opponents"], ["City"])

        self.assertEqual(self.client.put("/api/history/game42", json={}).status_code, 404)
        self.assertEqual(self.client.delete(f"/api/history/{game_id}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/history/{game_id}").status_code, 404)
        self.assertEqual(len(self.store), 0)

    def test_edit_returns_stat_warnings(self) -> None:
        game_id = self.commit_game()["record"]["id"]

        data = self.client.put(f"/api/history/{game_id}", json={"goalsRight": 2}).get_json()

        self.assertIs(data["success"], True)
        self.assertEqual(data["warnings"], ["Right foot goals exceed shots"])
        self.assertEqual(data["record"]["goalsRight"], 2)

    def test_edit_with_bad_half_length_is_rejected(self) -> None:
        game_id = self.commit_game()["record"]["id"]

        response = self.client.put(f"/api/history/{game_id}", json={"halftimeMinutes": 0})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.get(f"/api/history/{game_id}").get_json()["record"]["halftimeMinutes"], 30)

    def test_offline_commit_then_reconnect(self) -> None:
        self.client.post("/api/network/offline")

        data = self.commit_game()
        self.assertEqual(data["record"]["syncState"], "local-only")
        self.assertTrue(data["error"])

        online = self.client.post("/api/network/online").get_json()
        self.assertIs(online["synced"], True)
        self.assertEqual(online["sync"]["pending"], 0)
        self.assertEqual(len(self.store), 1)
        self.assertEqual(len(self.client.get("/api/history").get_json()["games"]), 1)

    def test_exports(self) -> None:
        self.commit_game()

        response = self.client.get("/api/export/csv")
        self.assertEqual(response.mimetype, "text/csv")
        rows = list(csv.DictReader(io.StringIO(response.get_data(as_text=True))))
        self.assertEqual(rows[0]["Game #"], "SUMMARY")
        self.assertEqual(rows[1]["Opponent"], "Rovers")

        backup = self.client.get("/api/export/backup").get_json()
        self.assertEqual(backup["metadata"]["totalGames"], 1)

        self.client.delete("/api/history")
        restored = self.client.post("/api/import/backup", json=backup).get_json()
        self.assertEqual(restored["restored"], 1)
        self.assertEqual(len(self.client.get("/api/history").get_json()["games"]), 1)

    def test_clear_history(self) -> None:
        self.commit_game()

        data = self.client.delete("/api/history").get_json()

        self.assertIs(data["success"], True)
        self.assertEqual(self.client.get("/api/history").get_json()["games"], [])
        self.assertEqual(len(self.store), 0)


class SaveInFlightApiTests(WebAppTestCase):
    def make_store(self) -> BlockingStore:
        return BlockingStore()

    def tearDown(self) -> None:
        self.store.release.set()
        super().tearDown()

    def request_in_thread(self, method: str, path: str, responses: dict) -> threading.Thread:
        client = self.app.test_client()
        worker = threading.Thread(target=lambda: responses.setdefault(path, client.open(path, method=method)))
        worker.start()
        return worker

    def test_live_endpoints_answer_while_commit_is_saving(self) -> None:
        self.set_info()
        self.client.post("/api/timer/start")
        responses = {}
        committer = self.request_in_thread("POST", "/api/commit", responses)
        self.assertTrue(self.store.save_started.wait(5))

        live = [
            self.request_in_thread("POST", "/api/timer/pause", responses),
            self.request_in_thread("GET", "/api/state", responses),
            self.request_in_thread("POST", "/api/goals/us", responses),
        ]
        for worker in live:
            worker.join(2)
        answered = [not worker.is_alive() for worker in live]
        self.store.release.set()
        committer.join(5)
        for worker in live:
            worker.join(5)

        self.assertEqual(answered, [True, True, True])
        self.assertIs(responses["/api/timer/pause"].get_json()["session"]["timer"]["isRunning"], False)
        self.assertEqual(responses["/api/state"].get_json()["sync"]["status"], "syncing")
        self.assertIs(responses["/api/goals/us"].get_json()["accepted"], True)
        self.assertEqual(responses["/api/commit"].get_json()["record"]["ourGoals"], 0)
        self.assertEqual(self.client.get("/api/state").get_json()["session"]["goals"]["ourGoals"], 1)
