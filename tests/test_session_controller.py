import threading

from fakes import BlockingStore, EngineTestCase
from gamestats.errors import CapacityExceeded, InvalidConfiguration
from gamestats.models import GameType, Side, Stat
from gamestats.services import CommitStatus, SessionController


class SessionControllerTests(EngineTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.session = SessionController(self.engine, half_minutes=30, time_source=self.time)
        self.session.set_game_info(date="2024-09-14", player_name="Sam", opponent="Rovers")

    def test_goals_are_stamped_with_game_clock(self) -> None:
        self.session.timer.start()
        self.time.advance(185)
        goal = self.session.add_our_goal()

        self.assertEqual(goal.game_clock_seconds, 185)
        self.assertEqual(goal.minute, 3)

    def test_second_half_goals_sort_after_first_half(self) -> None:
        timer = self.session.timer
        timer.start()
        self.time.advance(1790)
        self.session.add_their_goal()
        self.time.advance(10)
        timer.start_second_half()
        timer.start()
        self.time.advance(5)
        self.session.add_our_goal()

        ordered = [(g.side, g.game_clock_seconds) for g in self.session.timeline.merged()]
        self.assertEqual(ordered, [(Side.THEM, 1790), (Side.US, 1805)])

    def test_double_tap_is_ignored_inside_goal_lock(self) -> None:
        self.assertIsNotNone(self.session.add_our_goal())
        self.time.advance(0.2)
        self.assertIsNone(self.session.add_our_goal())
        self.assertIsNone(self.session.remove_last_goal(Side.US))
        self.assertTrue(self.session.goal_locked)

        self.time.advance(0.3)
        self.assertIsNotNone(self.session.add_their_goal())
        self.assertEqual(self.session.timeline.count(Side.US), 1)
        self.assertEqual(self.session.timeline.count(Side.THEM), 1)

    def test_remove_last_goal_after_lock(self) -> None:
        self.session.add_our_goal()
        self.time.advance(1)
        removed = self.session.remove_last_goal(Side.US)
        self.assertEqual(removed.sequence, 1)
        self.assertEqual(self.session.timeline.count(Side.US), 0)

    def test_capacity_errors_propagate(self) -> None:
        for _ in range(20):
            self.session.add_our_goal()
            self.time.advance(1)
        with self.assertRaises(CapacityExceeded):
            self.session.add_our_goal()

    def test_edit_goal_accepts_clock_text(self) -> None:
        self.session.add_our_goal()
        edited = self.session.edit_goal(Side.US, 0, "12:30")
        self.assertEqual(edited.game_clock_seconds, 750)
        with self.assertRaises(InvalidConfiguration):
            self.session.edit_goal(Side.US, 0, "soon")

    def test_commit_with_warnings_needs_confirmation(self) -> None:
        self.session.ledger.set(Stat.SHOTS_LEFT, 2)
        self.session.ledger.set(Stat.GOALS_LEFT, 3)

        result = self.session.commit()

        self.assertEqual(result.status, CommitStatus.NEEDS_CONFIRMATION)
        self.assertEqual(result.warnings, ["Left foot goals exceed shots"])
        self.assertIsNone(result.record)
        self.assertEqual(self.store.calls, [])
        self.assertEqual(self.session.ledger.get(Stat.GOALS_LEFT), 3)

    def test_forced_commit_saves_and_resets_game_state(self) -> None:
        self.session.set_game_info(notes="Windy", game_type="Tournament")
        self.session.ledger.set(Stat.SHOTS_LEFT, 2)
        self.session.ledger.set(Stat.GOALS_LEFT, 3)
        self.session.add_our_goal()
        self.session.start_player_timer()
        self.time.advance(90)

        result = self.session.commit(force=True)

        self.assertEqual(result.status, CommitStatus.COMMITTED)
        self.assertIsNone(result.error)
        self.assertEqual(result.record.stats["goalsLeft"], 3)
        self.assertEqual(result.record.our_goals, 1)
        self.assertEqual(result.record.game_notes, "Windy")
        self.assertEqual(result.record.player_seconds_played, 90)
        self.assertEqual(len(self.store), 1)

        self.assertEqual(self.session.ledger.get(Stat.GOALS_LEFT), 0)
        self.assertEqual(self.session.timeline.count(Side.US), 0)
        self.assertEqual(self.session.notes, "")
        self.assertFalse(self.session.goal_locked)
        self.assertEqual(self.session.player_name, "Sam")
        self.assertEqual(self.session.opponent, "Rovers")
        self.assertEqual(self.session.game_type, GameType.TOURNAMENT)

    def test_commit_keeps_record_locally_when_store_fails(self) -> None:
        self.store.fail_next(3)
        self.session.add_our_goal()

        result = self.session.commit()

        self.assertEqual(result.status, CommitStatus.COMMITTED)
        self.assertIsNotNone(result.error)
        self.assertTrue(result.record.is_local_only)
        self.assertEqual(self.engine.records(), [result.record])
        self.assertEqual(self.session.timeline.count(Side.US), 0)

    def test_commit_requires_player_and_date(self) -> None:
        self.session.set_game_info(player_name="")
        with self.assertRaises(InvalidConfiguration):
            self.session.commit(force=True)
        self.assertEqual(self.store.calls, [])

    def test_game_info_is_sanitised(self) -> None:
        self.session.set_game_info(opponent="=HYPERLINK(x)", player_name="A" * 80, notes="ok\x07")
        self.assertEqual(self.session.opponent, "'=HYPERLINK(x)")
        self.assertEqual(len(self.session.player_name), 50)
        self.assertEqual(self.session.notes, "ok")

        with self.assertRaises(InvalidConfiguration):
            self.session.set_game_info(game_type="Friendly")
        self.assertEqual(self.session.game_type, GameType.LEAGUE)

    def test_build_record_captures_timer(self) -> None:
        self.session.timer.start()
        self.time.advance(600)

        record = self.session.build_record()

        self.assertEqual(record.halftime_minutes, 30)
        self.assertEqual(record.halftime_elapsed_seconds, 600)
        self.assertEqual(record.game_clock_seconds, 600)
        self.assertFalse(record.halftime_complete)

    def test_state_snapshot(self) -> None:
        self.session.add_our_goal()
        self.session.increment_stat(Stat.ASSISTS)

        state = self.session.state()

        self.assertEqual(state["gameInfo"]["playerName"], "Sam")
        self.assertEqual(state["goals"]["ourGoals"], 1)
        self.assertEqual(state["goals"]["summary"], "0:00 Us")
        self.assertEqual(state["goals"]["timeline"][0]["side"], "us")
        self.assertEqual(state["stats"]["assists"], 1)
        self.assertEqual(state["timer"]["phase"], "first_paused")
        self.assertEqual(state["warnings"], [])


class CommitDuringSaveTests(EngineTestCase):
    def make_store(self) -> BlockingStore:
        return BlockingStore()

    def setUp(self) -> None:
        super().setUp()
        self.session = SessionController(self.engine, half_minutes=30, time_source=self.time)
        self.session.set_game_info(date="2024-09-14", player_name="Sam", opponent="Rovers")

    def tearDown(self) -> None:
        self.store.release.set()
        super().tearDown()

    def test_goals_logged_during_save_carry_into_next_game(self) -> None:
        self.session.add_our_goal()
        self.session.increment_stat(Stat.ASSISTS)
        self.time.advance(1)
        results = {}
        committer = threading.Thread(target=lambda: results.setdefault("commit", self.session.commit(force=True)))
        committer.start()
        self.assertTrue(self.store.save_started.wait(5))

        accepted = self.session.add_our_goal()
        self.session.increment_stat(Stat.SHOTS_LEFT)
        self.store.release.set()
        committer.join(5)

        self.assertIsNotNone(accepted)
        committed = results["commit"].record
        self.assertEqual(committed.our_goals, 1)
        self.assertEqual(committed.stats["assists"], 1)
        self.assertEqual(committed.stats["shotsLeft"], 0)
        self.assertEqual(self.session.timeline.count(Side.US), 1)
        self.assertEqual(self.session.ledger.get(Stat.SHOTS_LEFT), 1)
        self.assertEqual(self.session.ledger.get(Stat.ASSISTS), 0)

    def test_live_state_answers_while_save_is_in_flight(self) -> None:
        committer = threading.Thread(target=lambda: self.session.commit(force=True))
        committer.start()
        self.assertTrue(self.store.save_started.wait(5))

        self.session.timer.start()
        state = self.session.state()
        self.store.release.set()
        committer.join(5)

        self.assertTrue(state["timer"]["isRunning"])
        self.assertEqual(state["goals"]["ourGoals"], 0)
