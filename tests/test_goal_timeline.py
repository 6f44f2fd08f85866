import unittest

from fakes import FakeTime
from gamestats.errors import CapacityExceeded, InvalidConfiguration
from gamestats.models import GoalHistory, Side
from gamestats.services import GoalTimeline


class GoalTimelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.time = FakeTime()
        self.timeline = GoalTimeline(time_source=self.time)

    def test_minutes_follow_clock_position(self) -> None:
        for seconds in (10, 185, 2710):
            self.timeline.add_goal(Side.US, seconds)

        goals = self.timeline.goals(Side.US)
        self.assertEqual([goal.minute for goal in goals], [0, 3, 45])
        self.assertEqual([goal.time for goal in goals], ["0:10", "3:05", "45:10"])
        self.assertEqual(len(self.timeline.merged()), 3)

    def test_merged_orders_by_clock_then_sequence(self) -> None:
        self.timeline.add_goal(Side.US, 100)
        self.timeline.add_goal(Side.THEM, 50)
        self.timeline.add_goal(Side.US, 50)

        ordered = [(goal.side, goal.game_clock_seconds, goal.sequence) for goal in self.timeline.merged()]
        self.assertEqual(ordered, [(Side.THEM, 50, 2), (Side.US, 50, 3), (Side.US, 100, 1)])

    def test_merged_is_restartable_and_fixed_at_call(self) -> None:
        self.timeline.add_goal(Side.US, 30)
        view = self.timeline.merged()
        self.timeline.add_goal(Side.THEM, 10)

        self.assertEqual(list(view), list(view))
        self.assertEqual(len(list(view)), 1)
        self.assertEqual(view.describe(), "0:30 Us")

    def test_capacity_is_enforced_per_side(self) -> None:
        timeline = GoalTimeline(max_per_side=2, time_source=self.time)
        timeline.add_goal(Side.US, 1)
        timeline.add_goal(Side.US, 2)

        with self.assertRaises(CapacityExceeded):
            timeline.add_goal(Side.US, 3)
        self.assertEqual(timeline.count(Side.US), 2)
        self.assertTrue(timeline.is_full(Side.US))
        timeline.add_goal(Side.THEM, 3)

    def test_default_capacity_is_twenty(self) -> None:
        for second in range(20):
            self.timeline.add_goal(Side.THEM, second)
        with self.assertRaises(CapacityExceeded):
            self.timeline.add_goal(Side.THEM, 99)

    def test_negative_clock_position_is_rejected(self) -> None:
        with self.assertRaises(InvalidConfiguration):
            self.timeline.add_goal(Side.US, -1)

    def test_remove_last_takes_highest_sequence(self) -> None:
        self.timeline.add_goal(Side.US, 300)
        self.timeline.add_goal(Side.US, 100)
        self.timeline.edit_entry(Side.US, 1, 400)

        removed = self.timeline.remove_last(Side.US)
        self.assertEqual(removed.sequence, 2)
        self.assertEqual([goal.game_clock_seconds for goal in self.timeline.goals(Side.US)], [300])

    def test_remove_last_on_empty_side(self) -> None:
        self.assertIsNone(self.timeline.remove_last(Side.THEM))

    def test_edit_entry_recomputes_minute_and_keeps_sequence(self) -> None:
        first = self.timeline.add_goal(Side.US, 10)
        self.timeline.add_goal(Side.US, 20)

        edited = self.timeline.edit_entry(Side.US, 0, 125)
        self.assertEqual(edited.minute, 2)
        self.assertEqual(edited.sequence, first.sequence)
        self.assertEqual([g.game_clock_seconds for g in self.timeline.merged()], [20, 125])

        with self.assertRaises(IndexError):
            self.timeline.edit_entry(Side.US, 5, 10)

    def test_reset_restarts_sequence(self) -> None:
        self.timeline.add_goal(Side.US, 10)
        self.timeline.reset()
        self.assertEqual(self.timeline.count(Side.US), 0)
        self.assertEqual(self.timeline.add_goal(Side.THEM, 5).sequence, 1)


class GoalHistoryTests(unittest.TestCase):
    def test_snapshot_round_trips_through_json(self) -> None:
        timeline = GoalTimeline(time_source=FakeTime())
        timeline.add_goal(Side.US, 10)
        timeline.add_goal(Side.THEM, 700)

        restored = GoalHistory.from_json(timeline.snapshot().to_json())
        self.assertEqual(restored, timeline.snapshot())

    def test_legacy_goal_entries_recover_clock_position(self) -> None:
        history = GoalHistory.from_json({"our": [{"time": "12:34"}, {"minute": 40}], "their": None})

        self.assertEqual([goal.game_clock_seconds for goal in history.us], [754, 2400])
        self.assertEqual(history.them, ())

    def test_resized_history(self) -> None:
        history = GoalHistory.from_json({"our": [{"gameClockSeconds": 10}, {"gameClockSeconds": 20}]})

        for count, expected in ((0, []), (1, [10]), (4, [10, 20, 90, 90])):
            with self.subTest(count=count):
                resized = history.resized(Side.US, count, 90)
                self.assertEqual([goal.game_clock_seconds for goal in resized.us], expected)
