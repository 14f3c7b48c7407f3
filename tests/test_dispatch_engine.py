import json
import unittest

from habitfocus_store import HABITS_KEY, HabitFocus, MemoryStore, is_habit_active

TODAY = "2024-06-10"


def make_core(today: str = TODAY) -> HabitFocus:
    return HabitFocus(MemoryStore(), today=lambda: today)


def habit_tasks(daily: dict, habit_id: str) -> list[dict]:
    return [t for t in daily["tasks"] if t["habitId"] == habit_id]


class TestInitializeDay(unittest.TestCase):
    def test_quota_creates_inbox_instances(self) -> None:
        core = make_core()
        habit = core.add_habit("Read", "P2", 3, 30)
        daily = core.initialize_day("2024-06-12")
        tasks = habit_tasks(daily, habit["id"])
        self.assertEqual(len(tasks), 3)
        for task in tasks:
            self.assertEqual(task["status"], "inbox")
            self.assertEqual(task["date"], "2024-06-12")
            self.assertEqual(task["name"], "Read")
            self.assertEqual(task["priority"], "P2")
            self.assertEqual(task["durationMinutes"], 30)
        self.assertEqual(len({t["id"] for t in tasks}), 3)

    def test_dispatch_is_persisted(self) -> None:
        core = make_core()
        core.add_habit("Read", "P2", 2, 30)
        daily = core.initialize_day(TODAY)
        self.assertEqual(core.get_daily_data(TODAY), daily)

    def test_defaults_to_today(self) -> None:
        core = make_core()
        core.add_habit("Read", "P2", 1)
        daily = core.initialize_day()
        self.assertEqual(daily["date"], TODAY)
        self.assertEqual(daily["tasks"][0]["durationMinutes"], 25)

    def test_second_call_is_idempotent(self) -> None:
        core = make_core()
        core.add_habit("Read", "P2", 3, 30)
        core.add_habit("Run", "P1", 1, 45)
        first = core.initialize_day(TODAY)
        second = core.initialize_day(TODAY)
        self.assertEqual(first, second)
        self.assertEqual(len(second["tasks"]), 4)

    def test_quota_increase_tops_up(self) -> None:
        core = make_core()
        habit = core.add_habit("Read", "P2", 1, 30)
        core.initialize_day(TODAY)
        core.habits.update_habit({**habit, "dailyQuota": 3})
        daily = core.initialize_day(TODAY)
        self.assertEqual(len(habit_tasks(daily, habit["id"])), 3)

    def test_past_days_are_never_rewritten(self) -> None:
        core = make_core()
        habit = core.add_habit("Read", "P2", 1, 30)
        core.save_daily_data({"date": "2024-06-01", "tasks": []})
        core.habits.update_habit({**habit, "dailyQuota": 4})
        daily = core.initialize_day("2024-06-01")
        self.assertEqual(daily, {"date": "2024-06-01", "tasks": []})
        self.assertEqual(core.get_daily_data("2024-06-01"), {"date": "2024-06-01", "tasks": []})

    def test_past_day_without_log_is_not_stored(self) -> None:
        core = make_core()
        core.add_habit("Read", "P2", 2, 30)
        daily = core.initialize_day("2024-05-01")
        self.assertEqual(daily, {"date": "2024-05-01", "tasks": []})
        self.assertIsNone(core.get_daily_data("2024-05-01"))

    def test_soft_deleted_slot_is_not_regenerated(self) -> None:
        core = make_core()
        habit = core.add_habit("Read", "P2", 3, 30)
        daily = core.initialize_day(TODAY)
        victim = daily["tasks"][0]
        core.delete_task_from_day(victim["id"], TODAY)
        daily = core.initialize_day(TODAY)
        tasks = habit_tasks(daily, habit["id"])
        self.assertEqual(len(tasks), 3)
        self.assertEqual(sum(1 for t in tasks if t["status"] == "deleted"), 1)

    def test_snapshot_is_not_linked_to_habit(self) -> None:
        core = make_core()
        habit = core.add_habit("Read", "P2", 1, 30)
        core.initialize_day(TODAY)
        core.habits.update_habit({**habit, "name": "Read more", "defaultDurationMinutes": 60})
        task = core.initialize_day(TODAY)["tasks"][0]
        self.assertEqual(task["name"], "Read")
        self.assertEqual(task["durationMinutes"], 30)


class TestDateRangeEligibility(unittest.TestCase):
    def setUp(self) -> None:
        self.core = make_core("2024-05-01")
        self.habit = self.core.add_habit(
            "June sprint", "P1", 2, 50, "range", "2024-06-01", "2024-06-30"
        )

    def test_outside_range_produces_nothing(self) -> None:
        for day in ("2024-05-31", "2024-07-01"):
            daily = self.core.initialize_day(day)
            self.assertEqual(habit_tasks(daily, self.habit["id"]), [], day)

    def test_inside_range_produces_full_quota(self) -> None:
        for day in ("2024-06-01", "2024-06-15", "2024-06-30"):
            daily = self.core.initialize_day(day)
            self.assertEqual(len(habit_tasks(daily, self.habit["id"])), 2, day)

    def test_open_bounds(self) -> None:
        self.assertTrue(is_habit_active({"effectiveType": "range"}, "1999-01-01"))
        self.assertTrue(is_habit_active({"effectiveType": "range", "startDate": "2024-01-01"}, "2030-01-01"))
        self.assertFalse(is_habit_active({"effectiveType": "range", "endDate": "2024-01-01"}, "2024-01-02"))
        self.assertTrue(is_habit_active({"effectiveType": "permanent", "endDate": "2000-01-01"}, "2024-01-02"))


class TestReduceHabitQuota(unittest.TestCase):
    def test_decrements_quota(self) -> None:
        core = make_core()
        habit = core.add_habit("Read", "P2", 3, 30)
        core.reduce_habit_quota(habit["id"])
        self.assertEqual(core.get_habits()[0]["dailyQuota"], 2)

    def test_last_slot_deletes_habit_and_cascades(self) -> None:
        core = make_core()
        habit = core.add_habit("Read", "P2", 1, 30)
        other = core.add_habit("Run", "P1", 1, 45)
        today = core.initialize_day(TODAY)
        tomorrow = core.initialize_day("2024-06-11")
        kept = habit_tasks(today, habit["id"])[0]
        core.lifecycle.schedule_task(kept["id"], TODAY, "09:00")

        core.reduce_habit_quota(habit["id"])

        self.assertEqual([h["id"] for h in core.get_habits()], [other["id"]])
        self.assertEqual(habit_tasks(core.get_daily_data("2024-06-11"), habit["id"]), [])
        self.assertEqual(len(habit_tasks(core.get_daily_data("2024-06-11"), other["id"])), 1)
        remaining = habit_tasks(core.get_daily_data(TODAY), habit["id"])
        self.assertEqual([t["status"] for t in remaining], ["scheduled"])
        self.assertEqual(len(tomorrow["tasks"]), 2)

    def test_non_numeric_quota_is_left_alone(self) -> None:
        habit = {
            "id": "h",
            "name": "Read",
            "priority": "P2",
            "dailyQuota": "two",
            "defaultDurationMinutes": 30,
            "effectiveType": "permanent",
        }
        store = MemoryStore({HABITS_KEY: json.dumps([habit])})
        core = HabitFocus(store, today=lambda: TODAY)
        with self.assertLogs("habitfocus_store", level="WARNING"):
            self.assertEqual(core.initialize_day(TODAY)["tasks"], [])
        with self.assertLogs("habitfocus_store", level="WARNING"):
            core.reduce_habit_quota("h")
        self.assertEqual(core.get_habits(), [habit])

    def test_missing_habit_is_a_no_op(self) -> None:
        core = make_core()
        core.add_habit("Read", "P2", 2, 30)
        with self.assertLogs("habitfocus_store", level="WARNING"):
            core.reduce_habit_quota("nope")
        self.assertEqual(core.get_habits()[0]["dailyQuota"], 2)


if __name__ == "__main__":
    unittest.main()
