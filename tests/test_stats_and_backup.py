import json
import unittest

from habitfocus_store import (
    DAILY_LOGS_KEY,
    HABITS_KEY,
    HabitFocus,
    MemoryStore,
    ValidationError,
    validate_snapshot,
)

TODAY = "2024-06-10"


def completed(task_id: str, minutes: int) -> dict:
    return {"id": task_id, "habitId": "h", "status": "completed", "durationMinutes": minutes}


class TestYearlyStats(unittest.TestCase):
    def test_sums_completed_minutes_only(self) -> None:
        core = HabitFocus(MemoryStore(), today=lambda: TODAY)
        core.save_daily_data(
            {
                "date": "2024-03-01",
                "tasks": [
                    completed("a", 60),
                    completed("b", 30),
                    {"id": "c", "status": "scheduled", "durationMinutes": 45},
                    {"id": "d", "status": "deleted", "durationMinutes": 45},
                ],
            }
        )
        core.save_daily_data({"date": "2024-03-02", "tasks": [{"id": "e", "status": "inbox", "durationMinutes": 25}]})
        core.save_daily_data({"date": "2024-03-03", "tasks": []})
        self.assertEqual(core.get_yearly_stats(), {"2024-03-01": 90})

    def test_flow_through_lifecycle(self) -> None:
        core = HabitFocus(MemoryStore(), today=lambda: TODAY)
        core.add_habit("Deep work", "P1", 2, 50)
        first, second = core.initialize_day(TODAY)["tasks"]
        core.lifecycle.schedule_task(first["id"], TODAY, "08:00")
        core.lifecycle.complete_task(first["id"], TODAY)
        core.lifecycle.schedule_task(second["id"], TODAY, "10:00")
        self.assertEqual(core.get_yearly_stats(), {TODAY: 50})

    def test_empty_store(self) -> None:
        self.assertEqual(HabitFocus(MemoryStore()).get_yearly_stats(), {})


class TestBackupRestore(unittest.TestCase):
    def make_populated(self) -> HabitFocus:
        core = HabitFocus(MemoryStore(), today=lambda: TODAY)
        core.add_habit("Read", "P2", 2, 30)
        core.add_habit("Sprint", "P1", 1, 60, "range", "2024-06-01", "2024-06-30")
        daily = core.initialize_day(TODAY)
        core.lifecycle.schedule_task(daily["tasks"][0]["id"], TODAY, "09:00")
        core.delete_task_from_day(daily["tasks"][1]["id"], TODAY)
        return core

    def test_export_shape(self) -> None:
        core = self.make_populated()
        document = json.loads(core.get_all_data_json())
        self.assertEqual(set(document), {"timestamp", "habits", "dailyLogs"})
        self.assertTrue(document["timestamp"].endswith("Z"))
        self.assertEqual(document["habits"], core.get_habits())
        self.assertEqual(list(document["dailyLogs"]), [TODAY])

    def test_round_trip_into_fresh_store(self) -> None:
        source = self.make_populated()
        target = HabitFocus(MemoryStore(), today=lambda: TODAY)
        self.assertTrue(target.import_data_json(source.get_all_data_json()))
        self.assertEqual(target.get_habits(), source.get_habits())
        self.assertEqual(target.store.get(DAILY_LOGS_KEY), source.store.get(DAILY_LOGS_KEY))
        self.assertEqual(target.initialize_day(TODAY), source.initialize_day(TODAY))

    def test_invalid_documents_leave_state_untouched(self) -> None:
        core = self.make_populated()
        before = dict(core.store.raw)
        bad_inputs = [
            "not json",
            "[]",
            json.dumps({"habits": {}, "dailyLogs": {}}),
            json.dumps({"habits": [], "dailyLogs": []}),
            json.dumps({"habits": []}),
        ]
        for text in bad_inputs:
            with self.assertLogs("habitfocus_store", level="ERROR"):
                self.assertFalse(core.import_data_json(text), text)
            self.assertEqual(core.store.raw, before)

    def test_restore_snapshot_raises_validation_error(self) -> None:
        core = HabitFocus(MemoryStore())
        with self.assertRaises(ValidationError):
            core.restore_snapshot('{"habits": "nope", "dailyLogs": {}}')
        with self.assertRaises(ValidationError):
            validate_snapshot(None)

    def test_import_replaces_both_collections(self) -> None:
        core = self.make_populated()
        self.assertTrue(core.import_data_json(json.dumps({"habits": [], "dailyLogs": {}})))
        self.assertEqual(core.store.get(HABITS_KEY), [])
        self.assertEqual(core.store.get(DAILY_LOGS_KEY), {})


if __name__ == "__main__":
    unittest.main()
