# HabitFocus — Daily Dispatch Engine
# -----------------------------------------------------------
# Turns recurring habits into dated, quota-limited task instances and keeps
# them consistent as habits are edited or deleted.
#
#   • Habits and daily logs live in two independent collections of a
#     key-value store (JSON files on disk, or memory for tests)
#   • initialize_day() materializes inbox tasks for today or a future day;
#     past days are never rewritten
#   • Deleted tasks stay in the log with status "deleted" so a slot that was
#     dispatched once is never dispatched again on the same day
#   • Completed minutes fold into a date -> minutes map for the heat-map
#
# Records are plain dicts using the camelCase keys of the backup format.

import json
import logging
import os
import re
import tempfile
import uuid
from datetime import date, datetime, timezone

LOGGER = logging.getLogger(__name__)

# -------------------------------
# CONFIG
# -------------------------------
DATA_DIR = os.environ.get("HABITFOCUS_DATA_DIR") or os.path.join(
    os.path.expanduser("~"), "Documents", "HabitFocus"
)
HABITS_KEY = "habitfocus_habits"
DAILY_LOGS_KEY = "habitfocus_daily_logs"

PRIORITIES = ["P1", "P2", "P3"]
EFFECTIVE_TYPES = ["permanent", "range"]
STATUSES = ["inbox", "scheduled", "completed", "deleted"]

DEFAULT_DURATION_MINUTES = 25
HOUR_SLOTS = [f"{hour:02d}:00" for hour in range(8, 24)]

# Fallback returned for each collection when its stored text is missing or bad.
COLLECTION_DEFAULTS = {
    HABITS_KEY: list,
    DAILY_LOGS_KEY: dict,
}

TIME_REGEX = re.compile(r"^\d{2}:\d{2}$")


# -------------------------------
# Errors
# -------------------------------
class HabitFocusError(Exception):
    """Base class for errors raised by the dispatch engine."""


class ValidationError(HabitFocusError):
    """A restore document does not have the backup shape."""


class TransitionError(HabitFocusError):
    """A task status change is not allowed by the lifecycle."""


# -------------------------------
# Helpers
# -------------------------------
def today_str() -> str:
    return date.today().strftime("%Y-%m-%d")


def generate_id() -> str:
    return uuid.uuid4().hex


def utc_timestamp() -> str:
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def is_habit_active(habit: dict, date_str: str) -> bool:
    """Return True when ``habit`` should produce tasks on ``date_str``.

    Permanent habits are always active. Range habits are bounded by the
    optional, inclusive ``startDate``/``endDate``; a missing bound is open.
    ISO date strings compare correctly as plain strings.
    """
    if habit.get("effectiveType") != "range":
        return True
    start = habit.get("startDate")
    end = habit.get("endDate")
    if start and date_str < start:
        return False
    if end and date_str > end:
        return False
    return True


def _coerce_daily(date_str: str, raw) -> dict:
    # Logs written by older builds (or edited by hand) may be missing fields.
    # The key a record is stored under is its date.
    if not isinstance(raw, dict):
        return {"date": date_str, "tasks": []}
    tasks = raw.get("tasks")
    if not isinstance(tasks, list):
        tasks = []
    return {
        "date": date_str,
        "tasks": [t for t in tasks if isinstance(t, dict)],
    }


# -------------------------------
# Storage
# -------------------------------
class KeyValueStore:
    """Durable key -> JSON value storage.

    Subclasses provide ``_read_raw``/``_write_raw`` over serialized text.
    ``get`` never raises on bad content: unparsable text, a JSON ``null`` or a
    value of the wrong shape yields the collection's empty default and a
    warning in the log.
    """

    def _read_raw(self, key: str) -> str | None:
        raise NotImplementedError

    def _write_raw(self, key: str, text: str) -> None:
        raise NotImplementedError

    def _write_many_raw(self, items: dict[str, str]) -> None:
        for key, text in items.items():
            self._write_raw(key, text)

    def get(self, key: str):
        factory = COLLECTION_DEFAULTS.get(key)
        fallback = factory() if factory else None
        text = self._read_raw(key)
        if not text or text in ("undefined", "null"):
            return fallback
        try:
            value = json.loads(text)
        except ValueError as exc:
            LOGGER.warning("Failed to parse stored %s, resetting to fallback: %s", key, exc)
            return fallback
        if value is None:
            return fallback
        if factory and not isinstance(value, factory):
            LOGGER.warning(
                "Stored %s has type %s, expected %s; resetting to fallback",
                key,
                type(value).__name__,
                factory.__name__,
            )
            return fallback
        return value

    def set(self, key: str, value) -> None:
        self._write_raw(key, json.dumps(value, indent=2, ensure_ascii=False))

    def replace_all(self, values: dict) -> None:
        """Serialize every value first, then write them all."""
        serialized = {
            key: json.dumps(value, indent=2, ensure_ascii=False)
            for key, value in values.items()
        }
        self._write_many_raw(serialized)


class MemoryStore(KeyValueStore):
    def __init__(self, initial: dict[str, str] | None = None):
        self.raw: dict[str, str] = dict(initial or {})

    def _read_raw(self, key: str) -> str | None:
        return self.raw.get(key)

    def _write_raw(self, key: str, text: str) -> None:
        self.raw[key] = text

    def _write_many_raw(self, items: dict[str, str]) -> None:
        self.raw.update(items)


class JsonFileStore(KeyValueStore):
    """One pretty-printed ``<key>.json`` file per collection."""

    def __init__(self, directory: str = DATA_DIR):
        self.directory = directory

    def path_for(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def _read_raw(self, key: str) -> str | None:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Unable to read %s: %s", path, exc)
            return None

    def _stage(self, key: str, text: str) -> str:
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError:
            os.remove(tmp_path)
            raise
        return tmp_path

    def _write_raw(self, key: str, text: str) -> None:
        tmp_path = self._stage(key, text)
        try:
            os.replace(tmp_path, self.path_for(key))
        except OSError:
            os.remove(tmp_path)
            raise

    def _write_many_raw(self, items: dict[str, str]) -> None:
        # Stage every file before replacing any, so a failed write leaves the
        # previous collections in place.
        staged: dict[str, str] = {}
        try:
            for key, text in items.items():
                staged[key] = self._stage(key, text)
        except OSError:
            for tmp_path in staged.values():
                os.remove(tmp_path)
            raise
        for key, tmp_path in staged.items():
            os.replace(tmp_path, self.path_for(key))


# -------------------------------
# Habit repository
# -------------------------------
class HabitRepository:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_habits(self) -> list[dict]:
        return [h for h in self.store.get(HABITS_KEY) if isinstance(h, dict)]

    def save_habits(self, habits: list[dict]) -> None:
        self.store.set(HABITS_KEY, habits)

    def get_habit(self, habit_id: str) -> dict | None:
        for habit in self.get_habits():
            if habit.get("id") == habit_id:
                return habit
        return None

    def add_habit(
        self,
        name: str,
        priority: str,
        quota: int,
        duration: int = DEFAULT_DURATION_MINUTES,
        effective_type: str = "permanent",
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> dict:
        # Quota and duration bounds are enforced by the habit form.
        habit = {
            "id": generate_id(),
            "name": name,
            "priority": priority,
            "dailyQuota": quota,
            "defaultDurationMinutes": duration,
            "effectiveType": effective_type,
        }
        if start_date:
            habit["startDate"] = start_date
        if end_date:
            habit["endDate"] = end_date
        self.save_habits(self.get_habits() + [habit])
        LOGGER.info("Added habit %s (%s)", habit["id"], name)
        return habit

    def update_habit(self, habit: dict) -> None:
        habits = self.get_habits()
        updated = [habit if h.get("id") == habit.get("id") else h for h in habits]
        if updated != habits:
            self.save_habits(updated)

    def delete_habit(self, habit_id: str) -> None:
        """Remove the habit, then drop its unscheduled tasks from every day.

        Scheduled, completed and deleted instances stay behind as history.
        """
        habits = self.get_habits()
        self.save_habits([h for h in habits if h.get("id") != habit_id])

        logs = self.store.get(DAILY_LOGS_KEY)
        updated = False
        for date_str, raw in logs.items():
            if not isinstance(raw, dict) or not isinstance(raw.get("tasks"), list):
                continue
            kept = [
                t for t in raw["tasks"]
                if not (isinstance(t, dict) and t.get("habitId") == habit_id and t.get("status") == "inbox")
            ]
            if len(kept) != len(raw["tasks"]):
                raw["tasks"] = kept
                updated = True
        if updated:
            self.store.set(DAILY_LOGS_KEY, logs)
        LOGGER.info("Deleted habit %s", habit_id)


# -------------------------------
# Daily logs
# -------------------------------
class DailyLogStore:
    """Read-modify-write access to the DailyData records.

    Every save rewrites the full record for its date; two interleaved
    read-modify-write cycles on the same date keep only the later write.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def all_logs(self) -> dict[str, dict]:
        return {d: _coerce_daily(d, raw) for d, raw in self.store.get(DAILY_LOGS_KEY).items()}

    def get_daily_data(self, date_str: str) -> dict | None:
        raw = self.store.get(DAILY_LOGS_KEY).get(date_str)
        if raw is None:
            return None
        return _coerce_daily(date_str, raw)

    def save_daily_data(self, daily: dict) -> None:
        logs = self.store.get(DAILY_LOGS_KEY)
        logs[daily["date"]] = daily
        self.store.set(DAILY_LOGS_KEY, logs)


# -------------------------------
# Dispatch engine
# -------------------------------
class DispatchEngine:
    def __init__(self, habits: HabitRepository, logs: DailyLogStore, today=today_str):
        self.habits = habits
        self.logs = logs
        self.today = today

    @staticmethod
    def make_task(habit: dict, date_str: str) -> dict:
        # Snapshot of the habit; later habit edits never touch this record.
        return {
            "id": generate_id(),
            "habitId": habit.get("id"),
            "name": habit.get("name", ""),
            "priority": habit.get("priority", "P3"),
            "status": "inbox",
            "date": date_str,
            "durationMinutes": habit.get("defaultDurationMinutes", DEFAULT_DURATION_MINUTES),
        }

    def initialize_day(self, date_str: str | None = None) -> dict:
        """Return the DailyData for ``date_str``, topping up habit quotas.

        Only today and future days are synchronized. Existing tasks of a
        habit count against its quota whatever their status, so repeated
        calls never add duplicates and deleted slots are not refilled.
        """
        date_str = date_str or self.today()
        current = self.logs.get_daily_data(date_str) or {"date": date_str, "tasks": []}
        if date_str < self.today():
            return current

        tasks = list(current["tasks"])
        updated = False
        for habit in self.habits.get_habits():
            if not is_habit_active(habit, date_str):
                continue
            existing = sum(1 for t in tasks if t.get("habitId") == habit.get("id"))
            try:
                quota = int(habit.get("dailyQuota", 0))
            except (TypeError, ValueError):
                LOGGER.warning("Habit %s has an invalid quota; skipping", habit.get("id"))
                continue
            needed = quota - existing
            if needed <= 0:
                continue
            tasks.extend(self.make_task(habit, date_str) for _ in range(needed))
            updated = True

        if updated:
            current = {**current, "tasks": tasks}
            self.logs.save_daily_data(current)
            LOGGER.debug("Dispatched tasks for %s (%d total)", date_str, len(tasks))
        return current

    def reduce_habit_quota(self, habit_id: str) -> None:
        habit = self.habits.get_habit(habit_id)
        if habit is None:
            LOGGER.warning("Habit not found: %s", habit_id)
            return
        try:
            quota = int(habit.get("dailyQuota") or 1)
        except (TypeError, ValueError):
            LOGGER.warning("Habit %s has an invalid quota; leaving it unchanged", habit_id)
            return
        if quota > 1:
            self.habits.update_habit({**habit, "dailyQuota": quota - 1})
            LOGGER.info("Quota for habit %s reduced to %d", habit_id, quota - 1)
        else:
            # A zero-quota habit is not representable; the last slot takes the rule with it.
            LOGGER.info("Quota for habit %s is 1, deleting the habit", habit_id)
            self.habits.delete_habit(habit_id)


# -------------------------------
# Task lifecycle
# -------------------------------
TRANSITIONS = {
    "inbox": {"scheduled", "deleted"},
    "scheduled": {"completed", "deleted"},
    "completed": {"deleted"},
    "deleted": set(),
}


class TaskLifecycle:
    def __init__(self, logs: DailyLogStore, engine: DispatchEngine):
        self.logs = logs
        self.engine = engine

    def find_task(self, task_id: str, date_str: str) -> dict | None:
        daily = self.logs.get_daily_data(date_str)
        if not daily:
            return None
        for task in daily["tasks"]:
            if task.get("id") == task_id:
                return task
        return None

    def update_task(self, task: dict) -> None:
        """Replace the stored task with the same id on ``task['date']``."""
        daily = self.logs.get_daily_data(task.get("date", ""))
        if not daily:
            return
        if not any(t.get("id") == task.get("id") for t in daily["tasks"]):
            return
        daily["tasks"] = [task if t.get("id") == task.get("id") else t for t in daily["tasks"]]
        self.logs.save_daily_data(daily)

    def delete_task_from_day(self, task_id: str, date_str: str) -> None:
        daily = self.logs.get_daily_data(date_str)
        if not daily:
            return
        changed = False
        for task in daily["tasks"]:
            if task.get("id") == task_id:
                task["status"] = "deleted"
                changed = True
        if changed:
            self.logs.save_daily_data(daily)
            LOGGER.debug("Soft-deleted task %s on %s", task_id, date_str)

    def _transition(self, task_id: str, date_str: str, status: str) -> dict | None:
        task = self.find_task(task_id, date_str)
        if task is None:
            return None
        current = task.get("status", "inbox")
        if status not in TRANSITIONS.get(current, set()):
            raise TransitionError(f"Cannot move task {task_id} from {current} to {status}")
        return task

    def schedule_task(self, task_id: str, date_str: str, start_time: str) -> dict | None:
        if not TIME_REGEX.match(start_time or ""):
            raise ValueError(f"Invalid start time: {start_time!r}")
        task = self._transition(task_id, date_str, "scheduled")
        if task is None:
            return None
        updated = {**task, "status": "scheduled", "startTime": start_time}
        self.update_task(updated)
        return updated

    def complete_task(self, task_id: str, date_str: str) -> dict | None:
        task = self._transition(task_id, date_str, "completed")
        if task is None:
            return None
        updated = {**task, "status": "completed"}
        self.update_task(updated)
        return updated

    def delete_task_today(self, task_id: str, date_str: str) -> None:
        task = self.find_task(task_id, date_str)
        if task is None:
            return
        if task.get("status", "inbox") != "inbox":
            raise TransitionError(f"Only inbox tasks can be skipped for the day, not {task.get('status')}")
        self.delete_task_from_day(task_id, date_str)

    def delete_task_permanent(self, task_id: str, date_str: str) -> None:
        """Drop one slot from the habit's quota and soft-delete this instance."""
        task = self._transition(task_id, date_str, "deleted")
        if task is None:
            return
        self.engine.reduce_habit_quota(task.get("habitId"))
        self.delete_task_from_day(task_id, date_str)


# -------------------------------
# Day view helpers
# -------------------------------
def inbox_tasks(daily: dict | None) -> list[dict]:
    return [t for t in (daily or {}).get("tasks", []) if t.get("status") == "inbox"]


def timeline_tasks(daily: dict | None) -> list[dict]:
    tasks = [
        t for t in (daily or {}).get("tasks", [])
        if t.get("status") in ("scheduled", "completed")
    ]
    return sorted(tasks, key=lambda t: t.get("startTime") or "99:99")


def priority_progress(daily: dict | None, priority: str) -> int:
    """Percent of the day's ``priority`` tasks that are completed."""
    relevant = [t for t in (daily or {}).get("tasks", []) if t.get("priority") == priority]
    if not relevant:
        return 0
    completed = sum(1 for t in relevant if t.get("status") == "completed")
    return round(completed / len(relevant) * 100)


# -------------------------------
# Stats
# -------------------------------
class StatsAggregator:
    def __init__(self, logs: DailyLogStore):
        self.logs = logs

    def get_yearly_stats(self) -> dict[str, int]:
        stats: dict[str, int] = {}
        for date_str, daily in self.logs.all_logs().items():
            minutes = 0
            for task in daily["tasks"]:
                if task.get("status") != "completed":
                    continue
                try:
                    minutes += int(task.get("durationMinutes", 0) or 0)
                except (TypeError, ValueError):
                    continue
            if minutes > 0:
                stats[date_str] = minutes
        return stats


# -------------------------------
# Backup / restore
# -------------------------------
def validate_snapshot(document) -> dict:
    if not isinstance(document, dict):
        raise ValidationError("Backup must be a JSON object")
    if not isinstance(document.get("habits"), list):
        raise ValidationError("Backup is missing the 'habits' array")
    if not isinstance(document.get("dailyLogs"), dict):
        raise ValidationError("Backup is missing the 'dailyLogs' object")
    return document


class HabitFocus:
    """All core components wired onto one store."""

    def __init__(self, store: KeyValueStore | None = None, today=today_str):
        self.store = store if store is not None else JsonFileStore(DATA_DIR)
        self.today = today
        self.habits = HabitRepository(self.store)
        self.logs = DailyLogStore(self.store)
        self.engine = DispatchEngine(self.habits, self.logs, today=today)
        self.lifecycle = TaskLifecycle(self.logs, self.engine)
        self.stats = StatsAggregator(self.logs)

    # --- Habits ---
    def add_habit(self, *args, **kwargs) -> dict:
        return self.habits.add_habit(*args, **kwargs)

    def get_habits(self) -> list[dict]:
        return self.habits.get_habits()

    def delete_habit(self, habit_id: str) -> None:
        self.habits.delete_habit(habit_id)

    def reduce_habit_quota(self, habit_id: str) -> None:
        self.engine.reduce_habit_quota(habit_id)

    # --- Days & tasks ---
    def initialize_day(self, date_str: str | None = None) -> dict:
        return self.engine.initialize_day(date_str)

    def get_daily_data(self, date_str: str) -> dict | None:
        return self.logs.get_daily_data(date_str)

    def save_daily_data(self, daily: dict) -> None:
        self.logs.save_daily_data(daily)

    def update_task(self, task: dict) -> None:
        self.lifecycle.update_task(task)

    def delete_task_from_day(self, task_id: str, date_str: str) -> None:
        self.lifecycle.delete_task_from_day(task_id, date_str)

    def get_yearly_stats(self) -> dict[str, int]:
        return self.stats.get_yearly_stats()

    # --- Backup ---
    def get_all_data_json(self) -> str:
        return json.dumps(
            {
                "timestamp": utc_timestamp(),
                "habits": self.store.get(HABITS_KEY),
                "dailyLogs": self.store.get(DAILY_LOGS_KEY),
            },
            indent=2,
            ensure_ascii=False,
        )

    def restore_snapshot(self, text: str) -> None:
        """Replace both collections from a backup; raises ValidationError."""
        try:
            document = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Backup is not valid JSON: {exc}") from exc
        validate_snapshot(document)
        self.store.replace_all(
            {
                HABITS_KEY: document["habits"],
                DAILY_LOGS_KEY: document["dailyLogs"],
            }
        )

    def import_data_json(self, text: str) -> bool:
        try:
            self.restore_snapshot(text)
        except ValidationError as exc:
            LOGGER.error("Import failed: %s", exc)
            return False
        except OSError:
            LOGGER.exception("Import failed while writing collections")
            return False
        return True
