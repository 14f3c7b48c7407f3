# HabitFocus — Dark GUI Daily Planner (Dark Mode, Purple Accent)
# -----------------------------------------------------------
# Features:
#   • Dark GUI built with CustomTkinter (purple accent theme)
#   • Habits with a daily quota become dated tasks automatically each day
#   • Planner: browse days, inbox of generated tasks, hourly timeline,
#       per-priority progress bars
#   • Click an inbox task to pick a time slot, click a scheduled task to run
#       the focus timer; finishing the timer completes the task and starts a
#       5 minute break
#   • Habit rules with permanent or date-range activity (tkcalendar pickers)
#   • Profile tab: yearly heat-map of completed focus time (matplotlib)
#   • Backup / restore of all data as a single JSON file
#
# Usage:
#   pip install customtkinter tkcalendar matplotlib
#   python habitfocus.py
#
# Notes:
#   • Data is stored under ~/Documents/HabitFocus (set HABITFOCUS_DATA_DIR to
#     move it).

import json
import logging
import os
from datetime import date, datetime, timedelta

import tkinter as tk
from tkinter import filedialog, messagebox

try:
    import customtkinter as ctk
except ImportError:
    print("Please install customtkinter: pip install customtkinter")
    raise

try:
    from tkcalendar import DateEntry
except ImportError:
    print("Please install tkcalendar: pip install tkcalendar")
    raise

import matplotlib

matplotlib.use("Agg")
from matplotlib import pyplot as plt
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

from habitfocus_heatmap import LEVEL_COLORS, LEVEL_THRESHOLDS, render_heatmap
from habitfocus_store import (
    DATA_DIR,
    DEFAULT_DURATION_MINUTES,
    HOUR_SLOTS,
    PRIORITIES,
    HabitFocus,
    JsonFileStore,
    TransitionError,
    inbox_tasks,
    priority_progress,
    timeline_tasks,
    today_str,
)

LOGGER = logging.getLogger(__name__)

# -------------------------------
# CONFIG
# -------------------------------
THEME_FILE = os.path.join(DATA_DIR, "habitfocus_purple_theme.json")
APP_TITLE = "HabitFocus"

BREAK_MINUTES = 5
QUOTA_RANGE = (1, 10)
DURATION_RANGE = (1, 180)

PRIORITY_COLORS = {"P1": "#EF4444", "P2": "#F59E0B", "P3": "#10B981"}
PRIORITY_LABELS = {"P1": "P1 · Must do", "P2": "P2 · Should do", "P3": "P3 · Nice to do"}

# -------------------------------
# Helpers
# -------------------------------

def ensure_dirs():
    os.makedirs(DATA_DIR, exist_ok=True)


def write_purple_theme_if_missing():
    """Create a minimal CustomTkinter theme JSON with purple accent."""
    if os.path.exists(THEME_FILE):
        return
    theme = {
        "CTk": {"fg_color": ["#1F1F1F", "#1F1F1F"]},
        "CTkToplevel": {"fg_color": ["#1F1F1F", "#1F1F1F"]},
        "CTkFrame": {
            "corner_radius": 14,
            "border_width": 0,
            "fg_color": ["#262626", "#262626"],
            "top_fg_color": ["#1F1F1F", "#1F1F1F"],
            "border_color": ["#3F3F46", "#3F3F46"],
        },
        "CTkButton": {
            "corner_radius": 10,
            "border_width": 0,
            "fg_color": ["#8B5CF6", "#6D28D9"],
            "hover_color": ["#7C3AED", "#5B21B6"],
            "border_color": ["#3F3F46", "#3F3F46"],
            "text_color": ["#FFFFFF", "#FFFFFF"],
            "text_color_disabled": ["#8A8A8A", "#6D6D6D"],
        },
        "CTkProgressBar": {
            "corner_radius": 1000,
            "border_width": 0,
            "fg_color": ["#3B3B3B", "#3B3B3B"],
            "progress_color": ["#8B5CF6", "#8B5CF6"],
            "border_color": ["#3F3F46", "#3F3F46"],
        },
    }
    # Widgets not listed here fall back to the built-in dark-blue theme.
    base_path = os.path.join(os.path.dirname(ctk.__file__), "assets", "themes", "dark-blue.json")
    try:
        with open(base_path, "r", encoding="utf-8") as f:
            merged = json.load(f)
    except (OSError, ValueError):
        merged = {}
    for widget, options in theme.items():
        merged.setdefault(widget, {}).update(options)
    with open(THEME_FILE, "w", encoding="utf-8") as f:
        json.dump(merged, f, indent=2)


def format_minutes(minutes: int | float | None) -> str:
    """Return a human friendly string such as ``2h 15m`` or ``45m``."""
    try:
        total = int(minutes or 0)
    except (TypeError, ValueError):
        total = 0
    if total <= 0:
        return "0m"
    hours, mins = divmod(total, 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"


def shift_date(date_str: str, days: int) -> str:
    current = datetime.strptime(date_str, "%Y-%m-%d").date()
    return (current + timedelta(days=days)).strftime("%Y-%m-%d")


def create_dark_date_entry(master) -> DateEntry:
    """Return a DateEntry that matches the dark UI theme."""
    entry = DateEntry(
        master,
        date_pattern="yyyy-mm-dd",
        font=("Segoe UI", 12),
        background="#1E1B4B",
        foreground="#E5E7EB",
        borderwidth=0,
        width=14,
        selectbackground="#8B5CF6",
        selectforeground="#F9FAFB",
        normalbackground="#1E1B4B",
        normalforeground="#F9FAFB",
        headersbackground="#312E81",
        headersforeground="#E5E7EB",
    )
    return entry


# -------------------------------
# GUI Components
# -------------------------------
class TaskCard(ctk.CTkFrame):
    def __init__(self, master, task: dict, *, on_click=None, on_skip=None, on_remove=None):
        super().__init__(master)
        self.task = task
        status = task.get("status", "inbox")
        accent = PRIORITY_COLORS.get(task.get("priority"), "#8B5CF6")
        self.configure(fg_color="#0F172A", corner_radius=12, border_width=1, border_color=accent)

        container = ctk.CTkFrame(self, fg_color="transparent")
        container.pack(fill="both", expand=True, padx=12, pady=8)

        prefix = "✔ " if status == "completed" else ""
        title_color = "#6B7280" if status == "completed" else "#F9FAFB"
        title = ctk.CTkLabel(
            container,
            text=f"{prefix}{task.get('name') or '(no name)'}",
            font=("Segoe UI", 14, "bold"),
            text_color=title_color,
            anchor="w",
        )
        title.pack(side="left", fill="x", expand=True)

        meta = f"{task.get('priority', '')} · {format_minutes(task.get('durationMinutes'))}"
        if task.get("startTime"):
            meta = f"{task['startTime']} · {meta}"
        ctk.CTkLabel(container, text=meta, text_color="#9CA3AF").pack(side="left", padx=8)

        if on_remove and status != "deleted":
            ctk.CTkButton(
                container,
                text="🗑",
                width=32,
                fg_color="#3F3F46",
                hover_color="#7F1D1D",
                command=lambda: on_remove(task),
            ).pack(side="right", padx=(4, 0))
        if on_skip and status == "inbox":
            ctk.CTkButton(
                container,
                text="✕",
                width=32,
                fg_color="#3F3F46",
                hover_color="#52525B",
                command=lambda: on_skip(task),
            ).pack(side="right", padx=(4, 0))

        if on_click:
            for widget in (self, container, title):
                widget.bind("<Button-1>", lambda _e: on_click(task), add="+")


class TimeSlotDialog(ctk.CTkToplevel):
    """Modal grid of hourly slots; ``show()`` returns the picked "HH:00"."""

    def __init__(self, master, task: dict):
        super().__init__(master)
        self.title("Schedule task")
        self.geometry("400x380")
        self.resizable(False, False)
        self.transient(master)
        self.grab_set()
        self.result: str | None = None

        ctk.CTkLabel(
            self,
            text=f"Select a start time for '{task.get('name', 'Task')}'.",
            wraplength=360,
            justify="left",
        ).pack(padx=20, pady=(20, 12))

        grid = ctk.CTkFrame(self, fg_color="transparent")
        grid.pack(padx=16, pady=(0, 12))
        for index, slot in enumerate(HOUR_SLOTS):
            ctk.CTkButton(
                grid,
                text=slot,
                width=76,
                command=lambda s=slot: self._select(s),
            ).grid(row=index // 4, column=index % 4, padx=4, pady=4)

        ctk.CTkButton(self, text="Cancel", command=self._cancel).pack(pady=(4, 16))
        self.bind("<Escape>", lambda _e: self._cancel())
        self.protocol("WM_DELETE_WINDOW", self._cancel)

    def _select(self, slot: str):
        self.result = slot
        self.destroy()

    def _cancel(self):
        self.result = None
        self.destroy()

    def show(self) -> str | None:
        self.wait_window()
        return self.result


class PomodoroWindow(ctk.CTkToplevel):
    def __init__(self, master, task: dict, on_complete, on_close):
        super().__init__(master)
        self.title(f"Focus — {task.get('name', 'Task')}")
        self.geometry("380x300")
        self.resizable(False, False)
        self.task = task
        self.on_complete = on_complete
        self.on_close = on_close
        self._after_id: str | None = None
        self._timer_running = False
        self._mode = "focus"
        self._remaining_seconds = int(task.get("durationMinutes") or DEFAULT_DURATION_MINUTES) * 60

        self.mode_label = ctk.CTkLabel(self, text="FOCUS", font=("Segoe UI", 12, "bold"), text_color="#C4B5FD")
        self.mode_label.pack(pady=(16, 4))
        ctk.CTkLabel(self, text=task.get("name", "(no name)"), wraplength=340).pack(padx=16)

        self.timer_label = ctk.CTkLabel(self, text="00:00", font=("Segoe UI", 40, "bold"))
        self.timer_label.pack(pady=(12, 12))
        self._render_time()

        btn_frame = ctk.CTkFrame(self, fg_color="transparent")
        btn_frame.pack(pady=(0, 16))
        self.toggle_btn = ctk.CTkButton(btn_frame, text="Start", width=90, command=self._toggle)
        self.toggle_btn.pack(side="left", padx=6)
        self.finish_btn = ctk.CTkButton(btn_frame, text="Complete", width=90, command=self._finish_focus)
        self.finish_btn.pack(side="left", padx=6)
        ctk.CTkButton(btn_frame, text="Close", width=90, command=self._on_close_request).pack(side="left", padx=6)

        self.protocol("WM_DELETE_WINDOW", self._on_close_request)

    def _render_time(self):
        mins, secs = divmod(max(self._remaining_seconds, 0), 60)
        self.timer_label.configure(text=f"{mins:02d}:{secs:02d}")

    def _toggle(self):
        if self._timer_running:
            self._halt_timer()
            self.toggle_btn.configure(text="Resume")
            return
        self._timer_running = True
        self.toggle_btn.configure(text="Pause")
        self._tick()

    def _tick(self):
        self._render_time()
        if self._remaining_seconds <= 0:
            self._halt_timer()
            if self._mode == "focus":
                self._finish_focus()
            else:
                self.bell()
                self._close_window()
            return
        self._remaining_seconds -= 1
        self._after_id = self.after(1000, self._tick)

    def _finish_focus(self):
        if self._mode != "focus":
            # Skip the rest of the break.
            self._halt_timer()
            self._close_window()
            return
        self._halt_timer()
        self.bell()
        if self.on_complete:
            self.on_complete(self.task)
        self._mode = "break"
        self._remaining_seconds = BREAK_MINUTES * 60
        self.mode_label.configure(text="BREAK", text_color="#34D399")
        self.finish_btn.configure(text="Skip break")
        self._timer_running = True
        self.toggle_btn.configure(text="Pause")
        self._tick()

    def _halt_timer(self):
        if self._after_id:
            self.after_cancel(self._after_id)
            self._after_id = None
        self._timer_running = False

    def _on_close_request(self):
        if self._timer_running and self._mode == "focus":
            if not messagebox.askyesno("Stop focus?", "Timer is running. Close without completing the task?"):
                return
        self._halt_timer()
        self._close_window()

    def _close_window(self):
        if self.on_close:
            self.on_close()
        if self.winfo_exists():
            super().destroy()


class HabitConfigDialog(ctk.CTkToplevel):
    """Create and delete habit rules; backup and restore all data."""

    def __init__(self, master, core: HabitFocus, on_changed):
        super().__init__(master)
        self.title("Habit rules")
        self.geometry("520x720")
        self.transient(master)
        self.grab_set()
        self.core = core
        self.on_changed = on_changed

        form = ctk.CTkFrame(self)
        form.pack(fill="x", padx=16, pady=(16, 8))
        form.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(form, text="Name").grid(row=0, column=0, sticky="w", padx=8, pady=6)
        self.name_entry = ctk.CTkEntry(form, placeholder_text="e.g. Deep work")
        self.name_entry.grid(row=0, column=1, sticky="ew", padx=8, pady=6)
        self.name_entry.focus_set()

        ctk.CTkLabel(form, text="Priority").grid(row=1, column=0, sticky="w", padx=8, pady=6)
        self.priority_var = tk.StringVar(value=PRIORITIES[0])
        ctk.CTkSegmentedButton(form, values=PRIORITIES, variable=self.priority_var).grid(
            row=1, column=1, sticky="w", padx=8, pady=6
        )

        ctk.CTkLabel(form, text="Daily quota").grid(row=2, column=0, sticky="w", padx=8, pady=6)
        quota_row = ctk.CTkFrame(form, fg_color="transparent")
        quota_row.grid(row=2, column=1, sticky="w", padx=8, pady=6)
        self.quota = QUOTA_RANGE[0]
        ctk.CTkButton(quota_row, text="-", width=32, command=lambda: self._step_quota(-1)).pack(side="left")
        self.quota_label = ctk.CTkLabel(quota_row, text=str(self.quota), width=40, font=("Segoe UI", 16, "bold"))
        self.quota_label.pack(side="left")
        ctk.CTkButton(quota_row, text="+", width=32, command=lambda: self._step_quota(1)).pack(side="left")

        ctk.CTkLabel(form, text="Duration (min)").grid(row=3, column=0, sticky="w", padx=8, pady=6)
        self.duration_var = tk.StringVar(value=str(DEFAULT_DURATION_MINUTES))
        ctk.CTkEntry(form, textvariable=self.duration_var, width=90).grid(row=3, column=1, sticky="w", padx=8, pady=6)

        ctk.CTkLabel(form, text="Active").grid(row=4, column=0, sticky="w", padx=8, pady=6)
        self.effective_var = tk.StringVar(value="permanent")
        ctk.CTkSegmentedButton(
            form,
            values=["permanent", "range"],
            variable=self.effective_var,
            command=lambda _v: self._toggle_range(),
        ).grid(row=4, column=1, sticky="w", padx=8, pady=6)

        self.range_row = ctk.CTkFrame(form, fg_color="transparent")
        ctk.CTkLabel(self.range_row, text="From").pack(side="left", padx=(0, 4))
        self.start_entry = create_dark_date_entry(self.range_row)
        self.start_entry.pack(side="left", padx=(0, 12))
        ctk.CTkLabel(self.range_row, text="To").pack(side="left", padx=(0, 4))
        self.end_entry = create_dark_date_entry(self.range_row)
        self.end_entry.pack(side="left")

        self.error_label = ctk.CTkLabel(form, text="", text_color="#F87171")
        self.error_label.grid(row=6, column=0, columnspan=2, sticky="w", padx=8)
        ctk.CTkButton(form, text="Create rule", command=self._submit).grid(
            row=7, column=0, columnspan=2, sticky="ew", padx=8, pady=(4, 10)
        )

        ctk.CTkLabel(self, text="Existing rules", font=("Segoe UI", 15, "bold")).pack(anchor="w", padx=20, pady=(8, 4))
        self.habit_list = ctk.CTkScrollableFrame(self, height=240)
        self.habit_list.pack(fill="both", expand=True, padx=16, pady=(0, 8))

        data_row = ctk.CTkFrame(self, fg_color="transparent")
        data_row.pack(fill="x", padx=16, pady=(4, 16))
        ctk.CTkButton(data_row, text="Backup data", command=self._backup).pack(side="left", expand=True, fill="x", padx=(0, 6))
        ctk.CTkButton(data_row, text="Restore data", command=self._restore).pack(side="left", expand=True, fill="x", padx=(6, 0))

        self.bind("<Escape>", lambda _e: self.destroy())
        self._refresh_list()

    def _step_quota(self, delta: int):
        low, high = QUOTA_RANGE
        self.quota = min(high, max(low, self.quota + delta))
        self.quota_label.configure(text=str(self.quota))

    def _toggle_range(self):
        if self.effective_var.get() == "range":
            self.range_row.grid(row=5, column=1, sticky="w", padx=8, pady=6)
        else:
            self.range_row.grid_remove()

    def _submit(self):
        name = self.name_entry.get().strip()
        if not name:
            self.error_label.configure(text="Please enter a name.")
            return
        try:
            duration = int(self.duration_var.get())
        except (TypeError, ValueError):
            duration = DEFAULT_DURATION_MINUTES
        low, high = DURATION_RANGE
        duration = min(high, max(low, duration))

        start = end = None
        effective = self.effective_var.get()
        if effective == "range":
            start = self.start_entry.get_date().strftime("%Y-%m-%d")
            end = self.end_entry.get_date().strftime("%Y-%m-%d")
            if end < start:
                self.error_label.configure(text="End date must not be before the start date.")
                return
        try:
            self.core.add_habit(name, self.priority_var.get(), self.quota, duration, effective, start, end)
        except OSError as exc:
            LOGGER.exception("Failed to add habit")
            messagebox.showerror("Habit", f"Could not save habit: {exc}")
            return
        self.error_label.configure(text="")
        self.name_entry.delete(0, tk.END)
        self.quota = QUOTA_RANGE[0]
        self.quota_label.configure(text=str(self.quota))
        self.duration_var.set(str(DEFAULT_DURATION_MINUTES))
        self.effective_var.set("permanent")
        self._toggle_range()
        self._refresh_list()
        self.on_changed()

    def _refresh_list(self):
        for w in self.habit_list.winfo_children():
            w.destroy()
        habits = self.core.get_habits()
        if not habits:
            ctk.CTkLabel(self.habit_list, text="No rules yet.", text_color="#9CA3AF").pack(pady=12)
            return
        for habit in habits:
            row = ctk.CTkFrame(self.habit_list, fg_color="#0F172A")
            row.pack(fill="x", pady=4, padx=4)
            if habit.get("effectiveType") == "range":
                active = f"{habit.get('startDate') or '?'} ~ {habit.get('endDate') or '?'}"
            else:
                active = "permanent"
            ctk.CTkLabel(
                row,
                text=f"● {habit.get('name')}",
                text_color=PRIORITY_COLORS.get(habit.get("priority"), "#F9FAFB"),
                font=("Segoe UI", 13, "bold"),
            ).pack(side="left", padx=8, pady=6)
            ctk.CTkLabel(
                row,
                text=f"{habit.get('dailyQuota')} × {habit.get('defaultDurationMinutes')}m · {active}",
                text_color="#9CA3AF",
            ).pack(side="left", padx=4)
            ctk.CTkButton(
                row,
                text="Delete",
                width=64,
                fg_color="#3F3F46",
                hover_color="#7F1D1D",
                command=lambda h=habit: self._delete(h),
            ).pack(side="right", padx=8)

    def _delete(self, habit: dict):
        if not messagebox.askyesno(
            "Delete rule?",
            f"Delete '{habit.get('name')}'? Unscheduled tasks of this habit are removed from every day.",
        ):
            return
        self.core.delete_habit(habit["id"])
        self._refresh_list()
        self.on_changed()

    def _backup(self):
        path = filedialog.asksaveasfilename(
            parent=self,
            defaultextension=".json",
            initialfile=f"habitfocus_backup_{today_str()}.json",
            filetypes=[("JSON", "*.json")],
        )
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.core.get_all_data_json())
        except OSError as exc:
            LOGGER.exception("Backup failed")
            messagebox.showerror("Backup", f"Backup failed: {exc}")
            return
        messagebox.showinfo("Backup", f"Saved backup to {path}.")

    def _restore(self):
        path = filedialog.askopenfilename(parent=self, filetypes=[("JSON", "*.json")])
        if not path:
            return
        if not messagebox.askyesno("Restore data?", "Restoring replaces all habits and daily logs. Continue?"):
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as exc:
            messagebox.showerror("Restore", f"Could not read {path}: {exc}")
            return
        if not self.core.import_data_json(content):
            messagebox.showerror("Restore", "Import failed: the file is not a valid HabitFocus backup.")
            return
        messagebox.showinfo("Restore", "Data restored.")
        self.on_changed()
        self.destroy()


class HabitFocusApp(ctk.CTk):
    """Main application window for HabitFocus."""

    def __init__(self, core: HabitFocus):
        super().__init__()
        self.core = core
        self.title(APP_TITLE)
        self.geometry("1100x780")
        self.minsize(760, 560)
        self.selected_date = today_str()
        self.daily: dict | None = None
        self.timer_window: PomodoroWindow | None = None
        self.heatmap_canvas: FigureCanvasTkAgg | None = None
        self._stats_dirty = True

        # App header
        header = ctk.CTkFrame(self)
        header.pack(fill="x", padx=16, pady=(16, 8))
        ctk.CTkLabel(header, text="🟣 HabitFocus", font=("Segoe UI", 20, "bold")).pack(side="left")
        ctk.CTkButton(header, text="Habits", width=90, command=self._open_habit_config).pack(side="right")
        self.status_label = ctk.CTkLabel(header, text="")
        self.status_label.pack(side="right", padx=12)

        # Tabs
        self.tabs = ctk.CTkTabview(self, command=self._on_tab_changed)
        self.tabs.pack(fill="both", expand=True, padx=16, pady=(8, 16))
        self.planner_tab = self.tabs.add("Planner")
        self.profile_tab = self.tabs.add("Profile")

        self._build_planner_tab()
        self._build_profile_tab()

        self.load_day(self.selected_date)
        self.tabs.set("Planner")

    # ----------------------- UI Builders -----------------------
    def _build_planner_tab(self):
        nav = ctk.CTkFrame(self.planner_tab)
        nav.pack(fill="x", pady=(8, 8))
        ctk.CTkButton(nav, text="◀", width=36, command=lambda: self._change_date(-1)).pack(side="left", padx=(6, 2))
        ctk.CTkButton(nav, text="▶", width=36, command=lambda: self._change_date(1)).pack(side="left", padx=2)
        self.date_label = ctk.CTkLabel(nav, text="", font=("Segoe UI", 16, "bold"))
        self.date_label.pack(side="left", padx=12)
        ctk.CTkButton(nav, text="Today", width=72, command=lambda: self.load_day(today_str())).pack(side="right", padx=6)

        progress = ctk.CTkFrame(self.planner_tab, fg_color="transparent")
        progress.pack(fill="x", pady=(0, 8))
        self.progress_bars: dict[str, tuple[ctk.CTkProgressBar, ctk.CTkLabel]] = {}
        for column, priority in enumerate(PRIORITIES):
            progress.grid_columnconfigure(column, weight=1)
            cell = ctk.CTkFrame(progress, fg_color="transparent")
            cell.grid(row=0, column=column, sticky="ew", padx=8)
            label = ctk.CTkLabel(cell, text=PRIORITY_LABELS[priority], text_color="#9CA3AF", anchor="w")
            label.pack(fill="x")
            bar = ctk.CTkProgressBar(cell, progress_color=PRIORITY_COLORS[priority])
            bar.pack(fill="x")
            bar.set(0)
            self.progress_bars[priority] = (bar, label)

        content = ctk.CTkFrame(self.planner_tab, fg_color="transparent")
        content.pack(fill="both", expand=True)
        content.grid_columnconfigure(0, weight=1)
        content.grid_columnconfigure(1, weight=2)
        content.grid_rowconfigure(1, weight=1)

        ctk.CTkLabel(content, text="Inbox", font=("Segoe UI", 16, "bold")).grid(row=0, column=0, sticky="w", padx=6)
        ctk.CTkLabel(content, text="Timeline", font=("Segoe UI", 16, "bold")).grid(row=0, column=1, sticky="w", padx=6)
        self.inbox_list = ctk.CTkScrollableFrame(content)
        self.inbox_list.grid(row=1, column=0, sticky="nsew", padx=(0, 8), pady=(4, 8))
        self.timeline_list = ctk.CTkScrollableFrame(content)
        self.timeline_list.grid(row=1, column=1, sticky="nsew", padx=(8, 0), pady=(4, 8))

    def _build_profile_tab(self):
        container = ctk.CTkScrollableFrame(self.profile_tab)
        container.pack(fill="both", expand=True, padx=12, pady=12)
        ctk.CTkLabel(
            container,
            text="Focus activity (last 53 weeks)",
            font=("Segoe UI", 16, "bold"),
        ).pack(anchor="w", padx=8, pady=(8, 4))
        self.heatmap_holder = ctk.CTkFrame(container, fg_color="#111827", height=280)
        self.heatmap_holder.pack(fill="x", padx=8, pady=(0, 8))
        self.heatmap_holder.pack_propagate(False)

        legend = ctk.CTkFrame(container, fg_color="transparent")
        legend.pack(anchor="w", padx=8, pady=(0, 12))
        bounds = ["0"] + [f"≤{b // 60}h" for b in LEVEL_THRESHOLDS] + [f">{LEVEL_THRESHOLDS[-1] // 60}h"]
        for color, text in zip(LEVEL_COLORS, bounds):
            ctk.CTkLabel(legend, text="■", text_color=color, font=("Segoe UI", 16)).pack(side="left")
            ctk.CTkLabel(legend, text=text, text_color="#9CA3AF").pack(side="left", padx=(2, 10))

    # ----------------------- Planner -----------------------
    def _change_date(self, offset: int):
        self.load_day(shift_date(self.selected_date, offset))

    def load_day(self, date_str: str):
        self.selected_date = date_str
        self.daily = self.core.initialize_day(date_str)
        self._render_day()

    def reload(self):
        self._stats_dirty = True
        self.load_day(self.selected_date)
        if self.tabs.get() == "Profile":
            self._refresh_stats()

    def _render_day(self):
        shown = datetime.strptime(self.selected_date, "%Y-%m-%d").date()
        suffix = " (today)" if self.selected_date == today_str() else ""
        self.date_label.configure(text=shown.strftime("%A, %B %d") + suffix)

        for priority, (bar, label) in self.progress_bars.items():
            pct = priority_progress(self.daily, priority)
            bar.set(pct / 100)
            label.configure(text=f"{PRIORITY_LABELS[priority]}  {pct}%")

        for w in self.inbox_list.winfo_children():
            w.destroy()
        inbox = inbox_tasks(self.daily)
        for task in inbox:
            TaskCard(
                self.inbox_list,
                task,
                on_click=self._on_task_click,
                on_skip=self._skip_task,
                on_remove=self._remove_task_slot,
            ).pack(fill="x", padx=6, pady=4)
        if not inbox:
            ctk.CTkLabel(self.inbox_list, text="Inbox is empty.", text_color="#9CA3AF").pack(pady=12)

        for w in self.timeline_list.winfo_children():
            w.destroy()
        by_slot: dict[str, list[dict]] = {}
        for task in timeline_tasks(self.daily):
            by_slot.setdefault(task.get("startTime") or "", []).append(task)
        slots = list(HOUR_SLOTS) + sorted(s for s in by_slot if s not in HOUR_SLOTS)
        for slot in slots:
            row = ctk.CTkFrame(self.timeline_list, fg_color="transparent")
            row.pack(fill="x", pady=2)
            ctk.CTkLabel(row, text=slot or "--:--", width=56, text_color="#9CA3AF", anchor="n").pack(side="left", anchor="n")
            cell = ctk.CTkFrame(row, fg_color="transparent")
            cell.pack(side="left", fill="x", expand=True)
            for task in by_slot.get(slot, []):
                TaskCard(
                    cell,
                    task,
                    on_click=self._on_task_click,
                    on_remove=self._remove_task_slot,
                ).pack(fill="x", padx=4, pady=2)

        total = len([t for t in self.daily.get("tasks", []) if t.get("status") != "deleted"])
        self.status_label.configure(text=f"Tasks: {total}")

    def _on_task_click(self, task: dict):
        status = task.get("status")
        if status == "inbox":
            time = TimeSlotDialog(self, task).show()
            if not time:
                return
            self.core.lifecycle.schedule_task(task["id"], task["date"], time)
            self.reload()
        elif status == "scheduled":
            self._start_task_timer(task)
        elif status == "completed":
            messagebox.showinfo("Task", f"'{task.get('name')}' is already completed.")

    def _skip_task(self, task: dict):
        try:
            self.core.lifecycle.delete_task_today(task["id"], task["date"])
        except TransitionError as exc:
            messagebox.showwarning("Task", str(exc))
            return
        self.reload()

    def _remove_task_slot(self, task: dict):
        if not messagebox.askyesno(
            "Remove permanently?",
            "Remove this slot from the habit's daily quota? Removing the last slot deletes the habit.",
        ):
            return
        try:
            self.core.lifecycle.delete_task_permanent(task["id"], task["date"])
        except TransitionError as exc:
            messagebox.showwarning("Task", str(exc))
            return
        self.reload()

    def _start_task_timer(self, task: dict):
        if self.timer_window and self.timer_window.winfo_exists():
            messagebox.showinfo("Timer", "A timer is already running. Please finish or close it before starting another.")
            self.timer_window.focus()
            return
        self.timer_window = PomodoroWindow(self, task, self._handle_timer_completion, self._on_timer_closed)
        self.timer_window.focus()

    def _on_timer_closed(self):
        self.timer_window = None

    def _handle_timer_completion(self, task: dict):
        try:
            self.core.lifecycle.complete_task(task["id"], task["date"])
        except TransitionError as exc:
            LOGGER.warning("Timer finished for a task that cannot complete: %s", exc)
        self.reload()

    def _open_habit_config(self):
        HabitConfigDialog(self, self.core, self.reload)

    # ----------------------- Profile -----------------------
    def _on_tab_changed(self):
        if self.tabs.get() == "Profile" and self._stats_dirty:
            self._refresh_stats()

    def _refresh_stats(self):
        if self.heatmap_canvas:
            self.heatmap_canvas.get_tk_widget().destroy()
            self.heatmap_canvas = None
        for child in list(self.heatmap_holder.winfo_children()):
            child.destroy()
        fig = render_heatmap(self.core.get_yearly_stats(), date.today())
        canvas_obj = FigureCanvasTkAgg(fig, master=self.heatmap_holder)
        canvas_obj.draw()
        widget = canvas_obj.get_tk_widget()
        widget.pack(fill="both", expand=True, padx=4, pady=4)
        widget.configure(background="#111827", highlightthickness=0, borderwidth=0)
        plt.close(fig)
        self.heatmap_canvas = canvas_obj
        self._stats_dirty = False


# -------------------------------
# MAIN
# -------------------------------
def main():
    logging.basicConfig(
        level=os.environ.get("HABITFOCUS_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ensure_dirs()
    write_purple_theme_if_missing()

    # Apply dark mode and theme
    ctk.set_appearance_mode("dark")
    try:
        ctk.set_default_color_theme(THEME_FILE)
    except (OSError, ValueError, KeyError):
        LOGGER.warning("Custom theme unusable, falling back to dark-blue")
        ctk.set_default_color_theme("dark-blue")

    core = HabitFocus(JsonFileStore(DATA_DIR))
    app = HabitFocusApp(core)
    app.mainloop()


if __name__ == "__main__":
    main()
