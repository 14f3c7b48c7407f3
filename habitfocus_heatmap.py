# HabitFocus — yearly activity heat-map
# -----------------------------------------------------------
# Calendar grid model for the completed-minutes statistic plus a matplotlib
# renderer. The grid covers 53 weeks (Sunday-first columns) ending with the
# current week; days after today are always drawn empty.

import logging
from datetime import date, timedelta

from matplotlib import pyplot as plt
from matplotlib.colors import ListedColormap

LOGGER = logging.getLogger(__name__)

# -------------------------------
# CONFIG
# -------------------------------
WEEKS = 53
DAYS_PER_WEEK = 7
# Upper bounds (inclusive, minutes) of levels 1-4; anything above is level 5.
LEVEL_THRESHOLDS = [120, 300, 480, 660]

LEVEL_COLORS = [
    "#1F2937",  # 0: empty
    "#FED7AA",  # 1: up to 2h
    "#FDBA74",  # 2: up to 5h
    "#F97316",  # 3: up to 8h
    "#C2410C",  # 4: up to 11h
    "#7C2D12",  # 5: more than 11h
]
FUTURE_COLOR = "#111827"
FUTURE_LEVEL = len(LEVEL_COLORS)
DAY_LABELS = {1: "Mon", 3: "Wed", 5: "Fri"}


def heat_level(minutes: int | float) -> int:
    if not minutes or minutes <= 0:
        return 0
    for level, bound in enumerate(LEVEL_THRESHOLDS, start=1):
        if minutes <= bound:
            return level
    return len(LEVEL_THRESHOLDS) + 1


def grid_start(today: date) -> date:
    """Sunday of the week 52 weeks before ``today``."""
    start = today - timedelta(weeks=WEEKS - 1)
    # date.weekday(): Monday == 0 ... Sunday == 6
    return start - timedelta(days=(start.weekday() + 1) % 7)


def build_grid(stats: dict[str, int], today: date | None = None) -> tuple[list[list[dict]], int]:
    """Lay ``stats`` out as ``WEEKS`` columns of seven day cells.

    Returns ``(weeks, total_minutes)``; the total only counts days up to
    ``today``.
    """
    today = today or date.today()
    current = grid_start(today)
    weeks: list[list[dict]] = []
    total = 0
    for _ in range(WEEKS):
        week: list[dict] = []
        for _ in range(DAYS_PER_WEEK):
            key = current.strftime("%Y-%m-%d")
            is_future = current > today
            minutes = 0 if is_future else int(stats.get(key, 0) or 0)
            total += minutes
            week.append(
                {
                    "date": key,
                    "minutes": minutes,
                    "level": heat_level(minutes),
                    "is_future": is_future,
                }
            )
            current += timedelta(days=1)
        weeks.append(week)
    return weeks, total


def month_labels(weeks: list[list[dict]]) -> list[tuple[int, str]]:
    labels: list[tuple[int, str]] = []
    last_month = None
    for index, week in enumerate(weeks):
        first = date.fromisoformat(week[0]["date"])
        if first.month != last_month:
            labels.append((index, first.strftime("%b")))
            last_month = first.month
    return labels


def level_matrix(weeks: list[list[dict]]) -> list[list[int]]:
    """Rows are weekdays (Sunday first), columns are weeks."""
    return [
        [FUTURE_LEVEL if week[day]["is_future"] else week[day]["level"] for week in weeks]
        for day in range(DAYS_PER_WEEK)
    ]


def render_heatmap(stats: dict[str, int], today: date | None = None, *, figsize=(11, 2.4), dpi=110):
    """Draw the yearly grid on a new dark-themed figure and return it."""
    weeks, total = build_grid(stats, today)
    matrix = level_matrix(weeks)
    cmap = ListedColormap(LEVEL_COLORS + [FUTURE_COLOR])

    fig, ax = plt.subplots(figsize=figsize, dpi=dpi)
    ax.pcolormesh(
        matrix,
        cmap=cmap,
        vmin=-0.5,
        vmax=FUTURE_LEVEL + 0.5,
        edgecolors="#0F172A",
        linewidth=1.5,
    )
    ax.set_aspect("equal")
    ax.invert_yaxis()

    labels = month_labels(weeks)
    ax.set_xticks([index + 0.5 for index, _ in labels])
    ax.set_xticklabels([label for _, label in labels], color="#9CA3AF", fontsize=8)
    ax.xaxis.tick_top()
    ax.set_yticks([row + 0.5 for row in DAY_LABELS])
    ax.set_yticklabels(list(DAY_LABELS.values()), color="#9CA3AF", fontsize=8)
    ax.tick_params(length=0)
    for spine in ax.spines.values():
        spine.set_visible(False)
    ax.set_facecolor("#111827")
    fig.patch.set_facecolor("#111827")
    ax.set_title(
        f"Total focus: {total / 60:.1f} h",
        color="#E5E7EB",
        fontsize=10,
        loc="left",
        pad=18,
    )
    fig.tight_layout()
    LOGGER.debug("Rendered heat-map with %d minutes", total)
    return fig
