import unittest
from datetime import date

import matplotlib

matplotlib.use("Agg")
from matplotlib import pyplot as plt

from habitfocus_heatmap import (
    DAYS_PER_WEEK,
    FUTURE_LEVEL,
    WEEKS,
    build_grid,
    grid_start,
    heat_level,
    level_matrix,
    month_labels,
    render_heatmap,
)

# A Wednesday.
TODAY = date(2024, 6, 12)


class TestHeatLevel(unittest.TestCase):
    def test_boundaries(self) -> None:
        cases = {
            0: 0,
            1: 1,
            120: 1,
            121: 2,
            300: 2,
            301: 3,
            480: 3,
            481: 4,
            660: 4,
            661: 5,
            2000: 5,
        }
        for minutes, level in cases.items():
            self.assertEqual(heat_level(minutes), level, minutes)


class TestGrid(unittest.TestCase):
    def test_shape_and_alignment(self) -> None:
        weeks, _ = build_grid({}, TODAY)
        self.assertEqual(len(weeks), WEEKS)
        self.assertTrue(all(len(week) == DAYS_PER_WEEK for week in weeks))
        start = grid_start(TODAY)
        self.assertEqual(start.weekday(), 6)
        self.assertEqual(weeks[0][0]["date"], start.isoformat())
        last_week = [cell["date"] for cell in weeks[-1]]
        self.assertIn(TODAY.isoformat(), last_week)

    def test_future_days_are_forced_empty(self) -> None:
        stats = {"2024-06-12": 90, "2024-06-13": 600}
        weeks, total = build_grid(stats, TODAY)
        cells = {cell["date"]: cell for week in weeks for cell in week}
        self.assertEqual(cells["2024-06-12"]["minutes"], 90)
        self.assertEqual(cells["2024-06-12"]["level"], 1)
        self.assertFalse(cells["2024-06-12"]["is_future"])
        self.assertEqual(cells["2024-06-13"]["minutes"], 0)
        self.assertTrue(cells["2024-06-13"]["is_future"])
        self.assertEqual(total, 90)

    def test_days_outside_window_are_ignored(self) -> None:
        _, total = build_grid({"2020-01-01": 500, "2024-06-01": 30}, TODAY)
        self.assertEqual(total, 30)

    def test_month_labels_mark_first_week_of_each_month(self) -> None:
        weeks, _ = build_grid({}, TODAY)
        labels = month_labels(weeks)
        self.assertEqual(labels[0][0], 0)
        self.assertEqual(len(labels), len({label for _, label in labels}) + 1)
        indexes = [index for index, _ in labels]
        self.assertEqual(indexes, sorted(indexes))

    def test_level_matrix_marks_future(self) -> None:
        weeks, _ = build_grid({}, TODAY)
        matrix = level_matrix(weeks)
        self.assertEqual(len(matrix), DAYS_PER_WEEK)
        # Thursday of the current week is still ahead.
        self.assertEqual(matrix[4][-1], FUTURE_LEVEL)
        self.assertEqual(matrix[3][-1], 0)


class TestRender(unittest.TestCase):
    def test_render_returns_figure(self) -> None:
        fig = render_heatmap({"2024-06-10": 130}, TODAY)
        try:
            ax = fig.axes[0]
            self.assertIn("2.2 h", ax.get_title(loc="left"))
            self.assertEqual([t.get_text() for t in ax.get_yticklabels()], ["Mon", "Wed", "Fri"])
        finally:
            plt.close(fig)


if __name__ == "__main__":
    unittest.main()
