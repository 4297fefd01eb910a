import unittest

import pandas as pd

from dashboard.plotting import DEFAULT_SITE_COLORS, create_soc_history_figure, site_color


class DashboardPlottingTests(unittest.TestCase):
    def test_one_trace_per_site_with_active_site_emphasized(self):
        frame = pd.DataFrame({"A": pd.Series([50.0, 49.0, 48.5]), "B": pd.Series([60.0, 61.0])})

        fig = create_soc_history_figure(frame, "B")

        self.assertEqual([trace.name for trace in fig.data], ["Site A", "Site B"])
        self.assertEqual(list(fig.data[0].y), [50.0, 49.0, 48.5])
        self.assertEqual(list(fig.data[1].x), [1, 2])
        self.assertGreater(fig.data[1].line.width, fig.data[0].line.width)
        self.assertEqual(len(fig.layout.shapes), 2)

    def test_threshold_lines_follow_config(self):
        frame = pd.DataFrame({"A": pd.Series([50.0])})
        fig = create_soc_history_figure(frame, "A", config={"CRITICAL_SOC_PCT": 8.0, "LOW_SOC_PCT": 25.0})
        self.assertEqual(sorted(shape.y0 for shape in fig.layout.shapes), [8.0, 25.0])

    def test_site_colors_cycle(self):
        site_ids = [str(idx) for idx in range(len(DEFAULT_SITE_COLORS) + 1)]
        self.assertEqual(site_color(site_ids, site_ids[-1]), DEFAULT_SITE_COLORS[0])


if __name__ == "__main__":
    unittest.main()
