import unittest

from dashboard.ui_state import battery_band_class, get_machine_toggle_state, get_switch_all_buttons_state
from fleet.models import MACHINE_RUNNING, SOURCE_BATTERY, SOURCE_GRID, Machine


class DashboardUiStateTests(unittest.TestCase):
    def test_idle_buttons_are_enabled(self):
        state = get_switch_all_buttons_state("idle")
        self.assertFalse(state["battery_disabled"])
        self.assertFalse(state["grid_disabled"])
        self.assertEqual(state["battery_label"], "All to green")
        self.assertIsNone(state["active_side"])

    def test_in_flight_command_disables_both_and_labels_requested_side(self):
        state = get_switch_all_buttons_state("processing", SOURCE_GRID)
        self.assertTrue(state["battery_disabled"])
        self.assertTrue(state["grid_disabled"])
        self.assertEqual(state["grid_label"], "Processing...")
        self.assertEqual(state["battery_label"], "All to green")
        self.assertEqual(state["active_side"], SOURCE_GRID)

        self.assertEqual(get_switch_all_buttons_state("sending", SOURCE_BATTERY)["battery_label"], "Sending...")
        self.assertEqual(get_switch_all_buttons_state("success", SOURCE_BATTERY)["battery_label"], "Done")

    def test_machine_toggle_blocked_on_critical_battery(self):
        grid_machine = Machine(id=1, status=MACHINE_RUNNING, load=6.0, source=SOURCE_GRID)
        battery_machine = Machine(id=2, status=MACHINE_RUNNING, load=6.0, source=SOURCE_BATTERY)

        self.assertTrue(get_machine_toggle_state(grid_machine, 5.0)["disabled"])
        self.assertFalse(get_machine_toggle_state(grid_machine, 5.1)["disabled"])
        self.assertFalse(get_machine_toggle_state(battery_machine, 2.0)["disabled"])
        self.assertEqual(get_machine_toggle_state(battery_machine, 2.0)["label"], "Green")

    def test_battery_band_class(self):
        self.assertIn("critical", battery_band_class("critical"))
        self.assertEqual(battery_band_class("normal"), "kpi-value")


if __name__ == "__main__":
    unittest.main()
