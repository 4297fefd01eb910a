import unittest

from fleet.models import MACHINE_IDLE, MACHINE_RUNNING, SOURCE_BATTERY, SOURCE_GRID, Machine, SiteState
from fleet.protection import apply_protection, force_machines_to_grid, protection_triggered


def _site(level, sources=(SOURCE_BATTERY, SOURCE_GRID, SOURCE_BATTERY)):
    machines = tuple(
        Machine(id=idx, status=MACHINE_RUNNING if idx % 2 else MACHINE_IDLE, load=5.0, source=source)
        for idx, source in enumerate(sources, start=1)
    )
    return SiteState(solar_output=60.0, battery_level=level, battery_temp=32.0, machines=machines)


class ProtectionTests(unittest.TestCase):
    def test_triggers_only_on_falling_edge_crossing(self):
        self.assertTrue(protection_triggered(5.1, 5.0, 5.0))
        self.assertTrue(protection_triggered(7.0, 2.0, 5.0))
        self.assertFalse(protection_triggered(5.0, 4.0, 5.0))
        self.assertFalse(protection_triggered(4.0, 4.5, 5.0))
        self.assertFalse(protection_triggered(8.0, 5.5, 5.0))

    def test_force_to_grid_reports_moved_machines(self):
        site, moved = force_machines_to_grid(_site(4.0))
        self.assertEqual(moved, (1, 3))
        self.assertTrue(all(m.source == SOURCE_GRID for m in site.machines))

    def test_apply_protection_moves_battery_machines_on_crossing(self):
        site, fired = apply_protection("A", _site(4.8), 5.3, critical_soc_pct=5.0)
        self.assertTrue(fired)
        self.assertTrue(all(m.source == SOURCE_GRID for m in site.machines))
        self.assertEqual([m.status for m in site.machines], [MACHINE_RUNNING, MACHINE_IDLE, MACHINE_RUNNING])

    def test_apply_protection_fires_even_when_all_machines_already_on_grid(self):
        site = _site(4.8, sources=(SOURCE_GRID, SOURCE_GRID))
        protected, fired = apply_protection("A", site, 6.0, critical_soc_pct=5.0)
        self.assertTrue(fired)
        self.assertIs(protected, site)

    def test_apply_protection_is_noop_while_staying_below_floor(self):
        site = _site(3.0)
        protected, fired = apply_protection("A", site, 4.0, critical_soc_pct=5.0)
        self.assertFalse(fired)
        self.assertIs(protected, site)


if __name__ == "__main__":
    unittest.main()
