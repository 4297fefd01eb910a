import threading
import unittest
from datetime import datetime, timezone

from control.command_runtime import COMMAND_HISTORY_KEY, execute_command_intent
from fleet.models import MACHINE_RUNNING, SOURCE_BATTERY, SOURCE_GRID, FleetState, Machine, SiteState

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _shared_data():
    machines = (
        Machine(id=1, status=MACHINE_RUNNING, load=6.0, source=SOURCE_BATTERY),
        Machine(id=2, status=MACHINE_RUNNING, load=6.0, source=SOURCE_GRID),
    )
    site = SiteState(solar_output=80.0, battery_level=50.0, battery_temp=33.0, machines=machines)
    return {
        "lock": threading.Lock(),
        "fleet_state": FleetState(sites={"A": site, "B": site}, active_site="A"),
        "alert_next_id": 1,
        "command_next_id": 1,
    }


def _run(shared, kind, payload=None, **kwargs):
    return execute_command_intent(
        shared,
        {"kind": kind, "payload": payload or {}},
        config={},
        now_fn=lambda: NOW,
        **kwargs,
    )


class CommandRuntimeTests(unittest.TestCase):
    def test_machine_toggle_succeeds(self):
        shared = _shared_data()
        status = _run(shared, "machine.toggle", {"machine_id": 2})

        self.assertEqual(status["state"], "succeeded")
        self.assertTrue(status["accepted"])
        self.assertEqual(status["created_at"], NOW)
        self.assertEqual(shared["fleet_state"].sites["A"].machine(2).source, SOURCE_BATTERY)

    def test_store_rejection_is_reported(self):
        shared = _shared_data()
        status = _run(shared, "machine.set_source", {"machine_id": 1, "source": "battery"})
        self.assertEqual(status["state"], "rejected")
        self.assertFalse(status["accepted"])

    def test_switch_all_and_site_select(self):
        shared = _shared_data()
        self.assertEqual(_run(shared, "fleet.switch_all", {"source": "grid"})["state"], "succeeded")
        self.assertEqual(_run(shared, "fleet.switch_all", {"source": "grid"})["state"], "rejected")

        status = _run(shared, "site.select", {"site_id": "b"})
        self.assertEqual(status["result"], "B")
        self.assertEqual(shared["fleet_state"].active_site, "B")

    def test_clear_alerts_result_is_count(self):
        shared = _shared_data()
        _run(shared, "machine.toggle", {"machine_id": 1})
        status = _run(shared, "alerts.clear")
        self.assertEqual(status["result"], 1)
        self.assertTrue(status["accepted"])

    def test_invalid_payload_and_unknown_kind_fail(self):
        shared = _shared_data()
        status = _run(shared, "site.select", {"site_id": "Z"})
        self.assertEqual(status["state"], "failed")
        self.assertIn("Unknown site id", status["message"])

        status = _run(shared, "machine.toggle", {})
        self.assertEqual(status["state"], "failed")

        status = _run(shared, "plant.start")
        self.assertEqual(status["state"], "failed")
        self.assertEqual(status["message"], "unsupported_command_kind:plant.start")

    def test_history_is_capped(self):
        shared = _shared_data()
        for _ in range(5):
            _run(shared, "alerts.clear", history_limit=3)
        self.assertEqual(len(shared[COMMAND_HISTORY_KEY]), 3)


if __name__ == "__main__":
    unittest.main()
