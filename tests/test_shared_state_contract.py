import threading
import unittest

from config_loader import load_config
from fleet.energy_model import default_rng
from fleet.models import COMMAND_IDLE, FleetState
from fleet_monitor import build_agent_threads, build_initial_shared_data
from runtime.shared_state import allocate_id_locked, transition_fleet_state


class SharedStateContractTests(unittest.TestCase):
    def test_build_initial_shared_data_contains_required_runtime_keys(self):
        config = load_config("config.yaml")
        shared_data = build_initial_shared_data(config, rng=default_rng(9))

        required_keys = {
            "session_logs",
            "log_lock",
            "fleet_state",
            "rng",
            "tick_guard",
            "alert_next_id",
            "command_next_id",
            "tick_agent_status",
            "command_agent_status",
            "lock",
            "shutdown_event",
            "log_file_path",
        }
        self.assertTrue(required_keys.issubset(shared_data.keys()))

        self.assertIsInstance(shared_data["lock"], type(threading.Lock()))
        self.assertIsInstance(shared_data["tick_guard"], type(threading.Lock()))
        self.assertIsInstance(shared_data["shutdown_event"], threading.Event)

        fleet = shared_data["fleet_state"]
        self.assertIsInstance(fleet, FleetState)
        self.assertEqual(fleet.site_ids, config["SITE_IDS"])
        self.assertEqual(fleet.active_site, config["INITIAL_ACTIVE_SITE"])
        self.assertEqual(fleet.command_status, COMMAND_IDLE)
        self.assertIsNone(fleet.active_command)

        self.assertTrue(
            {"alive", "last_loop_start", "last_loop_end", "last_exception", "tick_count", "skipped_ticks"}.issubset(
                shared_data["tick_agent_status"].keys()
            )
        )
        self.assertTrue(
            {"alive", "last_loop_start", "last_loop_end", "last_exception"}.issubset(
                shared_data["command_agent_status"].keys()
            )
        )

    def test_seeded_runtime_is_reproducible(self):
        config = dict(load_config("config.yaml"), RANDOM_SEED=123)
        first = build_initial_shared_data(config)["fleet_state"]
        second = build_initial_shared_data(config)["fleet_state"]
        self.assertEqual(first, second)

    def test_agent_threads_are_wired(self):
        config = load_config("config.yaml")
        threads = build_agent_threads(config, {"lock": threading.Lock()})
        target_names = {getattr(getattr(thread, "_target", None), "__name__", "") for thread in threads}
        self.assertEqual(target_names, {"tick_agent", "command_agent", "dashboard_agent"})
        self.assertTrue(all(thread.daemon for thread in threads))

    def test_transition_replaces_state_and_returns_result(self):
        shared = {"lock": threading.Lock(), "fleet_state": "old", "alert_next_id": 1}

        def _transition(data, state):
            return "new", (state, allocate_id_locked(data, "alert_next_id", "alert"))

        self.assertEqual(transition_fleet_state(shared, _transition), ("old", "alert-000001"))
        self.assertEqual(shared["fleet_state"], "new")
        self.assertEqual(shared["alert_next_id"], 2)


if __name__ == "__main__":
    unittest.main()
