import logging
import threading
import time

from config_loader import load_config
from control.engine_agent import command_agent
from dashboard.agent import dashboard_agent
from fleet.energy_model import default_rng
from fleet.store import build_fleet_state
from logger_config import setup_logging
from runtime.engine_status_runtime import default_agent_status
from simulation.agent import tick_agent


def build_initial_shared_data(config, rng=None):
    """Create the authoritative runtime shared_data contract."""
    rng = rng if rng is not None else default_rng(config.get("RANDOM_SEED"))

    return {
        "session_logs": [],
        "log_lock": threading.Lock(),
        "fleet_state": build_fleet_state(config, rng),
        "rng": rng,
        "tick_guard": threading.Lock(),
        "alert_next_id": 1,
        "command_next_id": 1,
        "tick_agent_status": default_agent_status(include_tick_counters=True),
        "command_agent_status": default_agent_status(),
        "lock": threading.Lock(),
        "shutdown_event": threading.Event(),
        "log_file_path": None,
    }


def build_agent_threads(config, shared_data):
    return [
        threading.Thread(target=tick_agent, args=(config, shared_data), daemon=True),
        threading.Thread(target=command_agent, args=(config, shared_data), daemon=True),
        threading.Thread(target=dashboard_agent, args=(config, shared_data), daemon=True),
    ]


def main():
    """Director agent: load config, initialize shared runtime, and start agents."""
    config = load_config("config.yaml")
    shared_data = build_initial_shared_data(config)

    setup_logging(config, shared_data)
    logging.info("Director agent starting the fleet monitor.")

    threads = []
    try:
        threads = build_agent_threads(config, shared_data)

        for thread in threads:
            thread.start()

        logging.info("All agents started.")
        logging.info("Dashboard available at http://%s:%s/", config["DASHBOARD_HOST"], config["DASHBOARD_PORT"])

        while not shared_data["shutdown_event"].is_set():
            time.sleep(1)

    except KeyboardInterrupt:
        logging.info("Keyboard interrupt received. Shutting down...")
    except Exception as exc:
        logging.error("An unexpected error occurred in the director: %s", exc)
    finally:
        logging.info("Director initiating shutdown...")
        shared_data["shutdown_event"].set()

        for thread in threads:
            thread.join(timeout=10)

        logging.info("Fleet monitor shutdown complete.")


if __name__ == "__main__":
    main()
