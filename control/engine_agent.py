"""Command engine: drives the in-flight fleet switch through its timed stages."""

import logging
import time

from fleet import store
from runtime.defaults import DEFAULT_COMMAND_POLL_PERIOD_S
from runtime.engine_status_runtime import update_agent_status
from time_utils import now_tz

COMMAND_AGENT_STATUS_KEY = "command_agent_status"


def _update_command_agent_status(shared_data, **kwargs):
    return update_agent_status(shared_data, status_key=COMMAND_AGENT_STATUS_KEY, **kwargs)


def _run_single_command_cycle(config, shared_data, *, now_fn=now_tz, advance_fn=store.advance_command):
    loop_now = now_fn(config)
    _update_command_agent_status(shared_data, set_alive=True, last_loop_start=loop_now)

    transitions = list(advance_fn(shared_data, config=config, now=loop_now) or [])
    if transitions:
        logging.debug("CommandAgent: entered stage(s) %s.", ", ".join(str(item) for item in transitions))

    extra_updates = {"last_transition": transitions[-1], "last_transition_at": loop_now} if transitions else None
    _update_command_agent_status(
        shared_data,
        set_alive=True,
        last_loop_end=now_fn(config),
        increments={"transition_count": len(transitions)} if transitions else None,
        extra_updates=extra_updates,
    )
    return transitions


def command_agent(config, shared_data):
    """Poll the fleet command state until the shutdown event is set."""
    logging.info("Command agent started.")
    period_s = float(config.get("COMMAND_POLL_PERIOD_S", DEFAULT_COMMAND_POLL_PERIOD_S))

    while not shared_data["shutdown_event"].is_set():
        loop_start = time.monotonic()
        try:
            _run_single_command_cycle(config, shared_data)
        except Exception as exc:
            logging.exception("CommandAgent: unexpected loop error.")
            error_now = now_tz(config)
            _update_command_agent_status(
                shared_data,
                set_alive=True,
                last_exception={"timestamp": error_now, "message": str(exc)},
                last_loop_end=error_now,
            )

        shared_data["shutdown_event"].wait(max(0.0, period_s - (time.monotonic() - loop_start)))

    _update_command_agent_status(shared_data, set_alive=False, last_loop_end=now_tz(config))
    logging.info("Command agent stopped.")
