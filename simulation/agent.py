"""Tick agent: advances every site once per tick period."""

import logging
import time

from fleet import store
from runtime.defaults import DEFAULT_TICK_PERIOD_S
from runtime.engine_status_runtime import update_agent_status
from time_utils import now_tz

TICK_AGENT_STATUS_KEY = "tick_agent_status"


def _update_tick_agent_status(shared_data, **kwargs):
    return update_agent_status(shared_data, status_key=TICK_AGENT_STATUS_KEY, **kwargs)


def _run_single_tick_cycle(config, shared_data, *, now_fn=now_tz, tick_fn=store.tick):
    """Run one tick and publish loop health. Returns True when the tick ran."""
    loop_now = now_fn(config)
    _update_tick_agent_status(shared_data, set_alive=True, last_loop_start=loop_now)

    ticked = bool(tick_fn(shared_data, config=config, now=loop_now))

    _update_tick_agent_status(
        shared_data,
        set_alive=True,
        last_loop_end=now_fn(config),
        increments={"tick_count": 1} if ticked else {"skipped_ticks": 1},
    )
    return ticked


def _missed_ticks(elapsed_s, period_s):
    """Whole tick periods lost to an overrunning cycle. They are dropped, not caught up."""
    if period_s <= 0 or elapsed_s <= period_s:
        return 0
    return int(elapsed_s // period_s)


def tick_agent(config, shared_data):
    """Drive the simulation tick until the shutdown event is set."""
    logging.info("Tick agent started.")
    period_s = float(config.get("TICK_PERIOD_S", DEFAULT_TICK_PERIOD_S))

    while not shared_data["shutdown_event"].is_set():
        loop_start = time.monotonic()
        try:
            _run_single_tick_cycle(config, shared_data)
        except Exception as exc:
            logging.exception("TickAgent: unexpected loop error.")
            error_now = now_tz(config)
            _update_tick_agent_status(
                shared_data,
                set_alive=True,
                last_exception={"timestamp": error_now, "message": str(exc)},
                last_loop_end=error_now,
            )

        elapsed_s = time.monotonic() - loop_start
        missed = _missed_ticks(elapsed_s, period_s)
        if missed:
            logging.warning("TickAgent: cycle took %.3fs, dropping %d tick(s).", elapsed_s, missed)
            _update_tick_agent_status(shared_data, increments={"overrun_count": 1, "skipped_ticks": missed})
        shared_data["shutdown_event"].wait(max(0.0, period_s - elapsed_s))

    _update_tick_agent_status(shared_data, set_alive=False, last_loop_end=now_tz(config))
    logging.info("Tick agent stopped.")
