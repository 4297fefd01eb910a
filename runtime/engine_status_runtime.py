"""Shared helpers for publishing agent loop health summaries."""


def default_agent_status(*, include_tick_counters=False):
    status = {
        "alive": False,
        "last_loop_start": None,
        "last_loop_end": None,
        "last_exception": None,
        "loop_count": 0,
    }
    if include_tick_counters:
        status["tick_count"] = 0
        status["skipped_ticks"] = 0
        status["overrun_count"] = 0
    return status


def update_agent_status(
    shared_data,
    *,
    status_key,
    set_alive=None,
    last_loop_start=None,
    last_loop_end=None,
    last_exception=None,
    increments=None,
    extra_updates=None,
):
    """Update an agent status entry under lock and return a copy of it."""
    with shared_data["lock"]:
        status = shared_data.setdefault(status_key, default_agent_status())
        if set_alive is not None:
            status["alive"] = bool(set_alive)
        if last_loop_start is not None:
            status["last_loop_start"] = last_loop_start
            status["loop_count"] = int(status.get("loop_count", 0) or 0) + 1
        if last_loop_end is not None:
            status["last_loop_end"] = last_loop_end
        if last_exception is not None:
            status["last_exception"] = last_exception
        for key, amount in (increments or {}).items():
            status[key] = int(status.get(key, 0) or 0) + int(amount)
        if isinstance(extra_updates, dict):
            status.update(extra_updates)
        return dict(status)
