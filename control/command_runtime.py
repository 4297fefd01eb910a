"""Run dashboard command intents against the fleet store and record their outcome."""

import logging
from copy import deepcopy

from fleet import store
from time_utils import now_tz

COMMAND_HISTORY_LIMIT = 50
COMMAND_HISTORY_KEY = "dashboard_command_history"


def _run_machine_toggle(shared_data, payload, *, config, now):
    return store.toggle_machine(shared_data, payload["machine_id"], config=config, now=now)


def _run_machine_set_source(shared_data, payload, *, config, now):
    return store.set_machine_source(shared_data, payload["machine_id"], payload["source"], config=config, now=now)


def _run_switch_all(shared_data, payload, *, config, now):
    return store.switch_all(shared_data, payload["source"], config=config, now=now)


def _run_select_site(shared_data, payload, *, config, now):
    return store.select_site(shared_data, payload["site_id"])


def _run_clear_alerts(shared_data, payload, *, config, now):
    return store.clear_alerts(shared_data)


COMMAND_HANDLERS = {
    "machine.toggle": _run_machine_toggle,
    "machine.set_source": _run_machine_set_source,
    "fleet.switch_all": _run_switch_all,
    "site.select": _run_select_site,
    "alerts.clear": _run_clear_alerts,
}


def _record_status_locked(shared_data, status, limit):
    history = shared_data.setdefault(COMMAND_HISTORY_KEY, [])
    history.append(status)
    del history[: max(0, len(history) - int(limit))]


def execute_command_intent(shared_data, intent, *, config, source="dashboard", now_fn=None, history_limit=COMMAND_HISTORY_LIMIT):
    """
    Run a normalized `{"kind", "payload"}` intent synchronously and return its status.

    Store rejections come back with `accepted=False`. Unknown kinds and invalid
    payloads (bad ids, bad source names) are reported as `state="failed"`.
    """
    now_fn = now_fn or (lambda: now_tz(config))
    kind = str(intent.get("kind"))
    payload = dict(intent.get("payload") or {})
    created_at = now_fn()
    status = {
        "kind": kind,
        "payload": deepcopy(payload),
        "source": str(source or "unknown"),
        "state": "failed",
        "accepted": False,
        "result": None,
        "message": None,
        "created_at": created_at,
    }

    handler = COMMAND_HANDLERS.get(kind)
    if handler is None:
        status["message"] = f"unsupported_command_kind:{kind}"
        logging.warning("CommandRuntime: unsupported command kind '%s'.", kind)
    else:
        try:
            result = handler(shared_data, payload, config=config, now=created_at)
        except (KeyError, ValueError) as exc:
            status["message"] = str(exc)
            logging.warning("CommandRuntime: %s rejected: %s", kind, exc)
        else:
            status["result"] = result
            status["accepted"] = result is not False
            status["state"] = "succeeded" if status["accepted"] else "rejected"

    with shared_data["lock"]:
        _record_status_locked(shared_data, status, history_limit)
    return deepcopy(status)
