"""Fleet store: the lock-guarded FleetState in shared_data and its command surface.

Every mutation runs under `shared_data["lock"]` and replaces the FleetState (and
the touched SiteState) as a whole. Rejected commands are silent no-ops that
return False; unknown site or machine ids raise ValueError.
"""

import logging
from dataclasses import replace

from fleet.alerts import evaluate_tick_alerts, prepend_alerts, source_switch_alert
from fleet.command_machine import accept_fleet_switch, advance_fleet_command
from fleet.energy_model import advance_site_energy, initial_site_state
from fleet.models import COMMAND_IDLE, SOURCE_BATTERY, FleetState, opposite_source
from fleet.protection import apply_protection
from runtime.defaults import engine_setting
from runtime.parsing import parse_power_source, parse_site_id
from runtime.shared_state import allocate_id_locked, fleet_state_snapshot, transition_fleet_state
from time_utils import now_tz


def build_fleet_state(config, rng, *, initial_levels=None):
    """Create the process-wide FleetState with randomized sites."""
    site_ids = tuple(engine_setting(config, "SITE_IDS"))
    initial_levels = dict(initial_levels or {})
    sites = {
        site_id: initial_site_state(
            rng,
            machines_per_site=int(engine_setting(config, "MACHINES_PER_SITE")),
            critical_soc_pct=float(engine_setting(config, "CRITICAL_SOC_PCT")),
            battery_level=initial_levels.get(site_id),
        )
        for site_id in site_ids
    }
    active_site = (config or {}).get("INITIAL_ACTIVE_SITE") or site_ids[0]
    return FleetState(sites=sites, active_site=parse_site_id(active_site, site_ids))


def _now(config, now):
    """Command timestamp. Transitions call this under the lock."""
    return now if now is not None else now_tz(config)


def _alert_id_fn(data):
    return lambda: allocate_id_locked(data, "alert_next_id", "alert")


def snapshot(shared_data):
    """Return the current FleetState. It is immutable, so readers need no copy."""
    return fleet_state_snapshot(shared_data)


def select_site(shared_data, site_id):
    def _transition(_data, fleet):
        selected = parse_site_id(site_id, fleet.site_ids)
        return replace(fleet, active_site=selected), selected

    selected = transition_fleet_state(shared_data, _transition)
    logging.info("FleetStore: active site set to %s.", selected)
    return selected


def _switch_machine(shared_data, machine_id, target_for, *, config, now):
    critical_soc = float(engine_setting(config, "CRITICAL_SOC_PCT"))
    log_limit = engine_setting(config, "ALERT_LOG_LIMIT")

    def _transition(data, fleet):
        site_id = fleet.active_site
        site = fleet.sites[site_id]
        machine = site.machine(int(machine_id))
        requested = target_for(machine)
        if machine.source == requested:
            return fleet, (False, site_id, requested, "unchanged")
        if requested == SOURCE_BATTERY and site.battery_level <= critical_soc:
            return fleet, (False, site_id, requested, "battery_critical")
        alert = source_switch_alert(
            site_id, machine.id, machine.source, requested, now=_now(config, now), id_fn=_alert_id_fn(data)
        )
        site = prepend_alerts(site.with_machine(machine.id, source=requested), [alert], log_limit)
        return fleet.with_site(site_id, site), (True, site_id, requested, None)

    accepted, site_id, requested, reason = transition_fleet_state(shared_data, _transition)
    if accepted:
        logging.info("FleetStore: site %s machine #%s switched to %s.", site_id, machine_id, requested)
    else:
        logging.info("FleetStore: site %s machine #%s switch to %s ignored (%s).", site_id, machine_id, requested, reason)
    return accepted


def set_machine_source(shared_data, machine_id, source, *, config=None, now=None):
    """
    Put one machine of the active site on `source`.

    Returns False without touching state when the machine already uses
    `source`, or when `source` is battery and the site is at or below the
    critical floor. On success a SOURCE_SWITCH alert is logged on the site.
    """
    requested = parse_power_source(source)
    return _switch_machine(shared_data, machine_id, lambda _machine: requested, config=config, now=now)


def toggle_machine(shared_data, machine_id, *, config=None, now=None):
    """Flip one machine of the active site between battery and grid."""
    return _switch_machine(
        shared_data,
        machine_id,
        lambda machine: opposite_source(machine.source),
        config=config,
        now=now,
    )


def switch_all(shared_data, source, *, config=None, now=None):
    """Start a fleet switch of the active site. Returns False while another command is in flight."""
    requested = parse_power_source(source)

    def _transition(data, fleet):
        command_id = None
        if fleet.active_command is None and fleet.command_status == COMMAND_IDLE:
            command_id = allocate_id_locked(data, "command_next_id", "cmd")
        return accept_fleet_switch(fleet, requested, now=_now(config, now), command_id=command_id)

    return transition_fleet_state(shared_data, _transition)


def advance_command(shared_data, *, config=None, now=None):
    """Move the in-flight fleet command to its due stage. Returns the stages entered."""

    def _transition(data, fleet):
        return advance_fleet_command(fleet, now=_now(config, now), config=config, id_fn=_alert_id_fn(data))

    return transition_fleet_state(shared_data, _transition)


def clear_alerts(shared_data):
    """Empty the active site's alert log. Returns the number of alerts removed."""

    def _transition(_data, fleet):
        site = fleet.active_site_state
        cleared = len(site.alerts)
        return fleet.with_site(fleet.active_site, replace(site, alerts=())), (fleet.active_site, cleared)

    site_id, cleared = transition_fleet_state(shared_data, _transition)
    logging.info("FleetStore: cleared %d alerts on site %s.", cleared, site_id)
    return cleared


def tick_site(site_id, site, *, now, config, rng, id_fn):
    """Run energy model, protection and alert evaluation for one site. Pure apart from `rng`/`id_fn`."""
    step = advance_site_energy(site, rng)
    site, protection_fired = apply_protection(
        site_id,
        step.site,
        step.previous_level,
        critical_soc_pct=float(engine_setting(config, "CRITICAL_SOC_PCT")),
    )
    history_len = int(engine_setting(config, "SOC_HISTORY_LEN"))
    history = (tuple(site.soc_history) + (site.battery_level,))[-history_len:]
    site = replace(site, soc_history=history)
    site, new_alerts = evaluate_tick_alerts(
        site_id,
        site,
        protection_fired=protection_fired,
        now=now,
        config=config,
        id_fn=id_fn,
    )
    return prepend_alerts(site, new_alerts, engine_setting(config, "ALERT_LOG_LIMIT"))


def tick(shared_data, *, config=None, now=None, rng=None):
    """
    Advance every site by one simulation step.

    Returns False when another tick is still running; the call is skipped
    rather than queued.
    """
    guard = shared_data["tick_guard"]
    if not guard.acquire(blocking=False):
        logging.warning("FleetStore: tick skipped, previous tick still running.")
        return False
    try:
        def _transition(data, fleet):
            tick_now = _now(config, now)
            tick_rng = rng if rng is not None else data["rng"]
            id_fn = _alert_id_fn(data)
            for site_id in fleet.site_ids:
                site = tick_site(site_id, fleet.sites[site_id], now=tick_now, config=config, rng=tick_rng, id_fn=id_fn)
                fleet = fleet.with_site(site_id, site)
            return fleet, None

        transition_fleet_state(shared_data, _transition)
        return True
    finally:
        guard.release()
