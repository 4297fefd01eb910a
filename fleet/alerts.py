"""Alert evaluation, cooldown bookkeeping and the bounded per-site alert log."""

import logging
from dataclasses import replace

from fleet.energy_model import site_loads
from fleet.models import (
    ALERT_FLEET_SWITCH,
    ALERT_GREEN_SHORTAGE,
    ALERT_SOC_LOW,
    ALERT_SOC_LOW_PROTECT,
    ALERT_SOURCE_SWITCH,
    SEVERITY_CRITICAL,
    SEVERITY_INFO,
    SEVERITY_WARNING,
    SOURCE_BATTERY,
    SOURCE_GRID,
    Alert,
    AlertDetails,
)
from runtime.defaults import engine_setting

SOURCE_LABELS = {SOURCE_BATTERY: "green (battery)", SOURCE_GRID: "grid"}


def cooldown_elapsed(last_time, now, cooldown_s):
    """True when no alert of this kind fired yet or the last one is older than `cooldown_s`."""
    if last_time is None:
        return True
    return (now - last_time).total_seconds() > float(cooldown_s)


def soc_trend(soc_history):
    """Newest minus oldest sample of the retained SOC window."""
    if not soc_history:
        return 0.0
    return float(soc_history[-1]) - float(soc_history[0])


def details_for_site(site):
    total_load, green_load = site_loads(site.machines)
    return AlertDetails(
        soc=float(site.battery_level),
        solar_output=float(site.solar_output),
        total_load=total_load,
        green_load=green_load,
    )


def prepend_alerts(site, alerts, limit):
    """
    Prepend `alerts` and cap the log.

    Each alert is pushed onto the front in emission order, so the last alert
    emitted in a batch ends up first and ids stay strictly descending. An alert
    stamped earlier than the current head (its clock was read before a
    concurrent writer took the lock) is raised to the head timestamp, keeping
    the log newest first.
    """
    if not alerts:
        return site
    floor = site.alerts[0].timestamp if site.alerts else None
    batch = []
    for alert in alerts:
        if floor is not None and alert.timestamp < floor:
            alert = replace(alert, timestamp=floor)
        batch.append(alert)
    merged = tuple(reversed(batch)) + tuple(site.alerts)
    return replace(site, alerts=merged[: int(limit)])


def evaluate_tick_alerts(site_id, site, *, protection_fired, now, config, id_fn):
    """
    Evaluate the threshold conditions for one site after the energy and protection steps.

    Conditions are independent: SOC_LOW_PROTECT (or else SOC_LOW) and
    GREEN_SHORTAGE may both fire in the same tick. `site.soc_history` must
    already contain this tick's sample. Returns (site, new_alerts) where `site`
    carries updated cooldown timestamps but not yet the new alerts.
    """
    critical_soc = float(engine_setting(config, "CRITICAL_SOC_PCT"))
    low_soc = float(engine_setting(config, "LOW_SOC_PCT"))
    cooldown_s = float(engine_setting(config, "ALERT_COOLDOWN_S"))
    level = float(site.battery_level)
    details = details_for_site(site)
    new_alerts = []

    if protection_fired:
        new_alerts.append(
            Alert(
                id=id_fn(),
                timestamp=now,
                site_id=site_id,
                type=ALERT_SOC_LOW_PROTECT,
                message=f"Battery critically low ({level:.1f}%). All machines moved to grid for protection.",
                severity=SEVERITY_CRITICAL,
                details=details,
            )
        )
        site = replace(site, last_soc_warning_time=now)
    elif critical_soc <= level < low_soc and cooldown_elapsed(site.last_soc_warning_time, now, cooldown_s):
        new_alerts.append(
            Alert(
                id=id_fn(),
                timestamp=now,
                site_id=site_id,
                type=ALERT_SOC_LOW,
                message=f"Battery low ({level:.1f}%). Consider reducing green load.",
                severity=SEVERITY_WARNING,
                details=details,
            )
        )
        site = replace(site, last_soc_warning_time=now)

    history = tuple(site.soc_history)
    if len(history) >= int(engine_setting(config, "GREEN_SHORTAGE_MIN_SAMPLES")):
        trend = soc_trend(history)
        shortage = (
            site.solar_output < float(engine_setting(config, "GREEN_SHORTAGE_SOLAR_BELOW_KW"))
            and details.total_load > float(engine_setting(config, "GREEN_SHORTAGE_LOAD_ABOVE_KW"))
            and trend < float(engine_setting(config, "GREEN_SHORTAGE_TREND_BELOW_PCT"))
        )
        if shortage and cooldown_elapsed(site.last_green_shortage_time, now, cooldown_s):
            new_alerts.append(
                Alert(
                    id=id_fn(),
                    timestamp=now,
                    site_id=site_id,
                    type=ALERT_GREEN_SHORTAGE,
                    message=(
                        f"Green supply short: solar {site.solar_output:.1f} kW, "
                        f"load {details.total_load:.1f} kW, SOC trend {trend:+.1f}%."
                    ),
                    severity=SEVERITY_WARNING,
                    details=details,
                )
            )
            site = replace(site, last_green_shortage_time=now)

    for alert in new_alerts:
        log_fn = logging.error if alert.severity == SEVERITY_CRITICAL else logging.warning
        log_fn("Alerts: site %s %s - %s", site_id, alert.type, alert.message)
    return site, new_alerts


def source_switch_alert(site_id, machine_id, old_source, new_source, *, now, id_fn):
    return Alert(
        id=id_fn(),
        timestamp=now,
        site_id=site_id,
        type=ALERT_SOURCE_SWITCH,
        message=f"Machine #{machine_id}: {SOURCE_LABELS[old_source]} -> {SOURCE_LABELS[new_source]}",
        severity=SEVERITY_INFO,
    )


def fleet_switch_alert(site_id, source, *, now, id_fn):
    return Alert(
        id=id_fn(),
        timestamp=now,
        site_id=site_id,
        type=ALERT_FLEET_SWITCH,
        message=f"All machines switched to {SOURCE_LABELS[source]}.",
        severity=SEVERITY_INFO,
    )
