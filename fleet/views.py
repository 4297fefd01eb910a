"""Read-only aggregates computed from FleetState snapshots for the dashboard."""

import pandas as pd

from fleet.energy_model import site_loads
from fleet.models import (
    ALERT_SOC_LOW,
    ALERT_SOC_LOW_PROTECT,
    SEVERITY_CRITICAL,
    SEVERITY_INFO,
    SEVERITY_WARNING,
    SOURCE_BATTERY,
    SOURCE_GRID,
)
from runtime.defaults import engine_setting
from time_utils import serialize_iso_with_tz

ALERT_FILTER_ALL = "all"
ADVISORY_LIMIT = 3
HIGH_TOTAL_LOAD_KW = 40.0

ALERT_COLUMNS = [
    "id",
    "timestamp",
    "site_id",
    "type",
    "severity",
    "message",
    "soc",
    "solar_output",
    "total_load",
    "green_load",
]


def total_load(site):
    return site_loads(site.machines)[0]


def green_load(site):
    return site_loads(site.machines)[1]


def green_ratio_pct(site):
    """Share of the site's load drawn from the battery, in percent (0 when nothing runs)."""
    total, green = site_loads(site.machines)
    if total <= 0:
        return 0.0
    return green / total * 100.0


def battery_band(battery_level, config=None):
    """Classify a SOC level as 'critical', 'low' or 'normal'."""
    if battery_level <= float(engine_setting(config, "CRITICAL_SOC_PCT")):
        return "critical"
    if battery_level < float(engine_setting(config, "LOW_SOC_PCT")):
        return "low"
    return "normal"


def source_counts(site):
    counts = {SOURCE_BATTERY: 0, SOURCE_GRID: 0}
    for machine in site.machines:
        counts[machine.source] += 1
    return counts


def site_summaries(fleet, config=None):
    """One summary row per site, in fleet order."""
    rows = []
    for site_id in fleet.site_ids:
        site = fleet.sites[site_id]
        total, green = site_loads(site.machines)
        rows.append(
            {
                "site_id": site_id,
                "active": site_id == fleet.active_site,
                "battery_level": float(site.battery_level),
                "battery_band": battery_band(site.battery_level, config),
                "battery_temp": float(site.battery_temp),
                "solar_output": float(site.solar_output),
                "total_load": total,
                "green_load": green,
                "green_ratio_pct": green_ratio_pct(site),
                "alert_count": len(site.alerts),
            }
        )
    return rows


def filter_alerts(alerts, alert_filter=ALERT_FILTER_ALL):
    """Filter by alert type. The SOC_LOW filter also keeps SOC_LOW_PROTECT alerts."""
    if not alert_filter or alert_filter == ALERT_FILTER_ALL:
        return list(alerts)
    if alert_filter == ALERT_SOC_LOW:
        wanted = {ALERT_SOC_LOW, ALERT_SOC_LOW_PROTECT}
    else:
        wanted = {alert_filter}
    return [alert for alert in alerts if alert.type in wanted]


def merged_alerts(fleet):
    """All sites' alerts merged newest first (timestamp, then id for same-tick alerts)."""
    alerts = [alert for site_id in fleet.site_ids for alert in fleet.sites[site_id].alerts]
    return sorted(alerts, key=lambda alert: (alert.timestamp, alert.id), reverse=True)


def severity_counts(alerts):
    counts = {SEVERITY_CRITICAL: 0, SEVERITY_WARNING: 0, SEVERITY_INFO: 0}
    for alert in alerts:
        counts[alert.severity] += 1
    return counts


def alert_center_view(fleet, alert_filter=ALERT_FILTER_ALL, show_all_sites=False):
    """
    Alerts listed by the alert center and its severity badges.

    Badges count every alert in scope (active site or all sites) before the
    type filter is applied.
    """
    scoped = merged_alerts(fleet) if show_all_sites else list(fleet.active_site_state.alerts)
    return {
        "alerts": filter_alerts(scoped, alert_filter),
        "severity_counts": severity_counts(scoped),
        "show_all_sites": bool(show_all_sites),
    }


def alert_detail_lines(alert):
    """Readings captured with a threshold alert, as (label, text) pairs. Empty for switch alerts."""
    details = alert.details
    if details is None:
        return []
    return [
        ("SOC", f"{details.soc:.1f}%"),
        ("Solar", f"{details.solar_output:.1f} kW"),
        ("Total", f"{details.total_load:.1f} kW"),
        ("Green", f"{details.green_load:.1f} kW"),
    ]


def advisory_messages(site, limit=ADVISORY_LIMIT):
    """Rule-based operating suggestions for one site, most urgent first."""
    soc = float(site.battery_level)
    solar = float(site.solar_output)
    counts = source_counts(site)
    battery_machines = counts[SOURCE_BATTERY]
    grid_machines = counts[SOURCE_GRID]
    load = total_load(site)
    messages = []

    if soc < 10:
        messages.append(
            f"Battery very low ({soc:.0f}%). Move all machines to grid to avoid a production stop."
        )
        messages.append(f"Switch back to green supply once solar output recovers (now {solar:.0f} kW).")
    elif soc < 30:
        messages.append(
            f"Battery low ({soc:.0f}%). Move {(battery_machines + 1) // 2} machine(s) off green supply."
        )
        if solar > 80:
            messages.append(f"Solar output is strong ({solar:.0f} kW). SOC should recover shortly.")
    elif soc > 70 and solar > 85:
        messages.append(f"Battery healthy ({soc:.0f}%) and solar strong ({solar:.0f} kW).")
        if grid_machines > 0:
            messages.append(f"{grid_machines} grid-fed machine(s) can move to green supply.")
    else:
        messages.append(
            f"{battery_machines} machine(s) on green supply and {grid_machines} on grid. Load split is reasonable."
        )
        messages.append("Keep SOC above 20% to maintain a stable supply.")

    if load > HIGH_TOTAL_LOAD_KW:
        messages.append(f"Total load is high ({load:.1f} kW). Avoid starting more machines at once.")

    return messages[: int(limit)]


def alerts_frame(alerts, tz=None):
    """Tabulate alerts (newest first, as given) for display or CSV export."""
    rows = []
    for alert in alerts:
        details = alert.details
        rows.append(
            {
                "id": alert.id,
                "timestamp": serialize_iso_with_tz(alert.timestamp, tz),
                "site_id": alert.site_id,
                "type": alert.type,
                "severity": alert.severity,
                "message": alert.message,
                "soc": details.soc if details else None,
                "solar_output": details.solar_output if details else None,
                "total_load": details.total_load if details else None,
                "green_load": details.green_load if details else None,
            }
        )
    return pd.DataFrame(rows, columns=ALERT_COLUMNS)


def soc_history_frame(fleet):
    """SOC samples per site, oldest first, indexed by sample position."""
    data = {site_id: pd.Series(list(fleet.sites[site_id].soc_history), dtype=float) for site_id in fleet.site_ids}
    return pd.DataFrame(data)
