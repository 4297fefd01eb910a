"""Low-battery protection: move battery-fed machines to the grid on a falling-edge SOC crossing."""

import logging
from dataclasses import replace

from fleet.models import SOURCE_BATTERY, SOURCE_GRID


def protection_triggered(previous_level, new_level, critical_soc_pct):
    """True only on the tick where the level crosses from above the floor to at/below it."""
    return new_level <= critical_soc_pct and previous_level > critical_soc_pct


def force_machines_to_grid(site):
    """Return (site, moved_ids) with every battery-fed machine switched to the grid."""
    moved_ids = tuple(m.id for m in site.machines if m.source == SOURCE_BATTERY)
    if not moved_ids:
        return site, moved_ids
    machines = tuple(replace(m, source=SOURCE_GRID) if m.source == SOURCE_BATTERY else m for m in site.machines)
    return replace(site, machines=machines), moved_ids


def apply_protection(site_id, site, previous_level, *, critical_soc_pct):
    """
    Enforce the critical-floor policy for one site after the energy step.

    Returns (site, fired). When `fired` is True the caller must emit the
    protection alert for this tick.
    """
    if not protection_triggered(previous_level, site.battery_level, critical_soc_pct):
        return site, False

    protected, moved_ids = force_machines_to_grid(site)
    logging.warning(
        "Protection: site %s SOC fell to %.1f%% (from %.1f%%). Moved machines %s to grid.",
        site_id,
        site.battery_level,
        previous_level,
        list(moved_ids),
    )
    return protected, True
