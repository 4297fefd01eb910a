"""Per-tick solar, battery and machine-load model for one site.

Every random draw goes through the `rng` argument, which follows the
`numpy.random.Generator` interface (`uniform`, `random`, `integers`). Pass a
seeded generator to get reproducible trajectories.
"""

from dataclasses import dataclass, replace

import numpy as np

from fleet.models import (
    MACHINE_IDLE,
    MACHINE_RUNNING,
    SOURCE_BATTERY,
    SOURCE_GRID,
    Machine,
    SiteState,
)

SOLAR_MIN_KW = 50.0
SOLAR_MAX_KW = 100.0
SOLAR_STEP_KW = 2.5

BATTERY_TEMP_MIN_C = 28.0
BATTERY_TEMP_MAX_C = 40.0
BATTERY_TEMP_STEP_C = 0.25

BATTERY_LEVEL_MIN_PCT = 0.0
BATTERY_LEVEL_MAX_PCT = 100.0

RUNNING_LOAD_BAND_KW = (5.0, 8.0)
IDLE_LOAD_BAND_KW = (0.5, 1.0)
STATUS_FLIP_PROBABILITY = 0.02

# Percent of SOC gained per kW of solar output, and lost per kW of battery-fed load, each tick.
CHARGE_PCT_PER_SOLAR_KW = 0.05
DISCHARGE_PCT_PER_LOAD_KW = 0.1

INITIAL_SOLAR_BAND_KW = (70.0, 95.0)
INITIAL_BATTERY_LEVEL_BAND_PCT = (40.0, 80.0)
INITIAL_BATTERY_TEMP_BAND_C = (30.0, 36.0)
INITIAL_RUNNING_PROBABILITY = 0.7
INITIAL_BATTERY_SOURCE_PROBABILITY = 0.6


@dataclass(frozen=True)
class EnergyStep:
    """Result of advancing one site by one tick, before protection and alerts."""

    site: SiteState
    previous_level: float
    total_load: float
    green_load: float


def clamp(value, low, high):
    return max(low, min(high, value))


def default_rng(seed=None):
    return np.random.default_rng(seed)


def draw_load(rng, status):
    low, high = RUNNING_LOAD_BAND_KW if status == MACHINE_RUNNING else IDLE_LOAD_BAND_KW
    return float(rng.uniform(low, high))


def site_loads(machines):
    """Return (total_load, green_load) in kW for a machine sequence."""
    total_load = sum(m.load for m in machines)
    green_load = sum(m.load for m in machines if m.source == SOURCE_BATTERY)
    return float(total_load), float(green_load)


def generate_machines(rng, count):
    machines = []
    for machine_id in range(1, int(count) + 1):
        status = MACHINE_RUNNING if rng.random() < INITIAL_RUNNING_PROBABILITY else MACHINE_IDLE
        load = draw_load(rng, status)
        source = SOURCE_BATTERY if rng.random() < INITIAL_BATTERY_SOURCE_PROBABILITY else SOURCE_GRID
        machines.append(Machine(id=machine_id, status=status, load=load, source=source))
    return tuple(machines)


def initial_site_state(rng, *, machines_per_site, critical_soc_pct, battery_level=None):
    """Create a randomized starting state for one site.

    A starting level at or below the critical floor puts every machine on the
    grid, so the protection invariant holds before the first tick.
    """
    if battery_level is None:
        battery_level = float(rng.uniform(*INITIAL_BATTERY_LEVEL_BAND_PCT))
    battery_level = clamp(float(battery_level), BATTERY_LEVEL_MIN_PCT, BATTERY_LEVEL_MAX_PCT)
    solar_output = float(rng.uniform(*INITIAL_SOLAR_BAND_KW))
    battery_temp = float(rng.uniform(*INITIAL_BATTERY_TEMP_BAND_C))
    machines = generate_machines(rng, machines_per_site)
    if battery_level <= critical_soc_pct:
        machines = tuple(replace(m, source=SOURCE_GRID) for m in machines)
    return SiteState(
        solar_output=solar_output,
        battery_level=battery_level,
        battery_temp=battery_temp,
        machines=machines,
    )


def redraw_machines(machines, rng):
    """Redraw every load from its status band, then maybe flip one machine's status."""
    machines = [replace(m, load=draw_load(rng, m.status)) for m in machines]
    if machines and rng.random() < STATUS_FLIP_PROBABILITY:
        idx = int(rng.integers(0, len(machines)))
        flipped = machines[idx]
        new_status = MACHINE_IDLE if flipped.status == MACHINE_RUNNING else MACHINE_RUNNING
        machines[idx] = replace(flipped, status=new_status, load=draw_load(rng, new_status))
    return tuple(machines)


def battery_level_after(battery_level, solar_output, green_load):
    charge = solar_output * CHARGE_PCT_PER_SOLAR_KW
    discharge = green_load * DISCHARGE_PCT_PER_LOAD_KW
    return clamp(battery_level + charge - discharge, BATTERY_LEVEL_MIN_PCT, BATTERY_LEVEL_MAX_PCT)


def advance_site_energy(site, rng):
    """Advance solar output, temperature, loads and SOC of `site` by one tick."""
    solar_output = clamp(
        site.solar_output + float(rng.uniform(-SOLAR_STEP_KW, SOLAR_STEP_KW)),
        SOLAR_MIN_KW,
        SOLAR_MAX_KW,
    )
    battery_temp = clamp(
        site.battery_temp + float(rng.uniform(-BATTERY_TEMP_STEP_C, BATTERY_TEMP_STEP_C)),
        BATTERY_TEMP_MIN_C,
        BATTERY_TEMP_MAX_C,
    )
    machines = redraw_machines(site.machines, rng)
    total_load, green_load = site_loads(machines)
    battery_level = battery_level_after(site.battery_level, solar_output, green_load)

    return EnergyStep(
        site=replace(
            site,
            solar_output=solar_output,
            battery_temp=battery_temp,
            machines=machines,
            battery_level=battery_level,
        ),
        previous_level=site.battery_level,
        total_load=total_load,
        green_load=green_load,
    )
