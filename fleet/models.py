"""Immutable entity records for sites, machines, alerts and the fleet."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Mapping, Optional, Tuple

MACHINE_RUNNING = "running"
MACHINE_IDLE = "idle"
MACHINE_STATUSES = (MACHINE_RUNNING, MACHINE_IDLE)

SOURCE_BATTERY = "battery"
SOURCE_GRID = "grid"
POWER_SOURCES = (SOURCE_BATTERY, SOURCE_GRID)

ALERT_SOC_LOW = "SOC_LOW"
ALERT_SOC_LOW_PROTECT = "SOC_LOW_PROTECT"
ALERT_GREEN_SHORTAGE = "GREEN_SHORTAGE"
ALERT_SOURCE_SWITCH = "SOURCE_SWITCH"
ALERT_FLEET_SWITCH = "FLEET_SWITCH"
ALERT_TYPES = (
    ALERT_SOC_LOW,
    ALERT_SOC_LOW_PROTECT,
    ALERT_GREEN_SHORTAGE,
    ALERT_SOURCE_SWITCH,
    ALERT_FLEET_SWITCH,
)
# Alert types produced by threshold evaluation carry a details snapshot;
# switch events never do.
THRESHOLD_ALERT_TYPES = frozenset({ALERT_SOC_LOW, ALERT_SOC_LOW_PROTECT, ALERT_GREEN_SHORTAGE})

SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_CRITICAL = "critical"
SEVERITIES = (SEVERITY_INFO, SEVERITY_WARNING, SEVERITY_CRITICAL)

COMMAND_IDLE = "idle"
COMMAND_SENDING = "sending"
COMMAND_PROCESSING = "processing"
COMMAND_SUCCESS = "success"
COMMAND_STATUSES = (COMMAND_IDLE, COMMAND_SENDING, COMMAND_PROCESSING, COMMAND_SUCCESS)


def opposite_source(source):
    return SOURCE_GRID if source == SOURCE_BATTERY else SOURCE_BATTERY


@dataclass(frozen=True)
class Machine:
    id: int
    status: str
    load: float
    source: str


@dataclass(frozen=True)
class AlertDetails:
    """Site readings captured when a threshold alert was evaluated."""

    soc: float
    solar_output: float
    total_load: float
    green_load: float


@dataclass(frozen=True)
class Alert:
    id: str
    timestamp: datetime
    site_id: str
    type: str
    message: str
    severity: str
    details: Optional[AlertDetails] = None

    def __post_init__(self):
        if self.type not in ALERT_TYPES:
            raise ValueError(f"Unknown alert type '{self.type}'.")
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown alert severity '{self.severity}'.")
        if self.type in THRESHOLD_ALERT_TYPES and self.details is None:
            raise ValueError(f"Alert type '{self.type}' requires details.")
        if self.type not in THRESHOLD_ALERT_TYPES and self.details is not None:
            raise ValueError(f"Alert type '{self.type}' does not carry details.")


@dataclass(frozen=True)
class SiteState:
    solar_output: float
    battery_level: float
    battery_temp: float
    machines: Tuple[Machine, ...]
    alerts: Tuple[Alert, ...] = ()
    last_soc_warning_time: Optional[datetime] = None
    last_green_shortage_time: Optional[datetime] = None
    soc_history: Tuple[float, ...] = ()

    def machine(self, machine_id):
        """Return the machine with `machine_id`; unknown ids are a caller error."""
        for machine in self.machines:
            if machine.id == machine_id:
                return machine
        raise ValueError(f"Unknown machine id '{machine_id}'.")

    def with_machine(self, machine_id, **changes):
        self.machine(machine_id)
        machines = tuple(replace(m, **changes) if m.id == machine_id else m for m in self.machines)
        return replace(self, machines=machines)


@dataclass(frozen=True)
class FleetCommand:
    """A fleet-wide source switch accepted at `accepted_at` for `target_site`."""

    id: str
    requested_source: str
    target_site: str
    accepted_at: datetime
    decided: bool = False
    outcome: Optional[str] = None


@dataclass(frozen=True)
class FleetState:
    sites: Mapping[str, SiteState]
    active_site: str
    command_status: str = COMMAND_IDLE
    active_command: Optional[FleetCommand] = None

    @property
    def site_ids(self):
        return tuple(self.sites.keys())

    @property
    def active_site_state(self):
        return self.sites[self.active_site]

    def with_site(self, site_id, site_state):
        sites = dict(self.sites)
        sites[site_id] = site_state
        return replace(self, sites=sites)
