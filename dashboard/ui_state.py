"""Pure UI state helpers for dashboard controls."""

from fleet.models import (
    COMMAND_IDLE,
    COMMAND_PROCESSING,
    COMMAND_SENDING,
    COMMAND_SUCCESS,
    SOURCE_BATTERY,
    SOURCE_GRID,
)
from runtime.defaults import engine_setting

SWITCH_ALL_IDLE_LABELS = {
    SOURCE_BATTERY: "All to green",
    SOURCE_GRID: "All to grid",
}
COMMAND_STATUS_LABELS = {
    COMMAND_SENDING: "Sending...",
    COMMAND_PROCESSING: "Processing...",
    COMMAND_SUCCESS: "Done",
}


def get_switch_all_buttons_state(command_status, requested_source=None):
    """
    Return labels and disabled flags for the two switch-all buttons.

    Both buttons are disabled while a command is in flight; the button that
    started it shows the command progress.
    """
    status = str(command_status or COMMAND_IDLE)
    if status == COMMAND_IDLE:
        return {
            "battery_label": SWITCH_ALL_IDLE_LABELS[SOURCE_BATTERY],
            "battery_disabled": False,
            "grid_label": SWITCH_ALL_IDLE_LABELS[SOURCE_GRID],
            "grid_disabled": False,
            "active_side": None,
        }

    progress_label = COMMAND_STATUS_LABELS.get(status, status)
    return {
        "battery_label": progress_label if requested_source == SOURCE_BATTERY else SWITCH_ALL_IDLE_LABELS[SOURCE_BATTERY],
        "battery_disabled": True,
        "grid_label": progress_label if requested_source == SOURCE_GRID else SWITCH_ALL_IDLE_LABELS[SOURCE_GRID],
        "grid_disabled": True,
        "active_side": requested_source if requested_source in (SOURCE_BATTERY, SOURCE_GRID) else None,
    }


def get_machine_toggle_state(machine, battery_level, config=None):
    """Toggle label for one machine. Moving onto a critical battery is disabled."""
    if machine.source == SOURCE_BATTERY:
        return {"label": "Green", "disabled": False, "class_name": "machine-toggle machine-toggle--green"}

    battery_blocked = float(battery_level) <= float(engine_setting(config, "CRITICAL_SOC_PCT"))
    return {
        "label": "Grid",
        "disabled": battery_blocked,
        "class_name": "machine-toggle machine-toggle--grid" + (" machine-toggle--blocked" if battery_blocked else ""),
    }


def battery_band_class(band):
    return {
        "critical": "kpi-value kpi-value--critical",
        "low": "kpi-value kpi-value--low",
    }.get(band, "kpi-value")
