"""Pure helpers that map dashboard triggers to fleet command intents."""

from fleet.models import SOURCE_BATTERY, SOURCE_GRID

MACHINE_TOGGLE_TRIGGER_TYPE = "machine-toggle"


def command_intent_from_trigger(trigger_id):
    """Return normalized command intent dict for a button trigger, or None."""
    if isinstance(trigger_id, dict):
        if trigger_id.get("type") != MACHINE_TOGGLE_TRIGGER_TYPE:
            return None
        try:
            machine_id = int(trigger_id.get("index"))
        except (TypeError, ValueError):
            return None
        return {"kind": "machine.toggle", "payload": {"machine_id": machine_id}}

    action_map = {
        "switch-all-battery-btn": ("fleet.switch_all", {"source": SOURCE_BATTERY}),
        "switch-all-grid-btn": ("fleet.switch_all", {"source": SOURCE_GRID}),
        "clear-alerts-btn": ("alerts.clear", {}),
    }
    mapped = action_map.get(trigger_id)
    if not mapped:
        return None
    kind, payload = mapped
    return {"kind": kind, "payload": dict(payload)}


def site_select_intent(selected_site, current_site):
    """Intent for a site-tab change, or None when the tab already shows the active site."""
    if not selected_site or selected_site == current_site:
        return None
    return {"kind": "site.select", "payload": {"site_id": str(selected_site)}}
