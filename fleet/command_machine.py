"""Fleet-wide source switch command: idle -> sending -> processing -> success|idle -> idle.

The command is stored with its acceptance timestamp. `advance_fleet_command`
derives the stage the command should be in at `now`, so a poller can call it
at any rate and a late call still replays every missed stage in order.
"""

import logging
from dataclasses import replace

from fleet.alerts import fleet_switch_alert, prepend_alerts
from fleet.models import (
    COMMAND_IDLE,
    COMMAND_PROCESSING,
    COMMAND_SENDING,
    COMMAND_SUCCESS,
    SOURCE_BATTERY,
    FleetCommand,
)
from runtime.defaults import engine_setting

OUTCOME_COMMITTED = "committed"
OUTCOME_ABORTED = "aborted"


def command_timing(config):
    """Return (processing_after_s, commit_after_s, reset_after_s) offsets from acceptance."""
    return (
        float(engine_setting(config, "COMMAND_PROCESSING_AFTER_S")),
        float(engine_setting(config, "COMMAND_COMMIT_AFTER_S")),
        float(engine_setting(config, "COMMAND_RESET_AFTER_S")),
    )


def accept_fleet_switch(fleet, source, *, now, command_id):
    """
    Accept a switch-all request against the active site.

    Returns (fleet, accepted). Requests made while a command is in flight are
    ignored and leave `fleet` untouched.
    """
    if fleet.command_status != COMMAND_IDLE or fleet.active_command is not None:
        logging.info(
            "FleetCommand: switch to %s ignored (status=%s).",
            source,
            fleet.command_status,
        )
        return fleet, False

    command = FleetCommand(
        id=command_id,
        requested_source=source,
        target_site=fleet.active_site,
        accepted_at=now,
    )
    logging.info(
        "FleetCommand: %s accepted (switch site %s to %s).",
        command.id,
        command.target_site,
        command.requested_source,
    )
    return replace(fleet, command_status=COMMAND_SENDING, active_command=command), True


def _decide(fleet, command, *, now, config, id_fn):
    """Commit or abort `command`, reading the target site as it is at `now`."""
    site = fleet.sites[command.target_site]
    critical_soc = float(engine_setting(config, "CRITICAL_SOC_PCT"))

    if command.requested_source == SOURCE_BATTERY and site.battery_level <= critical_soc:
        logging.warning(
            "FleetCommand: %s aborted. Site %s SOC %.1f%% is at or below %.1f%%.",
            command.id,
            command.target_site,
            site.battery_level,
            critical_soc,
        )
        return replace(fleet, command_status=COMMAND_IDLE, active_command=None), OUTCOME_ABORTED

    machines = tuple(replace(m, source=command.requested_source) for m in site.machines)
    alert = fleet_switch_alert(command.target_site, command.requested_source, now=now, id_fn=id_fn)
    site = prepend_alerts(
        replace(site, machines=machines),
        [alert],
        engine_setting(config, "ALERT_LOG_LIMIT"),
    )
    logging.info(
        "FleetCommand: %s committed. Site %s machines now on %s.",
        command.id,
        command.target_site,
        command.requested_source,
    )
    fleet = fleet.with_site(command.target_site, site)
    command = replace(command, decided=True, outcome=OUTCOME_COMMITTED)
    return replace(fleet, command_status=COMMAND_SUCCESS, active_command=command), OUTCOME_COMMITTED


def advance_fleet_command(fleet, *, now, config, id_fn):
    """
    Move the in-flight command to the stage due at `now`.

    Returns (fleet, transitions) where `transitions` lists the stages entered
    during this call, in order (for example ["processing", "committed", "idle"]).
    """
    command = fleet.active_command
    if command is None:
        return fleet, []

    processing_after_s, commit_after_s, reset_after_s = command_timing(config)
    elapsed_s = (now - command.accepted_at).total_seconds()
    transitions = []

    if not command.decided:
        if elapsed_s >= processing_after_s and fleet.command_status == COMMAND_SENDING:
            fleet = replace(fleet, command_status=COMMAND_PROCESSING)
            transitions.append(COMMAND_PROCESSING)
        if elapsed_s >= commit_after_s:
            fleet, outcome = _decide(fleet, command, now=now, config=config, id_fn=id_fn)
            transitions.append(outcome)

    if fleet.active_command is not None and elapsed_s >= reset_after_s:
        fleet = replace(fleet, command_status=COMMAND_IDLE, active_command=None)
        transitions.append(COMMAND_IDLE)
        logging.info("FleetCommand: %s finished. Status back to idle.", command.id)

    return fleet, transitions
