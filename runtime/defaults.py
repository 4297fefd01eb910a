"""Shared runtime defaults used across modules.

Keep this module lightweight (no pandas/heavy imports) so low-level modules can
import shared constants without creating avoidable import dependencies.
"""

DEFAULT_TIMEZONE_NAME = "Europe/Madrid"

DEFAULT_SITE_IDS = ("A", "B", "C")
DEFAULT_MACHINES_PER_SITE = 7
DEFAULT_TICK_PERIOD_S = 1.0

DEFAULT_CRITICAL_SOC_PCT = 5.0
DEFAULT_LOW_SOC_PCT = 20.0
DEFAULT_ALERT_COOLDOWN_S = 30.0
DEFAULT_ALERT_LOG_LIMIT = 50
DEFAULT_SOC_HISTORY_LEN = 6

DEFAULT_GREEN_SHORTAGE = {
    "solar_below_kw": 75.0,
    "load_above_kw": 25.0,
    "trend_below_pct": -2.0,
    "min_samples": 3,
}

# Offsets from command acceptance.
DEFAULT_COMMAND_PROCESSING_AFTER_S = 0.5
DEFAULT_COMMAND_COMMIT_AFTER_S = 1.5
DEFAULT_COMMAND_RESET_AFTER_S = 3.0
DEFAULT_COMMAND_POLL_PERIOD_S = 0.05

DEFAULT_DASHBOARD_HOST = "127.0.0.1"
DEFAULT_DASHBOARD_PORT = 8050
DEFAULT_DASHBOARD_REFRESH_MS = 1000

SESSION_LOG_LIMIT = 1000


def default_engine_config():
    """Return the engine keys of the runtime config with their default values."""
    return {
        "SITE_IDS": DEFAULT_SITE_IDS,
        "MACHINES_PER_SITE": DEFAULT_MACHINES_PER_SITE,
        "CRITICAL_SOC_PCT": DEFAULT_CRITICAL_SOC_PCT,
        "LOW_SOC_PCT": DEFAULT_LOW_SOC_PCT,
        "ALERT_COOLDOWN_S": DEFAULT_ALERT_COOLDOWN_S,
        "ALERT_LOG_LIMIT": DEFAULT_ALERT_LOG_LIMIT,
        "SOC_HISTORY_LEN": DEFAULT_SOC_HISTORY_LEN,
        "GREEN_SHORTAGE_SOLAR_BELOW_KW": DEFAULT_GREEN_SHORTAGE["solar_below_kw"],
        "GREEN_SHORTAGE_LOAD_ABOVE_KW": DEFAULT_GREEN_SHORTAGE["load_above_kw"],
        "GREEN_SHORTAGE_TREND_BELOW_PCT": DEFAULT_GREEN_SHORTAGE["trend_below_pct"],
        "GREEN_SHORTAGE_MIN_SAMPLES": DEFAULT_GREEN_SHORTAGE["min_samples"],
        "COMMAND_PROCESSING_AFTER_S": DEFAULT_COMMAND_PROCESSING_AFTER_S,
        "COMMAND_COMMIT_AFTER_S": DEFAULT_COMMAND_COMMIT_AFTER_S,
        "COMMAND_RESET_AFTER_S": DEFAULT_COMMAND_RESET_AFTER_S,
    }


def engine_setting(config, key):
    """Read an engine key from `config`, falling back to its default."""
    config = config or {}
    if key in config:
        return config[key]
    return default_engine_config()[key]
