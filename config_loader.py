"""Configuration loader for the fleet energy monitor."""

import logging
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from runtime.defaults import (
    DEFAULT_ALERT_COOLDOWN_S,
    DEFAULT_ALERT_LOG_LIMIT,
    DEFAULT_COMMAND_COMMIT_AFTER_S,
    DEFAULT_COMMAND_POLL_PERIOD_S,
    DEFAULT_COMMAND_PROCESSING_AFTER_S,
    DEFAULT_COMMAND_RESET_AFTER_S,
    DEFAULT_CRITICAL_SOC_PCT,
    DEFAULT_DASHBOARD_HOST,
    DEFAULT_DASHBOARD_PORT,
    DEFAULT_DASHBOARD_REFRESH_MS,
    DEFAULT_GREEN_SHORTAGE,
    DEFAULT_LOW_SOC_PCT,
    DEFAULT_MACHINES_PER_SITE,
    DEFAULT_SITE_IDS,
    DEFAULT_SOC_HISTORY_LEN,
    DEFAULT_TICK_PERIOD_S,
    DEFAULT_TIMEZONE_NAME,
)

LOG_LEVEL_NAMES = {"debug", "info", "warning", "error", "critical"}


def _parse_float(value, default, key_name, min_value=None, max_value=None):
    try:
        result = float(value)
        if min_value is not None and result < min_value:
            raise ValueError("below minimum")
        if max_value is not None and result > max_value:
            raise ValueError("above maximum")
        return result
    except (TypeError, ValueError):
        logging.warning("Invalid %s='%s'. Using default %s.", key_name, value, default)
        return default


def _parse_int(value, default, key_name, min_value=None):
    try:
        if isinstance(value, bool):
            raise TypeError("bool is not an int setting")
        result = int(value)
        if min_value is not None and result < min_value:
            raise ValueError("below minimum")
        return result
    except (TypeError, ValueError):
        logging.warning("Invalid %s='%s'. Using default %s.", key_name, value, default)
        return default


def _parse_optional_int(value, key_name):
    if value is None:
        return None
    return _parse_int(value, None, key_name)


def _parse_choice(value, allowed_values, default, key_name):
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if normalized not in allowed_values:
        allowed_text = ", ".join(sorted(allowed_values))
        logging.warning(
            "Invalid %s='%s'. Using default '%s'. Allowed values: %s.",
            key_name,
            value,
            default,
            allowed_text,
        )
        return default
    return normalized


def _parse_host(value, default, key_name):
    if value is None:
        return default
    host = str(value).strip()
    if not host:
        logging.warning("Invalid %s='%s'. Using default '%s'.", key_name, value, default)
        return default
    return host


def _parse_timezone(timezone_name):
    try:
        ZoneInfo(timezone_name)
        return timezone_name
    except (ZoneInfoNotFoundError, TypeError, ValueError):
        logging.warning(
            "Invalid time.timezone='%s'. Using default '%s'.",
            timezone_name,
            DEFAULT_TIMEZONE_NAME,
        )
        return DEFAULT_TIMEZONE_NAME


def _parse_site_ids(value):
    if value is None:
        return tuple(DEFAULT_SITE_IDS)
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"Invalid fleet.site_ids='{value}': expected a list of site ids.")

    site_ids = tuple(str(item).strip().upper() for item in value)
    if not site_ids:
        raise ValueError("Invalid fleet.site_ids: at least one site is required.")
    if any(not site_id for site_id in site_ids):
        raise ValueError("Invalid fleet.site_ids: site ids must be non-empty.")
    if len(set(site_ids)) != len(site_ids):
        raise ValueError(f"Invalid fleet.site_ids={list(site_ids)}: duplicate site ids.")
    return site_ids


def _parse_initial_active_site(value, site_ids):
    if value is None:
        return site_ids[0]
    site_id = str(value).strip().upper()
    if site_id not in site_ids:
        raise ValueError(f"Invalid fleet.initial_active_site='{value}'. Known sites: {', '.join(site_ids)}.")
    return site_id


def load_config(config_path="config.yaml"):
    """Load configuration from YAML and return validated runtime dict."""
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, "r", encoding="utf-8") as handle:
        yaml_config = yaml.safe_load(handle) or {}

    config = {}

    general = yaml_config.get("general", {}) or {}
    log_level_name = _parse_choice(general.get("log_level", "info"), LOG_LEVEL_NAMES, "info", "general.log_level")
    config["LOG_LEVEL"] = getattr(logging, log_level_name.upper(), logging.INFO)
    logs_dir = general.get("logs_dir")
    config["LOGS_DIR"] = str(logs_dir).strip() if logs_dir not in (None, "") else None

    time_cfg = yaml_config.get("time", {}) or {}
    config["TIMEZONE_NAME"] = _parse_timezone(time_cfg.get("timezone", DEFAULT_TIMEZONE_NAME))

    fleet_cfg = yaml_config.get("fleet", {}) or {}
    config["SITE_IDS"] = _parse_site_ids(fleet_cfg.get("site_ids"))
    config["INITIAL_ACTIVE_SITE"] = _parse_initial_active_site(fleet_cfg.get("initial_active_site"), config["SITE_IDS"])
    config["MACHINES_PER_SITE"] = _parse_int(
        fleet_cfg.get("machines_per_site", DEFAULT_MACHINES_PER_SITE),
        DEFAULT_MACHINES_PER_SITE,
        "fleet.machines_per_site",
        min_value=1,
    )
    config["RANDOM_SEED"] = _parse_optional_int(fleet_cfg.get("random_seed"), "fleet.random_seed")

    timing_cfg = yaml_config.get("timing", {}) or {}
    config["TICK_PERIOD_S"] = _parse_float(
        timing_cfg.get("tick_period_s", DEFAULT_TICK_PERIOD_S),
        DEFAULT_TICK_PERIOD_S,
        "timing.tick_period_s",
        min_value=0.1,
    )
    config["COMMAND_POLL_PERIOD_S"] = _parse_float(
        timing_cfg.get("command_poll_period_s", DEFAULT_COMMAND_POLL_PERIOD_S),
        DEFAULT_COMMAND_POLL_PERIOD_S,
        "timing.command_poll_period_s",
        min_value=0.01,
    )

    thresholds_cfg = yaml_config.get("thresholds", {}) or {}
    config["CRITICAL_SOC_PCT"] = _parse_float(
        thresholds_cfg.get("critical_soc_pct", DEFAULT_CRITICAL_SOC_PCT),
        DEFAULT_CRITICAL_SOC_PCT,
        "thresholds.critical_soc_pct",
        min_value=0.0,
        max_value=100.0,
    )
    config["LOW_SOC_PCT"] = _parse_float(
        thresholds_cfg.get("low_soc_pct", DEFAULT_LOW_SOC_PCT),
        DEFAULT_LOW_SOC_PCT,
        "thresholds.low_soc_pct",
        min_value=0.0,
        max_value=100.0,
    )
    if config["LOW_SOC_PCT"] <= config["CRITICAL_SOC_PCT"]:
        raise ValueError(
            f"Invalid thresholds: low_soc_pct={config['LOW_SOC_PCT']} must be above "
            f"critical_soc_pct={config['CRITICAL_SOC_PCT']}."
        )

    alerts_cfg = yaml_config.get("alerts", {}) or {}
    config["ALERT_COOLDOWN_S"] = _parse_float(
        alerts_cfg.get("cooldown_s", DEFAULT_ALERT_COOLDOWN_S),
        DEFAULT_ALERT_COOLDOWN_S,
        "alerts.cooldown_s",
        min_value=0.0,
    )
    config["ALERT_LOG_LIMIT"] = _parse_int(
        alerts_cfg.get("log_limit", DEFAULT_ALERT_LOG_LIMIT),
        DEFAULT_ALERT_LOG_LIMIT,
        "alerts.log_limit",
        min_value=1,
    )
    config["SOC_HISTORY_LEN"] = _parse_int(
        alerts_cfg.get("soc_history_len", DEFAULT_SOC_HISTORY_LEN),
        DEFAULT_SOC_HISTORY_LEN,
        "alerts.soc_history_len",
        min_value=2,
    )

    shortage_cfg = alerts_cfg.get("green_shortage", {}) or {}
    config["GREEN_SHORTAGE_SOLAR_BELOW_KW"] = _parse_float(
        shortage_cfg.get("solar_below_kw", DEFAULT_GREEN_SHORTAGE["solar_below_kw"]),
        DEFAULT_GREEN_SHORTAGE["solar_below_kw"],
        "alerts.green_shortage.solar_below_kw",
        min_value=0.0,
    )
    config["GREEN_SHORTAGE_LOAD_ABOVE_KW"] = _parse_float(
        shortage_cfg.get("load_above_kw", DEFAULT_GREEN_SHORTAGE["load_above_kw"]),
        DEFAULT_GREEN_SHORTAGE["load_above_kw"],
        "alerts.green_shortage.load_above_kw",
        min_value=0.0,
    )
    config["GREEN_SHORTAGE_TREND_BELOW_PCT"] = _parse_float(
        shortage_cfg.get("trend_below_pct", DEFAULT_GREEN_SHORTAGE["trend_below_pct"]),
        DEFAULT_GREEN_SHORTAGE["trend_below_pct"],
        "alerts.green_shortage.trend_below_pct",
    )
    config["GREEN_SHORTAGE_MIN_SAMPLES"] = _parse_int(
        shortage_cfg.get("min_samples", DEFAULT_GREEN_SHORTAGE["min_samples"]),
        DEFAULT_GREEN_SHORTAGE["min_samples"],
        "alerts.green_shortage.min_samples",
        min_value=2,
    )
    if config["GREEN_SHORTAGE_MIN_SAMPLES"] > config["SOC_HISTORY_LEN"]:
        raise ValueError(
            f"Invalid alerts.green_shortage.min_samples={config['GREEN_SHORTAGE_MIN_SAMPLES']}: "
            f"exceeds alerts.soc_history_len={config['SOC_HISTORY_LEN']}."
        )

    command_cfg = yaml_config.get("command", {}) or {}
    config["COMMAND_PROCESSING_AFTER_S"] = _parse_float(
        command_cfg.get("processing_after_s", DEFAULT_COMMAND_PROCESSING_AFTER_S),
        DEFAULT_COMMAND_PROCESSING_AFTER_S,
        "command.processing_after_s",
        min_value=0.0,
    )
    config["COMMAND_COMMIT_AFTER_S"] = _parse_float(
        command_cfg.get("commit_after_s", DEFAULT_COMMAND_COMMIT_AFTER_S),
        DEFAULT_COMMAND_COMMIT_AFTER_S,
        "command.commit_after_s",
        min_value=0.0,
    )
    config["COMMAND_RESET_AFTER_S"] = _parse_float(
        command_cfg.get("reset_after_s", DEFAULT_COMMAND_RESET_AFTER_S),
        DEFAULT_COMMAND_RESET_AFTER_S,
        "command.reset_after_s",
        min_value=0.0,
    )
    if not (
        config["COMMAND_PROCESSING_AFTER_S"] < config["COMMAND_COMMIT_AFTER_S"] < config["COMMAND_RESET_AFTER_S"]
    ):
        raise ValueError(
            "Invalid command delays: processing_after_s < commit_after_s < reset_after_s is required "
            f"(got {config['COMMAND_PROCESSING_AFTER_S']}, {config['COMMAND_COMMIT_AFTER_S']}, "
            f"{config['COMMAND_RESET_AFTER_S']})."
        )

    dashboard_cfg = yaml_config.get("dashboard", {}) or {}
    config["DASHBOARD_HOST"] = _parse_host(dashboard_cfg.get("host"), DEFAULT_DASHBOARD_HOST, "dashboard.host")
    config["DASHBOARD_PORT"] = _parse_int(
        dashboard_cfg.get("port", DEFAULT_DASHBOARD_PORT),
        DEFAULT_DASHBOARD_PORT,
        "dashboard.port",
        min_value=1,
    )
    config["DASHBOARD_REFRESH_MS"] = _parse_int(
        dashboard_cfg.get("refresh_ms", DEFAULT_DASHBOARD_REFRESH_MS),
        DEFAULT_DASHBOARD_REFRESH_MS,
        "dashboard.refresh_ms",
        min_value=100,
    )

    return config
