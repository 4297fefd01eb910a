"""Project directories used by the dashboard and the file logger."""

import os

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ASSETS_DIRNAME = "assets"
DEFAULT_LOGS_DIRNAME = "logs"


def get_project_root():
    """Directory holding `fleet_monitor.py`, `config.yaml` and `assets/`."""
    return PROJECT_ROOT


def get_assets_dir():
    return os.path.join(get_project_root(), ASSETS_DIRNAME)


def get_logs_dir(config=None):
    """
    Directory for the dated log files.

    `LOGS_DIR` from the config wins. A relative value is resolved against the
    project root.
    """
    logs_dir = (config or {}).get("LOGS_DIR") or DEFAULT_LOGS_DIRNAME
    logs_dir = os.path.expanduser(str(logs_dir))
    if not os.path.isabs(logs_dir):
        logs_dir = os.path.join(get_project_root(), logs_dir)
    return os.path.normpath(logs_dir)
