"""
Logger configuration module for the fleet energy monitor.

Configures logging to:
1. Output to console
2. Write to daily log files in logs/ folder, dated in the configured timezone
3. Capture session logs to shared_data for the dashboard log panel
"""

import logging
import os
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from runtime.defaults import SESSION_LOG_LIMIT
from runtime.paths import get_logs_dir

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_SUFFIX = "fleet_monitor"


def _resolve_timezone(timezone_name):
    try:
        return ZoneInfo(timezone_name)
    except (TypeError, ValueError, ZoneInfoNotFoundError):
        return datetime.now().astimezone().tzinfo


class SessionLogHandler(logging.Handler):
    """
    Logging handler that keeps the most recent records in shared_data so the
    dashboard can show them without reading the log file.
    """

    def __init__(self, shared_data, *, timezone_name=None, limit=SESSION_LOG_LIMIT):
        super().__init__()
        self.shared_data = shared_data
        self.timezone = _resolve_timezone(timezone_name)
        self.limit = int(limit)

    def emit(self, record):
        try:
            log_entry = {
                "timestamp": datetime.fromtimestamp(record.created, tz=self.timezone).strftime("%H:%M:%S"),
                "level": record.levelname,
                "message": record.getMessage(),
            }

            with self.shared_data["log_lock"]:
                self.shared_data["session_logs"].append(log_entry)
                if len(self.shared_data["session_logs"]) > self.limit:
                    self.shared_data["session_logs"] = self.shared_data["session_logs"][-self.limit:]
        except Exception:
            self.handleError(record)


class DateRoutedFileHandler(logging.Handler):
    """File handler that routes records to YYYY-MM-DD files by record timestamp."""

    def __init__(self, logs_dir, timezone_name, shared_data, *, encoding="utf-8"):
        super().__init__()
        self.logs_dir = logs_dir
        self.shared_data = shared_data
        self.encoding = encoding
        self.terminator = "\n"
        self.timezone = _resolve_timezone(timezone_name)

        self._current_date = None
        self._stream = None

    def build_log_path(self, date_str):
        return os.path.join(self.logs_dir, f"{date_str}_{LOG_FILE_SUFFIX}.log")

    def _publish_log_path(self, path):
        lock = self.shared_data.get("log_lock")
        if lock is None:
            self.shared_data["log_file_path"] = path
            return
        with lock:
            self.shared_data["log_file_path"] = path

    def _open_for_date(self, date_str):
        if date_str == self._current_date and self._stream is not None:
            return

        self._close_stream()
        path = self.build_log_path(date_str)
        self._stream = open(path, "a", encoding=self.encoding)
        self._current_date = date_str
        self._publish_log_path(path)

    def _close_stream(self):
        if self._stream is None:
            return
        try:
            self._stream.close()
        finally:
            self._stream = None

    def emit(self, record):
        try:
            record_date = datetime.fromtimestamp(record.created, tz=self.timezone).strftime("%Y-%m-%d")
            self._open_for_date(record_date)
            self._stream.write(self.format(record) + self.terminator)
            self._stream.flush()
        except Exception:
            self.handleError(record)

    def close(self):
        try:
            self._close_stream()
        finally:
            super().close()


def setup_logging(config, shared_data, *, logs_dir=None):
    """
    Set up logging with console, file, and session handlers.

    Args:
        config: Configuration dictionary with LOG_LEVEL and TIMEZONE_NAME
        shared_data: Shared data dictionary holding session_logs and log_lock
        logs_dir: Override for the log directory (defaults to LOGS_DIR, else <project>/logs)

    Returns:
        logging.Logger: The configured root logger
    """
    log_level = config.get("LOG_LEVEL", logging.INFO)
    timezone_name = config.get("TIMEZONE_NAME")

    logs_dir = logs_dir or get_logs_dir(config)
    os.makedirs(logs_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = DateRoutedFileHandler(logs_dir, timezone_name, shared_data, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    session_handler = SessionLogHandler(shared_data, timezone_name=timezone_name)
    session_handler.setLevel(log_level)
    session_handler.setFormatter(formatter)
    root_logger.addHandler(session_handler)

    # Dash serves the UI through werkzeug; its per-request lines drown the session log.
    logging.getLogger("werkzeug").setLevel(logging.ERROR)

    return root_logger
