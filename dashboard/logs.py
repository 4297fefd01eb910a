"""Dashboard session-log helpers."""

from dash import html

LEVEL_COLORS = {
    "CRITICAL": "#ef4444",
    "ERROR": "#ef4444",
    "WARNING": "#f97316",
    "INFO": "#22c55e",
}
DEFAULT_LEVEL_COLOR = "#94a3b8"
SESSION_LOG_TAIL_LINES = 200


def session_log_tail(shared_data, max_lines=SESSION_LOG_TAIL_LINES):
    """Copy the most recent session log entries, newest last."""
    with shared_data["log_lock"]:
        entries = list(shared_data.get("session_logs", []))
    return entries[-int(max_lines):] if max_lines else entries


def format_session_log_entries(entries):
    formatted_entries = []
    for entry in entries or []:
        level = str(entry.get("level", "")).upper()
        formatted_entries.append(
            html.Div(
                [
                    html.Span(f"[{entry.get('timestamp', '')}] ", style={"color": DEFAULT_LEVEL_COLOR}),
                    html.Span(f"{level}: ", style={"color": LEVEL_COLORS.get(level, DEFAULT_LEVEL_COLOR), "fontWeight": "600"}),
                    html.Span(str(entry.get("message", "")), style={"color": "#e2e8f0"}),
                ]
            )
        )
    return formatted_entries
