import json
import logging
import threading
import time

from dash import ALL, Dash, Input, Output, State, callback_context, dcc, html
from dash.exceptions import PreventUpdate

from control.command_runtime import execute_command_intent
from dashboard.command_intents import MACHINE_TOGGLE_TRIGGER_TYPE, command_intent_from_trigger, site_select_intent
from dashboard.layout import build_dashboard_layout
from dashboard.logs import format_session_log_entries, session_log_tail
from dashboard.plotting import create_soc_history_figure
from dashboard.ui_state import battery_band_class, get_machine_toggle_state, get_switch_all_buttons_state
from fleet import store
from fleet.models import SOURCE_BATTERY
from fleet.views import (
    advisory_messages,
    alert_center_view,
    alert_detail_lines,
    alerts_frame,
    battery_band,
    green_ratio_pct,
    site_summaries,
    soc_history_frame,
    total_load,
)
from runtime.paths import get_assets_dir
from time_utils import format_clock, get_config_tz, now_tz


def dashboard_agent(config, shared_data):
    """Dash dashboard with site tabs, machine controls, alert center and session log."""
    logging.info("Dashboard agent started.")

    logging.getLogger("werkzeug").setLevel(logging.ERROR)

    app = Dash(
        __name__,
        suppress_callback_exceptions=True,
        assets_folder=get_assets_dir(),
    )

    tz = get_config_tz(config)
    initial_fleet = store.snapshot(shared_data)
    app.layout = build_dashboard_layout(config, initial_fleet.site_ids, initial_fleet.active_site)

    def _parse_trigger_id(prop_id):
        if not prop_id:
            return None
        raw = str(prop_id).split(".")[0]
        if raw.startswith("{") and raw.endswith("}"):
            try:
                return json.loads(raw)
            except ValueError:
                return raw
        return raw

    def _status_action_token(status):
        return f"{status.get('kind')}:{status.get('state')}:{status.get('created_at')}"

    def _run_intent(intent, *, trigger_id):
        status = execute_command_intent(shared_data, intent, config=config, source="dashboard", now_fn=lambda: now_tz(config))
        logging.info(
            "Dashboard: trigger=%s kind=%s state=%s",
            trigger_id,
            status.get("kind"),
            status.get("state"),
        )
        return status

    def _alert_center(fleet, alert_filter, all_sites_value):
        return alert_center_view(fleet, alert_filter, "all" in (all_sites_value or []))

    def _render_machine_table(site):
        header = html.Tr([html.Th("#"), html.Th("Status"), html.Th("Load (kW)"), html.Th("Supply")])
        rows = []
        for machine in site.machines:
            toggle = get_machine_toggle_state(machine, site.battery_level, config)
            rows.append(
                html.Tr(
                    [
                        html.Td(f"#{machine.id}"),
                        html.Td(machine.status, className=f"machine-status machine-status--{machine.status}"),
                        html.Td(f"{machine.load:.2f}"),
                        html.Td(
                            html.Button(
                                toggle["label"],
                                id={"type": MACHINE_TOGGLE_TRIGGER_TYPE, "index": machine.id},
                                className=toggle["class_name"],
                                disabled=toggle["disabled"],
                                n_clicks=0,
                            )
                        ),
                    ]
                )
            )
        return html.Table([html.Thead(header), html.Tbody(rows)], className="data-table")

    def _render_site_overview(fleet):
        rows = []
        for summary in site_summaries(fleet, config):
            rows.append(
                html.Tr(
                    [
                        html.Td(f"Site {summary['site_id']}"),
                        html.Td(f"{summary['battery_level']:.1f}%", className=battery_band_class(summary["battery_band"])),
                        html.Td(f"{summary['solar_output']:.1f} kW"),
                        html.Td(f"{summary['total_load']:.1f} kW"),
                        html.Td(f"{summary['green_ratio_pct']:.0f}% green"),
                    ],
                    className="overview-row--active" if summary["active"] else "",
                )
            )
        return html.Table(html.Tbody(rows), className="data-table overview-table")

    def _render_alert_details(alert):
        lines = alert_detail_lines(alert)
        if not lines:
            return None
        return html.Details(
            className="alert-details",
            children=[
                html.Summary("Details"),
                html.Div(
                    [
                        html.Span([html.Span(f"{label}: ", className="alert-detail-label"), value])
                        for label, value in lines
                    ],
                    className="alert-detail-grid",
                ),
            ],
        )

    def _render_alert_list(alerts, show_site):
        if not alerts:
            return [html.Div("No alerts.", className="alerts-empty")]
        items = []
        for alert in alerts:
            prefix = f"[{alert.site_id}] " if show_site else ""
            items.append(
                html.Div(
                    className=f"alert-item alert-item--{alert.severity}",
                    children=[
                        html.Span(format_clock(alert.timestamp, tz), className="alert-time"),
                        html.Span(f"{prefix}{alert.type}", className="alert-type"),
                        html.Span(alert.message, className="alert-message"),
                        _render_alert_details(alert),
                    ],
                )
            )
        return items

    def _render_severity_counts(counts):
        return [
            html.Span(f"{severity}: {count}", className=f"severity-badge severity-badge--{severity}")
            for severity, count in counts.items()
        ]

    @app.callback(
        Output("command-action", "data"),
        [
            Input("switch-all-battery-btn", "n_clicks"),
            Input("switch-all-grid-btn", "n_clicks"),
            Input("clear-alerts-btn", "n_clicks"),
            Input({"type": MACHINE_TOGGLE_TRIGGER_TYPE, "index": ALL}, "n_clicks"),
        ],
        prevent_initial_call=True,
    )
    def handle_controls(*_args):
        ctx = callback_context
        if not ctx.triggered:
            raise PreventUpdate
        trigger = ctx.triggered[0]
        # Re-rendered machine buttons report n_clicks=0 without a click.
        if not trigger.get("value"):
            raise PreventUpdate

        trigger_id = _parse_trigger_id(trigger["prop_id"])
        intent = command_intent_from_trigger(trigger_id)
        if intent is None:
            raise PreventUpdate
        return _status_action_token(_run_intent(intent, trigger_id=trigger_id))

    @app.callback(
        Output("site-select-action", "data"),
        Input("site-tabs", "value"),
        prevent_initial_call=True,
    )
    def handle_site_tab(selected_site):
        intent = site_select_intent(selected_site, store.snapshot(shared_data).active_site)
        if intent is None:
            raise PreventUpdate
        return _status_action_token(_run_intent(intent, trigger_id="site-tabs"))

    @app.callback(
        [
            Output("kpi-soc", "children"),
            Output("kpi-soc", "className"),
            Output("kpi-solar", "children"),
            Output("kpi-load", "children"),
            Output("kpi-green-ratio", "children"),
            Output("kpi-temp", "children"),
            Output("machine-table", "children"),
            Output("switch-all-battery-btn", "children"),
            Output("switch-all-battery-btn", "disabled"),
            Output("switch-all-grid-btn", "children"),
            Output("switch-all-grid-btn", "disabled"),
            Output("command-status-text", "children"),
            Output("soc-history-graph", "figure"),
            Output("site-overview", "children"),
            Output("alert-list", "children"),
            Output("alert-severity-counts", "children"),
            Output("advisory-list", "children"),
            Output("session-log", "children"),
        ],
        [
            Input("refresh-interval", "n_intervals"),
            Input("command-action", "data"),
            Input("site-select-action", "data"),
            Input("alert-filter", "value"),
            Input("alert-all-sites", "value"),
        ],
    )
    def update_status(_n_intervals, _command_action, _site_action, alert_filter, all_sites_value):
        fleet = store.snapshot(shared_data)
        site = fleet.active_site_state

        command = fleet.active_command
        buttons = get_switch_all_buttons_state(
            fleet.command_status,
            command.requested_source if command is not None else None,
        )
        if command is not None:
            target = "green" if command.requested_source == SOURCE_BATTERY else "grid"
            command_text = f"Site {command.target_site} to {target}: {fleet.command_status}"
        else:
            command_text = ""

        alert_center = _alert_center(fleet, alert_filter, all_sites_value)
        log_entries = list(reversed(session_log_tail(shared_data)))

        return (
            f"{site.battery_level:.1f}",
            battery_band_class(battery_band(site.battery_level, config)),
            f"{site.solar_output:.1f}",
            f"{total_load(site):.1f}",
            f"{green_ratio_pct(site):.0f}",
            f"{site.battery_temp:.1f}",
            _render_machine_table(site),
            buttons["battery_label"],
            buttons["battery_disabled"],
            buttons["grid_label"],
            buttons["grid_disabled"],
            command_text,
            create_soc_history_figure(soc_history_frame(fleet), fleet.active_site, config=config),
            _render_site_overview(fleet),
            _render_alert_list(alert_center["alerts"], alert_center["show_all_sites"]),
            _render_severity_counts(alert_center["severity_counts"]),
            [html.Li(message) for message in advisory_messages(site)],
            format_session_log_entries(log_entries),
        )

    @app.callback(
        Output("alerts-download", "data"),
        Input("download-alerts-btn", "n_clicks"),
        [State("alert-filter", "value"), State("alert-all-sites", "value")],
        prevent_initial_call=True,
    )
    def download_alerts(n_clicks, alert_filter, all_sites_value):
        if not n_clicks:
            raise PreventUpdate
        fleet = store.snapshot(shared_data)
        alert_center = _alert_center(fleet, alert_filter, all_sites_value)
        scope = "all_sites" if alert_center["show_all_sites"] else f"site_{fleet.active_site}"
        filename = f"alerts_{scope}_{now_tz(config).strftime('%Y%m%d_%H%M%S')}.csv"
        return dcc.send_data_frame(alerts_frame(alert_center["alerts"], tz).to_csv, filename, index=False)

    dashboard_host = str(config.get("DASHBOARD_HOST", "127.0.0.1"))
    dashboard_port = int(config.get("DASHBOARD_PORT", 8050))

    def run_app():
        app.run(host=dashboard_host, port=dashboard_port, debug=False, threaded=True)

    thread = threading.Thread(target=run_app, daemon=True)
    thread.start()

    while not shared_data["shutdown_event"].is_set():
        time.sleep(1)

    logging.info("Dashboard agent stopped.")
