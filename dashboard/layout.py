"""Dashboard layout composition."""

from dash import dcc, html

from fleet.models import (
    ALERT_FLEET_SWITCH,
    ALERT_GREEN_SHORTAGE,
    ALERT_SOC_LOW,
    ALERT_SOURCE_SWITCH,
)
from fleet.views import ALERT_FILTER_ALL

ALERT_FILTER_OPTIONS = [
    {"label": "All alerts", "value": ALERT_FILTER_ALL},
    {"label": "Low SOC", "value": ALERT_SOC_LOW},
    {"label": "Green shortage", "value": ALERT_GREEN_SHORTAGE},
    {"label": "Machine switches", "value": ALERT_SOURCE_SWITCH},
    {"label": "Fleet switches", "value": ALERT_FLEET_SWITCH},
]


def _kpi_card(title, value_id, unit):
    return html.Div(
        className="kpi-card",
        children=[
            html.Span(title, className="kpi-title"),
            html.Div([html.Span("--", id=value_id, className="kpi-value"), html.Span(unit, className="kpi-unit")]),
        ],
    )


def build_dashboard_layout(config, site_ids, initial_active_site):
    refresh_ms = int(config.get("DASHBOARD_REFRESH_MS", 1000))
    return html.Div(
        className="app-container",
        children=[
            html.Header(
                className="app-header",
                children=[
                    html.H1("Fleet Energy Monitor", className="app-title"),
                    html.P("Battery, solar and machine supply for every site.", className="app-subtitle"),
                ],
            ),
            dcc.Tabs(
                id="site-tabs",
                value=initial_active_site,
                className="site-tabs",
                children=[
                    dcc.Tab(label=f"Site {site_id}", value=site_id, className="site-tab", selected_className="site-tab--selected")
                    for site_id in site_ids
                ],
            ),
            html.Div(
                className="kpi-row",
                children=[
                    _kpi_card("Battery SOC", "kpi-soc", "%"),
                    _kpi_card("Solar output", "kpi-solar", "kW"),
                    _kpi_card("Total load", "kpi-load", "kW"),
                    _kpi_card("Green share", "kpi-green-ratio", "%"),
                    _kpi_card("Battery temp", "kpi-temp", "°C"),
                ],
            ),
            html.Div(
                className="panel-row",
                children=[
                    html.Div(
                        className="panel machines-panel",
                        children=[
                            html.Div(
                                className="panel-header",
                                children=[
                                    html.H3("Machines", className="panel-title"),
                                    html.Div(
                                        className="fleet-actions-group",
                                        children=[
                                            html.Button("All to green", id="switch-all-battery-btn", className="btn btn-primary", n_clicks=0),
                                            html.Button("All to grid", id="switch-all-grid-btn", className="btn btn-secondary", n_clicks=0),
                                        ],
                                    ),
                                    html.Span("", id="command-status-text", className="command-status"),
                                ],
                            ),
                            html.Div(id="machine-table", className="machine-table"),
                        ],
                    ),
                    html.Div(
                        className="panel soc-panel",
                        children=[
                            html.H3("SOC history", className="panel-title"),
                            dcc.Graph(id="soc-history-graph", config={"displayModeBar": False}),
                            html.Div(id="site-overview", className="site-overview"),
                        ],
                    ),
                ],
            ),
            html.Div(
                className="panel-row",
                children=[
                    html.Div(
                        className="panel alerts-panel",
                        children=[
                            html.Div(
                                className="panel-header",
                                children=[
                                    html.H3("Alert center", className="panel-title"),
                                    html.Div(id="alert-severity-counts", className="severity-counts"),
                                ],
                            ),
                            html.Div(
                                className="controls-row",
                                children=[
                                    dcc.Dropdown(
                                        id="alert-filter",
                                        options=ALERT_FILTER_OPTIONS,
                                        value=ALERT_FILTER_ALL,
                                        clearable=False,
                                        className="alert-filter",
                                    ),
                                    dcc.Checklist(
                                        id="alert-all-sites",
                                        options=[{"label": "All sites", "value": "all"}],
                                        value=[],
                                        className="alert-all-sites",
                                    ),
                                    html.Button("Clear", id="clear-alerts-btn", className="btn btn-danger", n_clicks=0),
                                    html.Button("Download CSV", id="download-alerts-btn", className="btn btn-secondary", n_clicks=0),
                                    dcc.Download(id="alerts-download"),
                                ],
                            ),
                            html.Div(id="alert-list", className="alert-list"),
                        ],
                    ),
                    html.Div(
                        className="panel advisory-panel",
                        children=[
                            html.H3("Suggestions", className="panel-title"),
                            html.Ul(id="advisory-list", className="advisory-list"),
                        ],
                    ),
                ],
            ),
            html.Div(
                className="panel logs-panel",
                children=[
                    html.H3("Session log", className="panel-title"),
                    html.Div(id="session-log", className="session-log"),
                ],
            ),
            dcc.Store(id="command-action"),
            dcc.Store(id="site-select-action"),
            dcc.Interval(id="refresh-interval", interval=refresh_ms, n_intervals=0),
        ],
    )
