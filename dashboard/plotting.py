"""Plot/theme helpers for dashboard figures."""

import plotly.graph_objects as go

from runtime.defaults import engine_setting

DEFAULT_PLOT_THEME = {
    "font_family": "DM Sans, Segoe UI, Helvetica Neue, Arial, sans-serif",
    "paper_bg": "#ffffff",
    "plot_bg": "#ffffff",
    "grid": "#d7e3dd",
    "axis": "#234038",
    "text": "#1b2b26",
    "muted": "#546b63",
}

DEFAULT_SITE_COLORS = ["#00945a", "#3f65c8", "#c66a00", "#6756d6", "#8d7b00", "#006f9e"]
THRESHOLD_COLORS = {
    "critical": "#d62839",
    "low": "#f59e0b",
}


def apply_figure_theme(fig, plot_theme, *, height, margin, uirevision, showlegend=True, legend_y=1.08):
    fig.update_layout(
        height=height,
        margin=margin,
        showlegend=showlegend,
        legend=dict(
            orientation="h",
            yanchor="bottom",
            y=legend_y,
            xanchor="center",
            x=0.5,
            bgcolor="rgba(255, 255, 255, 0.7)",
            bordercolor=plot_theme["grid"],
            borderwidth=1,
            font=dict(color=plot_theme["axis"], family=plot_theme["font_family"], size=11),
        ),
        plot_bgcolor=plot_theme["plot_bg"],
        paper_bgcolor=plot_theme["paper_bg"],
        font=dict(color=plot_theme["text"], family=plot_theme["font_family"], size=12),
        uirevision=uirevision,
    )
    axis_style = dict(
        gridcolor=plot_theme["grid"],
        linecolor=plot_theme["grid"],
        zerolinecolor=plot_theme["grid"],
        tickfont=dict(color=plot_theme["muted"], family=plot_theme["font_family"]),
        title_font=dict(color=plot_theme["axis"], family=plot_theme["font_family"]),
    )
    fig.update_xaxes(**axis_style)
    fig.update_yaxes(**axis_style)


def site_color(site_ids, site_id):
    index = list(site_ids).index(site_id) if site_id in site_ids else 0
    return DEFAULT_SITE_COLORS[index % len(DEFAULT_SITE_COLORS)]


def create_soc_history_figure(soc_history_df, active_site, *, config=None, plot_theme=None, uirevision="soc-history"):
    """
    Plot the recent SOC samples of every site against sample position.

    The active site is drawn solid and thicker; the critical and low
    thresholds are shown as dashed reference lines.
    """
    plot_theme = plot_theme or DEFAULT_PLOT_THEME
    fig = go.Figure()
    site_ids = list(soc_history_df.columns)

    for site_id in site_ids:
        series = soc_history_df[site_id].dropna()
        is_active = site_id == active_site
        fig.add_trace(
            go.Scatter(
                x=list(range(1, len(series) + 1)),
                y=series.tolist(),
                mode="lines+markers",
                name=f"Site {site_id}",
                line=dict(
                    color=site_color(site_ids, site_id),
                    width=3 if is_active else 1.5,
                    dash="solid" if is_active else "dot",
                ),
            )
        )

    for band, key in (("critical", "CRITICAL_SOC_PCT"), ("low", "LOW_SOC_PCT")):
        fig.add_hline(
            y=float(engine_setting(config, key)),
            line=dict(color=THRESHOLD_COLORS[band], width=1, dash="dash"),
            annotation_text=f"{band} {float(engine_setting(config, key)):.0f}%",
            annotation_position="bottom right",
        )

    fig.update_yaxes(title_text="SOC (%)", range=[0, 100])
    fig.update_xaxes(title_text="Sample", dtick=1)
    apply_figure_theme(
        fig,
        plot_theme,
        height=280,
        margin=dict(l=50, r=20, t=40, b=40),
        uirevision=uirevision,
    )
    return fig
