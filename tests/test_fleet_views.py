import unittest
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from fleet.models import (
    ALERT_GREEN_SHORTAGE,
    ALERT_SOC_LOW,
    ALERT_SOC_LOW_PROTECT,
    ALERT_SOURCE_SWITCH,
    MACHINE_RUNNING,
    SEVERITY_CRITICAL,
    SEVERITY_INFO,
    SEVERITY_WARNING,
    SOURCE_BATTERY,
    SOURCE_GRID,
    Alert,
    AlertDetails,
    FleetState,
    Machine,
    SiteState,
)
from fleet.views import (
    ALERT_COLUMNS,
    advisory_messages,
    alert_center_view,
    alert_detail_lines,
    alerts_frame,
    battery_band,
    filter_alerts,
    green_ratio_pct,
    merged_alerts,
    severity_counts,
    site_summaries,
    soc_history_frame,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
DETAILS = AlertDetails(soc=15.0, solar_output=70.0, total_load=30.0, green_load=20.0)


def _machines(sources, load=6.0, status=MACHINE_RUNNING):
    return tuple(Machine(id=idx, status=status, load=load, source=source) for idx, source in enumerate(sources, start=1))


def _site(level=50.0, solar=80.0, sources=(SOURCE_BATTERY, SOURCE_GRID), load=6.0, alerts=(), history=()):
    return SiteState(
        solar_output=solar,
        battery_level=level,
        battery_temp=33.0,
        machines=_machines(sources, load=load),
        alerts=tuple(alerts),
        soc_history=tuple(history),
    )


def _alert(alert_id, alert_type, severity, *, site_id="A", seconds=0):
    details = DETAILS if alert_type in (ALERT_SOC_LOW, ALERT_SOC_LOW_PROTECT, ALERT_GREEN_SHORTAGE) else None
    return Alert(
        id=alert_id,
        timestamp=T0 + timedelta(seconds=seconds),
        site_id=site_id,
        type=alert_type,
        message=alert_type.lower(),
        severity=severity,
        details=details,
    )


class FleetViewsTests(unittest.TestCase):
    def test_green_ratio(self):
        self.assertAlmostEqual(green_ratio_pct(_site(sources=(SOURCE_BATTERY, SOURCE_GRID))), 50.0)
        empty = SiteState(solar_output=60.0, battery_level=50.0, battery_temp=30.0, machines=())
        self.assertEqual(green_ratio_pct(empty), 0.0)

    def test_battery_band(self):
        self.assertEqual(battery_band(5.0), "critical")
        self.assertEqual(battery_band(19.9), "low")
        self.assertEqual(battery_band(20.0), "normal")
        self.assertEqual(battery_band(25.0, {"LOW_SOC_PCT": 30.0}), "low")

    def test_soc_low_filter_includes_protection_alerts(self):
        alerts = [
            _alert("alert-000003", ALERT_SOURCE_SWITCH, SEVERITY_INFO),
            _alert("alert-000002", ALERT_SOC_LOW_PROTECT, SEVERITY_CRITICAL),
            _alert("alert-000001", ALERT_SOC_LOW, SEVERITY_WARNING),
        ]
        self.assertEqual([a.id for a in filter_alerts(alerts, ALERT_SOC_LOW)], ["alert-000002", "alert-000001"])
        self.assertEqual([a.id for a in filter_alerts(alerts, ALERT_SOURCE_SWITCH)], ["alert-000003"])
        self.assertEqual(len(filter_alerts(alerts, "all")), 3)
        self.assertEqual(len(filter_alerts(alerts, None)), 3)

    def test_merged_alerts_are_newest_first_across_sites(self):
        fleet = FleetState(
            sites={
                "A": _site(alerts=[_alert("alert-000003", ALERT_SOURCE_SWITCH, SEVERITY_INFO, seconds=5)]),
                "B": _site(
                    alerts=[
                        _alert("alert-000004", ALERT_SOURCE_SWITCH, SEVERITY_INFO, site_id="B", seconds=5),
                        _alert("alert-000001", ALERT_SOURCE_SWITCH, SEVERITY_INFO, site_id="B", seconds=1),
                    ]
                ),
            },
            active_site="A",
        )
        self.assertEqual([a.id for a in merged_alerts(fleet)], ["alert-000004", "alert-000003", "alert-000001"])

    def test_severity_counts(self):
        alerts = [
            _alert("alert-000002", ALERT_SOC_LOW_PROTECT, SEVERITY_CRITICAL),
            _alert("alert-000001", ALERT_SOC_LOW, SEVERITY_WARNING),
        ]
        self.assertEqual(severity_counts(alerts), {SEVERITY_CRITICAL: 1, SEVERITY_WARNING: 1, SEVERITY_INFO: 0})

    def test_alert_center_counts_severities_before_type_filter(self):
        fleet = FleetState(
            sites={
                "A": _site(
                    alerts=[
                        _alert("alert-000003", ALERT_SOURCE_SWITCH, SEVERITY_INFO, seconds=3),
                        _alert("alert-000002", ALERT_SOC_LOW_PROTECT, SEVERITY_CRITICAL, seconds=2),
                        _alert("alert-000001", ALERT_GREEN_SHORTAGE, SEVERITY_WARNING, seconds=1),
                    ]
                ),
                "B": _site(alerts=[_alert("alert-000004", ALERT_SOC_LOW, SEVERITY_WARNING, site_id="B", seconds=4)]),
            },
            active_site="A",
        )

        view = alert_center_view(fleet, ALERT_SOURCE_SWITCH)
        self.assertEqual([a.id for a in view["alerts"]], ["alert-000003"])
        self.assertEqual(view["severity_counts"], {SEVERITY_CRITICAL: 1, SEVERITY_WARNING: 1, SEVERITY_INFO: 1})
        self.assertFalse(view["show_all_sites"])

        view = alert_center_view(fleet, ALERT_SOC_LOW, show_all_sites=True)
        self.assertEqual([a.id for a in view["alerts"]], ["alert-000004", "alert-000002"])
        self.assertEqual(view["severity_counts"], {SEVERITY_CRITICAL: 1, SEVERITY_WARNING: 2, SEVERITY_INFO: 1})

    def test_alert_detail_lines(self):
        lines = alert_detail_lines(_alert("alert-000001", ALERT_SOC_LOW, SEVERITY_WARNING))
        self.assertEqual(
            lines,
            [("SOC", "15.0%"), ("Solar", "70.0 kW"), ("Total", "30.0 kW"), ("Green", "20.0 kW")],
        )
        self.assertEqual(alert_detail_lines(_alert("alert-000002", ALERT_SOURCE_SWITCH, SEVERITY_INFO)), [])

    def test_site_summaries_mark_active_site(self):
        fleet = FleetState(sites={"A": _site(level=4.0), "B": _site(level=60.0)}, active_site="B")
        rows = site_summaries(fleet)
        self.assertEqual([row["site_id"] for row in rows], ["A", "B"])
        self.assertEqual([row["active"] for row in rows], [False, True])
        self.assertEqual(rows[0]["battery_band"], "critical")
        self.assertAlmostEqual(rows[1]["total_load"], 12.0)

    def test_advisory_for_very_low_battery_with_high_load(self):
        site = _site(level=8.0, sources=(SOURCE_GRID,) * 7, load=7.0)
        messages = advisory_messages(site)
        self.assertEqual(len(messages), 3)
        self.assertTrue(messages[0].startswith("Battery very low"))
        self.assertIn("Total load is high", messages[2])

    def test_advisory_for_low_battery_suggests_moving_half(self):
        site = _site(level=25.0, solar=90.0, sources=(SOURCE_BATTERY, SOURCE_BATTERY, SOURCE_BATTERY, SOURCE_GRID))
        messages = advisory_messages(site)
        self.assertIn("Move 2 machine(s)", messages[0])
        self.assertIn("Solar output is strong", messages[1])

    def test_advisory_for_healthy_site(self):
        messages = advisory_messages(_site(level=80.0, solar=90.0, sources=(SOURCE_BATTERY, SOURCE_GRID, SOURCE_GRID)))
        self.assertTrue(messages[0].startswith("Battery healthy"))
        self.assertIn("2 grid-fed machine(s)", messages[1])

        messages = advisory_messages(_site(level=50.0, solar=80.0))
        self.assertEqual(len(messages), 2)
        self.assertIn("Keep SOC above 20%", messages[1])

    def test_alerts_frame_has_export_columns(self):
        alerts = [
            _alert("alert-000002", ALERT_SOC_LOW, SEVERITY_WARNING),
            _alert("alert-000001", ALERT_SOURCE_SWITCH, SEVERITY_INFO),
        ]
        frame = alerts_frame(alerts, ZoneInfo("Europe/Madrid"))
        self.assertEqual(list(frame.columns), ALERT_COLUMNS)
        self.assertEqual(frame.loc[0, "soc"], 15.0)
        self.assertTrue(frame.loc[0, "timestamp"].endswith("+01:00"))
        self.assertTrue(frame["soc"].isna().iloc[1])

        self.assertTrue(alerts_frame([]).empty)

    def test_soc_history_frame(self):
        fleet = FleetState(
            sites={"A": _site(history=(50.0, 49.0, 48.0)), "B": _site(history=(60.0,))},
            active_site="A",
        )
        frame = soc_history_frame(fleet)
        self.assertEqual(list(frame.columns), ["A", "B"])
        self.assertEqual(frame["A"].tolist(), [50.0, 49.0, 48.0])
        self.assertEqual(frame["B"].dropna().tolist(), [60.0])


if __name__ == "__main__":
    unittest.main()
