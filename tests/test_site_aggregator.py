"""
PlazaNetInsights - Site Aggregator Tests

Unit tests for site/plaza grouping and aggregation.
"""

import unittest
from datetime import datetime, timezone

from plazanet.aggregators.environment_aggregator import EnvironmentAggregator
from plazanet.aggregators.site_aggregator import SiteAggregator, hostname_site_key, normalize_plaza
from plazanet.models.derived import SiteAggregate
from plazanet.models.entities import Alert, AlertSeverity, Device, Link, LinkStatus, Sensor
from plazanet.utils.config import DEFAULT_PLAZA_ALIASES


def make_link(link_id, device_id, utilization, capacity=1000.0):
    usage = capacity * utilization / 100 if utilization is not None else None
    return Link(
        link_id=link_id,
        device_id=device_id,
        name=f"port-{link_id}",
        capacity_mbps=capacity,
        usage_mbps=usage,
        utilization_pct=utilization,
        oper_state="up",
        status=LinkStatus.NORMAL
    )


def make_alert(alert_id, device_id, severity):
    return Alert(
        alert_id=alert_id,
        device_id=device_id,
        severity=severity,
        message="test",
        timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc)
    )


class TestSiteKey(unittest.TestCase):
    """Test cases for the hostname site-key heuristic."""

    def test_first_three_tokens(self):
        """Test hostname prefix extraction."""
        device = Device(device_id="1", hostname="CDMX-Norte-01-SW1", location="CDMX")
        self.assertEqual(hostname_site_key(device), "CDMX-Norte-01")

    def test_short_hostname_falls_back_to_location(self):
        """Test location fallback for hostnames with fewer than 3 tokens."""
        device = Device(device_id="1", hostname="core-rtr", location="Monterrey")
        self.assertEqual(hostname_site_key(device), "Monterrey")

    def test_unknown_when_nothing_available(self):
        """Test final fallback."""
        device = Device(device_id="1", hostname="rtr", location=None)
        self.assertEqual(hostname_site_key(device), "Unknown")

    def test_plaza_aliases(self):
        """Test alias normalization is case-insensitive."""
        self.assertEqual(normalize_plaza("MTY", DEFAULT_PLAZA_ALIASES), "Monterrey")
        self.assertEqual(normalize_plaza("Saltillo", DEFAULT_PLAZA_ALIASES), "Saltillo")
        self.assertEqual(normalize_plaza("", DEFAULT_PLAZA_ALIASES), "Unknown")


class TestSiteAggregator(unittest.TestCase):
    """Test cases for SiteAggregator."""

    def setUp(self):
        """Set up test fixtures."""
        self.aggregator = SiteAggregator(plaza_aliases=DEFAULT_PLAZA_ALIASES)
        self.devices = [
            Device(device_id="1", hostname="MTY-Centro-01-RTR1", location="mty", is_active=True),
            Device(device_id="2", hostname="MTY-Centro-01-SW1", location="mty", is_active=False),
            Device(device_id="3", hostname="GDL-Norte-02-RTR1", location="gdl", is_active=True),
        ]
        self.links = [
            make_link("10", "1", 40.0),
            make_link("11", "2", 80.0),
            make_link("12", "3", None),
            make_link("99", "404", 99.0),
        ]
        self.alerts = [
            make_alert("a1", "1", AlertSeverity.CRITICAL),
            make_alert("a2", "2", AlertSeverity.WARNING),
            make_alert("a3", "404", AlertSeverity.CRITICAL),
        ]

    def test_groups_keep_provider_order(self):
        """Test that groups appear in first-device order."""
        groups = self.aggregator.group_devices_by_site(self.devices)
        self.assertEqual(list(groups.keys()), ["MTY-Centro-01", "GDL-Norte-02"])

    def test_site_aggregate_values(self):
        """Test per-site reductions."""
        sites = self.aggregator.aggregate_sites(self.devices, self.links, self.alerts)
        mty = sites[0]
        self.assertEqual(mty.plaza, "Monterrey")
        self.assertEqual(mty.device_count, 2)
        self.assertEqual(mty.active_device_count, 1)
        self.assertEqual(mty.link_count, 2)
        self.assertAlmostEqual(mty.mean_utilization, 60.0)
        self.assertEqual(mty.max_utilization, 80.0)
        self.assertEqual(mty.alert_count, 2)
        self.assertEqual(mty.critical_alert_count, 1)
        self.assertEqual(mty.warning_alert_count, 1)

    def test_site_without_data_is_unknown(self):
        """Test that a site whose links lack data has no utilization."""
        sites = self.aggregator.aggregate_sites(self.devices, self.links, self.alerts)
        gdl = sites[1]
        self.assertEqual(gdl.link_count, 1)
        self.assertIsNone(gdl.mean_utilization)

    def test_foreign_links_and_alerts_ignored(self):
        """Test that entities of unknown devices are dropped."""
        sites = self.aggregator.aggregate_sites(self.devices, self.links, self.alerts)
        self.assertEqual(sum(site.link_count for site in sites), 3)
        self.assertEqual(sum(site.alert_count for site in sites), 2)

    def test_plaza_mean_is_equal_weight(self):
        """Test plaza utilization over sites [40, 60, 80] is 60, regardless of capacity."""
        sites = [
            SiteAggregate(site="A", plaza="CDMX", mean_utilization=40.0, total_capacity_mbps=10000.0),
            SiteAggregate(site="B", plaza="CDMX", mean_utilization=60.0, total_capacity_mbps=100.0),
            SiteAggregate(site="C", plaza="CDMX", mean_utilization=80.0, total_capacity_mbps=1000.0),
        ]
        plazas = self.aggregator.aggregate_plazas(sites)
        self.assertEqual(len(plazas), 1)
        self.assertAlmostEqual(plazas[0].mean_utilization, 60.0)
        self.assertEqual(plazas[0].site_count, 3)

    def test_filter_by_plaza_uses_aliases(self):
        """Test plaza filtering through the alias table."""
        filtered = self.aggregator.filter_devices_by_plaza(self.devices, "monterrey")
        self.assertEqual([device.device_id for device in filtered], ["1", "2"])
        filtered = self.aggregator.filter_devices_by_plaza(self.devices, "GDL")
        self.assertEqual([device.device_id for device in filtered], ["3"])

    def test_pluggable_site_key(self):
        """Test that the site heuristic can be replaced."""
        aggregator = SiteAggregator(site_key_func=lambda device: device.location or "none")
        groups = aggregator.group_devices_by_site(self.devices)
        self.assertEqual(list(groups.keys()), ["mty", "gdl"])


class TestEnvironmentAggregator(unittest.TestCase):
    """Test cases for the environmental rollup."""

    def test_temperature_alert_severity(self):
        """Test warning and critical temperature bands."""
        sensors = [
            Sensor(sensor_id="1", device_id="1", sensor_class="temperature", value=30.0),
            Sensor(sensor_id="2", device_id="1", sensor_class="temperature", value=37.0),
            Sensor(sensor_id="3", device_id="2", sensor_class="temperature", value=41.0, is_ok=False),
            Sensor(sensor_id="4", device_id="2", sensor_class="humidity", value=50.0),
            Sensor(sensor_id="5", device_id="999", sensor_class="temperature", value=90.0),
        ]
        result = EnvironmentAggregator(alert_threshold=35.0).aggregate(
            sensors, {"1": "Monterrey", "2": "CDMX"}
        )

        severities = {alert["sensor_id"]: alert["severity"] for alert in result["alerts"]}
        self.assertEqual(severities, {"2": "warning", "3": "critical"})
        self.assertEqual(result["summary"]["sensors_online"], 3)
        self.assertEqual(result["summary"]["sensors_offline"], 1)
        self.assertEqual(result["summary"]["max_temperature"], 41.0)
        self.assertEqual(result["summary"]["average_humidity"], 50.0)
        self.assertEqual(len(result["breakdown"]), 2)


if __name__ == "__main__":
    unittest.main()
