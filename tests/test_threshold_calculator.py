"""
PlazaNetInsights - Engineering Threshold Calculator Tests

Unit tests for engineering thresholds and alert synthesis.
"""

import unittest

from plazanet.calculators.threshold_calculator import (
    RECOMMENDED_ACTIONS,
    EngineeringThresholdCalculator,
)
from plazanet.models.derived import SiteAggregate
from plazanet.models.entities import Link, LinkStatus
from plazanet.utils.config import ThresholdConfig


def make_link(link_id, capacity, utilization):
    return Link(
        link_id=link_id,
        device_id="1",
        name=f"port-{link_id}",
        capacity_mbps=capacity,
        usage_mbps=capacity * utilization / 100 if utilization is not None else None,
        utilization_pct=utilization,
        oper_state="up",
        status=LinkStatus.NORMAL
    )


class TestEngineeringThresholdCalculator(unittest.TestCase):
    """Test cases for EngineeringThresholdCalculator."""

    def setUp(self):
        """Set up test fixtures."""
        self.calculator = EngineeringThresholdCalculator(ThresholdConfig())

    def test_capacity_scaled_threshold(self):
        """Test fixed ceiling for large links and 80% for small ones."""
        self.assertEqual(self.calculator.engineering_threshold_mbps(4000), 5000)
        self.assertEqual(self.calculator.engineering_threshold_mbps(10000), 5000)
        self.assertAlmostEqual(self.calculator.engineering_threshold_mbps(1000), 800.0)
        self.assertAlmostEqual(self.calculator.engineering_threshold_mbps(3999), 3199.2)

    def test_capacity_risk_checked_first(self):
        """Test 4000 Mbps at 92% is capacity_risk, not critical."""
        evaluation = self.calculator.evaluate_link(make_link("1", 4000, 92.0))
        self.assertEqual(evaluation.alert_status, "capacity_risk")
        self.assertEqual(evaluation.recommended_action, RECOMMENDED_ACTIONS["capacity_risk"])

    def test_band_boundaries(self):
        """Test each boundary lands in the higher band."""
        self.assertEqual(self.calculator.evaluate_status(90.0), "capacity_risk")
        self.assertEqual(self.calculator.evaluate_status(89.99), "critical")
        self.assertEqual(self.calculator.evaluate_status(80.0), "critical")
        self.assertEqual(self.calculator.evaluate_status(70.0), "warning")
        self.assertEqual(self.calculator.evaluate_status(69.9), "normal")
        self.assertEqual(self.calculator.evaluate_status(None), "unknown")

    def test_alert_severities(self):
        """Test status to severity mapping and deterministic ids."""
        links = [
            make_link("a", 1000, 72.0),
            make_link("b", 1000, 85.0),
            make_link("c", 4000, 95.0),
            make_link("d", 1000, 10.0),
            make_link("e", 1000, None),
        ]
        alerts = self.calculator.generate_alerts(links, {"c": "Monterrey"})

        self.assertEqual(
            [(alert.alert_id, alert.severity) for alert in alerts],
            [("util-c", "emergency"), ("util-b", "critical"), ("util-a", "warning")]
        )
        self.assertEqual(alerts[0].plaza, "Monterrey")
        self.assertEqual(alerts[1].plaza, "Unknown")
        self.assertEqual(alerts[2].recommended_action, "Plan capacity upgrade within 30 days")

    def test_idempotent_modulo_timestamps(self):
        """Test two runs on identical input yield identical alerts except created_at."""
        links = [make_link(str(index), 1000 * (index + 1), 65.0 + index * 4) for index in range(8)]

        def strip(alerts):
            rows = []
            for alert in alerts:
                row = alert.to_dict()
                row.pop("created_at")
                rows.append(row)
            return rows

        first = strip(self.calculator.generate_alerts(links))
        second = strip(self.calculator.generate_alerts(links))
        self.assertEqual(first, second)
        self.assertTrue(first)

    def test_only_current_links_alert(self):
        """Test that alerts reference only links passed in."""
        links = [make_link("x", 1000, 99.0)]
        alerts = self.calculator.generate_alerts(links)
        self.assertEqual({alert.link_id for alert in alerts}, {"x"})

    def test_rank_saturated_sites(self):
        """Test ranking by busiest link and the critical-link count."""
        def link_on(link_id, device_id, utilization):
            link = make_link(link_id, 1000, utilization)
            link.device_id = device_id
            return link

        links = [
            link_on("1", "a", 50.0), link_on("2", "a", 85.0),
            link_on("3", "b", 95.0), link_on("4", "b", 81.0),
            link_on("5", "c", None),
            link_on("6", "d", 30.0),
        ]
        sites = [
            SiteAggregate(site="A", plaza="Monterrey", device_count=1, links_with_data=2,
                          mean_utilization=67.5, max_utilization=85.0, device_ids=["a"]),
            SiteAggregate(site="C", plaza="Monterrey", device_count=1, device_ids=["c"]),
            SiteAggregate(site="B", plaza="Saltillo", device_count=1, links_with_data=2,
                          mean_utilization=88.0, max_utilization=95.0, device_ids=["b"]),
            SiteAggregate(site="D", plaza="Saltillo", device_count=1, links_with_data=1,
                          mean_utilization=30.0, max_utilization=30.0, device_ids=["d"]),
        ]

        ranked = self.calculator.rank_saturated_sites(sites, links)

        self.assertEqual([entry.site for entry in ranked], ["B", "A", "D", "C"])
        self.assertEqual(ranked[0].saturation, 95.0)
        self.assertEqual(ranked[0].critical_links, 2)
        self.assertEqual(ranked[1].critical_links, 1)
        self.assertIsNone(ranked[3].saturation)
        self.assertEqual(ranked[3].to_dict()["critical_links"], 0)

    def test_exceeds_threshold(self):
        """Test the usage-against-threshold flag."""
        evaluation = self.calculator.evaluate_link(make_link("1", 1000, 85.0))
        self.assertTrue(evaluation.exceeds_threshold)
        evaluation = self.calculator.evaluate_link(make_link("2", 10000, 45.0))
        self.assertFalse(evaluation.exceeds_threshold)


if __name__ == "__main__":
    unittest.main()
