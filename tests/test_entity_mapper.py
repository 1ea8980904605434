"""
PlazaNetInsights - Entity Mapper Tests

Unit tests for raw record to entity mapping.
"""

import unittest

from plazanet.collectors.entity_mapper import (
    calculate_utilization,
    clamp_utilization,
    link_status,
    map_alert,
    map_bill,
    map_device,
    map_link,
    map_records,
    map_sensor,
    map_severity,
)
from plazanet.models.entities import AlertSeverity, LinkStatus
from plazanet.utils.errors import MalformedRecordError


class TestUtilization(unittest.TestCase):
    """Test cases for utilization from counters."""

    def test_uses_max_of_in_and_out(self):
        """Test that the busier direction drives utilization."""
        # 1 Gbps link, 50 MB/s in (400 Mbps), 25 MB/s out
        result = calculate_utilization(50_000_000, 25_000_000, 1_000_000_000)
        self.assertAlmostEqual(result, 40.0)

    def test_clamps_above_100(self):
        """Test that counter overshoot never displays above 100%."""
        result = calculate_utilization(200_000_000, 0, 1_000_000_000)
        self.assertEqual(result, 100.0)

    def test_clamp_bounds(self):
        """Test clamping on both ends."""
        for value in (-20.0, -0.1, 0.0, 55.5, 100.0, 100.1, 1e9):
            clamped = clamp_utilization(value)
            self.assertGreaterEqual(clamped, 0.0)
            self.assertLessEqual(clamped, 100.0)

    def test_zero_speed_is_unknown(self):
        """Test that zero speed yields unknown, not 0."""
        self.assertIsNone(calculate_utilization(1000, 1000, 0))
        self.assertIsNone(calculate_utilization(1000, 1000, None))

    def test_missing_counters_are_unknown(self):
        """Test that absent rate counters yield unknown, not 0."""
        self.assertIsNone(calculate_utilization(None, None, 1_000_000_000))

    def test_measured_zero_is_zero(self):
        """Test that an idle link reports 0, distinct from unknown."""
        self.assertEqual(calculate_utilization(0, 0, 1_000_000_000), 0.0)


class TestSeverityMapping(unittest.TestCase):
    """Test cases for the severity lookup table."""

    def test_known_values_case_insensitive(self):
        """Test the fixed lookup entries."""
        self.assertEqual(map_severity("crit"), AlertSeverity.CRITICAL)
        self.assertEqual(map_severity("CRITICAL"), AlertSeverity.CRITICAL)
        self.assertEqual(map_severity("Warn"), AlertSeverity.WARNING)
        self.assertEqual(map_severity("warning"), AlertSeverity.WARNING)
        self.assertEqual(map_severity("emerg"), AlertSeverity.EMERGENCY)

    def test_unmatched_degrades_to_info(self):
        """Test that unknown severities never fail."""
        self.assertEqual(map_severity("bogus"), AlertSeverity.INFO)
        self.assertEqual(map_severity(None), AlertSeverity.INFO)
        self.assertEqual(map_severity(3), AlertSeverity.INFO)


class TestMapDevice(unittest.TestCase):
    """Test cases for map_device."""

    def test_active_device(self):
        """Test a complete device record."""
        device = map_device({
            "device_id": 12,
            "hostname": "MTY-Purisima-01-RTR1",
            "location": " mty ",
            "status": "1",
            "os": "junos",
        })
        self.assertEqual(device.device_id, "12")
        self.assertEqual(device.location, "mty")
        self.assertTrue(device.is_active)
        self.assertEqual(device.os, "junos")

    def test_missing_status_is_inactive(self):
        """Test that a device without status is not counted as active."""
        device = map_device({"device_id": "3", "hostname": "x"})
        self.assertFalse(device.is_active)

    def test_missing_id_raises(self):
        """Test that a record without id is malformed."""
        with self.assertRaises(MalformedRecordError):
            map_device({"hostname": "orphan"})

    def test_non_dict_raises(self):
        """Test that non-object records are malformed."""
        with self.assertRaises(MalformedRecordError):
            map_device(["not", "a", "record"])


class TestMapLink(unittest.TestCase):
    """Test cases for map_link."""

    def test_high_speed_preferred(self):
        """Test that ifHighSpeed (Mbps) wins over ifSpeed."""
        link = map_link({
            "port_id": "7",
            "device_id": "1",
            "ifHighSpeed": 1000,
            "ifSpeed": 10_000_000,
            "ifInOctets_rate": 100_000_000,  # 800 Mbps
            "ifOutOctets_rate": 10_000_000,
            "ifOperStatus": "up",
        })
        self.assertEqual(link.capacity_mbps, 1000)
        self.assertAlmostEqual(link.utilization_pct, 80.0)
        self.assertAlmostEqual(link.usage_mbps, 800.0)
        self.assertEqual(link.status, LinkStatus.CRITICAL)

    def test_if_speed_in_bps(self):
        """Test fallback to ifSpeed in bits per second."""
        link = map_link({
            "port_id": "8",
            "device_id": "1",
            "ifSpeed": 100_000_000,
            "ifInOctets_rate": 1_250_000,  # 10 Mbps
            "ifOperStatus": "up",
        })
        self.assertEqual(link.capacity_mbps, 100)
        self.assertAlmostEqual(link.utilization_pct, 10.0)
        self.assertEqual(link.status, LinkStatus.NORMAL)

    def test_no_counters_unknown(self):
        """Test that a port without counters has unknown utilization."""
        link = map_link({"port_id": "9", "device_id": "1", "ifHighSpeed": 1000, "ifOperStatus": "up"})
        self.assertIsNone(link.utilization_pct)
        self.assertIsNone(link.usage_mbps)
        self.assertFalse(link.has_utilization)
        self.assertEqual(link.status, LinkStatus.UNKNOWN)

    def test_percentage_fallback(self):
        """Test fallback to provider percentages when rates are absent."""
        link = map_link({
            "port_id": "10",
            "device_id": "1",
            "ifHighSpeed": 1000,
            "ifInOctets_perc": 72,
            "ifOutOctets_perc": 12,
            "ifOperStatus": "up",
        })
        self.assertEqual(link.utilization_pct, 72.0)
        self.assertAlmostEqual(link.usage_mbps, 720.0)
        self.assertEqual(link.status, LinkStatus.WARNING)

    def test_down_link_is_critical(self):
        """Test that an operationally down link is critical."""
        self.assertEqual(link_status(None, "down"), LinkStatus.CRITICAL)
        self.assertEqual(link_status(5.0, "down"), LinkStatus.CRITICAL)

    def test_non_numeric_counter_raises(self):
        """Test that garbage counters are malformed."""
        with self.assertRaises(MalformedRecordError):
            map_link({"port_id": "1", "device_id": "1", "ifHighSpeed": "fast"})


class TestMapAlertBillSensor(unittest.TestCase):
    """Test cases for map_alert, map_bill and map_sensor."""

    def test_port_alert_links_to_port(self):
        """Test that port entity alerts carry a link id."""
        alert = map_alert({
            "alert_table_id": "55",
            "device_id": "2",
            "entity_type": "port",
            "entity_id": "7",
            "severity": "crit",
            "alert_status": "failed",
            "last_changed": 1700000000,
        })
        self.assertEqual(alert.alert_id, "55")
        self.assertEqual(alert.link_id, "7")
        self.assertTrue(alert.is_critical)
        self.assertFalse(alert.acknowledged)

    def test_explicit_acknowledged_strings(self):
        """Test that string flags are parsed, not truth-tested."""
        alert = map_alert({"alert_id": "1", "device_id": "2", "acknowledged": "false"})
        self.assertFalse(alert.acknowledged)
        alert = map_alert({"alert_id": "1", "device_id": "2", "acknowledged": "1"})
        self.assertTrue(alert.acknowledged)

    def test_bill_peak_usage(self):
        """Test bill charge and 95th percentile peak."""
        bill = map_bill({
            "bill_id": "4",
            "bill_name": "Transit",
            "port_id": "7",
            "bill_mrc": "38000",
            "rate_95th_in": 1_000_000_000,
            "rate_95th_out": 400_000_000,
        })
        self.assertEqual(bill.monthly_charge, 38000.0)
        self.assertAlmostEqual(bill.peak_usage_mbps, 1000.0)

    def test_bill_without_rates(self):
        """Test that a bill without rates has no peak."""
        bill = map_bill({"bill_id": "5", "bill_quota": 100})
        self.assertEqual(bill.monthly_charge, 100.0)
        self.assertIsNone(bill.peak_usage_mbps)

    def test_sensor_class_from_description(self):
        """Test temperature inference from the description."""
        sensor = map_sensor({
            "sensor_id": "1",
            "device_id": "2",
            "sensor_descr": "CPU Temp",
            "sensor_value": "41.5",
            "sensor_event": "alert",
        })
        self.assertEqual(sensor.sensor_class, "temperature")
        self.assertEqual(sensor.value, 41.5)
        self.assertFalse(sensor.is_ok)


class TestMapRecords(unittest.TestCase):
    """Test cases for batch mapping."""

    def test_skips_malformed_records(self):
        """Test that one bad record does not abort the batch."""
        records = [
            {"device_id": "1", "hostname": "a", "status": "1"},
            {"hostname": "no-id"},
            "garbage",
            {"device_id": "2", "hostname": "b", "status": "0"},
        ]
        devices, skipped = map_records(records, map_device)
        self.assertEqual([device.device_id for device in devices], ["1", "2"])
        self.assertEqual(skipped, 2)

    def test_forwards_keyword_arguments(self):
        """Test that mapper options are passed through."""
        from plazanet.utils.config import ThresholdConfig

        links, skipped = map_records(
            [{"port_id": "1", "device_id": "1", "ifHighSpeed": 100, "ifInOctets_perc": 60, "ifOperStatus": "up"}],
            map_link,
            thresholds=ThresholdConfig(util_warn=50.0)
        )
        self.assertEqual(skipped, 0)
        self.assertEqual(links[0].status, LinkStatus.WARNING)


if __name__ == "__main__":
    unittest.main()
