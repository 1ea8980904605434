"""
PlazaNetInsights - Reporting Period Tests

Unit tests for biweekly period ids and labels.
"""

import unittest
from datetime import date, datetime, timezone

from plazanet.utils.periods import (
    biweekly_bounds,
    format_period_label,
    parse_period,
    resolve_period,
)


class TestPeriods(unittest.TestCase):
    """Test cases for the period helpers."""

    def test_biweekly_bounds(self):
        """Test first and second half of a month, including February."""
        self.assertEqual(biweekly_bounds(date(2026, 10, 15)), (date(2026, 10, 1), date(2026, 10, 15)))
        self.assertEqual(biweekly_bounds(date(2026, 2, 16)), (date(2026, 2, 16), date(2026, 2, 28)))

    def test_current_resolves_to_running_period(self):
        """Test the "current" alias."""
        now = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
        self.assertEqual(resolve_period("current", now), "2026-10-16_2026-10-31")

    def test_valid_id_passes_through(self):
        """Test that a well-formed id is returned unchanged."""
        self.assertEqual(resolve_period("2026-01-16_2026-02-01"), "2026-01-16_2026-02-01")

    def test_malformed_ids_rejected(self):
        """Test that typos are refused instead of becoming new cache keys."""
        for period in ("curent", "2026-10-16", "2026-10-16_2026-10-32", "2026-10-31_2026-10-16", ""):
            with self.subTest(period=period):
                with self.assertRaises(ValueError):
                    resolve_period(period)

    def test_parse_period(self):
        """Test parsing into dates."""
        self.assertEqual(parse_period("2026-10-01_2026-10-15"), (date(2026, 10, 1), date(2026, 10, 15)))

    def test_labels(self):
        """Test same-month and cross-month labels."""
        self.assertEqual(format_period_label("2026-02-16_2026-02-28"), "Feb 16-28")
        self.assertEqual(format_period_label("2026-01-16_2026-02-01"), "Jan 16-Feb 1")
        self.assertEqual(format_period_label("not-a-period"), "not-a-period")


if __name__ == "__main__":
    unittest.main()
