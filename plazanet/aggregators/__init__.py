"""
PlazaNetInsights - Aggregators Package

Site/plaza grouping and environmental rollups.
"""

from plazanet.aggregators.site_aggregator import (
    SiteAggregator,
    hostname_site_key,
    normalize_plaza
)
from plazanet.aggregators.environment_aggregator import EnvironmentAggregator

__all__ = [
    "SiteAggregator",
    "hostname_site_key",
    "normalize_plaza",
    "EnvironmentAggregator"
]
