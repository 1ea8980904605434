"""
PlazaNetInsights - Collectors Package

Mapping of raw Observium records into typed entities.
"""

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
    map_severity
)

__all__ = [
    "calculate_utilization",
    "clamp_utilization",
    "link_status",
    "map_alert",
    "map_bill",
    "map_device",
    "map_link",
    "map_records",
    "map_sensor",
    "map_severity"
]
