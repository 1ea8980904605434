"""
PlazaNetInsights - Data Models Package

Dataclass models for provider entities and derived records.
"""

from plazanet.models.entities import (
    AlertSeverity,
    LinkStatus,
    Device,
    Link,
    Alert,
    Bill,
    Sensor
)
from plazanet.models.derived import (
    SiteAggregate,
    PlazaAggregate,
    HealthScore,
    CriticalSite,
    SaturatedSite,
    CityTierClassification,
    EngineeringThreshold,
    EngineeringAlert,
    CostRecord
)

__all__ = [
    "AlertSeverity",
    "LinkStatus",
    "Device",
    "Link",
    "Alert",
    "Bill",
    "Sensor",
    "SiteAggregate",
    "PlazaAggregate",
    "HealthScore",
    "CriticalSite",
    "SaturatedSite",
    "CityTierClassification",
    "EngineeringThreshold",
    "EngineeringAlert",
    "CostRecord"
]
