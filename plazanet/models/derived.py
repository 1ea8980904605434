"""
PlazaNetInsights - Derived Models

Records produced by the aggregation, health, threshold and cost engines.
Recomputed on every pipeline pass and never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


def _round(value: Optional[float], digits: int = 1) -> Optional[float]:
    return round(value, digits) if value is not None else None


@dataclass
class SiteAggregate:
    """
    Aggregate attributes of one inferred site.

    Utilization figures are equal-weight means over links with known
    utilization; None when no member link reported data.
    """
    site: str
    plaza: str
    device_count: int = 0
    active_device_count: int = 0
    link_count: int = 0
    links_with_data: int = 0
    mean_utilization: Optional[float] = None
    max_utilization: Optional[float] = None
    alert_count: int = 0
    critical_alert_count: int = 0
    warning_alert_count: int = 0
    total_capacity_mbps: float = 0.0
    total_usage_mbps: float = 0.0
    device_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for API consumption."""
        return {
            "site": self.site,
            "plaza": self.plaza,
            "device_count": self.device_count,
            "active_device_count": self.active_device_count,
            "link_count": self.link_count,
            "links_with_data": self.links_with_data,
            "utilization": _round(self.mean_utilization),
            "max_utilization": _round(self.max_utilization),
            "alert_count": self.alert_count,
            "critical_alert_count": self.critical_alert_count,
            "warning_alert_count": self.warning_alert_count,
            "total_capacity_mbps": round(self.total_capacity_mbps, 2),
            "total_usage_mbps": round(self.total_usage_mbps, 2),
            "device_ids": list(self.device_ids)
        }


@dataclass
class PlazaAggregate:
    """Aggregate attributes of a plaza (region), rolled up from its sites."""
    plaza: str
    site_count: int = 0
    device_count: int = 0
    active_device_count: int = 0
    link_count: int = 0
    mean_utilization: Optional[float] = None
    max_utilization: Optional[float] = None
    alert_count: int = 0
    total_capacity_mbps: float = 0.0
    total_usage_mbps: float = 0.0
    sites: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for API consumption."""
        return {
            "plaza": self.plaza,
            "site_count": self.site_count,
            "device_count": self.device_count,
            "active_device_count": self.active_device_count,
            "link_count": self.link_count,
            "utilization": _round(self.mean_utilization),
            "max_utilization": _round(self.max_utilization),
            "alert_count": self.alert_count,
            "total_capacity_mbps": round(self.total_capacity_mbps, 2),
            "total_usage_mbps": round(self.total_usage_mbps, 2),
            "sites": list(self.sites)
        }


@dataclass
class HealthScore:
    """Composite 0-100 health score and its sub-scores."""
    device_availability: float
    alert_score: float
    performance_score: Optional[float]
    overall: float
    status: str  # "excellent", "good", "fair", "poor", "critical"

    def to_dict(self) -> dict:
        return {
            "device_availability": round(self.device_availability, 1),
            "alert_score": round(self.alert_score, 1),
            "performance_score": _round(self.performance_score),
            "overall": round(self.overall, 1),
            "status": self.status
        }


@dataclass
class CriticalSite:
    """A site flagged by the critical-site rule, with its diagnosis."""
    site: str
    plaza: str
    health_score: float
    utilization: Optional[float]
    alert_count: int
    device_count: int
    link_count: int
    status: str  # "critical", "warning", "attention"
    issues: List[str] = field(default_factory=list)
    device_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "site": self.site,
            "plaza": self.plaza,
            "health_score": round(self.health_score, 1),
            "utilization": _round(self.utilization),
            "alert_count": self.alert_count,
            "device_count": self.device_count,
            "link_count": self.link_count,
            "status": self.status,
            "issues": list(self.issues),
            "device_ids": list(self.device_ids)
        }


@dataclass
class SaturatedSite:
    """
    A site ranked by saturation.

    Saturation is the site's busiest link utilization (never below the site
    mean); None when no member link reported data.
    """
    site: str
    plaza: str
    saturation: Optional[float]
    max_utilization: Optional[float]
    mean_utilization: Optional[float]
    critical_links: int
    links_with_data: int
    device_count: int
    device_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "site": self.site,
            "plaza": self.plaza,
            "saturation": _round(self.saturation),
            "max_utilization": _round(self.max_utilization),
            "mean_utilization": _round(self.mean_utilization),
            "critical_links": self.critical_links,
            "links_with_data": self.links_with_data,
            "device_count": self.device_count,
            "device_ids": list(self.device_ids)
        }


@dataclass
class CityTierClassification:
    """Tier I / Tier II classification of a plaza (city)."""
    plaza: str
    tier: str  # "I" or "II"
    radio_bases: int
    total_links: int
    total_capacity_mbps: float
    total_traffic_mbps: float
    average_utilization: Optional[float]
    priority: str  # "expansion" or "optimization"
    classification_reason: str

    def to_dict(self) -> dict:
        return {
            "plaza": self.plaza,
            "tier": self.tier,
            "radio_bases": self.radio_bases,
            "total_links": self.total_links,
            "total_capacity_gbps": round(self.total_capacity_mbps / 1000, 2),
            "total_traffic_gbps": round(self.total_traffic_mbps / 1000, 2),
            "average_utilization": _round(self.average_utilization),
            "priority": self.priority,
            "classification_reason": self.classification_reason
        }


@dataclass
class EngineeringThreshold:
    """Engineering threshold evaluation of one link."""
    link_id: str
    device_id: str
    capacity_mbps: float
    threshold_mbps: float
    current_utilization: Optional[float]
    usage_mbps: Optional[float]
    alert_status: str  # "normal", "warning", "critical", "capacity_risk", "unknown"
    recommended_action: str

    @property
    def exceeds_threshold(self) -> bool:
        """True when measured usage reaches the capacity-scaled ceiling."""
        return self.usage_mbps is not None and self.usage_mbps >= self.threshold_mbps

    def to_dict(self) -> dict:
        return {
            "link_id": self.link_id,
            "device_id": self.device_id,
            "capacity_mbps": self.capacity_mbps,
            "threshold_mbps": round(self.threshold_mbps, 2),
            "current_utilization": _round(self.current_utilization),
            "usage_mbps": _round(self.usage_mbps, 2),
            "exceeds_threshold": self.exceeds_threshold,
            "alert_status": self.alert_status,
            "recommended_action": self.recommended_action
        }


@dataclass
class EngineeringAlert:
    """
    An alert synthesized by the threshold or cost engine.

    alert_id is deterministic per link and alert type so repeated runs over
    identical input differ only in created_at.
    """
    alert_id: str
    link_id: str
    alert_type: str  # "utilization" or "cost"
    severity: str
    title: str
    description: str
    current_value: float
    threshold_value: float
    recommended_action: str
    plaza: str = "Unknown"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "alert_id": self.alert_id,
            "link_id": self.link_id,
            "alert_type": self.alert_type,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "current_value": self.current_value,
            "threshold_value": self.threshold_value,
            "recommended_action": self.recommended_action,
            "plaza": self.plaza,
            "created_at": self.created_at.isoformat()
        }


@dataclass
class CostRecord:
    """Cost efficiency of one link against the benchmark."""
    link_id: str
    device_id: str
    capacity_mbps: float
    monthly_recurring_charge: float
    peak_usage_mbps: float
    cost_per_mbps: float
    efficiency: str  # "excellent", "good", "poor", "critical"
    benchmark_cost_per_mbps: float
    cost_variance: float
    optimization_potential: float
    charge_source: str  # "bill" or "estimated"

    def to_dict(self) -> dict:
        return {
            "link_id": self.link_id,
            "device_id": self.device_id,
            "capacity_mbps": self.capacity_mbps,
            "monthly_recurring_charge": round(self.monthly_recurring_charge, 2),
            "peak_usage_mbps": round(self.peak_usage_mbps, 2),
            "cost_per_mbps": round(self.cost_per_mbps, 2),
            "efficiency": self.efficiency,
            "benchmark_cost_per_mbps": self.benchmark_cost_per_mbps,
            "cost_variance": round(self.cost_variance, 2),
            "optimization_potential": round(self.optimization_potential, 2),
            "charge_source": self.charge_source
        }
