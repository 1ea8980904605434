"""
PlazaNetInsights - Health Calculator

Composite health scoring, critical-site classification and city tier
classification.

Health score (0-100):
    overall = 0.4 * device_availability + 0.35 * alert_score + 0.25 * performance_score

The weights are policy constants and can be tuned through HealthConfig.
"""

import logging
from typing import Dict, List, Optional, Tuple

from plazanet.models.derived import (
    CityTierClassification,
    CriticalSite,
    HealthScore,
    PlazaAggregate,
    SiteAggregate,
)
from plazanet.utils.config import HealthConfig, TierConfig
from plazanet.utils.errors import ComputationError


logger = logging.getLogger(__name__)

# (lower bound, status) checked top-down
HEALTH_STATUS_BANDS: Tuple[Tuple[float, str], ...] = (
    (90.0, "excellent"),
    (80.0, "good"),
    (70.0, "fair"),
    (60.0, "poor"),
)

# Site diagnosis bands for critical sites
SITE_CRITICAL_UTILIZATION = 90.0
SITE_WARNING_UTILIZATION = 80.0
SITE_CRITICAL_ALERTS = 3
SITE_CRITICAL_HEALTH = 60.0


class HealthCalculator:
    """
    Calculator for site health and classification.

    All methods are pure; the same aggregates always yield the same scores.
    """

    def __init__(
        self,
        health_config: Optional[HealthConfig] = None,
        tier_config: Optional[TierConfig] = None
    ):
        """
        Initialize health calculator.

        Args:
            health_config: Weights and critical-site rule parameters
            tier_config: Tier I minimums
        """
        self.config = health_config or HealthConfig()
        self.tiers = tier_config or TierConfig()

        weight_sum = self.config.device_weight + self.config.alert_weight + self.config.performance_weight
        if abs(weight_sum - 1.0) > 1e-6:
            raise ComputationError(f"Health weights must sum to 1.0, got {weight_sum}")
        logger.debug("HealthCalculator initialized")

    # ------------------------------------------------------------------
    # Sub-scores
    # ------------------------------------------------------------------

    @staticmethod
    def device_availability(total_devices: int, active_devices: int) -> float:
        """Percentage of active devices; 0 when there are no devices."""
        if total_devices <= 0:
            return 0.0
        return min(active_devices, total_devices) / total_devices * 100

    @staticmethod
    def alert_score(critical_alerts: int, warning_alerts: int, total_alerts: int) -> float:
        """
        Alert density sub-score.

        Ratios are taken against the total alert count, so a site with no
        alerts scores 100.
        """
        if total_alerts <= 0:
            return 100.0
        critical_ratio = critical_alerts / total_alerts
        warning_ratio = warning_alerts / total_alerts
        return 100.0 - min(critical_ratio * 50 + warning_ratio * 20, 100.0)

    @staticmethod
    def performance_score(avg_utilization: Optional[float]) -> Optional[float]:
        """
        Piecewise performance sub-score; optimum band centered at 70%.

        Returns None when utilization is unknown.
        """
        if avg_utilization is None:
            return None
        if avg_utilization > 90:
            return max(0.0, 100 - (avg_utilization - 90) * 2)
        if avg_utilization < 30:
            return 70 + (avg_utilization / 30) * 20
        return 90 + ((70 - abs(avg_utilization - 70)) / 70) * 10

    @staticmethod
    def get_status(score: float) -> str:
        """Map a health score to its status band."""
        for lower_bound, status in HEALTH_STATUS_BANDS:
            if score >= lower_bound:
                return status
        return "critical"

    # ------------------------------------------------------------------
    # Composite
    # ------------------------------------------------------------------

    def calculate(
        self,
        total_devices: int,
        active_devices: int,
        critical_alerts: int,
        warning_alerts: int,
        total_alerts: int,
        avg_utilization: Optional[float]
    ) -> HealthScore:
        """
        Calculate the composite health score.

        When utilization is unknown the performance weight is dropped and the
        remaining weights are renormalized, so missing telemetry neither
        rewards nor penalizes the score.
        """
        availability = self.device_availability(total_devices, active_devices)
        alerts = self.alert_score(critical_alerts, warning_alerts, total_alerts)
        performance = self.performance_score(avg_utilization)

        if performance is None:
            weight = self.config.device_weight + self.config.alert_weight
            overall = (
                self.config.device_weight * availability
                + self.config.alert_weight * alerts
            ) / weight
        else:
            overall = (
                self.config.device_weight * availability
                + self.config.alert_weight * alerts
                + self.config.performance_weight * performance
            )

        if not 0.0 <= overall <= 100.0 + 1e-9:
            raise ComputationError(f"Health score out of range: {overall}")
        overall = min(overall, 100.0)

        return HealthScore(
            device_availability=availability,
            alert_score=alerts,
            performance_score=performance,
            overall=overall,
            status=self.get_status(overall)
        )

    def calculate_for_site(self, site: SiteAggregate) -> HealthScore:
        """Health score of one site aggregate."""
        return self.calculate(
            total_devices=site.device_count,
            active_devices=site.active_device_count,
            critical_alerts=site.critical_alert_count,
            warning_alerts=site.warning_alert_count,
            total_alerts=site.alert_count,
            avg_utilization=site.mean_utilization
        )

    def calculate_network(self, sites: List[SiteAggregate]) -> HealthScore:
        """Network-wide health score over all sites."""
        utilizations = [site.mean_utilization for site in sites if site.mean_utilization is not None]
        return self.calculate(
            total_devices=sum(site.device_count for site in sites),
            active_devices=sum(site.active_device_count for site in sites),
            critical_alerts=sum(site.critical_alert_count for site in sites),
            warning_alerts=sum(site.warning_alert_count for site in sites),
            total_alerts=sum(site.alert_count for site in sites),
            avg_utilization=sum(utilizations) / len(utilizations) if utilizations else None
        )

    # ------------------------------------------------------------------
    # Critical sites
    # ------------------------------------------------------------------

    def is_critical_site(
        self,
        utilization: Optional[float],
        alert_count: int,
        health_score: float,
        threshold: Optional[float] = None
    ) -> bool:
        """
        Critical-site rule: any one of utilization, alert count or health
        score crossing its limit flags the site.
        """
        threshold = self.config.critical_site_threshold if threshold is None else threshold
        return (
            (utilization is not None and utilization >= threshold)
            or alert_count >= self.config.critical_alert_count
            or health_score <= self.config.critical_health_score
        )

    def classify_site_status(
        self,
        utilization: Optional[float],
        alert_count: int,
        health_score: float
    ) -> str:
        """Severity of a critical site: critical, warning or attention."""
        util = utilization or 0.0
        if (util >= SITE_CRITICAL_UTILIZATION
                or alert_count >= SITE_CRITICAL_ALERTS
                or health_score <= SITE_CRITICAL_HEALTH):
            return "critical"
        if (util >= SITE_WARNING_UTILIZATION
                or alert_count >= self.config.critical_alert_count
                or health_score <= self.config.critical_health_score):
            return "warning"
        return "attention"

    def identify_issues(
        self,
        utilization: Optional[float],
        alert_count: int,
        health_score: float,
        threshold: Optional[float] = None
    ) -> List[str]:
        """Human-readable issues behind a critical classification."""
        threshold = self.config.critical_site_threshold if threshold is None else threshold
        issues = []

        if utilization is not None:
            if utilization >= SITE_CRITICAL_UTILIZATION:
                issues.append("Critical port utilization")
            elif utilization >= threshold:
                issues.append("High port utilization")

        if alert_count >= SITE_CRITICAL_ALERTS:
            issues.append("Multiple device alerts")
        elif alert_count >= 1:
            issues.append("Device alerts present")

        if health_score <= SITE_CRITICAL_HEALTH:
            issues.append("Poor health score")
        elif health_score <= self.config.critical_health_score:
            issues.append("Health score warning")

        return issues

    def rank_critical_sites(
        self,
        sites: List[SiteAggregate],
        threshold: Optional[float] = None
    ) -> List[CriticalSite]:
        """
        Select and rank critical sites.

        Ordering: health score ascending, then utilization descending
        (unknown utilization sorts last among equal health).
        """
        critical = []
        for site in sites:
            health = self.calculate_for_site(site).overall
            if not self.is_critical_site(site.mean_utilization, site.alert_count, health, threshold):
                continue
            critical.append(CriticalSite(
                site=site.site,
                plaza=site.plaza,
                health_score=health,
                utilization=site.mean_utilization,
                alert_count=site.alert_count,
                device_count=site.device_count,
                link_count=site.link_count,
                status=self.classify_site_status(site.mean_utilization, site.alert_count, health),
                issues=self.identify_issues(site.mean_utilization, site.alert_count, health, threshold),
                device_ids=list(site.device_ids)
            ))

        critical.sort(key=lambda entry: (
            entry.health_score,
            -(entry.utilization if entry.utilization is not None else -1.0)
        ))
        logger.info(f"[OK] {len(critical)} of {len(sites)} sites classified critical")
        return critical

    @staticmethod
    def summarize_critical_sites(critical: List[CriticalSite], threshold: float) -> Dict[str, object]:
        """Summary block over the full (unlimited) critical-site list."""
        return {
            "total_critical_sites": len(critical),
            "average_health_score": (
                round(sum(entry.health_score for entry in critical) / len(critical), 1)
                if critical else 0.0
            ),
            "total_alerts": sum(entry.alert_count for entry in critical),
            "critical_threshold": threshold,
            "status_breakdown": {
                status: sum(1 for entry in critical if entry.status == status)
                for status in ("critical", "warning", "attention")
            }
        }

    # ------------------------------------------------------------------
    # City tiers
    # ------------------------------------------------------------------

    def classify_city_tier(self, plaza: PlazaAggregate) -> CityTierClassification:
        """
        Classify one plaza as Tier I or Tier II.

        Tier I needs every minimum met (radio bases, capacity, traffic).
        This is a hard gate, not a scored classifier. Each site of the plaza
        counts as one radio base.
        """
        radio_bases = plaza.site_count
        meets = (
            radio_bases >= self.tiers.tier1_min_radio_bases
            and plaza.total_capacity_mbps >= self.tiers.tier1_min_capacity_mbps
            and plaza.total_usage_mbps >= self.tiers.tier1_min_traffic_mbps
        )

        if meets:
            tier, priority = "I", "expansion"
            reason = (
                f"{radio_bases} radio bases, {plaza.total_capacity_mbps / 1000:.1f} Gbps capacity and "
                f"{plaza.total_usage_mbps / 1000:.1f} Gbps traffic meet all Tier I minimums"
            )
        else:
            tier, priority = "II", "optimization"
            reason = "Below Tier I minimums: " + ", ".join(self._tier_shortfalls(radio_bases, plaza))

        return CityTierClassification(
            plaza=plaza.plaza,
            tier=tier,
            radio_bases=radio_bases,
            total_links=plaza.link_count,
            total_capacity_mbps=plaza.total_capacity_mbps,
            total_traffic_mbps=plaza.total_usage_mbps,
            average_utilization=plaza.mean_utilization,
            priority=priority,
            classification_reason=reason
        )

    def _tier_shortfalls(self, radio_bases: int, plaza: PlazaAggregate) -> List[str]:
        shortfalls = []
        if radio_bases < self.tiers.tier1_min_radio_bases:
            shortfalls.append(f"radio bases {radio_bases} < {self.tiers.tier1_min_radio_bases}")
        if plaza.total_capacity_mbps < self.tiers.tier1_min_capacity_mbps:
            shortfalls.append(
                f"capacity {plaza.total_capacity_mbps:.0f} Mbps < {self.tiers.tier1_min_capacity_mbps:.0f} Mbps"
            )
        if plaza.total_usage_mbps < self.tiers.tier1_min_traffic_mbps:
            shortfalls.append(
                f"traffic {plaza.total_usage_mbps:.0f} Mbps < {self.tiers.tier1_min_traffic_mbps:.0f} Mbps"
            )
        return shortfalls

    def classify_city_tiers(self, plazas: List[PlazaAggregate]) -> List[CityTierClassification]:
        """Classify every plaza, keeping plaza order."""
        classifications = [self.classify_city_tier(plaza) for plaza in plazas]
        tier_one = sum(1 for entry in classifications if entry.tier == "I")
        logger.info(f"[OK] Classified {len(classifications)} cities ({tier_one} Tier I)")
        return classifications
