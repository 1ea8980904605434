"""
PlazaNetInsights - Engineering Threshold Calculator

Evaluates each link against capacity-scaled engineering thresholds,
synthesizes capacity-planning alerts and ranks sites by saturation.

Status bands are mutually exclusive and checked from the top:
    utilization >= 90  -> capacity_risk
    utilization >= 80  -> critical
    utilization >= 70  -> warning
    otherwise          -> normal
"""

import logging
from typing import Dict, List, Optional

from plazanet.models.derived import EngineeringAlert, EngineeringThreshold, SaturatedSite, SiteAggregate
from plazanet.models.entities import Link
from plazanet.utils.config import ThresholdConfig


logger = logging.getLogger(__name__)

RECOMMENDED_ACTIONS = {
    "capacity_risk": "IMMEDIATE UPGRADE REQUIRED - Link saturated",
    "critical": "URGENT - Plan capacity upgrade, risk of service degradation",
    "warning": "Plan capacity upgrade within 30 days",
    "normal": "Monitor normal operation",
    "unknown": "Verify link telemetry - no utilization data",
}

ALERT_SEVERITIES = {
    "warning": "warning",
    "critical": "critical",
    "capacity_risk": "emergency",
}

ALERT_TITLES = {
    "warning": "High link utilization",
    "critical": "Critical link utilization",
    "capacity_risk": "Link at capacity risk",
}


class EngineeringThresholdCalculator:
    """
    Calculator for engineering thresholds and utilization alerts.

    Alerts are regenerated on every call; nothing is kept between runs.
    """

    def __init__(self, config: Optional[ThresholdConfig] = None):
        """
        Initialize threshold calculator.

        Args:
            config: Utilization bands and capacity scaling parameters
        """
        self.config = config or ThresholdConfig()
        logger.debug("EngineeringThresholdCalculator initialized")

    def engineering_threshold_mbps(self, capacity_mbps: float) -> float:
        """
        Capacity-scaled threshold.

        High-capacity links (>= 4000 Mbps) use a fixed 5000 Mbps ceiling;
        smaller links use 80% of capacity.
        """
        if capacity_mbps >= self.config.high_capacity_link_mbps:
            return self.config.high_capacity_threshold_mbps
        return capacity_mbps * self.config.threshold_ratio

    def evaluate_status(self, utilization: Optional[float]) -> str:
        """Map utilization to an engineering status."""
        if utilization is None:
            return "unknown"
        if utilization >= self.config.util_capacity_risk:
            return "capacity_risk"
        if utilization >= self.config.util_critical:
            return "critical"
        if utilization >= self.config.util_warn:
            return "warning"
        return "normal"

    def evaluate_link(self, link: Link) -> EngineeringThreshold:
        """Evaluate one link."""
        status = self.evaluate_status(link.utilization_pct)
        return EngineeringThreshold(
            link_id=link.link_id,
            device_id=link.device_id,
            capacity_mbps=link.capacity_mbps,
            threshold_mbps=self.engineering_threshold_mbps(link.capacity_mbps),
            current_utilization=link.utilization_pct,
            usage_mbps=link.usage_mbps,
            alert_status=status,
            recommended_action=RECOMMENDED_ACTIONS[status]
        )

    def evaluate_links(self, links: List[Link]) -> List[EngineeringThreshold]:
        """Evaluate links in input order."""
        evaluations = [self.evaluate_link(link) for link in links]

        counts: Dict[str, int] = {}
        for evaluation in evaluations:
            counts[evaluation.alert_status] = counts.get(evaluation.alert_status, 0) + 1
        logger.info(f"[OK] Evaluated {len(evaluations)} links: {counts}")
        return evaluations

    def generate_alerts(
        self,
        links: List[Link],
        link_plaza: Optional[Dict[str, str]] = None
    ) -> List[EngineeringAlert]:
        """
        Synthesize one alert per link in warning, critical or capacity_risk.

        Only links passed in produce alerts, so alerts for links missing from
        the current pass never surface. Alert ids are deterministic
        (util-<link_id>); two runs on the same links differ only in created_at.

        Args:
            links: Links of the current aggregation pass
            link_plaza: link_id -> plaza name

        Returns:
            Alerts ordered by severity (emergency first), then link order
        """
        link_plaza = link_plaza or {}
        alerts = []
        for evaluation in self.evaluate_links(links):
            severity = ALERT_SEVERITIES.get(evaluation.alert_status)
            if severity is None:
                continue
            alerts.append(EngineeringAlert(
                alert_id=f"util-{evaluation.link_id}",
                link_id=evaluation.link_id,
                alert_type="utilization",
                severity=severity,
                title=ALERT_TITLES[evaluation.alert_status],
                description=(
                    f"Link {evaluation.link_id} at {evaluation.current_utilization:.1f}% utilization "
                    f"({evaluation.capacity_mbps:.0f} Mbps capacity, "
                    f"engineering threshold {evaluation.threshold_mbps:.0f} Mbps)"
                ),
                current_value=round(evaluation.current_utilization, 1),
                threshold_value=self._band_floor(evaluation.alert_status),
                recommended_action=evaluation.recommended_action,
                plaza=link_plaza.get(evaluation.link_id, "Unknown")
            ))

        rank = {"emergency": 0, "critical": 1, "warning": 2}
        alerts.sort(key=lambda alert: rank[alert.severity])
        if alerts:
            logger.warning(f"[WARN] Generated {len(alerts)} engineering alerts")
        return alerts

    def _band_floor(self, status: str) -> float:
        return {
            "capacity_risk": self.config.util_capacity_risk,
            "critical": self.config.util_critical,
            "warning": self.config.util_warn,
        }[status]

    def rank_saturated_sites(
        self,
        sites: List[SiteAggregate],
        links: List[Link]
    ) -> List[SaturatedSite]:
        """
        Rank sites by saturation, most saturated first.

        A link counts as critical at or above the critical utilization band.
        Sites without utilization data sort last, in provider order.

        Args:
            sites: Site aggregates of the current pass
            links: Links of the same pass

        Returns:
            All sites as SaturatedSite, ranked
        """
        links_by_device: Dict[str, List[Link]] = {}
        for link in links:
            links_by_device.setdefault(link.device_id, []).append(link)

        ranked = []
        for site in sites:
            utilizations = [
                link.utilization_pct
                for device_id in site.device_ids
                for link in links_by_device.get(device_id, [])
                if link.utilization_pct is not None
            ]
            saturation = None
            if site.max_utilization is not None:
                saturation = max(site.max_utilization, site.mean_utilization or 0.0)
            ranked.append(SaturatedSite(
                site=site.site,
                plaza=site.plaza,
                saturation=saturation,
                max_utilization=site.max_utilization,
                mean_utilization=site.mean_utilization,
                critical_links=sum(1 for value in utilizations if value >= self.config.util_critical),
                links_with_data=site.links_with_data,
                device_count=site.device_count,
                device_ids=list(site.device_ids)
            ))

        ranked.sort(key=lambda entry: (entry.saturation is None, -(entry.saturation or 0.0)))
        logger.info(f"[OK] Ranked {len(ranked)} sites by saturation")
        return ranked
