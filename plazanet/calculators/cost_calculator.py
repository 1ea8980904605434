"""
PlazaNetInsights - Cost Efficiency Calculator

Joins billing records to links and computes cost per Mbps against a fixed
benchmark.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from plazanet.models.derived import CostRecord, EngineeringAlert
from plazanet.models.entities import Bill, Link
from plazanet.utils.config import CostConfig
from plazanet.utils.periods import PERIOD_MONTHS


logger = logging.getLogger(__name__)


class CostEfficiencyCalculator:
    """
    Calculator for link cost efficiency.

    Tiers (cost per Mbps): <=25 excellent, <=40 good, <=60 poor, else critical.
    """

    def __init__(self, config: Optional[CostConfig] = None):
        """
        Initialize cost calculator.

        Args:
            config: Benchmark and efficiency bands
        """
        self.config = config or CostConfig()
        logger.debug("CostEfficiencyCalculator initialized")

    def efficiency_tier(self, cost_per_mbps: float) -> str:
        """Map cost per Mbps to an efficiency tier."""
        if cost_per_mbps <= self.config.excellent_threshold:
            return "excellent"
        if cost_per_mbps <= self.config.good_threshold:
            return "good"
        if cost_per_mbps <= self.config.poor_threshold:
            return "poor"
        return "critical"

    def cost_per_mbps(self, monthly_charge: float, peak_usage_mbps: float) -> float:
        """Charge over peak usage; the benchmark base rate when peak is 0."""
        if peak_usage_mbps <= 0:
            return self.config.benchmark_cost_per_mbps
        return monthly_charge / peak_usage_mbps

    @staticmethod
    def index_bills(bills: List[Bill]) -> Tuple[Dict[str, Bill], Dict[str, Bill], Dict[str, Bill]]:
        """
        Index bills by port id, device id and hostname (first bill wins).

        A bill that names a port belongs to that port only; device and hostname
        entries come from bills without a port.
        """
        by_port: Dict[str, Bill] = {}
        by_device: Dict[str, Bill] = {}
        by_hostname: Dict[str, Bill] = {}
        for bill in bills:
            if bill.port_id:
                by_port.setdefault(bill.port_id, bill)
                continue
            if bill.device_id:
                by_device.setdefault(bill.device_id, bill)
            if bill.hostname:
                by_hostname.setdefault(bill.hostname.lower(), bill)
        return by_port, by_device, by_hostname

    @staticmethod
    def match_bill(
        link: Link,
        bill_index: Tuple[Dict[str, Bill], Dict[str, Bill], Dict[str, Bill]],
        hostname: Optional[str] = None
    ) -> Optional[Bill]:
        """Find the bill of a link: port id, then device id, then hostname."""
        by_port, by_device, by_hostname = bill_index
        bill = by_port.get(link.link_id) or by_device.get(link.device_id)
        if bill is None and hostname:
            bill = by_hostname.get(hostname.lower())
        return bill

    def calculate_link_cost(self, link: Link, bill: Optional[Bill] = None) -> CostRecord:
        """
        Cost record of one link.

        Monthly charge comes from the bill, else capacity times the base rate.
        Peak usage comes from the bill's 95th percentile, else the link's live
        usage, else 0.
        """
        if bill is not None and bill.monthly_charge is not None:
            charge, source = bill.monthly_charge, "bill"
        else:
            charge, source = link.capacity_mbps * self.config.benchmark_cost_per_mbps, "estimated"

        peak = bill.peak_usage_mbps if bill is not None else None
        if peak is None:
            peak = link.usage_mbps if link.usage_mbps is not None else 0.0

        cpm = self.cost_per_mbps(charge, peak)
        tier = self.efficiency_tier(cpm)

        return CostRecord(
            link_id=link.link_id,
            device_id=link.device_id,
            capacity_mbps=link.capacity_mbps,
            monthly_recurring_charge=charge,
            peak_usage_mbps=peak,
            cost_per_mbps=cpm,
            efficiency=tier,
            benchmark_cost_per_mbps=self.config.benchmark_cost_per_mbps,
            cost_variance=cpm - self.config.benchmark_cost_per_mbps,
            optimization_potential=charge * self.config.optimization_ratio if tier == "critical" else 0.0,
            charge_source=source
        )

    def analyze(
        self,
        links: List[Link],
        bills: List[Bill],
        period: str = "monthly",
        device_hostname: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Cost analysis over all links.

        Args:
            links: Links of the current pass
            bills: Billing records
            period: monthly, quarterly or yearly
            device_hostname: device_id -> hostname, for hostname bill matching

        Returns:
            Dictionary with "records" (ranked by cost per Mbps, descending)
            and "summary"

        Raises:
            ValueError: If period is not a known billing period
        """
        if period not in PERIOD_MONTHS:
            raise ValueError(f"Unknown billing period: {period!r}")
        months = PERIOD_MONTHS[period]
        device_hostname = device_hostname or {}

        bill_index = self.index_bills(bills)
        # Each bill is charged once; later links of a billed device are estimated
        charged_bills = set()
        records = []
        for link in links:
            bill = self.match_bill(link, bill_index, device_hostname.get(link.device_id))
            if bill is not None:
                if bill.bill_id in charged_bills:
                    bill = None
                else:
                    charged_bills.add(bill.bill_id)
            records.append(self.calculate_link_cost(link, bill))
        records.sort(key=lambda record: record.cost_per_mbps, reverse=True)

        total_charge = sum(record.monthly_recurring_charge for record in records)
        total_capacity = sum(record.capacity_mbps for record in records)
        total_peak = sum(record.peak_usage_mbps for record in records)
        over_provisioned = [
            record for record in records
            if record.capacity_mbps > 0
            and record.peak_usage_mbps < record.capacity_mbps * self.config.over_provisioned_ratio
        ]

        summary = {
            "period": period,
            "period_months": months,
            "link_count": len(records),
            "billed_links": sum(1 for record in records if record.charge_source == "bill"),
            "total_monthly_cost": round(total_charge, 2),
            "total_period_cost": round(total_charge * months, 2),
            "total_capacity_mbps": round(total_capacity, 2),
            "total_peak_usage_mbps": round(total_peak, 2),
            "cost_per_mbps": round(self.cost_per_mbps(total_charge, total_peak), 2),
            "benchmark_cost_per_mbps": self.config.benchmark_cost_per_mbps,
            "utilization_efficiency": round(total_peak / total_capacity * 100, 1) if total_capacity else None,
            "over_provisioned_links": len(over_provisioned),
            "under_utilized_mbps": round(
                sum(record.capacity_mbps - record.peak_usage_mbps for record in over_provisioned), 2
            ),
            "optimization_potential": round(
                sum(record.optimization_potential for record in records) * months, 2
            ),
            "efficiency_breakdown": {
                tier: sum(1 for record in records if record.efficiency == tier)
                for tier in ("excellent", "good", "poor", "critical")
            }
        }

        logger.info(
            f"[OK] Cost analysis over {len(records)} links: "
            f"{summary['cost_per_mbps']} per Mbps ({period})"
        )
        return {"records": records, "summary": summary}

    def generate_cost_alerts(
        self,
        records: List[CostRecord],
        link_plaza: Optional[Dict[str, str]] = None
    ) -> List[EngineeringAlert]:
        """One warning alert per critical-tier link (id cost-<link_id>)."""
        link_plaza = link_plaza or {}
        return [
            EngineeringAlert(
                alert_id=f"cost-{record.link_id}",
                link_id=record.link_id,
                alert_type="cost",
                severity="warning",
                title="Inefficient link cost",
                description=(
                    f"Link {record.link_id} costs {record.cost_per_mbps:.2f} per Mbps "
                    f"against a benchmark of {record.benchmark_cost_per_mbps:.2f}"
                ),
                current_value=round(record.cost_per_mbps, 2),
                threshold_value=self.config.poor_threshold,
                recommended_action="Review carrier contract and negotiate better rates",
                plaza=link_plaza.get(record.link_id, "Unknown")
            )
            for record in records
            if record.efficiency == "critical"
        ]
