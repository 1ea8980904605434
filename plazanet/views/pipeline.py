"""
PlazaNetInsights - Pipeline Views

The presentation-facing operations. Each view:
1. Checks the result cache (hits are returned as deep copies)
2. Joins an in-flight computation of the same key, if any
3. Collects telemetry under a request deadline
4. Runs the pure engines over the mapped entities
5. Tags the result with its source ("live" or "synthetic-fallback")

Upstream failures (unreachable, timed out, malformed, empty) are recovered
into the synthetic dataset. Configuration and computation errors propagate.
"""

import asyncio
import copy
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Union

from plazanet.aggregators.environment_aggregator import EnvironmentAggregator
from plazanet.aggregators.site_aggregator import SiteAggregator, SiteKeyFunc, hostname_site_key
from plazanet.api.observium_client import FetchResult
from plazanet.cache.result_cache import CacheTTLPolicy, NullCache, ResultCache
from plazanet.calculators.cost_calculator import CostEfficiencyCalculator
from plazanet.calculators.health_calculator import HealthCalculator
from plazanet.calculators.threshold_calculator import EngineeringThresholdCalculator
from plazanet.collectors.entity_mapper import (
    map_alert,
    map_bill,
    map_device,
    map_link,
    map_records,
    map_sensor,
)
from plazanet.models.entities import Alert, Bill, Device, Link, Sensor
from plazanet.utils.config import (
    DEFAULT_PLAZA_ALIASES,
    CostConfig,
    HealthConfig,
    OperationalConfig,
    ThresholdConfig,
    TierConfig,
)
from plazanet.utils.errors import UpstreamEmpty, UpstreamError, UpstreamTimeout, UpstreamUnavailable
from plazanet.utils.periods import PERIOD_MONTHS, format_period_label, resolve_period
from plazanet.views.fallback import synthetic_records


logger = logging.getLogger(__name__)

LIVE = "live"
SYNTHETIC_FALLBACK = "synthetic-fallback"

# Result handed to waiters when the leading request was cancelled
_ABANDONED = object()

NarrativeGenerator = Callable[[Dict[str, Any]], Union[str, Awaitable[str]]]


@dataclass
class TelemetrySnapshot:
    """Mapped entities of one collection pass."""
    devices: List[Device] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    alerts: List[Alert] = field(default_factory=list)
    bills: List[Bill] = field(default_factory=list)
    sensors: List[Sensor] = field(default_factory=list)
    source: str = LIVE
    partial_failures: int = 0
    skipped_records: int = 0


def default_narrative(metrics: Dict[str, Any]) -> str:
    """Plain template summary used when no narrative generator is injected."""
    utilization = metrics.get("average_utilization")
    utilization_text = f"{utilization:.1f}%" if utilization is not None else "unknown"
    text = (
        f"{metrics['scope']}: network health {metrics['network_health']['overall']:.1f} "
        f"({metrics['network_health']['status']}) across {metrics['total_sites']} sites and "
        f"{metrics['total_devices']} devices. Average utilization {utilization_text}. "
        f"{metrics['critical_sites']} critical sites and "
        f"{metrics['engineering_alerts']['total']} engineering alerts."
    )
    if metrics.get("source") == SYNTHETIC_FALLBACK:
        text += " Figures are synthetic; live telemetry was unavailable."
    return text


class PlazaNetPipeline:
    """
    Derived-view pipeline over an Observium client.

    One pipeline instance may serve concurrent requests; the result cache is
    the only state shared between them.
    """

    def __init__(
        self,
        client: Any,
        cache: Optional[Any] = None,
        operational: Optional[OperationalConfig] = None,
        thresholds: Optional[ThresholdConfig] = None,
        health: Optional[HealthConfig] = None,
        tiers: Optional[TierConfig] = None,
        costs: Optional[CostConfig] = None,
        plaza_aliases: Optional[Dict[str, str]] = None,
        narrative_generator: Optional[NarrativeGenerator] = None,
        site_key_func: SiteKeyFunc = hostname_site_key
    ):
        """
        Initialize the pipeline.

        Args:
            client: ObserviumAPIClient (or anything with fetch/fetch_per_device)
            cache: ResultCache; None disables caching
            operational: Request deadline settings
            thresholds: Utilization bands
            health: Health weights and critical-site rule
            tiers: Tier I minimums
            costs: Cost benchmark and bands
            plaza_aliases: Alias -> plaza name table
            narrative_generator: Callable turning summary metrics into prose
            site_key_func: Device -> site key heuristic
        """
        self.client = client
        self.cache = cache if cache is not None else NullCache()
        self.operational = operational or OperationalConfig()
        self.narrative_generator = narrative_generator

        self.aggregator = SiteAggregator(
            site_key_func,
            DEFAULT_PLAZA_ALIASES if plaza_aliases is None else plaza_aliases
        )
        self.health = HealthCalculator(health, tiers)
        self.thresholds = EngineeringThresholdCalculator(thresholds)
        self.costs = CostEfficiencyCalculator(costs)

        self._inflight: Dict[str, asyncio.Future] = {}
        logger.info("[OK] PlazaNetPipeline initialized")

    @classmethod
    def from_config(
        cls,
        client: Any,
        config: Any,
        narrative_generator: Optional[NarrativeGenerator] = None
    ) -> "PlazaNetPipeline":
        """Build a pipeline (and its cache) from a loaded Config."""
        if config.cache.enabled:
            cache = ResultCache(CacheTTLPolicy(
                fast=config.cache.ttl_fast,
                trend=config.cache.ttl_trend,
                narrative=config.cache.ttl_narrative
            ))
        else:
            cache = NullCache()
        return cls(
            client,
            cache=cache,
            operational=config.operational,
            thresholds=config.thresholds,
            health=config.health,
            tiers=config.tiers,
            costs=config.costs,
            plaza_aliases=config.plaza_aliases,
            narrative_generator=narrative_generator
        )

    # ------------------------------------------------------------------
    # Cache and coalescing
    # ------------------------------------------------------------------

    async def _cached(
        self,
        key: str,
        compute: Callable[[], Awaitable[Dict[str, Any]]],
        data_class: str = "fast"
    ) -> Dict[str, Any]:
        """
        Serve a key from cache, an in-flight computation, or a fresh one.

        Only live results are cached; fallback results are recomputed on the
        next request so recovery of the upstream is picked up immediately.
        When the request leading a computation is cancelled, its waiters are
        released and one of them takes over.
        """
        while True:
            value, hit = self.cache.get(key)
            if hit:
                logger.debug(f"Cache hit: {key}")
                return copy.deepcopy(value)

            inflight = self._inflight.get(key)
            if inflight is None:
                return await self._lead(key, compute, data_class)

            logger.debug(f"Joining in-flight computation: {key}")
            result = await asyncio.shield(inflight)
            if result is not _ABANDONED:
                return copy.deepcopy(result)
            logger.debug(f"In-flight computation abandoned, retrying: {key}")

    async def _lead(
        self,
        key: str,
        compute: Callable[[], Awaitable[Dict[str, Any]]],
        data_class: str
    ) -> Dict[str, Any]:
        """Run a computation other requests for the same key can join."""
        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await compute()
        except asyncio.CancelledError:
            future.set_result(_ABANDONED)
            raise
        except Exception as error:
            future.set_exception(error)
            # Waiters re-raise it; mark retrieved so an unawaited future stays quiet
            future.exception()
            raise
        finally:
            self._inflight.pop(key, None)

        if result["source"] == LIVE:
            self.cache.set(key, result, data_class=data_class)
        future.set_result(result)
        return copy.deepcopy(result)

    def invalidate(self, prefix: Optional[str] = None) -> int:
        """Invalidate cached views by key prefix, or everything."""
        if prefix is None:
            count = self.cache.get_stats().get("entries", 0)
            self.cache.clear()
            return count
        return self.cache.invalidate(prefix=prefix)

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def _map_snapshot(
        self,
        raw: Dict[str, List[Dict[str, Any]]],
        plaza_filter: Optional[str],
        source: str = LIVE
    ) -> TelemetrySnapshot:
        """Map raw records into entities, keeping only the filtered devices."""
        devices, skipped = map_records(raw.get("devices", []), map_device)
        devices = self.aggregator.filter_devices_by_plaza(devices, plaza_filter)
        device_set = {device.device_id for device in devices}

        links, skipped_links = map_records(raw.get("ports", []), map_link, thresholds=self.thresholds.config)
        alerts, skipped_alerts = map_records(raw.get("alerts", []), map_alert)
        bills, skipped_bills = map_records(raw.get("bills", []), map_bill)
        sensors, skipped_sensors = map_records(raw.get("sensors", []), map_sensor)

        return TelemetrySnapshot(
            devices=devices,
            links=[link for link in links if link.device_id in device_set],
            alerts=[alert for alert in alerts if alert.device_id in device_set],
            bills=bills,
            sensors=[sensor for sensor in sensors if sensor.device_id in device_set],
            source=source,
            skipped_records=skipped + skipped_links + skipped_alerts + skipped_bills + skipped_sensors
        )

    async def _fetch_collection(self, collection: str, timeout: float) -> FetchResult:
        """Fetch a whole collection; failures become a one-query FetchResult."""
        try:
            records = await asyncio.wait_for(self.client.fetch(collection), timeout=timeout)
            return FetchResult(collection=collection, records=records, total=1)
        except asyncio.TimeoutError:
            logger.warning(f"[WARN] {collection} fetch exceeded the request deadline")
        except UpstreamError as error:
            logger.warning(f"[WARN] {collection} fetch failed: {error}")
        return FetchResult(collection=collection, failures=1, total=1)

    async def _collect(
        self,
        collections: Sequence[str],
        plaza_filter: Optional[str] = None
    ) -> TelemetrySnapshot:
        """
        Collect the device inventory plus the requested collections.

        Ports and sensors are queried per device; alerts and bills as whole
        collections. All of it shares one request deadline.

        Raises:
            UpstreamEmpty: No devices at all
            UpstreamError: Device inventory (or every port query) failed
        """
        loop = asyncio.get_running_loop()
        deadline_at = loop.time() + self.operational.request_deadline

        def remaining() -> float:
            return max(0.0, deadline_at - loop.time())

        try:
            raw_devices = await asyncio.wait_for(self.client.fetch("devices"), timeout=remaining())
        except asyncio.TimeoutError:
            raise UpstreamTimeout("Device inventory exceeded the request deadline", "devices")
        if not raw_devices:
            raise UpstreamEmpty("devices")

        mapped_devices, _ = map_records(raw_devices, map_device)
        if not mapped_devices:
            raise UpstreamEmpty("devices")
        device_ids = [
            device.device_id
            for device in self.aggregator.filter_devices_by_plaza(mapped_devices, plaza_filter)
        ]

        jobs: Dict[str, Awaitable[FetchResult]] = {}
        for collection in collections:
            if collection in ("ports", "sensors"):
                jobs[collection] = self.client.fetch_per_device(collection, device_ids, deadline=remaining())
            else:
                jobs[collection] = self._fetch_collection(collection, remaining())

        results = dict(zip(jobs.keys(), await asyncio.gather(*jobs.values())))

        ports = results.get("ports")
        if ports is not None and ports.total and ports.failures == ports.total:
            raise UpstreamUnavailable(f"All {ports.total} port queries failed", "ports")

        raw = {collection: result.records for collection, result in results.items()}
        raw["devices"] = raw_devices
        snapshot = self._map_snapshot(raw, plaza_filter)
        snapshot.partial_failures = sum(result.failures for result in results.values())

        if snapshot.partial_failures:
            logger.warning(f"[WARN] Collected with {snapshot.partial_failures} failed sub-queries")
        return snapshot

    async def _run_view(
        self,
        view: str,
        collections: Sequence[str],
        build: Callable[[TelemetrySnapshot], Any],
        plaza_filter: Optional[str] = None
    ) -> Dict[str, Any]:
        """Collect, build and tag one view, falling back on upstream failure."""
        logger.info(f"[...] Computing {view}")
        fallback_reason = None
        try:
            snapshot = await self._collect(collections, plaza_filter)
        except UpstreamEmpty as error:
            fallback_reason, detail = "upstream_empty", str(error)
        except UpstreamError as error:
            fallback_reason, detail = "upstream_unavailable", str(error)

        if fallback_reason is not None:
            logger.warning(f"[WARN] {view}: {detail}; serving synthetic fallback")
            snapshot = self._map_snapshot(synthetic_records(), plaza_filter, source=SYNTHETIC_FALLBACK)

        payload = build(snapshot)
        if inspect.isawaitable(payload):
            payload = await payload

        result = dict(payload)
        result.update({
            "source": snapshot.source,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "partial_failures": snapshot.partial_failures,
            "skipped_records": snapshot.skipped_records,
            "degraded": snapshot.source != LIVE or snapshot.partial_failures > 0,
        })
        if fallback_reason is not None:
            result["fallback_reason"] = fallback_reason

        logger.info(f"[OK] {view} computed (source={snapshot.source})")
        return result

    # ------------------------------------------------------------------
    # Shared derivations
    # ------------------------------------------------------------------

    def _link_plaza(self, snapshot: TelemetrySnapshot) -> Dict[str, str]:
        device_plaza = self.aggregator.device_plaza_map(snapshot.devices)
        return {link.link_id: device_plaza.get(link.device_id, "Unknown") for link in snapshot.links}

    @staticmethod
    def _device_hostnames(devices: Iterable[Device]) -> Dict[str, str]:
        return {device.device_id: device.hostname for device in devices}

    def _capacity_payload(self, snapshot: TelemetrySnapshot) -> Dict[str, Any]:
        sites = self.aggregator.aggregate_sites(snapshot.devices, snapshot.links, snapshot.alerts)
        plazas = self.aggregator.aggregate_plazas(sites)
        utilizations = [site.mean_utilization for site in sites if site.mean_utilization is not None]

        site_rows = []
        for site in sites:
            row = site.to_dict()
            row["health"] = self.health.calculate_for_site(site).to_dict()
            site_rows.append(row)

        return {
            "sites": site_rows,
            "plazas": [plaza.to_dict() for plaza in plazas],
            "network_health": self.health.calculate_network(sites).to_dict(),
            "summary": {
                "total_plazas": len(plazas),
                "total_sites": len(sites),
                "total_devices": sum(site.device_count for site in sites),
                "active_devices": sum(site.active_device_count for site in sites),
                "total_links": len(snapshot.links),
                "links_without_data": sum(1 for link in snapshot.links if not link.has_utilization),
                "average_utilization": (
                    round(sum(utilizations) / len(utilizations), 1) if utilizations else None
                ),
                "max_utilization": round(max(utilizations), 1) if utilizations else None,
                "total_capacity_mbps": round(sum(site.total_capacity_mbps for site in sites), 2),
                "total_usage_mbps": round(sum(site.total_usage_mbps for site in sites), 2),
            }
        }

    def _alerts_payload(self, snapshot: TelemetrySnapshot, period_id: str) -> Dict[str, Any]:
        evaluations = self.thresholds.evaluate_links(snapshot.links)
        alerts = self.thresholds.generate_alerts(snapshot.links, self._link_plaza(snapshot))
        return {
            "period": period_id,
            "period_label": format_period_label(period_id),
            "alerts": [alert.to_dict() for alert in alerts],
            "thresholds": [
                evaluation.to_dict() for evaluation in evaluations
                if evaluation.alert_status != "normal"
            ],
            "summary": {
                "total": len(alerts),
                "by_severity": {
                    severity: sum(1 for alert in alerts if alert.severity == severity)
                    for severity in ("emergency", "critical", "warning")
                },
                "links_evaluated": len(evaluations),
                "links_without_data": sum(1 for evaluation in evaluations if evaluation.alert_status == "unknown"),
                "links_exceeding_threshold": sum(1 for evaluation in evaluations if evaluation.exceeds_threshold),
            }
        }

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def get_site_capacity(self, plaza_filter: Optional[str] = None) -> Dict[str, Any]:
        """Per-site and per-plaza capacity utilization."""
        key = f"site-capacity:{(plaza_filter or 'all').lower()}"
        return await self._cached(key, lambda: self._run_view(
            "site capacity", ("ports", "alerts"), self._capacity_payload, plaza_filter
        ))

    async def get_critical_sites(self, limit: int = 10, threshold: Optional[float] = None) -> Dict[str, Any]:
        """
        Ranked critical sites plus a summary over all of them.

        Args:
            limit: Maximum sites in "data" (the summary counts all)
            threshold: Utilization that flags a site (default from config)
        """
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        threshold = self.health.config.critical_site_threshold if threshold is None else threshold

        def build(snapshot: TelemetrySnapshot) -> Dict[str, Any]:
            sites = self.aggregator.aggregate_sites(snapshot.devices, snapshot.links, snapshot.alerts)
            critical = self.health.rank_critical_sites(sites, threshold)
            return {
                "data": [entry.to_dict() for entry in critical[:limit]],
                "summary": self.health.summarize_critical_sites(critical, threshold)
            }

        key = f"critical-sites:{limit}:{threshold:g}"
        return await self._cached(key, lambda: self._run_view(
            "critical sites", ("ports", "alerts"), build
        ))

    async def get_saturated_sites(self, limit: int = 5) -> Dict[str, Any]:
        """
        Sites ranked by saturation (busiest link utilization).

        Args:
            limit: Maximum sites in "data" (the summary counts all)
        """
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")

        def build(snapshot: TelemetrySnapshot) -> Dict[str, Any]:
            sites = self.aggregator.aggregate_sites(snapshot.devices, snapshot.links, [])
            ranked = self.thresholds.rank_saturated_sites(sites, snapshot.links)
            measured = [entry for entry in ranked if entry.saturation is not None]
            return {
                "data": [entry.to_dict() for entry in ranked[:limit]],
                "summary": {
                    "total_sites": len(ranked),
                    "sites_with_data": len(measured),
                    "saturated_sites": sum(
                        1 for entry in measured if entry.saturation >= self.thresholds.config.util_critical
                    ),
                    "max_saturation": round(measured[0].saturation, 1) if measured else None,
                    "critical_links": sum(entry.critical_links for entry in ranked),
                }
            }

        return await self._cached(f"saturated-sites:{limit}", lambda: self._run_view(
            "saturated sites", ("ports",), build
        ))

    async def get_engineering_alerts(self, period: str = "current") -> Dict[str, Any]:
        """Engineering-threshold alerts for a biweekly reporting period."""
        period_id = resolve_period(period)
        key = f"engineering-alerts:{period_id}"
        return await self._cached(key, lambda: self._run_view(
            "engineering alerts", ("ports",), lambda snapshot: self._alerts_payload(snapshot, period_id)
        ))

    async def get_cost_analysis(self, period: str = "monthly") -> Dict[str, Any]:
        """Cost-per-Mbps ranking, summary and cost alerts."""
        if period not in PERIOD_MONTHS:
            raise ValueError(f"Unknown billing period: {period!r}")

        def build(snapshot: TelemetrySnapshot) -> Dict[str, Any]:
            analysis = self.costs.analyze(
                snapshot.links, snapshot.bills, period, self._device_hostnames(snapshot.devices)
            )
            alerts = self.costs.generate_cost_alerts(analysis["records"], self._link_plaza(snapshot))
            return {
                "data": [record.to_dict() for record in analysis["records"]],
                "summary": analysis["summary"],
                "alerts": [alert.to_dict() for alert in alerts]
            }

        return await self._cached(
            f"cost-analysis:{period}",
            lambda: self._run_view("cost analysis", ("ports", "bills"), build),
            data_class="trend"
        )

    async def get_city_tiers(self) -> Dict[str, Any]:
        """Tier I / Tier II classification of every plaza."""
        def build(snapshot: TelemetrySnapshot) -> Dict[str, Any]:
            sites = self.aggregator.aggregate_sites(snapshot.devices, snapshot.links, [])
            tiers = self.health.classify_city_tiers(self.aggregator.aggregate_plazas(sites))
            return {
                "data": [entry.to_dict() for entry in tiers],
                "summary": {
                    "total_cities": len(tiers),
                    "tier_i": sum(1 for entry in tiers if entry.tier == "I"),
                    "tier_ii": sum(1 for entry in tiers if entry.tier == "II"),
                }
            }

        return await self._cached(
            "city-tiers:all",
            lambda: self._run_view("city tiers", ("ports",), build),
            data_class="trend"
        )

    async def get_environmental_summary(
        self,
        plaza_filter: Optional[str] = None,
        alert_threshold: float = 35.0
    ) -> Dict[str, Any]:
        """Per-plaza temperature/humidity/voltage rollup and temperature alerts."""
        aggregator = EnvironmentAggregator(alert_threshold)

        def build(snapshot: TelemetrySnapshot) -> Dict[str, Any]:
            return aggregator.aggregate(
                snapshot.sensors,
                self.aggregator.device_plaza_map(snapshot.devices),
                self._device_hostnames(snapshot.devices)
            )

        key = f"environment:{(plaza_filter or 'all').lower()}:{alert_threshold:g}"
        return await self._cached(key, lambda: self._run_view(
            "environmental summary", ("sensors",), build, plaza_filter
        ))

    async def get_executive_summary(self, plaza_filter: Optional[str] = None) -> Dict[str, Any]:
        """
        Aggregated metrics plus a narrative produced by the injected generator.

        A failing generator degrades to the template narrative.
        """
        async def build(snapshot: TelemetrySnapshot) -> Dict[str, Any]:
            capacity = self._capacity_payload(snapshot)
            sites = self.aggregator.aggregate_sites(snapshot.devices, snapshot.links, snapshot.alerts)
            critical = self.health.rank_critical_sites(sites)
            alerts = self.thresholds.generate_alerts(snapshot.links, self._link_plaza(snapshot))
            costs = self.costs.analyze(
                snapshot.links, snapshot.bills, "monthly", self._device_hostnames(snapshot.devices)
            )

            metrics = {
                "scope": plaza_filter or "All plazas",
                "source": snapshot.source,
                "network_health": capacity["network_health"],
                "total_sites": capacity["summary"]["total_sites"],
                "total_devices": capacity["summary"]["total_devices"],
                "active_devices": capacity["summary"]["active_devices"],
                "average_utilization": capacity["summary"]["average_utilization"],
                "critical_sites": len(critical),
                "top_critical_sites": [entry.site for entry in critical[:3]],
                "engineering_alerts": {
                    "total": len(alerts),
                    "emergency": sum(1 for alert in alerts if alert.severity == "emergency"),
                    "critical": sum(1 for alert in alerts if alert.severity == "critical"),
                    "warning": sum(1 for alert in alerts if alert.severity == "warning"),
                },
                "monthly_cost": costs["summary"]["total_monthly_cost"],
                "cost_per_mbps": costs["summary"]["cost_per_mbps"],
            }

            narrative_source = "template"
            narrative = default_narrative(metrics)
            if self.narrative_generator is not None:
                try:
                    generated = self.narrative_generator(copy.deepcopy(metrics))
                    if inspect.isawaitable(generated):
                        generated = await generated
                    narrative, narrative_source = str(generated), "generator"
                except Exception as error:
                    logger.warning(f"[WARN] Narrative generator failed, using template: {error}")

            return {"metrics": metrics, "narrative": narrative, "narrative_source": narrative_source}

        key = f"executive-summary:{(plaza_filter or 'all').lower()}"
        return await self._cached(
            key,
            lambda: self._run_view("executive summary", ("ports", "alerts", "bills"), build, plaza_filter),
            data_class="narrative"
        )
