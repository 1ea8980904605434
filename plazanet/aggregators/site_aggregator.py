"""
PlazaNetInsights - Site Aggregator

Groups devices into inferred sites and sites into plazas, then reduces member
links and alerts into per-group aggregates.

Site inference is a heuristic. The default key is the first three hyphen
tokens of the hostname (CDMX-Norte-01-SW1 -> CDMX-Norte-01), falling back to
the device location. Two devices with coincidentally similar hostname prefixes
in different buildings are merged, so site boundaries are advisory. The key
function is injectable so the heuristic can be replaced without touching the
scoring engines.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional

from plazanet.models.derived import PlazaAggregate, SiteAggregate
from plazanet.models.entities import Alert, AlertSeverity, Device, Link


logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

SiteKeyFunc = Callable[[Device], str]


def hostname_site_key(device: Device) -> str:
    """
    Derive a site key from a device.

    Order: first three hyphen-delimited hostname tokens, then the location
    field, then "Unknown".
    """
    tokens = (device.hostname or "").split("-")
    if len(tokens) >= 3 and all(tokens[:3]):
        return "-".join(tokens[:3])
    return device.location or UNKNOWN


def normalize_plaza(location: Optional[str], aliases: Optional[Dict[str, str]] = None) -> str:
    """
    Normalize a raw location into a plaza name through the alias table.

    Args:
        location: Raw device location
        aliases: Lower-cased alias -> plaza name

    Returns:
        Plaza name ("Unknown" when location is empty)
    """
    if not location or not location.strip():
        return UNKNOWN
    cleaned = location.strip()
    return (aliases or {}).get(cleaned.lower(), cleaned)


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


class SiteAggregator:
    """
    Grouping and aggregation engine.

    Groups are emitted in the order their first device was returned by the
    provider; nothing is re-sorted here.
    """

    def __init__(
        self,
        site_key_func: SiteKeyFunc = hostname_site_key,
        plaza_aliases: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the aggregator.

        Args:
            site_key_func: Device -> site key heuristic
            plaza_aliases: Lower-cased alias -> plaza name
        """
        self.site_key_func = site_key_func
        self.plaza_aliases = {alias.lower(): plaza for alias, plaza in (plaza_aliases or {}).items()}
        logger.debug("SiteAggregator initialized")

    def plaza_for(self, device: Device) -> str:
        """Plaza of a single device."""
        return normalize_plaza(device.location, self.plaza_aliases)

    def group_devices_by_site(self, devices: Iterable[Device]) -> Dict[str, List[Device]]:
        """
        Group devices by site key, preserving provider order.

        Returns:
            Ordered mapping of site key to member devices
        """
        groups: Dict[str, List[Device]] = {}
        for device in devices:
            groups.setdefault(self.site_key_func(device), []).append(device)
        return groups

    def aggregate_sites(
        self,
        devices: List[Device],
        links: List[Link],
        alerts: List[Alert]
    ) -> List[SiteAggregate]:
        """
        Build one SiteAggregate per inferred site.

        Links and alerts whose device is not in the device list are ignored.
        A site's plaza is the plaza of its first device.

        Args:
            devices: Devices in provider order
            links: Links of those devices
            alerts: Provider alerts

        Returns:
            List of SiteAggregate in provider order
        """
        links_by_device: Dict[str, List[Link]] = defaultdict(list)
        for link in links:
            links_by_device[link.device_id].append(link)

        alerts_by_device: Dict[str, List[Alert]] = defaultdict(list)
        for alert in alerts:
            alerts_by_device[alert.device_id].append(alert)

        aggregates = []
        for site, members in self.group_devices_by_site(devices).items():
            site_links = [link for device in members for link in links_by_device.get(device.device_id, [])]
            site_alerts = [alert for device in members for alert in alerts_by_device.get(device.device_id, [])]
            aggregates.append(self._aggregate_site(site, members, site_links, site_alerts))

        logger.info(f"[OK] Aggregated {len(aggregates)} sites from {len(devices)} devices")
        return aggregates

    def _aggregate_site(
        self,
        site: str,
        devices: List[Device],
        links: List[Link],
        alerts: List[Alert]
    ) -> SiteAggregate:
        """Reduce one site's members into a SiteAggregate."""
        utilizations = [link.utilization_pct for link in links if link.utilization_pct is not None]
        usages = [link.usage_mbps for link in links if link.usage_mbps is not None]

        return SiteAggregate(
            site=site,
            plaza=self.plaza_for(devices[0]),
            device_count=len(devices),
            active_device_count=sum(1 for device in devices if device.is_active),
            link_count=len(links),
            links_with_data=len(utilizations),
            mean_utilization=_mean(utilizations),
            max_utilization=max(utilizations) if utilizations else None,
            alert_count=len(alerts),
            critical_alert_count=sum(1 for alert in alerts if alert.is_critical),
            warning_alert_count=sum(1 for alert in alerts if alert.severity == AlertSeverity.WARNING),
            total_capacity_mbps=sum(link.capacity_mbps for link in links),
            total_usage_mbps=sum(usages),
            device_ids=[device.device_id for device in devices]
        )

    def aggregate_plazas(self, sites: List[SiteAggregate]) -> List[PlazaAggregate]:
        """
        Roll sites up into plazas.

        Plaza utilization is the equal-weight mean of its sites' utilization
        (not capacity-weighted); sites without data are left out of the mean.
        """
        grouped: Dict[str, List[SiteAggregate]] = {}
        for site in sites:
            grouped.setdefault(site.plaza, []).append(site)

        plazas = []
        for plaza, members in grouped.items():
            means = [site.mean_utilization for site in members if site.mean_utilization is not None]
            maxes = [site.max_utilization for site in members if site.max_utilization is not None]
            plazas.append(PlazaAggregate(
                plaza=plaza,
                site_count=len(members),
                device_count=sum(site.device_count for site in members),
                active_device_count=sum(site.active_device_count for site in members),
                link_count=sum(site.link_count for site in members),
                mean_utilization=_mean(means),
                max_utilization=max(maxes) if maxes else None,
                alert_count=sum(site.alert_count for site in members),
                total_capacity_mbps=sum(site.total_capacity_mbps for site in members),
                total_usage_mbps=sum(site.total_usage_mbps for site in members),
                sites=[site.site for site in members]
            ))

        logger.debug(f"Rolled {len(sites)} sites into {len(plazas)} plazas")
        return plazas

    def filter_devices_by_plaza(self, devices: List[Device], plaza: Optional[str]) -> List[Device]:
        """Keep devices whose normalized plaza matches (case-insensitive)."""
        if not plaza:
            return list(devices)
        wanted = normalize_plaza(plaza, self.plaza_aliases).lower()
        return [device for device in devices if self.plaza_for(device).lower() == wanted]

    def device_plaza_map(self, devices: Iterable[Device]) -> Dict[str, str]:
        """Map device_id to plaza."""
        return {device.device_id: self.plaza_for(device) for device in devices}
