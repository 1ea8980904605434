"""
PlazaNetInsights - Entity Mapper

Converts raw Observium records into typed entities. Every function here is
pure: no I/O, no shared state, same input gives the same entity.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from plazanet.models.entities import (
    Alert,
    AlertSeverity,
    Bill,
    Device,
    Link,
    LinkStatus,
    Sensor,
)
from plazanet.utils.config import ThresholdConfig
from plazanet.utils.errors import MalformedRecordError


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Case-insensitive provider severity -> domain severity
SEVERITY_LOOKUP = {
    "crit": AlertSeverity.CRITICAL,
    "critical": AlertSeverity.CRITICAL,
    "warn": AlertSeverity.WARNING,
    "warning": AlertSeverity.WARNING,
    "emerg": AlertSeverity.EMERGENCY,
    "emergency": AlertSeverity.EMERGENCY,
    "info": AlertSeverity.INFO,
    "ok": AlertSeverity.INFO,
}

ACTIVE_DEVICE_STATUSES = ("1", "up", "true", "active")

DEFAULT_THRESHOLDS = ThresholdConfig()


def clamp_utilization(value: float) -> float:
    """Clamp a utilization percentage to [0, 100]."""
    return max(0.0, min(100.0, value))


def calculate_utilization(
    in_rate: Optional[float],
    out_rate: Optional[float],
    speed_bps: Optional[float]
) -> Optional[float]:
    """
    Calculate link utilization from octet rate counters.

    Formula: max(in_rate, out_rate) * 8 / speed_bps * 100, clamped to [0, 100]

    Args:
        in_rate: Incoming octets per second (None if not reported)
        out_rate: Outgoing octets per second (None if not reported)
        speed_bps: Interface speed in bits per second

    Returns:
        Utilization percentage, or None when speed is zero/absent or both
        rate counters are absent
    """
    if not speed_bps or speed_bps <= 0:
        return None
    rates = [rate for rate in (in_rate, out_rate) if rate is not None]
    if not rates:
        return None
    return clamp_utilization(max(rates) * 8 / speed_bps * 100)


def map_severity(raw_severity: Any) -> AlertSeverity:
    """
    Map a provider severity string to AlertSeverity.

    Unmatched or missing values degrade to INFO rather than failing.
    """
    if raw_severity is None:
        return AlertSeverity.INFO
    return SEVERITY_LOOKUP.get(str(raw_severity).strip().lower(), AlertSeverity.INFO)


def link_status(
    utilization_pct: Optional[float],
    oper_state: str,
    thresholds: ThresholdConfig = DEFAULT_THRESHOLDS
) -> LinkStatus:
    """
    Derive a link status from utilization and operational state.

    A link that is operationally down is critical regardless of counters.
    """
    if oper_state == "down":
        return LinkStatus.CRITICAL
    if utilization_pct is None:
        return LinkStatus.UNKNOWN
    if utilization_pct >= thresholds.util_critical:
        return LinkStatus.CRITICAL
    if utilization_pct >= thresholds.util_warn:
        return LinkStatus.WARNING
    return LinkStatus.NORMAL


def _require_mapping(raw: Any, kind: str) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise MalformedRecordError(f"{kind} record is not an object: {type(raw).__name__}")
    return raw


def _require_id(raw: Dict[str, Any], kind: str, *keys: str) -> str:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return str(value)
    raise MalformedRecordError(f"{kind} record missing {'/'.join(keys)}")


def _optional_float(raw: Dict[str, Any], key: str) -> Optional[float]:
    value = raw.get(key)
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise MalformedRecordError(f"Field {key} is not numeric: {value!r}")


def _parse_timestamp(value: Any) -> datetime:
    """Parse an epoch-seconds or ISO-8601 timestamp; fall back to now."""
    if value in (None, ""):
        return datetime.now(timezone.utc)
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        pass
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise MalformedRecordError(f"Unparseable timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def map_device(raw: Any) -> Device:
    """
    Create a Device from an Observium device record.

    Raises:
        MalformedRecordError: If the record has no device_id
    """
    raw = _require_mapping(raw, "device")
    device_id = _require_id(raw, "device", "device_id")
    hostname = raw.get("hostname") or raw.get("sysName") or raw.get("sysname") or f"device-{device_id}"
    location = raw.get("location") or None

    status = raw.get("status")
    is_active = status is not None and str(status).strip().lower() in ACTIVE_DEVICE_STATUSES

    return Device(
        device_id=device_id,
        hostname=str(hostname),
        location=str(location).strip() if location else None,
        is_active=is_active,
        os=raw.get("os"),
        hardware=raw.get("hardware"),
        device_type=raw.get("type")
    )


def _port_capacity_mbps(raw: Dict[str, Any]) -> float:
    """Interface speed in Mbps, preferring ifHighSpeed (Mbps) over ifSpeed (bps)."""
    high_speed = _optional_float(raw, "ifHighSpeed")
    if high_speed and high_speed > 0:
        return high_speed
    speed = _optional_float(raw, "ifSpeed")
    if speed and speed > 0:
        return speed / 1_000_000
    return 0.0


def map_link(raw: Any, thresholds: ThresholdConfig = DEFAULT_THRESHOLDS) -> Link:
    """
    Create a Link from an Observium port record.

    Utilization comes from ifInOctets_rate/ifOutOctets_rate; when those are
    absent, the provider's ifInOctets_perc/ifOutOctets_perc are used. With
    neither (or a zero speed) utilization stays unknown.

    Raises:
        MalformedRecordError: If port_id/device_id are missing or counters are not numeric
    """
    raw = _require_mapping(raw, "port")
    link_id = _require_id(raw, "port", "port_id")
    device_id = _require_id(raw, "port", "device_id")

    capacity_mbps = _port_capacity_mbps(raw)
    speed_bps = capacity_mbps * 1_000_000

    in_rate = _optional_float(raw, "ifInOctets_rate")
    out_rate = _optional_float(raw, "ifOutOctets_rate")
    rates = [rate for rate in (in_rate, out_rate) if rate is not None]

    utilization_pct = calculate_utilization(in_rate, out_rate, speed_bps)
    usage_mbps = max(rates) * 8 / 1_000_000 if rates else None

    if not rates and capacity_mbps > 0:
        percentages = [
            value for value in (
                _optional_float(raw, "ifInOctets_perc"),
                _optional_float(raw, "ifOutOctets_perc")
            ) if value is not None
        ]
        if percentages:
            utilization_pct = clamp_utilization(max(percentages))
            usage_mbps = capacity_mbps * utilization_pct / 100

    oper_raw = str(raw.get("ifOperStatus") or "").strip().lower()
    oper_state = oper_raw if oper_raw in ("up", "down") else "unknown"

    return Link(
        link_id=link_id,
        device_id=device_id,
        name=str(raw.get("ifName") or raw.get("ifDescr") or f"Port {link_id}"),
        capacity_mbps=round(capacity_mbps, 3),
        usage_mbps=usage_mbps,
        utilization_pct=utilization_pct,
        oper_state=oper_state,
        status=link_status(utilization_pct, oper_state, thresholds),
        alias=str(raw.get("ifAlias") or "")
    )


def map_alert(raw: Any) -> Alert:
    """
    Create an Alert from an Observium alert record.

    Raises:
        MalformedRecordError: If the alert id or device id is missing
    """
    raw = _require_mapping(raw, "alert")
    alert_id = _require_id(raw, "alert", "alert_table_id", "alert_id", "id")
    device_id = _require_id(raw, "alert", "device_id")

    entity_type = raw.get("entity_type")
    link_id = None
    if entity_type == "port" and raw.get("entity_id") not in (None, ""):
        link_id = str(raw["entity_id"])

    if "acknowledged" in raw:
        acknowledged = str(raw["acknowledged"]).strip().lower() not in ("", "0", "false", "none")
    else:
        alert_status = raw.get("alert_status")
        acknowledged = alert_status is not None and str(alert_status).lower() != "failed"

    return Alert(
        alert_id=alert_id,
        device_id=device_id,
        severity=map_severity(raw.get("severity")),
        message=str(raw.get("last_message") or raw.get("alert_message") or raw.get("message") or "Unknown alert"),
        timestamp=_parse_timestamp(raw.get("last_changed") or raw.get("alert_timestamp")),
        acknowledged=acknowledged,
        link_id=link_id,
        entity_type=entity_type
    )


def map_bill(raw: Any) -> Bill:
    """
    Create a Bill from an Observium billing record.

    The monthly charge is read from bill_mrc when present, else bill_quota.
    """
    raw = _require_mapping(raw, "bill")
    bill_id = _require_id(raw, "bill", "bill_id")

    monthly_charge = _optional_float(raw, "bill_mrc")
    if monthly_charge is None:
        monthly_charge = _optional_float(raw, "bill_quota")

    rate_in = _optional_float(raw, "rate_95th_in")
    rate_out = _optional_float(raw, "rate_95th_out")
    if rate_in is None and rate_out is None:
        rate_in = _optional_float(raw, "rate_95th")

    return Bill(
        bill_id=bill_id,
        name=str(raw.get("bill_name") or f"Bill {bill_id}"),
        device_id=str(raw["device_id"]) if raw.get("device_id") not in (None, "") else None,
        hostname=raw.get("hostname") or None,
        port_id=str(raw["port_id"]) if raw.get("port_id") not in (None, "") else None,
        monthly_charge=monthly_charge,
        rate_95th_in_bps=rate_in,
        rate_95th_out_bps=rate_out
    )


def map_sensor(raw: Any) -> Sensor:
    """Create a Sensor from an Observium sensor record."""
    raw = _require_mapping(raw, "sensor")
    sensor_id = _require_id(raw, "sensor", "sensor_id")
    device_id = _require_id(raw, "sensor", "device_id")

    sensor_class = str(raw.get("sensor_class") or "").strip().lower()
    description = str(raw.get("sensor_descr") or "")
    if not sensor_class and "temp" in description.lower():
        sensor_class = "temperature"

    return Sensor(
        sensor_id=sensor_id,
        device_id=device_id,
        sensor_class=sensor_class or "other",
        value=_optional_float(raw, "sensor_value"),
        is_ok=str(raw.get("sensor_event") or "ok").strip().lower() == "ok",
        description=description
    )


def map_records(
    records: Iterable[Any],
    mapper: Callable[..., T],
    **kwargs: Any
) -> Tuple[List[T], int]:
    """
    Map a batch of raw records, skipping the ones that fail to map.

    Args:
        records: Raw provider records
        mapper: One of the map_* functions
        **kwargs: Extra arguments forwarded to the mapper

    Returns:
        Tuple of (mapped entities in input order, skipped record count)
    """
    entities: List[T] = []
    skipped = 0
    for raw in records:
        try:
            entities.append(mapper(raw, **kwargs))
        except MalformedRecordError as error:
            skipped += 1
            logger.debug(f"Skipping malformed record ({mapper.__name__}): {error}")

    if skipped:
        logger.warning(f"[WARN] {mapper.__name__}: skipped {skipped} malformed record(s)")
    return entities, skipped
