"""
PlazaNetInsights - Entity Models

Typed entities mapped from raw Observium records. Entities are read-only
snapshots of one poll; nothing here is written back upstream.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class AlertSeverity(Enum):
    """Alert severity levels."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
    EMERGENCY = "emergency"


class LinkStatus(Enum):
    """Derived link status from utilization and operational state."""
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


@dataclass
class Device:
    """
    A monitored network device.

    Primary Key: device_id (provider-issued, may be reused after inventory rebuilds)
    """
    device_id: str
    hostname: str
    location: Optional[str] = None
    is_active: bool = True
    os: Optional[str] = None
    hardware: Optional[str] = None
    device_type: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API consumption."""
        return {
            "device_id": self.device_id,
            "hostname": self.hostname,
            "location": self.location,
            "is_active": self.is_active,
            "os": self.os,
            "hardware": self.hardware,
            "type": self.device_type
        }


@dataclass
class Link:
    """
    A single port/interface carrying capacity and utilization.

    utilization_pct and usage_mbps are None when the provider reported no rate
    counters or a zero speed; this is distinct from a measured 0%.
    """
    link_id: str
    device_id: str
    name: str
    capacity_mbps: float
    usage_mbps: Optional[float]
    utilization_pct: Optional[float]
    oper_state: str  # "up", "down", "unknown"
    status: LinkStatus
    alias: str = ""

    @property
    def has_utilization(self) -> bool:
        return self.utilization_pct is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for API consumption."""
        return {
            "link_id": self.link_id,
            "device_id": self.device_id,
            "name": self.name,
            "capacity_mbps": self.capacity_mbps,
            "usage_mbps": self.usage_mbps,
            "utilization_pct": self.utilization_pct,
            "oper_state": self.oper_state,
            "status": self.status.value,
            "alias": self.alias
        }


@dataclass
class Alert:
    """An alert read from the provider for one poll."""
    alert_id: str
    device_id: str
    severity: AlertSeverity
    message: str
    timestamp: datetime
    acknowledged: bool = False
    link_id: Optional[str] = None
    entity_type: Optional[str] = None

    @property
    def is_critical(self) -> bool:
        """Critical and emergency alerts weigh the same in health scoring."""
        return self.severity in (AlertSeverity.CRITICAL, AlertSeverity.EMERGENCY)

    def to_dict(self) -> dict:
        """Convert to dictionary for API consumption."""
        return {
            "alert_id": self.alert_id,
            "device_id": self.device_id,
            "link_id": self.link_id,
            "entity_type": self.entity_type,
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "acknowledged": self.acknowledged
        }


@dataclass
class Bill:
    """
    A billing/contract record.

    Rates are 95th-percentile traffic in bits per second.
    """
    bill_id: str
    name: str
    device_id: Optional[str] = None
    hostname: Optional[str] = None
    port_id: Optional[str] = None
    monthly_charge: Optional[float] = None
    rate_95th_in_bps: Optional[float] = None
    rate_95th_out_bps: Optional[float] = None

    @property
    def peak_usage_mbps(self) -> Optional[float]:
        """Sustained peak usage: max of in/out 95th-percentile rate, in Mbps."""
        rates = [rate for rate in (self.rate_95th_in_bps, self.rate_95th_out_bps) if rate is not None]
        if not rates:
            return None
        return max(rates) / 1_000_000


@dataclass
class Sensor:
    """An environmental sensor reading."""
    sensor_id: str
    device_id: str
    sensor_class: str
    value: Optional[float]
    is_ok: bool = True
    description: str = ""
