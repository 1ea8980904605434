"""
PlazaNetInsights - Environment Aggregator

Rolls environmental sensor readings (temperature, humidity, voltage) up per
plaza and flags over-temperature sensors.
"""

import logging
from typing import Any, Dict, List, Optional

from plazanet.models.entities import Sensor


logger = logging.getLogger(__name__)

# Degrees above the alert threshold at which an over-temperature becomes critical
CRITICAL_TEMPERATURE_MARGIN = 5.0


def _avg(values: List[float]) -> Optional[float]:
    return round(sum(values) / len(values), 1) if values else None


class EnvironmentAggregator:
    """Per-plaza environmental rollup."""

    def __init__(self, alert_threshold: float = 35.0):
        """
        Args:
            alert_threshold: Temperature (C) above which a sensor raises an alert
        """
        self.alert_threshold = alert_threshold

    def aggregate(
        self,
        sensors: List[Sensor],
        device_plaza: Dict[str, str],
        device_hostname: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Aggregate sensors by the plaza of their device.

        Sensors on devices outside device_plaza are ignored.

        Args:
            sensors: Sensor readings
            device_plaza: device_id -> plaza
            device_hostname: device_id -> hostname, for alert labelling

        Returns:
            Dictionary with "summary", "breakdown" and "alerts"
        """
        device_hostname = device_hostname or {}
        stats: Dict[str, Dict[str, Any]] = {}
        alerts: List[Dict[str, Any]] = []
        online = offline = 0

        for sensor in sensors:
            plaza = device_plaza.get(sensor.device_id)
            if plaza is None:
                continue

            bucket = stats.setdefault(plaza, {
                "temperatures": [], "humidities": [], "voltages": [],
                "sensor_count": 0, "alert_count": 0
            })
            bucket["sensor_count"] += 1
            if sensor.is_ok:
                online += 1
            else:
                offline += 1

            if sensor.value is None:
                continue

            if sensor.sensor_class == "temperature":
                bucket["temperatures"].append(sensor.value)
                if sensor.value > self.alert_threshold:
                    bucket["alert_count"] += 1
                    alerts.append({
                        "plaza": plaza,
                        "device": device_hostname.get(sensor.device_id, sensor.device_id),
                        "sensor_id": sensor.sensor_id,
                        "sensor_type": "temperature",
                        "value": sensor.value,
                        "threshold": self.alert_threshold,
                        "severity": (
                            "critical"
                            if sensor.value > self.alert_threshold + CRITICAL_TEMPERATURE_MARGIN
                            else "warning"
                        )
                    })
            elif sensor.sensor_class == "humidity":
                bucket["humidities"].append(sensor.value)
            elif sensor.sensor_class == "voltage":
                bucket["voltages"].append(sensor.value)

        breakdown = []
        all_temperatures: List[float] = []
        all_humidities: List[float] = []
        for plaza, bucket in stats.items():
            all_temperatures.extend(bucket["temperatures"])
            all_humidities.extend(bucket["humidities"])
            breakdown.append({
                "plaza": plaza,
                "avg_temperature": _avg(bucket["temperatures"]),
                "max_temperature": max(bucket["temperatures"]) if bucket["temperatures"] else None,
                "avg_humidity": _avg(bucket["humidities"]),
                "avg_voltage": _avg(bucket["voltages"]),
                "sensor_count": bucket["sensor_count"],
                "alert_count": bucket["alert_count"],
                "status": "warning" if bucket["alert_count"] else "normal"
            })

        logger.info(f"[OK] Aggregated {online + offline} sensors across {len(breakdown)} plazas")
        return {
            "summary": {
                "average_temperature": _avg(all_temperatures),
                "max_temperature": max(all_temperatures) if all_temperatures else None,
                "min_temperature": min(all_temperatures) if all_temperatures else None,
                "average_humidity": _avg(all_humidities),
                "sensors_online": online,
                "sensors_offline": offline,
                "total_alerts": len(alerts),
                "alert_threshold": self.alert_threshold
            },
            "breakdown": breakdown,
            "alerts": alerts
        }
