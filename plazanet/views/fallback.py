"""
PlazaNetInsights - Synthetic Fallback Dataset

Deterministic raw records in Observium's own shape, served when the live
provider is unreachable or empty. They go through the same mapper and
engines as live data, so fallback responses have exactly the live layout;
the pipeline tags them source="synthetic-fallback".
"""

from typing import Any, Dict, List


# (location, hostname prefix, devices, ports, alerts, temperature)
#   devices: (suffix, type, os, active)
#   ports:   (capacity Mbps, utilization %, monthly charge or None)
#   alerts:  provider severities
SYNTHETIC_SITES = [
    {
        "location": "CDMX",
        "prefix": "CDMX-Norte-01",
        "devices": [
            ("SW1", "network", "ios", True),
            ("SW2", "network", "ios", True),
            ("RTR1", "network", "ios", True),
            ("FW1", "firewall", "asa", False),
        ],
        "ports": [(1000, 88.0, 52000.0), (1000, 84.0, None), (1000, 82.0, None)],
        "alerts": ["crit", "crit", "warn"],
        "temperature": 42.5,
    },
    {
        "location": "qro",
        "prefix": "QRO-Centro-02",
        "devices": [
            ("SW1", "network", "ios", True),
            ("RTR1", "network", "ios", True),
            ("AP1", "wireless", "ios", False),
        ],
        "ports": [(1000, 79.0, 30000.0), (1000, 76.0, None)],
        "alerts": ["warn", "warn"],
        "temperature": 37.0,
    },
    {
        "location": "mty",
        "prefix": "MTY-Purisima-01",
        "devices": [("RTR1", "network", "junos", True), ("SW1", "network", "junos", True)],
        "ports": [(4000, 36.0, 64000.0), (10000, 45.0, 150000.0)],
        "alerts": [],
        "temperature": 28.0,
    },
    {
        "location": "gdl",
        "prefix": "GDL-Cardenal-01",
        "devices": [("RTR1", "network", "junos", True)],
        "ports": [(6000, 52.0, 95000.0)],
        "alerts": ["info"],
        "temperature": 31.5,
    },
    {
        "location": "Saltillo",
        "prefix": "SLW-Centro-01",
        "devices": [("RTR1", "network", "ios", True)],
        "ports": [(2000, 45.0, 80000.0)],
        "alerts": [],
        "temperature": 29.0,
    },
    {
        "location": "Piedras Negras",
        "prefix": "PN-Industrial-01",
        "devices": [("RTR1", "network", "ios", True)],
        "ports": [(4000, 92.0, 140000.0)],
        "alerts": ["warn"],
        "temperature": 33.0,
    },
]

SYNTHETIC_HUMIDITY = 45.0


def synthetic_records() -> Dict[str, List[Dict[str, Any]]]:
    """
    Build the synthetic raw dataset.

    Returns:
        Raw records keyed by collection (devices, ports, alerts, bills, sensors)
    """
    records: Dict[str, List[Dict[str, Any]]] = {
        "devices": [], "ports": [], "alerts": [], "bills": [], "sensors": []
    }
    device_id = port_id = alert_id = sensor_id = 0

    for site in SYNTHETIC_SITES:
        site_device_ids = []
        for suffix, device_type, os_name, active in site["devices"]:
            device_id += 1
            site_device_ids.append(str(device_id))
            records["devices"].append({
                "device_id": str(device_id),
                "hostname": f"{site['prefix']}-{suffix}",
                "location": site["location"],
                "status": "1" if active else "0",
                "type": device_type,
                "os": os_name,
                "hardware": "synthetic",
            })

        router_id = site_device_ids[0]
        for capacity, utilization, charge in site["ports"]:
            port_id += 1
            in_rate = capacity * 1_000_000 * utilization / 100 / 8
            records["ports"].append({
                "port_id": str(port_id),
                "device_id": router_id,
                "ifName": f"xe-0/0/{port_id}",
                "ifAlias": f"Uplink {site['prefix']}",
                "ifHighSpeed": capacity,
                "ifInOctets_rate": in_rate,
                "ifOutOctets_rate": in_rate * 0.6,
                "ifOperStatus": "up",
            })
            records["bills"].append({
                "bill_id": str(port_id),
                "bill_name": f"{site['prefix']} transit",
                "port_id": str(port_id),
                "device_id": router_id,
                "bill_mrc": charge,
                "rate_95th_in": capacity * 1_000_000 * utilization / 100,
                "rate_95th_out": capacity * 1_000_000 * utilization / 100 * 0.6,
            })

        for index, severity in enumerate(site["alerts"]):
            alert_id += 1
            records["alerts"].append({
                "alert_table_id": str(alert_id),
                "device_id": site_device_ids[index % len(site_device_ids)],
                "entity_type": "device",
                "severity": severity,
                "alert_status": "failed",
                "last_message": f"Synthetic {severity} condition",
            })

        sensor_id += 1
        records["sensors"].append({
            "sensor_id": str(sensor_id),
            "device_id": router_id,
            "sensor_class": "temperature",
            "sensor_descr": "Chassis temperature",
            "sensor_value": site["temperature"],
            "sensor_event": "ok",
        })
        sensor_id += 1
        records["sensors"].append({
            "sensor_id": str(sensor_id),
            "device_id": router_id,
            "sensor_class": "humidity",
            "sensor_descr": "Room humidity",
            "sensor_value": SYNTHETIC_HUMIDITY,
            "sensor_event": "ok",
        })

    return records
