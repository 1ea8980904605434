"""
PlazaNetInsights - Capacity, Health & Cost Signals for Regional Networks

This package turns raw Observium telemetry (devices, ports, bills, sensors,
alerts) into per-site and per-plaza operational signals.
"""

__version__ = "26.10.17"
__author__ = "Network Operations Engineering"
