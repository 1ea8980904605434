"""
PlazaNetInsights - Views Package

Presentation-facing pipeline operations and the synthetic fallback dataset.
"""

from plazanet.views.pipeline import LIVE, SYNTHETIC_FALLBACK, PlazaNetPipeline, TelemetrySnapshot

__all__ = ["LIVE", "SYNTHETIC_FALLBACK", "PlazaNetPipeline", "TelemetrySnapshot"]
