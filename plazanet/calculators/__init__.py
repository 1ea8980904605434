"""
PlazaNetInsights - Calculators Package

Pure scoring engines: health, engineering thresholds and cost efficiency.
"""

from plazanet.calculators.health_calculator import HealthCalculator
from plazanet.calculators.threshold_calculator import EngineeringThresholdCalculator
from plazanet.calculators.cost_calculator import CostEfficiencyCalculator

__all__ = [
    "HealthCalculator",
    "EngineeringThresholdCalculator",
    "CostEfficiencyCalculator"
]
