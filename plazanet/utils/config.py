"""
PlazaNetInsights - Configuration Management

This module handles loading and validating configuration from environment variables
and .env files.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

from plazanet.utils.errors import ConfigurationError
from plazanet.utils.logging_config import parse_log_level


DEFAULT_PLAZA_ALIASES = {
    "mty": "Monterrey",
    "gdl": "Guadalajara",
    "qro": "Queretaro",
    "cdmx": "CDMX",
    "tij": "Tijuana",
}


@dataclass
class ObserviumConfig:
    """Configuration for the Observium API connection."""
    base_url: str
    username: str
    password: str
    verify_ssl: bool = True


@dataclass
class OperationalConfig:
    """Configuration for upstream request behaviour."""
    page_size: int = 100
    fallback_page_size: int = 30
    max_parallel_device_queries: int = 5
    request_timeout: float = 10.0
    request_deadline: float = 30.0
    max_retries: int = 1


@dataclass
class ThresholdConfig:
    """Link utilization bands (percentage)."""
    util_warn: float = 70.0
    util_critical: float = 80.0
    util_capacity_risk: float = 90.0
    high_capacity_link_mbps: float = 4000.0
    high_capacity_threshold_mbps: float = 5000.0
    threshold_ratio: float = 0.8


@dataclass
class HealthConfig:
    """Health score weights and critical-site classification."""
    device_weight: float = 0.4
    alert_weight: float = 0.35
    performance_weight: float = 0.25
    critical_site_threshold: float = 75.0
    critical_alert_count: int = 2
    critical_health_score: float = 70.0


@dataclass
class TierConfig:
    """Minimums a city must meet (all of them) to be Tier I."""
    tier1_min_radio_bases: int = 15
    tier1_min_capacity_mbps: float = 50000.0
    tier1_min_traffic_mbps: float = 20000.0


@dataclass
class CostConfig:
    """Cost-per-Mbps benchmark and efficiency bands."""
    benchmark_cost_per_mbps: float = 38.0
    excellent_threshold: float = 25.0
    good_threshold: float = 40.0
    poor_threshold: float = 60.0
    optimization_ratio: float = 0.5
    over_provisioned_ratio: float = 0.6


@dataclass
class CacheConfig:
    """Result cache TTLs in seconds. A narrative TTL of None never expires."""
    enabled: bool = True
    ttl_fast: float = 120.0
    ttl_trend: float = 300.0
    ttl_narrative: Optional[float] = None


@dataclass
class Config:
    """
    Main configuration class that aggregates all configuration sections.

    Loads configuration from environment variables with .env file support.
    """
    observium: ObserviumConfig = field(default_factory=lambda: None)
    operational: OperationalConfig = field(default_factory=OperationalConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    tiers: TierConfig = field(default_factory=TierConfig)
    costs: CostConfig = field(default_factory=CostConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    plaza_aliases: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PLAZA_ALIASES))

    log_level: int = logging.INFO
    log_dir: Optional[Path] = field(default_factory=lambda: Path("data/logs"))

    def __post_init__(self):
        """Load configuration from environment after initialization."""
        env_file = Path(".env")
        if env_file.exists():
            load_dotenv(env_file)

        self.observium = ObserviumConfig(
            base_url=self._get_required_env("OBSERVIUM_BASE_URL"),
            username=self._get_required_env("OBSERVIUM_USERNAME"),
            password=self._get_required_env("OBSERVIUM_PASSWORD"),
            verify_ssl=self._get_bool_env("OBSERVIUM_VERIFY_SSL", True)
        )

        self.operational = OperationalConfig(
            page_size=self._get_int_env("PAGE_SIZE", 100),
            fallback_page_size=self._get_int_env("FALLBACK_PAGE_SIZE", 30),
            max_parallel_device_queries=self._get_int_env("MAX_PARALLEL_DEVICE_QUERIES", 5),
            request_timeout=self._get_float_env("REQUEST_TIMEOUT", 10.0),
            request_deadline=self._get_float_env("REQUEST_DEADLINE", 30.0),
            max_retries=min(self._get_int_env("MAX_RETRIES", 1), 1)
        )

        self.health = HealthConfig(
            critical_site_threshold=self._get_float_env("CRITICAL_SITE_THRESHOLD", 75.0)
        )

        self.tiers = TierConfig(
            tier1_min_radio_bases=self._get_int_env("TIER1_MIN_RADIO_BASES", 15),
            tier1_min_capacity_mbps=self._get_float_env("TIER1_MIN_CAPACITY_MBPS", 50000.0),
            tier1_min_traffic_mbps=self._get_float_env("TIER1_MIN_TRAFFIC_MBPS", 20000.0)
        )

        self.costs = CostConfig(
            benchmark_cost_per_mbps=self._get_float_env("COST_BENCHMARK_PER_MBPS", 38.0)
        )

        narrative_ttl = os.getenv("CACHE_TTL_NARRATIVE")
        self.cache = CacheConfig(
            enabled=self._get_bool_env("CACHE_ENABLED", True),
            ttl_fast=self._get_float_env("CACHE_TTL_FAST", 120.0),
            ttl_trend=self._get_float_env("CACHE_TTL_TREND", 300.0),
            ttl_narrative=self._parse_float("CACHE_TTL_NARRATIVE", narrative_ttl) if narrative_ttl else None
        )

        aliases = os.getenv("PLAZA_ALIASES")
        if aliases:
            self.plaza_aliases.update(parse_plaza_aliases(aliases))

        self.log_level = parse_log_level(os.getenv("LOG_LEVEL", "INFO"))
        # An empty LOG_DIR disables file logging
        log_dir = os.getenv("LOG_DIR", "data/logs").strip()
        self.log_dir = Path(log_dir) if log_dir else None

    def _get_required_env(self, key: str) -> str:
        """
        Get a required environment variable.

        Args:
            key: Environment variable name

        Returns:
            Environment variable value

        Raises:
            ConfigurationError: If the environment variable is not set
        """
        value = os.getenv(key)
        if value is None:
            raise ConfigurationError(f"Required environment variable {key} is not set")
        return value

    @staticmethod
    def _parse_float(key: str, raw: str) -> float:
        try:
            return float(raw)
        except ValueError:
            raise ConfigurationError(f"Environment variable {key} must be numeric, got {raw!r}")

    def _get_float_env(self, key: str, default: float) -> float:
        raw = os.getenv(key)
        if raw is None:
            return default
        return self._parse_float(key, raw)

    def _get_int_env(self, key: str, default: int) -> int:
        raw = os.getenv(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"Environment variable {key} must be an integer, got {raw!r}")

    def _get_bool_env(self, key: str, default: bool) -> bool:
        raw = os.getenv(key)
        if raw is None:
            return default
        return raw.strip().lower() in ("1", "true", "yes", "on")


def parse_plaza_aliases(raw: str) -> Dict[str, str]:
    """
    Parse a PLAZA_ALIASES value such as "mty=Monterrey,gdl=Guadalajara".

    Args:
        raw: Comma-separated alias=plaza pairs

    Returns:
        Mapping of lower-cased alias to plaza name

    Raises:
        ConfigurationError: If a pair is missing its '=' separator
    """
    aliases: Dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        if "=" not in pair:
            raise ConfigurationError(f"Invalid plaza alias entry: {pair!r}")
        alias, plaza = pair.split("=", 1)
        aliases[alias.strip().lower()] = plaza.strip()
    return aliases
