"""
PlazaNetInsights - API Package

Async client for the Observium REST API.
"""

from plazanet.api.observium_client import (
    FetchResult,
    ObserviumAPIClient,
    ObserviumCollectionOperations,
    ObserviumConnection,
    normalize_records
)

__all__ = [
    "FetchResult",
    "ObserviumAPIClient",
    "ObserviumCollectionOperations",
    "ObserviumConnection",
    "normalize_records"
]
