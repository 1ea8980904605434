"""
PlazaNetInsights - Error Taxonomy

Exceptions raised across the telemetry client, mapper and pipeline.

I/O-layer errors (UpstreamError and subclasses, UpstreamEmpty) are recovered
into the synthetic-fallback path by the pipeline views. MalformedRecordError is
absorbed per record by the mapper. ComputationError and ConfigurationError are
never recovered; they signal logic or wiring bugs.
"""

from typing import Optional


class PlazaNetError(Exception):
    """Base class for all PlazaNetInsights errors."""


class UpstreamError(PlazaNetError):
    """
    Base class for failures talking to the telemetry provider.

    Attributes:
        collection: Collection being queried when the failure happened
    """
    def __init__(self, message: str, collection: Optional[str] = None):
        super().__init__(message)
        self.collection = collection


class UpstreamUnavailable(UpstreamError):
    """Provider unreachable or answered with a non-2xx status."""


class UpstreamTimeout(UpstreamError):
    """Provider did not answer within the request timeout or deadline."""


class MalformedResponse(UpstreamError):
    """Provider answered, but the payload could not be read as records."""


class UpstreamEmpty(PlazaNetError):
    """Provider reachable but returned zero records for a required collection."""
    def __init__(self, collection: str):
        super().__init__(f"Provider returned no {collection}")
        self.collection = collection


class PartialFailure(PlazaNetError):
    """
    Some sub-queries of a fan-out failed.

    Not raised by the client, which returns the successful subset.
    FetchResult.as_partial_failure() builds one for reporting; callers that
    require completeness can raise it.
    """
    def __init__(self, collection: str, failures: int, total: int):
        super().__init__(f"{failures}/{total} {collection} sub-queries failed")
        self.collection = collection
        self.failures = failures
        self.total = total


class MalformedRecordError(PlazaNetError):
    """A single raw record could not be mapped to an entity."""


class ComputationError(PlazaNetError):
    """A pure engine produced an impossible result (logic bug, not data)."""


class ConfigurationError(PlazaNetError):
    """Configuration is missing or invalid. Always fatal."""
