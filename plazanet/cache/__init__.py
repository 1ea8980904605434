"""
PlazaNetInsights - Cache Package

In-memory TTL result cache.
"""

from plazanet.cache.result_cache import CacheEntry, CacheTTLPolicy, NullCache, ResultCache

__all__ = ["CacheEntry", "CacheTTLPolicy", "NullCache", "ResultCache"]
