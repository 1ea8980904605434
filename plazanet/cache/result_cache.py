"""
PlazaNetInsights - Result Cache

In-memory TTL cache fronting the derived views and, optionally, raw telemetry
fetches. Process-lifetime only; nothing survives a restart.

Expiry is lazy: an entry past its expiry instant is deleted and reported as a
miss on the next read. Entries with no TTL live until invalidated.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple


logger = logging.getLogger(__name__)

Clock = Callable[[], float]

_NO_TTL = object()


@dataclass
class CacheTTLPolicy:
    """
    Default TTL (seconds) per data class.

    fast:      frequently changing aggregates
    trend:     trend / historical views
    narrative: narrative summaries (None = until invalidated)
    """
    fast: Optional[float] = 120.0
    trend: Optional[float] = 300.0
    narrative: Optional[float] = None

    def ttl_for(self, data_class: str) -> Optional[float]:
        """TTL of a data class; unknown classes use the fast TTL."""
        if data_class == "trend":
            return self.trend
        if data_class == "narrative":
            return self.narrative
        return self.fast


@dataclass
class CacheEntry:
    """A cached payload. expires_at None means no expiry."""
    key: str
    value: Any
    created_at: float
    expires_at: Optional[float]

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at


class ResultCache:
    """
    Thread-safe TTL cache.

    Holds at most one value per key; set always overwrites. Callers must not
    mutate values after set() or after get().
    """

    def __init__(self, ttl_policy: Optional[CacheTTLPolicy] = None, clock: Clock = time.monotonic):
        """
        Initialize the cache.

        Args:
            ttl_policy: Default TTL per data class
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self.ttl_policy = ttl_policy or CacheTTLPolicy()
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._expirations = 0
        logger.debug("ResultCache initialized")

    def is_enabled(self) -> bool:
        return True

    def get(self, key: str) -> Tuple[Any, bool]:
        """
        Read a key.

        Returns:
            Tuple of (value, hit). value is None on a miss.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None, False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                logger.debug(f"Cache entry expired: {key}")
                return None, False
            self._hits += 1
            return entry.value, True

    def set(self, key: str, value: Any, ttl: Any = _NO_TTL, data_class: str = "fast") -> None:
        """
        Store a value, overwriting any existing entry.

        Args:
            key: Cache key
            value: Payload (must not be mutated afterwards)
            ttl: Seconds to live; None for no expiry; omitted to use the
                 data class default
            data_class: fast, trend or narrative
        """
        if ttl is _NO_TTL:
            ttl = self.ttl_policy.ttl_for(data_class)
        now = self._clock()
        entry = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=now + ttl if ttl is not None else None
        )
        with self._lock:
            self._entries[key] = entry
        logger.debug(f"Cached {key} (ttl={ttl})")

    def invalidate(self, key: Optional[str] = None, prefix: Optional[str] = None) -> int:
        """
        Remove one key or every key with a prefix.

        Returns:
            Number of entries removed
        """
        if key is None and prefix is None:
            raise ValueError("invalidate() needs a key or a prefix")
        with self._lock:
            if key is not None:
                removed = 1 if self._entries.pop(key, None) is not None else 0
            else:
                doomed = [existing for existing in self._entries if existing.startswith(prefix)]
                for existing in doomed:
                    del self._entries[existing]
                removed = len(doomed)
        if removed:
            logger.info(f"[OK] Invalidated {removed} cache entr{'y' if removed == 1 else 'ies'}")
        return removed

    def get_time_remaining(self, key: str) -> Optional[float]:
        """
        Seconds until a key expires.

        Returns:
            Remaining seconds, float("inf") for entries without expiry, or
            None when the key is absent or expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            now = self._clock()
            if entry.is_expired(now):
                return None
            if entry.expires_at is None:
                return float("inf")
            return entry.expires_at - now

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()
        logger.info("[OK] Result cache cleared")

    def get_stats(self) -> Dict[str, Any]:
        """Counters and key counts by prefix."""
        with self._lock:
            by_prefix: Dict[str, int] = {}
            for existing in self._entries:
                name = existing.split(":", 1)[0]
                by_prefix[name] = by_prefix.get(name, 0) + 1
            lookups = self._hits + self._misses
            return {
                "enabled": True,
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "expirations": self._expirations,
                "hit_rate": round(self._hits / lookups * 100, 1) if lookups else 0.0,
                "keys": by_prefix
            }


class NullCache:
    """
    Cache that never stores anything.

    Used when caching is disabled so callers need no special casing.
    """

    def __init__(self):
        logger.warning("[WARN] Result caching disabled")

    def is_enabled(self) -> bool:
        return False

    def get(self, key: str) -> Tuple[Any, bool]:
        return None, False

    def set(self, key: str, value: Any, ttl: Any = _NO_TTL, data_class: str = "fast") -> None:
        pass

    def invalidate(self, key: Optional[str] = None, prefix: Optional[str] = None) -> int:
        return 0

    def get_time_remaining(self, key: str) -> Optional[float]:
        return None

    def clear(self) -> None:
        pass

    def get_stats(self) -> Dict[str, Any]:
        return {"enabled": False, "entries": 0}
