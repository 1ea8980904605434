"""
PlazaNetInsights - Async Observium API Client

Read-only access to the Observium REST API (base_url/api/v0/<collection>)
using aiohttp.

Split into focused classes:
- ObserviumConnection: Session management, auth and error mapping
- ObserviumCollectionOperations: Collection fetches, retry and per-device fan-out
- ObserviumAPIClient: Facade with optional raw-fetch caching
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import aiohttp

from plazanet.utils.config import ObserviumConfig, OperationalConfig
from plazanet.utils.errors import (
    MalformedResponse,
    PartialFailure,
    UpstreamError,
    UpstreamTimeout,
    UpstreamUnavailable,
)


logger = logging.getLogger(__name__)

COLLECTIONS = ("devices", "ports", "bills", "sensors", "alerts")

# Natural key used to deduplicate merged fan-out results
NATURAL_KEYS = {
    "devices": "device_id",
    "ports": "port_id",
    "bills": "bill_id",
    "sensors": "sensor_id",
    "alerts": "alert_table_id",
}

# Wrapper keys Observium uses around each collection
WRAPPER_KEYS = {
    "devices": ("devices",),
    "ports": ("ports",),
    "bills": ("bill", "bills"),
    "sensors": ("sensors",),
    "alerts": ("alerts", "alert"),
}


def _records_from_container(container: Any, collection: str) -> List[Dict[str, Any]]:
    """Turn a bare list or an id-keyed map into a list of record dicts."""
    if container is None:
        return []

    if isinstance(container, list):
        items = container
    elif isinstance(container, dict):
        if not all(isinstance(value, dict) for value in container.values()):
            raise MalformedResponse(f"Unrecognized {collection} map shape", collection)
        natural_key = NATURAL_KEYS.get(collection)
        items = []
        for record_id, record in container.items():
            record = dict(record)
            if natural_key and record.get(natural_key) in (None, ""):
                record[natural_key] = record_id
            items.append(record)
        return items
    else:
        raise MalformedResponse(
            f"Unexpected {collection} payload type: {type(container).__name__}", collection
        )

    if not all(isinstance(item, dict) for item in items):
        raise MalformedResponse(f"{collection} list contains non-object records", collection)
    return [dict(item) for item in items]


def normalize_records(payload: Any, collection: str) -> List[Dict[str, Any]]:
    """
    Normalize any provider response shape into a list of record dicts.

    Accepted shapes:
        [ {...}, {...} ]                         bare list
        { "12": {...}, "13": {...} }             id-keyed map
        { "status": "ok", "devices": {...} }     wrapper around either of the above
        { "status": "ok", "count": 0 }           empty wrapper

    This is the only place that branches on response shape.

    Raises:
        MalformedResponse: For any other shape
    """
    if isinstance(payload, list):
        return _records_from_container(payload, collection)

    if not isinstance(payload, dict):
        raise MalformedResponse(
            f"Unexpected {collection} payload type: {type(payload).__name__}", collection
        )

    if str(payload.get("status", "")).lower() == "failed":
        raise MalformedResponse(
            f"Provider reported failure for {collection}: {payload.get('message', 'no message')}",
            collection
        )

    for wrapper in WRAPPER_KEYS.get(collection, (collection,)):
        if wrapper in payload:
            return _records_from_container(payload[wrapper], collection)

    if not payload:
        return []
    if "count" in payload or "status" in payload:
        try:
            if int(payload.get("count", 0)) == 0:
                return []
        except (TypeError, ValueError):
            pass
        raise MalformedResponse(f"{collection} wrapper has no {collection} key", collection)

    return _records_from_container(payload, collection)


def dedupe_records(records: Iterable[Dict[str, Any]], collection: str) -> List[Dict[str, Any]]:
    """Drop records whose natural key was already seen, keeping first-seen order."""
    natural_key = NATURAL_KEYS.get(collection)
    seen = set()
    unique = []
    for record in records:
        key = record.get(natural_key) if natural_key else None
        if key is not None:
            key = str(key)
            if key in seen:
                continue
            seen.add(key)
        unique.append(record)
    return unique


@dataclass
class FetchResult:
    """
    Merged result of a per-device fan-out.

    failures counts sub-queries that errored or were cancelled by the
    deadline; records holds everything the successful ones returned.
    """
    collection: str
    records: List[Dict[str, Any]] = field(default_factory=list)
    failures: int = 0
    total: int = 0

    @property
    def is_partial(self) -> bool:
        return self.failures > 0

    def as_partial_failure(self) -> Optional[PartialFailure]:
        """PartialFailure describing this result, or None when complete."""
        if not self.is_partial:
            return None
        return PartialFailure(self.collection, self.failures, self.total)


class ObserviumConnection:
    """
    Manages the aiohttp session to the Observium API.

    Responsibilities:
    - Initialize and maintain the aiohttp ClientSession with basic auth
    - Execute GET requests
    - Map transport failures onto the upstream error taxonomy
    """

    def __init__(self, observium_config: ObserviumConfig, operational_config: OperationalConfig):
        """
        Initialize the connection manager.

        Args:
            observium_config: Base URL and credentials
            operational_config: Timeouts and page sizes
        """
        self.config = observium_config
        self.ops_config = operational_config
        self.session: Optional[aiohttp.ClientSession] = None

        base_url = observium_config.base_url.rstrip("/")
        if not base_url.startswith("http"):
            base_url = f"https://{base_url}"
        if not base_url.endswith("/api/v0"):
            base_url = f"{base_url}/api/v0"
        self.base_url = base_url

        logger.info(f"[INFO] Observium API connection configured for {self.base_url}")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session exists, creating if needed."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.ops_config.request_timeout)
            connector = None if self.config.verify_ssl else aiohttp.TCPConnector(ssl=False)
            self.session = aiohttp.ClientSession(
                auth=aiohttp.BasicAuth(self.config.username, self.config.password),
                headers={"Accept": "application/json"},
                timeout=timeout,
                connector=connector
            )
            logger.debug("Created new aiohttp session")
        return self.session

    async def execute_get_async(
        self,
        operation: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Execute one GET request. No retries happen here.

        Args:
            operation: Description of the operation (for logging)
            endpoint: Path below the API root (e.g. /ports)
            params: Optional query parameters

        Returns:
            Decoded JSON body

        Raises:
            UpstreamTimeout: Request exceeded the request timeout
            UpstreamUnavailable: Connection failure or non-2xx status
            MalformedResponse: Body is not JSON
        """
        collection = endpoint.strip("/").split("/")[0] or None
        session = await self._ensure_session()
        url = f"{self.base_url}{endpoint}"
        query = {key: str(value) for key, value in (params or {}).items() if value is not None}

        try:
            async with session.get(url, params=query) as response:
                if response.status >= 400:
                    raise UpstreamUnavailable(
                        f"{operation} returned HTTP {response.status}", collection
                    )
                try:
                    return await response.json(content_type=None)
                except ValueError as error:
                    raise MalformedResponse(f"{operation} returned non-JSON body: {error}", collection)
        except asyncio.TimeoutError:
            raise UpstreamTimeout(
                f"{operation} timed out after {self.ops_config.request_timeout}s", collection
            )
        except aiohttp.ClientError as error:
            raise UpstreamUnavailable(f"{operation} failed: {error}", collection)

    async def close(self) -> None:
        """Close the aiohttp session and clean up resources."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("Closed aiohttp session")
        self.session = None


class ObserviumCollectionOperations:
    """
    Collection retrieval on top of an ObserviumConnection.

    Responsibilities:
    - Fetch one collection with page-size limiting and a single
      reduced-page-size retry
    - Fan out device-scoped queries with bounded parallelism
    - Merge and deduplicate fan-out results, tolerating partial failure
    """

    def __init__(self, connection: ObserviumConnection):
        """
        Initialize collection operations.

        Args:
            connection: ObserviumConnection instance for API access
        """
        self.connection = connection
        self.ops_config = connection.ops_config

    async def fetch(
        self,
        collection: str,
        params: Optional[Dict[str, Any]] = None,
        page_size: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch one collection as a list of raw records.

        The first attempt uses the configured page size; when it fails and
        a retry is configured, one more attempt is made with the fallback
        (smaller) page size.

        Raises:
            ValueError: Unknown collection
            UpstreamError: Last failure after the allowed attempts
        """
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection!r}")

        page_sizes = [page_size or self.ops_config.page_size]
        if self.ops_config.max_retries >= 1:
            page_sizes.append(self.ops_config.fallback_page_size)

        last_error: Optional[UpstreamError] = None
        for attempt, size in enumerate(page_sizes, start=1):
            query = dict(params or {})
            query["pagesize"] = size
            try:
                payload = await self.connection.execute_get_async(
                    f"Get {collection}", f"/{collection}", query
                )
                records = normalize_records(payload, collection)
                logger.debug(f"Retrieved {len(records)} {collection} (pagesize={size})")
                return records
            except UpstreamError as error:
                last_error = error
                logger.warning(
                    f"[WARN] Get {collection} failed (attempt {attempt}/{len(page_sizes)}, "
                    f"pagesize={size}): {error}"
                )

        logger.error(f"[ERROR] Get {collection} failed after {len(page_sizes)} attempts")
        raise last_error

    async def fetch_per_device(
        self,
        collection: str,
        device_ids: Iterable[str],
        params: Optional[Dict[str, Any]] = None,
        deadline: Optional[float] = None
    ) -> FetchResult:
        """
        Query a collection once per device and merge the results.

        At most max_parallel_device_queries queries are in flight. Failed
        sub-queries are counted, not raised. When the deadline (seconds)
        elapses, still-pending queries are cancelled and counted as failures.

        Args:
            collection: Collection name
            device_ids: Device ids to query (duplicates are ignored)
            params: Extra query parameters shared by every sub-query
            deadline: Seconds to wait for the whole fan-out (None = no limit)

        Returns:
            FetchResult with deduplicated records in device order
        """
        unique_ids = list(dict.fromkeys(str(device_id) for device_id in device_ids))
        if not unique_ids:
            return FetchResult(collection=collection)

        semaphore = asyncio.Semaphore(max(1, self.ops_config.max_parallel_device_queries))

        async def query_device(device_id: str) -> List[Dict[str, Any]]:
            async with semaphore:
                return await self.fetch(collection, {**(params or {}), "device_id": device_id})

        logger.info(
            f"[...] Fanning out {collection} over {len(unique_ids)} devices "
            f"(parallel={self.ops_config.max_parallel_device_queries})"
        )
        tasks = [asyncio.ensure_future(query_device(device_id)) for device_id in unique_ids]
        try:
            _, pending = await asyncio.wait(tasks, timeout=deadline)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"[WARN] Deadline cancelled {len(pending)} {collection} sub-queries")

        records: List[Dict[str, Any]] = []
        failures = 0
        for device_id, task in zip(unique_ids, tasks):
            if task in pending or task.cancelled():
                failures += 1
                continue
            error = task.exception()
            if error is None:
                records.extend(task.result())
            elif isinstance(error, UpstreamError):
                failures += 1
                logger.warning(f"[WARN] {collection} query for device {device_id} failed: {error}")
            else:
                raise error

        result = FetchResult(
            collection=collection,
            records=dedupe_records(records, collection),
            failures=failures,
            total=len(unique_ids)
        )
        partial = result.as_partial_failure()
        if partial is not None:
            logger.warning(f"[WARN] {partial}")
        logger.info(f"[OK] Retrieved {len(result.records)} {collection} from {len(unique_ids) - failures} devices")
        return result


class ObserviumAPIClient:
    """
    Async facade providing unified access to the Observium collections.

    Raw fetches can be cached independently of the derived views by passing
    a ResultCache; keys use the "telemetry:" prefix and the fast TTL.

    Usage:
        async with ObserviumAPIClient(observium_config, ops_config) as client:
            devices = await client.fetch("devices")
    """

    CACHE_PREFIX = "telemetry"

    def __init__(
        self,
        observium_config: ObserviumConfig,
        operational_config: OperationalConfig,
        cache: Optional[Any] = None
    ):
        """
        Initialize the API client with all operation handlers.

        Args:
            observium_config: Observium API configuration
            operational_config: Operational settings
            cache: Optional ResultCache for raw fetches
        """
        self.config = observium_config
        self.ops_config = operational_config
        self.cache = cache

        self.connection = ObserviumConnection(observium_config, operational_config)
        self.collections = ObserviumCollectionOperations(self.connection)

        logger.info("[OK] ObserviumAPIClient initialized")

    async def __aenter__(self) -> "ObserviumAPIClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit with cleanup."""
        await self.close()

    def _cache_key(self, collection: str, params: Optional[Dict[str, Any]], device_ids=None) -> str:
        parts = [self.CACHE_PREFIX, collection]
        if params:
            parts.append(",".join(f"{key}={params[key]}" for key in sorted(params)))
        if device_ids is not None:
            parts.append("devices=" + ",".join(sorted(set(str(device_id) for device_id in device_ids))))
        return ":".join(parts)

    async def fetch(self, collection: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Fetch one collection.

        Delegates to ObserviumCollectionOperations, through the cache if set.
        """
        key = self._cache_key(collection, params)
        if self.cache is not None:
            cached, hit = self.cache.get(key)
            if hit:
                logger.debug(f"Telemetry cache hit: {key}")
                return copy.deepcopy(cached)

        records = await self.collections.fetch(collection, params)
        if self.cache is not None:
            self.cache.set(key, copy.deepcopy(records), data_class="fast")
        return records

    async def fetch_per_device(
        self,
        collection: str,
        device_ids: Iterable[str],
        params: Optional[Dict[str, Any]] = None,
        deadline: Optional[float] = None
    ) -> FetchResult:
        """
        Fan out a collection query per device.

        Only complete results are cached; partial ones are always refetched.
        """
        device_ids = list(device_ids)
        key = self._cache_key(collection, params, device_ids)
        if self.cache is not None:
            cached, hit = self.cache.get(key)
            if hit:
                logger.debug(f"Telemetry cache hit: {key}")
                return copy.deepcopy(cached)

        result = await self.collections.fetch_per_device(collection, device_ids, params, deadline)
        if self.cache is not None and not result.is_partial:
            self.cache.set(key, copy.deepcopy(result), data_class="fast")
        return result

    async def close(self) -> None:
        """Close all connections and clean up resources."""
        await self.connection.close()
        logger.debug("ObserviumAPIClient closed")
