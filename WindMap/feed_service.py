"""Feed pipeline with persistent caching, retries and stale fallback."""
import logging
import time
from typing import Any, Callable, Optional
from cache_store import CacheEntry, CacheStore
from feed_provider import FeedProviderBase, FeedProviderError
from wind_data import OK, STALE, PipelineResult


DEFAULT_TTL_MILLIS = 120_000  # 2 minutes


class FeedService:
    """
    Service that wraps a feed provider with caching and stale fallback.

    The cache holds the provider's raw payload; `normalize` converts it to a
    reading every time it is read, so units are converted exactly once no
    matter where the payload came from.

    refresh() never raises FeedProviderError: failures are logged and the
    last cached reading (if any) is returned as STALE.
    """

    def __init__(
        self,
        name: str,
        provider: FeedProviderBase,
        cache: CacheStore,
        cache_key: str,
        normalize: Callable[[Any], Any],
        ttl_millis: int = DEFAULT_TTL_MILLIS,
        max_retries: int = 1,
        retry_delay_seconds: float = 1.0
    ):
        """
        Initialize feed service.

        Args:
            name: Human-readable pipeline name used in log lines (e.g. "wind")
            provider: Feed provider to use
            cache: Cache store for raw payloads
            cache_key: Key of this pipeline's entry in the cache
            normalize: Converts a raw payload into a reading; raises ValueError on bad data
            ttl_millis: How long a cached payload is considered fresh
            max_retries: Maximum number of provider calls per refresh
            retry_delay_seconds: Delay between retries
        """
        self.name = name
        self.provider = provider
        self.cache = cache
        self.cache_key = cache_key
        self.normalize = normalize
        self.ttl_millis = ttl_millis
        self.max_retries = max(1, max_retries)
        self.retry_delay_seconds = retry_delay_seconds

    def _read(self, entry: Optional[CacheEntry]) -> Optional[Any]:
        """Normalize a cached payload; a payload that won't normalize counts as a miss."""
        if entry is None:
            return None
        try:
            return self.normalize(entry.payload)
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Cached {self.name} data unusable, ignoring it: {e}")
            return None

    def _fallback(self, entry: Optional[CacheEntry]) -> PipelineResult:
        reading = self._read(entry)
        if reading is None:
            logging.info(f"No {self.name} data available yet")
            return PipelineResult.empty()
        age = entry.age_millis(self.cache.clock()) / 1000.0
        logging.warning(f"Using stale {self.name} data (age: {age:.1f}s)")
        return PipelineResult(status=STALE, value=reading, fetched_at_millis=entry.fetched_at_millis)

    def _fetch_with_retries(self) -> Optional[Any]:
        for attempt in range(self.max_retries):
            try:
                logging.debug(f"{self.name} fetch attempt {attempt + 1}/{self.max_retries}")
                return self.provider.fetch()
            except FeedProviderError as e:
                logging.warning(f"{self.name} fetch attempt {attempt + 1} failed: {e}")
                if not e.retryable or attempt == self.max_retries - 1:
                    raise
                retry_delay = self.retry_delay_seconds * (attempt + 1)
                logging.info(f"Retrying in {retry_delay}s...")
                time.sleep(retry_delay)
        return None

    def refresh(self) -> PipelineResult:
        """
        Get the latest reading, using the cache if still fresh.

        Returns:
            PipelineResult tagged OK, STALE or EMPTY
        """
        entry = self.cache.get(self.cache_key)

        if self.cache.is_fresh(entry, self.ttl_millis):
            reading = self._read(entry)
            if reading is not None:
                age = entry.age_millis(self.cache.clock()) / 1000.0
                logging.info(f"Using cached {self.name} data (age: {age:.1f}s, TTL: {self.ttl_millis / 1000.0}s)")
                return PipelineResult(status=OK, value=reading, fetched_at_millis=entry.fetched_at_millis)
        elif entry is not None:
            logging.info(f"Cached {self.name} data expired, fetching new data")

        try:
            payload = self._fetch_with_retries()
            if payload is None:
                return self._fallback(entry)
            reading = self.normalize(payload)
        except FeedProviderError as e:
            logging.warning(f"Failed to fetch {self.name} data, will retry on next interval: {e}")
            return self._fallback(entry)
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Failed to parse {self.name} data, will retry on next interval: {e}")
            return self._fallback(entry)

        logging.info(f"{self.name} fetch successful")
        try:
            fetched_at = self.cache.put(self.cache_key, payload).fetched_at_millis
        except OSError as e:
            logging.warning(f"Could not cache {self.name} data, showing it uncached: {e}")
            fetched_at = self.cache.clock()
        return PipelineResult(status=OK, value=reading, fetched_at_millis=fetched_at)


class DisabledFeedService(FeedService):
    """
    Pipeline that cannot fetch because of missing configuration.

    It still serves whatever is already cached: OK while the entry is
    fresh, STALE after that. It never touches the network.
    """

    def __init__(
        self,
        name: str,
        reason: str,
        cache: CacheStore,
        cache_key: str,
        normalize: Callable[[Any], Any],
        ttl_millis: int = DEFAULT_TTL_MILLIS
    ):
        super().__init__(name, None, cache, cache_key, normalize, ttl_millis=ttl_millis)
        self.reason = reason

    def refresh(self) -> PipelineResult:
        entry = self.cache.get(self.cache_key)
        reading = self._read(entry)
        if reading is None:
            logging.debug(f"{self.name} pipeline disabled and nothing cached: {self.reason}")
            return PipelineResult.empty()
        status = OK if self.cache.is_fresh(entry, self.ttl_millis) else STALE
        logging.debug(f"{self.name} pipeline disabled, serving cached data ({status})")
        return PipelineResult(status=status, value=reading, fetched_at_millis=entry.fetched_at_millis)
