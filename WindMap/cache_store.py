"""Timestamped payload cache on top of a pluggable key-value store."""
import json
import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


def now_millis() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


class KeyValueStore(ABC):
    """Durable string key-value storage (the local equivalent of browser storage)."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    """Non-durable store, used in tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStore(KeyValueStore):
    """
    Store that keeps every key in one JSON document on disk.

    Writes go through a temp file and an atomic rename so a crash never
    leaves a half-written document behind. An unreadable document is
    treated as an empty store.
    """

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logging.warning(f"Cache file {self.path} unreadable, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            logging.warning(f"Cache file {self.path} is not a JSON object, starting empty")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".windmap-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload together with the time it was fetched."""
    payload: Any
    fetched_at_millis: int

    def age_millis(self, now: int) -> int:
        return now - self.fetched_at_millis


class CacheStore:
    """
    Cache of pipeline payloads stored as {"data": ..., "timestamp": ...}.

    Entries are only ever overwritten; staleness is decided by the reader
    through is_fresh(), nothing is evicted.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], int] = now_millis):
        """
        Initialize cache store.

        Args:
            store: Backing key-value store
            clock: Returns the current time in milliseconds
        """
        self.store = store
        self.clock = clock

    def get(self, key: str) -> Optional[CacheEntry]:
        """
        Read a cached entry.

        Returns:
            CacheEntry, or None if the key is missing or its value is corrupt
        """
        raw = self.store.get_item(key)
        if raw is None:
            return None
        try:
            stored = json.loads(raw)
            timestamp = stored["timestamp"]
            if isinstance(timestamp, bool) or not isinstance(timestamp, int):
                raise TypeError(f"timestamp is {type(timestamp).__name__}, not int")
            return CacheEntry(payload=stored["data"], fetched_at_millis=timestamp)
        except (ValueError, KeyError, TypeError) as e:
            logging.warning(f"Ignoring corrupt cache entry '{key}': {e}")
            return None

    def put(self, key: str, payload: Any) -> CacheEntry:
        """Store a payload stamped with the current time."""
        entry = CacheEntry(payload=payload, fetched_at_millis=self.clock())
        self.store.set_item(key, json.dumps({"data": payload, "timestamp": entry.fetched_at_millis}))
        logging.debug(f"Cached '{key}' at {entry.fetched_at_millis}")
        return entry

    def is_fresh(self, entry: Optional[CacheEntry], ttl_millis: int) -> bool:
        """An entry is fresh while its age is strictly below the TTL."""
        if entry is None:
            return False
        return entry.age_millis(self.clock()) < ttl_millis
