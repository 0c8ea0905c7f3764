"""
HERE Geocoder — Lookup Cache
=============================
Fixed-capacity, thread-safe, read-through cache for single-item lookups.

Entries are evicted in insertion order once capacity is reached; there is no
time-based expiry.  :meth:`LookupCache.get_or_load` serialises loaders per key
so that concurrent misses for the same key call the provider only once.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable, Generic, Hashable, TypeVar

from shared.python.validators import Validators

logger = logging.getLogger("geocodehub.here_geocoder.cache")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_CACHE_CAPACITY = 1000

_MISSING = object()


class LookupCache(Generic[K, V]):
    """In-memory cache with a fixed maximum number of entries.

    Args:
        capacity: Maximum number of entries held at once (``>= 1``).
        name: Label used in log messages.

    Example::

        cache: LookupCache[str, Coordinates] = LookupCache(capacity=500)
        coords = cache.get_or_load(query, lambda: provider_lookup(query))
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY, *, name: str = "lookup") -> None:
        Validators.assert_positive(capacity, "capacity")
        self.capacity = int(capacity)
        self.name = name
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()
        self._loading: dict[K, threading.Lock] = {}

    def get(self, key: K, default: V | None = None) -> V | None:
        """Return the cached value for *key*, or *default* on a miss."""
        with self._lock:
            return self._entries.get(key, default)

    def put(self, key: K, value: V) -> None:
        """Store *value*, evicting the oldest entry when the cache is full.

        Replacing an existing key keeps its original insertion position.
        """
        with self._lock:
            if key in self._entries:
                self._entries[key] = value
                return
            if len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("%s cache full (%d), evicted %r", self.name, self.capacity, evicted)
            self._entries[key] = value

    def get_or_load(
        self,
        key: K,
        loader: Callable[[], V],
        *,
        should_store: Callable[[V], bool] | None = None,
    ) -> V:
        """Return the cached value for *key*, calling *loader* on a miss.

        Only one loader runs per key at a time; callers that missed
        concurrently wait for it and then re-read the cache.

        Args:
            key: Cache key.
            loader: Zero-argument callable fetching the value upstream.
                    Exceptions propagate and nothing is cached.
            should_store: Predicate deciding whether a loaded value is cached.
                          Defaults to caching everything.
        """
        value = self._lookup(key)
        if value is not _MISSING:
            return value  # type: ignore[return-value]

        with self._lock:
            key_lock = self._loading.setdefault(key, threading.Lock())

        with key_lock:
            value = self._lookup(key)
            if value is not _MISSING:
                return value  # type: ignore[return-value]
            try:
                loaded = loader()
                if should_store is None or should_store(loaded):
                    self.put(key, loaded)
            finally:
                with self._lock:
                    self._loading.pop(key, None)
        return loaded

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _lookup(self, key: K) -> object:
        with self._lock:
            return self._entries.get(key, _MISSING)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"LookupCache(name={self.name!r}, capacity={self.capacity}, size={len(self)})"
