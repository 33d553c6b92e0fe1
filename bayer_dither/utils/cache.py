"""LRU cache of built threshold maps, keyed by level."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Generic, Hashable, TypeVar

T = TypeVar("T")


class MapCache(Generic[T]):
    """Simple thread-safe LRU cache for threshold maps.

    Values must be immutable, since the same instance is handed to every
    caller asking for the same key.
    """

    def __init__(self, max_size: int = 8) -> None:
        self._max_size = max_size
        self._cache: OrderedDict[Hashable, T] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> T | None:
        """Get a cached map, or None if not present."""
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                return self._cache[key]
            return None

    def put(self, key: Hashable, value: T) -> None:
        """Cache a built map."""
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)
            self._cache[key] = value

    def clear(self) -> None:
        """Clear the entire cache."""
        with self._lock:
            self._cache.clear()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._cache

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._cache)
