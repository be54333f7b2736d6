# dashacycle/utils/cache.py
from __future__ import annotations
from collections import OrderedDict
import threading
from typing import Any, Callable, Hashable, Optional

from dashacycle.utils.metrics import CACHE_HITS, CACHE_MISSES


class LRUCache:
    def __init__(self, capacity: int = 256, name: str = "trees"):
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self.capacity = capacity
        self.name = name
        self.store: "OrderedDict[Hashable, Any]" = OrderedDict()
        self.lock = threading.Lock()

    def __len__(self) -> int:
        with self.lock:
            return len(self.store)

    def __contains__(self, key: Hashable) -> bool:
        with self.lock:
            return key in self.store

    def get(self, key: Hashable) -> Optional[Any]:
        with self.lock:
            if key in self.store:
                self.store.move_to_end(key)
                return self.store[key]
            return None

    def set(self, key: Hashable, value: Any) -> None:
        with self.lock:
            self._put(key, value)

    def setdefault(self, key: Hashable, value: Any) -> Any:
        """Insert unless present; return whichever value ends up cached."""
        with self.lock:
            if key in self.store:
                self.store.move_to_end(key)
                return self.store[key]
            self._put(key, value)
            return value

    def clear(self) -> None:
        with self.lock:
            self.store.clear()

    def _put(self, key: Hashable, value: Any) -> None:
        if self.capacity == 0:
            return
        self.store[key] = value
        self.store.move_to_end(key)
        while len(self.store) > self.capacity:
            self.store.popitem(last=False)

    def get_or_build(self, key: Hashable, build: Callable[[], Any]) -> Any:
        """
        Cached value for `key`, building it outside the lock on a miss.
        Two threads racing on the same key both build, but the first insert
        wins and both receive that same object.
        """
        hit = self.get(key)
        if hit is not None:
            CACHE_HITS.labels(cache=self.name).inc()
            return hit
        CACHE_MISSES.labels(cache=self.name).inc()
        value = build()
        if self.capacity == 0:
            return value
        return self.setdefault(key, value)
