# terrain_generator/cache.py

"""
================================================================================
CHUNK CACHE
================================================================================
A bounded, thread-safe map from (x, z, size) to generated chunks.

The cache is purely a performance aid: a hit returns the same Chunk object a
miss would have produced (byte-identical grid), so callers never depend on it.

Data Contract:
---------------
- Inputs: Chunk objects (keyed by Chunk.key) and (x, z, size) lookups.
- Outputs: Cached chunks or None.
- Side Effects: Logs evictions at debug level.
- Invariants:
    - len(cache) <= capacity at all times.
    - One entry per key; re-inserting a key replaces it.
    - 'lru' refreshes recency on get, 'fifo' evicts by insertion order only.
================================================================================
"""

import logging
import threading
from collections import OrderedDict

from . import config as DEFAULTS

EVICTION_POLICIES = ('lru', 'fifo')


class ChunkCache:
    def __init__(self, capacity: int = DEFAULTS.CACHE_CAPACITY,
                 policy: str = DEFAULTS.EVICTION_POLICY,
                 logger: logging.Logger | None = None):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValueError(f"Cache capacity must be a positive integer, got {capacity!r}")
        if policy not in EVICTION_POLICIES:
            raise ValueError(f"Unknown eviction policy '{policy}'; expected one of {EVICTION_POLICIES}")
        self.capacity = capacity
        self.policy = policy
        self.logger = logger or logging.getLogger(__name__)
        self._entries = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, x: int, z: int, size: int):
        key = (x, z, size)
        with self._lock:
            chunk = self._entries.get(key)
            if chunk is None:
                self.misses += 1
                return None
            self.hits += 1
            if self.policy == 'lru':
                self._entries.move_to_end(key)
            return chunk

    def put(self, chunk) -> tuple[int, int, int] | None:
        """Stores a chunk. Returns the evicted key, if any."""
        key = chunk.key
        evicted = None
        with self._lock:
            if key in self._entries:
                # Replacing an entry keeps FIFO position but counts as a use for LRU.
                self._entries[key] = chunk
                if self.policy == 'lru':
                    self._entries.move_to_end(key)
                return None
            if len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
            self._entries[key] = chunk
        if evicted is not None:
            self.logger.debug(f"Evicted chunk {evicted} from cache ({self.policy}).")
        return evicted

    def clear(self):
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[tuple[int, int, int]]:
        """Keys from next-to-evict to most recent."""
        with self._lock:
            return list(self._entries.keys())

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                'size': len(self._entries),
                'capacity': self.capacity,
                'policy': self.policy,
                'hits': self.hits,
                'misses': self.misses,
                'evictions': self.evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._entries
