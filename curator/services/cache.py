"""
In-process TTL cache for fetched article libraries and section summaries.
Entries expire `ttl` seconds after they were stored.
"""
import time
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple


class _Miss:
    def __repr__(self):
        return "MISS"

    def __bool__(self):
        return False


MISS = _Miss()


class TTLCache:
    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}

    def get(self, key: Hashable) -> Any:
        """Return the cached value, or MISS when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return MISS
        stored_at, value = entry
        if self.clock() - stored_at > self.ttl:
            del self._entries[key]
            return MISS
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self.clock(), value)

    def evict(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def evict_expired(self) -> int:
        now = self.clock()
        expired = [k for k, (stored_at, _) in self._entries.items() if now - stored_at > self.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def keys(self) -> List[Hashable]:
        return list(self._entries.keys())

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not MISS

    def __len__(self) -> int:
        return len(self._entries)
