# MDM Client
# File: cache.py
# Version: v2

"""In-process store of concurrency tokens (ETags) keyed by entity id.

Design goals:
- No expiry; entries live as long as the owning service.
- Safe to share between threads (one lock around the dict).
- Diagnostics-friendly (hits/misses/size/invalidations).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    invalidations: int = 0


class ConcurrencyTokenCache:
    """Last known concurrency token per entity id.

    A stale token is harmless: the server rejects the conditional update and
    the rejection comes back as an ordinary fault.
    """

    def __init__(self) -> None:
        self._store: Dict[int, str] = {}
        self._lock = threading.Lock()
        self._stats = CacheStats()

    def get(self, entity_id: int) -> Optional[str]:
        """Return the cached token for ``entity_id``, else None."""
        with self._lock:
            token = self._store.get(entity_id)
            if token is None:
                self._stats.misses += 1
            else:
                self._stats.hits += 1
            return token

    def set(self, entity_id: int, token: str) -> None:
        """Insert/overwrite the token for ``entity_id``."""
        with self._lock:
            self._store[entity_id] = token
            self._stats.sets += 1

    def invalidate(self, entity_id: int) -> bool:
        """Drop the token for ``entity_id``. Returns False if there was none."""
        with self._lock:
            if self._store.pop(entity_id, None) is None:
                return False
            self._stats.invalidations += 1
            return True

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __contains__(self, entity_id: object) -> bool:
        with self._lock:
            return entity_id in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._store),
                "hits": self._stats.hits,
                "misses": self._stats.misses,
                "sets": self._stats.sets,
                "invalidations": self._stats.invalidations,
            }
