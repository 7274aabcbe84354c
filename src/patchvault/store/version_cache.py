import logging
import threading
from collections import OrderedDict

from patchvault.models import CacheStats

logger = logging.getLogger(__name__)

type CacheKey = tuple[str, str]


class VersionCache:
    """
    Memoizes reconstructed content per (document_id, patch_id).

    Never authoritative: clearing it changes performance, not results.
    With `max_entries=None` entries live until `clear()`; otherwise the least
    recently used entry is evicted once the bound is exceeded.
    """

    max_entries: int | None
    _entries: OrderedDict[CacheKey, bytes]
    _lock: threading.Lock
    _hits: int
    _misses: int

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("VersionCache.max_entries must be positive or None.")
        self.max_entries = max_entries
        self._entries = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, document_id: str, patch_id: str) -> bytes | None:
        key = (document_id, patch_id)
        with self._lock:
            content = self._entries.get(key)
            if content is None:
                self._misses += 1
                return None
            self._hits += 1
            self._entries.move_to_end(key)
            return content

    def put(self, document_id: str, patch_id: str, content: bytes) -> None:
        key = (document_id, patch_id)
        with self._lock:
            self._entries[key] = content
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("Evicted cache entry %s", evicted)

    def clear(self) -> int:
        """
        Drops every entry. Returns how many entries were removed.
        """
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.debug("Cleared version cache (%d entries)", dropped)
        return dropped

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                max_entries=self.max_entries,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
