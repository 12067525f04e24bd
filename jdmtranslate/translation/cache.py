"""Persistent TTL cache for translated strings.

Responsibilities:
- Keep translations across sessions in one JSON blob under a local-storage key.
- Expire entries lazily after a fixed time-to-live.
- Degrade to memory-only operation on storage corruption or quota pressure.
- Track basic cache telemetry (hits/misses).
"""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass
from typing import Callable

from ..errors import StorageError, StorageQuotaExceededError
from ..io.local_storage import LocalStorage
from ..telemetry.logger import EventLogger


DEFAULT_CACHE_KEY = "jdm-translation-cache"
DEFAULT_EXPIRY_SECONDS = 24 * 60 * 60
_QUOTA_PRUNE_PERCENT = 50

_log = EventLogger("cache")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One cached translation with its write time in epoch milliseconds."""

    value: str
    timestamp: int

    def to_payload(self) -> dict[str, object]:
        return {"value": self.value, "timestamp": self.timestamp}

    @classmethod
    def from_payload(cls, payload: object) -> CacheEntry | None:
        """Build an entry from stored JSON, or `None` when the shape is invalid."""

        if not isinstance(payload, dict):
            return None
        value = payload.get("value")
        timestamp = payload.get("timestamp")
        if not isinstance(value, str):
            return None
        if isinstance(timestamp, bool) or not isinstance(timestamp, int | float):
            return None
        return cls(value=value, timestamp=int(timestamp))


class PersistentCache:
    """TTL-bounded string cache persisted through a `LocalStorage` backend."""

    def __init__(
        self,
        storage: LocalStorage,
        cache_key: str = DEFAULT_CACHE_KEY,
        expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Create a cache over a storage backend and storage key."""

        self.storage = storage
        self.cache_key = cache_key
        self.expiry_ms = int(expiry_seconds * 1000)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._initialized = False
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(text: str, target_lang: str) -> str:
        """Build the composite `<sourceText>:<targetLangCode>` cache key."""

        return f"{text}:{target_lang}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _is_expired(self, entry: CacheEntry, now_ms: int) -> bool:
        return now_ms - entry.timestamp > self.expiry_ms

    def init(self) -> None:
        """Load the stored blob once; corrupt or missing data starts an empty cache."""

        if self._initialized:
            return
        self._initialized = True

        try:
            raw = self.storage.get_item(self.cache_key)
        except StorageError as exc:
            _log.warning("load_failed", error_type=type(exc).__name__)
            return
        if not raw:
            return

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            _log.warning("load_corrupt", cache_key=self.cache_key)
            self._entries = {}
            return
        if not isinstance(payload, dict):
            _log.warning("load_corrupt", cache_key=self.cache_key)
            self._entries = {}
            return

        entries: dict[str, CacheEntry] = {}
        for key, item in payload.items():
            entry = CacheEntry.from_payload(item)
            if entry is not None:
                entries[str(key)] = entry
        self._entries = entries
        self.clean_expired()

    def get(self, key: str) -> str | None:
        """Return a live cached value; expired entries are deleted and persisted."""

        self.init()
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._is_expired(entry, self._now_ms()):
            del self._entries[key]
            self._save()
            self.misses += 1
            return None

        self.hits += 1
        return entry.value

    def set(self, key: str, value: str) -> None:
        """Store a value stamped with the current time and persist the store."""

        self.init()
        self._entries[key] = CacheEntry(value=value, timestamp=self._now_ms())
        self._save()

    def clean_expired(self) -> None:
        """Remove expired entries, persisting only when something changed."""

        now_ms = self._now_ms()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now_ms)]
        for key in expired:
            del self._entries[key]
        if expired:
            self._save()

    def prune(self, percent_to_remove: float = 25) -> None:
        """Remove the oldest share of entries by timestamp and persist."""

        if self._remove_oldest(percent_to_remove):
            self._save()

    def clear(self) -> None:
        """Empty the cache in memory and in persistent storage."""

        self._entries = {}
        try:
            self.storage.remove_item(self.cache_key)
        except StorageError as exc:
            _log.warning("clear_failed", error_type=type(exc).__name__)

    def hit_rate(self) -> float:
        """Return cache hit rate for the current cache lifecycle."""

        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / float(total)

    def __len__(self) -> int:
        self.init()
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        self.init()
        return key in self._entries

    def _remove_oldest(self, percent_to_remove: float) -> int:
        """Drop the oldest `ceil(n * pct / 100)` entries and return the count."""

        if not self._entries:
            return 0
        ordered_keys = sorted(self._entries, key=lambda key: self._entries[key].timestamp)
        remove_count = math.ceil(len(ordered_keys) * (percent_to_remove / 100))
        for key in ordered_keys[:remove_count]:
            del self._entries[key]
        return remove_count

    def _serialize(self) -> str:
        return json.dumps(
            {key: entry.to_payload() for key, entry in self._entries.items()},
            ensure_ascii=False,
            separators=(",", ":"),
        )

    def _save(self) -> None:
        """Persist the store; on quota pressure prune half and retry once."""

        try:
            self.storage.set_item(self.cache_key, self._serialize())
            return
        except StorageQuotaExceededError:
            removed = self._remove_oldest(_QUOTA_PRUNE_PERCENT)
            _log.warning("quota_exceeded", pruned=removed, remaining=len(self._entries))
        except StorageError as exc:
            _log.warning("save_failed", error_type=type(exc).__name__)
            return

        try:
            self.storage.set_item(self.cache_key, self._serialize())
        except StorageError as exc:
            _log.error("save_dropped", error_type=type(exc).__name__)
