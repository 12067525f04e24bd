"""Unit tests for the persistent TTL translation cache."""

from __future__ import annotations

import io
import json

from jdmtranslate.errors import StorageError
from jdmtranslate.io.local_storage import MemoryLocalStorage
from jdmtranslate.telemetry.logger import configure_logging
from jdmtranslate.translation.cache import DEFAULT_CACHE_KEY, PersistentCache


class _ManualClock:
    """Wall clock stub returning epoch seconds set by the test."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        """Initialize the clock at a fixed epoch instant."""

        self.now = now

    def __call__(self) -> float:
        return self.now


class _BrokenStorage(MemoryLocalStorage):
    """Storage whose writes always fail with a generic storage error."""

    def set_item(self, key: str, value: str) -> None:
        """Reject every write."""

        raise StorageError("disk unavailable")


def test_make_key_combines_text_and_language() -> None:
    """Cache keys should follow the `<sourceText>:<targetLangCode>` format."""

    assert PersistentCache.make_key("Home", "ja") == "Home:ja"
    assert PersistentCache.make_key("a:b", "ja") == "a:b:ja"


def test_set_persists_blob_readable_by_a_fresh_cache() -> None:
    """Entries written by one cache instance should load in a new instance."""

    storage = MemoryLocalStorage()
    clock = _ManualClock()
    cache = PersistentCache(storage, clock=clock)
    cache.set("Home:ja", "ホーム")

    stored = json.loads(storage.get_item(DEFAULT_CACHE_KEY) or "{}")
    reloaded = PersistentCache(storage, clock=clock)

    assert stored == {"Home:ja": {"value": "ホーム", "timestamp": 1_700_000_000_000}}
    assert reloaded.get("Home:ja") == "ホーム"


def test_expired_entry_is_removed_on_get() -> None:
    """Reading an entry past its TTL should return `None` and delete it from storage."""

    storage = MemoryLocalStorage()
    clock = _ManualClock()
    cache = PersistentCache(storage, expiry_seconds=60, clock=clock)
    cache.set("Home:ja", "ホーム")

    clock.now += 61

    assert cache.get("Home:ja") is None
    assert "Home:ja" not in cache
    assert json.loads(storage.get_item(DEFAULT_CACHE_KEY) or "{}") == {}


def test_init_drops_expired_entries_and_survives_corruption() -> None:
    """Loading should clean expired entries and treat unparsable blobs as empty."""

    clock = _ManualClock()
    now_ms = int(clock.now * 1000)
    storage = MemoryLocalStorage()
    storage.set_item(
        DEFAULT_CACHE_KEY,
        json.dumps(
            {
                "Home:ja": {"value": "ホーム", "timestamp": now_ms - 1_000},
                "Menu:ja": {"value": "メニュー", "timestamp": now_ms - 90_000_000},
                "Bad:ja": {"value": 3, "timestamp": now_ms},
            }
        ),
    )
    cache = PersistentCache(storage, clock=clock)
    cache.init()

    assert len(cache) == 1
    assert cache.get("Home:ja") == "ホーム"

    corrupt = MemoryLocalStorage()
    corrupt.set_item(DEFAULT_CACHE_KEY, "{not json")
    corrupt_cache = PersistentCache(corrupt, clock=clock)
    corrupt_cache.init()

    assert len(corrupt_cache) == 0
    corrupt_cache.set("Back:ja", "戻る")
    assert corrupt_cache.get("Back:ja") == "戻る"


def test_prune_removes_oldest_share_rounded_up() -> None:
    """Pruning 25% of five entries should remove the two oldest by timestamp."""

    clock = _ManualClock()
    cache = PersistentCache(MemoryLocalStorage(), clock=clock)
    for index in range(5):
        cache.set(f"text-{index}:ja", f"value-{index}")
        clock.now += 1

    cache.prune(25)

    assert len(cache) == 3
    assert "text-0:ja" not in cache
    assert "text-1:ja" not in cache
    assert "text-4:ja" in cache


def test_quota_pressure_prunes_half_and_keeps_newest_entries() -> None:
    """Saving past the storage quota should evict old entries instead of failing."""

    clock = _ManualClock()
    storage = MemoryLocalStorage(quota_bytes=400)
    cache = PersistentCache(storage, clock=clock)

    for index in range(20):
        cache.set(f"text-{index}:ja", f"value-{index}")
        clock.now += 1

    stored = json.loads(storage.get_item(DEFAULT_CACHE_KEY) or "{}")

    assert 0 < len(cache) < 20
    assert "text-19:ja" in cache
    assert all(key in cache for key in stored)
    assert len(stored) == len(cache)
    assert len(json.dumps(stored, separators=(",", ":"))) <= 400


def test_storage_failures_keep_memory_cache_working() -> None:
    """Write failures should be logged while in-memory lookups keep working."""

    cache = PersistentCache(_BrokenStorage(), clock=_ManualClock())
    cache.set("Home:ja", "ホーム")

    assert cache.get("Home:ja") == "ホーム"


def test_write_still_over_quota_after_prune_is_dropped_silently() -> None:
    """A save that fails again after the half prune should be logged and dropped."""

    sink = io.StringIO()
    configure_logging(sink=sink, level="DEBUG")
    clock = _ManualClock()
    storage = MemoryLocalStorage(quota_bytes=1)
    cache = PersistentCache(storage, clock=clock)

    cache.set("Home:ja", "ホーム")
    clock.now += 1
    cache.set("Menu:ja", "メニュー")

    events = sink.getvalue()
    assert storage.get_item(DEFAULT_CACHE_KEY) is None
    assert "event=quota_exceeded" in events
    assert (
        "level=ERROR component=cache event=save_dropped "
        "error_type=StorageQuotaExceededError" in events
    )


def test_clear_and_hit_rate_telemetry() -> None:
    """Clearing should drop storage content, and hit rate should track lookups."""

    storage = MemoryLocalStorage()
    cache = PersistentCache(storage, clock=_ManualClock())
    assert cache.hit_rate() == 0.0

    cache.set("Home:ja", "ホーム")
    cache.get("Home:ja")
    cache.get("Menu:ja")

    assert cache.hits == 1
    assert cache.misses == 1
    assert cache.hit_rate() == 0.5

    cache.clear()

    assert len(cache) == 0
    assert storage.get_item(DEFAULT_CACHE_KEY) is None
