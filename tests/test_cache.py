"""
Tests for the local resource cache.

These tests verify that:
- A put is visible to the next get
- Entries expire TTL seconds after they were stored and are purged
- Corrupt blobs behave like a miss
- Invalidation only touches the cache namespace
- update() rewrites the payload without moving synced_at
"""

from recipebook.storage import MemoryStorage
from recipebook.utils.cache import CACHE_NAMESPACE, CACHE_TTL_SECONDS, ResourceCache


class TestGetPut:
    """Read-your-write and TTL behavior."""

    def test_put_then_get_returns_payload(self, cache):
        cache.put("all_recipes", [{"id": "a"}])

        assert cache.get("all_recipes") == [{"id": "a"}]

    def test_get_missing_key_is_none(self, cache):
        assert cache.get("nothing_here") is None

    def test_put_stamps_both_timestamps(self, cache, clock):
        entry = cache.put("recipe_a", {"id": "a"})

        assert entry.stored_at == clock.now
        assert entry.synced_at == clock.now
        assert cache.last_synced_at("recipe_a") == clock.now

    def test_put_overwrites(self, cache):
        cache.put("recipe_a", {"id": "a", "title": "Old"})
        cache.put("recipe_a", {"id": "a", "title": "New"})

        assert cache.get("recipe_a")["title"] == "New"

    def test_entry_valid_until_ttl(self, cache, clock):
        cache.put("all_recipes", [])
        clock.advance(CACHE_TTL_SECONDS)

        assert cache.get("all_recipes") == []

    def test_expired_entry_is_purged(self, cache, clock, storage):
        cache.put("all_recipes", [{"id": "a"}])
        clock.advance(CACHE_TTL_SECONDS + 1)

        assert cache.get("all_recipes") is None
        assert storage.get_item(CACHE_NAMESPACE + "all_recipes") is None
        assert cache.last_synced_at("all_recipes") is None

    def test_custom_ttl(self, storage, clock):
        short = ResourceCache(storage, clock=clock, ttl_seconds=5)
        short.put("k", 1)
        clock.advance(6)

        assert short.get("k") is None

    def test_falsy_payload_is_a_hit(self, cache):
        cache.put("categories", [])

        assert cache.get("categories") == []


class TestCorruption:
    """Unreadable entries are discarded."""

    def test_unparseable_blob_is_miss_and_removed(self, cache, storage):
        storage.set_item(CACHE_NAMESPACE + "all_recipes", "{not json")

        assert cache.get("all_recipes") is None
        assert storage.get_item(CACHE_NAMESPACE + "all_recipes") is None

    def test_blob_missing_timestamps_is_miss(self, cache, storage):
        storage.set_item(CACHE_NAMESPACE + "all_recipes", '{"key": "all_recipes", "payload": []}')

        assert cache.get("all_recipes") is None


class TestInvalidation:
    """invalidate / invalidate_all / size."""

    def test_invalidate_removes_entry(self, cache):
        cache.put("recipe_a", {"id": "a"})
        cache.invalidate("recipe_a")

        assert cache.get("recipe_a") is None

    def test_invalidate_missing_key_is_noop(self, cache):
        cache.invalidate("recipe_missing")

    def test_invalidate_all_by_prefix(self, cache):
        cache.put("recipe_a", {"id": "a"})
        cache.put("recipe_b", {"id": "b"})
        cache.put("all_recipes", [])

        removed = cache.invalidate_all("recipe_")

        assert removed == 2
        assert cache.get("all_recipes") == []
        assert cache.get("recipe_a") is None

    def test_invalidate_all_leaves_foreign_keys(self, clock):
        storage = MemoryStorage({"favorites": "[]", "theme": "dark"})
        cache = ResourceCache(storage, clock=clock)
        cache.put("all_recipes", [])
        cache.put("categories", [])

        assert cache.invalidate_all() == 2
        assert sorted(storage.keys()) == ["favorites", "theme"]

    def test_size_counts_namespace_only(self, clock):
        storage = MemoryStorage({"favorites": "[]"})
        cache = ResourceCache(storage, clock=clock)
        cache.put("all_recipes", [])
        cache.put("recipe_a", {"id": "a"})

        assert cache.size() == 2


class TestUpdate:
    """In-place payload rewrite."""

    def test_update_rewrites_payload_and_keeps_synced_at(self, cache, clock):
        cache.put("all_recipes", [{"id": "a", "isFavorite": False}])
        synced = clock.now
        clock.advance(30)

        result = cache.update("all_recipes", lambda records: [{**r, "isFavorite": True} for r in records])

        assert result == [{"id": "a", "isFavorite": True}]
        assert cache.get("all_recipes") == [{"id": "a", "isFavorite": True}]
        assert cache.last_synced_at("all_recipes") == synced

    def test_update_does_not_extend_ttl(self, cache, clock):
        cache.put("all_recipes", [{"id": "a", "isFavorite": False}])
        clock.advance(CACHE_TTL_SECONDS - 600)

        cache.update("all_recipes", lambda records: [{**r, "isFavorite": True} for r in records])
        clock.advance(601)

        assert cache.get("all_recipes") is None

    def test_update_on_miss_does_nothing(self, cache, storage):
        calls = []

        result = cache.update("all_recipes", lambda payload: calls.append(payload))

        assert result is None
        assert calls == []
        assert storage.keys() == []
