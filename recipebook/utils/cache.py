"""
Local read-through cache for remote document store resources.

This module provides a per-key snapshot store that keeps recipe collections
(and single recipes) between requests to avoid re-reading whole collections
from the remote document store on every view.

Each entry records two timestamps:
- stored_at: when the entry was written; entries expire TTL seconds later
- synced_at: when it was last reconciled against the remote store; used as the
  lower bound for "what's new since" queries

The cache itself never performs network I/O. The read-through + reconcile
protocol that drives it lives in recipebook.sync.

Storage and clock are injected so the cache can run against a real backend in
production and against MemoryStorage with a fake clock in tests.
"""

import logging
import time
from typing import Any, Callable, Optional

from pydantic import ValidationError

from recipebook.models import CacheEntry
from recipebook.storage import KeyValueStorage

logger = logging.getLogger(__name__)

# TTL in seconds - one hour bounds how long a snapshot may be served
CACHE_TTL_SECONDS = 60 * 60

# Storage key prefix for every entry written by the cache
CACHE_NAMESPACE = "resource_cache_"


class ResourceCache:
    """
    TTL-bounded snapshot store keyed by logical resource name.

    Construct once per process/session and pass it to consumers.

    Attributes:
        storage: Backend holding the serialized entries
        clock: Callable returning the current time in epoch seconds
        ttl_seconds: Lifetime of an entry measured from stored_at
        namespace: Prefix added to every key in storage
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], float] = time.time,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        namespace: str = CACHE_NAMESPACE,
    ) -> None:
        self.storage = storage
        self.clock = clock
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace

    def _storage_key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def _load(self, key: str) -> Optional[CacheEntry]:
        """
        Read and validate the entry for key, expiring it if stale.

        Unparseable blobs are treated as a miss and removed.
        """
        storage_key = self._storage_key(key)
        raw = self.storage.get_item(storage_key)
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning("Discarding corrupt cache entry %r: %s", key, e)
            self.storage.remove_item(storage_key)
            return None

        if self.clock() - entry.stored_at > self.ttl_seconds:
            logger.debug("Cache entry %r expired", key)
            self.storage.remove_item(storage_key)
            return None

        return entry

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a cached payload if it exists and hasn't expired.

        Args:
            key: Logical resource key (e.g. "all_recipes")

        Returns:
            Cached payload, or None if not found, expired or corrupt
        """
        entry = self._load(key)
        if entry is None:
            logger.debug("Cache miss for %r", key)
            return None

        logger.debug("Cache hit for %r", key)
        return entry.payload

    def put(self, key: str, payload: Any) -> CacheEntry:
        """
        Store a payload, replacing any existing entry for key.

        Both stored_at and synced_at are set to the current time.

        Args:
            key: Logical resource key
            payload: JSON-serializable record or list of records

        Returns:
            The entry that was written
        """
        now = self.clock()
        entry = CacheEntry(key=key, payload=payload, stored_at=now, synced_at=now)
        self.storage.set_item(self._storage_key(key), entry.model_dump_json())
        return entry

    def last_synced_at(self, key: str) -> Optional[float]:
        """
        Get the last reconciliation time of the entry for key.

        Args:
            key: Logical resource key

        Returns:
            synced_at in epoch seconds, or None if there is no live entry
        """
        entry = self._load(key)
        return entry.synced_at if entry is not None else None

    def invalidate(self, key: str) -> None:
        """Remove the entry for key unconditionally."""
        self.storage.remove_item(self._storage_key(key))

    def invalidate_all(self, prefix: str = "") -> int:
        """
        Remove every entry whose logical key starts with prefix.

        Keys in storage outside the cache namespace are never touched.

        Args:
            prefix: Logical key prefix (empty string clears the whole namespace)

        Returns:
            Number of entries removed
        """
        storage_prefix = self._storage_key(prefix)
        removed = 0
        for storage_key in self.storage.keys():
            if storage_key.startswith(storage_prefix):
                self.storage.remove_item(storage_key)
                removed += 1
        logger.info("Invalidated %d cache entries with prefix %r", removed, storage_prefix)
        return removed

    def update(self, key: str, update_fn: Callable[[Any], Any]) -> Optional[Any]:
        """
        Rewrite a live entry's payload through update_fn.

        Does nothing when there is no live entry for key. The entry keeps its
        stored_at and synced_at: a local edit neither extends the TTL nor counts
        as a reconciliation.

        Args:
            key: Logical resource key
            update_fn: Receives the cached payload and returns the new one

        Returns:
            The new payload, or None on a miss
        """
        entry = self._load(key)
        if entry is None:
            return None
        updated = update_fn(entry.payload)
        rewritten = CacheEntry(key=key, payload=updated, stored_at=entry.stored_at, synced_at=entry.synced_at)
        self.storage.set_item(self._storage_key(key), rewritten.model_dump_json())
        return updated

    def size(self) -> int:
        """Get the current number of stored entries in the namespace (useful for monitoring)."""
        return sum(1 for k in self.storage.keys() if k.startswith(self.namespace))
