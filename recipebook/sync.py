"""
Read-through and reconcile protocol between the local cache and the remote store.

A read first consults the cache. On a miss the whole resource is fetched and
stored. On a hit the remote store is asked only for records created or
modified after the entry's synced_at, and those are merged into the cached
baseline:

- a fresh record whose id is already in the baseline replaces it in place
- any other fresh record is prepended (newest first, like the remote ordering)

If the incremental query fails the cached baseline is served as-is and the
failure is reported on the result instead of being raised. A failing full
fetch has nothing to fall back on and propagates.

# NOTE: Records are handled as plain dictionaries. Only "id", "createdAt" and
    "lastModified" are read here; everything else is opaque.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from recipebook.connectors.base import BaseDocumentStore, RecordNotFound
from recipebook.utils.cache import ResourceCache
from recipebook.utils.timestamps import from_epoch, parse_timestamp

logger = logging.getLogger(__name__)

STATUS_MISS = "miss"
STATUS_HIT = "hit"
STATUS_RECONCILED = "reconciled"
STATUS_STALE = "stale"


@dataclass
class ReadThroughResult:
    """
    Outcome of a read-through.

    Attributes:
        payload: The collection (list of records) or single record served
        status: "miss", "hit", "reconciled" or "stale"
        error: The incremental-query failure when status is "stale"
    """
    payload: Any
    status: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def record_timestamp(record: Dict[str, Any]) -> Optional[datetime]:
    """
    Get the newest of a record's lastModified and createdAt.

    Args:
        record: Plain record dictionary

    Returns:
        Aware UTC datetime, or None if the record carries neither field
    """
    stamps = [
        ts for ts in (parse_timestamp(record.get("lastModified")), parse_timestamp(record.get("createdAt")))
        if ts is not None
    ]
    return max(stamps) if stamps else None


def merge_records(baseline: List[Dict[str, Any]], fresh: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Merge freshly fetched records into a cached collection.

    Records are matched by "id". A fresh record with a known id replaces the
    baseline record at its position; unknown ids are prepended in the order
    they were fetched. Within the fresh batch the first occurrence of an id
    wins. Merging the same batch twice gives the same result as merging it once.

    Args:
        baseline: Cached collection
        fresh: Records returned by the incremental query

    Returns:
        New merged list (inputs are not modified)
    """
    fresh_by_id: Dict[Any, Dict[str, Any]] = {}
    for record in fresh:
        fresh_by_id.setdefault(record.get("id"), record)

    baseline_ids = {record.get("id") for record in baseline}

    prepended = [record for record_id, record in fresh_by_id.items() if record_id not in baseline_ids]
    replaced = [fresh_by_id.get(record.get("id"), record) for record in baseline]
    return prepended + replaced


def read_through(
    cache: ResourceCache,
    store: BaseDocumentStore,
    resource: str,
    key: Optional[str] = None,
) -> ReadThroughResult:
    """
    Serve a resource collection from the cache, reconciling it with the remote store.

    Args:
        cache: Local cache
        store: Remote document store
        resource: Collection name in the remote store (e.g. "recipes")
        key: Cache key (defaults to the resource name)

    Returns:
        ReadThroughResult with the collection as payload

    Raises:
        DocumentStoreError: If there is no cached baseline and the full fetch fails
    """
    key = key or resource
    baseline = cache.get(key)

    if baseline is None:
        logger.info("Fetching all %s (cache key %r)", resource, key)
        records = store.fetch_all(resource)
        cache.put(key, records)
        logger.info("Cached %d %s under %r", len(records), resource, key)
        return ReadThroughResult(payload=records, status=STATUS_MISS)

    synced_at = cache.last_synced_at(key)
    if synced_at is None:
        # Entry expired between the two reads; start over with a full fetch.
        return read_through(cache, store, resource, key)

    try:
        fresh = store.fetch_since(resource, from_epoch(synced_at))
    except Exception as e:
        logger.warning("Incremental fetch of %s failed; serving cached %r: %s", resource, key, e)
        return ReadThroughResult(payload=baseline, status=STATUS_STALE, error=e)

    if not fresh:
        return ReadThroughResult(payload=baseline, status=STATUS_HIT)

    merged = merge_records(baseline, fresh)
    cache.put(key, merged)
    logger.info("Reconciled %r with %d new or updated %s", key, len(fresh), resource)
    return ReadThroughResult(payload=merged, status=STATUS_RECONCILED)


def read_through_record(
    cache: ResourceCache,
    store: BaseDocumentStore,
    resource: str,
    record_id: str,
    key: Optional[str] = None,
) -> ReadThroughResult:
    """
    Serve a single record from the cache, replacing it when the remote copy is newer.

    Args:
        cache: Local cache
        store: Remote document store
        resource: Collection name in the remote store
        record_id: Document id
        key: Cache key (defaults to "<resource>_<record_id>")

    Returns:
        ReadThroughResult with the record as payload

    Raises:
        RecordNotFound: If the record is neither cached nor in the remote store
        DocumentStoreError: If there is no cached copy and the lookup fails
    """
    key = key or f"{resource}_{record_id}"
    cached = cache.get(key)

    if cached is None:
        record = store.fetch_by_id(resource, record_id)
        if record is None:
            raise RecordNotFound(resource, record_id)
        cache.put(key, record)
        return ReadThroughResult(payload=record, status=STATUS_MISS)

    synced_at = cache.last_synced_at(key)
    try:
        record = store.fetch_by_id(resource, record_id)
    except Exception as e:
        logger.warning("Refreshing %s/%s failed; serving cached copy: %s", resource, record_id, e)
        return ReadThroughResult(payload=cached, status=STATUS_STALE, error=e)

    if record is None or synced_at is None:
        return ReadThroughResult(payload=cached, status=STATUS_HIT)

    updated_at = record_timestamp(record)
    if updated_at is not None and updated_at > from_epoch(synced_at):
        cache.put(key, record)
        logger.info("Replaced cached %s/%s with newer remote copy", resource, record_id)
        return ReadThroughResult(payload=record, status=STATUS_RECONCILED)

    return ReadThroughResult(payload=cached, status=STATUS_HIT)
