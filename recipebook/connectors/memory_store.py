"""
In-process document store.

Keeps documents in a dict of collections. Used by the test suite and as the
default backend for local development when no Firestore project is configured.
Query semantics follow the remote store: newest first by createdAt, and
"since" queries match on createdAt or lastModified strictly greater than the
bound.
"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from recipebook.utils.timestamps import isoformat_utc, parse_timestamp

from .base import BaseDocumentStore, RecordNotFound

logger = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryDocumentStore(BaseDocumentStore):
    """
    Dict-backed document store.

    Args:
        collections: Optional initial documents per resource; each document must
            carry an "id"
        now: Clock used to stamp createdAt on create
    """

    def __init__(
        self,
        collections: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        now: Callable[[], datetime] = _now,
    ) -> None:
        self.now = now
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for resource, records in (collections or {}).items():
            docs = self._collections.setdefault(resource, {})
            for record in records:
                docs[str(record["id"])] = copy.deepcopy(record)

    def _docs(self, resource: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(resource, {})

    @staticmethod
    def _newest_first(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return sorted(records, key=lambda r: parse_timestamp(r.get("createdAt")) or _EPOCH, reverse=True)

    def fetch_all(self, resource: str) -> List[Dict[str, Any]]:
        records = [copy.deepcopy(r) for r in self._docs(resource).values()]
        return self._newest_first(records)

    def fetch_since(self, resource: str, since: datetime) -> List[Dict[str, Any]]:
        matched = []
        for record in self._docs(resource).values():
            created = parse_timestamp(record.get("createdAt"))
            modified = parse_timestamp(record.get("lastModified"))
            if (created is not None and created > since) or (modified is not None and modified > since):
                matched.append(copy.deepcopy(record))
        return self._newest_first(matched)

    def fetch_by_id(self, resource: str, record_id: str) -> Optional[Dict[str, Any]]:
        record = self._docs(resource).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def create(self, resource: str, fields: Dict[str, Any]) -> str:
        record_id = uuid.uuid4().hex
        record = copy.deepcopy(fields)
        record.pop("id", None)
        record.setdefault("createdAt", isoformat_utc(self.now()))
        record["id"] = record_id
        self._docs(resource)[record_id] = record
        logger.debug("Created %s/%s", resource, record_id)
        return record_id

    def update(self, resource: str, record_id: str, fields: Dict[str, Any]) -> None:
        docs = self._docs(resource)
        if record_id not in docs:
            raise RecordNotFound(resource, record_id)
        changes = copy.deepcopy(fields)
        changes.pop("id", None)
        docs[record_id].update(changes)
        logger.debug("Updated %s/%s", resource, record_id)
