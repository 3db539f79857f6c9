"""
Cloud Firestore connector using the REST v1 API.

This connector reads and writes recipe documents through Firestore's public
REST endpoints with `requests`, so no Google SDK is needed.

The connector:
- Lists whole collections page by page
- Runs a structured query for documents whose createdAt or lastModified is
  greater than a given moment (the incremental "what's new" query)
- Gets, creates and patches single documents
- Converts Firestore typed values ({"stringValue": ...}) to plain Python values
  and back

Authentication uses the project's web API key, plus an optional Firebase ID
token sent as a bearer token when the security rules require a signed-in user.

# NOTE: createdAt / lastModified are stored as ISO-8601 strings (milliseconds,
    trailing "Z"), so the "since" bound is sent as a string too. Strings in that
    format order the same way as the moments they represent.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from recipebook.utils.timestamps import isoformat_utc, parse_timestamp

from .base import BaseDocumentStore, DocumentStoreError, RecordNotFound

logger = logging.getLogger(__name__)

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"

# Documents per page when listing a collection (Firestore caps this at 300)
PAGE_SIZE = 300

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def decode_value(value: Dict[str, Any]) -> Any:
    """
    Convert a Firestore typed value into a plain Python value.

    Timestamps are returned as ISO-8601 strings; integers arrive as strings on
    the wire and are converted back to int.

    Args:
        value: e.g. {"stringValue": "Pasta"} or {"arrayValue": {"values": [...]}}

    Returns:
        Plain value

    Examples:
        >>> decode_value({"integerValue": "4"})
        4
        >>> decode_value({"arrayValue": {"values": [{"stringValue": "salt"}]}})
        ['salt']
    """
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "arrayValue" in value:
        return [decode_value(item) for item in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return {name: decode_value(item) for name, item in value["mapValue"].get("fields", {}).items()}
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    for kind in ("stringValue", "timestampValue", "referenceValue", "bytesValue"):
        if kind in value:
            return value[kind]
    raise ValueError(f"Unsupported Firestore value: {value!r}")


def encode_value(value: Any) -> Dict[str, Any]:
    """
    Convert a plain Python value into a Firestore typed value.

    Raises:
        TypeError: If the value has no Firestore representation
    """
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": isoformat_utc(value)}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": {str(k): encode_value(v) for k, v in value.items()}}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def decode_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a Firestore document resource into a plain record.

    The document id (last segment of "name") is stored under "id".

    Args:
        document: {"name": "projects/.../documents/recipes/abc", "fields": {...}}

    Returns:
        Plain record dictionary
    """
    record = {name: decode_value(value) for name, value in document.get("fields", {}).items()}
    record["id"] = document["name"].rsplit("/", 1)[-1]
    return record


def _newest_first(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # Documents without createdAt sort last
    return sorted(records, key=lambda r: parse_timestamp(r.get("createdAt")) or _EPOCH, reverse=True)


class FirestoreConnector(BaseDocumentStore):
    """
    Document store backed by Cloud Firestore.

    Args:
        project_id: Google Cloud project id
        api_key: Web API key of the Firebase project
        id_token: Optional Firebase ID token for authenticated requests
        timeout: Request timeout in seconds
        session: Optional requests.Session (useful for connection reuse and tests)
    """

    def __init__(
        self,
        project_id: str,
        api_key: str,
        id_token: Optional[str] = None,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not project_id:
            raise RuntimeError("FIRESTORE_PROJECT_ID is not set. It is required for the Firestore document store.")
        if not api_key:
            raise RuntimeError("FIRESTORE_API_KEY is not set. It is required for the Firestore document store.")

        self.project_id = project_id
        self.api_key = api_key
        self.id_token = id_token
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def database_path(self) -> str:
        return f"projects/{self.project_id}/databases/(default)/documents"

    def _url(self, path: str = "") -> str:
        url = f"{FIRESTORE_BASE_URL}/{self.database_path}"
        return f"{url}/{path}" if path else url

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[List[tuple]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        allow_404: bool = False,
    ) -> Optional[Any]:
        """
        Send a request and return the decoded JSON body.

        Returns None for a 404 when allow_404 is set.

        Raises:
            DocumentStoreError: On transport failure or any other non-2xx status
        """
        query = [("key", self.api_key)] + list(params or [])
        headers = {"Authorization": f"Bearer {self.id_token}"} if self.id_token else {}

        try:
            response = self.session.request(
                method, url, params=query, json=json_body, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise DocumentStoreError(f"Firestore request timed out: {method} {url}") from e
        except requests.exceptions.RequestException as e:
            raise DocumentStoreError(f"Firestore request failed: {method} {url}: {e}") from e

        if allow_404 and response.status_code == 404:
            return None

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise DocumentStoreError(
                f"Firestore returned {response.status_code} for {method} {url}: {response.text[:200]}"
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise DocumentStoreError(f"Firestore returned invalid JSON for {method} {url}") from e

    def fetch_all(self, resource: str) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        page_token: Optional[str] = None

        while True:
            params = [("pageSize", str(PAGE_SIZE))]
            if page_token:
                params.append(("pageToken", page_token))
            body = self._request("GET", self._url(resource), params=params) or {}
            records.extend(decode_document(doc) for doc in body.get("documents", []))
            page_token = body.get("nextPageToken")
            if not page_token:
                break

        logger.info("Fetched %d documents from %s", len(records), resource)
        return _newest_first(records)

    def fetch_since(self, resource: str, since: datetime) -> List[Dict[str, Any]]:
        bound = encode_value(isoformat_utc(since))
        structured_query = {
            "from": [{"collectionId": resource}],
            "where": {
                "compositeFilter": {
                    "op": "OR",
                    "filters": [
                        {"fieldFilter": {"field": {"fieldPath": field}, "op": "GREATER_THAN", "value": bound}}
                        for field in ("createdAt", "lastModified")
                    ],
                }
            },
        }
        rows = self._request("POST", f"{self._url()}:runQuery", json_body={"structuredQuery": structured_query})
        # runQuery streams one row per match; rows without "document" only carry readTime
        records = [decode_document(row["document"]) for row in rows or [] if "document" in row]
        logger.debug("Query on %s since %s matched %d documents", resource, isoformat_utc(since), len(records))
        return _newest_first(records)

    def fetch_by_id(self, resource: str, record_id: str) -> Optional[Dict[str, Any]]:
        document = self._request("GET", self._url(f"{resource}/{record_id}"), allow_404=True)
        return decode_document(document) if document is not None else None

    def create(self, resource: str, fields: Dict[str, Any]) -> str:
        payload = {"fields": {name: encode_value(v) for name, v in fields.items() if name != "id"}}
        document = self._request("POST", self._url(resource), json_body=payload)
        record_id = document["name"].rsplit("/", 1)[-1]
        logger.info("Created %s/%s", resource, record_id)
        return record_id

    def update(self, resource: str, record_id: str, fields: Dict[str, Any]) -> None:
        changes = {name: v for name, v in fields.items() if name != "id"}
        params = [("updateMask.fieldPaths", name) for name in changes]
        params.append(("currentDocument.exists", "true"))
        payload = {"fields": {name: encode_value(v) for name, v in changes.items()}}

        document = self._request(
            "PATCH", self._url(f"{resource}/{record_id}"), params=params, json_body=payload, allow_404=True
        )
        if document is None:
            raise RecordNotFound(resource, record_id)
        logger.info("Updated %s/%s (%d fields)", resource, record_id, len(changes))
