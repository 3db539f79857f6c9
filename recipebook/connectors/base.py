"""
Base document store abstract class.

This module defines the interface that every remote document store connector
must implement. The core only issues the query shapes listed here: a full
fetch of a resource, an incremental "since" fetch, and a lookup by id; writes
go through create/update.

All connectors must:
- Return records as plain dictionaries with the document id under "id"
- Raise DocumentStoreError for transport or backend failures
- Return None (not raise) from fetch_by_id when the document does not exist
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional


class DocumentStoreError(RuntimeError):
    """Raised when the remote document store cannot be reached or rejects a request."""


class RecordNotFound(LookupError):
    """Raised when a requested document does not exist."""

    def __init__(self, resource: str, record_id: str) -> None:
        super().__init__(f"{resource}/{record_id} not found")
        self.resource = resource
        self.record_id = record_id


class BaseDocumentStore(ABC):
    """
    Abstract base class for remote document stores.

    A resource is a named collection of documents (e.g. "recipes", "Category").
    """

    @abstractmethod
    def fetch_all(self, resource: str) -> List[Dict[str, Any]]:
        """
        Fetch every document of a resource, newest first by createdAt.

        Args:
            resource: Collection name

        Returns:
            List of records
        """

    @abstractmethod
    def fetch_since(self, resource: str, since: datetime) -> List[Dict[str, Any]]:
        """
        Fetch documents created or modified strictly after `since`.

        A document qualifies when its createdAt or its lastModified is greater
        than `since`.

        Args:
            resource: Collection name
            since: Lower bound (exclusive), timezone-aware

        Returns:
            List of records, newest first by createdAt
        """

    @abstractmethod
    def fetch_by_id(self, resource: str, record_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a single document.

        Returns:
            The record, or None if it does not exist
        """

    @abstractmethod
    def create(self, resource: str, fields: Dict[str, Any]) -> str:
        """
        Create a document.

        Returns:
            The new document id
        """

    @abstractmethod
    def update(self, resource: str, record_id: str, fields: Dict[str, Any]) -> None:
        """
        Merge fields into an existing document.

        Raises:
            RecordNotFound: If the document does not exist
        """
