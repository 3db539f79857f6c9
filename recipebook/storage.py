"""
Persistent key-value storage backends for the local cache.

The cache stores serialized blobs under string keys, the same contract as a
browser's localStorage: get/set/remove of strings plus key enumeration (used
by namespace-wide invalidation).

Backends:
- MemoryStorage: process-local dict (tests, development)
- FileStorage: one JSON file per key in a directory
- SqlStorage: SQLAlchemy table, enabled by setting DATABASE_URL

None of these interpret the stored values; corruption handling belongs to the
cache.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

from sqlalchemy import Column, DateTime, String, Text, create_engine, delete, select
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.sql import func

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """
    Abstract string-keyed blob storage.

    Implementations must be safe to call with keys that do not exist:
    get_item returns None and remove_item is a no-op.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value for key, or None."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Return all stored keys."""


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage. Contents are lost when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)


class FileStorage(KeyValueStorage):
    """
    Directory-backed storage: one file per key.

    Keys are percent-encoded into file names so any key is safe on disk.
    Writes go to a temporary file that is then moved into place, so a reader
    never sees a half-written blob.
    """

    SUFFIX = ".json"

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / (quote(key, safe="") + self.SUFFIX)

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, self._path(key))
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> List[str]:
        return [
            unquote(path.name[: -len(self.SUFFIX)])
            for path in self.directory.glob(f"*{self.SUFFIX}")
            if not path.name.startswith(".tmp-")
        ]


Base = declarative_base()


class KeyValueRow(Base):
    """Key-value table - one row per cache key."""
    __tablename__ = "kv_store"

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class SqlStorage(KeyValueStorage):
    """
    SQLAlchemy-backed storage.

    Tables are created on construction if they don't exist. Works with any
    SQLAlchemy URL (Postgres in production, SQLite for local runs and tests).
    """

    def __init__(self, database_url: str, echo: bool = False) -> None:
        self.engine = create_engine(database_url, pool_pre_ping=True, echo=echo)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        Base.metadata.create_all(bind=self.engine)
        logger.info("Key-value storage initialized on %s", self.engine.url.render_as_string(hide_password=True))

    def get_item(self, key: str) -> Optional[str]:
        with self.SessionLocal() as db:
            row = db.get(KeyValueRow, key)
            return row.value if row is not None else None

    def set_item(self, key: str, value: str) -> None:
        with self.SessionLocal() as db:
            row = db.get(KeyValueRow, key)
            if row is None:
                db.add(KeyValueRow(key=key, value=value))
            else:
                row.value = value
            db.commit()

    def remove_item(self, key: str) -> None:
        with self.SessionLocal() as db:
            db.execute(delete(KeyValueRow).where(KeyValueRow.key == key))
            db.commit()

    def keys(self) -> List[str]:
        with self.SessionLocal() as db:
            return list(db.scalars(select(KeyValueRow.key)))


def build_storage(
    backend: str = "memory",
    directory: Optional[Path | str] = None,
    database_url: Optional[str] = None,
) -> KeyValueStorage:
    """
    Create a storage backend by name.

    Args:
        backend: "memory", "file" or "sql"
        directory: Required for "file"
        database_url: Required for "sql"

    Returns:
        KeyValueStorage instance

    Raises:
        RuntimeError: If the backend is unknown or its setting is missing
    """
    backend = (backend or "memory").strip().lower()

    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        if not directory:
            raise RuntimeError("CACHE_DIR is not set. It is required when CACHE_BACKEND=file.")
        return FileStorage(directory)
    if backend == "sql":
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set. It is required when CACHE_BACKEND=sql.")
        return SqlStorage(database_url)

    raise RuntimeError(f"Unknown cache backend: {backend!r}. Valid backends: memory, file, sql")
