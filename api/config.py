"""
Configuration management for the Recipe Book API.

This module centralizes environment variable loading from the .env file at the
project root. It is imported first by api/main.py so .env is loaded before any
other code reads the environment.

In production .env usually does not exist; load_dotenv() then no-ops and the
platform's environment variables are used.

Environment Variables:
- DOCUMENT_STORE: "memory" (default) or "firestore"
- FIRESTORE_PROJECT_ID: Required when DOCUMENT_STORE=firestore
- FIRESTORE_API_KEY: Required when DOCUMENT_STORE=firestore
- FIRESTORE_ID_TOKEN: Optional Firebase ID token for authenticated requests
- FIRESTORE_TIMEOUT: Optional, request timeout in seconds (default: 10)
- CACHE_BACKEND: "memory" (default), "file" or "sql"
- CACHE_DIR: Optional, directory for CACHE_BACKEND=file (default: .cache/recipebook)
- DATABASE_URL: Required when CACHE_BACKEND=sql
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Get project root: api/config.py -> api/ -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent


def load_env_file() -> None:
    """
    Load environment variables from .env file at project root.

    Safe to call multiple times. Variables already set in the environment take
    precedence over the file.
    """
    load_dotenv(PROJECT_ROOT / ".env", override=False)


load_env_file()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from e


class DocumentStoreConfig:
    """Configuration for the remote document store."""

    @staticmethod
    def get_backend() -> str:
        """
        Get the document store backend name.

        Returns:
            "memory" or "firestore" (default: "memory")
        """
        return os.getenv("DOCUMENT_STORE", "memory").strip().lower()

    @staticmethod
    def get_project_id() -> Optional[str]:
        return os.getenv("FIRESTORE_PROJECT_ID")

    @staticmethod
    def get_api_key() -> Optional[str]:
        return os.getenv("FIRESTORE_API_KEY")

    @staticmethod
    def get_id_token() -> Optional[str]:
        return os.getenv("FIRESTORE_ID_TOKEN")

    @staticmethod
    def get_timeout() -> float:
        """
        Get the Firestore request timeout.

        Returns:
            Timeout in seconds (default: 10)
        """
        return _float_env("FIRESTORE_TIMEOUT", 10.0)


class CacheConfig:
    """Configuration for the local read-through cache."""

    @staticmethod
    def get_backend() -> str:
        """
        Get the cache storage backend name.

        Returns:
            "memory", "file" or "sql" (default: "memory")
        """
        return os.getenv("CACHE_BACKEND", "memory").strip().lower()

    @staticmethod
    def get_directory() -> Path:
        """
        Get the cache directory for the file backend.

        Relative paths are resolved against the project root.
        """
        directory = Path(os.getenv("CACHE_DIR", ".cache/recipebook"))
        return directory if directory.is_absolute() else PROJECT_ROOT / directory

    @staticmethod
    def get_database_url() -> Optional[str]:
        return os.getenv("DATABASE_URL")


def validate_required_config() -> None:
    """
    Validate that the environment variables for the selected backends are set.

    Raises:
        RuntimeError: If any required configuration is missing or a backend name
            is unknown
    """
    missing = []

    store = DocumentStoreConfig.get_backend()
    if store == "firestore":
        if not DocumentStoreConfig.get_project_id():
            missing.append("FIRESTORE_PROJECT_ID (required for DOCUMENT_STORE=firestore)")
        if not DocumentStoreConfig.get_api_key():
            missing.append("FIRESTORE_API_KEY (required for DOCUMENT_STORE=firestore)")
    elif store != "memory":
        raise RuntimeError(f"Unknown DOCUMENT_STORE: {store!r}. Valid values: memory, firestore")

    backend = CacheConfig.get_backend()
    if backend == "sql" and not CacheConfig.get_database_url():
        missing.append("DATABASE_URL (required for CACHE_BACKEND=sql)")
    elif backend not in ("memory", "file", "sql"):
        raise RuntimeError(f"Unknown CACHE_BACKEND: {backend!r}. Valid values: memory, file, sql")

    if missing:
        raise RuntimeError(
            "Missing required environment variables:\n" +
            "\n".join(f"  - {var}" for var in missing) +
            "\n\nPlease create a .env file at the project root with these variables."
        )
