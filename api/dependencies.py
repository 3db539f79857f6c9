"""
FastAPI dependencies.

The RecipeService is built once per process from the environment (see
api.config) and handed to the endpoints through get_service. Tests replace it
with app.dependency_overrides[get_service].
"""

import logging
from functools import lru_cache

from api.config import CacheConfig, DocumentStoreConfig, validate_required_config
from recipebook.connectors.base import BaseDocumentStore
from recipebook.connectors.firestore_connector import FirestoreConnector
from recipebook.connectors.memory_store import MemoryDocumentStore
from recipebook.favorites import FavoritesStore
from recipebook.recipes import RecipeService
from recipebook.storage import build_storage
from recipebook.utils.cache import ResourceCache

logger = logging.getLogger(__name__)


def build_document_store() -> BaseDocumentStore:
    """
    Create the document store selected by DOCUMENT_STORE.

    Raises:
        RuntimeError: If the Firestore settings are missing
    """
    backend = DocumentStoreConfig.get_backend()
    if backend == "firestore":
        return FirestoreConnector(
            project_id=DocumentStoreConfig.get_project_id(),
            api_key=DocumentStoreConfig.get_api_key(),
            id_token=DocumentStoreConfig.get_id_token(),
            timeout=DocumentStoreConfig.get_timeout(),
        )
    logger.warning("DOCUMENT_STORE=%s: recipes are kept in memory and lost on restart", backend)
    return MemoryDocumentStore()


def build_service() -> RecipeService:
    """Create a RecipeService from the environment configuration."""
    validate_required_config()

    storage = build_storage(
        CacheConfig.get_backend(),
        directory=CacheConfig.get_directory(),
        database_url=CacheConfig.get_database_url(),
    )
    cache = ResourceCache(storage)
    logger.info(
        "Recipe service ready (store=%s, cache=%s, ttl=%ss)",
        DocumentStoreConfig.get_backend(), CacheConfig.get_backend(), cache.ttl_seconds,
    )
    return RecipeService(build_document_store(), cache, favorites=FavoritesStore(storage))


@lru_cache(maxsize=1)
def get_service() -> RecipeService:
    return build_service()
