"""
Locally persisted favorites list.

Favorites are kept as recipe snapshots under a single storage key, outside the
cache namespace, so clearing the cache never drops them.
"""

import json
import logging
from typing import Any, Dict, List

from recipebook.storage import KeyValueStorage

logger = logging.getLogger(__name__)


class FavoritesStore:
    """
    Ordered list of favorite recipe snapshots, unique by id.

    Attributes:
        storage: Backend holding the serialized list
        key: Storage key of the list
    """

    def __init__(self, storage: KeyValueStorage, key: str = "favorites") -> None:
        self.storage = storage
        self.key = key

    def list(self) -> List[Dict[str, Any]]:
        """Return the stored favorites; a missing or unreadable list is empty."""
        raw = self.storage.get_item(self.key)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
        except ValueError as e:
            logger.warning("Discarding unreadable favorites list: %s", e)
            return []
        if not isinstance(items, list):
            logger.warning("Discarding favorites list of unexpected type %s", type(items).__name__)
            return []
        return [item for item in items if isinstance(item, dict) and item.get("id")]

    def _save(self, items: List[Dict[str, Any]]) -> None:
        self.storage.set_item(self.key, json.dumps(items))

    def is_favorite(self, recipe_id: str) -> bool:
        return any(item["id"] == recipe_id for item in self.list())

    def add(self, recipe: Dict[str, Any]) -> bool:
        """
        Add a recipe snapshot.

        Args:
            recipe: Recipe document; must carry an "id"

        Returns:
            True if added, False if it was already a favorite
        """
        items = self.list()
        if any(item["id"] == recipe["id"] for item in items):
            return False
        items.append(recipe)
        self._save(items)
        return True

    def remove(self, recipe_id: str) -> bool:
        """Remove a favorite. Returns False if it was not in the list."""
        items = self.list()
        remaining = [item for item in items if item["id"] != recipe_id]
        if len(remaining) == len(items):
            return False
        self._save(remaining)
        return True
