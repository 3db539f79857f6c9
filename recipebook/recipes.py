"""
Recipe service: the operations callers use to read and write recipes.

This module ties the pieces together:
- reads go through the local cache with incremental reconciliation
  (recipebook.sync)
- listing applies user filters (recipebook.filters)
- writes are checked for near-duplicates, normalized, stamped and written to
  the remote store, then the affected cache entries are dropped so the next
  read sees the write

Cache keys:
- "all_recipes": the whole recipe collection
- "recipe_<id>": a single recipe
- "categories": the Category collection
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from recipebook.connectors.base import BaseDocumentStore, DocumentStoreError, RecordNotFound
from recipebook.cookbooks import aggregate_cookbooks
from recipebook.favorites import FavoritesStore
from recipebook.filters import apply_filters, collect_facets
from recipebook.models import Category, CookbookSummary, FilterCriteria, Recipe, SimilarMatch
from recipebook.sync import ReadThroughResult, read_through, read_through_record
from recipebook.utils.cache import ResourceCache
from recipebook.utils.normalize import find_duplicates, find_similar, normalize, normalize_effort_level, normalize_tags
from recipebook.utils.timestamps import isoformat_utc

logger = logging.getLogger(__name__)

RECIPES = "recipes"
CATEGORIES = "Category"

ALL_RECIPES_KEY = "all_recipes"
CATEGORIES_KEY = "categories"

# Free-text fields trimmed before a write
_TRIMMED_FIELDS = ("title", "cookbook", "author", "cuisineType", "effort", "cookingMethod", "recipeType",
                   "ingredientCategory")


def recipe_key(recipe_id: str) -> str:
    return f"recipe_{recipe_id}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DuplicateEntryError(ValueError):
    """Raised when a write collides with existing entries after normalization."""

    def __init__(self, matches: List[SimilarMatch]) -> None:
        summary = ", ".join(f"{m.field}: {m.candidate!r} ~ {m.match!r}" for m in matches)
        super().__init__(f"Similar entries already exist ({summary})")
        self.matches = matches


class RecipeService:
    """
    Recipe reads and writes over a document store and a local cache.

    Attributes:
        store: Remote document store
        cache: Local read-through cache
        favorites: Optional local favorites list kept in step with isFavorite
        now: Clock used for createdAt / lastModified stamps
    """

    def __init__(
        self,
        store: BaseDocumentStore,
        cache: ResourceCache,
        favorites: Optional[FavoritesStore] = None,
        now: Callable[[], datetime] = _now,
    ) -> None:
        self.store = store
        self.cache = cache
        self.favorites = favorites
        self.now = now

    # ---- reads ----

    def _collection(self) -> Tuple[List[Recipe], ReadThroughResult]:
        result = read_through(self.cache, self.store, RECIPES, key=ALL_RECIPES_KEY)
        return [Recipe.model_validate(record) for record in result.payload], result

    def list_recipes(
        self,
        criteria: Union[FilterCriteria, Mapping[str, Any], None] = None,
    ) -> Tuple[List[Recipe], ReadThroughResult]:
        """
        List recipes, newest first, narrowed by the given filters.

        Args:
            criteria: Filters to apply (None for all recipes)

        Returns:
            Tuple of (matching recipes, read-through result)

        Raises:
            DocumentStoreError: If nothing is cached and the remote store is unreachable
            ValueError: If criteria names an unknown filter
        """
        recipes, result = self._collection()
        return apply_filters(recipes, criteria), result

    def get_recipe(self, recipe_id: str) -> Tuple[Recipe, ReadThroughResult]:
        """
        Get a single recipe.

        Raises:
            RecordNotFound: If the recipe does not exist
        """
        result = read_through_record(self.cache, self.store, RECIPES, recipe_id, key=recipe_key(recipe_id))
        return Recipe.model_validate(result.payload), result

    def list_categories(self) -> List[Category]:
        """List categories sorted by name."""
        result = read_through(self.cache, self.store, CATEGORIES, key=CATEGORIES_KEY)
        categories = [Category.model_validate(record) for record in result.payload if record.get("name")]
        return sorted(categories, key=lambda c: c.name)

    def list_cookbooks(self) -> List[CookbookSummary]:
        recipes, _ = self._collection()
        return aggregate_cookbooks(recipes)

    def facets(self) -> Dict[str, List[str]]:
        recipes, _ = self._collection()
        return collect_facets(recipes)

    # ---- duplicate detection ----

    def check_duplicates(self, data: Mapping[str, Any], recipe_id: Optional[str] = None) -> List[SimilarMatch]:
        """
        Find near-duplicates of a recipe about to be written.

        Checks, all after normalization:
        - cookbook and author against the values already in use; an exact match
          is fine, a differently spelled one is reported
        - repeated entries inside ingredients and searchableIngredients
        - title against the other recipes (recipe_id is excluded)

        Args:
            data: Recipe document fields (camelCase)
            recipe_id: Id of the recipe being edited, if any

        Returns:
            List of matches (empty when the recipe is clean)
        """
        recipes, _ = self._collection()
        others = [r for r in recipes if r.id != recipe_id]
        matches: List[SimilarMatch] = []

        for field, existing in (
            ("cookbook", {r.cookbook for r in others if r.cookbook}),
            ("author", {r.author for r in others if r.author}),
        ):
            value = (data.get(field) or "").strip()
            if not value:
                continue
            similar = find_similar(value, sorted(existing))
            if similar is not None and similar != value:
                matches.append(SimilarMatch(field=field, candidate=value, match=similar))

        for field in ("ingredients", "searchableIngredients"):
            values = [v for v in data.get(field) or [] if isinstance(v, str)]
            for duplicate in find_duplicates(values):
                matches.append(SimilarMatch(field=field, candidate=duplicate, match=find_similar(duplicate, values)))

        title = (data.get("title") or "").strip()
        if title:
            similar = find_similar(title, [r.title for r in others])
            if similar is not None:
                matches.append(SimilarMatch(field="title", candidate=title, match=similar))

        return matches

    def _guard_duplicates(self, data: Mapping[str, Any], recipe_id: Optional[str], allow_duplicates: bool) -> None:
        matches = self.check_duplicates(data, recipe_id=recipe_id)
        if not matches:
            return
        if not allow_duplicates:
            logger.warning("Rejected write with %d similar entries: %s", len(matches),
                           [m.field for m in matches])
            raise DuplicateEntryError(matches)
        logger.warning("Writing despite %d similar entries: %s", len(matches), [m.field for m in matches])

    # ---- writes ----

    def _prepare(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Clean a recipe document before it is written.

        Free text is trimmed, effort is mapped onto its canonical label, tags
        and category are lower-cased and blank list entries are dropped.
        """
        document = {k: v for k, v in data.items() if k != "id"}
        for field in _TRIMMED_FIELDS:
            if isinstance(document.get(field), str):
                document[field] = document[field].strip()
        if document.get("effort"):
            document["effort"] = normalize_effort_level(document["effort"])
        for field in ("ingredients", "searchableIngredients"):
            if field in document:
                document[field] = [v.strip() for v in document[field] or [] if isinstance(v, str) and v.strip()]
        if "tags" in document:
            document["tags"] = normalize_tags(document["tags"] or [])
        if "dietaryTags" in document:
            document["dietaryTags"] = normalize_tags(document["dietaryTags"] or [])
        if "category" in document:
            document["category"] = normalize(document["category"])
        return document

    def _register_category(self, name: Optional[str]) -> bool:
        """Add a category unless one with the same normalized name exists."""
        if not name:
            return False
        existing = [c.name for c in self.list_categories()]
        if find_similar(name, existing) is not None:
            return False
        self.store.create(CATEGORIES, {"name": name, "createdAt": isoformat_utc(self.now())})
        logger.info("Registered new category %r", name)
        return True

    def create_recipe(self, data: Mapping[str, Any], allow_duplicates: bool = False) -> Recipe:
        """
        Create a recipe.

        Args:
            data: Recipe document fields (camelCase)
            allow_duplicates: Write even when similar entries exist

        Returns:
            The created recipe

        Raises:
            DuplicateEntryError: If similar entries exist and allow_duplicates is False
            DocumentStoreError: If the remote write fails
        """
        self._guard_duplicates(data, None, allow_duplicates)

        document = self._prepare(data)
        document["createdAt"] = isoformat_utc(self.now())
        document.setdefault("isFavorite", False)

        try:
            category_added = self._register_category(document.get("category"))
            record_id = self.store.create(RECIPES, document)
        except DocumentStoreError as e:
            logger.error("Failed to create recipe %r: %s", document.get("title"), e, exc_info=True)
            raise

        self.cache.invalidate(ALL_RECIPES_KEY)
        if category_added:
            self.cache.invalidate(CATEGORIES_KEY)
        logger.info("Created recipe %s (%r)", record_id, document.get("title"))
        return Recipe.model_validate({**document, "id": record_id})

    def update_recipe(self, recipe_id: str, data: Mapping[str, Any], allow_duplicates: bool = False) -> Recipe:
        """
        Update a recipe.

        Only the given fields change; lastModified is stamped.

        Raises:
            RecordNotFound: If the recipe does not exist
            DuplicateEntryError: If similar entries exist and allow_duplicates is False
            DocumentStoreError: If the remote write fails
        """
        existing = self.store.fetch_by_id(RECIPES, recipe_id)
        if existing is None:
            raise RecordNotFound(RECIPES, recipe_id)

        self._guard_duplicates(data, recipe_id, allow_duplicates)

        document = self._prepare(data)
        document["lastModified"] = isoformat_utc(self.now())

        try:
            category_added = self._register_category(document.get("category"))
            self.store.update(RECIPES, recipe_id, document)
        except DocumentStoreError as e:
            logger.error("Failed to update recipe %s: %s", recipe_id, e, exc_info=True)
            raise

        self.cache.invalidate(recipe_key(recipe_id))
        self.cache.invalidate(ALL_RECIPES_KEY)
        if category_added:
            self.cache.invalidate(CATEGORIES_KEY)
        logger.info("Updated recipe %s", recipe_id)
        return Recipe.model_validate({**existing, **document, "id": recipe_id})

    def set_favorite(self, recipe_id: str, is_favorite: bool) -> Recipe:
        """
        Mark or unmark a recipe as favorite.

        The flag is written to the remote document and patched into the cached
        copies in place (the write does not touch lastModified, so an
        incremental read would not pick it up).

        Raises:
            RecordNotFound: If the recipe does not exist
        """
        existing = self.store.fetch_by_id(RECIPES, recipe_id)
        if existing is None:
            raise RecordNotFound(RECIPES, recipe_id)

        try:
            self.store.update(RECIPES, recipe_id, {"isFavorite": is_favorite})
        except DocumentStoreError as e:
            logger.error("Failed to set favorite on recipe %s: %s", recipe_id, e, exc_info=True)
            raise

        recipe = Recipe.model_validate({**existing, "isFavorite": is_favorite})

        def _patch(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
            return [{**r, "isFavorite": is_favorite} if r.get("id") == recipe_id else r for r in records]

        self.cache.update(ALL_RECIPES_KEY, _patch)
        self.cache.update(recipe_key(recipe_id), lambda cached: {**cached, "isFavorite": is_favorite})

        if self.favorites is not None:
            if is_favorite:
                self.favorites.add(recipe.to_document())
            else:
                self.favorites.remove(recipe_id)

        return recipe

    def refresh(self) -> int:
        """Drop every cached resource. Returns the number of entries removed."""
        return self.cache.invalidate_all()
