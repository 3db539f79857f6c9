"""
Recipe, category and cache models for the recipe book.

This module defines the schemas shared by the cache, the sync protocol, the
filters and the API layer.

# NOTE: Recipe documents in the remote store use camelCase field names
    (cuisineType, searchableIngredients, createdAt, ...). The models expose
    snake_case attributes with camelCase aliases so that documents can be
    validated as-is and dumped back with `by_alias=True`.

The cache and sync layer never touch these models: they handle records as
plain dictionaries and only read `id`, `createdAt` and `lastModified`.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CacheEntry(BaseModel):
    """
    A cached snapshot of a logical resource.

    Attributes:
        key: Logical resource key (e.g. "all_recipes", "recipe_<id>")
        payload: A single JSON record or an ordered list of records
        stored_at: Epoch seconds when the entry was written
        synced_at: Epoch seconds of the last successful reconciliation
    """
    key: str
    payload: Any = None
    stored_at: float
    synced_at: float


class Recipe(BaseModel):
    """
    Recipe document as stored in the remote document store.

    Free-text fields are stored already normalized by the write path (tags and
    category lower-cased, cookbook and ingredients trimmed), so filters compare
    them exactly.
    """
    id: str = Field(..., description="Document identifier")
    title: str = Field("", description="Recipe title")
    cookbook: Optional[str] = Field(None, description="Cookbook the recipe belongs to")
    author: Optional[str] = Field(None, description="Recipe author")
    cuisine_type: Optional[str] = Field(None, alias="cuisineType", description="Cuisine (e.g. 'Italian')")
    effort: Optional[str] = Field(None, description="Effort level label")
    cooking_method: Optional[str] = Field(None, alias="cookingMethod", description="Cooking method (e.g. 'Oven')")
    recipe_type: Optional[str] = Field(None, alias="recipeType", description="Meal type (e.g. 'Dinner')")
    ingredient_category: Optional[str] = Field(None, alias="ingredientCategory", description="Main food group")
    category: Optional[str] = Field(None, description="Lower-cased category name")
    ingredients: List[str] = Field(default_factory=list)
    searchable_ingredients: List[str] = Field(default_factory=list, alias="searchableIngredients")
    instructions: Any = Field(None, description="Free-form instructions (text or list of steps)")
    tags: List[str] = Field(default_factory=list)
    dietary_tags: List[str] = Field(default_factory=list, alias="dietaryTags")
    image_url: Optional[str] = Field(None, alias="imageUrl")
    is_favorite: bool = Field(False, alias="isFavorite")
    user_id: Optional[str] = Field(None, alias="userId")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    last_modified: Optional[datetime] = Field(None, alias="lastModified")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator("ingredients", "searchable_ingredients", "tags", "dietary_tags", mode="before")
    @classmethod
    def _null_list_is_empty(cls, value: Any) -> Any:
        # The remote store hands back null for list fields that were cleared
        return [] if value is None else value

    @field_validator("title", mode="before")
    @classmethod
    def _null_title_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("is_favorite", mode="before")
    @classmethod
    def _null_favorite_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    def to_document(self) -> Dict[str, Any]:
        """Dump the recipe with the remote store's field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Category(BaseModel):
    """Category document (names are stored lower-cased)."""
    id: Optional[str] = None
    name: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class CookbookSummary(BaseModel):
    """A cookbook aggregated from the recipes that reference it."""
    name: str
    recipe_count: int = 0
    recipes: List[Recipe] = Field(default_factory=list)


class SimilarMatch(BaseModel):
    """
    Duplicate warning returned before a write.

    Attributes:
        field: Which input produced the warning ("cookbook", "ingredients", ...)
        candidate: The user-entered value
        match: The existing value it collides with after normalization
    """
    field: str
    candidate: str
    match: str


# Hyphenated names used by callers -> FilterCriteria attribute names
FILTER_NAMES: Dict[str, str] = {
    "search-text": "search_text",
    "cuisine": "cuisine",
    "effort": "effort",
    "cooking-method": "cooking_method",
    "meal-type": "meal_type",
    "food-group": "food_group",
    "category": "category",
    "cookbook": "cookbook",
    "author": "author",
    "ingredient-substring": "ingredient",
}


class FilterCriteria(BaseModel):
    """
    User-selected filters for a recipe collection.

    Every field is optional; None or an empty string means "no constraint".
    """
    search_text: Optional[str] = None
    cuisine: Optional[str] = None
    effort: Optional[str] = None
    cooking_method: Optional[str] = None
    meal_type: Optional[str] = None
    food_group: Optional[str] = None
    category: Optional[str] = None
    cookbook: Optional[str] = None
    author: Optional[str] = None
    ingredient: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> "FilterCriteria":
        """
        Build criteria from a mapping keyed by hyphenated or attribute names.

        Args:
            values: e.g. {"cuisine": "Italian", "cooking-method": "Oven"}

        Returns:
            FilterCriteria instance

        Raises:
            ValueError: If a key is not a recognized filter name
        """
        if not values:
            return cls()

        known = set(cls.model_fields)
        data: Dict[str, Any] = {}
        for name, value in values.items():
            attr = FILTER_NAMES.get(name, name)
            if attr not in known:
                raise ValueError(f"Unknown filter: {name!r}")
            data[attr] = value
        return cls(**data)

    def active(self) -> Dict[str, str]:
        """Return only the filters that constrain the result."""
        return {name: value for name, value in self.model_dump().items() if value}
