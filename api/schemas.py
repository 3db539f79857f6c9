"""
Pydantic schemas for FastAPI request and response models.

This module defines the request bodies and response envelopes of the API.
Recipes themselves are serialized with recipebook.models.Recipe, so responses
use the document field names (cuisineType, createdAt, ...).

The schemas include:
- RecipeInput: Body of POST /recipes and PUT /recipes/{id}
- RecipeListResponse / RecipeResponse: Recipes plus how the cache served them
- SimilarCheckRequest / SimilarCheckResponse: Duplicate check before a write
- CookbookListResponse, CategoryListResponse, FacetsResponse, FavoritesResponse
- CacheClearResponse
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from recipebook.models import Category, CookbookSummary, Recipe, SimilarMatch


class RecipeInput(BaseModel):
    """
    Recipe fields accepted on create and update.

    Field names follow the stored documents (camelCase); snake_case names are
    accepted too. On update only the fields present in the body are changed.
    """
    title: Optional[str] = Field(None, min_length=1, description="Recipe title")
    cookbook: Optional[str] = None
    author: Optional[str] = None
    cuisine_type: Optional[str] = Field(None, alias="cuisineType")
    effort: Optional[str] = None
    cooking_method: Optional[str] = Field(None, alias="cookingMethod")
    recipe_type: Optional[str] = Field(None, alias="recipeType", description="Meal type")
    ingredient_category: Optional[str] = Field(None, alias="ingredientCategory", description="Main food group")
    category: Optional[str] = None
    ingredients: Optional[List[str]] = None
    searchable_ingredients: Optional[List[str]] = Field(None, alias="searchableIngredients")
    instructions: Any = None
    tags: Optional[List[str]] = None
    dietary_tags: Optional[List[str]] = Field(None, alias="dietaryTags")
    image_url: Optional[str] = Field(None, alias="imageUrl")
    user_id: Optional[str] = Field(None, alias="userId")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Pasta al Forno",
                "cookbook": "Family Favourites",
                "author": "Nonna",
                "cuisineType": "Italian",
                "effort": "Moderate Effort (30-60 mins)",
                "cookingMethod": "Oven",
                "recipeType": "Dinner",
                "ingredientCategory": "Grains",
                "category": "pasta",
                "ingredients": ["400g penne", "1 jar passata", "mozzarella"],
                "searchableIngredients": ["penne", "passata", "mozzarella"],
                "tags": ["comfort food"],
            }
        },
    )

    def to_document(self) -> Dict[str, Any]:
        """Dump the fields that were sent, with document field names."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class RecipeListResponse(BaseModel):
    """
    Response model for GET /recipes.

    cache_status tells how the collection was served: "miss" (full fetch),
    "hit" (cached, nothing new), "reconciled" (cached plus new or updated
    recipes) or "stale" (cached, remote store unreachable).
    """
    recipes: List[Recipe]
    count: int = Field(..., ge=0)
    cache_status: str
    stale: bool = False


class RecipeResponse(BaseModel):
    recipe: Recipe
    cache_status: str
    stale: bool = False


class SimilarCheckRequest(BaseModel):
    """Body of POST /similar."""
    recipe: RecipeInput
    recipe_id: Optional[str] = Field(None, description="Id of the recipe being edited, excluded from the check")


class SimilarCheckResponse(BaseModel):
    matches: List[SimilarMatch]
    has_duplicates: bool


class CookbookListResponse(BaseModel):
    cookbooks: List[CookbookSummary]


class CategoryListResponse(BaseModel):
    categories: List[Category]


class FacetsResponse(BaseModel):
    """Distinct values available for each recipe filter."""
    tags: List[str] = Field(default_factory=list)
    cuisines: List[str] = Field(default_factory=list)
    efforts: List[str] = Field(default_factory=list)
    cooking_methods: List[str] = Field(default_factory=list)
    meal_types: List[str] = Field(default_factory=list)
    food_groups: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    cookbooks: List[str] = Field(default_factory=list)
    authors: List[str] = Field(default_factory=list)


class FavoritesResponse(BaseModel):
    favorites: List[Recipe]


class CacheClearResponse(BaseModel):
    removed: int = Field(..., ge=0, description="Number of cache entries removed")
