"""
FastAPI application for the Recipe Book API.

This module defines the REST API endpoints of the recipe book backend:
- GET /recipes: List recipes, narrowed by filters
- GET /recipes/facets: Distinct values available for each filter
- GET /recipes/{id}: Get one recipe
- POST /recipes, PUT /recipes/{id}: Create and edit recipes
- POST/DELETE /recipes/{id}/favorite: Mark or unmark a favorite
- GET /favorites, GET /cookbooks, GET /categories
- POST /similar: Check a recipe for near-duplicates before saving
- /cache/...: Cache administration (see api/routers/cache.py)

Reads are served from the local cache and reconciled with the document store
on every request; responses report how via `cache_status`.

Run the API with:
    uvicorn api.main:app --reload

Access API documentation at:
    http://localhost:8000/docs (Swagger UI)
    http://localhost:8000/redoc (ReDoc)
"""

# Import config early to load .env before any other code reads the environment
import api.config  # noqa: F401

import logging
import time
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status

from api.config import CacheConfig, DocumentStoreConfig
from api.dependencies import get_service
from api.routers.cache import router as cache_router
from api.schemas import (
    CategoryListResponse,
    CookbookListResponse,
    FacetsResponse,
    FavoritesResponse,
    RecipeInput,
    RecipeListResponse,
    RecipeResponse,
    SimilarCheckRequest,
    SimilarCheckResponse,
)
from recipebook.connectors.base import DocumentStoreError, RecordNotFound
from recipebook.models import FilterCriteria, Recipe
from recipebook.recipes import DuplicateEntryError, RecipeService

logger = logging.getLogger(__name__)

# Track app start time for uptime calculation
_APP_START_TIME = time.time()

APP_NAME = "Recipe Book API"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Backend API for browsing, filtering and editing a cached recipe collection"

app = FastAPI(
    title=APP_NAME,
    description=APP_DESCRIPTION,
    version=APP_VERSION,
    openapi_tags=[
        {"name": "recipes", "description": "List, filter, read and edit recipes."},
        {"name": "favorites", "description": "Mark recipes as favorites."},
        {"name": "catalog", "description": "Cookbooks, categories and filter values."},
        {"name": "cache", "description": "Inspect and clear the local recipe cache."},
        {"name": "health", "description": "Health check and monitoring endpoints."},
    ],
)
app.include_router(cache_router)


def _store_unavailable(e: DocumentStoreError) -> HTTPException:
    logger.error("Document store unavailable: %s", e)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Recipe store is unavailable: {e}",
    )


def _not_found(e: RecordNotFound) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Recipe not found: {e.record_id}")


def _duplicates(e: DuplicateEntryError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "message": "Similar entries already exist. Resubmit with allow_duplicates=true to save anyway.",
            "matches": [m.model_dump() for m in e.matches],
        },
    )


@app.get(
    "/recipes",
    response_model=RecipeListResponse,
    tags=["recipes"],
    summary="List recipes",
    description="List recipes newest first. Every filter is optional; filters combine with AND.",
)
def list_recipes(
    search: Optional[str] = Query(None, description="Case-insensitive substring of the title"),
    cuisine: Optional[str] = Query(None, description="Exact cuisine (e.g. 'Italian')"),
    effort: Optional[str] = Query(None, description="Exact effort level"),
    cooking_method: Optional[str] = Query(None, description="Exact cooking method (e.g. 'Oven')"),
    meal_type: Optional[str] = Query(None, description="Exact meal type (e.g. 'Dinner')"),
    food_group: Optional[str] = Query(None, description="Exact main food group"),
    category: Optional[str] = Query(None, description="Exact category"),
    cookbook: Optional[str] = Query(None, description="Exact cookbook name"),
    author: Optional[str] = Query(None, description="Exact author"),
    ingredient: Optional[str] = Query(None, description="Case-insensitive substring of any searchable ingredient"),
    service: RecipeService = Depends(get_service),
) -> RecipeListResponse:
    """
    List recipes matching every given filter.

    Returns:
        RecipeListResponse with the recipes and the cache status

    Raises:
        HTTPException 503: If nothing is cached and the document store is unreachable

    Example:
        ```bash
        GET /recipes?cuisine=Italian&effort=Quick%20%26%20Easy%20(Under%2030%20mins)
        ```
    """
    criteria = FilterCriteria(
        search_text=search,
        cuisine=cuisine,
        effort=effort,
        cooking_method=cooking_method,
        meal_type=meal_type,
        food_group=food_group,
        category=category,
        cookbook=cookbook,
        author=author,
        ingredient=ingredient,
    )
    try:
        recipes, result = service.list_recipes(criteria)
    except DocumentStoreError as e:
        raise _store_unavailable(e) from e

    return RecipeListResponse(recipes=recipes, count=len(recipes), cache_status=result.status, stale=not result.ok)


@app.get("/recipes/facets", response_model=FacetsResponse, tags=["catalog"])
def recipe_facets(service: RecipeService = Depends(get_service)) -> FacetsResponse:
    """Distinct tags, cuisines, effort levels, ... found on the recipes, for building filter menus."""
    try:
        return FacetsResponse(**service.facets())
    except DocumentStoreError as e:
        raise _store_unavailable(e) from e


@app.get("/recipes/{recipe_id}", response_model=RecipeResponse, tags=["recipes"])
def get_recipe(recipe_id: str, service: RecipeService = Depends(get_service)) -> RecipeResponse:
    """
    Get one recipe.

    Raises:
        HTTPException 404: If the recipe does not exist
        HTTPException 503: If it is not cached and the document store is unreachable
    """
    try:
        recipe, result = service.get_recipe(recipe_id)
    except RecordNotFound as e:
        raise _not_found(e) from e
    except DocumentStoreError as e:
        raise _store_unavailable(e) from e

    return RecipeResponse(recipe=recipe, cache_status=result.status, stale=not result.ok)


@app.post(
    "/recipes",
    response_model=Recipe,
    status_code=status.HTTP_201_CREATED,
    tags=["recipes"],
    summary="Create a recipe",
)
def create_recipe(
    body: RecipeInput,
    allow_duplicates: bool = Query(False, description="Save even when similar entries exist"),
    service: RecipeService = Depends(get_service),
) -> Recipe:
    """
    Create a recipe.

    Free text is trimmed, tags and category are lower-cased, and a new category
    is registered when none matches.

    Raises:
        HTTPException 400: If the title is missing
        HTTPException 409: If similar entries exist and allow_duplicates is false
        HTTPException 503: If the document store is unreachable
    """
    if not body.title or not body.title.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A recipe needs a title.")

    try:
        return service.create_recipe(body.to_document(), allow_duplicates=allow_duplicates)
    except DuplicateEntryError as e:
        raise _duplicates(e) from e
    except DocumentStoreError as e:
        raise _store_unavailable(e) from e


@app.put("/recipes/{recipe_id}", response_model=Recipe, tags=["recipes"], summary="Edit a recipe")
def update_recipe(
    recipe_id: str,
    body: RecipeInput,
    allow_duplicates: bool = Query(False, description="Save even when similar entries exist"),
    service: RecipeService = Depends(get_service),
) -> Recipe:
    """
    Update the fields present in the body.

    Raises:
        HTTPException 404: If the recipe does not exist
        HTTPException 409: If similar entries exist and allow_duplicates is false
        HTTPException 503: If the document store is unreachable
    """
    try:
        return service.update_recipe(recipe_id, body.to_document(), allow_duplicates=allow_duplicates)
    except RecordNotFound as e:
        raise _not_found(e) from e
    except DuplicateEntryError as e:
        raise _duplicates(e) from e
    except DocumentStoreError as e:
        raise _store_unavailable(e) from e


def _set_favorite(recipe_id: str, is_favorite: bool, service: RecipeService) -> Recipe:
    try:
        return service.set_favorite(recipe_id, is_favorite)
    except RecordNotFound as e:
        raise _not_found(e) from e
    except DocumentStoreError as e:
        raise _store_unavailable(e) from e


@app.post("/recipes/{recipe_id}/favorite", response_model=Recipe, tags=["favorites"])
def add_favorite(recipe_id: str, service: RecipeService = Depends(get_service)) -> Recipe:
    """Mark a recipe as favorite."""
    return _set_favorite(recipe_id, True, service)


@app.delete("/recipes/{recipe_id}/favorite", response_model=Recipe, tags=["favorites"])
def remove_favorite(recipe_id: str, service: RecipeService = Depends(get_service)) -> Recipe:
    """Unmark a favorite recipe."""
    return _set_favorite(recipe_id, False, service)


@app.get("/favorites", response_model=FavoritesResponse, tags=["favorites"])
def list_favorites(service: RecipeService = Depends(get_service)) -> FavoritesResponse:
    """List favorite recipes in the order they were added."""
    items = service.favorites.list() if service.favorites is not None else []
    return FavoritesResponse(favorites=[Recipe.model_validate(item) for item in items])


@app.get("/cookbooks", response_model=CookbookListResponse, tags=["catalog"])
def list_cookbooks(service: RecipeService = Depends(get_service)) -> CookbookListResponse:
    """Recipes grouped by cookbook, sorted by cookbook name."""
    try:
        return CookbookListResponse(cookbooks=service.list_cookbooks())
    except DocumentStoreError as e:
        raise _store_unavailable(e) from e


@app.get("/categories", response_model=CategoryListResponse, tags=["catalog"])
def list_categories(service: RecipeService = Depends(get_service)) -> CategoryListResponse:
    try:
        return CategoryListResponse(categories=service.list_categories())
    except DocumentStoreError as e:
        raise _store_unavailable(e) from e


@app.post("/similar", response_model=SimilarCheckResponse, tags=["recipes"])
def check_similar(body: SimilarCheckRequest, service: RecipeService = Depends(get_service)) -> SimilarCheckResponse:
    """
    Check a recipe for near-duplicates without saving it.

    Reports cookbook and author values that differ only in case or surrounding
    whitespace from existing ones, repeated ingredients, and titles already in use.
    """
    try:
        matches = service.check_duplicates(body.recipe.to_document(), recipe_id=body.recipe_id)
    except DocumentStoreError as e:
        raise _store_unavailable(e) from e
    return SimilarCheckResponse(matches=matches, has_duplicates=bool(matches))


@app.get("/health", tags=["health"])
def health(service: RecipeService = Depends(get_service)) -> Dict[str, Any]:
    """
    Health check endpoint for monitoring and status checks.

    Returns:
        Dictionary with status, API metadata, uptime and cache information.
        Always returns 200 OK if the endpoint is reachable.
    """
    uptime_seconds = int(time.time() - _APP_START_TIME)

    try:
        cache_entries: Optional[int] = service.cache.size()
    except Exception as e:
        logger.warning("Could not count cache entries: %s", e)
        cache_entries = None

    return {
        "status": "ok",
        "name": APP_NAME,
        "version": APP_VERSION,
        "uptime_seconds": uptime_seconds,
        "document_store": DocumentStoreConfig.get_backend(),
        "cache_backend": CacheConfig.get_backend(),
        "cache_entries": cache_entries,
    }


@app.get("/")
def root():
    """
    Root endpoint providing API information.

    Returns:
        Dictionary with API name and version
    """
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
        "docs": "/docs",
    }
