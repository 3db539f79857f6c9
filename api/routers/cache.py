"""
Cache administration router.

This router provides endpoints for dropping cached resources:
- POST /cache/clear - Drop every cached resource (optionally by key prefix)
- DELETE /cache/{key} - Drop a single cached resource

The next read of a dropped resource does a full fetch from the document store.
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_service
from api.schemas import CacheClearResponse
from recipebook.recipes import RecipeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cache", tags=["cache"])


@router.post(
    "/clear",
    response_model=CacheClearResponse,
    summary="Clear the recipe cache",
    description="Remove every cached resource, or only those whose key starts with `prefix`.",
)
def clear_cache(
    prefix: str = Query("", description="Only clear keys starting with this prefix (e.g. 'recipe_')"),
    service: RecipeService = Depends(get_service),
) -> CacheClearResponse:
    """
    Clear cached resources.

    Args:
        prefix: Logical key prefix; empty clears everything

    Returns:
        CacheClearResponse with the number of entries removed
    """
    removed = service.cache.invalidate_all(prefix) if prefix else service.refresh()
    return CacheClearResponse(removed=removed)


@router.delete(
    "/{key}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Drop one cached resource",
)
def invalidate_key(key: str, service: RecipeService = Depends(get_service)) -> None:
    """Remove the cache entry for key (e.g. "all_recipes", "recipe_<id>"). Missing keys are ignored."""
    service.cache.invalidate(key)
    logger.info("Invalidated cache key %r", key)
