"""
Filter composition over an in-memory recipe collection.

Filters are looked up in FIELD_ACCESSORS, which maps each filter name to the
recipe field it reads and how it matches. A recipe is kept when it satisfies
every active filter; unset or empty filters always pass. Input order is kept.

Matching rules:
- cuisine, effort, cooking_method, meal_type, food_group, category, cookbook,
  author: exact, case-sensitive equality
- search_text: case-insensitive substring of the title
- ingredient: case-insensitive substring of any searchable ingredient

Complexity is O(recipes x active filters); there is no indexing.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from recipebook.models import FilterCriteria, Recipe
from recipebook.utils.normalize import normalize, normalize_effort_level, sort_effort_levels

logger = logging.getLogger(__name__)

Accessor = Callable[[Recipe], Any]
Matcher = Callable[[Any, str], bool]
Record = Union[Recipe, Mapping[str, Any]]


def _equals(value: Any, wanted: str) -> bool:
    return value == wanted


def _title_contains(value: Any, wanted: str) -> bool:
    return normalize(wanted) in normalize(value or "")


def _any_contains(values: Any, wanted: str) -> bool:
    needle = normalize(wanted)
    return any(needle in normalize(item) for item in (values or []) if isinstance(item, str))


# filter name -> (recipe field accessor, matcher)
FIELD_ACCESSORS: Dict[str, Tuple[Accessor, Matcher]] = {
    "search_text": (lambda r: r.title, _title_contains),
    "cuisine": (lambda r: r.cuisine_type, _equals),
    "effort": (lambda r: r.effort, _equals),
    "cooking_method": (lambda r: r.cooking_method, _equals),
    "meal_type": (lambda r: r.recipe_type, _equals),
    "food_group": (lambda r: r.ingredient_category, _equals),
    "category": (lambda r: r.category, _equals),
    "cookbook": (lambda r: r.cookbook, _equals),
    "author": (lambda r: r.author, _equals),
    "ingredient": (lambda r: r.searchable_ingredients, _any_contains),
}


def _as_criteria(criteria: Union[FilterCriteria, Mapping[str, Any], None]) -> FilterCriteria:
    if criteria is None:
        return FilterCriteria()
    if isinstance(criteria, FilterCriteria):
        return criteria
    return FilterCriteria.from_mapping(criteria)


def _as_recipe(record: Record) -> Recipe:
    if isinstance(record, Recipe):
        return record
    return Recipe.model_validate(record)


def apply_filters(
    records: Iterable[Record],
    criteria: Union[FilterCriteria, Mapping[str, Any], None] = None,
) -> List[Record]:
    """
    Keep the records that satisfy every active filter.

    The records themselves are returned untouched; raw documents are only
    parsed into Recipe models for matching.

    Args:
        records: Recipe models or raw recipe documents
        criteria: FilterCriteria, a mapping keyed by filter name (hyphenated or
            underscored), or None for no filtering

    Returns:
        Matching records in input order

    Raises:
        ValueError: If the mapping names an unknown filter

    Examples:
        >>> recipes = [{"id": "1", "cuisineType": "Italian"}, {"id": "2", "cuisineType": "Thai"}]
        >>> apply_filters(recipes, {"cuisine": "Italian"})
        [{'id': '1', 'cuisineType': 'Italian'}]
    """
    active = _as_criteria(criteria).active()
    records = list(records)
    if not active:
        return records

    checks = [(FIELD_ACCESSORS[name], wanted) for name, wanted in active.items()]
    result = [
        record for record, recipe in ((record, _as_recipe(record)) for record in records)
        if all(matcher(accessor(recipe), wanted) for (accessor, matcher), wanted in checks)
    ]
    logger.debug("Filters %r kept %d of %d recipes", active, len(result), len(records))
    return result


def _unique_sorted(values: Iterable[Optional[str]]) -> List[str]:
    return sorted({value for value in values if value})


def collect_facets(records: Iterable[Record]) -> Dict[str, List[str]]:
    """
    Collect the distinct values available for each filter.

    Effort levels are mapped onto their canonical spelling and ordered from
    quickest to most involved; every other facet is sorted alphabetically.

    Args:
        records: Recipe models or raw recipe documents

    Returns:
        Dictionary of facet name to values
    """
    recipes = [_as_recipe(record) for record in records]
    efforts = {normalize_effort_level(r.effort) for r in recipes if r.effort}
    return {
        "tags": _unique_sorted(tag for r in recipes for tag in r.tags),
        "cuisines": _unique_sorted(r.cuisine_type for r in recipes),
        "efforts": sort_effort_levels(efforts),
        "cooking_methods": _unique_sorted(r.cooking_method for r in recipes),
        "meal_types": _unique_sorted(r.recipe_type for r in recipes),
        "food_groups": _unique_sorted(r.ingredient_category for r in recipes),
        "categories": _unique_sorted(r.category for r in recipes),
        "cookbooks": _unique_sorted(r.cookbook for r in recipes),
        "authors": _unique_sorted(r.author for r in recipes),
    }
