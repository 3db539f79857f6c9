"""
Cookbook aggregation.

Cookbooks are not stored separately; they are derived from the `cookbook`
field of the recipes that reference them.
"""

from typing import Dict, Iterable, List

from recipebook.models import CookbookSummary, Recipe

UNCATEGORIZED = "Uncategorized"


def aggregate_cookbooks(recipes: Iterable[Recipe]) -> List[CookbookSummary]:
    """
    Group recipes by cookbook.

    Recipes without a cookbook (missing or blank) are grouped under
    "Uncategorized". Recipes keep their input order inside each group.

    Args:
        recipes: Recipe collection

    Returns:
        One summary per cookbook, sorted by name
    """
    groups: Dict[str, List[Recipe]] = {}
    for recipe in recipes:
        name = (recipe.cookbook or "").strip() or UNCATEGORIZED
        groups.setdefault(name, []).append(recipe)

    return [
        CookbookSummary(name=name, recipe_count=len(members), recipes=members)
        for name, members in sorted(groups.items())
    ]
