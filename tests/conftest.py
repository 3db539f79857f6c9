"""
Shared fixtures: a controllable clock, in-memory storage and a small recipe set.
"""

from typing import Any, Dict

import pytest

from recipebook.connectors.memory_store import MemoryDocumentStore
from recipebook.storage import MemoryStorage
from recipebook.utils.cache import ResourceCache
from recipebook.utils.timestamps import from_epoch, isoformat_utc

# 2023-11-14T22:13:20Z
START = 1_700_000_000.0


class FakeClock:
    """Callable clock returning epoch seconds; only moves when told to."""

    def __init__(self, start: float = START) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def datetime(self):
        return from_epoch(self.now)


def iso_at(epoch: float) -> str:
    return isoformat_utc(from_epoch(epoch))


def make_recipe(recipe_id: str, title: str, created: float, **fields: Any) -> Dict[str, Any]:
    record = {"id": recipe_id, "title": title, "createdAt": iso_at(created)}
    record.update(fields)
    return record


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def cache(storage, clock):
    return ResourceCache(storage, clock=clock)


@pytest.fixture
def recipes():
    """Three recipes, newest first, all created before START."""
    return [
        make_recipe(
            "r3", "Pad Thai", START - 100,
            cookbook="Street Food", author="Kris", cuisineType="Thai",
            effort="Quick & Easy (Under 30 mins)", cookingMethod="Wok", recipeType="Dinner",
            ingredientCategory="Grains", category="noodles",
            searchableIngredients=["rice noodles", "Tamarind", "peanuts"], tags=["spicy"],
        ),
        make_recipe(
            "r2", "Lasagne", START - 200,
            cookbook="Family Favourites", author="Nonna", cuisineType="Italian",
            effort="Project Cooking (2+ hours)", cookingMethod="Oven", recipeType="Dinner",
            ingredientCategory="Grains", category="pasta",
            searchableIngredients=["lasagne sheets", "Beef Mince", "tomato"], tags=["comfort food"],
        ),
        make_recipe(
            "r1", "Spaghetti Aglio e Olio", START - 300,
            cookbook="Family Favourites", author="Nonna", cuisineType="Italian",
            effort="Quick & Easy (Under 30 mins)", cookingMethod="Stovetop", recipeType="Dinner",
            ingredientCategory="Grains", category="pasta",
            searchableIngredients=["spaghetti", "garlic", "chilli flakes"], tags=["quick", "spicy"],
        ),
    ]


@pytest.fixture
def store(recipes, clock):
    """Memory document store seeded with the recipe set, stamping with the fake clock."""
    return MemoryDocumentStore({"recipes": recipes}, now=clock.datetime)
