"""
Tests for the recipe service.

These tests run the service against the memory document store and an
in-memory cache driven by the fake clock.
"""

from unittest.mock import Mock

import pytest

from conftest import START
from recipebook.connectors.base import DocumentStoreError, RecordNotFound
from recipebook.favorites import FavoritesStore
from recipebook.models import FilterCriteria
from recipebook.recipes import ALL_RECIPES_KEY, CATEGORIES, DuplicateEntryError, RecipeService, recipe_key


@pytest.fixture
def favorites(storage):
    return FavoritesStore(storage)


@pytest.fixture
def service(store, cache, favorites, clock):
    store.create(CATEGORIES, {"name": "pasta"})
    store.create(CATEGORIES, {"name": "noodles"})
    return RecipeService(store, cache, favorites=favorites, now=clock.datetime)


def new_recipe(**overrides):
    data = {
        "title": "Shakshuka",
        "cookbook": "Brunch",
        "author": "Yotam",
        "cuisineType": "Middle Eastern",
        "ingredients": ["6 eggs", "1 tin tomatoes"],
        "searchableIngredients": ["eggs", "tomatoes"],
        "tags": ["Brunch", "Vegetarian "],
        "category": "Eggs",
    }
    data.update(overrides)
    return data


class TestReads:
    """Listing, single reads and derived views."""

    def test_list_recipes_then_hit(self, service):
        recipes, first = service.list_recipes()
        _, second = service.list_recipes()

        assert [r.id for r in recipes] == ["r3", "r2", "r1"]
        assert first.status == "miss"
        assert second.status == "hit"

    def test_list_recipes_with_criteria(self, service):
        recipes, _ = service.list_recipes(FilterCriteria(cuisine="Italian", effort="Quick & Easy (Under 30 mins)"))

        assert [r.id for r in recipes] == ["r1"]

    def test_list_recipes_with_mapping(self, service):
        recipes, _ = service.list_recipes({"cooking-method": "Wok"})

        assert [r.title for r in recipes] == ["Pad Thai"]

    def test_get_recipe(self, service, cache):
        recipe, result = service.get_recipe("r2")

        assert recipe.title == "Lasagne"
        assert result.status == "miss"
        assert cache.get(recipe_key("r2"))["id"] == "r2"

    def test_get_missing_recipe(self, service):
        with pytest.raises(RecordNotFound):
            service.get_recipe("nope")

    def test_list_categories_sorted(self, service):
        assert [c.name for c in service.list_categories()] == ["noodles", "pasta"]

    def test_list_cookbooks(self, service):
        cookbooks = service.list_cookbooks()

        assert [(c.name, c.recipe_count) for c in cookbooks] == [("Family Favourites", 2), ("Street Food", 1)]

    def test_facets(self, service):
        assert service.facets()["cuisines"] == ["Italian", "Thai"]

    def test_unreachable_store_without_cache(self, cache):
        failing = Mock()
        failing.fetch_all.side_effect = DocumentStoreError("offline")

        with pytest.raises(DocumentStoreError):
            RecipeService(failing, cache).list_recipes()


class TestDuplicateDetection:
    """check_duplicates and the write guard."""

    def test_clean_recipe(self, service):
        assert service.check_duplicates(new_recipe()) == []

    def test_differently_spelled_cookbook(self, service):
        matches = service.check_duplicates(new_recipe(cookbook=" family favourites"))

        assert [(m.field, m.candidate, m.match) for m in matches] == [
            ("cookbook", "family favourites", "Family Favourites"),
        ]

    def test_exact_cookbook_is_fine(self, service):
        assert service.check_duplicates(new_recipe(cookbook="Family Favourites")) == []

    def test_differently_spelled_author(self, service):
        matches = service.check_duplicates(new_recipe(author="NONNA"))

        assert [(m.field, m.match) for m in matches] == [("author", "Nonna")]

    def test_repeated_ingredients(self, service):
        matches = service.check_duplicates(new_recipe(ingredients=["Salt", "pepper", " salt"]))

        assert [(m.field, m.candidate, m.match) for m in matches] == [("ingredients", " salt", "Salt")]

    def test_repeated_searchable_ingredients(self, service):
        matches = service.check_duplicates(new_recipe(searchableIngredients=["Eggs", "eggs"]))

        assert [m.field for m in matches] == ["searchableIngredients"]

    def test_title_in_use(self, service):
        matches = service.check_duplicates(new_recipe(title="pad thai"))

        assert [(m.field, m.match) for m in matches] == [("title", "Pad Thai")]

    def test_own_title_excluded_on_edit(self, service):
        assert service.check_duplicates({"title": "Pad Thai"}, recipe_id="r3") == []

    def test_create_rejects_duplicates(self, service, store):
        with pytest.raises(DuplicateEntryError) as exc_info:
            service.create_recipe(new_recipe(title="LASAGNE"))

        assert exc_info.value.matches[0].field == "title"
        assert len(store.fetch_all("recipes")) == 3

    def test_create_with_allow_duplicates(self, service, store):
        service.create_recipe(new_recipe(title="LASAGNE"), allow_duplicates=True)

        assert len(store.fetch_all("recipes")) == 4


class TestWrites:
    """create_recipe / update_recipe / set_favorite / refresh."""

    def test_create_normalizes_and_stamps(self, service, store, clock):
        clock.advance(5)

        recipe = service.create_recipe(new_recipe(title="  Shakshuka ", cookbook=" Brunch "))

        stored = store.fetch_by_id("recipes", recipe.id)
        assert stored["title"] == "Shakshuka"
        assert stored["cookbook"] == "Brunch"
        assert stored["tags"] == ["brunch", "vegetarian"]
        assert stored["category"] == "eggs"
        assert stored["createdAt"] == "2023-11-14T22:13:25.000Z"
        assert stored["isFavorite"] is False
        assert recipe.is_favorite is False

    def test_effort_spellings_are_stored_canonical(self, service, store):
        quick = "Quick & Easy (Under 30 mins)"
        a = service.create_recipe(new_recipe(title="Shakshuka", effort=" quick & easy (under 30 mins) "))
        b = service.create_recipe(new_recipe(title="Menemen", effort=quick))

        assert store.fetch_by_id("recipes", a.id)["effort"] == quick
        assert a.effort == quick

        facet = service.facets()["efforts"][0]
        recipes, _ = service.list_recipes({"effort": facet})

        assert facet == quick
        assert {a.id, b.id} <= {r.id for r in recipes}

    def test_unknown_effort_label_is_kept(self, service, store):
        recipe = service.create_recipe(new_recipe(effort=" Weeknight "))

        assert store.fetch_by_id("recipes", recipe.id)["effort"] == "Weeknight"

    def test_create_is_visible_to_next_read(self, service):
        service.list_recipes()

        created = service.create_recipe(new_recipe())
        recipes, result = service.list_recipes()

        assert recipes[0].id == created.id
        assert len(recipes) == 4
        assert result.status == "miss"

    def test_create_registers_new_category(self, service, store):
        service.list_categories()

        service.create_recipe(new_recipe(category="Eggs"))

        assert [c.name for c in service.list_categories()] == ["eggs", "noodles", "pasta"]

    def test_create_reuses_existing_category(self, service, store):
        service.create_recipe(new_recipe(category=" PASTA "))

        names = [r["name"] for r in store.fetch_all(CATEGORIES)]
        assert sorted(names) == ["noodles", "pasta"]

    def test_create_failure_propagates(self, cache, clock):
        failing = Mock()
        failing.fetch_all.return_value = []
        failing.create.side_effect = DocumentStoreError("write rejected")
        service = RecipeService(failing, cache, now=clock.datetime)

        with pytest.raises(DocumentStoreError):
            service.create_recipe(new_recipe(category=None))

    def test_update_stamps_last_modified_and_invalidates(self, service, store, cache, clock):
        service.list_recipes()
        service.get_recipe("r2")
        clock.advance(60)

        updated = service.update_recipe("r2", {"title": "Lasagne Verde", "tags": ["Green"]})

        stored = store.fetch_by_id("recipes", "r2")
        assert stored["title"] == "Lasagne Verde"
        assert stored["tags"] == ["green"]
        assert stored["cookbook"] == "Family Favourites"
        assert stored["lastModified"] == "2023-11-14T22:14:20.000Z"
        assert updated.title == "Lasagne Verde"
        assert cache.get(ALL_RECIPES_KEY) is None
        assert cache.get(recipe_key("r2")) is None

    def test_update_keeps_own_title(self, service):
        updated = service.update_recipe("r3", {"title": "Pad Thai", "author": "Kris"})

        assert updated.title == "Pad Thai"

    def test_update_missing_recipe(self, service):
        with pytest.raises(RecordNotFound):
            service.update_recipe("nope", {"title": "x"})

    def test_set_favorite_patches_cache_and_favorites(self, service, store, favorites):
        service.list_recipes()

        recipe = service.set_favorite("r2", True)
        recipes, result = service.list_recipes()

        assert recipe.is_favorite is True
        assert store.fetch_by_id("recipes", "r2")["isFavorite"] is True
        assert result.status == "hit"
        assert [r.id for r in recipes if r.is_favorite] == ["r2"]
        assert favorites.is_favorite("r2")

    def test_unset_favorite(self, service, favorites):
        service.set_favorite("r2", True)
        service.set_favorite("r2", False)

        assert not favorites.is_favorite("r2")
        assert service.get_recipe("r2")[0].is_favorite is False

    def test_set_favorite_missing_recipe(self, service):
        with pytest.raises(RecordNotFound):
            service.set_favorite("nope", True)

    def test_refresh_drops_everything(self, service, cache, favorites):
        favorites.add({"id": "r1", "title": "Spaghetti"})
        service.list_recipes()
        service.list_categories()

        assert service.refresh() == 2
        assert cache.size() == 0
        assert favorites.is_favorite("r1")

    def test_synced_at_starts_at_clock(self, service, cache):
        service.list_recipes()

        assert cache.last_synced_at(ALL_RECIPES_KEY) == START
