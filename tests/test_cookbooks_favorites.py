"""
Tests for cookbook aggregation and the favorites list.
"""

from recipebook.cookbooks import UNCATEGORIZED, aggregate_cookbooks
from recipebook.favorites import FavoritesStore
from recipebook.models import Recipe
from recipebook.storage import MemoryStorage


class TestAggregateCookbooks:
    """Test grouping recipes by cookbook."""

    def test_groups_counts_and_sorts(self):
        recipes = [
            Recipe(id="1", title="A", cookbook="Zest"),
            Recipe(id="2", title="B", cookbook="Basics"),
            Recipe(id="3", title="C", cookbook="Zest"),
        ]

        cookbooks = aggregate_cookbooks(recipes)

        assert [(c.name, c.recipe_count) for c in cookbooks] == [("Basics", 1), ("Zest", 2)]
        assert [r.id for r in cookbooks[1].recipes] == ["1", "3"]

    def test_missing_or_blank_cookbook_is_uncategorized(self):
        recipes = [Recipe(id="1"), Recipe(id="2", cookbook="   "), Recipe(id="3", cookbook="Basics")]

        cookbooks = aggregate_cookbooks(recipes)

        assert [(c.name, c.recipe_count) for c in cookbooks] == [("Basics", 1), (UNCATEGORIZED, 2)]

    def test_empty(self):
        assert aggregate_cookbooks([]) == []


class TestFavoritesStore:
    """Test the persisted favorites list."""

    def test_add_list_remove(self):
        favorites = FavoritesStore(MemoryStorage())

        assert favorites.add({"id": "a", "title": "A"}) is True
        assert favorites.add({"id": "b", "title": "B"}) is True

        assert [f["id"] for f in favorites.list()] == ["a", "b"]
        assert favorites.is_favorite("a")

        assert favorites.remove("a") is True
        assert not favorites.is_favorite("a")

    def test_no_duplicate_ids(self):
        favorites = FavoritesStore(MemoryStorage())
        favorites.add({"id": "a", "title": "A"})

        assert favorites.add({"id": "a", "title": "A again"}) is False
        assert len(favorites.list()) == 1

    def test_remove_unknown(self):
        assert FavoritesStore(MemoryStorage()).remove("missing") is False

    def test_corrupt_blob_reads_as_empty(self):
        favorites = FavoritesStore(MemoryStorage({"favorites": "{oops"}))

        assert favorites.list() == []
        assert favorites.add({"id": "a"}) is True
        assert [f["id"] for f in favorites.list()] == ["a"]

    def test_wrong_shape_reads_as_empty(self):
        assert FavoritesStore(MemoryStorage({"favorites": '{"id": "a"}'})).list() == []

    def test_entries_without_id_are_skipped(self):
        favorites = FavoritesStore(MemoryStorage({"favorites": '[{"title": "no id"}, {"id": "b"}]'}))

        assert favorites.list() == [{"id": "b"}]

    def test_custom_key(self):
        storage = MemoryStorage()
        FavoritesStore(storage, key="user_1_favorites").add({"id": "a"})

        assert storage.keys() == ["user_1_favorites"]
