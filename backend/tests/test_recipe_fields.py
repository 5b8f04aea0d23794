"""
Mom's Yums Backend - RecipeFields Tests
=========================================

What:  Thresholds, merging and coercion of the title/ingredients/instructions value.
"""

import pytest

from app.services.recipe_fields import RecipeFields


class TestCompleteness:

    def test_thresholds(self):
        fields = RecipeFields(title="Pie", ingredients="2 apples!!", instructions="bake 1 hr")

        # "bake 1 hr" is 9 characters, one short of the instructions minimum
        assert fields.missing_fields() == ["instructions"]
        assert not fields.is_complete

    def test_whitespace_does_not_count(self):
        fields = RecipeFields(title="  a  ", ingredients="2 cups flour", instructions="Bake 1 hour")

        assert fields.is_missing("title")

    def test_complete(self):
        assert RecipeFields("Bread", "2 cups flour", "Bake 1 hour").is_complete

    def test_is_empty(self):
        assert RecipeFields().is_empty
        assert RecipeFields(" ", "\n", "").is_empty
        assert not RecipeFields(title="x").is_empty


class TestMerge:

    def test_backfills_missing_fields_from_other_reading(self):
        primary = RecipeFields(title="", ingredients="2 cups flour", instructions="")
        secondary = RecipeFields(title="Bread", ingredients="", instructions="Bake 1 hour")

        merged = primary.merge(secondary)

        assert merged == RecipeFields("Bread", "2 cups flour", "Bake 1 hour")

    def test_populated_fields_are_never_overwritten(self):
        first = RecipeFields("Bread", "2 cups flour", "Bake 1 hour")
        second = RecipeFields("Banana Bread", "3 ripe bananas", "Mash and bake")

        assert first.merge(second) == first

    def test_partial_text_kept_over_other_partial_text(self):
        first = RecipeFields(title="Br")
        second = RecipeFields(title="Ca")

        assert first.merge(second).title == "Br"

    def test_partial_text_replaces_empty(self):
        assert RecipeFields().merge(RecipeFields(title="Ca")).title == "Ca"

    def test_present_text_replaces_partial(self):
        assert RecipeFields(title="Br").merge(RecipeFields(title="Bread")).title == "Bread"

    def test_merge_with_none(self):
        fields = RecipeFields(title="Bread")

        assert fields.merge(None) is fields


class TestFromMapping:

    @pytest.mark.parametrize("value,expected", [
        (None, ""),
        ("  flour  ", "flour"),
        (["flour", None, "salt"], "flour\nsalt"),
        ({"flour": "2 cups", "salt": "1 tsp"}, "flour: 2 cups\nsalt: 1 tsp"),
        (3, "3"),
    ])
    def test_coercion(self, value, expected):
        assert RecipeFields.from_mapping({"ingredients": value}).ingredients == expected

    def test_keys_are_case_insensitive(self):
        fields = RecipeFields.from_mapping({"TITLE": "Jam", "Instructions": "Boil"})

        assert fields.title == "Jam"
        assert fields.instructions == "Boil"

    def test_unknown_keys_ignored(self):
        assert RecipeFields.from_mapping({"servings": 4}) == RecipeFields()

    def test_as_dict(self):
        assert RecipeFields("a", "b", "c").as_dict() == {
            "title": "a",
            "ingredients": "b",
            "instructions": "c",
        }
