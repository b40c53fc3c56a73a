"""Tests for ingredient name normalization."""

import pytest

from kitchen_matcher.normalizer import normalize_ingredient_name, singularize


class TestNormalizeIngredientName:
    """Tests for normalize_ingredient_name function."""

    def test_documented_examples(self):
        assert normalize_ingredient_name("Fresh Tomatoes") == "tomato"
        assert normalize_ingredient_name("Chicken Breast, Boneless") == "chicken breast"
        assert normalize_ingredient_name("All-Purpose Flour") == "all purpose flour"

    def test_case_and_whitespace(self):
        assert normalize_ingredient_name("  HEAVY   Cream ") == "heavy cream"

    def test_removes_preparation_words(self):
        assert normalize_ingredient_name("finely chopped onions") == "onion"
        assert normalize_ingredient_name("Garlic, minced") == "garlic"
        assert normalize_ingredient_name("ground cumin") == "cumin"

    def test_removes_size_and_doneness(self):
        assert normalize_ingredient_name("Large Eggs") == "egg"
        assert normalize_ingredient_name("roasted red peppers") == "red pepper"

    def test_removes_provenance_phrases(self):
        assert normalize_ingredient_name("Free-Range Eggs") == "egg"
        assert normalize_ingredient_name("organic grass fed beef") == "beef"
        assert normalize_ingredient_name("Wild Caught Salmon") == "salmon"

    def test_qualifier_inside_word_is_kept(self):
        """Qualifiers are removed by whole word only."""
        assert normalize_ingredient_name("rawhide") == "rawhide"
        assert normalize_ingredient_name("freshwater trout") == "freshwater trout"

    def test_empty_input(self):
        assert normalize_ingredient_name("") == ""
        assert normalize_ingredient_name("   ") == ""

    def test_only_qualifiers_gives_empty(self):
        assert normalize_ingredient_name("fresh, chopped") == ""
        assert normalize_ingredient_name("!!!") == ""

    @pytest.mark.parametrize(
        "name",
        [
            "Fresh Tomatoes",
            "Eggs, Large Grade A",
            "Ground Beef, 80/20",
            "Chocolate Chips, Semi-Sweet",
            "cherries",
            "leaves of basil",
            "Smoked Paprika (Spanish)",
            "frozen frozen peas",
            "Olive Oil, Extra Virgin",
        ],
    )
    def test_idempotent(self, name):
        once = normalize_ingredient_name(name)
        assert normalize_ingredient_name(once) == once


class TestSingularize:
    """Tests for singularize function."""

    def test_regular_plurals(self):
        assert singularize("onions") == "onion"
        assert singularize("carrots") == "carrot"

    def test_suffix_rules(self):
        assert singularize("cherries") == "cherry"
        assert singularize("tomatoes") == "tomato"
        assert singularize("potatoes") == "potato"
        assert singularize("peaches") == "peach"
        assert singularize("radishes") == "radish"
        assert singularize("boxes") == "box"

    def test_irregular_plurals(self):
        assert singularize("leaves") == "leaf"
        assert singularize("olives") == "olive"
        assert singularize("cloves") == "clove"
        assert singularize("cookies") == "cookie"

    def test_words_that_are_not_plurals(self):
        assert singularize("glass") == "glass"
        assert singularize("hummus") == "hummus"
        assert singularize("asparagus") == "asparagus"
        assert singularize("molasses") == "molasses"
        assert singularize("gas") == "gas"
