"""Tests for exclusion synonym expansion and the substring post-filter."""
from meal_grounding.models.recipe import Candidate
from meal_grounding.services.exclusions import (
    diet_exclusions,
    expand_exclusions,
    filter_candidates,
    violates,
)


def _candidate(rid, title, ingredients):
    return Candidate(id=rid, title=title, ingredients=ingredients, instructions=["Cook."])


class TestExpandExclusions:
    def test_pork_family(self):
        terms = expand_exclusions(["Pork"])
        for member in ["pork", "ham", "bacon", "sausage", "prosciutto", "chorizo", "lard", "pancetta"]:
            assert member in terms

    def test_shellfish_and_potato_families(self):
        terms = expand_exclusions(["shellfish", "potatoes"])
        assert "shrimp" in terms
        assert "lobster" in terms
        assert "potato" in terms

    def test_unknown_terms_pass_through_lowercased_and_deduped(self):
        assert expand_exclusions(["Cilantro", "cilantro", "", None, "null"]) == ["cilantro"]

    def test_plural_alias(self):
        assert "peanut" in expand_exclusions(["peanuts"])


class TestDietExclusions:
    def test_vegan_blocks_animal_products(self):
        terms = diet_exclusions("Vegan")
        for t in ["chicken", "salmon", "cheese", "egg", "honey"]:
            assert t in terms

    def test_balanced_has_none(self):
        assert diet_exclusions("balanced") == []
        assert diet_exclusions(None) == []


class TestPostFilter:
    def test_substring_matching(self):
        assert violates("sweet potato mash", ["potato"])
        assert not violates("rice and beans", ["potato"])

    def test_filter_candidates_drops_pork_family(self):
        pool = [
            _candidate("1", "Ham Sandwich", ["ham", "bread"]),
            _candidate("2", "Veg Soup", ["carrot", "onion"]),
            _candidate("3", "Breakfast Plate", ["smoked bacon", "toast"]),
        ]
        kept = filter_candidates(pool, ["pork"])
        assert [c.id for c in kept] == ["2"]

    def test_no_excludes_keeps_everything(self):
        pool = [_candidate("1", "Ham Sandwich", ["ham"])]
        assert filter_candidates(pool, []) == pool
