"""Tests for the Pinecone-backed hybrid recipe index."""
import json

import pytest

from meal_grounding.config import Settings
from meal_grounding.errors import IndexUnavailableError
from meal_grounding.models.filters import NumericRange, SearchFilters
from meal_grounding.services.recipe_index import (
    MAX_TOP_K,
    RecipeIndex,
    build_filter_expression,
    random_unit_vector,
    rehydrate_doc,
)
from tests.fakes import FakePineconeIndex, recipe_meta


class TestBuildFilterExpression:
    def test_empty(self):
        assert build_filter_expression(SearchFilters()) == {}

    def test_single_clause_is_not_wrapped(self):
        assert build_filter_expression(SearchFilters(meal_type="Lunch")) == {"meal_type": {"$in": ["lunch"]}}

    def test_full_expression(self):
        filters = SearchFilters(
            meal_type="dinner",
            diet_tags=["Vegan", "gluten_free"],
            cuisine="Middle Eastern",
            max_total_time_min=30,
            calories_range=NumericRange(gte=300, lte=600),
            protein_g_range=NumericRange(gte=20),
            include_ingredients=["tofu", "broccoli"],
            exclude_ingredients=["peanut"],
        )
        expr = build_filter_expression(filters)
        assert expr == {"$and": [
            {"diet_tags": {"$in": ["vegan", "gluten_free"]}},
            {"meal_type": {"$in": ["dinner"]}},
            {"cuisine": {"$eq": "middle_eastern"}},
            {"total_time_minutes": {"$lte": 30.0}},
            {"calories": {"$gte": 300, "$lte": 600}},
            {"protein_g": {"$gte": 20}},
            {"ingredients_norm": {"$in": ["tofu"]}},
        ]}

    def test_exclusions_never_pushed_down(self):
        expr = build_filter_expression(SearchFilters(exclude_ingredients=["pork"]))
        assert "pork" not in json.dumps(expr)


class TestRehydrate:
    def test_payload_preferred(self):
        payload = {
            "title": "Tofu Bowl",
            "meal_type": ["dinner"],
            "ingredients_parsed": [{"name": "tofu", "amount": 200, "unit": "g", "category": "protein"}],
            "instructions": ["Press tofu.", "Fry."],
            "nutrition": {"calories": 500, "protein": 30},
        }
        doc = rehydrate_doc("r-1", {"payload": json.dumps(payload), "title": "ignored"})
        assert doc.id == "r-1"
        assert doc.title == "Tofu Bowl"
        assert doc.ingredients_parsed[0].amount == "200"
        assert doc.nutrition.calories == 500
        assert doc.nutrition.protein_g == 30

    def test_flattened_fields(self):
        md = {
            "title": "Lentil Soup",
            "meal_type": "lunch, dinner",
            "diet_tags": "Vegan",
            "ner": "lentil, carrot",
            "directions": "Simmer.\nServe.",
            "total_time_min": 35,
            "ingredients_parsed_json": json.dumps([{"name": "lentil"}]),
            "nutrition_protein_g": 18,
            "calories": 320,
        }
        doc = rehydrate_doc("r-2", md)
        assert doc.meal_type == ["lunch", "dinner"]
        assert doc.diet_tags == ["vegan"]
        assert doc.ingredients_norm == ["lentil", "carrot"]
        assert doc.instruction_steps() == ["Simmer.", "Serve."]
        assert doc.total_time_minutes == 35
        assert doc.ingredients_parsed[0].name == "lentil"
        assert doc.nutrition.protein_g == 18
        assert doc.nutrition.calories == 320

    def test_bad_payload_falls_back_to_fields(self):
        doc = rehydrate_doc("r-3", {"payload": "{not json", "title": "Plain"})
        assert doc.title == "Plain"


class TestRecipeIndex:
    def _index(self, records, **settings):
        fake = FakePineconeIndex(records)
        return RecipeIndex(Settings(vector_dim=8, **settings), index=fake), fake

    def test_vector_search_passes_filter_and_namespace(self):
        records = {"a": recipe_meta("Tofu Stir Fry", ["dinner"], ["tofu"], ["vegan"])}
        index, fake = self._index(records, pinecone_namespace="ns1")
        docs = index.search({"meal_type": {"$in": ["dinner"]}}, [0.1] * 8, size=5)
        assert [d.id for d in docs] == ["a"]
        assert fake.queries[0]["namespace"] == "ns1"
        assert fake.queries[0]["filter"] == {"meal_type": {"$in": ["dinner"]}}
        assert fake.queries[0]["vector"] == [0.1] * 8

    def test_offset_and_top_k(self):
        records = {f"r{i}": recipe_meta(f"Dish {i}", ["lunch"], ["rice"]) for i in range(6)}
        index, fake = self._index(records)
        docs = index.search({}, None, size=2, offset=3, seed=7)
        assert [d.id for d in docs] == ["r3", "r4"]
        assert fake.queries[0]["top_k"] == 5
        assert "filter" not in fake.queries[0] or fake.queries[0]["filter"] is None

    def test_top_k_capped(self):
        index, fake = self._index({})
        index.search({}, None, size=5000, seed=1)
        assert fake.queries[0]["top_k"] == MAX_TOP_K

    def test_scalar_path_uses_seeded_probe(self):
        index, fake = self._index({})
        index.search({}, None, size=3, seed=11)
        index.search({}, None, size=3, seed=11)
        assert fake.queries[0]["vector"] == fake.queries[1]["vector"]
        assert len(fake.queries[0]["vector"]) == 8

    def test_search_filters_post_excludes_and_boosts(self):
        records = {
            "plain": recipe_meta("Tofu Rice", ["dinner"], ["tofu", "rice"]),
            "bacon": recipe_meta("Tofu Bacon Bowl", ["dinner"], ["tofu", "bacon"]),
            "boosted": recipe_meta("Tofu Broccoli", ["dinner"], ["tofu", "broccoli"]),
            "other": recipe_meta("Beef Stew", ["dinner"], ["beef"]),
        }
        index, _ = self._index(records)
        filters = SearchFilters(
            meal_type="dinner",
            include_ingredients=["tofu", "broccoli"],
            exclude_ingredients=["pork"],
        )
        docs = index.search_filters(filters, size=10, seed=3)
        assert [d.id for d in docs] == ["boosted", "plain"]

    def test_get_by_id(self):
        index, fake = self._index({"a": recipe_meta("Tofu", ["dinner"], ["tofu"])})
        assert index.get_by_id("a").title == "Tofu"
        assert index.get_by_id("missing") is None
        assert index.get_by_id("") is None
        assert fake.fetches == [["a"], ["missing"]]

    def test_unconfigured_raises(self):
        index = RecipeIndex(Settings())
        with pytest.raises(IndexUnavailableError):
            index.search({}, None)


class TestRandomUnitVector:
    def test_unit_length_and_deterministic(self):
        v = random_unit_vector(16, 5)
        assert v == random_unit_vector(16, 5)
        assert abs(sum(x * x for x in v) - 1.0) < 1e-9
