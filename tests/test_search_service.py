"""Tests for SearchService: filters in, normalized candidates out."""
import pytest

from meal_grounding.models.filters import SearchFilters
from meal_grounding.models.plan import UserPreferences
from meal_grounding.models.recipe import RecipeDocument
from meal_grounding.services.recipe_index import RecipeIndex
from meal_grounding.services.search_service import SearchService, to_candidate
from tests.fakes import FakeEmbedder, FakePineconeIndex, recipe_meta


@pytest.fixture
def service(settings, fake_index):
    return SearchService(RecipeIndex(settings, index=fake_index), FakeEmbedder())


class TestToCandidate:
    def test_normalizes_document(self):
        doc = RecipeDocument(
            id="synthetic-lunch-abc-0",
            title=" Soup ",
            ingredients_raw="1 carrot\n2 onions",
            instructions="Chop.\nSimmer.",
            nutrition={"calories": 300},
            protein_grams=12,
            servings="serves 4",
        )
        c = to_candidate(doc)
        assert c.title == "Soup"
        assert c.ingredients == ["1 carrot", "2 onions"]
        assert c.instructions == ["Chop.", "Simmer."]
        assert c.nutrition.calories == 300
        assert c.nutrition.protein_g == 12
        assert c.servings == 4
        assert c.synthetic is True


class TestSearch:
    def test_exclusions_expanded_and_applied(self, service):
        hits = service.search(SearchFilters(meal_type="breakfast", exclude_ingredients=["pork"]), size=20, seed=1)
        ids = {c.id for c in hits}
        assert "b-ham" not in ids
        assert "b-bacon" not in ids
        assert "b-oats" in ids

    def test_text_is_embedded(self, settings, fake_index):
        embedder = FakeEmbedder([0.5] * 8)
        service = SearchService(RecipeIndex(settings, index=fake_index), embedder)
        service.search(SearchFilters(meal_type="lunch", text="light lunch"), size=3)
        assert embedder.texts == ["light lunch"]
        assert fake_index.queries[-1]["vector"] == [0.5] * 8

    def test_index_errors_propagate(self, settings):
        service = SearchService(RecipeIndex(settings, index=FakePineconeIndex(fail=True)))
        with pytest.raises(ConnectionError):
            service.search(SearchFilters(meal_type="lunch"))


class TestFindAlternatives:
    def test_skips_excluded_ids(self, service):
        prefs = UserPreferences(dietType="vegan")
        hits = service.find_alternatives("lunch", prefs, exclude_ids=["l-chickpea"], size=3)
        ids = [c.id for c in hits]
        assert len(ids) == 3
        assert "l-chickpea" not in ids
        assert all(i.startswith("l-") for i in ids)

    def test_widens_cuisine_when_everything_is_excluded(self, settings):
        records = {
            "t1": recipe_meta("Pad Thai", ["dinner"], ["rice noodle"], cuisine="thai"),
            "m1": recipe_meta("Enchiladas", ["dinner"], ["tortilla"], cuisine="mexican"),
        }
        service = SearchService(RecipeIndex(settings, index=FakePineconeIndex(records)))
        hits = service.find_alternatives("dinner", UserPreferences(cuisine="Thai"), exclude_ids=["t1"], size=2)
        assert [c.id for c in hits] == ["m1"]
