"""
Pytest configuration and fixtures.

Builds the real planning pipeline around the fakes in tests/fakes.py.
"""

import pytest

from meal_grounding.config import Settings
from meal_grounding.services.candidate_fetcher import CandidateFetcher
from meal_grounding.services.day_planner import DayPlanner
from meal_grounding.services.dedup import SanityChecker
from meal_grounding.services.filter_builder import FilterBuilder
from meal_grounding.services.grounded_planner import GroundedMealPlanner
from meal_grounding.services.grounding import GroundingEnforcer
from meal_grounding.services.recipe_generator import RecipeGenerator
from meal_grounding.services.recipe_index import RecipeIndex
from meal_grounding.services.search_service import SearchService
from tests.fakes import CORPUS, FakeLLM, FakePineconeIndex


@pytest.fixture
def settings():
    return Settings(vector_dim=8, candidate_pool_size=24, http_timeout=1.0)


@pytest.fixture
def corpus():
    return {rid: dict(md) for rid, md in CORPUS.items()}


@pytest.fixture
def fake_index(corpus):
    return FakePineconeIndex(corpus)


@pytest.fixture
def fake_llm():
    return FakeLLM()


def build_planner(settings: Settings, pinecone_index, llm=None, embedder=None) -> GroundedMealPlanner:
    """Real pipeline, fake collaborators."""
    index = RecipeIndex(settings, index=pinecone_index)
    search_service = SearchService(index, embedder)
    fetcher = CandidateFetcher(
        settings,
        FilterBuilder(settings, llm),
        search_service,
        generator=RecipeGenerator(settings, llm) if llm else None,
    )
    enforcer = GroundingEnforcer(index)
    day_planner = DayPlanner(settings, llm, enforcer, SanityChecker(settings, llm))
    return GroundedMealPlanner(settings, fetcher, day_planner, search_service=search_service)


@pytest.fixture
def planner_factory(settings):
    def _make(pinecone_index, llm=None, embedder=None):
        return build_planner(settings, pinecone_index, llm, embedder)
    return _make
