# meal_grounding/services/grounded_planner.py
import random
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, List, Optional, Union

from meal_grounding.config import Settings
from meal_grounding.logging_utils import get_logger, setup_logging
from meal_grounding.models.plan import MealPlan, UserPreferences
from meal_grounding.models.recipe import Candidate
from meal_grounding.services.candidate_fetcher import CandidateFetcher
from meal_grounding.services.day_planner import DayPlanner, PlanState
from meal_grounding.services.dedup import SanityChecker
from meal_grounding.services.embedding_provider import EmbeddingProvider
from meal_grounding.services.fallback_planner import build_fallback_plan, capitalize, resolve_start_date
from meal_grounding.services.filter_builder import FilterBuilder
from meal_grounding.services.grounding import GroundingEnforcer
from meal_grounding.services.llm_client import LLMClient
from meal_grounding.services.recipe_generator import RecipeGenerator
from meal_grounding.services.recipe_index import RecipeIndex
from meal_grounding.services.search_service import SearchService

logger = get_logger(__name__)

MAX_DURATION = 14


class GroundedMealPlanner:
    """
    Builds a multi-day plan whose recipes all come from fetched candidates.

    Pools are fetched once per meal type (concurrently), then days are planned
    one after another so each day can avoid the ones before it. Any failure
    outside the per-day handling returns the deterministic plan instead.
    """

    def __init__(self, settings: Settings, fetcher: CandidateFetcher, day_planner: DayPlanner, search_service=None):
        self.settings = settings
        self.fetcher = fetcher
        self.day_planner = day_planner
        self.search_service = search_service

    def prefetch_pools(self, prefs: UserPreferences, seed: Optional[int] = None) -> Dict[str, List[Candidate]]:
        meal_types = prefs.meal_types()
        pools: Dict[str, List[Candidate]] = {}
        with ThreadPoolExecutor(max_workers=len(meal_types)) as executor:
            futures = {
                t: executor.submit(self.fetcher.fetch, t, prefs, self.settings.candidate_pool_size, seed)
                for t in meal_types
            }
            for meal_type, future in futures.items():
                try:
                    pools[meal_type] = future.result()
                except Exception as e:
                    logger.warning("Candidate fetch for %s failed: %s", meal_type, e)
                    pools[meal_type] = []
        logger.info("Candidate pools: %s", {t: len(p) for t, p in pools.items()})
        return pools

    def generate(
        self,
        prefs: Optional[UserPreferences] = None,
        duration: int = 7,
        seed: Optional[int] = None,
        start_date: Union[str, date, None] = None,
    ) -> MealPlan:
        prefs = prefs or UserPreferences()
        duration = max(1, min(int(duration or 1), MAX_DURATION))
        if seed is None:
            seed = random.randrange(1_000_000_000)
        logger.info("Generating %d-day plan (seed=%s, diet=%s)", duration, seed, prefs.diet_type)
        try:
            start = resolve_start_date(start_date)
        except ValueError:
            logger.warning("Invalid start date %r; starting today", start_date)
            start = date.today()

        fallback_plan = build_fallback_plan(prefs, duration, seed, start)
        try:
            state = PlanState(prefs, seed, fallback_plan)
            pools = self.prefetch_pools(prefs, seed)
            for day_index in range(duration):
                self.day_planner.plan_day(state, day_index, pools)
        except Exception:
            logger.exception("Grounded planning failed; returning deterministic plan")
            return fallback_plan

        diet_label = capitalize(prefs.diet_type or "balanced")
        return MealPlan(
            title=f"{diet_label} {duration}-Day Meal Plan",
            description="Meals picked from retrieved recipes to match your preferences.",
            days=state.days,
            seed=seed,
            generated_by="llm-grounded",
        )

    def alternatives(self, meal_type: str, prefs: UserPreferences, exclude_ids=(), limit: int = 3) -> List[Candidate]:
        if self.search_service is None:
            return []
        return self.search_service.find_alternatives(meal_type, prefs, exclude_ids, size=limit)

    def candidates(self, meal_type: str, prefs: UserPreferences, limit: int = 5) -> List[Candidate]:
        return self.fetcher.fetch(meal_type, prefs, self.settings.candidate_pool_size)[:limit]


def build_default_planner(settings: Optional[Settings] = None) -> GroundedMealPlanner:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    llm = LLMClient(settings) if settings.openai_api_key else None
    if llm is None:
        logger.warning("OPENAI_API_KEY not set; plans will use the deterministic fallback")

    index = RecipeIndex(settings)
    search_service = SearchService(index, EmbeddingProvider(settings))
    fetcher = CandidateFetcher(
        settings,
        FilterBuilder(settings, llm),
        search_service,
        generator=RecipeGenerator(settings, llm) if llm else None,
    )
    enforcer = GroundingEnforcer(index)
    day_planner = DayPlanner(settings, llm, enforcer, SanityChecker(settings, llm))
    return GroundedMealPlanner(settings, fetcher, day_planner, search_service=search_service)
