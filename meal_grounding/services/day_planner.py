# meal_grounding/services/day_planner.py
import random
from typing import Dict, List, Set

from meal_grounding.config import Settings
from meal_grounding.logging_utils import get_logger
from meal_grounding.models.plan import DayPlan, MealPlan, UserPreferences
from meal_grounding.models.recipe import Candidate
from meal_grounding.services import prompts
from meal_grounding.services.dedup import dedupe_day
from meal_grounding.services.json_repair import parse_llm_object

logger = get_logger(__name__)


class PlanState:
    """Everything one plan generation accumulates. Created per request, never shared."""

    def __init__(self, prefs: UserPreferences, seed: int, fallback_plan: MealPlan):
        self.prefs = prefs
        self.seed = seed
        self.fallback_plan = fallback_plan
        self.rng = random.Random(seed)
        self.days: List[DayPlan] = []
        self.used_ids: Set[str] = set()
        self.previous_day_ids: List[str] = []
        self.hydrated: Dict[str, Candidate] = {}

    def fallback_day(self, day_index: int) -> DayPlan:
        return self.fallback_plan.days[day_index].model_copy(deep=True)

    def commit(self, day: DayPlan) -> None:
        ids = day.recipe_ids()
        self.days.append(day)
        self.used_ids.update(ids)
        self.previous_day_ids = ids


class DayPlanner:
    """
    One LLM call per day, then grounding, dedup and the sanity pass.

    If the call fails or its output cannot be parsed, the day is the
    deterministic fallback day for that index and the later stages are
    skipped for it.
    """

    def __init__(self, settings: Settings, llm, enforcer, sanity_checker=None):
        self.settings = settings
        self.llm = llm
        self.enforcer = enforcer
        self.sanity_checker = sanity_checker

    def day_pools(self, state: PlanState, base_pools: Dict[str, List[Candidate]]) -> Dict[str, List[Candidate]]:
        pools = {}
        for meal_type, pool in base_pools.items():
            copy = list(pool)
            state.rng.shuffle(copy)
            # stable sort keeps the shuffle but lists unused recipes first
            copy.sort(key=lambda c: c.id in state.used_ids)
            pools[meal_type] = copy
        return pools

    def plan_day(self, state: PlanState, day_index: int, base_pools: Dict[str, List[Candidate]]) -> DayPlan:
        prefs = state.prefs
        fallback_day = state.fallback_day(day_index)
        day_date = fallback_day.date
        cuisine = prefs.cuisine or fallback_day.cuisine
        pools = self.day_pools(state, base_pools)

        if self.llm is None:
            logger.warning("No LLM configured; %s uses the deterministic day", day_date)
            state.commit(fallback_day)
            return fallback_day

        prompt = prompts.day_plan_prompt(
            day_date, prefs, cuisine, pools, self.settings.prompt_candidates_per_meal,
        )
        try:
            raw = self.llm.complete(prompt, temperature=self.settings.day_temperature, response_format="json")
            payload = parse_llm_object(raw)
        except Exception as e:
            logger.warning("Day %d (%s) LLM output unusable, using deterministic day: %s", day_index + 1, day_date, e)
            state.commit(fallback_day)
            return fallback_day

        day = self.enforcer.enforce(
            payload, pools, prefs, day_date, state.rng,
            cuisine=cuisine, fallback_day=fallback_day, hydrated=state.hydrated,
        )
        day = dedupe_day(
            day, pools, state.previous_day_ids, state.used_ids, self.enforcer, prefs, state.rng,
            hydrated=state.hydrated,
        )
        if self.sanity_checker is not None:
            day = self.sanity_checker.review(
                day, pools, self.enforcer, prefs,
                avoid_ids=state.used_ids | set(state.previous_day_ids),
                hydrated=state.hydrated,
            )

        state.commit(day)
        logger.info("Day %d (%s) planned: %s", day_index + 1, day_date, day.recipe_ids())
        return day
