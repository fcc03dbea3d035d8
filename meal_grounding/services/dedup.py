# meal_grounding/services/dedup.py
import random
from typing import Dict, Iterable, List, Optional, Set

from meal_grounding.config import Settings
from meal_grounding.logging_utils import get_logger
from meal_grounding.models.plan import DayPlan, UserPreferences
from meal_grounding.models.recipe import Candidate
from meal_grounding.services import prompts
from meal_grounding.services.json_repair import parse_llm_object

logger = get_logger(__name__)


def dedupe_day(
    day: DayPlan,
    pools: Dict[str, List[Candidate]],
    recent_ids: Iterable[str],
    used_ids: Iterable[str],
    enforcer,
    prefs: UserPreferences,
    rng: random.Random,
    hydrated: Optional[Dict[str, Candidate]] = None,
) -> DayPlan:
    """
    Swap out meals that repeat within the day, repeat yesterday, or repeat
    anything else already in the plan.

    A fully unused pool candidate is preferred. Within-day and yesterday
    repeats settle for an earlier-in-plan candidate if that is all there is.
    With no alternative at all the duplicate stays; a meal is never emptied.
    """
    recent: Set[str] = set(recent_ids or [])
    used: Set[str] = set(used_ids or [])
    current = {m.recipe_id for m in day.meals if m.recipe_id}
    seen: Set[str] = set()

    for i, meal in enumerate(day.meals):
        rid = meal.recipe_id
        if not rid:
            continue

        hard_dup = rid in seen or rid in recent
        if not hard_dup and rid not in used:
            seen.add(rid)
            continue

        pool = pools.get(meal.type) or []
        blocked = seen | current | recent
        fresh = [c for c in pool if c.id not in blocked and c.id not in used]
        options = fresh or ([c for c in pool if c.id not in blocked] if hard_dup else [])

        if not options:
            logger.info("No alternative for duplicate %s (%s) on %s; keeping it", rid, meal.type, day.date)
            seen.add(rid)
            continue

        pick = rng.choice(options)
        logger.info("Duplicate %s (%s) on %s swapped for %s", rid, meal.type, day.date, pick.id)
        day.meals[i] = enforcer.build_meal(meal.type, pick, prefs, hydrated=hydrated)
        current.add(pick.id)
        seen.add(pick.id)

    return day


def day_summary(day: DayPlan) -> List[Dict]:
    out = []
    for meal in day.meals:
        recipe = meal.recipes[0] if meal.recipes else None
        out.append({
            "type": meal.type,
            "id": meal.recipe_id,
            "name": recipe.name if recipe else None,
            "calories": recipe.nutrition.calories if recipe else None,
            "protein": recipe.nutrition.protein if recipe else None,
        })
    return out


class SanityChecker:
    """Second LLM look at a finished day; may only swap in ids from the pools."""

    def __init__(self, settings: Settings, llm=None):
        self.settings = settings
        self.llm = llm

    def review(
        self,
        day: DayPlan,
        pools: Dict[str, List[Candidate]],
        enforcer,
        prefs: UserPreferences,
        avoid_ids: Optional[Iterable[str]] = None,
        hydrated: Optional[Dict[str, Candidate]] = None,
    ) -> DayPlan:
        if self.llm is None:
            return day
        try:
            raw = self.llm.complete(
                prompts.sanity_check_prompt(day_summary(day), pools, self.settings.prompt_candidates_per_meal),
                temperature=0.2,
                response_format="json",
            )
            data = parse_llm_object(raw)
        except Exception as e:
            logger.warning("Sanity check skipped for %s: %s", day.date, e)
            return day

        replacements = data.get("replacements")
        if not isinstance(replacements, list):
            return day

        avoid = set(avoid_ids or [])
        for rep in replacements:
            if not isinstance(rep, dict):
                continue
            meal_type = str(rep.get("type") or "").strip().lower()
            new_id = str(rep.get("replaceWithId") or rep.get("id") or "").strip()
            pool = {c.id: c for c in pools.get(meal_type) or []}
            in_day = set(day.recipe_ids())

            if new_id not in pool or new_id in in_day or new_id in avoid:
                logger.info("Ignoring sanity replacement %r for %s", new_id, meal_type)
                continue

            for i, meal in enumerate(day.meals):
                if meal.type == meal_type:
                    day.meals[i] = enforcer.build_meal(meal_type, pool[new_id], prefs, hydrated=hydrated)
                    logger.info("Sanity check replaced %s on %s with %s", meal_type, day.date, new_id)
                    break
        return day
