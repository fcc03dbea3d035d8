# meal_grounding/services/grounding.py
import random
from typing import Any, Dict, List, Optional, Set

from meal_grounding.logging_utils import get_logger
from meal_grounding.models.plan import DayPlan, Meal, PlanIngredient, PlanRecipe, UserPreferences
from meal_grounding.models.recipe import Candidate
from meal_grounding.services.exclusions import diet_exclusions, expand_exclusions, violates
from meal_grounding.services.nutrition import sum_nutrition, to_plan_nutrition

logger = get_logger(__name__)

ALLOWED_CATEGORIES = {
    "protein", "vegetable", "fruit", "grain", "dairy", "fat",
    "spice", "nut", "seed", "broth", "herb", "other",
}
DIFFICULTIES = {"easy", "medium", "hard"}


def sanitize_category(category) -> str:
    if not category or not isinstance(category, str):
        return "other"
    lower = category.strip().lower()
    return lower if lower in ALLOWED_CATEGORIES else "other"


def _llm_ingredients(raw) -> List[PlanIngredient]:
    out = []
    for item in raw or []:
        if isinstance(item, dict) and str(item.get("name") or "").strip():
            out.append(PlanIngredient(
                name=str(item["name"]).strip(),
                amount=str(item.get("amount") or "1"),
                unit=str(item.get("unit") or "unit"),
                category=sanitize_category(item.get("category")),
            ))
        elif isinstance(item, str) and item.strip():
            out.append(PlanIngredient(name=item.strip()))
    return out


def candidate_to_plan_recipe(
    c: Candidate,
    llm_meal: Optional[Dict[str, Any]] = None,
    excludes: Optional[List[str]] = None,
) -> PlanRecipe:
    """The candidate is the source of truth; the LLM only contributes tags, difficulty and
    (when the candidate has no ingredients at all) ingredients, minus any excluded ones."""
    llm_meal = llm_meal or {}

    if c.ingredients_parsed:
        ingredients = [
            PlanIngredient(
                name=i.name,
                amount=i.amount or "1",
                unit=i.unit or "unit",
                category=sanitize_category(i.category),
            )
            for i in c.ingredients_parsed if i.name
        ]
    elif c.ingredients:
        ingredients = [PlanIngredient(name=n) for n in c.ingredients]
    else:
        terms = expand_exclusions(excludes or [])
        ingredients = [
            i for i in _llm_ingredients(llm_meal.get("ingredients"))
            if not violates(i.name.lower(), terms)
        ]

    tags: List[str] = []
    for tag in [*c.diet_tags, *(llm_meal.get("tags") or [])]:
        if isinstance(tag, str) and tag.strip() and tag.strip() not in tags:
            tags.append(tag.strip())

    difficulty = str(llm_meal.get("difficulty") or "easy").lower()

    return PlanRecipe(
        id=c.id,
        name=c.title or "Untitled recipe",
        description=c.description,
        prep_time=int(c.total_time_min) if c.total_time_min else None,
        servings=c.servings or 1,
        ingredients=ingredients,
        instructions=list(c.instructions),
        nutrition=to_plan_nutrition(c.nutrition),
        tags=tags,
        difficulty=difficulty if difficulty in DIFFICULTIES else "easy",
        source="synthetic" if c.synthetic else "index",
    )


def llm_meals(payload: Any) -> List[Dict[str, Any]]:
    """Meal entries from a day payload, tolerating a {"days": [...]} wrapper."""
    if not isinstance(payload, dict):
        return []
    meals = payload.get("meals")
    if meals is None and isinstance(payload.get("days"), list) and payload["days"]:
        first = payload["days"][0]
        meals = first.get("meals") if isinstance(first, dict) else None
    if not isinstance(meals, list):
        return []
    return [m for m in meals if isinstance(m, dict)]


def llm_recipe_id(meal: Dict[str, Any]) -> Optional[str]:
    for key in ("recipeId", "recipe_id", "id"):
        value = meal.get(key)
        if value:
            return str(value).strip().strip("[]")
    recipes = meal.get("recipes")
    if isinstance(recipes, list) and recipes and isinstance(recipes[0], dict):
        return llm_recipe_id(recipes[0])
    return None


class GroundingEnforcer:
    """
    Rewrites an LLM day onto real candidates.

    A known id gets the candidate's data, an unknown or missing id gets a
    random unused candidate from the same pool. Candidates without parsed
    ingredients get one hydration attempt against the index; pass the same
    `hydrated` dict for a whole plan so each id is looked up at most once.
    """

    def __init__(self, index=None):
        self.index = index

    def hydrate(self, c: Candidate, hydrated: Optional[Dict[str, Candidate]] = None) -> Candidate:
        if c.ingredients_parsed or c.synthetic or self.index is None:
            return c
        if hydrated is not None and c.id in hydrated:
            return hydrated[c.id]
        result = self._lookup(c)
        if hydrated is not None:
            hydrated[c.id] = result
        return result

    def _lookup(self, c: Candidate) -> Candidate:
        try:
            doc = self.index.get_by_id(c.id)
        except Exception as e:
            logger.warning("Hydration of %s failed: %s", c.id, e)
            return c
        if doc is None or not doc.ingredients_parsed:
            return c
        update = {"ingredients_parsed": doc.ingredients_parsed}
        if not c.instructions:
            update["instructions"] = doc.instruction_steps()
        return c.model_copy(update=update)

    def build_meal(
        self,
        meal_type: str,
        candidate: Candidate,
        prefs: UserPreferences,
        llm_meal: Optional[Dict[str, Any]] = None,
        hydrated: Optional[Dict[str, Candidate]] = None,
    ) -> Meal:
        excludes = [*prefs.raw_exclusions(), *diet_exclusions(prefs.diet_type)]
        recipe = candidate_to_plan_recipe(self.hydrate(candidate, hydrated), llm_meal, excludes)
        return Meal(
            type=meal_type,
            scheduled_time=prefs.meal_time(meal_type),
            recipes=[recipe],
            total_nutrition=sum_nutrition(recipe.nutrition),
        )

    def enforce(
        self,
        payload: Any,
        pools: Dict[str, List[Candidate]],
        prefs: UserPreferences,
        day_date: str,
        rng: random.Random,
        cuisine: Optional[str] = None,
        fallback_day: Optional[DayPlan] = None,
        day_used: Optional[Set[str]] = None,
        hydrated: Optional[Dict[str, Candidate]] = None,
    ) -> DayPlan:
        day_used = set() if day_used is None else day_used
        by_type: Dict[str, Dict[str, Any]] = {}
        for m in llm_meals(payload):
            meal_type = str(m.get("type") or "").strip().lower()
            if meal_type and meal_type not in by_type:
                by_type[meal_type] = m

        meals: List[Meal] = []
        for meal_type, pool in pools.items():
            llm_meal = by_type.get(meal_type)

            if not pool:
                fallback_meal = fallback_day.meal(meal_type) if fallback_day else None
                if fallback_meal is not None:
                    logger.warning("Empty %s pool on %s; using the deterministic meal", meal_type, day_date)
                    meals.append(fallback_meal.model_copy(deep=True))
                continue

            by_id = {c.id: c for c in pool}
            rid = llm_recipe_id(llm_meal) if llm_meal else None
            candidate = by_id.get(rid) if rid else None

            if candidate is None:
                unused = [c for c in pool if c.id not in day_used]
                candidate = rng.choice(unused or pool)
                if llm_meal is None:
                    logger.info("LLM skipped %s on %s; filled with %s", meal_type, day_date, candidate.id)
                else:
                    logger.warning("Ungrounded %s id %r on %s; replaced with %s", meal_type, rid, day_date, candidate.id)

            day_used.add(candidate.id)
            meals.append(self.build_meal(meal_type, candidate, prefs, llm_meal, hydrated))

        return DayPlan(date=day_date, cuisine=cuisine, meals=meals)
