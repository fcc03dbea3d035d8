# meal_grounding/services/nutrition.py
import math
import re
from typing import Any, Dict, Optional

from meal_grounding.models.plan import PlanNutrition
from meal_grounding.models.recipe import Nutrition

# canonical field -> accepted source names, in priority order
NUTRITION_ALIASES = {
    "calories": ["calories", "kcal", "energy_kcal", "nutrition_calories"],
    "protein_g": ["protein_g", "protein_grams", "protein", "nutrition_protein_g", "nutrition_protein"],
    "carbs_g": ["carbs_g", "carbs_grams", "carbs", "carbohydrates", "nutrition_carbs_g", "nutrition_carbs"],
    "fat_g": ["fat_g", "fat_grams", "fat", "nutrition_fat_g", "nutrition_fat"],
    "fiber_g": ["fiber_g", "fiber_grams", "fiber", "nutrition_fiber_g", "nutrition_fiber"],
    "sugar_g": ["sugar_g", "sugar_grams", "sugar", "nutrition_sugar_g", "nutrition_sugar"],
}

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    match = _NUMBER_RE.search(str(value))
    return float(match.group(0)) if match else None


def normalize_nutrition(*sources: Optional[Dict[str, Any]]) -> Nutrition:
    """
    Collapse differently named nutrition fields into one Nutrition record.

    Sources are checked in order (e.g. a nested "nutrition" dict before the
    flattened top-level fields); the first finite number found wins.
    """
    values: Dict[str, float] = {}
    for canonical, aliases in NUTRITION_ALIASES.items():
        for source in sources:
            if not isinstance(source, dict):
                continue
            for alias in aliases:
                num = to_number(source.get(alias))
                if num is not None:
                    values[canonical] = num
                    break
            if canonical in values:
                break
    return Nutrition(**values)


def to_plan_nutrition(n: Nutrition) -> PlanNutrition:
    return PlanNutrition(
        calories=n.calories or 0,
        protein=n.protein_g or 0,
        carbs=n.carbs_g or 0,
        fat=n.fat_g or 0,
        fiber=n.fiber_g,
        sugar=n.sugar_g,
    )


def sum_nutrition(*items: PlanNutrition) -> PlanNutrition:
    total = PlanNutrition()
    for n in items:
        total.calories += n.calories or 0
        total.protein += n.protein or 0
        total.carbs += n.carbs or 0
        total.fat += n.fat or 0
        if n.fiber is not None:
            total.fiber = (total.fiber or 0) + n.fiber
        if n.sugar is not None:
            total.sugar = (total.sugar or 0) + n.sugar
    return total
