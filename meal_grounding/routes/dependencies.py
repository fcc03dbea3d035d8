# meal_grounding/routes/dependencies.py
from functools import lru_cache

from meal_grounding.services.grounded_planner import GroundedMealPlanner, build_default_planner


@lru_cache(maxsize=1)
def get_planner() -> GroundedMealPlanner:
    return build_default_planner()
