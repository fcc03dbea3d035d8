# meal_grounding/controllers/meal_plan_controller.py
from fastapi import HTTPException

from meal_grounding.models.plan import AlternativesRequest, CandidateDebugRequest, MealPlanRequest
from meal_grounding.models.recipe import MEAL_TYPES
from meal_grounding.services.fallback_planner import resolve_start_date
from meal_grounding.services.grounded_planner import GroundedMealPlanner
from meal_grounding.services.grounding import candidate_to_plan_recipe


def _check_meal_type(meal_type: str) -> str:
    meal_type = (meal_type or "").strip().lower()
    if meal_type not in MEAL_TYPES:
        raise HTTPException(status_code=400, detail=f"mealType must be one of {', '.join(MEAL_TYPES)}")
    return meal_type


class MealPlanController:
    @staticmethod
    def generate(request: MealPlanRequest, planner: GroundedMealPlanner):
        """Build a grounded plan. Generation itself never fails; bad input does."""
        if request.preferences is None:
            raise HTTPException(status_code=400, detail="preferences are required")
        try:
            resolve_start_date(request.start_date)
        except ValueError:
            raise HTTPException(status_code=400, detail="startDate must be YYYY-MM-DD")

        plan = planner.generate(
            request.preferences,
            duration=request.duration,
            seed=request.seed,
            start_date=request.start_date,
        )
        return {"mealPlan": plan.model_dump(by_alias=True)}

    @staticmethod
    def alternatives(request: AlternativesRequest, planner: GroundedMealPlanner):
        meal_type = _check_meal_type(request.meal_type)
        hits = planner.alternatives(meal_type, request.preferences, request.exclude_ids, limit=request.limit)
        return {
            "mealType": meal_type,
            "alternatives": [candidate_to_plan_recipe(c).model_dump(by_alias=True) for c in hits],
        }

    @staticmethod
    def debug_candidates(request: CandidateDebugRequest, planner: GroundedMealPlanner):
        meal_type = _check_meal_type(request.meal_type)
        candidates = planner.candidates(meal_type, request.preferences, limit=request.limit)
        return [
            {
                "id": c.id,
                "title": c.title,
                "synthetic": c.synthetic,
                "ingredients_len": len(c.ingredient_names()),
                "steps_len": len(c.instructions),
                "calories": c.nutrition.calories,
                "first_ingredient": (c.ingredient_names() or [None])[0],
            }
            for c in candidates
        ]
