# meal_grounding/routes/debug_routes.py
from fastapi import APIRouter, Depends

from meal_grounding.controllers.meal_plan_controller import MealPlanController
from meal_grounding.models.plan import CandidateDebugRequest
from meal_grounding.routes.dependencies import get_planner
from meal_grounding.services.grounded_planner import GroundedMealPlanner

router = APIRouter()


@router.post("/candidates")
def debug_candidates(request: CandidateDebugRequest, planner: GroundedMealPlanner = Depends(get_planner)):
    return MealPlanController.debug_candidates(request, planner)
