# meal_grounding/routes/meal_plan_routes.py
from fastapi import APIRouter, Depends

from meal_grounding.controllers.meal_plan_controller import MealPlanController
from meal_grounding.models.plan import AlternativesRequest, MealPlanRequest
from meal_grounding.routes.dependencies import get_planner
from meal_grounding.services.grounded_planner import GroundedMealPlanner

router = APIRouter()


@router.post("/generate", status_code=201)
def generate_meal_plan(request: MealPlanRequest, planner: GroundedMealPlanner = Depends(get_planner)):
    return MealPlanController.generate(request, planner)


@router.post("/alternatives")
def meal_alternatives(request: AlternativesRequest, planner: GroundedMealPlanner = Depends(get_planner)):
    return MealPlanController.alternatives(request, planner)
