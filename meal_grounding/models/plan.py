# meal_grounding/models/plan.py
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from meal_grounding.models.recipe import split_csv

DEFAULT_MEAL_TIMES = {
    "breakfast": "08:00",
    "lunch": "12:30",
    "dinner": "19:00",
    "snack": "15:30",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UserPreferences(_CamelModel):
    diet_type: Optional[str] = Field(None, alias="dietType")
    allergies: List[str] = Field(default_factory=list)
    disliked_foods: List[str] = Field(default_factory=list, alias="dislikedFoods")
    goals: Optional[str] = None
    activity_level: Optional[str] = Field(None, alias="activityLevel")
    additional_notes: Optional[str] = Field(None, alias="additionalNotes")
    cuisine: Optional[str] = None
    include_ingredients: List[str] = Field(default_factory=list, alias="includeIngredients")
    exclude_ingredients: List[str] = Field(default_factory=list, alias="excludeIngredients")
    include_snacks: bool = Field(True, alias="includeSnacks")
    meal_times: Dict[str, str] = Field(default_factory=dict, alias="mealTimes")

    @field_validator("allergies", "disliked_foods", "include_ingredients", "exclude_ingredients", mode="before")
    @classmethod
    def _lists(cls, v):
        return [s.lower() for s in split_csv(v)]

    @field_validator("meal_times", mode="before")
    @classmethod
    def _times(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k).lower(): str(t) for k, t in v.items() if t}

    def raw_exclusions(self) -> List[str]:
        out: List[str] = []
        for term in [*self.allergies, *self.disliked_foods, *self.exclude_ingredients]:
            if term and term not in out:
                out.append(term)
        return out

    def meal_types(self) -> List[str]:
        types = ["breakfast", "lunch", "dinner"]
        if self.include_snacks or self.meal_times.get("snack"):
            types.append("snack")
        return types

    def meal_time(self, meal_type: str) -> str:
        return self.meal_times.get(meal_type) or DEFAULT_MEAL_TIMES.get(meal_type, "12:00")

    def notes_text(self) -> str:
        return (self.additional_notes or "").strip()


class PlanNutrition(BaseModel):
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    fiber: Optional[float] = None
    sugar: Optional[float] = None


class PlanIngredient(BaseModel):
    name: str
    amount: str = "1"
    unit: str = "unit"
    category: str = "other"


class PlanRecipe(_CamelModel):
    id: Optional[str] = None
    name: str
    description: str = ""
    prep_time: Optional[int] = Field(None, alias="prepTime")
    cook_time: Optional[int] = Field(None, alias="cookTime")
    servings: int = 1
    ingredients: List[PlanIngredient] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    nutrition: PlanNutrition = Field(default_factory=PlanNutrition)
    tags: List[str] = Field(default_factory=list)
    difficulty: str = "easy"
    source: str = "index"


class Meal(_CamelModel):
    type: str
    scheduled_time: str = Field("12:00", alias="scheduledTime")
    recipes: List[PlanRecipe] = Field(default_factory=list)
    total_nutrition: PlanNutrition = Field(default_factory=PlanNutrition, alias="totalNutrition")

    @property
    def recipe_id(self) -> Optional[str]:
        return self.recipes[0].id if self.recipes else None


class DayPlan(BaseModel):
    date: str
    cuisine: Optional[str] = None
    meals: List[Meal] = Field(default_factory=list)
    fallback: bool = False

    def recipe_ids(self) -> List[str]:
        return [m.recipe_id for m in self.meals if m.recipe_id]

    def meal(self, meal_type: str) -> Optional[Meal]:
        for m in self.meals:
            if m.type == meal_type:
                return m
        return None


class MealPlan(_CamelModel):
    title: str
    description: str = ""
    days: List[DayPlan] = Field(default_factory=list)
    seed: Optional[int] = None
    generated_by: str = Field("llm-grounded", alias="generatedBy")


class MealPlanRequest(_CamelModel):
    duration: int = Field(7, ge=1, le=14)
    preferences: Optional[UserPreferences] = None
    seed: Optional[int] = None
    start_date: Optional[str] = Field(None, alias="startDate")


class AlternativesRequest(_CamelModel):
    meal_type: str = Field(..., alias="mealType")
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    exclude_ids: List[str] = Field(default_factory=list, alias="excludeIds")
    limit: int = Field(3, ge=1, le=10)


class CandidateDebugRequest(_CamelModel):
    meal_type: str = Field(..., alias="mealType")
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    limit: int = Field(5, ge=1, le=50)
