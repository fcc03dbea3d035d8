"""Tests for nutrition field normalization."""
from meal_grounding.models.plan import PlanNutrition
from meal_grounding.models.recipe import Nutrition
from meal_grounding.services.nutrition import normalize_nutrition, sum_nutrition, to_number, to_plan_nutrition


class TestNormalizeNutrition:
    def test_aliases_in_priority_order(self):
        n = normalize_nutrition({"protein_grams": 30, "protein": 99, "kcal": "520 kcal", "carbohydrates": 60})
        assert n.protein_g == 30
        assert n.calories == 520
        assert n.carbs_g == 60

    def test_earlier_source_wins(self):
        n = normalize_nutrition({"calories": 400}, {"calories": 900, "fat": 12})
        assert n.calories == 400
        assert n.fat_g == 12

    def test_flattened_index_fields(self):
        n = normalize_nutrition({"nutrition_protein_g": "25.5", "nutrition_fat_g": 10})
        assert n.protein_g == 25.5
        assert n.fat_g == 10

    def test_garbage_ignored(self):
        n = normalize_nutrition({"calories": "n/a", "protein": float("nan")}, None)
        assert n.calories is None
        assert n.protein_g is None

    def test_to_number(self):
        assert to_number(True) is None
        assert to_number("12g") == 12.0


class TestPlanNutrition:
    def test_missing_values_become_zero(self):
        plan = to_plan_nutrition(Nutrition(calories=300))
        assert plan.calories == 300
        assert plan.protein == 0
        assert plan.fiber is None

    def test_sum(self):
        total = sum_nutrition(PlanNutrition(calories=100, protein=5, fiber=2), PlanNutrition(calories=50, protein=1))
        assert total.calories == 150
        assert total.protein == 6
        assert total.fiber == 2
