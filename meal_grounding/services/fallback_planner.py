# meal_grounding/services/fallback_planner.py
"""
Deterministic meal plans that need neither the LLM nor the index.

Everything here is driven by a 32-bit mulberry PRNG so that the same seed,
preferences and start date always produce the same plan. The day planner
relies on that: when the LLM output for a day cannot be parsed, it drops in
build_fallback_plan(...).days[i] for that day.
"""

import math
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Union

from meal_grounding.models.plan import (
    DayPlan, Meal, MealPlan, PlanIngredient, PlanNutrition, PlanRecipe, UserPreferences,
)
from meal_grounding.services.exclusions import expand_exclusions, violates

MASK = 0xFFFFFFFF
FALLBACK_SEED_OFFSET = 2024

INGREDIENT_LIBRARY: Dict[str, List[Dict[str, str]]] = {
    "breakfast": [
        {"name": "Rolled oats", "category": "grain"},
        {"name": "Greek yogurt", "category": "dairy"},
        {"name": "Chia seeds", "category": "seed"},
        {"name": "Almond butter", "category": "nut"},
        {"name": "Banana", "category": "fruit"},
        {"name": "Blueberries", "category": "fruit"},
        {"name": "Eggs", "category": "protein"},
        {"name": "Spinach", "category": "vegetable"},
        {"name": "Whole grain bread", "category": "grain"},
        {"name": "Avocado", "category": "fat"},
        {"name": "Ricotta cheese", "category": "dairy"},
        {"name": "Smoked salmon", "category": "protein"},
        {"name": "Sun-dried tomatoes", "category": "vegetable"},
        {"name": "Pesto", "category": "fat"},
        {"name": "Mango", "category": "fruit"},
        {"name": "Coconut yogurt", "category": "dairy"},
        {"name": "Granola", "category": "grain"},
        {"name": "Hazelnuts", "category": "nut"},
        {"name": "Matcha powder", "category": "other"},
        {"name": "Buckwheat flour", "category": "grain"},
    ],
    "lunch": [
        {"name": "Quinoa", "category": "grain"},
        {"name": "Brown rice", "category": "grain"},
        {"name": "Chicken breast", "category": "protein"},
        {"name": "Chickpeas", "category": "protein"},
        {"name": "Black beans", "category": "protein"},
        {"name": "Mixed greens", "category": "vegetable"},
        {"name": "Cherry tomatoes", "category": "vegetable"},
        {"name": "Cucumber", "category": "vegetable"},
        {"name": "Feta cheese", "category": "dairy"},
        {"name": "Salmon", "category": "protein"},
        {"name": "Arugula", "category": "vegetable"},
        {"name": "Farro", "category": "grain"},
        {"name": "Roasted red peppers", "category": "vegetable"},
        {"name": "Halloumi", "category": "dairy"},
        {"name": "Bulgur wheat", "category": "grain"},
        {"name": "Kimchi", "category": "vegetable"},
        {"name": "Seaweed salad", "category": "vegetable"},
        {"name": "Toasted sesame seeds", "category": "seed"},
        {"name": "Tzatziki", "category": "dairy"},
        {"name": "Roasted eggplant", "category": "vegetable"},
    ],
    "dinner": [
        {"name": "Sweet potato", "category": "vegetable"},
        {"name": "Broccoli", "category": "vegetable"},
        {"name": "Lean beef", "category": "protein"},
        {"name": "Turkey mince", "category": "protein"},
        {"name": "Tofu", "category": "protein"},
        {"name": "Lentils", "category": "protein"},
        {"name": "Brown rice", "category": "grain"},
        {"name": "Whole wheat pasta", "category": "grain"},
        {"name": "Zucchini", "category": "vegetable"},
        {"name": "Bell pepper", "category": "vegetable"},
        {"name": "Cauliflower", "category": "vegetable"},
        {"name": "Shrimp", "category": "protein"},
        {"name": "Miso paste", "category": "other"},
        {"name": "Coconut milk", "category": "fat"},
        {"name": "Bok choy", "category": "vegetable"},
        {"name": "Brown lentil pasta", "category": "grain"},
        {"name": "Paneer", "category": "protein"},
        {"name": "Harissa", "category": "other"},
        {"name": "Polenta", "category": "grain"},
        {"name": "Roasted garlic", "category": "vegetable"},
    ],
    "snack": [
        {"name": "Carrot sticks", "category": "vegetable"},
        {"name": "Hummus", "category": "protein"},
        {"name": "Apple", "category": "fruit"},
        {"name": "Mixed nuts", "category": "nut"},
        {"name": "Rice cakes", "category": "grain"},
        {"name": "Cottage cheese", "category": "dairy"},
        {"name": "Edamame", "category": "protein"},
        {"name": "Berries", "category": "fruit"},
        {"name": "Dark chocolate squares", "category": "other"},
        {"name": "Roasted chickpeas", "category": "protein"},
        {"name": "Apple butter", "category": "other"},
        {"name": "Matcha energy bites", "category": "other"},
        {"name": "Spiced almonds", "category": "nut"},
        {"name": "Seaweed crisps", "category": "vegetable"},
        {"name": "Protein yoghurt drink", "category": "dairy"},
    ],
}

CUISINE_OPTIONS = [
    "Mediterranean", "Italian", "French", "Moroccan", "Japanese", "Thai",
    "Vietnamese", "Korean", "Mexican", "Middle Eastern", "Nordic", "Indian",
    "Spanish", "Greek", "Caribbean",
]

FALLBACK_NAME_TEMPLATES = {
    "breakfast": [
        "{cuisine} Sunrise {main}",
        "{main} & {second} {cuisine} Morning Plate",
        "{cuisine} Daybreak {course} with {main}",
        "{cuisine} Brunch-style {main} Stack",
    ],
    "lunch": [
        "{cuisine} Midday {main} Platter",
        "{main} & {second} {cuisine} Lunch Tray",
        "{cuisine} Market {course} featuring {main}",
        "{cuisine} Bistro {main} Bowl",
    ],
    "dinner": [
        "{cuisine} Evening {main} Feast",
        "{main} & {second} {cuisine} Supper",
        "{cuisine} Hearth {course} with {main}",
        "{cuisine} Nightfall {main} Plate",
    ],
    "snack": [
        "{cuisine} Snack Bites with {main}",
        "{cuisine} Afternoon {main} Nibbles",
        "{main} & {second} {cuisine} Treat",
        "{cuisine} Street Snack: {main}",
    ],
    "default": ["{cuisine} {course} with {main}"],
}

# diet keyword -> name fragments that are not allowed
DIET_BLOCKLISTS = {
    "vegetarian": ["chicken", "beef", "turkey", "salmon", "shrimp"],
    "vegan": ["egg", "yogurt", "yoghurt", "cheese", "butter", "milk", "ricotta", "paneer",
              "halloumi", "tzatziki", "chicken", "beef", "turkey", "salmon", "fish", "shrimp"],
    "pescatarian": ["beef", "turkey", "chicken"],
}

FALLBACK_NUTRITION = {"calories": 450, "protein": 25, "carbs": 45, "fat": 18}


def mulberry32(seed: int) -> Callable[[], float]:
    """32-bit mulberry PRNG; returns floats in [0, 1)."""
    state = int(seed) & MASK

    def _imul(a: int, b: int) -> int:
        return (a * b) & MASK

    def rand() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & MASK
        t = _imul(state ^ (state >> 15), 1 | state)
        t ^= (t + _imul(t ^ (t >> 7), 61 | t)) & MASK
        return ((t ^ (t >> 14)) & MASK) / 4294967296

    return rand


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def capitalize(value: Optional[str]) -> str:
    if not value:
        return ""
    return value[0].upper() + value[1:]


def capitalize_words(value: Optional[str]) -> str:
    if not value:
        return ""
    words = value.replace("-", " ").split()
    return " ".join(capitalize(w) for w in words)


def format_ingredient_list(names: List[str]) -> str:
    if not names:
        return "fresh pantry staples"
    formatted = [capitalize_words(n) for n in names]
    if len(formatted) == 1:
        return formatted[0]
    return f"{', '.join(formatted[:-1])} and {formatted[-1]}"


def _allowed(name: str, diet: str, excludes: List[str]) -> bool:
    lower = name.lower()
    if violates(lower, excludes):
        return False
    for key, blocked in DIET_BLOCKLISTS.items():
        if key in diet and any(b in lower for b in blocked):
            return False
    return True


def pick_ingredients(meal_type: str, rand, diet: str, excludes: List[str]) -> List[Dict[str, str]]:
    pool = INGREDIENT_LIBRARY.get(meal_type) or INGREDIENT_LIBRARY["breakfast"]
    filtered = [item for item in pool if _allowed(item["name"], diet, excludes)]
    working = filtered or pool

    if meal_type == "snack":
        size = 2 + _round_half_up(rand() * 1)
    else:
        size = 3 + _round_half_up(rand() * 2)

    picked: List[Dict[str, str]] = []
    used = set()
    while len(picked) < size and len(used) < len(working):
        idx = int(math.floor(rand() * len(working)))
        if idx in used:
            continue
        used.add(idx)
        picked.append(working[idx])
    return picked


def pick_cuisine(rand) -> str:
    return CUISINE_OPTIONS[int(math.floor(rand() * len(CUISINE_OPTIONS)))]


def build_blueprint(prefs: UserPreferences, duration: int, seed: int) -> List[Dict]:
    """Per day: a cuisine, then per meal type a handful of library ingredients."""
    rand = mulberry32(seed)
    diet = (prefs.diet_type or "balanced").lower()
    excludes = expand_exclusions(prefs.raw_exclusions())

    blueprint = []
    for day_index in range(duration):
        cuisine = pick_cuisine(rand)
        meals = []
        for meal_type in prefs.meal_types():
            meals.append({
                "type": meal_type,
                "cuisine": cuisine,
                "suggested_time": prefs.meal_time(meal_type),
                "ingredients": pick_ingredients(meal_type, rand, diet, excludes),
            })
        blueprint.append({"day": day_index + 1, "cuisine": cuisine, "meals": meals})
    return blueprint


def fallback_recipe_name(meal_type: str, cuisine: str, key_ingredients: List[str], rand) -> str:
    templates = FALLBACK_NAME_TEMPLATES.get(meal_type) or FALLBACK_NAME_TEMPLATES["default"]
    template = templates[int(math.floor(rand() * len(templates)))]
    main = capitalize_words(key_ingredients[0] if key_ingredients else meal_type)
    second = capitalize_words(key_ingredients[1] if len(key_ingredients) > 1 else (key_ingredients[0] if key_ingredients else meal_type))
    return (
        template.replace("{cuisine}", cuisine)
        .replace("{main}", main)
        .replace("{second}", second)
        .replace("{course}", capitalize(meal_type))
    )


def build_fallback_day(blueprint_day: Dict, prefs: UserPreferences, day_date: str, rand) -> DayPlan:
    cuisine_name = capitalize_words(blueprint_day.get("cuisine") or pick_cuisine(rand))
    cuisine_slug = "-".join(cuisine_name.lower().split())

    meals = []
    for meal in blueprint_day["meals"]:
        meal_type = meal["type"]
        key_ingredients = [i["name"] for i in meal["ingredients"][:3]]
        name = fallback_recipe_name(meal_type, cuisine_name, key_ingredients, rand) or f"{capitalize(meal_type)} Bowl"

        recipe = PlanRecipe(
            name=name,
            description=f"{cuisine_name}-inspired {meal_type} featuring {format_ingredient_list(key_ingredients)}.",
            prep_time=10,
            cook_time=15,
            servings=1,
            ingredients=[
                PlanIngredient(name=i["name"], amount="1", unit="portion", category=i.get("category") or "other")
                for i in meal["ingredients"]
            ],
            instructions=[
                "Prepare the ingredients as needed (wash, chop, cook where appropriate).",
                f"Combine the ingredients to create a {cuisine_name}-style {meal_type}.",
                f"Finish with herbs, spices, or condiments that complement {cuisine_name} flavours.",
            ],
            nutrition=PlanNutrition(**FALLBACK_NUTRITION),
            tags=["fallback", meal_type, cuisine_slug],
            difficulty="easy",
            source="fallback",
        )
        meals.append(Meal(
            type=meal_type,
            scheduled_time=meal.get("suggested_time") or prefs.meal_time(meal_type),
            recipes=[recipe],
            total_nutrition=PlanNutrition(**FALLBACK_NUTRITION),
        ))

    return DayPlan(date=day_date, cuisine=cuisine_name, meals=meals, fallback=True)


def resolve_start_date(start_date: Union[str, date, None]) -> date:
    if start_date is None:
        return date.today()
    if isinstance(start_date, date):
        return start_date
    return date.fromisoformat(str(start_date)[:10])


def plan_dates(start_date: Union[str, date, None], duration: int) -> List[str]:
    start = resolve_start_date(start_date)
    return [(start + timedelta(days=i)).isoformat() for i in range(duration)]


def build_fallback_plan(
    prefs: UserPreferences,
    duration: int,
    seed: int,
    start_date: Union[str, date, None] = None,
) -> MealPlan:
    blueprint = build_blueprint(prefs, duration, seed)
    rand = mulberry32(int(seed) + FALLBACK_SEED_OFFSET)
    dates = plan_dates(start_date, duration)

    days = [build_fallback_day(bp, prefs, dates[i], rand) for i, bp in enumerate(blueprint)]
    diet_label = capitalize(prefs.diet_type or "balanced")
    return MealPlan(
        title=f"{diet_label} {duration}-Day Meal Plan (Fallback)",
        description="Generated locally from a seeded ingredient blueprint because the AI planner was unavailable.",
        days=days,
        seed=seed,
        generated_by="fallback",
    )
