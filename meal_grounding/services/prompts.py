# meal_grounding/services/prompts.py
"""
Prompt builders for every LLM call in the pipeline.

All prompts are plain strings (sent as the user message) and every one of them
asks for JSON only, since the callers parse with parse_llm_json().
"""

import json
from typing import Dict, List, Optional

from meal_grounding.models.plan import UserPreferences
from meal_grounding.models.recipe import Candidate

FILTER_SHAPE = {
    "diet_tags": ["keto", "vegan", "vegetarian", "pescatarian", "gluten_free", "dairy_free"],
    "include_ingredients": ["chicken", "broccoli"],
    "exclude_ingredients": ["peanut", "shellfish"],
    "meal_type": "breakfast|lunch|dinner|snack|null",
    "cuisine": "italian|mexican|mediterranean|indian|asian|middle_eastern|american|french|greek|thai|vietnamese|korean|null",
    "max_total_time_min": 30,
    "calorie_target": 600,
    "macro_focus": "high_protein|low_carb|balanced|null",
}

SYNTHESIS_SHAPE = {
    "meal_type": "breakfast|lunch|dinner|snack",
    "diet_tags": ["string"],
    "include_ingredients": ["string"],
    "exclude_ingredients": ["string"],
    "cuisine": "string|null",
    "max_total_time_min": "number|null",
    "calories_range": {"gte": "number|null", "lte": "number|null"},
    "protein_g_range": {"gte": "number|null", "lte": "number|null"},
    "goal_fit": "string|null",
    "activity_fit": "string|null",
    "text": "short search phrase|null",
}

DAY_SCHEMA = {
    "date": "YYYY-MM-DD",
    "meals": [
        {
            "type": "breakfast|lunch|dinner|snack",
            "recipeId": "id copied from the candidate list",
            "name": "string",
            "description": "string",
            "ingredients": [{"name": "string", "amount": "string", "unit": "string", "category": "string"}],
            "instructions": ["string"],
            "nutrition": {"calories": "number", "protein": "number", "carbs": "number", "fat": "number"},
            "tags": ["string"],
            "difficulty": "easy|medium|hard",
        }
    ],
}


def _prefs_block(prefs: UserPreferences) -> Dict:
    return {
        "dietType": prefs.diet_type,
        "allergies": prefs.allergies,
        "dislikedFoods": prefs.disliked_foods,
        "goals": prefs.goals,
        "activityLevel": prefs.activity_level,
        "notes": prefs.additional_notes,
    }


def free_text_filter_prompt(query: str, partial_filters: Dict) -> str:
    return (
        "You map free-text food preferences to structured recipe search filters.\n"
        f"Return ONLY JSON with this shape:\n{json.dumps(FILTER_SHAPE, indent=2)}\n\n"
        "Use null when unknown. Do NOT invent ingredients that are not present in the user request. "
        "Keep ingredient tokens normalized (lowercase, singular if clear).\n"
        f"Partial filters from deterministic parsing: {json.dumps(partial_filters)}\n"
        f'User request: "{query}"'
    )


def filter_synthesis_prompt(meal_type: str, prefs: UserPreferences) -> str:
    return (
        f"Build recipe search filters for a {meal_type} that suits this user.\n"
        f"User preferences: {json.dumps(_prefs_block(prefs))}\n"
        f"Extra include ingredients: {json.dumps(prefs.include_ingredients)}\n"
        f"Extra exclude ingredients: {json.dumps(prefs.exclude_ingredients)}\n\n"
        "Rules:\n"
        "- Every allergy and disliked food MUST appear in exclude_ingredients.\n"
        "- diet_tags use lowercase snake_case (vegan, vegetarian, keto, gluten_free, ...).\n"
        "- Only set numeric ranges when the preferences clearly imply them.\n"
        f"Return ONLY JSON with this shape:\n{json.dumps(SYNTHESIS_SHAPE, indent=2)}"
    )


def format_candidate_line(c: Candidate) -> str:
    minutes = f"{int(c.total_time_min)} min" if c.total_time_min else "? min"
    kcal = f"{int(c.nutrition.calories)} kcal" if c.nutrition.calories is not None else "? kcal"
    return f"- [{c.id}] {c.title} | {c.cuisine or 'any'} | {minutes} | {kcal}"


def format_candidate_pools(pools: Dict[str, List[Candidate]], per_meal: int = 20) -> str:
    sections = []
    for meal_type, pool in pools.items():
        lines = [format_candidate_line(c) for c in pool[:per_meal]]
        sections.append(f"{meal_type.upper()} candidates:\n" + ("\n".join(lines) or "- (none)"))
    return "\n\n".join(sections)


def day_plan_prompt(
    date: str,
    prefs: UserPreferences,
    cuisine: Optional[str],
    pools: Dict[str, List[Candidate]],
    per_meal: int = 20,
) -> str:
    meal_types = ", ".join(pools.keys())
    cuisine_line = (
        f"Lean into {cuisine} cuisine for this day when the candidates allow it."
        if cuisine else "No cuisine is pinned for this day."
    )
    return (
        f"Plan the meals for {date}.\n"
        f"User preferences: {json.dumps(_prefs_block(prefs))}\n"
        f"{cuisine_line}\n\n"
        f"{format_candidate_pools(pools, per_meal)}\n\n"
        "Rules:\n"
        f"1. Pick exactly ONE recipe for each meal type ({meal_types}).\n"
        "2. recipeId MUST be copied from the candidate list of that meal type. Do NOT invent recipes or ids.\n"
        "3. Do not use the same recipe twice in the day.\n"
        "4. Write ALL text in ENGLISH.\n"
        "5. Return ONLY valid JSON (no markdown, no comments) matching this schema:\n"
        f"{json.dumps(DAY_SCHEMA, indent=2)}"
    )


def sanity_check_prompt(day_summary: List[Dict], pools: Dict[str, List[Candidate]], per_meal: int = 20) -> str:
    return (
        "Review this day of meals for thematic sanity.\n"
        f"Day: {json.dumps(day_summary)}\n\n"
        f"{format_candidate_pools(pools, per_meal)}\n\n"
        "Rules:\n"
        "- No off-theme items (e.g. a dessert for dinner).\n"
        "- Breakfast should be breakfast food.\n"
        "- Prefer protein > 0 and plausible calories.\n"
        "- Only propose ids from the candidate list of the same meal type.\n"
        'Return ONLY JSON: {"replacements": [{"type": "breakfast|lunch|dinner|snack", "replaceWithId": "string"}]}\n'
        'Return {"replacements": []} when the day is fine.'
    )


def recipe_generation_prompt(meal_type: str, prefs: UserPreferences, count: int, exclusions: List[str]) -> str:
    request = {
        "task": f"Generate {count} realistic {meal_type} recipes.",
        "constraints": {
            "diet": prefs.diet_type or "any",
            "cuisine": prefs.cuisine or "any",
            "exclude": exclusions,
            "time_minutes_max": 45,
            "steps_range": [3, 7],
            "ingredients_range": [4, 12],
        },
        "required_fields_per_recipe": {
            "title": "string",
            "description": "string",
            "cuisine": "string",
            "total_time_minutes": "number",
            "ingredients": [{"name": "string", "amount": "string", "unit": "string", "category": "string"}],
            "instructions": ["string"],
            "nutrition": {"calories": "number", "protein_g": "number", "carbs_g": "number", "fat_g": "number"},
            "diet_tags": ["string"],
        },
        "rules": [
            "Return ONLY valid JSON.",
            "Return an OBJECT with a single key 'recipes' whose value is an array of recipe objects.",
            "Avoid excluded ingredients strictly.",
            "Keep ingredient names simple (no 'chopped', 'minced', etc.).",
            "Write everything in English.",
        ],
    }
    return json.dumps(request)
