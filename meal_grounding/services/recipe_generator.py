# meal_grounding/services/recipe_generator.py
import json
import uuid
from typing import Any, Dict, List, Optional

from meal_grounding.config import Settings
from meal_grounding.logging_utils import get_logger
from meal_grounding.models.plan import UserPreferences
from meal_grounding.models.recipe import Candidate, ParsedIngredient, normalize_cuisine, split_csv
from meal_grounding.services import prompts
from meal_grounding.services.json_repair import parse_llm_json
from meal_grounding.services.nutrition import normalize_nutrition

logger = get_logger(__name__)

# plausible macros when the model leaves them out
DEFAULT_MACROS = {
    "breakfast": {"calories": 400, "protein_g": 20, "carbs_g": 45, "fat_g": 14},
    "lunch": {"calories": 550, "protein_g": 30, "carbs_g": 55, "fat_g": 18},
    "dinner": {"calories": 650, "protein_g": 35, "carbs_g": 60, "fat_g": 22},
    "snack": {"calories": 200, "protein_g": 8, "carbs_g": 20, "fat_g": 9},
}


def _recipes_from(data: Any) -> List[Dict[str, Any]]:
    recipes = data.get("recipes", data) if isinstance(data, dict) else data

    # some models return the array (or each recipe) as an encoded string
    if isinstance(recipes, str):
        recipes = json.loads(recipes)

    if isinstance(recipes, list) and recipes and isinstance(recipes[0], str):
        fixed = []
        for s in recipes:
            try:
                fixed.append(json.loads(s))
            except ValueError:
                continue
        recipes = fixed

    if isinstance(recipes, dict):
        recipes = [recipes]
    if not isinstance(recipes, list):
        raise ValueError(f"Expected list of recipes, got: {type(recipes).__name__}")
    return [r for r in recipes if isinstance(r, dict)]


def _parse_ingredients(raw) -> List[ParsedIngredient]:
    out = []
    for item in raw or []:
        if isinstance(item, dict):
            name = str(item.get("name") or "").strip()
            if not name:
                continue
            out.append(ParsedIngredient(
                name=name.lower(),
                amount=item.get("amount", item.get("qty")),
                unit=item.get("unit"),
                category=item.get("category"),
            ))
        elif isinstance(item, str) and item.strip():
            out.append(ParsedIngredient(name=item.strip().lower()))
    return out


def _steps(raw) -> List[str]:
    if isinstance(raw, str):
        return [s.strip() for s in raw.splitlines() if s.strip()]
    return [str(s).strip() for s in raw or [] if str(s).strip()]


class RecipeGenerator:
    """Asks the LLM for recipes when the index has nothing for a meal type."""

    def __init__(self, settings: Settings, llm=None):
        self.settings = settings
        self.llm = llm

    def to_candidate(self, raw: Dict[str, Any], meal_type: str, token: str, i: int) -> Candidate:
        parsed = _parse_ingredients(raw.get("ingredients"))
        nutrition = normalize_nutrition(raw.get("nutrition"), raw, DEFAULT_MACROS.get(meal_type, DEFAULT_MACROS["lunch"]))

        total_time: Optional[float] = None
        for key in ("total_time_minutes", "time_minutes", "total_time_min"):
            try:
                if raw.get(key) is not None:
                    total_time = float(raw[key])
                    break
            except (TypeError, ValueError):
                continue

        return Candidate(
            id=f"synthetic-{meal_type}-{token}-{i}",
            title=str(raw.get("title") or raw.get("name") or "").strip(),
            description=str(raw.get("description") or ""),
            cuisine=normalize_cuisine(raw.get("cuisine")),
            meal_type=[meal_type],
            diet_tags=[t.lower() for t in split_csv(raw.get("diet_tags") or raw.get("tags"))],
            total_time_min=total_time,
            nutrition=nutrition,
            ingredients=[p.name for p in parsed],
            ingredients_parsed=parsed,
            instructions=_steps(raw.get("instructions") or raw.get("steps")),
            synthetic=True,
        )

    def generate(
        self,
        meal_type: str,
        prefs: UserPreferences,
        count: int,
        exclusions: Optional[List[str]] = None,
    ) -> List[Candidate]:
        if self.llm is None or count <= 0:
            return []
        try:
            raw = self.llm.complete(
                prompts.recipe_generation_prompt(meal_type, prefs, count, exclusions or []),
                temperature=0.7,
                response_format="json",
            )
            recipes = _recipes_from(parse_llm_json(raw))
        except Exception as e:
            logger.warning("Synthetic recipe generation failed for %s: %s", meal_type, e)
            return []

        token = uuid.uuid4().hex[:8]
        out = []
        for i, r in enumerate(recipes[:count]):
            candidate = self.to_candidate(r, meal_type, token, i)
            if candidate.is_usable():
                out.append(candidate)

        logger.info("Generated %d synthetic %s recipes (%d requested)", len(out), meal_type, count)
        return out
