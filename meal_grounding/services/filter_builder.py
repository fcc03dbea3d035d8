# meal_grounding/services/filter_builder.py
import re
from typing import Any, Dict, List, Optional, Tuple

from meal_grounding.config import Settings
from meal_grounding.logging_utils import get_logger
from meal_grounding.models.filters import NumericRange, SearchFilters
from meal_grounding.models.plan import UserPreferences
from meal_grounding.models.recipe import MEAL_TYPES, normalize_cuisine, split_csv
from meal_grounding.services import prompts
from meal_grounding.services.exclusions import diet_exclusions, expand_exclusions
from meal_grounding.services.json_repair import parse_llm_object

logger = get_logger(__name__)

DIET_KEYWORDS = {
    "keto": ["keto", "ketogenic"],
    "vegan": ["vegan", "plant-based", "plant based"],
    "vegetarian": ["vegetarian", "veggie"],
    "pescatarian": ["pescatarian", "pescetarian"],
    "gluten_free": ["gluten free", "gluten-free", "no gluten", "celiac"],
    "dairy_free": ["dairy free", "dairy-free", "lactose free", "no dairy"],
}

CUISINE_KEYWORDS = {
    "mediterranean": ["mediterranean"],
    "italian": ["italian", "pasta", "risotto"],
    "mexican": ["mexican", "tacos", "burrito"],
    "indian": ["indian", "curry", "masala"],
    "asian": ["asian"],
    "thai": ["thai"],
    "vietnamese": ["vietnamese", "pho", "banh mi"],
    "korean": ["korean", "kimchi"],
    "japanese": ["japanese", "sushi"],
    "greek": ["greek"],
    "french": ["french"],
    "american": ["american"],
    "middle_eastern": ["middle eastern", "levant", "shawarma"],
}

MEAL_TYPE_KEYWORDS = {
    "breakfast": ["breakfast", "morning", "brunch"],
    "lunch": ["lunch", "midday"],
    "dinner": ["dinner", "supper", "evening"],
    "snack": ["snack", "snacking"],
}

MACRO_KEYWORDS = {
    "high_protein": ["high protein", "lots of protein", "protein heavy"],
    "low_carb": ["low carb", "keto friendly", "cut carbs"],
    "balanced": ["balanced", "normal macros"],
    "high_carb": ["high carb", "carb load"],
}

SPEED_KEYWORDS = [
    (["quick", "fast", "in a hurry"], 20),
    (["30 minutes", "30 min", "half an hour"], 30),
]

CALORIE_KEYWORDS = [
    (["light", "low calorie", "lean"], 450),
    (["filling", "hearty"], 700),
]

INGREDIENT_ALIASES = {
    "chicken": ["chicken", "chicken breast", "rotisserie chicken"],
    "beef": ["beef", "steak"],
    "salmon": ["salmon"],
    "shrimp": ["shrimp", "prawn"],
    "tuna": ["tuna"],
    "tofu": ["tofu"],
    "chickpea": ["chickpea", "garbanzo"],
    "lentil": ["lentil"],
    "broccoli": ["broccoli"],
    "spinach": ["spinach"],
    "peanut": ["peanut"],
    "shellfish": ["shellfish"],
    "dairy": ["dairy", "cheese", "milk", "cream"],
    "pork": ["pork"],
    "potato": ["potato"],
}

NO_DIET = {"", "none", "any", "balanced", "omnivore", "regular", "normal", "null"}

_EXCLUSION_RE = re.compile(r"(?:\bno|\bwithout|\bavoid) ([a-z][a-z\s]*)")


def _dedupe(items) -> List[str]:
    out: List[str] = []
    for item in items or []:
        if item and item not in out:
            out.append(item)
    return out


def _match_all(text: str, vocab: Dict[str, List[str]]) -> List[str]:
    return [key for key, variants in vocab.items() if any(v in text for v in variants)]


def _match_first(text: str, vocab: Dict[str, List[str]]) -> Optional[str]:
    hits = _match_all(text, vocab)
    return hits[0] if hits else None


def _match_threshold(text: str, table) -> Optional[int]:
    for terms, value in table:
        if any(t in text for t in terms):
            return value
    return None


def calorie_range_for(target) -> Optional[NumericRange]:
    try:
        value = float(target)
    except (TypeError, ValueError):
        return None
    if value <= 0:
        return None
    tolerance = max(25.0, round(value * 0.1))
    return NumericRange(gte=max(0.0, value - tolerance), lte=value + tolerance)


def merge_filters(base: SearchFilters, addition: SearchFilters) -> SearchFilters:
    """Scalars: last writer wins. Lists: order-preserving union."""
    merged = base.model_copy(deep=True)
    for field in ("diet_tags", "include_ingredients", "exclude_ingredients"):
        setattr(merged, field, _dedupe([*getattr(base, field), *getattr(addition, field)]))
    for field in (
        "meal_type", "cuisine", "max_total_time_min", "calories_range", "protein_g_range",
        "goal_fit", "activity_fit", "macro_focus", "text", "query_vector",
    ):
        value = getattr(addition, field)
        if value not in (None, "", []):
            setattr(merged, field, value)
    return merged


def _null(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip().lower() in ("", "null", "none"))


def _range_from(value) -> Optional[NumericRange]:
    if not isinstance(value, dict):
        return None
    out = {}
    for key in ("gte", "lte"):
        try:
            if not _null(value.get(key)):
                out[key] = float(value[key])
        except (TypeError, ValueError):
            continue
    rng = NumericRange(**out)
    return None if rng.is_empty() else rng


def filters_from_llm(data: Dict[str, Any]) -> SearchFilters:
    """Coerce a loosely shaped LLM filter object into SearchFilters."""
    meal_type = data.get("meal_type")
    meal_type = str(meal_type).lower() if not _null(meal_type) else None
    if meal_type not in MEAL_TYPES:
        meal_type = None

    max_time = None
    for key in ("max_total_time_min", "max_prep_time_minutes"):
        try:
            if not _null(data.get(key)):
                max_time = float(data[key])
                break
        except (TypeError, ValueError):
            continue

    calories = _range_from(data.get("calories_range")) or calorie_range_for(data.get("calorie_target"))

    def _text(key):
        value = data.get(key)
        return None if _null(value) else str(value).strip().lower()

    return SearchFilters(
        meal_type=meal_type,
        diet_tags=[t.replace(" ", "_").replace("-", "_") for t in split_csv(data.get("diet_tags") or data.get("dietary_tags"))],
        include_ingredients=[t.lower() for t in split_csv(data.get("include_ingredients"))],
        exclude_ingredients=[t.lower() for t in split_csv(data.get("exclude_ingredients"))],
        cuisine=normalize_cuisine(_text("cuisine")),
        max_total_time_min=max_time,
        calories_range=calories,
        protein_g_range=_range_from(data.get("protein_g_range")),
        goal_fit=_text("goal_fit"),
        activity_fit=_text("activity_fit"),
        macro_focus=_text("macro_focus"),
        text=None if _null(data.get("text")) else str(data["text"]).strip(),
    )


def parse_deterministic(query: Optional[str], base: Optional[SearchFilters] = None) -> Tuple[SearchFilters, float]:
    """Keyword matching over free text. Returns (filters, confidence)."""
    base = base or SearchFilters()
    text = (query or "").lower().strip()
    if not text:
        return base.model_copy(deep=True), 0.35

    diet_tags = _match_all(text, DIET_KEYWORDS)
    meal_type = _match_first(text, MEAL_TYPE_KEYWORDS)
    cuisine = _match_first(text, CUISINE_KEYWORDS)
    macro_focus = _match_first(text, MACRO_KEYWORDS)
    max_time = _match_threshold(text, SPEED_KEYWORDS)
    calorie_target = _match_threshold(text, CALORIE_KEYWORDS)

    excludes: List[str] = []
    for phrase in _EXCLUSION_RE.findall(text):
        cleaned = re.split(r"\b(?:but|with|please)\b", phrase)[0].strip()
        if not cleaned:
            continue
        hits = _match_all(cleaned, INGREDIENT_ALIASES)
        excludes.extend(hits or [cleaned.split(" ")[0]])

    # an ingredient only mentioned as an exclusion is not an include
    includes = [i for i in _match_all(text, INGREDIENT_ALIASES) if i not in excludes]

    confidence = 0.5
    if diet_tags:
        confidence += 0.15
    if meal_type:
        confidence += 0.1
    if cuisine:
        confidence += 0.1
    if includes:
        confidence += 0.05
    if excludes:
        confidence += 0.05
    if max_time:
        confidence += 0.05
    if macro_focus:
        confidence += 0.05

    addition = SearchFilters(
        meal_type=meal_type,
        diet_tags=diet_tags,
        include_ingredients=includes,
        exclude_ingredients=excludes,
        cuisine=cuisine,
        max_total_time_min=max_time,
        calories_range=calorie_range_for(calorie_target),
        macro_focus=macro_focus,
        text=query.strip(),
    )
    return merge_filters(base, addition), min(confidence, 0.95)


def diet_tags_for(diet_type: Optional[str]) -> List[str]:
    diet = (diet_type or "").strip().lower()
    if diet in NO_DIET:
        return []
    matched = _match_all(diet, DIET_KEYWORDS)
    return matched or [diet.replace(" ", "_").replace("-", "_")]


class FilterBuilder:
    """
    Produces one SearchFilters per (meal type, preferences).

    The LLM synthesis pass is the primary path; keyword parsing of the notes
    is the fallback and is always computed first so the LLM has something to
    build on and we have something to return when it fails.
    """

    def __init__(self, settings: Settings, llm=None):
        self.settings = settings
        self.llm = llm
        self.threshold = settings.filter_confidence_threshold

    def preference_filters(self, meal_type: str, prefs: UserPreferences) -> SearchFilters:
        return SearchFilters(
            meal_type=meal_type,
            diet_tags=diet_tags_for(prefs.diet_type),
            include_ingredients=list(prefs.include_ingredients),
            exclude_ingredients=prefs.raw_exclusions(),
            cuisine=normalize_cuisine(prefs.cuisine),
            goal_fit=(prefs.goals or "").strip().lower() or None,
            activity_fit=(prefs.activity_level or "").strip().lower() or None,
        )

    def deterministic(self, meal_type: str, prefs: UserPreferences) -> SearchFilters:
        notes = prefs.notes_text()
        filters, confidence = parse_deterministic(notes, self.preference_filters(meal_type, prefs))

        if confidence < self.threshold and notes and self.llm is not None:
            mapped = self.map_free_text(notes, filters)
            if mapped is not None:
                filters = merge_filters(filters, mapped)
        return filters

    def map_free_text(self, query: str, partial: SearchFilters) -> Optional[SearchFilters]:
        try:
            raw = self.llm.complete(
                prompts.free_text_filter_prompt(query, partial.describe()),
                temperature=0.3,
                response_format="json",
            )
            return filters_from_llm(parse_llm_object(raw))
        except Exception as e:
            logger.warning("Free-text filter mapping failed; keeping keyword filters: %s", e)
            return None

    def synthesize(self, meal_type: str, prefs: UserPreferences) -> Optional[SearchFilters]:
        if self.llm is None:
            return None
        try:
            raw = self.llm.complete(
                prompts.filter_synthesis_prompt(meal_type, prefs),
                temperature=0.0,
                response_format="json",
            )
            return filters_from_llm(parse_llm_object(raw))
        except Exception as e:
            logger.warning("Filter synthesis failed for %s; using keyword filters: %s", meal_type, e)
            return None

    def build(self, meal_type: str, prefs: UserPreferences) -> SearchFilters:
        filters = self.deterministic(meal_type, prefs)

        synthesized = self.synthesize(meal_type, prefs)
        if synthesized is not None:
            filters = merge_filters(filters, synthesized)

        # the slot being planned always wins over anything parsed from text
        filters.meal_type = meal_type
        filters.cuisine = normalize_cuisine(filters.cuisine)
        filters.exclude_ingredients = expand_exclusions(
            [*filters.exclude_ingredients, *prefs.raw_exclusions(), *diet_exclusions(prefs.diet_type)]
        )
        filters.include_ingredients = [
            i for i in filters.include_ingredients
            if not any(ex in i for ex in filters.exclude_ingredients)
        ]
        if filters.macro_focus == "high_protein" and filters.protein_g_range is None:
            filters.protein_g_range = NumericRange(gte=20)

        logger.debug("Filters for %s: %s", meal_type, filters.describe())
        return filters
