# meal_grounding/services/search_service.py
from typing import Iterable, List, Optional

from meal_grounding.logging_utils import get_logger
from meal_grounding.models.filters import SearchFilters
from meal_grounding.models.plan import UserPreferences
from meal_grounding.models.recipe import Candidate, RecipeDocument, coerce_servings, normalize_cuisine
from meal_grounding.services.exclusions import diet_exclusions, expand_exclusions, filter_candidates
from meal_grounding.services.filter_builder import diet_tags_for
from meal_grounding.services.nutrition import normalize_nutrition

logger = get_logger(__name__)

SYNTHETIC_PREFIX = "synthetic-"


def to_candidate(doc: RecipeDocument) -> Candidate:
    extra = doc.model_extra or {}
    if doc.ingredients_parsed:
        ingredients = [i.name for i in doc.ingredients_parsed if i.name]
    elif doc.ingredients_norm:
        ingredients = list(doc.ingredients_norm)
    else:
        ingredients = [line.strip() for line in doc.ingredients_raw.splitlines() if line.strip()]

    return Candidate(
        id=doc.id,
        title=doc.title.strip(),
        description=doc.description,
        cuisine=doc.cuisine,
        meal_type=doc.meal_type,
        diet_tags=doc.diet_tags,
        total_time_min=doc.total_time_minutes,
        nutrition=normalize_nutrition(doc.nutrition.model_dump(exclude_none=True), extra),
        ingredients=ingredients,
        ingredients_parsed=doc.ingredients_parsed,
        instructions=doc.instruction_steps(),
        allergens=doc.allergens,
        url=doc.url,
        servings=coerce_servings(extra.get("servings"), extra.get("yield"), extra.get("serves")),
        synthetic=doc.id.startswith(SYNTHETIC_PREFIX),
    )


class SearchService:
    """Filters in, normalized candidates out."""

    def __init__(self, index, embedder=None):
        self.index = index
        self.embedder = embedder

    def search(
        self,
        filters: SearchFilters,
        size: int = 20,
        offset: int = 0,
        seed: Optional[int] = None,
    ) -> List[Candidate]:
        filters = filters.model_copy(deep=True)
        filters.exclude_ingredients = expand_exclusions(filters.exclude_ingredients)

        if filters.query_vector is None and filters.text and self.embedder is not None:
            filters.query_vector = self.embedder.embed(filters.text)

        docs = self.index.search_filters(filters, size=size, offset=offset, seed=seed)
        candidates = [to_candidate(d) for d in docs]
        return filter_candidates(candidates, filters.exclude_ingredients)

    def find_alternatives(
        self,
        meal_type: str,
        prefs: UserPreferences,
        exclude_ids: Iterable[str] = (),
        size: int = 3,
    ) -> List[Candidate]:
        """Other recipes for one meal slot, skipping the ids already shown."""
        skip = {str(i) for i in exclude_ids if i}
        filters = SearchFilters(
            meal_type=meal_type,
            diet_tags=diet_tags_for(prefs.diet_type),
            exclude_ingredients=[*prefs.raw_exclusions(), *diet_exclusions(prefs.diet_type)],
            cuisine=normalize_cuisine(prefs.cuisine),
        )

        def _pick(hits: List[Candidate]) -> List[Candidate]:
            out = []
            for hit in hits:
                if hit.id in skip or not hit.is_usable():
                    continue
                out.append(hit)
                skip.add(hit.id)
                if len(out) >= size:
                    break
            return out

        picked = _pick(self.search(filters, size=max(size * 3, 12)))
        if not picked and filters.cuisine:
            logger.info("No alternatives for %s in %s cuisine; widening", meal_type, filters.cuisine)
            filters.cuisine = None
            picked = _pick(self.search(filters, size=max(size * 3, 12)))
        return picked
