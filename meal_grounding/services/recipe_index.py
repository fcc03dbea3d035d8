# meal_grounding/services/recipe_index.py
import json
import math
import random
from typing import Any, Dict, List, Optional

from meal_grounding.config import Settings
from meal_grounding.errors import IndexUnavailableError
from meal_grounding.logging_utils import get_logger
from meal_grounding.models.filters import NumericRange, SearchFilters
from meal_grounding.models.recipe import RecipeDocument, normalize_cuisine, split_csv
from meal_grounding.services.exclusions import document_haystack, expand_exclusions, violates
from meal_grounding.services.nutrition import normalize_nutrition
from meal_grounding.services.pinecone_client import get_pinecone_index

logger = get_logger(__name__)

MAX_TOP_K = 1000

# flattened metadata fields copied as-is when there is no payload
_PLAIN_FIELDS = (
    "title", "description", "cuisine", "meal_type", "diet_tags", "ingredients_norm",
    "allergens", "ingredients_raw", "url", "goal_fit", "activity_fit", "difficulty",
    "course", "servings", "image",
)


def _get(obj: Any, key: str, default=None):
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _range_clause(field: str, rng: Optional[NumericRange]) -> Optional[Dict]:
    if rng is None or rng.is_empty():
        return None
    cond = {}
    if rng.gte is not None:
        cond["$gte"] = rng.gte
    if rng.lte is not None:
        cond["$lte"] = rng.lte
    return {field: cond}


def build_filter_expression(filters: SearchFilters) -> Dict[str, Any]:
    """
    Translate SearchFilters into a Pinecone metadata filter.

    Exclusions are not part of the expression; apply_post_excludes() handles
    them after retrieval.
    """
    clauses: List[Dict[str, Any]] = []

    diet_tags = [t.lower() for t in filters.diet_tags if t]
    if diet_tags:
        clauses.append({"diet_tags": {"$in": diet_tags}})

    if filters.meal_type:
        clauses.append({"meal_type": {"$in": [filters.meal_type.lower()]}})

    cuisine = normalize_cuisine(filters.cuisine)
    if cuisine:
        clauses.append({"cuisine": {"$eq": cuisine}})

    if filters.max_total_time_min:
        clauses.append({"total_time_minutes": {"$lte": float(filters.max_total_time_min)}})

    for clause in (
        _range_clause("calories", filters.calories_range),
        _range_clause("protein_g", filters.protein_g_range),
    ):
        if clause:
            clauses.append(clause)

    anchor = filters.anchor_ingredient
    if anchor:
        clauses.append({"ingredients_norm": {"$in": [anchor.lower()]}})

    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def rehydrate_doc(recipe_id: str, metadata: Optional[Dict[str, Any]]) -> RecipeDocument:
    """Rebuild a RecipeDocument from its serialized payload, or from flattened fields."""
    metadata = metadata or {}

    payload = metadata.get("payload")
    if payload:
        try:
            obj = json.loads(payload) if isinstance(payload, str) else payload
            if isinstance(obj, dict):
                obj = dict(obj)
                obj["id"] = recipe_id
                if not obj.get("ingredients_raw") and obj.get("ingredients"):
                    obj["ingredients_raw"] = obj["ingredients"]
                obj["nutrition"] = normalize_nutrition(obj.get("nutrition"), obj).model_dump()
                return RecipeDocument.model_validate(obj)
        except (ValueError, TypeError) as e:
            logger.debug("Bad payload on %s, rebuilding from fields: %s", recipe_id, e)

    doc: Dict[str, Any] = {"id": recipe_id}
    for field in _PLAIN_FIELDS:
        if metadata.get(field) is not None:
            doc[field] = metadata[field]

    if metadata.get("ner") and not doc.get("ingredients_norm"):
        doc["ingredients_norm"] = split_csv(metadata["ner"])
    doc["instructions"] = metadata.get("instructions") or metadata.get("directions")
    doc["url"] = doc.get("url") or metadata.get("link")

    for key in ("total_time_minutes", "total_time_min"):
        if metadata.get(key) is not None:
            doc["total_time_minutes"] = metadata[key]
            break

    if metadata.get("ingredients_parsed_json"):
        try:
            doc["ingredients_parsed"] = json.loads(metadata["ingredients_parsed_json"])
        except ValueError:
            pass

    doc["nutrition"] = normalize_nutrition(metadata).model_dump()
    return RecipeDocument.model_validate(doc)


def apply_post_excludes(docs: List[RecipeDocument], excludes: List[str]) -> List[RecipeDocument]:
    terms = expand_exclusions(excludes)
    if not terms:
        return docs
    kept = [d for d in docs if not violates(document_haystack(d), terms)]
    if len(kept) != len(docs):
        logger.debug("Exclusion post-filter dropped %d of %d docs", len(docs) - len(kept), len(docs))
    return kept


def _boost_score(doc: RecipeDocument, filters: SearchFilters) -> int:
    score = 0
    text = document_haystack(doc)
    for term in filters.boost_ingredients:
        if term and term.lower() in text:
            score += 1
    extra = doc.model_extra or {}
    if filters.goal_fit and filters.goal_fit in str(extra.get("goal_fit", "")).lower():
        score += 1
    if filters.activity_fit and filters.activity_fit in str(extra.get("activity_fit", "")).lower():
        score += 1
    return score


def random_unit_vector(dim: int, seed: int) -> List[float]:
    rng = random.Random(seed)
    vec = [rng.gauss(0.0, 1.0) for _ in range(dim)]
    norm = math.sqrt(sum(x * x for x in vec)) or 1.0
    return [x / norm for x in vec]


class RecipeIndex:
    """
    Hybrid vector + metadata recipe store on top of a Pinecone index.

    With a query vector this is a filtered kNN search. Without one, the same
    filter is queried with a seeded random probe vector, which returns a
    seed-dependent sample of the matching recipes.
    """

    def __init__(self, settings: Settings, index=None):
        self.settings = settings
        self.namespace = settings.pinecone_namespace
        self.dim = settings.vector_dim
        self._index = index

    @property
    def index(self):
        if self._index is None:
            self._index = get_pinecone_index(self.settings)
            if self._index is None:
                raise IndexUnavailableError("Pinecone not configured (PINECONE_API_KEY + PINECONE_HOST/INDEX)")
        return self._index

    def search(
        self,
        expr: Dict[str, Any],
        vector: Optional[List[float]],
        size: int = 10,
        offset: int = 0,
        seed: Optional[int] = None,
    ) -> List[RecipeDocument]:
        top_k = min(max(size + offset, 1), MAX_TOP_K)
        if vector is None:
            if seed is None:
                seed = random.randrange(1_000_000_000)
            vector = random_unit_vector(self.dim, seed)

        kwargs = {
            "vector": vector,
            "top_k": top_k,
            "include_metadata": True,
            "namespace": self.namespace,
        }
        if expr:
            kwargs["filter"] = expr

        res = self.index.query(**kwargs)
        matches = _get(res, "matches") or []
        docs = [rehydrate_doc(str(_get(m, "id")), _get(m, "metadata")) for m in matches]
        return docs[offset:offset + size]

    def search_filters(
        self,
        filters: SearchFilters,
        size: int = 10,
        offset: int = 0,
        seed: Optional[int] = None,
    ) -> List[RecipeDocument]:
        expr = build_filter_expression(filters)
        docs = self.search(expr, filters.query_vector, size=size, offset=offset, seed=seed)
        docs = apply_post_excludes(docs, filters.exclude_ingredients)

        if filters.boost_ingredients or filters.goal_fit or filters.activity_fit:
            docs = sorted(docs, key=lambda d: -_boost_score(d, filters))

        logger.info(
            "Index search meal_type=%s vector=%s -> %d docs",
            filters.meal_type, filters.query_vector is not None, len(docs),
        )
        return docs

    def get_by_id(self, recipe_id: str) -> Optional[RecipeDocument]:
        if not recipe_id:
            return None
        res = self.index.fetch(ids=[recipe_id], namespace=self.namespace)
        vectors = _get(res, "vectors") or {}
        hit = vectors.get(recipe_id)
        if hit is None:
            return None
        return rehydrate_doc(recipe_id, _get(hit, "metadata"))
