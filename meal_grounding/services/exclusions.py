# meal_grounding/services/exclusions.py
from typing import Dict, Iterable, List

# An excluded term that names a family is widened to every member.
SYNONYM_FAMILIES: Dict[str, List[str]] = {
    "pork": [
        "pork", "ham", "bacon", "sausage", "prosciutto", "chorizo", "lard",
        "pancetta", "salami", "pepperoni", "guanciale", "speck",
    ],
    "shellfish": [
        "shellfish", "shrimp", "prawn", "crab", "lobster", "clam", "mussel",
        "oyster", "scallop", "crawfish", "langoustine",
    ],
    "potato": ["potato", "potatoes", "fries", "hash brown", "tater tot", "gnocchi"],
    "peanut": ["peanut", "groundnut", "satay"],
    "dairy": [
        "dairy", "milk", "cheese", "butter", "cream", "yogurt", "yoghurt",
        "ghee", "whey", "casein", "paneer", "ricotta", "feta", "halloumi",
        "mozzarella", "parmesan", "tzatziki",
    ],
    "egg": ["egg", "mayonnaise", "meringue", "aioli"],
    "gluten": ["gluten", "wheat", "flour", "bread", "pasta", "barley", "rye", "couscous", "bulgur", "farro", "seitan"],
    "fish": [
        "fish", "salmon", "tuna", "cod", "anchovy", "sardine", "trout",
        "tilapia", "halibut", "mackerel", "haddock", "fish sauce",
    ],
    "meat": [
        "meat", "beef", "steak", "chicken", "lamb", "turkey", "veal", "duck",
        "goat", "venison", "mince", "pork", "ham", "bacon", "sausage",
        "prosciutto", "chorizo", "lard", "pancetta", "gelatin",
    ],
}

FAMILY_ALIASES = {
    "peanuts": "peanut",
    "potatoes": "potato",
    "eggs": "egg",
    "seafood": "shellfish",
    "shrimps": "shellfish",
    "lactose": "dairy",
    "milk": "dairy",
}

DIET_EXCLUSIONS: Dict[str, List[str]] = {
    "vegan": ["meat", "fish", "shellfish", "dairy", "egg", "honey"],
    "vegetarian": ["meat", "fish", "shellfish"],
    "pescatarian": ["meat"],
    "dairy_free": ["dairy"],
    "gluten_free": ["gluten"],
}


def _clean(term) -> str:
    return " ".join(str(term or "").lower().split())


def family_for(term: str):
    t = _clean(term)
    if t in SYNONYM_FAMILIES:
        return t
    return FAMILY_ALIASES.get(t)


def expand_exclusions(terms: Iterable[str]) -> List[str]:
    """Lowercase, dedupe (order-preserving) and widen family names to their members."""
    out: List[str] = []
    for term in terms or []:
        t = _clean(term)
        if not t or t == "null":
            continue
        family = family_for(t)
        members = SYNONYM_FAMILIES[family] if family else [t]
        for m in [t, *members]:
            if m not in out:
                out.append(m)
    return out


def diet_exclusions(diet_type) -> List[str]:
    diet = _clean(diet_type).replace("-", "_").replace(" ", "_")
    for key, families in DIET_EXCLUSIONS.items():
        if key in diet:
            return expand_exclusions(families)
    return []


def haystack_for(*parts) -> str:
    """Flatten strings/lists of strings into one lowercase search text."""
    chunks: List[str] = []
    for part in parts:
        if not part:
            continue
        if isinstance(part, str):
            chunks.append(part)
        else:
            chunks.extend(str(p) for p in part if p)
    return " ".join(chunks).lower()


def violates(haystack: str, excludes: Iterable[str]) -> bool:
    # naive substring containment: "potato" also blocks "sweet potato"
    return any(term and term in haystack for term in excludes)


def candidate_haystack(candidate) -> str:
    return haystack_for(
        candidate.title,
        candidate.ingredients,
        [i.name for i in candidate.ingredients_parsed],
        candidate.allergens,
    )


def document_haystack(doc) -> str:
    return haystack_for(
        doc.title,
        doc.ingredients_norm,
        doc.ingredients_raw,
        [i.name for i in doc.ingredients_parsed],
        doc.allergens,
    )


def filter_candidates(candidates, excludes: Iterable[str]) -> list:
    terms = expand_exclusions(excludes)
    if not terms:
        return list(candidates)
    return [c for c in candidates if not violates(candidate_haystack(c), terms)]
