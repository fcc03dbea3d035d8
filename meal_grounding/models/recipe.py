# meal_grounding/models/recipe.py
import math
import re
from typing import Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")


def split_csv(value: Any) -> List[str]:
    """Accepts a list, a comma-joined string or None and returns a clean list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


def normalize_cuisine(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text or text == "null":
        return None
    return "_".join(text.split())


_NUM_RE = re.compile(r"\d+(?:\.\d+)?")


def coerce_servings(*values: Any) -> int:
    """First positive number among the values, rounded; 1 when there is none."""
    for value in values:
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            num = float(value)
        else:
            match = _NUM_RE.search(str(value))
            if not match:
                continue
            num = float(match.group(0))
        if math.isfinite(num) and num > 0:
            return max(1, int(math.floor(num + 0.5)))
    return 1


class Nutrition(BaseModel):
    calories: Optional[float] = None
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None
    fiber_g: Optional[float] = None
    sugar_g: Optional[float] = None


class ParsedIngredient(BaseModel):
    name: str = ""
    amount: Optional[str] = None
    unit: Optional[str] = None
    category: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, v):
        if v is None:
            return None
        return str(v)


class RecipeDocument(BaseModel):
    """One entity of the recipe index, as rehydrated from Pinecone."""

    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    description: str = ""
    cuisine: Optional[str] = None
    meal_type: List[str] = Field(default_factory=list)
    diet_tags: List[str] = Field(default_factory=list)
    ingredients_raw: str = ""
    ingredients_norm: List[str] = Field(default_factory=list)
    ingredients_parsed: List[ParsedIngredient] = Field(default_factory=list)
    instructions: Union[List[str], str, None] = None
    allergens: List[str] = Field(default_factory=list)
    nutrition: Nutrition = Field(default_factory=Nutrition)
    total_time_minutes: Optional[float] = None
    url: Optional[str] = None
    embedding: Optional[List[float]] = None

    @field_validator("meal_type", "diet_tags", "ingredients_norm", "allergens", mode="before")
    @classmethod
    def _csv_lists(cls, v):
        return [s.lower() for s in split_csv(v)]

    @field_validator("cuisine", mode="before")
    @classmethod
    def _cuisine(cls, v):
        return normalize_cuisine(v)

    @field_validator("ingredients_raw", mode="before")
    @classmethod
    def _raw_text(cls, v):
        if v is None:
            return ""
        if isinstance(v, (list, tuple)):
            return "\n".join(str(i) for i in v)
        return str(v)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _text(cls, v):
        return "" if v is None else str(v)

    def instruction_steps(self) -> List[str]:
        if not self.instructions:
            return []
        if isinstance(self.instructions, str):
            return [line.strip() for line in self.instructions.splitlines() if line.strip()]
        return [str(s).strip() for s in self.instructions if str(s).strip()]

    def has_ingredients(self) -> bool:
        return bool(self.ingredients_parsed or self.ingredients_raw.strip() or self.ingredients_norm)

    def is_usable(self) -> bool:
        return bool(self.title.strip()) and bool(self.instruction_steps()) and self.has_ingredients()


class Candidate(BaseModel):
    """Normalized search hit offered to the LLM for one meal slot."""

    id: str
    title: str
    description: str = ""
    cuisine: Optional[str] = None
    meal_type: List[str] = Field(default_factory=list)
    diet_tags: List[str] = Field(default_factory=list)
    total_time_min: Optional[float] = None
    nutrition: Nutrition = Field(default_factory=Nutrition)
    ingredients: List[str] = Field(default_factory=list)
    ingredients_parsed: List[ParsedIngredient] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    servings: int = 1
    synthetic: bool = False

    def is_usable(self) -> bool:
        has_ingredients = bool(self.ingredients_parsed or self.ingredients)
        return bool(self.title.strip()) and bool(self.instructions) and has_ingredients

    def ingredient_names(self) -> List[str]:
        if self.ingredients_parsed:
            return [i.name for i in self.ingredients_parsed if i.name]
        return list(self.ingredients)
