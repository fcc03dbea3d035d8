# meal_grounding/models/filters.py
from typing import List, Optional
from pydantic import BaseModel, Field


class NumericRange(BaseModel):
    gte: Optional[float] = None
    lte: Optional[float] = None

    def is_empty(self) -> bool:
        return self.gte is None and self.lte is None


class SearchFilters(BaseModel):
    """Per-query search filters. Built for one (day, meal type) and thrown away."""

    meal_type: Optional[str] = None
    diet_tags: List[str] = Field(default_factory=list)
    # first entry is the anchor (required), the rest only boost ranking
    include_ingredients: List[str] = Field(default_factory=list)
    exclude_ingredients: List[str] = Field(default_factory=list)
    cuisine: Optional[str] = None
    max_total_time_min: Optional[float] = None
    calories_range: Optional[NumericRange] = None
    protein_g_range: Optional[NumericRange] = None
    goal_fit: Optional[str] = None
    activity_fit: Optional[str] = None
    macro_focus: Optional[str] = None
    text: Optional[str] = None
    query_vector: Optional[List[float]] = None

    @property
    def anchor_ingredient(self) -> Optional[str]:
        return self.include_ingredients[0] if self.include_ingredients else None

    @property
    def boost_ingredients(self) -> List[str]:
        return self.include_ingredients[1:]

    def describe(self) -> dict:
        """Loggable view (vector elided)."""
        data = self.model_dump(exclude_none=True)
        if self.query_vector:
            data["query_vector"] = f"[{len(self.query_vector)} dims]"
        return data
