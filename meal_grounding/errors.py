# meal_grounding/errors.py


class MealGroundingError(Exception):
    """Base class for errors raised inside the planning pipeline."""


class LLMResponseError(MealGroundingError, ValueError):
    """The model answered, but not with JSON we could recover."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class IndexUnavailableError(MealGroundingError):
    """Pinecone is not configured or could not be reached."""
