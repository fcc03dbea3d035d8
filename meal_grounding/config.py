# meal_grounding/config.py
import os
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw not in (None, "") else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    try:
        return float(raw) if raw not in (None, "") else default
    except ValueError:
        return default


class Settings(BaseModel):
    """
    Everything the planner needs to talk to its collaborators.
    Built once per process (or per test) and passed into each service.
    """

    # LLM (any OpenAI-compatible endpoint, e.g. Groq via openai_base_url)
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    chat_model: str = "gpt-4o-mini"

    # Embedding providers, tried in this order: Nomic -> OpenAI -> local
    nomic_api_key: Optional[str] = None
    nomic_embed_model: str = "nomic-embed-text-v1.5"
    openai_embed_model: str = "text-embedding-3-small"
    embedding_host: Optional[str] = None
    embedding_model: str = "nomic-embed-text"
    vector_dim: int = 768

    # Pinecone
    pinecone_api_key: Optional[str] = None
    pinecone_host: Optional[str] = None
    pinecone_index: Optional[str] = None
    pinecone_namespace: str = "recipes"

    # Planning knobs
    candidate_pool_size: int = 24
    synthetic_batch_size: int = 10
    backfill_batch_size: int = 4
    filter_confidence_threshold: float = 0.75
    day_temperature: float = 0.8
    prompt_candidates_per_meal: int = 20

    http_timeout: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(override=True)
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            chat_model=os.getenv("CHAT_MODEL", "gpt-4o-mini"),
            nomic_api_key=os.getenv("NOMIC_API_KEY"),
            nomic_embed_model=os.getenv("NOMIC_EMBED_MODEL", "nomic-embed-text-v1.5"),
            openai_embed_model=os.getenv("OPENAI_EMBED_MODEL", "text-embedding-3-small"),
            embedding_host=os.getenv("EMBEDDING_HOST"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "nomic-embed-text"),
            vector_dim=_env_int("VECTOR_DIM", 768),
            pinecone_api_key=os.getenv("PINECONE_API_KEY"),
            pinecone_host=os.getenv("PINECONE_HOST"),
            pinecone_index=os.getenv("PINECONE_INDEX"),
            pinecone_namespace=os.getenv("PINECONE_NAMESPACE", "recipes"),
            candidate_pool_size=_env_int("CANDIDATE_POOL_SIZE", 24),
            synthetic_batch_size=_env_int("SYNTHETIC_BATCH_SIZE", 10),
            backfill_batch_size=_env_int("BACKFILL_BATCH_SIZE", 4),
            filter_confidence_threshold=_env_float("FILTER_CONFIDENCE_THRESHOLD", 0.75),
            day_temperature=_env_float("DAY_TEMPERATURE", 0.8),
            http_timeout=_env_float("HTTP_TIMEOUT", 30.0),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
