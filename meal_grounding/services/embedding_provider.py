# meal_grounding/services/embedding_provider.py
from typing import Callable, List, Optional, Tuple
import requests
from openai import OpenAI

from meal_grounding.config import Settings
from meal_grounding.logging_utils import get_logger

logger = get_logger(__name__)

NOMIC_URL = "https://api-atlas.nomic.ai/v1/embedding/text"


class EmbeddingProvider:
    """
    Turns query text into a vector of settings.vector_dim floats.

    Providers are tried in a fixed order (Nomic, OpenAI, local Ollama-style
    endpoint). Each one is skipped when it is not configured, and any failure
    or wrong-sized vector just moves on to the next. embed() never raises.
    """

    def __init__(self, settings: Settings, openai_client: Optional[OpenAI] = None, session=None):
        self.settings = settings
        self.dim = settings.vector_dim
        self.session = session or requests.Session()
        self._openai = openai_client

    def _providers(self) -> List[Tuple[str, Callable[[str], Optional[List[float]]]]]:
        providers = []
        if self.settings.nomic_api_key:
            providers.append(("nomic", self._embed_nomic))
        if self.settings.openai_api_key:
            providers.append(("openai", self._embed_openai))
        if self.settings.embedding_host:
            providers.append(("local", self._embed_local))
        return providers

    def embed(self, text: str) -> Optional[List[float]]:
        if not text or not text.strip():
            return None

        for name, fn in self._providers():
            try:
                vec = fn(text)
            except Exception as e:
                logger.warning("%s query embedding failed: %s", name, e)
                continue

            if not vec:
                logger.warning("%s query embedding empty or missing", name)
                continue
            if len(vec) != self.dim:
                logger.warning(
                    "%s returned a %d-dim vector, index expects %d; discarding",
                    name, len(vec), self.dim,
                )
                continue

            logger.debug("%s query embedding ok (dim=%d)", name, len(vec))
            return [float(x) for x in vec]

        logger.info("No embedding provider produced a vector; falling back to scalar search")
        return None

    # ---------- providers ----------

    def _embed_nomic(self, text: str) -> Optional[List[float]]:
        resp = self.session.post(
            NOMIC_URL,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.settings.nomic_api_key}",
            },
            json={
                "model": self.settings.nomic_embed_model,
                "texts": [text],
                "task_type": "search_query",
                "dimensionality": self.dim,
            },
            timeout=self.settings.http_timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        embeddings = data.get("embeddings") or []
        if embeddings:
            return embeddings[0]
        rows = data.get("data") or []
        return rows[0].get("embedding") if rows else None

    def _embed_openai(self, text: str) -> Optional[List[float]]:
        if self._openai is None:
            kwargs = {"api_key": self.settings.openai_api_key}
            if self.settings.openai_base_url:
                kwargs["base_url"] = self.settings.openai_base_url
            self._openai = OpenAI(**kwargs)
        resp = self._openai.embeddings.create(
            model=self.settings.openai_embed_model,
            input=text,
            dimensions=self.dim,
        )
        return resp.data[0].embedding

    def _embed_local(self, text: str) -> Optional[List[float]]:
        resp = self.session.post(
            f"{self.settings.embedding_host.rstrip('/')}/api/embeddings",
            json={"model": self.settings.embedding_model, "prompt": text},
            timeout=self.settings.http_timeout,
        )
        resp.raise_for_status()
        return resp.json().get("embedding")
