# meal_grounding/services/llm_client.py
from typing import Optional
from openai import OpenAI

from meal_grounding.config import Settings
from meal_grounding.logging_utils import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a meal planning system that MUST stay grounded in the recipes you are given. "
    "Answer in English. When JSON is requested, return JSON only."
)


class LLMClient:
    """Thin wrapper over an OpenAI-compatible chat completions endpoint."""

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        self.settings = settings
        self.model = settings.chat_model
        if client is None:
            kwargs = {"api_key": settings.openai_api_key}
            if settings.openai_base_url:
                kwargs["base_url"] = settings.openai_base_url
            client = OpenAI(**kwargs)
        self.client = client

    def complete(self, prompt: str, temperature: float = 0.2, response_format: Optional[str] = None) -> str:
        kwargs = {
            "model": self.model,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        resp = self.client.chat.completions.create(**kwargs)
        text = resp.choices[0].message.content or ""
        logger.debug("LLM responded (%d chars, temperature=%.2f)", len(text), temperature)
        return text
