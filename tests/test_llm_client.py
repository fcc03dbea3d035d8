"""Tests for the chat completions wrapper."""
from types import SimpleNamespace

from meal_grounding.config import Settings
from meal_grounding.services.llm_client import SYSTEM_PROMPT, LLMClient


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(content):
    completions = FakeCompletions(content)
    openai = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMClient(Settings(chat_model="test-model"), client=openai), completions


class TestLLMClient:
    def test_json_mode(self):
        llm, completions = _client('{"ok": true}')
        assert llm.complete("plan", temperature=0.8, response_format="json") == '{"ok": true}'
        assert completions.kwargs["model"] == "test-model"
        assert completions.kwargs["temperature"] == 0.8
        assert completions.kwargs["response_format"] == {"type": "json_object"}
        assert completions.kwargs["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}

    def test_plain_mode_and_empty_content(self):
        llm, completions = _client(None)
        assert llm.complete("hello") == ""
        assert "response_format" not in completions.kwargs
