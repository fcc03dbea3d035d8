"""Tests for the ordered, non-throwing embedding provider chain."""
from types import SimpleNamespace

import requests

from meal_grounding.config import Settings
from meal_grounding.services.embedding_provider import NOMIC_URL, EmbeddingProvider


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append(url)
        response = self.responses.get(url)
        if isinstance(response, Exception):
            raise response
        return response


class FakeOpenAI:
    def __init__(self, vector=None, error=None):
        self.vector = vector
        self.error = error
        self.requests = []
        self.embeddings = SimpleNamespace(create=self._create)

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(data=[SimpleNamespace(embedding=self.vector)])


LOCAL = "http://localhost:11434/api/embeddings"


def _settings(**overrides):
    base = dict(vector_dim=4, nomic_api_key="n-key", openai_api_key="o-key", embedding_host="http://localhost:11434/")
    base.update(overrides)
    return Settings(**base)


class TestEmbeddingProvider:
    def test_empty_text_calls_nothing(self):
        session = FakeSession({})
        provider = EmbeddingProvider(_settings(), openai_client=FakeOpenAI(), session=session)
        assert provider.embed("   ") is None
        assert session.calls == []

    def test_first_provider_wins(self):
        session = FakeSession({NOMIC_URL: FakeResponse({"embeddings": [[0.1, 0.2, 0.3, 0.4]]})})
        openai = FakeOpenAI([9, 9, 9, 9])
        provider = EmbeddingProvider(_settings(), openai_client=openai, session=session)
        assert provider.embed("tofu") == [0.1, 0.2, 0.3, 0.4]
        assert openai.requests == []

    def test_wrong_dimension_moves_on(self):
        session = FakeSession({NOMIC_URL: FakeResponse({"embeddings": [[0.1, 0.2]]})})
        openai = FakeOpenAI([1, 2, 3, 4])
        provider = EmbeddingProvider(_settings(), openai_client=openai, session=session)
        assert provider.embed("tofu") == [1.0, 2.0, 3.0, 4.0]
        assert openai.requests[0]["dimensions"] == 4

    def test_failures_fall_through_to_local(self):
        session = FakeSession({
            NOMIC_URL: FakeResponse({}, status=500),
            LOCAL: FakeResponse({"embedding": [0, 0, 0, 1]}),
        })
        provider = EmbeddingProvider(
            _settings(), openai_client=FakeOpenAI(error=RuntimeError("quota")), session=session,
        )
        assert provider.embed("tofu") == [0.0, 0.0, 0.0, 1.0]
        assert session.calls == [NOMIC_URL, LOCAL]

    def test_all_fail_returns_none(self):
        session = FakeSession({NOMIC_URL: requests.ConnectionError("offline"), LOCAL: FakeResponse({})})
        provider = EmbeddingProvider(
            _settings(), openai_client=FakeOpenAI(error=RuntimeError("quota")), session=session,
        )
        assert provider.embed("tofu") is None

    def test_unconfigured_providers_skipped(self):
        session = FakeSession({})
        provider = EmbeddingProvider(Settings(vector_dim=4), session=session)
        assert provider.embed("tofu") is None
        assert session.calls == []
