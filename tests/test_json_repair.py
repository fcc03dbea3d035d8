"""Tests for tolerant LLM JSON parsing."""
import pytest

from meal_grounding.errors import LLMResponseError
from meal_grounding.services.json_repair import clean_json_text, parse_llm_json, parse_llm_object


class TestParseLlmJson:
    def test_plain_json(self):
        assert parse_llm_json('{"a": 1}') == {"a": 1}

    def test_markdown_fence(self):
        text = 'Here you go:\n```json\n{"meals": []}\n```'
        assert parse_llm_json(text) == {"meals": []}

    def test_comments_and_trailing_commas(self):
        text = """{
            // the chosen recipe
            "recipeId": "r-1", /* picked from the list */
            "tags": ["quick", "easy",],
        }"""
        assert parse_llm_json(text) == {"recipeId": "r-1", "tags": ["quick", "easy"]}

    def test_double_slash_inside_string_is_kept(self):
        assert parse_llm_json('{"url": "https://example.com/x"}') == {"url": "https://example.com/x"}

    def test_first_block_retry_with_prose_around(self):
        text = 'Sure! {"replacements": []} Hope that helps.'
        assert parse_llm_json(text) == {"replacements": []}

    def test_invalid_json_raises(self):
        with pytest.raises(LLMResponseError):
            parse_llm_json("{invalid json,,}")

    def test_empty_raises(self):
        with pytest.raises(LLMResponseError):
            parse_llm_json("   ")

    def test_error_is_also_value_error(self):
        with pytest.raises(ValueError):
            parse_llm_json("no json here")


class TestParseLlmObject:
    def test_rejects_arrays(self):
        with pytest.raises(LLMResponseError):
            parse_llm_object("[1, 2]")

    def test_clean_keeps_valid_text(self):
        assert clean_json_text('{"a": [1, 2]}') == '{"a": [1, 2]}'
