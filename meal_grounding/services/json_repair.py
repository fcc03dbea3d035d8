# meal_grounding/services/json_repair.py
import json
import re
from typing import Any, Optional

from meal_grounding.errors import LLMResponseError

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")
_BLOCK_COMMENT_RE = re.compile(r"/\*[\s\S]*?\*/")
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")


def _strip_line_comments(text: str) -> str:
    """Drop // comments that sit outside of string literals."""
    out = []
    in_string = False
    escaped = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
            continue
        if ch == "/" and i + 1 < len(text) and text[i + 1] == "/":
            while i < len(text) and text[i] != "\n":
                i += 1
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def clean_json_text(text: str) -> str:
    """Remove markdown fences, comments and trailing commas."""
    cleaned = (text or "").strip()
    fence = _FENCE_RE.search(cleaned)
    if fence:
        cleaned = fence.group(1)
    cleaned = _BLOCK_COMMENT_RE.sub("", cleaned)
    cleaned = _strip_line_comments(cleaned)
    cleaned = _TRAILING_COMMA_RE.sub(r"\1", cleaned)
    return cleaned.strip()


def first_json_block(text: str) -> Optional[str]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def parse_llm_json(text: str) -> Any:
    """
    Tolerant parser for model output.

    Tries the cleaned text first, then the first {...} block of it.
    Raises LLMResponseError when neither parses.
    """
    if not text or not text.strip():
        raise LLMResponseError("empty LLM response", raw=text or "")

    cleaned = clean_json_text(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    block = first_json_block(cleaned) or first_json_block(text)
    if block:
        try:
            return json.loads(_TRAILING_COMMA_RE.sub(r"\1", block))
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"unparseable JSON block: {e}", raw=text) from e

    raise LLMResponseError("no JSON object found in LLM response", raw=text)


def parse_llm_object(text: str) -> dict:
    data = parse_llm_json(text)
    if not isinstance(data, dict):
        raise LLMResponseError(f"expected a JSON object, got {type(data).__name__}", raw=text)
    return data
