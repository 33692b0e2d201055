"""
Helpers for pulling JSON out of free-form model completions
"""
from typing import Any
import json
import re

# Only a fence wrapping the whole reply; fences inside JSON strings stay put
_FENCE = re.compile(r"^```(?:json|JSON)?[ \t]*\n(.*)```\s*$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Return the body of a fence that wraps the entire text, or the text itself"""
    stripped = (text or "").strip()
    match = _FENCE.match(stripped)
    return match.group(1).strip() if match else stripped


def extract_json(text: str, opener: str = "{") -> Any:
    """
    Extract a single JSON value from an LLM response.

    Tries the raw reply first, then the reply with a wrapping fence removed,
    then the outermost `opener ... closer` slice.

    Raises:
        ValueError: no parseable JSON of the requested kind
    """
    closer = "}" if opener == "{" else "]"
    raw = (text or "").strip()
    candidates = [raw]
    body = strip_code_fences(raw)
    if body != raw:
        candidates.append(body)

    for candidate in candidates:
        try:
            value = json.loads(candidate)
            break
        except json.JSONDecodeError:
            continue
    else:
        start = raw.find(opener)
        end = raw.rfind(closer) + 1
        if start == -1 or end <= start:
            raise ValueError(f"No JSON found in model response: {raw[:200]}")
        try:
            value = json.loads(raw[start:end])
        except json.JSONDecodeError as e:
            raise ValueError(f"Could not parse JSON from model response: {e}") from e

    expected = dict if opener == "{" else list
    if not isinstance(value, expected):
        raise ValueError(f"Expected a JSON {expected.__name__}, got {type(value).__name__}")
    return value
