"""
Response-shape repair for model output.

Models asked for "JSON only" still wrap it in ```json fences or add a sentence
before/after. Before parsing we strip fences and cut out the first balanced
{...} block. Brace matching is string-aware so braces inside quoted values
(e.g. a body text containing "{street}") do not end the block early.
"""
import json
import re
from typing import Any, Optional

_FENCE_OPEN = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE_OPEN.sub("", text).replace("```", "").strip()


def extract_first_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} substring, or None.

    Example:
        >>> extract_first_json_object('Sure! {"a": {"b": "}"}} hope that helps')
        '{"a": {"b": "}"}}'
    """
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    # Truncated: the outermost object never closed
    return None


def parse_json_object(text: Optional[str]) -> dict[str, Any]:
    """
    Repair and parse a model response into a JSON object.

    Raises:
        ValueError: No JSON object could be recovered (json.JSONDecodeError is a
            ValueError subclass, so callers catch one type)
    """
    if text is None:
        raise ValueError("Response text is None")
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        block = extract_first_json_object(cleaned)
        if block is None:
            raise ValueError("No JSON object found in response")
        parsed = json.loads(block)
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected JSON object, got {type(parsed).__name__}")
    return parsed
