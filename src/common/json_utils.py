"""
JSON Utilities for LLM Response Parsing.

Generated segments come back as text that should hold one JSON object but
may be wrapped in a markdown fence, surrounded by prose, or slightly
malformed (single quotes, trailing commas, unquoted keys). json-repair is
used when json.loads() fails.
"""

import json
import re
from typing import Any, Dict

from json_repair import repair_json


def parse_llm_json(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object from an LLM response.

    Args:
        text: Raw response text

    Returns:
        The parsed object

    Raises:
        ValueError: If no JSON object can be extracted or repaired

    Example:
        >>> parse_llm_json('```json\\n{"hero": {}}\\n```')
        {'hero': {}}
        >>> parse_llm_json("{'name': 'Jane',}")
        {'name': 'Jane'}
    """
    if not text or not text.strip():
        raise ValueError("Empty input: no JSON content to parse")

    json_str = _extract_json_object(_strip_markdown_blocks(text.strip()))

    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError:
        parsed = repair_json(json_str, return_objects=True)

    # A single object wrapped in brackets is unwrapped
    if isinstance(parsed, list) and len(parsed) == 1:
        parsed = parsed[0]

    if not isinstance(parsed, dict):
        raise ValueError(
            f"Failed to parse or repair JSON object, got {type(parsed).__name__}. "
            f"Original text (first 500 chars): {text[:500]}"
        )
    return parsed


def _strip_markdown_blocks(text: str) -> str:
    """Remove ```json / ``` fences around the payload."""
    result = text
    if result.startswith("```json"):
        result = result[7:]
    elif result.startswith("```"):
        result = result[3:]

    if result.endswith("```"):
        result = result[:-3]

    return result.strip()


def _extract_json_object(text: str) -> str:
    """
    Return the outermost {...} span of text.

    Raises:
        ValueError: If the text holds no object
    """
    text = text.strip()
    if text.startswith("{"):
        return text

    json_match = re.search(r"\{.*\}", text, re.DOTALL)
    if json_match:
        return json_match.group(0)

    raise ValueError(f"No JSON object found in text: {text[:200]}")
