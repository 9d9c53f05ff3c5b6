# src/llm/parsing.py - v1
"""Helpers for turning raw model text into structured values."""

from __future__ import annotations

import json
import re
from typing import Any

from ceremonykit.llm.errors import MalformedResponseError

_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?(.*?)\r?\n?[ \t]*```$", re.DOTALL)


def is_code_fenced(text: str) -> bool:
    """True when the whole (stripped) text is wrapped in a ``` fence."""
    return _FENCE_RE.match(text.strip()) is not None


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json / ``` fence, if any."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_json_response(text: str) -> Any:
    """Parse model output as JSON after fence stripping.

    Raises:
        MalformedResponseError: If the text is not valid JSON.
    """
    cleaned = strip_code_fence(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"Failed to parse JSON response: {e}", raw_text=text
        ) from e
