"""Locate a JSON value inside free-form model text."""

from __future__ import annotations

import json
import re
from typing import Any

from llm_switchboard.errors import ExtractionError

__all__ = ["extract_json"]

_FENCE_RE = re.compile(r"```(?:json|JSON)[ \t]*\r?\n?([\s\S]*?)```")
_PREVIEW_CHARS = 80


def _try_load(candidate: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(candidate)
    except json.JSONDecodeError:
        return False, None


def extract_json(text: str) -> Any:
    """
    Return the first JSON value found in *text*.

    Strategies, first success wins:
      1. the whole trimmed text;
      2. a fenced block labelled ``json`` or ``JSON``;
      3. the first balanced ``{...}`` or ``[...]`` (string-aware).

    Raises ExtractionError when none of them yields valid JSON.
    """
    cleaned = (text or "").strip()
    if not cleaned:
        raise ExtractionError("No JSON found: the response is empty")

    ok, value = _try_load(cleaned)
    if ok:
        return value

    for fenced in _FENCE_RE.findall(cleaned):
        ok, value = _try_load(fenced.strip())
        if ok:
            return value

    decoder = json.JSONDecoder()
    for index, char in enumerate(cleaned):
        if char not in "[{":
            continue
        try:
            value, _end = decoder.raw_decode(cleaned, index)
        except json.JSONDecodeError:
            continue
        return value

    preview = cleaned[:_PREVIEW_CHARS]
    raise ExtractionError(f"No JSON found in response: {preview!r}")
