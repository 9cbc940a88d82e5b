"""Utilities for robustly extracting JSON from LLM responses."""

from __future__ import annotations
import json
import re
from typing import Any

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove surrounding ```...``` fences (with or without 'json') if present."""
    t = text.strip()
    if t.startswith("```") and t.endswith("```"):
        t = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", t))
    return t.strip()


def extract_json(text: str) -> Any:
    """
    Parse the JSON document in an LLM response.
    Structured-output replies are plain JSON; fences and stray prose around
    an object are tolerated. Returns None when nothing parses.
    """
    if not text or not text.strip():
        return None
    t = strip_code_fences(text)
    try:
        return json.loads(t)
    except json.JSONDecodeError:
        pass

    m = _JSON_OBJECT.search(t)
    if not m:
        return None
    try:
        return json.loads(m.group(0))
    except json.JSONDecodeError:
        return None


def require_object(text: str, err: str = "Expected a JSON object.") -> dict:
    """Strict: must return an object, else raise ValueError."""
    data = extract_json(text)
    if not isinstance(data, dict):
        raise ValueError(err)
    return data
