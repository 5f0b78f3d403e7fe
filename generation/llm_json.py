"""
JSON extraction from raw LLM responses (fences stripped, repaired with json_repair).
"""

import re

import json_repair


def _strip_fences(raw: str) -> str:
    raw = (raw or "").strip()
    raw = re.sub(r"^```(?:json)?\s*", "", raw, flags=re.MULTILINE)
    raw = re.sub(r"\s*```$", "", raw, flags=re.MULTILINE)
    return raw


def extract_json_array(raw: str) -> list:
    """Extract + repair a JSON array from an LLM response."""
    raw = _strip_fences(raw)
    start = raw.find("[")
    end = raw.rfind("]") + 1
    if start == -1 or end == 0:
        raise ValueError(f"No JSON array in LLM response: {raw[:300]}")
    data = json_repair.loads(raw[start:end])
    if not isinstance(data, list):
        raise ValueError("AI response is not an array")
    return data


def extract_json_object(raw: str) -> dict:
    """Extract + repair a JSON object from an LLM response."""
    raw = _strip_fences(raw)
    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start == -1 or end == 0:
        raise ValueError(f"No JSON object in LLM response: {raw[:300]}")
    data = json_repair.loads(raw[start:end])
    if not isinstance(data, dict):
        raise ValueError("AI response is not an object")
    return data
