# app/utils/json_parser.py
"""
Helpers for reading the semi-structured metadata blob of detection rows.

The blob has been written by several generations of the ingestion process,
so the same field can be missing, a bare string, or an object with
code/name. classify() turns any of those into one of three explicit shapes
so callers never branch on raw types.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class Absent:
    pass


@dataclass(frozen=True)
class StringValue:
    text: str


@dataclass(frozen=True)
class ObjectValue:
    code: Optional[str]
    name: Optional[str]


ABSENT = Absent()
JsonShape = Union[Absent, StringValue, ObjectValue]


def safe_parse_json(raw: Any) -> Optional[dict]:
    """
    Parse a metadata blob (dict, str or bytes) into a dict.
    Returns None for None, invalid JSON, or a document that is not an object.
    """
    if raw is None:
        return None
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return None
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def get_nested(data: dict, *keys: str, default: Any = None) -> Any:
    """Safely navigate nested dict keys. Returns default if any key is missing."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key, default)
        if current is default:
            return default
    return current


def is_json_truthy(value: Any) -> bool:
    """JSON truthiness: null, false, 0 and "" are empty; objects and arrays never are."""
    if value is None or value is False or (isinstance(value, str) and value == ""):
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0:
        return False
    return True


def first_non_empty(value: Any) -> Any:
    """Lists collapse to their first JSON-truthy element; anything else passes through."""
    if isinstance(value, list):
        return next((item for item in value if is_json_truthy(item)), None)
    return value


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def classify(value: Any) -> JsonShape:
    """Classify a raw JSON value as Absent, StringValue or ObjectValue."""
    if isinstance(value, dict):
        code, name = _text(value.get("code")), _text(value.get("name"))
        if code is None and name is None:
            return ABSENT
        return ObjectValue(code=code, name=name)
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        text = _text(value)
        return StringValue(text) if text else ABSENT
    return ABSENT
