import json
from typing import Any

from pydantic import BaseModel

TRUNCATE_AT = 50
ELLIPSIS = "…"


def canonical_value(value: Any) -> str:
    """
    Render a clause value as a key-sorted JSON string so two readings of the
    same value always compare equal. None renders as the empty string.

    Example:
        >>> canonical_value({"b": 1, "a": 2})
        '{"a": 2, "b": 1}'
    """
    if value is None:
        return ""

    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude_none=True)

    if not isinstance(value, (dict, list)):
        return str(value)

    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def display_value(value: Any) -> str:
    """
    Short human reading of a clause value for change explanations.

    Scalar values show as their reading (with unit); structured values fall
    back to their canonical JSON.
    """
    if value is None:
        return ""

    kind = getattr(value, "kind", None)
    if kind == "number":
        number = value.value
        reading = str(int(number)) if float(number).is_integer() else str(number)
        return f"{reading} {value.unit}" if value.unit else reading

    if kind in ("enum", "text"):
        return value.value

    if kind == "boolean":
        return "yes" if value.value else "no"

    if kind == "structured":
        return canonical_value(value.fields)

    return canonical_value(value)


def truncate(text: str, limit: int = TRUNCATE_AT) -> str:
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text
