from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field, model_validator

from compliance_engine.models.base import SnapshotModel


# -------------------------------------------------------------------
# Extracted clause values (closed tagged union)
# -------------------------------------------------------------------

class NumberValue(SnapshotModel):
    kind: Literal["number"] = "number"
    value: float
    unit: Optional[str] = None


class EnumValue(SnapshotModel):
    kind: Literal["enum"] = "enum"
    value: str


class BooleanValue(SnapshotModel):
    kind: Literal["boolean"] = "boolean"
    value: bool


class TextValue(SnapshotModel):
    kind: Literal["text"] = "text"
    value: str


class StructuredValue(SnapshotModel):
    """
    Fallback for provider payloads with no single scalar reading.
    Comparators never interpret it; it only takes part in diffs.
    """
    kind: Literal["structured"] = "structured"
    fields: Dict[str, Any] = Field(default_factory=dict)


ClauseValue = Annotated[
    Union[NumberValue, EnumValue, BooleanValue, TextValue, StructuredValue],
    Field(discriminator="kind"),
]


# -------------------------------------------------------------------
# Rule expectations (closed tagged union)
# -------------------------------------------------------------------

class ThresholdExpectation(SnapshotModel):
    kind: Literal["threshold"] = "threshold"
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.minimum is None and self.maximum is None:
            raise ValueError("threshold expectation needs a minimum or a maximum")
        if (
            self.minimum is not None
            and self.maximum is not None
            and self.minimum > self.maximum
        ):
            raise ValueError("threshold minimum must not exceed maximum")
        return self


class AllowedValuesExpectation(SnapshotModel):
    kind: Literal["allowed_values"] = "allowed_values"
    allowed: List[str] = Field(min_length=1)


class PresenceExpectation(SnapshotModel):
    kind: Literal["presence"] = "presence"


Expectation = Annotated[
    Union[ThresholdExpectation, AllowedValuesExpectation, PresenceExpectation],
    Field(discriminator="kind"),
]


# -------------------------------------------------------------------
# Coercion of untyped provider / policy JSON
# -------------------------------------------------------------------

def coerce_clause_value(raw: Any) -> Any:
    """
    Map loosely-typed extraction JSON onto the ClauseValue union.

    Already-tagged dicts and model instances pass through untouched so
    pydantic can validate them.

    Example:
        >>> coerce_clause_value({"noticeDays": 30})
        {'kind': 'number', 'value': 30, 'unit': 'noticeDays'}
    """
    if raw is None or isinstance(
        raw, (NumberValue, EnumValue, BooleanValue, TextValue, StructuredValue)
    ):
        return raw

    if isinstance(raw, bool):
        return {"kind": "boolean", "value": raw}

    if isinstance(raw, (int, float)):
        return {"kind": "number", "value": raw}

    if isinstance(raw, str):
        return {"kind": "text", "value": raw}

    if isinstance(raw, dict):
        if "kind" in raw:
            return raw

        if "value" in raw and set(raw.keys()) <= {"value", "unit"}:
            inner = coerce_clause_value(raw["value"])
            if isinstance(inner, dict) and inner.get("kind") == "number" and raw.get("unit"):
                inner = {**inner, "unit": str(raw["unit"])}
            return inner

        numeric = [
            (k, v) for k, v in raw.items()
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        ]
        if len(raw) == 1 and len(numeric) == 1:
            unit, value = numeric[0]
            return {"kind": "number", "value": value, "unit": str(unit)}

        return {"kind": "structured", "fields": dict(raw)}

    if isinstance(raw, list):
        return {"kind": "structured", "fields": {"items": list(raw)}}

    return {"kind": "text", "value": str(raw)}


def coerce_expectation(raw: Any) -> Any:
    """
    Map loosely-typed rule expectations onto the Expectation union.

    `true` means the clause must be present. `false` has no meaning as a
    requirement and is rejected; omit the expectation instead.
    """
    if raw is None or isinstance(
        raw, (ThresholdExpectation, AllowedValuesExpectation, PresenceExpectation)
    ):
        return raw

    if isinstance(raw, bool):
        if not raw:
            raise ValueError("expected_value false is not a valid expectation")
        return {"kind": "presence"}

    if isinstance(raw, (int, float)):
        return {"kind": "threshold", "minimum": raw}

    if isinstance(raw, str):
        return {"kind": "allowed_values", "allowed": [raw]}

    if isinstance(raw, (list, tuple)):
        return {"kind": "allowed_values", "allowed": [str(v) for v in raw]}

    if isinstance(raw, dict):
        if "kind" in raw:
            return raw

        minimum = raw.get("minimum", raw.get("min"))
        maximum = raw.get("maximum", raw.get("max"))
        if minimum is not None or maximum is not None:
            return {"kind": "threshold", "minimum": minimum, "maximum": maximum}

        if "allowed" in raw:
            return {"kind": "allowed_values", "allowed": list(raw["allowed"])}

    return raw
