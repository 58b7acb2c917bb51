from typing import Any, List, Optional

from pydantic import Field, field_validator

from compliance_engine.configs.taxonomy import (
    RISK_TYPES,
    SEVERITIES,
    ClauseType,
    RiskType,
    Severity,
)
from compliance_engine.models.base import BoundaryModel
from compliance_engine.models.values import Expectation, coerce_expectation

DEFAULT_RULE_WEIGHT = 1


def normalize_weight(value: Any, default: int = DEFAULT_RULE_WEIGHT) -> int:
    """
    Malformed weights (missing, non-integral, below one) fall back to the
    default instead of failing the whole evaluation.

    Example:
        >>> normalize_weight("12")
        12
        >>> normalize_weight(None)
        1
    """
    if isinstance(value, bool):
        return default

    if isinstance(value, float) and value.is_integer():
        value = int(value)

    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())

    if not isinstance(value, int) or value < 1:
        return default

    return value


def _normalize_label(value: Any, allowed) -> Optional[str]:
    if value is None:
        return None
    label = str(value).strip().upper()
    return label if label in allowed else None


# -------------------------------------------------------------------
# Policy rule
# -------------------------------------------------------------------

class PolicyRule(BoundaryModel):
    """
    One requirement of a policy for one clause type.

    `weight` is the number of points removed from the raw score when the
    rule is violated.
    """

    id: str
    policy_id: Optional[str] = None
    clause_type: ClauseType
    rule_type: str = "REQUIRED"
    expected_value: Optional[Expectation] = None
    severity: Optional[Severity] = None
    risk_type: Optional[RiskType] = None
    weight: int = DEFAULT_RULE_WEIGHT
    recommendation: str = Field(min_length=1)

    @field_validator("recommendation", mode="before")
    @classmethod
    def _strip_recommendation(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("weight", mode="before")
    @classmethod
    def _default_malformed_weight(cls, value):
        return normalize_weight(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _default_unknown_severity(cls, value):
        return _normalize_label(value, SEVERITIES)

    @field_validator("risk_type", mode="before")
    @classmethod
    def _default_unknown_risk_type(cls, value):
        return _normalize_label(value, RISK_TYPES)

    @field_validator("rule_type", mode="before")
    @classmethod
    def _upper_rule_type(cls, value):
        return str(value or "REQUIRED").strip().upper()

    @field_validator("expected_value", mode="before")
    @classmethod
    def _coerce_expected_value(cls, value):
        return coerce_expectation(value)


class Policy(BoundaryModel):
    id: str
    name: str
    rules: List[PolicyRule] = Field(default_factory=list)
