from typing import Any, Dict, Optional

from pydantic import field_validator

from compliance_engine.configs.taxonomy import ClauseType
from compliance_engine.models.base import BoundaryModel
from compliance_engine.models.values import ClauseValue, coerce_clause_value


class ClauseExtraction(BoundaryModel):
    """
    One clause proposed by the extraction provider for a contract version.

    `confidence` is kept exactly as delivered (it may be null, NaN or out
    of range); the confidence gate is the only place that interprets it.

    Example:
        >>> ClauseExtraction(clause_type="TERMINATION",
        ...                  extracted_value={"noticeDays": 30},
        ...                  confidence=0.91)
    """

    clause_type: ClauseType
    extracted_value: Optional[ClauseValue] = None
    extracted_text: Optional[str] = None
    confidence: Optional[float] = None
    source_location: Optional[Dict[str, Any]] = None

    @field_validator("extracted_value", mode="before")
    @classmethod
    def _coerce_value(cls, value):
        return coerce_clause_value(value)
