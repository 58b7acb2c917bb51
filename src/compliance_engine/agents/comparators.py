import math
from abc import ABC, abstractmethod
from typing import Dict, Optional

from compliance_engine.models.extraction import ClauseExtraction
from compliance_engine.models.values import Expectation


# =========================================================
# Comparator strategies
# =========================================================
#
# compare() returns:
#   True  -> extraction satisfies the rule
#   False -> extraction breaks the rule
#   None  -> value shape cannot be judged by this strategy
#

class ClauseComparator(ABC):
    name = "base"

    @abstractmethod
    def compare(
        self,
        expectation: Optional[Expectation],
        extraction: ClauseExtraction,
    ) -> Optional[bool]:
        ...


class NumericThresholdComparator(ClauseComparator):
    """
    Numeric clauses: notice days, liability cap, payment days, uptime.

    With no threshold configured the rule only asks for a readable number.
    NaN and infinite readings are never comparable.
    """

    name = "numeric_threshold"

    def compare(self, expectation, extraction):
        value = extraction.extracted_value
        if value is None or value.kind != "number" or not math.isfinite(value.value):
            return None

        if expectation is None or expectation.kind == "presence":
            return True

        if expectation.kind != "threshold":
            return None

        if expectation.minimum is not None and value.value < expectation.minimum:
            return False
        if expectation.maximum is not None and value.value > expectation.maximum:
            return False
        return True


class EnumMembershipComparator(ClauseComparator):
    """
    Categorical clauses (e.g. governing law): the extracted reading must
    be one of the allowed values, compared case-insensitively.
    """

    name = "enum_membership"

    def compare(self, expectation, extraction):
        value = extraction.extracted_value
        if value is None or value.kind not in ("enum", "text"):
            return None

        if expectation is None or expectation.kind == "presence":
            return bool(value.value.strip())

        if expectation.kind != "allowed_values":
            return None

        allowed = {a.strip().upper() for a in expectation.allowed}
        return value.value.strip().upper() in allowed


class PresenceComparator(ClauseComparator):
    """
    The clause must exist. An explicit boolean reading wins; otherwise any
    value or non-empty text counts as present.

    A rule that carries a threshold or an allowed-values list is judged by
    the matching numeric or enum strategy instead.
    """

    name = "presence"

    def __init__(self):
        self._by_kind = {
            "threshold": NumericThresholdComparator(),
            "allowed_values": EnumMembershipComparator(),
        }

    def compare(self, expectation, extraction):
        if expectation is not None and expectation.kind in self._by_kind:
            return self._by_kind[expectation.kind].compare(expectation, extraction)

        value = extraction.extracted_value

        if value is not None and value.kind == "boolean":
            return value.value

        if value is not None:
            return True

        return bool((extraction.extracted_text or "").strip())


# =========================================================
# Registry
# =========================================================

class ComparatorRegistry:
    """
    Clause type -> comparator. Adding a clause type means registering a
    strategy here; the evaluator itself never branches on clause type.
    """

    def __init__(
        self,
        comparators: Optional[Dict[str, ClauseComparator]] = None,
        default: Optional[ClauseComparator] = None,
    ):
        self._comparators: Dict[str, ClauseComparator] = dict(comparators or {})
        self._default = default or PresenceComparator()

    def register(self, clause_type: str, comparator: ClauseComparator) -> "ComparatorRegistry":
        self._comparators[clause_type] = comparator
        return self

    def for_clause_type(self, clause_type: str) -> ClauseComparator:
        return self._comparators.get(clause_type, self._default)


def default_registry() -> ComparatorRegistry:
    numeric = NumericThresholdComparator()
    return ComparatorRegistry(
        {
            "LIABILITY": numeric,
            "PAYMENT_TERMS": numeric,
            "TERMINATION": numeric,
            "SLA": numeric,
            "GOVERNING_LAW": EnumMembershipComparator(),
        },
        default=PresenceComparator(),
    )
