from typing import FrozenSet, Iterable

from compliance_engine.models.exception_request import ExceptionRequest


def overridden_finding_ids(exceptions: Iterable[ExceptionRequest]) -> FrozenSet[str]:
    """
    Ids of findings neutralised by an APPROVED exception.

    Requested, rejected and withdrawn exceptions carry no scoring effect,
    and an exception without a target finding is ignored. Several approvals
    for the same finding collapse into one override.

    Example:
        >>> overridden_finding_ids([approved_on("f1"), approved_on("f1")])
        frozenset({'f1'})
    """
    return frozenset(
        ex.clause_finding_id
        for ex in exceptions
        if ex.status == "APPROVED" and ex.clause_finding_id
    )
