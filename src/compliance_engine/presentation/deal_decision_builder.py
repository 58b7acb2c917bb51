from typing import Any, Dict, Iterable, List

from compliance_engine.models.aggregation import ComplianceAggregation
from compliance_engine.models.exception_request import ExceptionRequest
from compliance_engine.models.presentation.executive_summary import (
    DealDecisionCounts,
    DealDecisionPreview,
    DealDriver,
)

DEFAULT_DEAL_DRIVERS = 5
NON_COMPLIANT_BELOW = 60


def _group_by_risk(findings) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for f in findings:
        grouped.setdefault(f.risk_type or "OTHER", []).append(f.clause_type)
    return grouped


def _describe(grouped: Dict[str, List[str]]) -> str:
    return "; ".join(f"{rt}: {', '.join(types)}" for rt, types in grouped.items())


def build_deal_decision(
    aggregation: ComplianceAggregation,
    exceptions: Iterable[ExceptionRequest] = (),
    config: Any = None,
) -> DealDecisionPreview:
    """
    Deal-desk preview (GO / NO_GO / NEEDS_REVIEW) for one version.

    - NO_GO: an open CRITICAL violation, or effective score below the floor
    - NEEDS_REVIEW: open violations, unclear findings or pending exception requests
    - GO: otherwise

    The outcome is a suggestion only (status DRAFT); a human finalises it.
    """

    floor = config.non_compliant_below if config else NON_COMPLIANT_BELOW
    driver_limit = config.limit("deal_top_drivers") if config else DEFAULT_DEAL_DRIVERS

    exceptions = [e for e in exceptions if e.contract_version_id == aggregation.contract_version_id]
    finding_ids = {f.finding_id for f in aggregation.findings}

    open_violations = [
        f for f in aggregation.findings
        if f.status == "VIOLATION" and not f.overridden
    ]
    unclear = [f for f in aggregation.findings if f.status == "UNCLEAR"]
    critical = [f for f in open_violations if f.severity == "CRITICAL"]

    open_exceptions = sum(
        1 for e in exceptions
        if e.status == "REQUESTED"
        and (e.policy_id == aggregation.policy_id or e.clause_finding_id in finding_ids)
    )
    approved_exceptions = sum(1 for e in exceptions if e.status == "APPROVED")

    # -------------------------------------------------
    # Outcome
    # -------------------------------------------------
    if critical or aggregation.effective_score < floor:
        outcome = "NO_GO"
    elif open_violations or unclear or open_exceptions:
        outcome = "NEEDS_REVIEW"
    else:
        outcome = "GO"

    by_id = {f.finding_id: f for f in aggregation.findings}
    top_drivers = [
        DealDriver(
            clause_type=d.clause_type,
            risk_type=d.risk_type,
            severity=d.severity,
            weight=d.weight,
            status=d.status,
            recommendation=by_id[d.finding_id].recommendation if d.finding_id in by_id else None,
        )
        for d in aggregation.top_drivers[:driver_limit]
    ]

    # -------------------------------------------------
    # Rationale
    # -------------------------------------------------
    lines = [
        f"- Effective score: **{aggregation.effective_score}/100** (raw {aggregation.raw_score})"
    ]
    if open_violations:
        lines.append(
            f"- Violations: {len(open_violations)} ({_describe(_group_by_risk(open_violations))})"
        )
    if critical:
        lines.append(f"- Critical violations: {len(critical)}")
    if unclear:
        lines.append(f"- Unclear: {len(unclear)} ({_describe(_group_by_risk(unclear))})")
    lines.append(f"- Approved exceptions: {approved_exceptions}")
    lines.append(f"- Open exception requests: {open_exceptions}")

    if top_drivers:
        lines.append("")
        lines.append("**Top drivers:**")
        for d in top_drivers:
            lines.append(f"- {d.clause_type} ({d.risk_type or '—'}): {d.recommendation or d.status}")

    return DealDecisionPreview(
        contract_id=aggregation.contract_id,
        contract_version_id=aggregation.contract_version_id,
        policy_id=aggregation.policy_id,
        raw_score=aggregation.raw_score,
        effective_score=aggregation.effective_score,
        outcome=outcome,
        counts=DealDecisionCounts(
            violations=len(open_violations),
            critical_violations=len(critical),
            unclear=len(unclear),
            overridden=aggregation.overridden_count,
            open_exceptions=open_exceptions,
            approved_exceptions=approved_exceptions,
        ),
        top_drivers=top_drivers,
        rationale_markdown="\n".join(lines),
        risk_type_breakdown=dict(aggregation.risk_type_breakdown),
    )
