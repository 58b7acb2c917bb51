from typing import Any, List

from compliance_engine.configs.taxonomy import CLUSTER_LEVEL_PRIORITY
from compliance_engine.models.aggregation import ComplianceAggregation
from compliance_engine.models.presentation.executive_summary import ExecutiveSummary

HEADLINES = {
    "COMPLIANT": "Contract compliant with company standards.",
    "NEEDS_REVIEW": "Contract requires review before approval.",
    "NON_COMPLIANT": "Contract is not compliant with company standards.",
}

RECOMMENDATIONS = {
    "COMPLIANT": "Contract can proceed to approval.",
    "NEEDS_REVIEW": "Legal or risk review recommended.",
    "NON_COMPLIANT": "Renegotiation or exception approval required.",
}

DEFAULT_KEY_RISKS = 3


def build_executive_summary(
    aggregation: ComplianceAggregation,
    config: Any = None,
) -> ExecutiveSummary:
    """
    Converts a ComplianceAggregation into a short, template-based
    executive summary.

    Principles:
    - Same aggregation in, same text out
    - Worst clusters first (level, then open violation weight)
    - Score shown as effective, raw only when an override moved it
    """

    status = aggregation.overall_status
    key_risk_limit = config.limit("executive_key_risks") if config else DEFAULT_KEY_RISKS

    # -------------------------------------------------
    # Score paragraph
    # -------------------------------------------------
    score_line = f"Overall status: {status}. Effective score: {aggregation.effective_score}/100"
    if aggregation.effective_score != aggregation.raw_score:
        score_line += f" (raw {aggregation.raw_score})"
    paragraphs: List[str] = [score_line + "."]

    # -------------------------------------------------
    # Worst clusters
    # -------------------------------------------------
    with_issues = [c for c in aggregation.clusters if c.level != "OK"]
    worst = sorted(
        with_issues,
        key=lambda c: (CLUSTER_LEVEL_PRIORITY[c.level], -c.total_weight),
    )[:2]

    if worst:
        paragraphs.append(
            " ".join(
                f"{c.risk_type}: {c.level} ({c.violation_count} violation(s), "
                f"{c.unclear_count} unclear)."
                for c in worst
            )
        )

    key_risks = [
        f"{d.clause_type}: {d.reason}"
        for d in aggregation.top_drivers[:key_risk_limit]
    ]

    return ExecutiveSummary(
        verdict=status,
        headline=HEADLINES[status],
        paragraphs=paragraphs,
        key_risks=key_risks,
        recommendation=RECOMMENDATIONS[status],
    )
