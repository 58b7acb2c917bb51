from compliance_engine.models.aggregation import ComplianceAggregation
from compliance_engine.models.presentation.executive_summary import DashboardRow


def build_dashboard_row(aggregation: ComplianceAggregation) -> DashboardRow:
    """
    One portfolio-dashboard row per (contract version, policy).
    """
    return DashboardRow(
        contract_id=aggregation.contract_id,
        contract_version_id=aggregation.contract_version_id,
        policy_id=aggregation.policy_id,
        effective_score=aggregation.effective_score,
        status=aggregation.overall_status,
        violation_count=aggregation.violation_count,
        unclear_count=aggregation.unclear_count,
        overridden_count=aggregation.overridden_count,
        risk_type_breakdown=dict(aggregation.risk_type_breakdown),
    )
