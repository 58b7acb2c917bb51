from compliance_engine.agents.score_aggregation_agent import ScoreAggregationAgent
from compliance_engine.presentation.dashboard_builder import build_dashboard_row
from compliance_engine.presentation.deal_decision_builder import build_deal_decision
from compliance_engine.presentation.executive_summary_builder import build_executive_summary

from conftest import CONTRACT_ID, POLICY_ID, VERSION_ID, fixed_clock, make_baseline, make_exception, make_finding


def _aggregation(config, score, findings=(), exceptions=()):
    return ScoreAggregationAgent(config, clock=fixed_clock).aggregate(
        contract_id=CONTRACT_ID,
        contract_version_id=VERSION_ID,
        policy_id=POLICY_ID,
        baseline=make_baseline(score),
        findings=findings,
        exceptions=exceptions,
    )


# -------------------------------------------------------------------
# Executive summary
# -------------------------------------------------------------------

def test_summary_for_compliant_contract(config):
    summary = build_executive_summary(_aggregation(config, 100), config)

    assert summary.verdict == "COMPLIANT"
    assert summary.headline == "Contract compliant with company standards."
    assert summary.paragraphs == ["Overall status: COMPLIANT. Effective score: 100/100."]
    assert summary.key_risks == []
    assert summary.recommendation == "Contract can proceed to approval."


def test_summary_shows_raw_score_when_override_moved_it(config):
    aggregation = _aggregation(config, 80, [make_finding("f-1", weight=5)], [make_exception("f-1")])

    summary = build_executive_summary(aggregation, config)

    assert summary.headline == "Contract requires review before approval."
    assert summary.paragraphs[0] == "Overall status: NEEDS_REVIEW. Effective score: 85/100 (raw 80)."
    assert summary.paragraphs[1] == "LEGAL: MEDIUM (1 violation(s), 0 unclear)."
    assert summary.key_risks == ["GOVERNING_LAW: Policy violation."]
    assert summary.recommendation == "Legal or risk review recommended."


def test_summary_lists_two_worst_clusters(config):
    findings = [
        make_finding("f-dp", clause_type="DATA_PRIVACY", status="UNCLEAR", risk_type="DATA", weight=15),
        make_finding("f-law", risk_type="LEGAL", weight=10),
        make_finding("f-liab", clause_type="LIABILITY", risk_type="FINANCIAL", severity="CRITICAL", weight=25),
        make_finding("f-term", clause_type="TERMINATION", risk_type="OPERATIONAL", weight=8),
    ]

    summary = build_executive_summary(_aggregation(config, 40, findings), config)

    assert summary.verdict == "NON_COMPLIANT"
    assert summary.headline == "Contract is not compliant with company standards."
    assert summary.paragraphs[1] == (
        "FINANCIAL: HIGH (1 violation(s), 0 unclear). "
        "LEGAL: MEDIUM (1 violation(s), 0 unclear)."
    )
    assert len(summary.key_risks) == 3
    assert summary.key_risks[0] == "LIABILITY: Policy violation."
    assert summary.recommendation == "Renegotiation or exception approval required."


# -------------------------------------------------------------------
# Dashboard row
# -------------------------------------------------------------------

def test_dashboard_row_mirrors_aggregation(config):
    findings = [
        make_finding("f-1", weight=5),
        make_finding("f-2", clause_type="DATA_PRIVACY", status="UNCLEAR", risk_type="DATA", weight=15),
    ]
    aggregation = _aggregation(config, 95, findings, [make_exception("f-1")])

    row = build_dashboard_row(aggregation)

    assert row.effective_score == 100
    assert row.status == "NEEDS_REVIEW"
    assert row.violation_count == 1
    assert row.unclear_count == 1
    assert row.overridden_count == 1
    assert row.risk_type_breakdown["LEGAL"].violations == 1
    assert row.risk_type_breakdown["DATA"].unclear == 1
    assert row.risk_type_breakdown["SECURITY"].violations == 0


# -------------------------------------------------------------------
# Deal decision
# -------------------------------------------------------------------

def test_deal_go_for_clean_contract(config):
    preview = build_deal_decision(_aggregation(config, 100), [], config)

    assert preview.outcome == "GO"
    assert preview.status_suggestion == "DRAFT"
    assert preview.top_drivers == []


def test_deal_no_go_for_open_critical_violation(config):
    finding = make_finding("f-1", clause_type="LIABILITY", risk_type="FINANCIAL", severity="CRITICAL", weight=5)

    preview = build_deal_decision(_aggregation(config, 95, [finding]), [], config)

    assert preview.outcome == "NO_GO"
    assert preview.counts.critical_violations == 1
    assert "- Critical violations: 1" in preview.rationale_markdown


def test_deal_no_go_below_score_floor(config):
    preview = build_deal_decision(_aggregation(config, 55), [], config)

    assert preview.outcome == "NO_GO"


def test_deal_needs_review_for_violation(config):
    aggregation = _aggregation(config, 90, [make_finding("f-1", weight=10, recommendation="Restrict governing law.")])

    preview = build_deal_decision(aggregation, [], config)

    assert preview.outcome == "NEEDS_REVIEW"
    assert preview.counts.violations == 1
    assert preview.top_drivers[0].recommendation == "Restrict governing law."
    assert "- Violations: 1 (LEGAL: GOVERNING_LAW)" in preview.rationale_markdown
    assert "- GOVERNING_LAW (LEGAL): Restrict governing law." in preview.rationale_markdown


def test_deal_needs_review_for_open_exception_request(config):
    finding = make_finding("f-1", status="COMPLIANT")
    requests = [make_exception("f-1", "REQUESTED")]

    preview = build_deal_decision(_aggregation(config, 100, [finding], requests), requests, config)

    assert preview.outcome == "NEEDS_REVIEW"
    assert preview.counts.open_exceptions == 1


def test_deal_go_when_critical_violation_is_overridden(config):
    finding = make_finding("f-1", clause_type="LIABILITY", risk_type="FINANCIAL", severity="CRITICAL", weight=25)
    approvals = [make_exception("f-1")]
    aggregation = _aggregation(config, 40, [finding], approvals)

    preview = build_deal_decision(aggregation, approvals, config)

    assert aggregation.effective_score == 65
    assert preview.outcome == "GO"
    assert preview.counts.violations == 0
    assert preview.counts.overridden == 1
    assert preview.counts.approved_exceptions == 1
    assert preview.rationale_markdown.startswith("- Effective score: **65/100** (raw 40)")
