import json

from compliance_engine.audit.audit_logger import AuditLogger
from compliance_engine.main import ComplianceEngine, cli, run_workload
from compliance_engine.models.aggregation import ComplianceAggregation, NotComputed
from compliance_engine.models.comparison import VersionCompareResult
from compliance_engine.models.extraction import ClauseExtraction
from compliance_engine.models.workload import Workload

from conftest import fixed_clock, make_exception


def _extractions(liability_months=12, law="IT"):
    raw = [
        {"clauseType": "LIABILITY", "extractedValue": {"capMonths": liability_months}, "confidence": 0.92},
        {"clauseType": "DATA_PRIVACY", "extractedValue": True, "confidence": 0.88},
        {"clauseType": "GOVERNING_LAW", "extractedValue": law, "confidence": 0.95},
        {"clauseType": "INTELLECTUAL_PROPERTY", "extractedText": "Customer owns deliverables.", "confidence": 0.81},
        {"clauseType": "TERMINATION", "extractedValue": {"noticeDays": 30}, "confidence": 0.9},
        {"clauseType": "CONFIDENTIALITY", "extractedValue": True, "confidence": 0.9},
        {"clauseType": "PAYMENT_TERMS", "extractedValue": {"paymentDays": 30}, "confidence": 0.9},
    ]
    return [ClauseExtraction.model_validate(r) for r in raw]


def test_evaluate_aggregate_compare_flow(config, policy):
    engine = ComplianceEngine(config, clock=fixed_clock)

    engine.evaluate("v-1", policy, _extractions(liability_months=24))
    engine.evaluate("v-2", policy, _extractions(liability_months=12))

    v1 = engine.aggregate("c-1", "v-1", policy.id)
    v2 = engine.aggregate("c-1", "v-2", policy.id)

    assert isinstance(v1, ComplianceAggregation)
    assert v1.raw_score == 75
    assert v1.overall_status == "NEEDS_REVIEW"
    assert v2.effective_score == 100
    assert v2.overall_status == "COMPLIANT"

    result = engine.compare("c-1", "v-1", "v-2", policy.id, from_version_number=1, to_version_number=2)

    assert isinstance(result, VersionCompareResult)
    assert result.delta.raw == 25
    assert result.delta.label == "IMPROVED"
    liability = next(c for c in result.changes if c.key == "LIABILITY")
    assert liability.why == "Compliance changed: VIOLATION → COMPLIANT. Value changed: 24 capMonths → 12 capMonths"


def test_re_evaluation_keeps_exception_links(config, policy):
    engine = ComplianceEngine(config, clock=fixed_clock)
    run = engine.evaluate("v-1", policy, _extractions(law="US-NY"))
    law = next(f for f in run.findings if f.clause_type == "GOVERNING_LAW")
    approvals = [make_exception(law.id, version_id="v-1")]

    before = engine.aggregate("c-1", "v-1", policy.id, approvals)
    engine.evaluate("v-1", policy, _extractions(law="US-NY"))
    after = engine.aggregate("c-1", "v-1", policy.id, approvals)

    assert before.effective_score == after.effective_score == 100
    assert after.raw_score == 90
    assert len(engine.store.history("v-1", policy.id)) == 1


def test_clause_type_exceptions_are_bound_to_findings(config, policy):
    engine = ComplianceEngine(config, clock=fixed_clock)
    engine.evaluate("v-1", policy, _extractions(law="US-NY"))
    approval = make_exception(None, version_id="v-1").model_copy(update={"clause_type": "GOVERNING_LAW"})

    aggregation = engine.aggregate("c-1", "v-1", policy.id, [approval])

    assert aggregation.overridden_count == 1
    assert aggregation.effective_score == 100


def test_unevaluated_version_reports_missing_analysis(config, policy):
    engine = ComplianceEngine(config, clock=fixed_clock)
    engine.evaluate("v-1", policy, _extractions())

    assert isinstance(engine.aggregate("c-1", "v-9", policy.id), NotComputed)

    result = engine.compare("c-1", "v-1", "v-9", policy.id)

    assert isinstance(result, NotComputed)
    assert result.code == "MISSING_ANALYSIS"
    assert result.contract_version_id == "v-9"


def test_run_workload_writes_audit_events(config, tmp_path):
    workload = Workload.model_validate(
        {
            "contractId": "c-1",
            "versions": [
                {
                    "id": "v-1",
                    "versionNumber": 1,
                    "extractions": [
                        {"clauseType": "LIABILITY", "extractedValue": {"capMonths": 36}, "confidence": 0.9}
                    ],
                    "exceptions": [
                        {"id": "e-1", "clauseType": "LIABILITY", "title": "Strategic account", "status": "APPROVED"}
                    ],
                },
                {"id": "v-2", "versionNumber": 2, "extractions": []},
            ],
            "compare": {"from": "v-1", "to": "v-2"},
        }
    )
    audit = AuditLogger(tmp_path / "audit")

    report = run_workload(ComplianceEngine(config, clock=fixed_clock), workload, audit=audit)

    v1 = report["versions"]["v-1"]
    assert v1["aggregation"]["raw_score"] == 75
    assert v1["aggregation"]["effective_score"] == 100
    assert v1["deal_decision"]["counts"]["approved_exceptions"] == 1
    assert report["comparison"]["from_version"]["version_number"] == 1
    assert report["config"]["confidence_threshold"] == 0.75

    for event in ("evaluation_run", "aggregation_computed", "versions_compared"):
        lines = (tmp_path / "audit" / f"{event}.log.jsonl").read_text().splitlines()
        assert lines
        assert json.loads(lines[0])["event_type"] == event

    first_run = json.loads((tmp_path / "audit" / "evaluation_run.log.jsonl").read_text().splitlines()[0])
    assert first_run["payload"]["finding_count"] == 7
    assert first_run["payload"]["average_confidence"] == 0.9


def test_cli_prints_json_report(tmp_path, monkeypatch, capsys):
    workload = tmp_path / "workload.json"
    workload.write_text(
        json.dumps(
            {
                "contract_id": "c-1",
                "versions": [
                    {
                        "id": "v-1",
                        "extractions": [
                            {"clause_type": "GOVERNING_LAW", "extracted_value": "EU", "confidence": 0.8}
                        ],
                    }
                ],
            }
        )
    )
    monkeypatch.setenv("CONFIDENCE_THRESHOLD", "0.85")

    assert cli([str(workload)]) == 0

    report = json.loads(capsys.readouterr().out)
    law = next(
        f for f in report["versions"]["v-1"]["aggregation"]["findings"]
        if f["clause_type"] == "GOVERNING_LAW"
    )
    assert report["config"]["confidence_threshold"] == 0.85
    assert law["status"] == "UNCLEAR"
