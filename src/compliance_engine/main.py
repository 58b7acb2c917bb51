import argparse
import json
import os
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from dotenv import load_dotenv

# -----------------------------
# Agents
# -----------------------------
from compliance_engine.agents.comparators import ComparatorRegistry
from compliance_engine.agents.rule_evaluator import Clock, RuleEvaluator, utc_now
from compliance_engine.agents.score_aggregation_agent import (
    AggregationResult,
    ScoreAggregationAgent,
)
from compliance_engine.agents.version_comparison_agent import VersionComparisonAgent

# -----------------------------
# Audit
# -----------------------------
from compliance_engine.audit.audit_logger import AuditLogger

# -----------------------------
# Configs
# -----------------------------
from compliance_engine.configs.default_policy import load_policy
from compliance_engine.configs.engine_config_loader import EngineConfig

# -----------------------------
# Domain models
# -----------------------------
from compliance_engine.models.aggregation import ComplianceAggregation, NotComputed
from compliance_engine.models.comparison import VersionCompareResult
from compliance_engine.models.exception_request import ExceptionRequest
from compliance_engine.models.extraction import ClauseExtraction
from compliance_engine.models.findings import EvaluationRun
from compliance_engine.models.policy import Policy
from compliance_engine.models.workload import Workload

# -----------------------------
# Presentation
# -----------------------------
from compliance_engine.presentation.dashboard_builder import build_dashboard_row
from compliance_engine.presentation.deal_decision_builder import build_deal_decision
from compliance_engine.presentation.executive_summary_builder import build_executive_summary

# -----------------------------
# Store / logger
# -----------------------------
from compliance_engine.store.findings_store import FindingStore
from compliance_engine.tools.logger import setup_logger

logger = setup_logger("compliance-engine")

CONFIDENCE_THRESHOLD_ENV = "CONFIDENCE_THRESHOLD"


# =========================================================
# Engine Orchestrator
# =========================================================

class ComplianceEngine:
    """
    End-to-end orchestrator: evaluate -> store -> aggregate -> compare.

    Holds no state besides the finding store; the confidence threshold
    and every other tunable comes from the injected EngineConfig.
    """

    def __init__(
        self,
        config: EngineConfig,
        store: Optional[FindingStore] = None,
        comparators: Optional[ComparatorRegistry] = None,
        clock: Clock = utc_now,
    ):
        self.config = config
        self.store = store or FindingStore()

        self.evaluator = RuleEvaluator(config, comparators=comparators, clock=clock)
        self.aggregator = ScoreAggregationAgent(config, clock=clock)
        self.comparator = VersionComparisonAgent(config)

    # -----------------------------------------------------

    def evaluate(
        self,
        contract_version_id: str,
        policy: Policy,
        extractions: Sequence[ClauseExtraction],
    ) -> EvaluationRun:
        """
        Evaluate a version against a policy and make the result current.
        """
        run = self.evaluator.evaluate(contract_version_id, policy, extractions)
        self.store.commit(run)
        return run

    def aggregate(
        self,
        contract_id: str,
        contract_version_id: str,
        policy_id: str,
        exceptions: Iterable[ExceptionRequest] = (),
    ) -> AggregationResult:
        run = self.store.current(contract_version_id, policy_id)
        return self.aggregator.aggregate_run(
            contract_id,
            run,
            self.bind_exceptions(run, exceptions),
            contract_version_id=contract_version_id,
            policy_id=policy_id,
        )

    def compare(
        self,
        contract_id: str,
        from_version_id: str,
        to_version_id: str,
        policy_id: str,
        from_exceptions: Iterable[ExceptionRequest] = (),
        to_exceptions: Iterable[ExceptionRequest] = (),
        from_version_number: Optional[int] = None,
        to_version_number: Optional[int] = None,
    ) -> Union[VersionCompareResult, NotComputed]:

        from_agg = self.aggregate(contract_id, from_version_id, policy_id, from_exceptions)
        if isinstance(from_agg, NotComputed):
            return self._missing(from_version_id, policy_id)

        to_agg = self.aggregate(contract_id, to_version_id, policy_id, to_exceptions)
        if isinstance(to_agg, NotComputed):
            return self._missing(to_version_id, policy_id)

        result = self.comparator.compare(
            from_agg,
            to_agg,
            from_version_number=from_version_number,
            to_version_number=to_version_number,
        )
        logger.info(
            f"Compared {from_version_id} -> {to_version_id}: "
            f"effective {result.delta.effective:+d} ({result.delta.label})"
        )
        return result

    # -----------------------------------------------------

    @staticmethod
    def bind_exceptions(
        run: Optional[EvaluationRun],
        exceptions: Iterable[ExceptionRequest],
    ) -> List[ExceptionRequest]:
        """
        Point clause-type-only exceptions at the finding of that clause type.
        """
        exceptions = list(exceptions)
        if run is None:
            return exceptions

        by_clause = {f.clause_type: f.id for f in run.findings}
        bound = []
        for ex in exceptions:
            if ex.clause_finding_id is None and ex.clause_type in by_clause:
                ex = ex.model_copy(update={"clause_finding_id": by_clause[ex.clause_type]})
            bound.append(ex)
        return bound

    @staticmethod
    def _missing(contract_version_id: str, policy_id: str) -> NotComputed:
        return NotComputed(
            code="MISSING_ANALYSIS",
            contract_version_id=contract_version_id,
            policy_id=policy_id,
            message=f"Version {contract_version_id} has not been evaluated against {policy_id}.",
        )


# =========================================================
# Engine construction
# =========================================================

def build_engine(
    override_path: Optional[Path] = None,
    confidence_threshold: Optional[str] = None,
    clock: Clock = utc_now,
) -> ComplianceEngine:
    """
    Build an engine from the packaged config, an optional override file and
    a runtime threshold (falls back to the file value when invalid).
    """
    config = EngineConfig(override_path=override_path)
    if confidence_threshold is not None:
        config = config.with_confidence_threshold(confidence_threshold)
    return ComplianceEngine(config, clock=clock)


def run_workload(
    engine: ComplianceEngine,
    workload: Workload,
    audit: Optional[AuditLogger] = None,
) -> Dict:
    """
    Evaluate every version of a workload and assemble the JSON report.
    """
    policy = workload.policy or load_policy()
    metadata = engine.config.audit_metadata()

    versions = {}
    aggregations: Dict[str, ComplianceAggregation] = {}

    for version in workload.versions:
        run = engine.evaluate(version.id, policy, version.extractions)
        if audit:
            audit.log_evaluation_run(run, metadata)

        aggregation = engine.aggregate(workload.contract_id, version.id, policy.id, version.exceptions)
        exceptions = engine.bind_exceptions(run, version.exceptions)

        payload = {"aggregation": aggregation.model_dump(mode="json")}
        if isinstance(aggregation, ComplianceAggregation):
            aggregations[version.id] = aggregation
            if audit:
                audit.log_aggregation(aggregation, metadata)
            payload["executive_summary"] = build_executive_summary(
                aggregation, engine.config
            ).model_dump(mode="json")
            payload["dashboard_row"] = build_dashboard_row(aggregation).model_dump(mode="json")
            payload["deal_decision"] = build_deal_decision(
                aggregation, exceptions, engine.config
            ).model_dump(mode="json")

        versions[version.id] = payload

    report = {
        "contract_id": workload.contract_id,
        "policy_id": policy.id,
        "config": metadata,
        "versions": versions,
    }

    if workload.compare:
        by_id = {v.id: v for v in workload.versions}
        from_v = by_id.get(workload.compare.from_version)
        to_v = by_id.get(workload.compare.to_version)

        result = engine.compare(
            workload.contract_id,
            workload.compare.from_version,
            workload.compare.to_version,
            policy.id,
            from_exceptions=from_v.exceptions if from_v else (),
            to_exceptions=to_v.exceptions if to_v else (),
            from_version_number=from_v.version_number if from_v else None,
            to_version_number=to_v.version_number if to_v else None,
        )
        if audit and isinstance(result, VersionCompareResult):
            audit.log_comparison(result, metadata)
        report["comparison"] = result.model_dump(mode="json", by_alias=True)

    return report


# =========================================================
# CLI / Execution Entry
# =========================================================

def cli(argv: Optional[Sequence[str]] = None) -> int:
    """
    Example:
        >>> # python -m compliance_engine.main workload.json --audit-dir logs/audit
    """
    parser = argparse.ArgumentParser(description="Contract compliance scoring engine")
    parser.add_argument("workload", type=Path, help="JSON workload: contract versions, extractions, exceptions")
    parser.add_argument("--config", dest="config_override", type=Path, default=None)
    parser.add_argument("--audit-dir", type=Path, default=None)
    args = parser.parse_args(argv)

    load_dotenv()

    if not args.workload.exists():
        raise FileNotFoundError(f"Workload not found: {args.workload}")

    with open(args.workload, "r") as f:
        workload = Workload.model_validate(json.load(f))

    logger.info(f"Loaded workload for contract {workload.contract_id} ({len(workload.versions)} versions)")

    engine = build_engine(
        override_path=args.config_override,
        confidence_threshold=os.getenv(CONFIDENCE_THRESHOLD_ENV),
    )
    audit = AuditLogger(args.audit_dir) if args.audit_dir else None

    report = run_workload(engine, workload, audit=audit)

    json.dump(report, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


# =========================================================
# Entrypoint
# =========================================================

if __name__ == "__main__":
    sys.exit(cli())
