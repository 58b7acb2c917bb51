from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Union

from compliance_engine.agents.exception_override_resolver import overridden_finding_ids
from compliance_engine.agents.rule_evaluator import Clock, utc_now
from compliance_engine.configs.engine_config_loader import EngineConfig
from compliance_engine.configs.taxonomy import RISK_TYPES, SCORED_STATUSES, severity_rank
from compliance_engine.models.aggregation import (
    AggregatedFinding,
    ComplianceAggregation,
    NotComputed,
    RiskBreakdown,
    RiskCluster,
    ScoreDriver,
)
from compliance_engine.models.exception_request import ExceptionRequest
from compliance_engine.models.findings import BaselineCompliance, ClauseFinding, EvaluationRun
from compliance_engine.tools.logger import setup_logger

logger = setup_logger("compliance-engine.aggregation")

AggregationResult = Union[ComplianceAggregation, NotComputed]

MAX_SCORE = 100


def overall_status(
    effective_score: int,
    violation_count: int,
    unclear_count: int,
    non_compliant_below: int = 60,
) -> str:
    """
    Verdict from the effective score and the open finding counts.

    Example:
        >>> overall_status(85, 1, 0)
        'NEEDS_REVIEW'
        >>> overall_status(50, 0, 0)
        'NON_COMPLIANT'
    """
    if effective_score < non_compliant_below:
        return "NON_COMPLIANT"
    if violation_count > 0 or unclear_count > 0:
        return "NEEDS_REVIEW"
    return "COMPLIANT"


def driver_sort_key(driver: ScoreDriver):
    return (
        -driver.weight,
        severity_rank(driver.severity),
        driver.clause_type,
        driver.finding_id,
    )


class ScoreAggregationAgent:
    """
    Folds findings, the raw baseline and approved exceptions into one
    contract-level verdict.

    Counts are reported as found: an approved exception restores score but
    the overridden finding still counts as a violation (or unclear).
    """

    def __init__(self, config: EngineConfig, clock: Clock = utc_now):
        self.config = config
        self.clock = clock

    # =========================================================
    # PUBLIC API
    # =========================================================

    def aggregate_run(
        self,
        contract_id: str,
        run: Optional[EvaluationRun],
        exceptions: Iterable[ExceptionRequest] = (),
        contract_version_id: Optional[str] = None,
        policy_id: Optional[str] = None,
    ) -> AggregationResult:

        if run is None:
            return NotComputed(
                code="NOT_COMPUTED",
                contract_version_id=contract_version_id or "",
                policy_id=policy_id or "",
                message="No evaluation run for this version and policy; run evaluation first.",
            )

        return self.aggregate(
            contract_id=contract_id,
            contract_version_id=run.contract_version_id,
            policy_id=run.policy_id,
            baseline=run.baseline,
            findings=run.findings,
            exceptions=exceptions,
            evaluation_run_id=run.run_id,
        )

    def aggregate(
        self,
        contract_id: str,
        contract_version_id: str,
        policy_id: str,
        baseline: Optional[BaselineCompliance],
        findings: Sequence[ClauseFinding] = (),
        exceptions: Iterable[ExceptionRequest] = (),
        evaluation_run_id: Optional[str] = None,
    ) -> AggregationResult:

        if baseline is None:
            return NotComputed(
                code="NOT_COMPUTED",
                contract_version_id=contract_version_id,
                policy_id=policy_id,
                message="No baseline compliance for this version and policy; run evaluation first.",
            )

        policy_findings = [f for f in findings if f.policy_id == policy_id]
        overridden = overridden_finding_ids(exceptions)

        raw_score = self._clamp_score(baseline.score, contract_version_id)

        # -------------------------------------------------
        # Effective score (override restores rule weight)
        # -------------------------------------------------
        effective_score = raw_score
        for f in policy_findings:
            if self._is_overridden(f, overridden):
                effective_score = min(MAX_SCORE, effective_score + self._weight(f))

        violation_count = sum(1 for f in policy_findings if f.compliance_status == "VIOLATION")
        unclear_count = sum(1 for f in policy_findings if f.compliance_status == "UNCLEAR")
        overridden_count = sum(1 for f in policy_findings if self._is_overridden(f, overridden))

        drivers = self._drivers(policy_findings, overridden)

        status = overall_status(
            effective_score,
            violation_count,
            unclear_count,
            self.config.non_compliant_below,
        )

        aggregation = ComplianceAggregation(
            contract_id=contract_id,
            contract_version_id=contract_version_id,
            policy_id=policy_id,
            evaluation_run_id=evaluation_run_id,
            raw_score=raw_score,
            effective_score=effective_score,
            overall_status=status,
            violation_count=violation_count,
            unclear_count=unclear_count,
            overridden_count=overridden_count,
            risk_type_breakdown=self._breakdown(policy_findings),
            clusters=[
                self._cluster(risk_type, policy_findings, overridden, drivers)
                for risk_type in RISK_TYPES
            ],
            top_drivers=drivers[: self.config.limit("aggregation_top_drivers")],
            findings=[self._view(f, overridden) for f in policy_findings],
            generated_at=self.clock(),
        )

        logger.info(
            f"Aggregated {contract_version_id}/{policy_id}: raw={raw_score} "
            f"effective={effective_score} status={status}"
        )
        return aggregation

    # =========================================================
    # HELPERS
    # =========================================================

    def _clamp_score(self, score: int, contract_version_id: str) -> int:
        if 0 <= score <= MAX_SCORE:
            return score
        logger.warning(
            f"Baseline score {score} for {contract_version_id} is outside 0..{MAX_SCORE}; clamping"
        )
        return max(0, min(MAX_SCORE, score))

    def _weight(self, finding: ClauseFinding) -> int:
        if finding.weight is None:
            return self.config.default_rule_weight
        return finding.weight

    @staticmethod
    def _is_overridden(finding: ClauseFinding, overridden: FrozenSet[str]) -> bool:
        return finding.compliance_status in SCORED_STATUSES and finding.id in overridden

    def _drivers(
        self,
        findings: Sequence[ClauseFinding],
        overridden: FrozenSet[str],
    ) -> List[ScoreDriver]:
        drivers = [
            ScoreDriver(
                finding_id=f.id,
                clause_type=f.clause_type,
                status=f.compliance_status,
                severity=f.severity,
                risk_type=f.risk_type,
                weight=self._weight(f),
                overridden=f.id in overridden,
                reason=f.recommendation or (
                    "Policy violation." if f.compliance_status == "VIOLATION" else "Needs review."
                ),
            )
            for f in findings
            if f.compliance_status in SCORED_STATUSES
        ]
        return sorted(drivers, key=driver_sort_key)

    @staticmethod
    def _breakdown(findings: Sequence[ClauseFinding]) -> Dict[str, RiskBreakdown]:
        breakdown = {}
        for risk_type in RISK_TYPES:
            scoped = [f for f in findings if f.risk_type == risk_type]
            breakdown[risk_type] = RiskBreakdown(
                violations=sum(1 for f in scoped if f.compliance_status == "VIOLATION"),
                unclear=sum(1 for f in scoped if f.compliance_status == "UNCLEAR"),
            )
        return breakdown

    def _cluster(
        self,
        risk_type: str,
        findings: Sequence[ClauseFinding],
        overridden: FrozenSet[str],
        drivers: List[ScoreDriver],
    ) -> RiskCluster:

        scoped = [f for f in findings if f.risk_type == risk_type]
        violations = [f for f in scoped if f.compliance_status == "VIOLATION"]
        unclear = [f for f in scoped if f.compliance_status == "UNCLEAR"]

        total_weight = sum(self._weight(f) for f in violations if f.id not in overridden)

        severities = [f.severity for f in scoped if f.severity is not None]
        max_severity = min(severities, key=severity_rank) if severities else None

        if any(f.severity == "CRITICAL" for f in violations):
            level = "HIGH"
        elif violations:
            level = "MEDIUM"
        elif unclear:
            level = "NEEDS_REVIEW"
        else:
            level = "OK"

        return RiskCluster(
            risk_type=risk_type,
            level=level,
            violation_count=len(violations),
            unclear_count=len(unclear),
            overridden_count=sum(1 for f in scoped if self._is_overridden(f, overridden)),
            max_severity=max_severity,
            total_weight=total_weight,
            top_drivers=[
                d for d in drivers if d.risk_type == risk_type
            ][: self.config.limit("cluster_top_drivers")],
        )

    def _view(self, finding: ClauseFinding, overridden: FrozenSet[str]) -> AggregatedFinding:
        return AggregatedFinding(
            finding_id=finding.id,
            rule_id=finding.rule_id,
            clause_type=finding.clause_type,
            status=finding.compliance_status,
            overridden=self._is_overridden(finding, overridden),
            severity=finding.severity,
            risk_type=finding.risk_type,
            weight=self._weight(finding),
            found_value=finding.found_value,
            found_text=finding.found_text,
            confidence=finding.confidence,
            recommendation=finding.recommendation,
        )
