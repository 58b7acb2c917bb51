from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from compliance_engine.agents.comparators import ComparatorRegistry, default_registry
from compliance_engine.agents.confidence_gate import ConfidenceGate, clamp_confidence
from compliance_engine.configs.engine_config_loader import EngineConfig
from compliance_engine.configs.taxonomy import SUPPORTED_RULE_TYPES
from compliance_engine.models.extraction import ClauseExtraction
from compliance_engine.models.findings import (
    BaselineCompliance,
    ClauseFinding,
    EvaluationRun,
)
from compliance_engine.models.policy import Policy, PolicyRule
from compliance_engine.tools.checksum import finding_id, run_id
from compliance_engine.tools.logger import setup_logger

logger = setup_logger("compliance-engine.evaluator")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RuleEvaluator:
    """
    Deterministic policy evaluation for one contract version.

    RESPONSIBILITY:
    - One finding per REQUIRED rule (one per clause type)
    - Route untrustworthy extractions to UNCLEAR via the confidence gate
    - Delegate the value check to the comparator registered for the clause type
    - Compute the raw baseline score and status

    It does NOT look at exceptions; overrides are applied at aggregation time.
    """

    def __init__(
        self,
        config: EngineConfig,
        comparators: Optional[ComparatorRegistry] = None,
        clock: Clock = utc_now,
    ):
        self.config = config
        self.gate = ConfidenceGate(config.confidence_threshold)
        self.comparators = comparators or default_registry()
        self.clock = clock

    # =========================================================
    # PUBLIC API
    # =========================================================

    def evaluate(
        self,
        contract_version_id: str,
        policy: Policy,
        extractions: Sequence[ClauseExtraction],
    ) -> EvaluationRun:

        by_clause = self._select_extractions(extractions)

        findings: List[ClauseFinding] = []
        for rule in self._applicable_rules(policy):
            finding = self._evaluate_rule(
                contract_version_id=contract_version_id,
                policy_id=policy.id,
                rule=rule,
                extraction=by_clause.get(rule.clause_type),
            )
            logger.debug(
                f"{contract_version_id} {rule.clause_type}: "
                f"{finding.compliance_status} ({finding.reason})"
            )
            findings.append(finding)

        baseline = self._baseline(contract_version_id, policy.id, findings)
        evaluated_at = self.clock()

        return EvaluationRun(
            run_id=run_id(
                contract_version_id,
                policy.id,
                [f.id for f in findings],
                evaluated_at.isoformat(),
            ),
            contract_version_id=contract_version_id,
            policy_id=policy.id,
            findings=tuple(findings),
            baseline=baseline,
            evaluated_at=evaluated_at,
        )

    # =========================================================
    # RULE SELECTION
    # =========================================================

    def _applicable_rules(self, policy: Policy) -> List[PolicyRule]:
        seen: Dict[str, str] = {}
        rules: List[PolicyRule] = []

        for rule in policy.rules:
            if rule.rule_type not in SUPPORTED_RULE_TYPES:
                logger.warning(
                    f"Skipping rule {rule.id}: unsupported rule type {rule.rule_type}"
                )
                continue

            if rule.clause_type in seen:
                logger.warning(
                    f"Skipping rule {rule.id}: {rule.clause_type} already covered "
                    f"by rule {seen[rule.clause_type]} in policy {policy.id}"
                )
                continue

            seen[rule.clause_type] = rule.id
            rules.append(rule)

        return rules

    def _select_extractions(
        self,
        extractions: Sequence[ClauseExtraction],
    ) -> Dict[str, ClauseExtraction]:
        """
        Keep the most confident extraction per clause type (first on ties).
        """
        best: Dict[str, Tuple[float, ClauseExtraction]] = {}

        for extraction in extractions:
            score = clamp_confidence(extraction.confidence)
            current = best.get(extraction.clause_type)
            if current is None or score > current[0]:
                best[extraction.clause_type] = (score, extraction)

        return {clause_type: pair[1] for clause_type, pair in best.items()}

    # =========================================================
    # SINGLE RULE
    # =========================================================

    def _evaluate_rule(
        self,
        contract_version_id: str,
        policy_id: str,
        rule: PolicyRule,
        extraction: Optional[ClauseExtraction],
    ) -> ClauseFinding:

        if extraction is None:
            status, reason = "UNCLEAR", "NO_EXTRACTION"
        elif not self.gate.is_usable(extraction.confidence):
            status, reason = "UNCLEAR", "LOW_CONFIDENCE"
        else:
            comparator = self.comparators.for_clause_type(rule.clause_type)
            verdict = comparator.compare(rule.expected_value, extraction)
            if verdict is None:
                status, reason = "UNCLEAR", "VALUE_NOT_COMPARABLE"
            elif verdict:
                status, reason = "COMPLIANT", "MATCHED"
            else:
                status, reason = "VIOLATION", "MISMATCHED"

        return ClauseFinding(
            id=finding_id(contract_version_id, policy_id, rule.clause_type, rule.id),
            contract_version_id=contract_version_id,
            policy_id=policy_id,
            rule_id=rule.id,
            clause_type=rule.clause_type,
            compliance_status=status,
            reason=reason,
            severity=rule.severity,
            risk_type=rule.risk_type,
            weight=rule.weight,
            found_value=extraction.extracted_value if extraction else None,
            found_text=extraction.extracted_text if extraction else None,
            confidence=clamp_confidence(extraction.confidence) if extraction else None,
            recommendation=rule.recommendation,
        )

    # =========================================================
    # BASELINE
    # =========================================================

    def _baseline(
        self,
        contract_version_id: str,
        policy_id: str,
        findings: List[ClauseFinding],
    ) -> BaselineCompliance:

        violations = [f for f in findings if f.compliance_status == "VIOLATION"]

        deduction = sum(
            f.weight if f.weight is not None else self.config.default_rule_weight
            for f in violations
        )
        score = max(0, self.config.full_score - deduction)

        if any(f.severity == "CRITICAL" for f in violations):
            score = min(score, self.config.critical_score_cap)

        return BaselineCompliance(
            contract_version_id=contract_version_id,
            policy_id=policy_id,
            score=score,
            status=self.baseline_status(score),
        )

    def baseline_status(self, score: int) -> str:
        thresholds = self.config.baseline_status
        if score >= thresholds.get("compliant_at", 80):
            return "COMPLIANT"
        if score >= thresholds.get("needs_review_at", 50):
            return "NEEDS_REVIEW"
        return "NON_COMPLIANT"
