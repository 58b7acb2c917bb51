from datetime import datetime
from typing import Optional, Tuple

from pydantic import Field

from compliance_engine.configs.taxonomy import (
    ClauseType,
    FindingReason,
    FindingStatus,
    OverallStatus,
    RiskType,
    Severity,
)
from compliance_engine.models.base import BoundaryModel, SnapshotModel
from compliance_engine.models.values import ClauseValue


# -------------------------------------------------------------------
# Clause finding
# -------------------------------------------------------------------

class ClauseFinding(SnapshotModel):
    """
    Outcome of one policy rule against one contract version.

    Rule weight, severity, risk type and recommendation are copies taken
    at evaluation time; later rule edits never reach back into them.
    """

    id: str
    contract_version_id: str
    policy_id: str
    rule_id: Optional[str] = None
    clause_type: ClauseType
    compliance_status: FindingStatus
    reason: FindingReason
    severity: Optional[Severity] = None
    risk_type: Optional[RiskType] = None
    weight: Optional[int] = None
    found_value: Optional[ClauseValue] = None
    found_text: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    recommendation: Optional[str] = None


# -------------------------------------------------------------------
# Baseline compliance record
# -------------------------------------------------------------------

class BaselineCompliance(BoundaryModel):
    """
    Precomputed raw score/status pair for one (version, policy).
    """
    contract_version_id: str
    policy_id: str
    score: int
    status: OverallStatus


# -------------------------------------------------------------------
# Evaluation run
# -------------------------------------------------------------------

class EvaluationRun(SnapshotModel):
    run_id: str
    contract_version_id: str
    policy_id: str
    findings: Tuple[ClauseFinding, ...] = ()
    baseline: BaselineCompliance
    evaluated_at: datetime

    @property
    def finding_count(self) -> int:
        return len(self.findings)

    @property
    def violation_count(self) -> int:
        return sum(1 for f in self.findings if f.compliance_status == "VIOLATION")

    @property
    def average_confidence(self) -> float:
        """
        Mean source confidence over findings that carried one.
        """
        scores = [f.confidence for f in self.findings if f.confidence is not None]
        if not scores:
            return 0.0
        return round(sum(scores) / len(scores), 2)

    def audit_summary(self) -> dict:
        return {
            "run_id": self.run_id,
            "contract_version_id": self.contract_version_id,
            "policy_id": self.policy_id,
            "finding_count": self.finding_count,
            "violation_count": self.violation_count,
            "average_confidence": self.average_confidence,
            "score": self.baseline.score,
            "status": self.baseline.status,
        }
