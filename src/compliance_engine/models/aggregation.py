from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import Field, model_validator

from compliance_engine.configs.taxonomy import (
    ClauseType,
    ClusterLevel,
    FindingStatus,
    OverallStatus,
    RiskType,
    Severity,
)
from compliance_engine.models.base import SnapshotModel
from compliance_engine.models.values import ClauseValue


class ScoreDriver(SnapshotModel):
    finding_id: str
    clause_type: ClauseType
    status: FindingStatus
    severity: Optional[Severity] = None
    risk_type: Optional[RiskType] = None
    weight: int
    overridden: bool = False
    reason: str


class RiskBreakdown(SnapshotModel):
    violations: int = 0
    unclear: int = 0


class RiskCluster(SnapshotModel):
    risk_type: RiskType
    level: ClusterLevel
    violation_count: int
    unclear_count: int
    overridden_count: int
    max_severity: Optional[Severity] = None
    # weight of violations still counting against the score
    total_weight: int
    top_drivers: List[ScoreDriver] = Field(default_factory=list)


class AggregatedFinding(SnapshotModel):
    """
    Read-only view of one finding as it stands inside an aggregation,
    including whether an approved exception neutralised it.
    """
    finding_id: str
    rule_id: Optional[str] = None
    clause_type: ClauseType
    status: FindingStatus
    overridden: bool
    severity: Optional[Severity] = None
    risk_type: Optional[RiskType] = None
    weight: int
    found_value: Optional[ClauseValue] = None
    found_text: Optional[str] = None
    confidence: Optional[float] = None
    recommendation: Optional[str] = None


class ComplianceAggregation(SnapshotModel):
    ok: Literal[True] = True
    contract_id: str
    contract_version_id: str
    policy_id: str
    evaluation_run_id: Optional[str] = None

    raw_score: int = Field(ge=0, le=100)
    effective_score: int = Field(ge=0, le=100)
    overall_status: OverallStatus

    violation_count: int
    unclear_count: int
    overridden_count: int

    risk_type_breakdown: Dict[str, RiskBreakdown]
    clusters: List[RiskCluster]
    top_drivers: List[ScoreDriver]
    findings: List[AggregatedFinding]

    generated_at: datetime

    @model_validator(mode="after")
    def _effective_never_below_raw(self):
        if self.effective_score < self.raw_score:
            raise ValueError(
                f"effective_score {self.effective_score} is below raw_score {self.raw_score}"
            )
        return self


class NotComputed(SnapshotModel):
    """
    Typed "nothing to report yet" result. Callers run evaluation first;
    the engine never synthesises a zero score in its place.
    """
    ok: Literal[False] = False
    code: Literal["NOT_COMPUTED", "MISSING_ANALYSIS"]
    contract_version_id: str
    policy_id: str
    message: str
