from typing import List, Optional

from pydantic import Field

from compliance_engine.configs.taxonomy import (
    ChangeType,
    ClauseType,
    DeltaLabel,
    FindingStatus,
    RiskType,
    Severity,
)
from compliance_engine.models.base import SnapshotModel
from compliance_engine.models.values import ClauseValue


class FindingSnapshot(SnapshotModel):
    status: FindingStatus
    overridden: bool
    found_value: Optional[ClauseValue] = None
    found_text: Optional[str] = None
    confidence: Optional[float] = None


class ChangeItem(SnapshotModel):
    key: str
    clause_type: ClauseType
    rule_id: Optional[str] = None
    severity: Optional[Severity] = None
    risk_type: Optional[RiskType] = None
    weight: int
    change_type: ChangeType
    from_snapshot: Optional[FindingSnapshot] = Field(default=None, serialization_alias="from")
    to_snapshot: Optional[FindingSnapshot] = Field(default=None, serialization_alias="to")
    recommendation: Optional[str] = None
    why: str


class CompareDriver(SnapshotModel):
    key: str
    clause_type: ClauseType
    # positive: the target version recovered points on this clause
    delta_impact: int
    reason: str


class ScoreDelta(SnapshotModel):
    raw: int
    effective: int
    label: DeltaLabel


class VersionScores(SnapshotModel):
    contract_version_id: str
    version_number: Optional[int] = None
    raw_score: int
    effective_score: int


class VersionCompareResult(SnapshotModel):
    contract_id: str
    policy_id: str
    from_version: VersionScores
    to_version: VersionScores
    delta: ScoreDelta
    changes: List[ChangeItem]
    top_drivers: List[CompareDriver]

    @property
    def material_changes(self) -> List[ChangeItem]:
        return [c for c in self.changes if c.change_type != "UNCHANGED"]
