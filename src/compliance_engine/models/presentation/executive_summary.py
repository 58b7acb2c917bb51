from typing import Dict, List, Literal, Optional

from pydantic import BaseModel

from compliance_engine.configs.taxonomy import DealOutcome, OverallStatus
from compliance_engine.models.aggregation import RiskBreakdown


class ExecutiveSummary(BaseModel):
    verdict: OverallStatus
    headline: str
    paragraphs: List[str]
    key_risks: List[str]
    recommendation: str


class DashboardRow(BaseModel):
    contract_id: str
    contract_version_id: str
    policy_id: str
    effective_score: int
    status: OverallStatus
    violation_count: int
    unclear_count: int
    overridden_count: int
    risk_type_breakdown: Dict[str, RiskBreakdown]


class DealDriver(BaseModel):
    clause_type: str
    risk_type: Optional[str] = None
    severity: Optional[str] = None
    weight: int
    status: str
    recommendation: Optional[str] = None


class DealDecisionCounts(BaseModel):
    violations: int
    critical_violations: int
    unclear: int
    overridden: int
    open_exceptions: int
    approved_exceptions: int


class DealDecisionPreview(BaseModel):
    contract_id: str
    contract_version_id: str
    policy_id: str
    raw_score: int
    effective_score: int
    outcome: DealOutcome
    status_suggestion: Literal["DRAFT"] = "DRAFT"
    counts: DealDecisionCounts
    top_drivers: List[DealDriver]
    rationale_markdown: str
    risk_type_breakdown: Dict[str, RiskBreakdown]
