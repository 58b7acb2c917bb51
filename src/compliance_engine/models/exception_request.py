from datetime import datetime
from typing import Optional

from compliance_engine.configs.taxonomy import ACTIVE_EXCEPTION_STATUSES, ClauseType, ExceptionStatus
from compliance_engine.models.base import BoundaryModel


class ExceptionRequest(BoundaryModel):
    """
    Human request to neutralise the score impact of one finding.

    Lifecycle: REQUESTED -> APPROVED | REJECTED | WITHDRAWN (all terminal).
    Only APPROVED requests that point at a finding have scoring effect.
    """

    id: str
    contract_version_id: str
    policy_id: Optional[str] = None
    clause_finding_id: Optional[str] = None
    clause_type: Optional[ClauseType] = None
    title: str
    justification: str = ""
    status: ExceptionStatus = "REQUESTED"
    requested_by: Optional[str] = None
    decision_reason: Optional[str] = None
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_EXCEPTION_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status != "REQUESTED"
