import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from compliance_engine.models.exception_request import ExceptionRequest
from compliance_engine.models.findings import ClauseFinding
from compliance_engine.tools.logger import setup_logger

logger = setup_logger("compliance-engine.exceptions")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def request_exception(
    finding: ClauseFinding,
    title: str,
    justification: str = "",
    requested_by: Optional[str] = None,
    existing: Iterable[ExceptionRequest] = (),
    exception_id: Optional[str] = None,
) -> ExceptionRequest:
    """
    Open a REQUESTED exception against one finding.

    A finding may carry at most one active (REQUESTED or APPROVED)
    exception at a time.
    """
    if finding.compliance_status == "COMPLIANT":
        raise ValueError(f"Finding {finding.id} is compliant; nothing to except")

    for ex in existing:
        if ex.clause_finding_id == finding.id and ex.is_active:
            raise ValueError(
                f"Finding {finding.id} already has an active exception ({ex.id}, {ex.status})"
            )

    if not title.strip():
        raise ValueError("Exception title must not be empty")

    request = ExceptionRequest(
        id=exception_id or f"exc_{uuid.uuid4().hex[:16]}",
        contract_version_id=finding.contract_version_id,
        policy_id=finding.policy_id,
        clause_finding_id=finding.id,
        clause_type=finding.clause_type,
        title=title.strip(),
        justification=justification,
        status="REQUESTED",
        requested_by=requested_by,
    )

    logger.info(f"Exception {request.id} requested for finding {finding.id}")
    return request


def _decide(
    request: ExceptionRequest,
    status: str,
    decided_by: Optional[str],
    reason: Optional[str],
    clock: Callable[[], datetime],
) -> ExceptionRequest:
    if request.status != "REQUESTED":
        raise ValueError(
            f"Exception {request.id} is {request.status}; only REQUESTED exceptions can move to {status}"
        )

    decided = request.model_copy(
        update={
            "status": status,
            "decided_by": decided_by,
            "decision_reason": reason,
            "decided_at": clock(),
        }
    )
    logger.info(f"Exception {request.id}: REQUESTED -> {status}")
    return decided


def approve(
    request: ExceptionRequest,
    decided_by: Optional[str] = None,
    reason: Optional[str] = None,
    clock: Callable[[], datetime] = _utc_now,
) -> ExceptionRequest:
    return _decide(request, "APPROVED", decided_by, reason, clock)


def reject(
    request: ExceptionRequest,
    decided_by: Optional[str] = None,
    reason: Optional[str] = None,
    clock: Callable[[], datetime] = _utc_now,
) -> ExceptionRequest:
    return _decide(request, "REJECTED", decided_by, reason, clock)


def withdraw(
    request: ExceptionRequest,
    decided_by: Optional[str] = None,
    reason: Optional[str] = None,
    clock: Callable[[], datetime] = _utc_now,
) -> ExceptionRequest:
    return _decide(request, "WITHDRAWN", decided_by, reason, clock)
