from typing import Dict, Literal, Optional, Set, Tuple

ClauseType = Literal[
    "TERMINATION",
    "LIABILITY",
    "INTELLECTUAL_PROPERTY",
    "PAYMENT_TERMS",
    "DATA_PRIVACY",
    "CONFIDENTIALITY",
    "GOVERNING_LAW",
    "SLA",
    "SCOPE",
    "OTHER",
]

# Rule types the evaluator knows how to score; others are skipped
SUPPORTED_RULE_TYPES = {"REQUIRED"}

Severity = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]

RiskType = Literal["LEGAL", "FINANCIAL", "OPERATIONAL", "DATA", "SECURITY"]

FindingStatus = Literal["COMPLIANT", "VIOLATION", "UNCLEAR"]

ExceptionStatus = Literal["REQUESTED", "APPROVED", "REJECTED", "WITHDRAWN"]

OverallStatus = Literal["COMPLIANT", "NEEDS_REVIEW", "NON_COMPLIANT"]

ClusterLevel = Literal["OK", "NEEDS_REVIEW", "MEDIUM", "HIGH"]

ChangeType = Literal["UNCHANGED", "ADDED", "REMOVED", "MODIFIED"]

DeltaLabel = Literal["IMPROVED", "WORSENED", "UNCHANGED"]

DealOutcome = Literal["GO", "NO_GO", "NEEDS_REVIEW"]

# Why a finding ended up with its status
FindingReason = Literal[
    "MATCHED",
    "MISMATCHED",
    "LOW_CONFIDENCE",
    "NO_EXTRACTION",
    "VALUE_NOT_COMPARABLE",
]

# Cluster order is part of the output contract
RISK_TYPES: Tuple[str, ...] = (
    "LEGAL",
    "FINANCIAL",
    "OPERATIONAL",
    "DATA",
    "SECURITY",
)

SEVERITIES: Tuple[str, ...] = ("LOW", "MEDIUM", "HIGH", "CRITICAL")

# Statuses that carry score impact and are eligible for override
SCORED_STATUSES: Set[str] = {"VIOLATION", "UNCLEAR"}

ACTIVE_EXCEPTION_STATUSES: Set[str] = {"REQUESTED", "APPROVED"}

# Lower rank == more severe; None sorts last
SEVERITY_RANK: Dict[Optional[str], int] = {
    "CRITICAL": 0,
    "HIGH": 1,
    "MEDIUM": 2,
    "LOW": 3,
    None: 4,
}

CLUSTER_LEVEL_PRIORITY: Dict[str, int] = {
    "HIGH": 0,
    "MEDIUM": 1,
    "NEEDS_REVIEW": 2,
    "OK": 3,
}


def severity_rank(severity: Optional[str]) -> int:
    return SEVERITY_RANK.get(severity, len(SEVERITY_RANK))
