from datetime import datetime, timezone

import pytest

from compliance_engine.configs.default_policy import load_policy
from compliance_engine.configs.engine_config_loader import EngineConfig
from compliance_engine.models.exception_request import ExceptionRequest
from compliance_engine.models.findings import BaselineCompliance, ClauseFinding

FIXED_NOW = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)

VERSION_ID = "v-1"
POLICY_ID = "company-standard"
CONTRACT_ID = "contract-1"


def fixed_clock():
    return FIXED_NOW


def make_finding(
    finding_id: str,
    clause_type: str = "GOVERNING_LAW",
    status: str = "VIOLATION",
    risk_type="LEGAL",
    severity="MEDIUM",
    weight=5,
    version_id: str = VERSION_ID,
    policy_id: str = POLICY_ID,
    **extra,
) -> ClauseFinding:
    reason = {"VIOLATION": "MISMATCHED", "COMPLIANT": "MATCHED", "UNCLEAR": "LOW_CONFIDENCE"}[status]
    return ClauseFinding(
        id=finding_id,
        contract_version_id=version_id,
        policy_id=policy_id,
        rule_id=f"rule-{clause_type.lower()}",
        clause_type=clause_type,
        compliance_status=status,
        reason=reason,
        severity=severity,
        risk_type=risk_type,
        weight=weight,
        **extra,
    )


def make_baseline(score: int, status: str = "COMPLIANT", version_id: str = VERSION_ID) -> BaselineCompliance:
    return BaselineCompliance(
        contract_version_id=version_id,
        policy_id=POLICY_ID,
        score=score,
        status=status,
    )


def make_exception(
    finding_id,
    status: str = "APPROVED",
    exception_id: str = "exc-1",
    version_id: str = VERSION_ID,
) -> ExceptionRequest:
    return ExceptionRequest(
        id=exception_id,
        contract_version_id=version_id,
        policy_id=POLICY_ID,
        clause_finding_id=finding_id,
        title="Accept foreign governing law",
        status=status,
    )


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def policy():
    return load_policy()
