import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from compliance_engine.audit.audit_logger import AuditLogger
from compliance_engine.configs.default_policy import load_policy
from compliance_engine.configs.engine_config_loader import EngineConfig
from compliance_engine.main import CONFIDENCE_THRESHOLD_ENV, ComplianceEngine, run_workload
from compliance_engine.models.extraction import ClauseExtraction
from compliance_engine.models.workload import Workload
from compliance_engine.tools.logger import setup_logger
from compliance_engine.utils.schema_factory import build_model

logger = setup_logger("mcp-server")
mcp = FastMCP("contract-compliance-engine")

load_dotenv()

AUDIT_DIR_ENV = "COMPLIANCE_AUDIT_DIR"


@lru_cache(maxsize=1)
def _config() -> EngineConfig:
    """
    Load and cache the engine configuration for the server process.
    """
    return EngineConfig().with_confidence_threshold(os.getenv(CONFIDENCE_THRESHOLD_ENV))


def _audit() -> Optional[AuditLogger]:
    audit_dir = os.getenv(AUDIT_DIR_ENV)
    return AuditLogger(Path(audit_dir)) if audit_dir else None


def _extractions(raw: List[Dict]) -> List[ClauseExtraction]:
    # extraction providers add bookkeeping keys (model, latency...); drop them
    return [build_model(ClauseExtraction, item, strict=False) for item in raw]


def _version(version: Dict) -> Dict:
    return {**version, "extractions": _extractions(version.get("extractions") or [])}


def _run(workload: Dict) -> Dict:
    # each call gets its own finding store
    engine = ComplianceEngine(_config())
    return run_workload(engine, Workload.model_validate(workload), audit=_audit())


@mcp.tool()
def evaluate_contract_version(
    contract_id: str,
    contract_version_id: str,
    extractions: List[Dict],
    exceptions: Optional[List[Dict]] = None,
    policy: Optional[Dict] = None,
) -> Dict:
    """
    Score one contract version and return its aggregation, executive
    summary, dashboard row and deal-desk preview.

    Example:
        >>> evaluate_contract_version("c-1", "v-1", [{"clauseType": "LIABILITY",
        ...     "extractedValue": {"capMonths": 12}, "confidence": 0.9}])
    """
    logger.info(f"Evaluating {contract_id}/{contract_version_id} ({len(extractions)} extractions)")
    return _run(
        {
            "contract_id": contract_id,
            "policy": policy,
            "versions": [
                {
                    "id": contract_version_id,
                    "extractions": _extractions(extractions),
                    "exceptions": exceptions or [],
                }
            ],
        }
    )


@mcp.tool()
def compare_contract_versions(
    contract_id: str,
    from_version: Dict,
    to_version: Dict,
    policy: Optional[Dict] = None,
) -> Dict:
    """
    Evaluate two versions and diff them.

    Each version is {"id", "version_number"?, "extractions", "exceptions"?}.
    """
    logger.info(f"Comparing {from_version.get('id')} -> {to_version.get('id')} for {contract_id}")
    return _run(
        {
            "contract_id": contract_id,
            "policy": policy,
            "versions": [_version(from_version), _version(to_version)],
            "compare": {"from": from_version.get("id"), "to": to_version.get("id")},
        }
    )


@mcp.tool()
def default_policy_rules() -> Dict:
    """
    Return the packaged "Company Standard" policy and its rules.
    """
    return load_policy().model_dump(mode="json")
