import hashlib
from typing import Optional

FINDING_ID_PREFIX = "fnd"


def calculate_checksum(content: bytes) -> str:
    """
    Compute a SHA-256 checksum for raw bytes.
    """
    return hashlib.sha256(content).hexdigest()


def finding_id(
    contract_version_id: str,
    policy_id: str,
    clause_type: str,
    rule_id: Optional[str],
) -> str:
    """
    Stable id for the finding a rule produces on a contract version.

    Re-evaluating the same (version, policy, clause type, rule) yields the
    same id, so exceptions that point at a finding survive re-runs.

    Example:
        >>> finding_id("v1", "pol", "LIABILITY", "r-liab")[:4]
        'fnd_'
    """
    material = "|".join(
        [contract_version_id, policy_id, clause_type, rule_id or ""]
    ).encode("utf-8")
    return f"{FINDING_ID_PREFIX}_{calculate_checksum(material)[:24]}"


def run_id(contract_version_id: str, policy_id: str, finding_ids, evaluated_at: str) -> str:
    """
    Id of one evaluation run: digest over the pair, its findings and time.
    """
    material = "|".join(
        [contract_version_id, policy_id, evaluated_at, *sorted(finding_ids)]
    ).encode("utf-8")
    return f"run_{calculate_checksum(material)[:24]}"
