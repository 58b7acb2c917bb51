from pathlib import Path

import yaml

from compliance_engine.models.policy import Policy

DEFAULT_POLICY_PATH = Path(__file__).resolve().parent / "default_policy.yaml"


def load_policy(path: Path = DEFAULT_POLICY_PATH) -> Policy:
    """
    Load a policy definition (policy header + rules) from YAML.

    Every rule is stamped with the policy id unless it names its own.

    Example:
        >>> policy = load_policy()
        >>> len(policy.rules)
        7
    """
    if not path.exists():
        raise FileNotFoundError(f"Policy file not found: {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f)

    if not raw:
        raise ValueError(f"Policy YAML is empty or invalid: {path}")

    header = raw.get("policy") or {}
    if not header.get("id"):
        raise ValueError(f"Policy file must define policy.id: {path}")

    rules = [
        {"policy_id": header["id"], **rule}
        for rule in raw.get("rules", [])
    ]

    return Policy.model_validate(
        {
            "id": header["id"],
            "name": header.get("name", header["id"]),
            "rules": rules,
        }
    )
