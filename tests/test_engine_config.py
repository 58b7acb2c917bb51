import textwrap

import pytest

from compliance_engine.configs.default_policy import load_policy
from compliance_engine.configs.engine_config_loader import EngineConfig, parse_confidence_threshold


def _write(tmp_path, name, body):
    path = tmp_path / name
    path.write_text(textwrap.dedent(body))
    return path


def test_packaged_config_defaults():
    config = EngineConfig()

    assert config.confidence_threshold == 0.75
    assert config.non_compliant_below == 60
    assert config.full_score == 100
    assert config.critical_score_cap == 40
    assert config.default_rule_weight == 1
    assert config.limit("cluster_top_drivers") == 3
    assert config.limit("compare_top_drivers") == 5
    assert config.audit_metadata()["workspace"] == "central"


def test_override_file_is_deep_merged(tmp_path):
    override = _write(
        tmp_path,
        "acme.yaml",
        """
        workspace: acme
        overrides:
          thresholds:
            confidence: 0.9
          limits:
            compare_top_drivers: 10
        """,
    )

    config = EngineConfig(override_path=override)

    assert config.confidence_threshold == 0.9
    # untouched siblings survive the merge
    assert config.non_compliant_below == 60
    assert config.limit("compare_top_drivers") == 10
    assert config.limit("cluster_top_drivers") == 3
    assert config.audit_metadata()["workspace"] == "acme"


def test_invalid_override_fails_fast(tmp_path):
    override = _write(
        tmp_path,
        "bad.yaml",
        """
        overrides:
          thresholds:
            confidence: 1.5
        """,
    )

    with pytest.raises(ValueError):
        EngineConfig(override_path=override)


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        EngineConfig(central_path=tmp_path / "missing.yaml")


def test_empty_config_file_raises(tmp_path):
    with pytest.raises(ValueError):
        EngineConfig(central_path=_write(tmp_path, "empty.yaml", ""))


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0.6", 0.6),
        ("1", 1.0),
        (None, 0.75),
        ("", 0.75),
        ("abc", 0.75),
        ("-0.1", 0.75),
        ("1.2", 0.75),
        ("nan", 0.75),
    ],
)
def test_runtime_threshold_falls_back_when_invalid(raw, expected):
    assert parse_confidence_threshold(raw) == expected
    assert EngineConfig().with_confidence_threshold(raw).confidence_threshold == expected


def test_runtime_threshold_does_not_mutate_base_config():
    config = EngineConfig()

    strict = config.with_confidence_threshold("0.9")

    assert strict.confidence_threshold == 0.9
    assert config.confidence_threshold == 0.75


def test_default_policy_has_seven_weighted_rules():
    policy = load_policy()
    weights = {r.clause_type: r.weight for r in policy.rules}

    assert policy.id == "company-standard"
    assert weights == {
        "LIABILITY": 25,
        "DATA_PRIVACY": 15,
        "GOVERNING_LAW": 10,
        "INTELLECTUAL_PROPERTY": 10,
        "TERMINATION": 8,
        "CONFIDENTIALITY": 5,
        "PAYMENT_TERMS": 5,
    }
    assert all(r.policy_id == policy.id for r in policy.rules)
    assert all(r.rule_type == "REQUIRED" for r in policy.rules)
