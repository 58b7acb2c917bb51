import copy
import math
from pathlib import Path
from typing import Any, Optional

import yaml

from compliance_engine.tools.logger import setup_logger

logger = setup_logger("compliance-engine.config")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "engine_config.yaml"

DEFAULT_CONFIDENCE_THRESHOLD = 0.75

EXPECTED_LIMITS = {
    "aggregation_top_drivers",
    "cluster_top_drivers",
    "compare_top_drivers",
    "executive_key_risks",
    "deal_top_drivers",
}


def parse_confidence_threshold(
    raw: Any,
    fallback: Optional[float] = DEFAULT_CONFIDENCE_THRESHOLD,
) -> Optional[float]:
    """
    Parse a runtime threshold (typically the CONFIDENCE_THRESHOLD env var).

    Unset, non-numeric, NaN or out-of-range input returns `fallback`.

    Example:
        >>> parse_confidence_threshold("0.8")
        0.8
        >>> parse_confidence_threshold("1.7")
        0.75
    """
    if raw is None or isinstance(raw, bool):
        return fallback

    if isinstance(raw, str) and not raw.strip():
        return fallback

    try:
        value = float(raw)
    except (TypeError, ValueError):
        return fallback

    if math.isnan(value) or not (0.0 <= value <= 1.0):
        return fallback

    return value


class EngineConfig:
    """
    Loads and validates the scoring configuration.

    Supports:
    - Central configuration (mandatory)
    - Optional workspace override file, deep-merged on top
    - Fail-fast validation

    The engine receives this object at construction time; nothing in the
    scoring path reads process environment directly.
    """

    def __init__(
        self,
        central_path: Path = DEFAULT_CONFIG_PATH,
        override_path: Path | None = None,
    ):
        self.central_raw = self._load_yaml(central_path, "central_config")

        self.override_raw = None
        if override_path:
            self.override_raw = self._load_yaml(override_path, "workspace_override")

        self.raw = self._merge(
            self.central_raw,
            self.override_raw.get("overrides") if self.override_raw else None,
        )

        # -------------------------------------------------
        # Metadata
        # -------------------------------------------------
        self.version = str(self.raw["version"])
        self.source = self.raw.get("source", "unknown")

        # -------------------------------------------------
        # Sections
        # -------------------------------------------------
        self.thresholds = self.raw["thresholds"]
        self.scoring = self.raw.get("scoring", {})
        self.baseline_status = self.raw.get("baseline_status", {})
        self.limits = self.raw.get("limits", {})

        self._validate_thresholds()
        self._validate_scoring()
        self._validate_baseline_status()
        self._validate_limits()

    # =========================================================
    # Accessors
    # =========================================================

    @property
    def confidence_threshold(self) -> float:
        return float(self.thresholds["confidence"])

    @property
    def non_compliant_below(self) -> int:
        return int(self.thresholds.get("non_compliant_below", 60))

    @property
    def full_score(self) -> int:
        return int(self.scoring.get("full_score", 100))

    @property
    def critical_score_cap(self) -> int:
        return int(self.scoring.get("critical_score_cap", 40))

    @property
    def default_rule_weight(self) -> int:
        return int(self.scoring.get("default_rule_weight", 1))

    def limit(self, name: str) -> int:
        return int(self.limits[name])

    # =========================================================
    # Runtime threshold
    # =========================================================

    def with_confidence_threshold(self, raw: Any) -> "EngineConfig":
        """
        Return a copy whose confidence threshold comes from a runtime value.
        Invalid or unset input keeps the configured threshold.
        """
        current = self.confidence_threshold
        threshold = parse_confidence_threshold(raw, fallback=None)

        if threshold is None:
            if raw is not None and str(raw).strip():
                logger.warning(
                    f"Ignoring invalid confidence threshold {raw!r}; using {current}"
                )
            threshold = current

        clone = copy.copy(self)
        clone.raw = copy.deepcopy(self.raw)
        clone.thresholds = clone.raw["thresholds"]
        clone.thresholds["confidence"] = threshold
        clone.scoring = clone.raw.get("scoring", {})
        clone.baseline_status = clone.raw.get("baseline_status", {})
        clone.limits = clone.raw.get("limits", {})
        return clone

    # =========================================================
    # YAML loading
    # =========================================================

    def _load_yaml(self, path: Path, label: str) -> dict:
        if path is None:
            raise ValueError(f"{label} path must be provided")

        if not path.exists():
            raise FileNotFoundError(f"{label} file not found: {path}")

        with open(path, "r") as f:
            raw = yaml.safe_load(f)

        if raw is None:
            raise ValueError(f"{label} file is empty or invalid YAML: {path}")

        return raw

    def _merge(self, base: dict, overrides: dict | None) -> dict:
        """
        Deep merge with override priority.
        """
        merged = copy.deepcopy(base)

        if not overrides:
            return merged

        def deep_merge(dst: dict, src: dict):
            for key, value in src.items():
                if (
                    key in dst
                    and isinstance(dst[key], dict)
                    and isinstance(value, dict)
                ):
                    deep_merge(dst[key], value)
                else:
                    dst[key] = value

        deep_merge(merged, overrides)
        return merged

    # =========================================================
    # Validation
    # =========================================================

    def _validate_thresholds(self):
        t = self.thresholds

        confidence = t.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) \
                or not (0.0 <= confidence <= 1.0):
            raise ValueError("thresholds.confidence must be between 0 and 1")

        floor = t.get("non_compliant_below", 60)
        if not isinstance(floor, int) or not (0 <= floor <= 100):
            raise ValueError("thresholds.non_compliant_below must be an integer in 0..100")

    def _validate_scoring(self):
        s = self.scoring

        full = s.get("full_score", 100)
        if full != 100:
            raise ValueError("scoring.full_score must be 100")

        cap = s.get("critical_score_cap", 40)
        if not isinstance(cap, int) or not (0 <= cap <= 100):
            raise ValueError("scoring.critical_score_cap must be an integer in 0..100")

        weight = s.get("default_rule_weight", 1)
        if not isinstance(weight, int) or weight < 1:
            raise ValueError("scoring.default_rule_weight must be a positive integer")

    def _validate_baseline_status(self):
        b = self.baseline_status
        compliant = b.get("compliant_at", 80)
        review = b.get("needs_review_at", 50)

        if not all(isinstance(v, int) for v in (compliant, review)):
            raise ValueError("baseline_status thresholds must be integers")

        if not (0 <= review <= compliant <= 100):
            raise ValueError(
                "baseline_status requires 0 <= needs_review_at <= compliant_at <= 100"
            )

    def _validate_limits(self):
        missing = EXPECTED_LIMITS - set(self.limits.keys())
        if missing:
            raise ValueError(f"limits must define {sorted(missing)}")

        for name in EXPECTED_LIMITS:
            value = self.limits[name]
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"limits.{name} must be a positive integer")

    # =========================================================
    # Audit helpers
    # =========================================================

    def audit_metadata(self) -> dict:
        """
        Attach this to CLI / tool output for traceability.
        """
        return {
            "config_version": self.version,
            "config_source": self.source,
            "confidence_threshold": self.confidence_threshold,
            "workspace": self.override_raw.get("workspace")
            if self.override_raw
            else "central",
        }
