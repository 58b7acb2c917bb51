from typing import Dict, List, Optional

from compliance_engine.configs.engine_config_loader import EngineConfig
from compliance_engine.models.aggregation import AggregatedFinding, ComplianceAggregation
from compliance_engine.models.comparison import (
    ChangeItem,
    CompareDriver,
    FindingSnapshot,
    ScoreDelta,
    VersionCompareResult,
    VersionScores,
)
from compliance_engine.utils.stable_value import canonical_value, display_value, truncate


def delta_label(effective_delta: int) -> str:
    if effective_delta > 0:
        return "IMPROVED"
    if effective_delta < 0:
        return "WORSENED"
    return "UNCHANGED"


class VersionComparisonAgent:
    """
    Diffs two already-computed aggregations of the same policy.

    Pure: it reads its two inputs and nothing else, so it can be called
    repeatedly with the same result.
    """

    def __init__(self, config: EngineConfig):
        self.config = config

    # =========================================================
    # PUBLIC API
    # =========================================================

    def compare(
        self,
        from_aggregation: ComplianceAggregation,
        to_aggregation: ComplianceAggregation,
        from_version_number: Optional[int] = None,
        to_version_number: Optional[int] = None,
    ) -> VersionCompareResult:

        if from_aggregation.policy_id != to_aggregation.policy_id:
            raise ValueError(
                "Cannot compare aggregations of different policies: "
                f"{from_aggregation.policy_id} vs {to_aggregation.policy_id}"
            )

        from_by_key = self._by_key(from_aggregation.findings)
        to_by_key = self._by_key(to_aggregation.findings)

        keys = list(from_by_key.keys())
        keys += [k for k in to_by_key.keys() if k not in from_by_key]

        changes = [self._change(k, from_by_key.get(k), to_by_key.get(k)) for k in keys]

        raw_delta = to_aggregation.raw_score - from_aggregation.raw_score
        effective_delta = to_aggregation.effective_score - from_aggregation.effective_score

        return VersionCompareResult(
            contract_id=to_aggregation.contract_id,
            policy_id=to_aggregation.policy_id,
            from_version=self._scores(from_aggregation, from_version_number),
            to_version=self._scores(to_aggregation, to_version_number),
            delta=ScoreDelta(
                raw=raw_delta,
                effective=effective_delta,
                label=delta_label(effective_delta),
            ),
            changes=changes,
            top_drivers=self._top_drivers(keys, from_by_key, to_by_key),
        )

    # =========================================================
    # CHANGE ITEMS
    # =========================================================

    @staticmethod
    def _by_key(findings: List[AggregatedFinding]) -> Dict[str, AggregatedFinding]:
        by_key: Dict[str, AggregatedFinding] = {}
        for f in findings:
            by_key.setdefault(f.clause_type, f)
        return by_key

    @staticmethod
    def _scores(aggregation: ComplianceAggregation, version_number: Optional[int]) -> VersionScores:
        return VersionScores(
            contract_version_id=aggregation.contract_version_id,
            version_number=version_number,
            raw_score=aggregation.raw_score,
            effective_score=aggregation.effective_score,
        )

    @staticmethod
    def _snapshot(finding: Optional[AggregatedFinding]) -> Optional[FindingSnapshot]:
        if finding is None:
            return None
        return FindingSnapshot(
            status=finding.status,
            overridden=finding.overridden,
            found_value=finding.found_value,
            found_text=finding.found_text,
            confidence=finding.confidence,
        )

    def _change(
        self,
        key: str,
        from_f: Optional[AggregatedFinding],
        to_f: Optional[AggregatedFinding],
    ) -> ChangeItem:

        if from_f is None:
            change_type = "ADDED"
        elif to_f is None:
            change_type = "REMOVED"
        elif (
            from_f.status == to_f.status
            and from_f.overridden == to_f.overridden
            and canonical_value(from_f.found_value) == canonical_value(to_f.found_value)
        ):
            change_type = "UNCHANGED"
        else:
            change_type = "MODIFIED"

        source = from_f or to_f

        return ChangeItem(
            key=key,
            clause_type=source.clause_type,
            rule_id=source.rule_id,
            severity=source.severity,
            risk_type=source.risk_type,
            weight=source.weight,
            change_type=change_type,
            from_snapshot=self._snapshot(from_f),
            to_snapshot=self._snapshot(to_f),
            recommendation=source.recommendation,
            why=self._why(change_type, from_f, to_f),
        )

    def _why(
        self,
        change_type: str,
        from_f: Optional[AggregatedFinding],
        to_f: Optional[AggregatedFinding],
    ) -> str:
        if change_type == "ADDED":
            return f"Clause added in v2: {to_f.status}"

        if change_type == "REMOVED":
            return f"Clause removed in v2 (was: {from_f.status})"

        if change_type == "UNCHANGED":
            return "Unchanged"

        threshold = f"{self.config.confidence_threshold:g}"
        parts: List[str] = []

        # status transition first, then override, then value
        if from_f.status != to_f.status:
            parts.append(f"Compliance changed: {from_f.status} → {to_f.status}")
            if to_f.status == "UNCLEAR":
                parts.append(f"Confidence below threshold ({threshold})")
            elif from_f.status == "UNCLEAR":
                parts.append(f"Confidence now above threshold ({threshold})")

        if from_f.overridden != to_f.overridden:
            if to_f.overridden:
                parts.append("Approved exception applied in v2")
            else:
                parts.append("Override no longer applied in v2")

        value_from = display_value(from_f.found_value)
        value_to = display_value(to_f.found_value)
        if (
            value_from
            and value_to
            and canonical_value(from_f.found_value) != canonical_value(to_f.found_value)
        ):
            parts.append(f"Value changed: {truncate(value_from)} → {truncate(value_to)}")

        return ". ".join(parts) if parts else "Content or status changed"

    # =========================================================
    # TOP DRIVERS
    # =========================================================

    @staticmethod
    def _impact(finding: Optional[AggregatedFinding]) -> int:
        if finding is None or finding.status != "VIOLATION" or finding.overridden:
            return 0
        return finding.weight

    def _top_drivers(
        self,
        keys: List[str],
        from_by_key: Dict[str, AggregatedFinding],
        to_by_key: Dict[str, AggregatedFinding],
    ) -> List[CompareDriver]:

        drivers = []
        for key in keys:
            delta = self._impact(from_by_key.get(key)) - self._impact(to_by_key.get(key))
            if delta == 0:
                continue
            source = from_by_key.get(key) or to_by_key.get(key)
            drivers.append(
                CompareDriver(
                    key=key,
                    clause_type=source.clause_type,
                    delta_impact=delta,
                    reason="Improved" if delta > 0 else "Worsened",
                )
            )

        drivers.sort(key=lambda d: (-abs(d.delta_impact), d.key))
        return drivers[: self.config.limit("compare_top_drivers")]
