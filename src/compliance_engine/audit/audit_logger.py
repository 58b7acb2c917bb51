import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict


class AuditLogger:
    """
    Append-only audit logger for engine outputs (one JSONL file per event type).

    Entry points call it; the scoring core never does.

    Example:
        >>> logger = AuditLogger(Path("logs/audit"))
        >>> logger.log("evaluation_run", {"finding_count": 7})
    """

    def __init__(self, log_dir: Path):
        self.log_dir = log_dir
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def log(self, event_type: str, payload: Dict):
        """
        Append a JSONL record for the given event.
        """
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "payload": payload,
        }

        file_path = self.log_dir / f"{event_type}.log.jsonl"

        with open(file_path, "a") as f:
            f.write(json.dumps(record, default=str) + "\n")

    # -------------------------------------------------
    # Engine events
    # -------------------------------------------------

    def log_evaluation_run(self, run, metadata: Dict = None):
        self.log("evaluation_run", {**run.audit_summary(), **(metadata or {})})

    def log_aggregation(self, aggregation, metadata: Dict = None):
        self.log(
            "aggregation_computed",
            {
                "contract_id": aggregation.contract_id,
                "contract_version_id": aggregation.contract_version_id,
                "policy_id": aggregation.policy_id,
                "raw_score": aggregation.raw_score,
                "effective_score": aggregation.effective_score,
                "overall_status": aggregation.overall_status,
                **(metadata or {}),
            },
        )

    def log_comparison(self, result, metadata: Dict = None):
        self.log(
            "versions_compared",
            {
                "contract_id": result.contract_id,
                "policy_id": result.policy_id,
                "from_version_id": result.from_version.contract_version_id,
                "to_version_id": result.to_version.contract_version_id,
                "delta": result.delta.model_dump(),
                **(metadata or {}),
            },
        )
