import threading
from typing import Dict, List, Optional, Tuple

from compliance_engine.models.findings import EvaluationRun
from compliance_engine.tools.logger import setup_logger

logger = setup_logger("compliance-engine.store")

PairKey = Tuple[str, str]


class FindingStore:
    """
    In-process, versioned store of evaluation runs.

    Every committed run is kept under its run id. Each (version, policy)
    pair has a "current run" pointer which is swapped under a lock once
    the new run is fully built, so a reader sees either the whole old
    finding set or the whole new one.

    Example:
        >>> store = FindingStore()
        >>> store.commit(run)
        >>> store.current("v1", "company-standard").run_id == run.run_id
        True
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._runs: Dict[str, EvaluationRun] = {}
        self._current: Dict[PairKey, str] = {}
        self._history: Dict[PairKey, List[str]] = {}

    # =========================================================
    # Writes
    # =========================================================

    def commit(self, run: EvaluationRun) -> Optional[str]:
        """
        Make `run` the current run for its pair.
        Returns the run id it replaced, if any.
        """
        key = (run.contract_version_id, run.policy_id)

        with self._lock:
            previous = self._current.get(key)
            self._runs[run.run_id] = run
            history = self._history.setdefault(key, [])
            if run.run_id not in history:
                history.append(run.run_id)
            self._current[key] = run.run_id

        logger.info(
            f"Committed run {run.run_id} for {key[0]}/{key[1]} "
            f"({run.finding_count} findings, replaced={previous})"
        )
        return previous

    # =========================================================
    # Reads
    # =========================================================

    def current(self, contract_version_id: str, policy_id: str) -> Optional[EvaluationRun]:
        with self._lock:
            run_id = self._current.get((contract_version_id, policy_id))
            return self._runs.get(run_id) if run_id else None

    def get(self, run_id: str) -> Optional[EvaluationRun]:
        with self._lock:
            return self._runs.get(run_id)

    def history(self, contract_version_id: str, policy_id: str) -> List[EvaluationRun]:
        """
        All runs committed for the pair, oldest first.
        """
        with self._lock:
            ids = list(self._history.get((contract_version_id, policy_id), []))
            return [self._runs[i] for i in ids]
