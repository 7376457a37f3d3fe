"""Backend application state: in-flight analysis runs and their cancellation tokens."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from checkpoint import CancellationToken
from models import ProgressUpdate


@dataclass
class AnalysisRun:
    run_id: str
    token: CancellationToken = field(default_factory=CancellationToken)
    stage: str = ""
    fraction: float = 0.0
    finished: bool = False


class AnalysisRuns:
    """Registry of runs so an abort request can reach the worker thread."""

    def __init__(self, max_finished: int = 100):
        self._lock = threading.RLock()
        self._runs: Dict[str, AnalysisRun] = {}
        self.max_finished = max_finished

    def start(self, run_id: Optional[str] = None) -> AnalysisRun:
        with self._lock:
            run_id = run_id or uuid.uuid4().hex
            existing = self._runs.get(run_id)
            if existing is not None and not existing.finished:
                raise ValueError(f"Run '{run_id}' is already in progress")
            run = AnalysisRun(run_id=run_id)
            self._runs[run_id] = run
            self._prune()
            return run

    def get(self, run_id: str) -> Optional[AnalysisRun]:
        with self._lock:
            return self._runs.get(run_id)

    def record_progress(self, run_id: str, update: ProgressUpdate) -> None:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                return
            run.stage = update.stage
            run.fraction = update.fraction

    def abort(self, run_id: str) -> bool:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                return False
            run.token.cancel()
            return True

    def finish(self, run_id: str) -> None:
        with self._lock:
            run = self._runs.get(run_id)
            if run is not None:
                run.finished = True

    def _prune(self) -> None:
        finished = [rid for rid, run in self._runs.items() if run.finished]
        for rid in finished[: max(0, len(finished) - self.max_finished)]:
            del self._runs[rid]
