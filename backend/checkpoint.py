"""Cooperative cancellation and progress reporting for pattern analysis runs.

Long-running stages call ``RunContext.checkpoint`` at fixed loop boundaries. A
checkpoint polls the caller's cancellation predicate and forwards progress to the
caller's callback. Nothing is interrupted between checkpoints.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional, Set

from models import ProgressUpdate


class AnalysisAborted(Exception):
    """Raised at a checkpoint once the caller asked for cancellation."""

    def __init__(self, stage: str = ""):
        self.stage = stage
        message = "Analysis aborted by user"
        if stage:
            message = f"{message} (during {stage})"
        super().__init__(message)


class CancellationToken:
    """Thread-safe cancellation flag usable directly as an abort predicate."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __call__(self) -> bool:
        return self._event.is_set()


class RunContext:
    """Per-run state threaded through every stage of one analysis."""

    def __init__(
        self,
        should_abort: Optional[Callable[[], bool]] = None,
        on_progress: Optional[Callable[[ProgressUpdate], None]] = None,
        progress_offset: float = 0.0,
        progress_scale: float = 1.0,
    ):
        self.should_abort = should_abort
        self.on_progress = on_progress
        self.progress_offset = progress_offset
        self.progress_scale = progress_scale
        self.detected_names: Set[str] = set()
        self.last_fraction = 0.0
        self.last_stage = ""
        self.checkpoints = 0

    def check_abort(self, stage: str = "") -> None:
        if self.should_abort is not None and self.should_abort():
            raise AnalysisAborted(stage)

    def checkpoint(self, stage: str, fraction: Optional[float] = None) -> None:
        """Yield point: honour cancellation, then report progress."""
        self.checkpoints += 1
        self.check_abort(stage)
        if fraction is None:
            fraction = self.last_fraction
        scaled = self.progress_offset + self.progress_scale * min(1.0, max(0.0, float(fraction)))
        # Progress never moves backwards within a run.
        scaled = max(self.last_fraction, min(1.0, scaled))
        self.last_fraction = scaled
        self.last_stage = stage
        if self.on_progress is None:
            return
        try:
            self.on_progress(ProgressUpdate(stage=stage, fraction=scaled))
        except AnalysisAborted:
            raise
        except Exception as exc:
            print(f"checkpoint: progress callback failed at '{stage}': {exc}")
