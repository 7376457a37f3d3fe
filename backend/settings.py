"""Tunable constants for the pattern discovery engine.

Defaults reproduce the behaviour tuned against real annotation data. Every field
can be overridden through a ``PATTERNS_<FIELD_NAME>`` environment variable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Dict, Optional


@dataclass(frozen=True)
class PatternSettings:
    # Extraction
    entry_batch_size: int = 5
    default_intensity: float = 5.0
    min_mention_length: int = 3

    # Name detection
    name_min_count: int = 3

    # Clustering
    max_sample: int = 100
    initial_threshold: float = 0.12
    small_sample_threshold: float = 0.10
    small_sample_size: int = 20
    threshold_decay: float = 0.8
    threshold_floor: float = 0.05
    stalls_before_decay: int = 2
    stalls_at_floor: int = 5
    iteration_cap: int = 50
    max_target_clusters: int = 12
    min_target_clusters: int = 3
    target_divisor: int = 4
    floor_divisor: int = 25
    checkpoint_every: int = 5

    # Labels
    name_dominance: float = 0.7
    coverage_bonus_ratio: float = 0.5
    coverage_bonus: float = 1.3
    max_sub_patterns: int = 6

    # Filtering
    min_frequency: int = 2
    min_frequency_large: int = 3
    large_corpus_size: int = 100
    max_patterns: int = 20
    fallback_patterns: int = 3

    # Phrase grouping
    jaccard_threshold: float = 0.3
    grouping_batch_size: int = 10
    building_batch_size: int = 3

    def __post_init__(self):
        if self.entry_batch_size < 1 or self.grouping_batch_size < 1 or self.building_batch_size < 1:
            raise ValueError("batch sizes must be at least 1.")
        if self.max_sample < 1:
            raise ValueError("max_sample must be at least 1.")
        if not 0.0 < self.threshold_decay < 1.0:
            raise ValueError("threshold_decay must be between 0 and 1.")
        if self.threshold_floor <= 0:
            raise ValueError("threshold_floor must be positive.")
        if self.iteration_cap < 0:
            raise ValueError("iteration_cap must be non-negative.")
        if self.stalls_before_decay < 1 or self.stalls_at_floor < 1:
            raise ValueError("stall limits must be at least 1.")
        if self.checkpoint_every < 1:
            raise ValueError("checkpoint_every must be at least 1.")

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "PatternSettings":
        """Build settings from ``PATTERNS_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = env.get(f"PATTERNS_{f.name.upper()}")
            if raw is None or not raw.strip():
                continue
            try:
                overrides[f.name] = int(raw) if f.type in ("int", int) else float(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid value for PATTERNS_{f.name.upper()}: {raw!r}") from exc
        return cls(**overrides)
