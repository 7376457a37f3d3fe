"""Average-linkage agglomerative clustering with an adaptive merge threshold.

Every loop iteration, whether it merges or stalls, counts toward a hard
ceiling of ``min(iteration_cap, initial cluster count)``. Stalls lower the
threshold geometrically down to a floor, and repeated stalls at the floor end
the loop, so any similarity distribution terminates.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from checkpoint import RunContext
from models import Cluster, ClusteringResult, Mention
from settings import PatternSettings


class AgglomerativeClusterer:
    def __init__(self, settings: Optional[PatternSettings] = None):
        self.settings = settings or PatternSettings()

    def sample(self, mentions: Sequence[Mention]) -> List[Mention]:
        """Stratified down-sampling by date, keeping every k-th mention."""
        limit = self.settings.max_sample
        if len(mentions) <= limit:
            return list(mentions)
        ordered = sorted(mentions, key=lambda m: m.date)
        step = len(ordered) // limit
        return ordered[::step][:limit]

    def initial_threshold(self, n: int) -> float:
        if n < self.settings.small_sample_size:
            return self.settings.small_sample_threshold
        return self.settings.initial_threshold

    def target_bounds(self, n: int) -> Tuple[int, int]:
        """Return ``(min_clusters, max_clusters)`` for ``n`` mentions."""
        s = self.settings
        max_clusters = min(s.max_target_clusters, max(s.min_target_clusters, n // s.target_divisor))
        min_clusters = max(1, n // s.floor_divisor)
        return min_clusters, max_clusters

    def best_pair(self, sums: np.ndarray, sizes: np.ndarray) -> Tuple[int, int, float]:
        """Highest average-linkage pair from the running cross-similarity sums.

        Ties resolve to the lowest ``(i, j)`` in row-major order.
        """
        k = len(sizes)
        if k < 2:
            return -1, -1, -1.0
        avg = sums / np.outer(sizes, sizes)
        masked = np.where(np.triu(np.ones((k, k), dtype=bool), 1), avg, -np.inf)
        flat = int(np.argmax(masked))
        i, j = divmod(flat, k)
        return i, j, float(masked[i, j])

    def cluster(
        self,
        mentions: Sequence[Mention],
        similarity: np.ndarray,
        context: Optional[RunContext] = None,
        threshold: Optional[float] = None,
        progress_start: float = 0.6,
        progress_span: float = 0.1,
    ) -> ClusteringResult:
        s = self.settings
        n = len(mentions)
        sim = np.asarray(similarity, dtype=np.float64)
        if sim.shape != (n, n):
            raise ValueError(f"Similarity matrix shape {sim.shape} does not match {n} mentions")

        clusters = [Cluster(id=i, mentions=[m], indices=[i]) for i, m in enumerate(mentions)]
        sums = sim.copy()
        sizes = np.ones(n, dtype=np.float64)
        min_clusters, max_clusters = self.target_bounds(n)
        ceiling = min(s.iteration_cap, len(clusters))
        threshold = self.initial_threshold(n) if threshold is None else float(threshold)

        iterations = 0
        merges = 0
        stalls = 0

        while len(clusters) > min_clusters and iterations < ceiling:
            iterations += 1
            i, j, best = self.best_pair(sums, sizes)
            bound_check = False

            if i >= 0 and best >= threshold:
                left, right = clusters[i], clusters[j]
                merged = Cluster(
                    id=left.id,
                    mentions=left.mentions + right.mentions,
                    indices=left.indices + right.indices,
                )
                keep = [k for k in range(len(clusters)) if k not in (i, j)]
                row = sums[i] + sums[j]
                merged_sum = row[i] + row[j]
                sums = np.vstack([
                    np.hstack([sums[np.ix_(keep, keep)], row[keep][:, None]]),
                    np.append(row[keep], merged_sum)[None, :],
                ])
                sizes = np.append(sizes[keep], sizes[i] + sizes[j])
                clusters = [clusters[k] for k in keep]
                clusters.append(merged)
                merges += 1
                stalls = 0
                bound_check = True
            else:
                stalls += 1
                if stalls >= s.stalls_before_decay and threshold > s.threshold_floor:
                    threshold = max(s.threshold_floor, threshold * s.threshold_decay)
                    stalls = 0
                    bound_check = True
                elif stalls >= s.stalls_at_floor:
                    break

            if context is not None and iterations % s.checkpoint_every == 0:
                context.checkpoint(
                    f"clustering ({len(clusters)} clusters)",
                    progress_start + progress_span * iterations / max(1, ceiling),
                )

            # Plain stalls skip the target check; merges and decays do not.
            if bound_check and len(clusters) <= max_clusters:
                break

        return ClusteringResult(
            clusters=clusters,
            iterations=iterations,
            merges=merges,
            final_threshold=threshold,
            iteration_ceiling=ceiling,
        )
