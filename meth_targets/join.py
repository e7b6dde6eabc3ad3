"""
join.py

Sweep-line overlap join between sorted measurements and sorted targets.

For one chromosome (or one contiguous slice of its targets):
- targets enter the active window once their start is <= the measurement position
- targets leave it once the position reaches their end (half-open [start, end))
- every active target overlaps the current measurement, so one measurement can
  credit several overlapping targets

Cost is O(M log K + T) with K the largest number of simultaneously active targets.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from meth_targets.stats_utils import weighted_fraction


@dataclass
class Accumulators:
    overlap_count: np.ndarray
    coverage_sum: np.ndarray
    weighted_numerator: np.ndarray

    @classmethod
    def zeros(cls, n: int) -> "Accumulators":
        return cls(
            overlap_count=np.zeros(n, dtype=np.int64),
            coverage_sum=np.zeros(n, dtype=np.int64),
            weighted_numerator=np.zeros(n, dtype=np.float64),
        )

    def __len__(self) -> int:
        return int(self.overlap_count.size)

    def weighted_fraction(self) -> np.ndarray:
        return weighted_fraction(self.weighted_numerator, self.coverage_sum)

    def scatter_into(self, totals: "Accumulators", original_index: np.ndarray) -> None:
        """Write these (disjoint) slots into run-wide totals at original_index."""
        totals.overlap_count[original_index] = self.overlap_count
        totals.coverage_sum[original_index] = self.coverage_sum
        totals.weighted_numerator[original_index] = self.weighted_numerator


def sweep_join(
    starts: np.ndarray,
    ends: np.ndarray,
    positions: np.ndarray,
    coverage: np.ndarray,
    fraction: np.ndarray,
) -> Accumulators:
    """
    Accumulate every measurement into the targets that contain it.

    `starts`/`ends` must be sorted by (start, end); `positions` must be
    non-decreasing. Slot i of the result belongs to target i.
    """
    n_targets = int(len(starts))
    acc = Accumulators.zeros(n_targets)
    if n_targets == 0 or len(positions) == 0:
        return acc

    # plain lists: per-element numpy indexing dominates the loop otherwise
    t_start = starts.tolist()
    t_end = ends.tolist()
    counts = [0] * n_targets
    cov_sums = [0] * n_targets
    numer = [0.0] * n_targets

    active: List[Tuple[int, int]] = []
    nxt = 0

    for pos, cov, frac in zip(positions.tolist(), coverage.tolist(), fraction.tolist()):
        while nxt < n_targets and t_start[nxt] <= pos:
            heapq.heappush(active, (t_end[nxt], nxt))
            nxt += 1
        while active and active[0][0] <= pos:
            heapq.heappop(active)
        if not active:
            if nxt >= n_targets:
                break
            continue

        weighted = cov * frac
        for _, i in active:
            counts[i] += 1
            cov_sums[i] += cov
            numer[i] += weighted

    acc.overlap_count[:] = counts
    acc.coverage_sum[:] = cov_sums
    acc.weighted_numerator[:] = numer
    return acc
