"""
stats_utils.py

Small numeric helpers for coverage-weighted methylation.
"""

from __future__ import annotations

import numpy as np

EMPTY_FRACTION = 0.0


def weighted_fraction(numerator: np.ndarray, coverage_sum: np.ndarray) -> np.ndarray:
    """
    Per-target numerator / coverage, EMPTY_FRACTION where coverage is zero.

    Results are clipped to [0, 1] to absorb float drift from summing
    coverage * fraction products.
    """
    numerator = np.asarray(numerator, dtype=np.float64)
    coverage = np.asarray(coverage_sum, dtype=np.float64)
    out = np.full(numerator.shape, EMPTY_FRACTION, dtype=np.float64)
    mask = coverage > 0
    np.divide(numerator, coverage, out=out, where=mask)
    return np.clip(out, 0.0, 1.0)


def weighted_mean(values: np.ndarray, weights: np.ndarray) -> float:
    """
    Weighted mean ignoring NaNs in values and non-positive weights.
    """
    mask = np.isfinite(values) & np.isfinite(weights) & (weights > 0)
    if mask.sum() == 0:
        return float("nan")
    v = values[mask]
    w = weights[mask]
    return float(np.sum(v * w) / np.sum(w))
