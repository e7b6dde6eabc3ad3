"""
summary.py

Per-target summary rows, in target input order.

Output format (tab-separated, no header):
  Chrom  Start  End  N_positions  Coverage_sum  Weighted_fraction

Weighted_fraction has exactly 4 decimals via "{:.4f}", i.e. correctly rounded
from the binary double (exact ties go to even). Targets without coverage
print 0.0000.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable, Iterator, Optional, TextIO

import pandas as pd

from meth_targets.join import Accumulators
from meth_targets.io_utils import atomic_output
from meth_targets.targets import TargetTable

SUMMARY_COLUMNS = ["chrom", "start", "end", "overlap_count", "coverage_sum", "weighted_fraction"]


def summary_frame(table: TargetTable, totals: Accumulators) -> pd.DataFrame:
    if len(totals) != len(table):
        raise ValueError(f"Accumulator size {len(totals)} does not match {len(table)} targets.")
    df = table.frame.copy()
    df["overlap_count"] = totals.overlap_count
    df["coverage_sum"] = totals.coverage_sum
    df["weighted_fraction"] = totals.weighted_fraction()
    return df.loc[:, SUMMARY_COLUMNS].sort_index()


def format_row(
    chrom: str,
    start: int,
    end: int,
    overlap_count: int,
    coverage_sum: int,
    weighted_fraction: float,
) -> str:
    return f"{chrom}\t{start}\t{end}\t{overlap_count}\t{coverage_sum}\t{weighted_fraction:.4f}"


def iter_summary_lines(frame: pd.DataFrame) -> Iterator[str]:
    for chrom, start, end, n, cov, frac in frame.itertuples(index=False, name=None):
        yield format_row(str(chrom), int(start), int(end), int(n), int(cov), float(frac))


def _write_lines(lines: Iterable[str], fh: TextIO) -> int:
    n = 0
    for line in lines:
        fh.write(line + "\n")
        n += 1
    return n


def write_summary(lines: Iterable[str], output_path: Optional[str | Path] = None) -> int:
    """
    Write summary lines to `output_path` (atomically) or stdout.

    Returns the number of rows written; write errors propagate.
    """
    if output_path is None:
        n = _write_lines(lines, sys.stdout)
        sys.stdout.flush()
        return n
    with atomic_output(output_path) as fh:
        return _write_lines(lines, fh)
