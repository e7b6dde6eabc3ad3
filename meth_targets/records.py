"""
records.py

Decode methylation BED lines into Measurements and group them per chromosome.

Input format (tab-separated, 0-based half-open like BED):
  Chrom  Start  End  [value columns addressed by 1-based index]

Column modes
------------
- fraction: methylated fraction in [0, 1] + total coverage
- counts:   methylated count + unmethylated count; coverage is their sum

The stream must be coordinate-sorted: each chromosome in one contiguous run,
positions non-decreasing within it. Violations raise UnsortedInputError.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

import numpy as np

from meth_targets.config import ColumnMode, RunConfig
from meth_targets.errors import MalformedRecord, UnsortedInputError
from meth_targets.streams import iter_lines

MAX_COVERAGE = 2**31 - 1

_SKIP_PREFIXES = ("#", "track", "browser")

# ASCII digits only; int() and float() would also take "1_0" or non-ASCII digits
_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass(frozen=True)
class Measurement:
    chrom: str
    position: int
    coverage_total: int
    methylated_fraction: float


@dataclass
class MeasurementBlock:
    """All measurements of one chromosome, in stream order."""

    chrom: str
    positions: np.ndarray
    coverage: np.ndarray
    fraction: np.ndarray

    def __len__(self) -> int:
        return int(self.positions.size)


def is_header_line(line: str) -> bool:
    s = line.strip()
    if not s:
        return True
    return s.startswith(_SKIP_PREFIXES)


def parse_int(text: str, what: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"{what} is not an integer: {text!r}")
    return int(text)


def parse_float(text: str, what: str) -> float:
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError(f"{what} is not a number: {text!r}")
    return float(text)


def _parse_count(text: str, what: str) -> int:
    value = parse_int(text, what)
    if value < 0:
        raise ValueError(f"{what} is negative: {value}")
    if value > MAX_COVERAGE:
        raise ValueError(f"{what} overflows {MAX_COVERAGE}: {value}")
    return value


class RecordDecoder:
    """Turns one methylation line into a Measurement for a fixed column mode."""

    def __init__(self, config: RunConfig) -> None:
        self.mode = config.mode
        self.first_col, self.second_col = config.value_columns
        self.min_fields = max(3, self.first_col, self.second_col)

    def decode(self, line: str) -> Measurement:
        """Raises ValueError with a short reason; callers attach line context."""
        parts = line.split("\t")
        if len(parts) < self.min_fields:
            raise ValueError(f"expected at least {self.min_fields} columns, got {len(parts)}")

        chrom = parts[0].strip()
        if not chrom:
            raise ValueError("empty chromosome name")
        start = parse_int(parts[1].strip(), "start")
        end = parse_int(parts[2].strip(), "end")
        if start < 0:
            raise ValueError(f"start is negative: {start}")
        if end < start:
            raise ValueError(f"end {end} is before start {start}")

        first = parts[self.first_col - 1].strip()
        second = parts[self.second_col - 1].strip()

        if self.mode is ColumnMode.COUNTS:
            methylated = _parse_count(first, "methylated count")
            unmethylated = _parse_count(second, "unmethylated count")
            coverage = methylated + unmethylated
            if coverage > MAX_COVERAGE:
                raise ValueError(f"coverage overflows {MAX_COVERAGE}: {coverage}")
            fraction = methylated / coverage if coverage > 0 else 0.0
        else:
            fraction = parse_float(first, "fraction")
            if not math.isfinite(fraction) or fraction < 0.0 or fraction > 1.0:
                raise ValueError(f"fraction outside [0, 1]: {first}")
            coverage = _parse_count(second, "coverage")

        return Measurement(chrom=chrom, position=start, coverage_total=coverage, methylated_fraction=fraction)


def iter_measurements(config: RunConfig, path: str | Path | None = None) -> Iterator[Measurement]:
    """
    Lazily decode the methylation file, enforcing sort order.

    Restartable per run (call again for a fresh pass), not seekable.
    """
    path = Path(path) if path is not None else config.methylation_path
    decoder = RecordDecoder(config)

    seen_chroms: set[str] = set()
    prev: Optional[Measurement] = None

    for line_no, line in iter_lines(path):
        if is_header_line(line):
            continue
        try:
            rec = decoder.decode(line)
        except ValueError as e:
            raise MalformedRecord(str(e), path=path, line_no=line_no, line=line) from None

        if prev is None or rec.chrom != prev.chrom:
            if rec.chrom in seen_chroms:
                raise UnsortedInputError(
                    f"chromosome {rec.chrom} reappears after {prev.chrom if prev else '?'}; "
                    "input must be coordinate-sorted",
                    path=path,
                    line_no=line_no,
                    line=line,
                )
            seen_chroms.add(rec.chrom)
        elif rec.position < prev.position:
            raise UnsortedInputError(
                f"position {rec.position} follows {prev.position} on {rec.chrom}; "
                "input must be coordinate-sorted",
                path=path,
                line_no=line_no,
                line=line,
            )
        prev = rec
        yield rec


def _to_block(chrom: str, rows: List[Measurement]) -> MeasurementBlock:
    return MeasurementBlock(
        chrom=chrom,
        positions=np.fromiter((r.position for r in rows), dtype=np.int64, count=len(rows)),
        coverage=np.fromiter((r.coverage_total for r in rows), dtype=np.int64, count=len(rows)),
        fraction=np.fromiter((r.methylated_fraction for r in rows), dtype=np.float64, count=len(rows)),
    )


def iter_chrom_blocks(
    measurements: Iterable[Measurement],
    keep: Optional[Callable[[str], bool]] = None,
) -> Iterator[MeasurementBlock]:
    """
    Group a sorted measurement stream into one block per chromosome.

    Chromosomes rejected by `keep` are still consumed (so decoding errors and
    sort violations surface) but never materialised.
    """
    chrom: Optional[str] = None
    rows: List[Measurement] = []
    keeping = False

    for rec in measurements:
        if rec.chrom != chrom:
            if chrom is not None and keeping:
                yield _to_block(chrom, rows)
            chrom = rec.chrom
            rows = []
            keeping = keep is None or keep(chrom)
        if keeping:
            rows.append(rec)

    if chrom is not None and keeping:
        yield _to_block(chrom, rows)
