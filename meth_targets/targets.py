"""
targets.py

Target interval table: load BED-style regions, keep input order, index by chromosome.

Input format (tab-separated, extra columns ignored):
  Chrom  Start  End  ...

The file does not need to be sorted; each chromosome's targets are sorted here
by (start, end) for the sweep join, and `original_index` maps results back to
input order.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from meth_targets.errors import InvalidInterval, MalformedRecord
from meth_targets.records import is_header_line, parse_int
from meth_targets.streams import iter_lines

TARGET_COLUMNS = ["chrom", "start", "end"]


@dataclass(frozen=True)
class ChromTargets:
    """Start-sorted view of one chromosome's targets."""

    chrom: str
    starts: np.ndarray
    ends: np.ndarray
    original_index: np.ndarray

    def __len__(self) -> int:
        return int(self.starts.size)

    def slice_span(self, lo: int, hi: int) -> tuple[int, int]:
        """[first start, max end) of the sorted targets lo..hi."""
        return int(self.starts[lo]), int(self.ends[lo:hi].max())


def _parse_target_line(line: str, *, path: Path, line_no: int) -> tuple[str, int, int]:
    parts = line.split("\t")
    if len(parts) < 3:
        raise MalformedRecord(
            f"expected at least 3 columns (chrom, start, end), got {len(parts)}",
            path=path,
            line_no=line_no,
            line=line,
        )
    chrom = parts[0].strip()
    if not chrom:
        raise MalformedRecord("empty chromosome name", path=path, line_no=line_no, line=line)
    try:
        start = parse_int(parts[1].strip(), "start")
        end = parse_int(parts[2].strip(), "end")
    except ValueError as e:
        raise MalformedRecord(str(e), path=path, line_no=line_no, line=line) from None
    if start < 0:
        raise MalformedRecord(f"start is negative: {start}", path=path, line_no=line_no, line=line)
    if start >= end:
        raise InvalidInterval(f"{path} line {line_no}: target {chrom}:{start}-{end} has start >= end")
    return chrom, start, end


class TargetTable:
    def __init__(self, frame: pd.DataFrame) -> None:
        missing = [c for c in TARGET_COLUMNS if c not in frame.columns]
        if missing:
            raise ValueError(f"Target frame missing columns: {missing}")
        frame = frame.loc[:, TARGET_COLUMNS].reset_index(drop=True)
        frame.index.name = "original_index"
        bad = frame["start"] >= frame["end"]
        if bad.any():
            row = frame[bad].iloc[0]
            raise InvalidInterval(
                f"target {row['chrom']}:{int(row['start'])}-{int(row['end'])} has start >= end"
            )
        self._frame = frame
        self._by_chrom = self._index(frame)

    @staticmethod
    def _index(frame: pd.DataFrame) -> Dict[str, ChromTargets]:
        by_chrom: Dict[str, ChromTargets] = {}
        if frame.empty:
            return by_chrom
        ordered = frame.reset_index().sort_values(["chrom", "start", "end", "original_index"])
        for chrom, grp in ordered.groupby("chrom", sort=True):
            by_chrom[str(chrom)] = ChromTargets(
                chrom=str(chrom),
                starts=grp["start"].to_numpy(dtype=np.int64),
                ends=grp["end"].to_numpy(dtype=np.int64),
                original_index=grp["original_index"].to_numpy(dtype=np.int64),
            )
        return by_chrom

    @classmethod
    def from_intervals(cls, intervals: Iterable[tuple[str, int, int]]) -> "TargetTable":
        rows = [(str(c), int(s), int(e)) for c, s, e in intervals]
        frame = pd.DataFrame(rows, columns=TARGET_COLUMNS)
        frame = frame.astype({"chrom": object, "start": np.int64, "end": np.int64})
        return cls(frame)

    @classmethod
    def load(cls, path: str | Path) -> "TargetTable":
        path = Path(path)
        rows: List[tuple[str, int, int]] = []
        for line_no, line in iter_lines(path):
            if is_header_line(line):
                continue
            rows.append(_parse_target_line(line, path=path, line_no=line_no))
        return cls.from_intervals(rows)

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame

    def __len__(self) -> int:
        return len(self._frame)

    def chromosomes(self) -> List[str]:
        return list(self._by_chrom)

    def has_chrom(self, chrom: str) -> bool:
        return chrom in self._by_chrom

    def for_chrom(self, chrom: str) -> Optional[ChromTargets]:
        return self._by_chrom.get(chrom)
