"""
config.py

Immutable run configuration: input paths, column mode and worker count.

The value is built once (usually from CLI flags) and passed explicitly to the
decoder, the target loader and the scheduler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from meth_targets.errors import ConfigurationError

DEFAULT_FRACTION_COL = 4
DEFAULT_COVERAGE_COL = 5


class ColumnMode(str, Enum):
    FRACTION = "fraction"
    COUNTS = "counts"


@dataclass(frozen=True)
class RunConfig:
    methylation_path: Path
    target_path: Path
    mode: ColumnMode = ColumnMode.FRACTION
    fraction_col: int = DEFAULT_FRACTION_COL
    coverage_col: int = DEFAULT_COVERAGE_COL
    methylated_col: Optional[int] = None
    unmethylated_col: Optional[int] = None
    output_path: Optional[Path] = None
    threads: int = 1

    @classmethod
    def from_columns(
        cls,
        methylation_path: str | Path,
        target_path: str | Path,
        *,
        fraction_col: Optional[int] = None,
        coverage_col: Optional[int] = None,
        methylated_col: Optional[int] = None,
        unmethylated_col: Optional[int] = None,
        output_path: str | Path | None = None,
        threads: Optional[int] = None,
    ) -> "RunConfig":
        """
        Resolve the column mode from which flags were supplied.

        Any of methylated/unmethylated selects count mode, which needs both and
        rejects fraction/coverage flags. Otherwise fraction mode is used with
        defaults 4 and 5.
        """
        count_flags = (methylated_col, unmethylated_col)
        fraction_flags = (fraction_col, coverage_col)

        if any(c is not None for c in count_flags):
            if any(c is not None for c in fraction_flags):
                raise ConfigurationError(
                    "Column flags mix modes: use --fraction-col/--coverage-col "
                    "or --methylated-col/--unmethylated-col, not both."
                )
            if methylated_col is None or unmethylated_col is None:
                raise ConfigurationError(
                    "Count mode requires both --methylated-col and --unmethylated-col."
                )
            mode = ColumnMode.COUNTS
        else:
            mode = ColumnMode.FRACTION

        cfg = cls(
            methylation_path=Path(methylation_path),
            target_path=Path(target_path),
            mode=mode,
            fraction_col=DEFAULT_FRACTION_COL if fraction_col is None else int(fraction_col),
            coverage_col=DEFAULT_COVERAGE_COL if coverage_col is None else int(coverage_col),
            methylated_col=methylated_col,
            unmethylated_col=unmethylated_col,
            output_path=Path(output_path) if output_path is not None else None,
            threads=1 if threads is None else int(threads),
        )
        cfg.validate()
        return cfg

    @property
    def value_columns(self) -> tuple[int, int]:
        """1-based indices of the two columns read by the active mode."""
        if self.mode is ColumnMode.COUNTS:
            if self.methylated_col is None or self.unmethylated_col is None:
                raise ConfigurationError("Count mode requires methylated and unmethylated columns.")
            return self.methylated_col, self.unmethylated_col
        return self.fraction_col, self.coverage_col

    def validate(self) -> None:
        if self.threads < 1:
            raise ConfigurationError(f"--threads must be >= 1 (got {self.threads}).")

        first, second = self.value_columns
        names = ("methylated", "unmethylated") if self.mode is ColumnMode.COUNTS else ("fraction", "coverage")
        for name, col in zip(names, (first, second)):
            if col < 1:
                raise ConfigurationError(f"--{name}-col must be a 1-based column index (got {col}).")
            if col <= 3:
                raise ConfigurationError(
                    f"--{name}-col {col} overlaps the chrom/start/end columns (1-3)."
                )
        if first == second:
            raise ConfigurationError(f"--{names[0]}-col and --{names[1]}-col both point at column {first}.")
