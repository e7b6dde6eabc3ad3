"""CLI entrypoint: weighted methylation per target interval."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from meth_targets import __version__
from meth_targets.config import DEFAULT_COVERAGE_COL, DEFAULT_FRACTION_COL, RunConfig
from meth_targets.errors import MethTargetsError
from meth_targets.logging_utils import setup_logging
from meth_targets.pipeline import run_pipeline


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="meth-targets",
        description="Extract coverage-weighted methylation values for target BED intervals.",
    )
    ap.add_argument("methylation_bed", type=Path, metavar="METHYLATION_BED", help="Sorted methylation BED (.gz ok)")
    ap.add_argument("target_bed", type=Path, metavar="TARGET_BED", help="Target intervals BED (chrom, start, end)")
    ap.add_argument(
        "-f",
        "--fraction-col",
        type=int,
        default=None,
        help=f"1-based column with the methylated fraction (default: {DEFAULT_FRACTION_COL})",
    )
    ap.add_argument(
        "-c",
        "--coverage-col",
        type=int,
        default=None,
        help=f"1-based column with total coverage (default: {DEFAULT_COVERAGE_COL})",
    )
    ap.add_argument(
        "-m",
        "--methylated-col",
        type=int,
        default=None,
        help="1-based column with methylated read counts (count mode; needs -u)",
    )
    ap.add_argument(
        "-u",
        "--unmethylated-col",
        type=int,
        default=None,
        help="1-based column with unmethylated read counts (count mode; needs -m)",
    )
    ap.add_argument("-o", "--output", type=Path, default=None, help="Output path (default: stdout)")
    ap.add_argument(
        "-t",
        "--threads",
        type=int,
        default=1,
        help="Number of parallel workers for processing target intervals (default: 1)",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    ap.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    log_level = logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO)
    logger = setup_logging(level=log_level, force=True)

    try:
        config = RunConfig.from_columns(
            args.methylation_bed,
            args.target_bed,
            fraction_col=args.fraction_col,
            coverage_col=args.coverage_col,
            methylated_col=args.methylated_col,
            unmethylated_col=args.unmethylated_col,
            output_path=args.output,
            threads=args.threads,
        )
        run_pipeline(config, logger=logger)
    except (MethTargetsError, OSError) as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
