"""
pipeline.py

End-to-end run: targets -> streamed join -> summary rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from meth_targets.config import RunConfig
from meth_targets.join import Accumulators
from meth_targets.logging_utils import LOGGER_NAME, log_kv, log_section, summarise_run, timed
from meth_targets.records import iter_measurements
from meth_targets.scheduler import JoinStats, ParallelScheduler
from meth_targets.stats_utils import weighted_mean
from meth_targets.summary import iter_summary_lines, summary_frame, write_summary
from meth_targets.targets import TargetTable


@dataclass
class RunSummary:
    n_targets: int
    n_targets_covered: int
    rows_written: int
    measurements_read: int
    measurements_on_target_chroms: int
    chroms_without_targets: List[str]
    overall_fraction: float
    output: Optional[str]


def aggregate(
    config: RunConfig,
    *,
    logger: Optional[logging.Logger] = None,
) -> Tuple[TargetTable, Accumulators, JoinStats]:
    """Load targets and run the join; nothing is written."""
    logger = logger or logging.getLogger(LOGGER_NAME)
    config.validate()

    with timed(logger, "Loading targets"):
        table = TargetTable.load(config.target_path)
    log_kv(logger, "targets", f"{len(table):,}")
    log_kv(logger, "target_chroms", str(len(table.chromosomes())))

    scheduler = ParallelScheduler(table, config.threads, logger=logger)
    log_kv(logger, "work_units", str(len(scheduler.units)))
    log_kv(logger, "lanes", str(len(scheduler.lanes)))

    with timed(logger, "Joining measurements"):
        totals = scheduler.run(iter_measurements(config))
    return table, totals, scheduler.stats


def run_pipeline(config: RunConfig, *, logger: Optional[logging.Logger] = None) -> RunSummary:
    logger = logger or logging.getLogger(LOGGER_NAME)

    log_section(logger, "Inputs")
    log_kv(logger, "methylation", str(config.methylation_path))
    log_kv(logger, "targets", str(config.target_path))
    log_kv(logger, "mode", f"{config.mode.value} (columns {config.value_columns[0]},{config.value_columns[1]})")
    log_kv(logger, "threads", str(config.threads))

    table, totals, stats = aggregate(config, logger=logger)
    frame = summary_frame(table, totals)

    with timed(logger, "Writing summary"):
        rows = write_summary(iter_summary_lines(frame), config.output_path)

    covered = totals.coverage_sum > 0
    overall = weighted_mean(
        frame["weighted_fraction"].to_numpy(dtype=float),
        frame["coverage_sum"].to_numpy(dtype=float),
    )
    result = RunSummary(
        n_targets=len(table),
        n_targets_covered=int(np.count_nonzero(covered)),
        rows_written=rows,
        measurements_read=stats.measurements_read,
        measurements_on_target_chroms=stats.measurements_on_target_chroms,
        chroms_without_targets=list(stats.chroms_without_targets),
        overall_fraction=overall,
        output=str(config.output_path) if config.output_path is not None else None,
    )
    summarise_run(
        logger,
        n_targets=result.n_targets,
        n_targets_covered=result.n_targets_covered,
        measurements_read=result.measurements_read,
        measurements_on_target_chroms=result.measurements_on_target_chroms,
        chroms_without_targets=result.chroms_without_targets,
        overall_fraction=result.overall_fraction,
        output=result.output,
    )
    return result
