"""
scheduler.py

Static partitioning of the join across a fixed pool of worker lanes.

- Work units are contiguous slices of one chromosome's start-sorted targets.
  A chromosome is split only when it holds more than its fair share of targets.
- Units are assigned to lanes up front (longest-processing-time first); each
  lane is a single worker process, so a target is only ever written by one worker.
  With one lane the join runs in-process.
- The main thread streams the methylation file one chromosome at a time and
  sends each unit its slice of the block (targets and in-span measurements).
- Partial accumulators are merged by original_index in plan order, so output
  does not depend on which worker finishes first.
"""

from __future__ import annotations

import heapq
import logging
import math
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from meth_targets.errors import ConfigurationError
from meth_targets.join import Accumulators, sweep_join
from meth_targets.logging_utils import LOGGER_NAME
from meth_targets.records import Measurement, MeasurementBlock, iter_chrom_blocks
from meth_targets.targets import ChromTargets, TargetTable


@dataclass(frozen=True)
class WorkUnit:
    chrom: str
    lo: int
    hi: int
    span_start: int
    span_end: int

    @property
    def n_targets(self) -> int:
        return self.hi - self.lo


@dataclass
class JoinStats:
    measurements_read: int = 0
    measurements_on_target_chroms: int = 0
    chroms_with_targets: List[str] = field(default_factory=list)
    chroms_without_targets: List[str] = field(default_factory=list)


def _unit(chrom_targets: ChromTargets, lo: int, hi: int) -> WorkUnit:
    span_start, span_end = chrom_targets.slice_span(lo, hi)
    return WorkUnit(chrom=chrom_targets.chrom, lo=lo, hi=hi, span_start=span_start, span_end=span_end)


def plan_work_units(table: TargetTable, threads: int) -> List[WorkUnit]:
    if threads < 1:
        raise ConfigurationError(f"threads must be >= 1 (got {threads}).")

    units: List[WorkUnit] = []
    if len(table) == 0:
        return units

    fair_share = max(1, math.ceil(len(table) / threads))
    for chrom in table.chromosomes():
        ct = table.for_chrom(chrom)
        if ct is None or len(ct) == 0:
            continue
        n = len(ct)
        if threads == 1 or n <= fair_share:
            units.append(_unit(ct, 0, n))
            continue
        for lo in range(0, n, fair_share):
            units.append(_unit(ct, lo, min(n, lo + fair_share)))
    return units


def assign_lanes(units: List[WorkUnit], threads: int) -> List[List[int]]:
    """
    Greedy LPT: biggest unit first onto the least-loaded lane.

    Returns unit indices per lane; lanes without work are dropped.
    """
    if threads < 1:
        raise ConfigurationError(f"threads must be >= 1 (got {threads}).")
    lanes: List[List[int]] = [[] for _ in range(threads)]
    loads = [(0, k) for k in range(threads)]
    heapq.heapify(loads)
    order = sorted(range(len(units)), key=lambda i: (-units[i].n_targets, i))
    for i in order:
        load, k = heapq.heappop(loads)
        lanes[k].append(i)
        heapq.heappush(loads, (load + units[i].n_targets, k))
    return [sorted(lane) for lane in lanes if lane]


def unit_inputs(
    unit: WorkUnit, chrom_targets: ChromTargets, block: MeasurementBlock
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Arguments for `sweep_join` restricted to one unit: its targets and the part
    of the chromosome block inside its span. Only these slices are pickled to
    the worker process.
    """
    m_lo = int(np.searchsorted(block.positions, unit.span_start, side="left"))
    m_hi = int(np.searchsorted(block.positions, unit.span_end, side="left"))
    return (
        chrom_targets.starts[unit.lo:unit.hi],
        chrom_targets.ends[unit.lo:unit.hi],
        block.positions[m_lo:m_hi],
        block.coverage[m_lo:m_hi],
        block.fraction[m_lo:m_hi],
    )


def run_unit(unit: WorkUnit, chrom_targets: ChromTargets, block: MeasurementBlock) -> Accumulators:
    """Join one unit against the part of the chromosome block inside its span."""
    return sweep_join(*unit_inputs(unit, chrom_targets, block))


class ParallelScheduler:
    def __init__(
        self,
        table: TargetTable,
        threads: int = 1,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if threads < 1:
            raise ConfigurationError(f"threads must be >= 1 (got {threads}).")
        self.table = table
        self.threads = threads
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.units = plan_work_units(table, threads)
        self.lanes = assign_lanes(self.units, threads)
        self.stats = JoinStats()

        self._lane_of: Dict[int, int] = {}
        for k, lane in enumerate(self.lanes):
            for u in lane:
                self._lane_of[u] = k
        self._units_by_chrom: Dict[str, List[int]] = {}
        for u, unit in enumerate(self.units):
            self._units_by_chrom.setdefault(unit.chrom, []).append(u)

    def _count(self, measurements: Iterable[Measurement]) -> Iterator[Measurement]:
        for rec in measurements:
            self.stats.measurements_read += 1
            yield rec

    def _keep(self, chrom: str) -> bool:
        if self.table.has_chrom(chrom):
            self.stats.chroms_with_targets.append(chrom)
            return True
        self.stats.chroms_without_targets.append(chrom)
        self.logger.debug("no targets on %s; skipping its measurements", chrom)
        return False

    @staticmethod
    def _drain(pending: Dict[Future, int], results: Dict[int, Accumulators], limit: int) -> None:
        while len(pending) > limit:
            done, _ = wait(list(pending), return_when=FIRST_COMPLETED)
            for fut in done:
                u = pending.pop(fut)
                results[u] = fut.result()

    def _blocks(self, measurements: Iterable[Measurement]) -> Iterator[Tuple[MeasurementBlock, ChromTargets, List[int]]]:
        for block in iter_chrom_blocks(self._count(measurements), keep=self._keep):
            self.stats.measurements_on_target_chroms += len(block)
            chrom_targets = self.table.for_chrom(block.chrom)
            unit_ids = self._units_by_chrom.get(block.chrom, [])
            self.logger.debug(
                "%s: %s measurements, %d targets in %d unit(s)",
                block.chrom,
                f"{len(block):,}",
                len(chrom_targets) if chrom_targets is not None else 0,
                len(unit_ids),
            )
            yield block, chrom_targets, unit_ids

    def run(self, measurements: Iterable[Measurement]) -> Accumulators:
        """Consume the sorted measurement stream and return run-wide totals."""
        self.stats = JoinStats()
        results: Dict[int, Accumulators] = {}

        if self.threads == 1:
            # serial path, no worker processes
            for block, chrom_targets, unit_ids in self._blocks(measurements):
                for u in unit_ids:
                    results[u] = run_unit(self.units[u], chrom_targets, block)
            return self._merge(results)

        pending: Dict[Future, int] = {}
        max_in_flight = 2 * self.threads
        # one single-worker process per lane keeps the static assignment
        executors = [ProcessPoolExecutor(max_workers=1) for _ in self.lanes]
        try:
            for block, chrom_targets, unit_ids in self._blocks(measurements):
                for u in unit_ids:
                    lane = executors[self._lane_of[u]]
                    args = unit_inputs(self.units[u], chrom_targets, block)
                    pending[lane.submit(sweep_join, *args)] = u
                self._drain(pending, results, max_in_flight)
            self._drain(pending, results, 0)
        finally:
            for ex in executors:
                ex.shutdown(wait=True, cancel_futures=True)

        return self._merge(results)

    def _merge(self, results: Dict[int, Accumulators]) -> Accumulators:
        totals = Accumulators.zeros(len(self.table))
        for u, unit in enumerate(self.units):
            acc = results.get(u)
            if acc is None:
                continue
            ct = self.table.for_chrom(unit.chrom)
            acc.scatter_into(totals, ct.original_index[unit.lo:unit.hi])
        return totals
