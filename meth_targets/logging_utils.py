from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

LOGGER_NAME = "meth_targets"


def setup_logging(
    *,
    level: int = logging.INFO,
    logger_name: str = LOGGER_NAME,
    force: bool = True,
) -> logging.Logger:
    """
    Configure compact console logging on stderr (stdout carries results).
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="[%X]",
        force=force,
    )

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    return logger


def _fmt_int(n: int) -> str:
    return f"{n:,}"


def _fmt_s(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    m = int(seconds // 60)
    s = seconds - 60 * m
    return f"{m}m{s:04.1f}s"


def log_section(logger: logging.Logger, title: str) -> None:
    logger.info("%s", title)


def log_kv(logger: logging.Logger, key: str, value: str) -> None:
    logger.info("  %-24s %s", f"{key}:", value)


@contextmanager
def timed(logger: logging.Logger, label: str) -> Iterator[None]:
    t0 = time.perf_counter()
    logger.info("START %s ...", label)
    try:
        yield
    finally:
        dt = time.perf_counter() - t0
        logger.info("DONE %s (%s)", label, _fmt_s(dt))


def summarise_run(
    logger: logging.Logger,
    *,
    n_targets: int,
    n_targets_covered: int,
    measurements_read: int,
    measurements_on_target_chroms: int,
    chroms_without_targets: Sequence[str],
    overall_fraction: float,
    output: Optional[str],
) -> None:
    log_section(logger, "Run summary")
    log_kv(logger, "targets", _fmt_int(n_targets))
    log_kv(logger, "targets_with_overlap", _fmt_int(n_targets_covered))
    log_kv(logger, "measurements_read", _fmt_int(measurements_read))
    log_kv(logger, "measurements_on_targets", _fmt_int(measurements_on_target_chroms))
    skipped = ", ".join(chroms_without_targets[:10]) if chroms_without_targets else "none"
    if len(chroms_without_targets) > 10:
        skipped += f" (+{len(chroms_without_targets) - 10} more)"
    log_kv(logger, "chroms_without_targets", skipped)
    log_kv(logger, "weighted_fraction_all", f"{overall_fraction:.4f}" if overall_fraction == overall_fraction else "NA")

    log_section(logger, "Outputs")
    logger.info("  %s", output or "<stdout>")
