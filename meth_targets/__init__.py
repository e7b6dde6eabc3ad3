"""Coverage-weighted methylation summaries for target genomic intervals."""

__version__ = "0.1.0"

from meth_targets.config import ColumnMode, RunConfig
from meth_targets.errors import (
    ConfigurationError,
    InputReadError,
    InvalidInterval,
    MalformedRecord,
    MethTargetsError,
    UnsortedInputError,
)
from meth_targets.pipeline import aggregate, run_pipeline

__all__ = [
    "ColumnMode",
    "ConfigurationError",
    "InputReadError",
    "InvalidInterval",
    "MalformedRecord",
    "MethTargetsError",
    "RunConfig",
    "UnsortedInputError",
    "aggregate",
    "run_pipeline",
]
