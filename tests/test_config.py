import pytest

from meth_targets.config import ColumnMode, RunConfig
from meth_targets.errors import ConfigurationError


def test_defaults_are_fraction_mode_columns_4_and_5():
    cfg = RunConfig.from_columns("m.bed", "t.bed")
    assert cfg.mode is ColumnMode.FRACTION
    assert cfg.value_columns == (4, 5)
    assert cfg.threads == 1
    assert cfg.output_path is None


def test_count_flags_select_count_mode():
    cfg = RunConfig.from_columns("m.bed", "t.bed", methylated_col=5, unmethylated_col=6, threads=3)
    assert cfg.mode is ColumnMode.COUNTS
    assert cfg.value_columns == (5, 6)
    assert cfg.threads == 3


@pytest.mark.parametrize(
    "kwargs",
    [
        {"methylated_col": 5},
        {"unmethylated_col": 6},
        {"methylated_col": 5, "unmethylated_col": 6, "fraction_col": 4},
        {"methylated_col": 5, "unmethylated_col": 6, "coverage_col": 7},
        {"fraction_col": 5, "coverage_col": 5},
        {"fraction_col": 0},
        {"fraction_col": 2},
        {"threads": 0},
        {"threads": -1},
    ],
)
def test_invalid_combinations_are_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        RunConfig.from_columns("m.bed", "t.bed", **kwargs)


def test_config_is_immutable():
    cfg = RunConfig.from_columns("m.bed", "t.bed")
    with pytest.raises(AttributeError):
        cfg.threads = 4
