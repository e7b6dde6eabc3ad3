import numpy as np
import pytest

from meth_targets.io_utils import atomic_output
from meth_targets.join import Accumulators
from meth_targets.summary import format_row, iter_summary_lines, summary_frame, write_summary
from meth_targets.targets import TargetTable


def test_format_row_uses_four_decimals():
    assert format_row("chr1", 100, 200, 2, 30, 25 / 30) == "chr1\t100\t200\t2\t30\t0.8333"
    assert format_row("chr1", 300, 400, 0, 0, 0.0) == "chr1\t300\t400\t0\t0\t0.0000"
    assert format_row("chr1", 0, 1, 1, 1, 1.0) == "chr1\t0\t1\t1\t1\t1.0000"


def test_format_row_rounds_exact_ties_to_even():
    assert format_row("chr1", 0, 10, 1, 32, 1 / 32) == "chr1\t0\t10\t1\t32\t0.0312"
    assert format_row("chr1", 0, 10, 1, 32, 3 / 32) == "chr1\t0\t10\t1\t32\t0.0938"
    assert format_row("chr1", 0, 10, 2, 16, 0.5) == "chr1\t0\t10\t2\t16\t0.5000"


def test_summary_frame_is_in_input_order():
    table = TargetTable.from_intervals([("chr2", 0, 10), ("chr1", 5, 9)])
    totals = Accumulators.zeros(2)
    totals.overlap_count[:] = [0, 3]
    totals.coverage_sum[:] = [0, 12]
    totals.weighted_numerator[:] = [0.0, 3.0]
    frame = summary_frame(table, totals)
    assert list(iter_summary_lines(frame)) == [
        "chr2\t0\t10\t0\t0\t0.0000",
        "chr1\t5\t9\t3\t12\t0.2500",
    ]


def test_summary_frame_size_mismatch():
    table = TargetTable.from_intervals([("chr1", 0, 10)])
    with pytest.raises(ValueError):
        summary_frame(table, Accumulators.zeros(2))


def test_write_summary_to_file(tmp_path):
    out = tmp_path / "nested" / "out.tsv"
    n = write_summary(["a\t1", "b\t2"], out)
    assert n == 2
    assert out.read_text() == "a\t1\nb\t2\n"
    assert [p.name for p in out.parent.iterdir()] == ["out.tsv"]


def test_write_summary_to_stdout(capsys):
    write_summary(["x\t1"])
    assert capsys.readouterr().out == "x\t1\n"


def test_failed_write_leaves_existing_file_untouched(tmp_path):
    out = tmp_path / "out.tsv"
    out.write_text("previous\n")

    def lines():
        yield "first"
        raise OSError("disk full")

    with pytest.raises(OSError, match="disk full"):
        write_summary(lines(), out)
    assert out.read_text() == "previous\n"
    assert [p.name for p in tmp_path.iterdir()] == ["out.tsv"]


def test_atomic_output_creates_nothing_on_error(tmp_path):
    out = tmp_path / "new.tsv"
    with pytest.raises(RuntimeError):
        with atomic_output(out) as fh:
            fh.write("partial\n")
            raise RuntimeError("boom")
    assert not out.exists()
    assert list(tmp_path.iterdir()) == []


def test_weighted_fraction_column_bounded():
    table = TargetTable.from_intervals([("chr1", 0, 10)] * 3)
    totals = Accumulators.zeros(3)
    totals.coverage_sum[:] = [3, 0, 7]
    totals.weighted_numerator[:] = [3.0000000001, 0.0, 0.7]
    frac = summary_frame(table, totals)["weighted_fraction"].to_numpy()
    assert np.all((frac >= 0) & (frac <= 1))
