import gzip

import pytest

from meth_targets.config import RunConfig
from meth_targets.errors import MalformedRecord, UnsortedInputError
from meth_targets.records import RecordDecoder, iter_chrom_blocks, iter_measurements


def _write(path, lines):
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return path


def _config(tmp_path, meth_path, **cols):
    targets = _write(tmp_path / "targets.bed", ["chr1\t0\t10"])
    return RunConfig.from_columns(meth_path, targets, **cols)


def test_fraction_mode_decodes_default_columns(tmp_path):
    cfg = _config(tmp_path, tmp_path / "m.bed")
    rec = RecordDecoder(cfg).decode("chr1\t100\t101\t0.25\t8")
    assert rec.chrom == "chr1"
    assert rec.position == 100
    assert rec.coverage_total == 8
    assert rec.methylated_fraction == 0.25


def test_count_mode_derives_fraction_and_coverage(tmp_path):
    cfg = _config(tmp_path, tmp_path / "m.bed", methylated_col=5, unmethylated_col=6)
    rec = RecordDecoder(cfg).decode("chr2\t7\t8\t+\t3\t1")
    assert rec.coverage_total == 4
    assert rec.methylated_fraction == 0.75


def test_count_mode_zero_coverage_is_zero_fraction(tmp_path):
    cfg = _config(tmp_path, tmp_path / "m.bed", methylated_col=4, unmethylated_col=5)
    rec = RecordDecoder(cfg).decode("chr1\t5\t6\t0\t0")
    assert rec.coverage_total == 0
    assert rec.methylated_fraction == 0.0


@pytest.mark.parametrize(
    "line",
    [
        "chr1\t100\t101\t0.5",
        "chr1\tabc\t101\t0.5\t3",
        "chr1\t100\t101\thalf\t3",
        "chr1\t100\t101\t0.5\t3.5",
        "chr1\t100\t101\t1.5\t3",
        "chr1\t100\t101\tnan\t3",
        "chr1\t100\t101\t0.5\t-1",
        "chr1\t100\t101\t0.5\t9999999999",
        "chr1\t100\t99\t0.5\t3",
        "chr1\t1_0\t11\t0.5\t3",
        "chr1\t100\t101\t0.2_5\t3",
        "chr1\t100\t101\t0.5\t1_0",
        "chr1\t\u0661\u0660\t101\t0.5\t3",
        "chr1\t100\t101\t0.5\t\uff13",
    ],
)
def test_bad_lines_are_rejected(tmp_path, line):
    cfg = _config(tmp_path, tmp_path / "m.bed")
    with pytest.raises(ValueError):
        RecordDecoder(cfg).decode(line)


def test_count_overflow_is_rejected(tmp_path):
    cfg = _config(tmp_path, tmp_path / "m.bed", methylated_col=4, unmethylated_col=5)
    with pytest.raises(ValueError, match="overflow"):
        RecordDecoder(cfg).decode(f"chr1\t1\t2\t{2**31 - 1}\t1")


def test_malformed_record_carries_line_context(tmp_path):
    meth = _write(tmp_path / "m.bed", ["chr1\t1\t2\t0.5\t3", "chr1\t5\t6\toops\t3"])
    cfg = _config(tmp_path, meth)
    with pytest.raises(MalformedRecord) as exc:
        list(iter_measurements(cfg))
    assert exc.value.line_no == 2
    assert "oops" in str(exc.value)
    assert str(meth) in str(exc.value)


def test_header_and_comment_lines_are_skipped(tmp_path):
    meth = _write(
        tmp_path / "m.bed",
        ["track name=meth", "# comment", "", "chr1\t1\t2\t0.5\t3", "browser position chr1"],
    )
    cfg = _config(tmp_path, meth)
    recs = list(iter_measurements(cfg))
    assert [r.position for r in recs] == [1]


def test_gzip_input_is_read_transparently(tmp_path):
    meth = tmp_path / "m.bed.gz"
    with gzip.open(meth, "wt") as fh:
        fh.write("chr1\t1\t2\t0.5\t3\nchr1\t4\t5\t1.0\t2\n")
    cfg = _config(tmp_path, meth)
    assert [r.coverage_total for r in iter_measurements(cfg)] == [3, 2]


def test_position_going_backwards_is_rejected(tmp_path):
    meth = _write(tmp_path / "m.bed", ["chr1\t10\t11\t0.5\t3", "chr1\t5\t6\t0.5\t3"])
    cfg = _config(tmp_path, meth)
    with pytest.raises(UnsortedInputError):
        list(iter_measurements(cfg))


def test_chromosome_reappearing_is_rejected(tmp_path):
    meth = _write(
        tmp_path / "m.bed",
        ["chr1\t10\t11\t0.5\t3", "chr2\t5\t6\t0.5\t3", "chr1\t20\t21\t0.5\t3"],
    )
    cfg = _config(tmp_path, meth)
    with pytest.raises(UnsortedInputError, match="reappears"):
        list(iter_measurements(cfg))


def test_chrom_blocks_group_and_skip(tmp_path):
    meth = _write(
        tmp_path / "m.bed",
        [
            "chr1\t1\t2\t0.5\t3",
            "chr1\t3\t4\t0.5\t3",
            "chr2\t1\t2\t0.5\t3",
            "chr3\t8\t9\t0.1\t10",
        ],
    )
    cfg = _config(tmp_path, meth)
    blocks = list(iter_chrom_blocks(iter_measurements(cfg), keep=lambda c: c != "chr2"))
    assert [b.chrom for b in blocks] == ["chr1", "chr3"]
    assert blocks[0].positions.tolist() == [1, 3]
    assert blocks[1].coverage.tolist() == [10]
    assert len(blocks[0]) == 2
