"""
streams.py

Byte-source selection for inputs that may be plain text or gzip (incl. BGZF).

The variant is picked once per file; callers only ever see a text stream.
"""

from __future__ import annotations

import gzip
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Literal, TextIO

from meth_targets.errors import InputReadError

GZIP_MAGIC = b"\x1f\x8b"
GZIP_SUFFIXES = (".gz", ".bgz")

Compression = Literal["plain", "gzip"]


def detect_compression(path: str | Path) -> Compression:
    """
    Magic bytes win; the extension is only consulted for files too short to
    carry a header.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")
    with path.open("rb") as fh:
        head = fh.read(len(GZIP_MAGIC))
    if head == GZIP_MAGIC:
        return "gzip"
    if len(head) < len(GZIP_MAGIC) and path.suffix.lower() in GZIP_SUFFIXES and head:
        return "gzip"
    return "plain"


@contextmanager
def open_text(path: str | Path) -> Iterator[TextIO]:
    path = Path(path)
    kind = detect_compression(path)
    if kind == "gzip":
        fh: TextIO = gzip.open(path, "rt", encoding="utf-8", errors="replace", newline="")
    else:
        fh = path.open("r", encoding="utf-8", errors="replace", newline="")
    try:
        yield fh
    except (EOFError, zlib.error, gzip.BadGzipFile) as e:
        raise InputReadError(f"{path}: corrupt or truncated {kind} stream ({e})") from e
    finally:
        fh.close()


def iter_lines(path: str | Path) -> Iterator[tuple[int, str]]:
    """Yield (1-based line number, line without trailing newline)."""
    with open_text(path) as fh:
        for line_no, line in enumerate(fh, start=1):
            yield line_no, line.rstrip("\r\n")
