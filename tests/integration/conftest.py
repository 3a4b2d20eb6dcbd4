"""
Shared fixtures for integration tests.

Provides log directory trees laid out like an S3 access-log export.
"""

from pathlib import Path

import pytest

from logtree import alb_line, classic_line, write_gzip, write_plain


@pytest.fixture
def alb_tree(tmp_path: Path) -> Path:
    """
    ALB export with 6 files of 50 valid lines each, plus decoys.

    Decoys: a zero-byte .log.gz, an uncompressed .log and a README. A gzip
    file with no lines is a candidate but yields nothing.
    """
    root = tmp_path / "AWSLogs"
    item = 0
    for day in ("01", "02", "03"):
        for part in ("a", "b"):
            lines = []
            for _ in range(50):
                lines.append(alb_line(item))
                item += 1
            write_gzip(root / "2022" / "11" / day / f"elb_{part}.log.gz", lines)

    write_gzip(root / "2022" / "11" / "01" / "no-lines.log.gz", [])
    (root / "2022" / "11" / "01" / "zero-bytes.log.gz").write_bytes(b"")
    write_plain(root / "2022" / "11" / "01" / "classic.log", [classic_line(0)])
    (root / "README.txt").write_text("not a log\n")
    return root


@pytest.fixture
def classic_tree(tmp_path: Path) -> Path:
    """Classic LB export with 3 files of 20 lines each."""
    root = tmp_path / "elb-logs"
    item = 0
    for name in ("one", "two", "three"):
        lines = []
        for _ in range(20):
            lines.append(classic_line(item))
            item += 1
        write_plain(root / f"{name}.log", lines)
    return root
