"""
File utilities for the pipeline.

ALB logs are gzip-compressed and may consist of several concatenated gzip
members; gzip.open reads all members as one stream. Classic LB logs are plain
text. Either way lines are yielded as raw bytes, newline included.
"""

import gzip
import zlib
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from ..exceptions import SourceReadError

# Errors a read or decompression can raise (gzip.BadGzipFile is an OSError)
READ_ERRORS = (OSError, EOFError, zlib.error)


def open_log_file(file_path: Union[str, Path], compressed: bool) -> BinaryIO:
    """
    Open a log file for binary line reading.

    Args:
        file_path: Path to the file
        compressed: Whether the file is gzip-compressed

    Returns:
        Open file handle (binary mode)

    Raises:
        SourceReadError: If the file cannot be opened
    """
    try:
        if compressed:
            return gzip.open(file_path, "rb")
        return open(file_path, "rb")
    except READ_ERRORS as e:
        raise SourceReadError("Failed to open log file", file_path, str(e)) from e


def iter_lines(
    handle: BinaryIO, source: Optional[Union[str, Path]] = None
) -> Iterator[bytes]:
    """
    Yield the lines of ``handle`` split on ``\\n``.

    The last line is yielded even without a terminating newline.

    Raises:
        SourceReadError: If reading or decompressing fails midway
    """
    while True:
        try:
            line = handle.readline()
        except READ_ERRORS as e:
            raise SourceReadError("Failed to read log data", source, str(e)) from e
        if not line:
            return
        yield line


def read_log_lines(file_path: Union[str, Path], compressed: bool) -> Iterator[bytes]:
    """Open ``file_path`` and yield its lines, closing it afterwards."""
    with open_log_file(file_path, compressed) as handle:
        yield from iter_lines(handle, file_path)
