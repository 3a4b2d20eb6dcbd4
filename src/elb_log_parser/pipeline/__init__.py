"""Parsing pipeline: directory walker, worker pool and output collector."""

import logging
import sys

from .controller import (
    PipelineController,
    PipelineResult,
    WorkItem,
    iter_candidate_files,
    run_directory,
    run_stream,
)
from .file_utils import iter_lines, open_log_file, read_log_lines

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging to stderr for the pipeline."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


__all__ = [
    "LOG_FORMAT",
    "PipelineController",
    "PipelineResult",
    "WorkItem",
    "iter_candidate_files",
    "iter_lines",
    "open_log_file",
    "read_log_lines",
    "run_directory",
    "run_stream",
    "setup_logging",
]
