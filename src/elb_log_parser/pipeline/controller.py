"""
Pipeline controller for bulk and single-stream parsing.

Directory mode runs three stages connected by queues:

    walker (controller thread) --work--> N workers --output--> collector

The walker publishes candidate files, each worker parses whole files with its
own parser and pushes one JSON document per record, and the collector writes
documents to the output sink in arrival order. Lines from one file keep their
relative order; documents from different files may interleave.

Single-stream mode parses and writes synchronously on the calling thread.
"""

import logging
import os
import queue
import stat
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Iterator, Optional, Union

from ..config import Settings
from ..dialects import DialectParser, Rejected, get_parser_class
from ..exceptions import ElbLogParserError, SourceReadError, ThreadFault
from ..reporting import Reporter
from .file_utils import iter_lines, open_log_file

logger = logging.getLogger(__name__)

# Channel close marker
_CLOSE = object()


@dataclass(frozen=True)
class WorkItem:
    """A candidate log file selected by the walker."""

    path: Path
    size: int


@dataclass
class PipelineResult:
    """Result of a pipeline run."""

    success: bool
    dialect: str
    source: str
    started_at: datetime = field(default_factory=lambda: datetime.now().astimezone())
    completed_at: Optional[datetime] = None
    # Stats
    files_processed: int = 0
    records_emitted: int = 0
    lines_skipped: int = 0
    # Errors
    errors: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get pipeline duration in seconds."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "success": self.success,
            "dialect": self.dialect,
            "source": self.source,
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "duration_seconds": self.duration_seconds,
            "files_processed": self.files_processed,
            "records_emitted": self.records_emitted,
            "lines_skipped": self.lines_skipped,
            "errors": self.errors,
        }


@dataclass
class _Stats:
    files_processed: int = 0
    records_emitted: int = 0
    lines_skipped: int = 0


def _raise_walk_error(error: OSError) -> None:
    raise SourceReadError(
        "Failed to enumerate log directory", error.filename, error.strerror or str(error)
    ) from error


def iter_candidate_files(root: Union[str, Path], suffix: str) -> Iterator[WorkItem]:
    """
    Enumerate the files under ``root`` that a dialect should parse.

    Keeps regular, non-empty files whose name ends with ``suffix``. Symlinked
    directories are not followed. A ``root`` that is itself a file is the only
    candidate.

    Raises:
        SourceReadError: On any traversal or stat failure
    """
    root = Path(root)
    if root.is_file():
        paths: Iterable[Path] = [root]
    else:
        paths = _walk_files(root)

    for path in paths:
        if not path.name.endswith(suffix):
            continue
        try:
            info = os.stat(path)
        except OSError as e:
            raise SourceReadError("Failed to stat log file", path, str(e)) from e
        if not stat.S_ISREG(info.st_mode) or info.st_size == 0:
            logger.debug(f"Skipping {path}: not a regular file or empty")
            continue
        yield WorkItem(path, info.st_size)


def _walk_files(root: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        dirnames.sort()
        for filename in sorted(filenames):
            yield Path(dirpath, filename)


class PipelineController:
    """
    Runs one dialect over a directory tree or a single stream.

    Args:
        dialect: Registered dialect name ("alb", "classic-lb")
        settings: Runtime settings (defaults to Settings())
        reporter: Diagnostic sink for rejected lines (defaults from settings)
    """

    def __init__(
        self,
        dialect: str,
        settings: Optional[Settings] = None,
        reporter: Optional[Reporter] = None,
    ):
        self.parser_class: type[DialectParser] = get_parser_class(dialect)
        self.settings = settings or Settings(dialect=self.parser_class.name)
        self.reporter = reporter or Reporter.from_settings(self.settings)

        self._errors: list[BaseException] = []
        self._errors_lock = threading.Lock()
        self._abort = threading.Event()
        self._stats = _Stats()

    # ------------------------------------------------------------------
    # Directory mode
    # ------------------------------------------------------------------

    def run_directory(self, root: Union[str, Path], output: BinaryIO) -> PipelineResult:
        """
        Parse every candidate file under ``root`` and write JSON lines to ``output``.

        Raises:
            GrammarMismatch: First rejected line in strict mode
            EncodingError: A matched field is not valid UTF-8
            SourceReadError: Traversal, open, read or decompression failure
            ThreadFault: A pipeline thread died unexpectedly
        """
        result = self._start(str(root))
        work_queue: queue.Queue = queue.Queue()
        output_queue: queue.Queue = queue.Queue(maxsize=self.settings.output_queue_size)

        workers = [
            threading.Thread(
                target=self._worker_loop,
                args=(work_queue, output_queue),
                name=f"worker-{index}",
                daemon=True,
            )
            for index in range(self.settings.workers)
        ]
        collector = threading.Thread(
            target=self._collector_loop,
            args=(output_queue, output),
            name="collector",
            daemon=True,
        )
        collector.start()
        for worker in workers:
            worker.start()
        logger.debug(f"Started {len(workers)} workers for {root}")

        try:
            for item in iter_candidate_files(root, self.parser_class.file_suffix):
                if self._abort.is_set():
                    logger.debug("Walker stopping after worker failure")
                    break
                work_queue.put(item)
        except ElbLogParserError as e:
            self._fail(e)
        finally:
            for _ in workers:
                work_queue.put(_CLOSE)

        for worker in workers:
            worker.join()
        output_queue.put(_CLOSE)
        collector.join()

        return self._finish(result)

    def _worker_loop(self, work_queue: queue.Queue, output_queue: queue.Queue) -> None:
        name = threading.current_thread().name
        parser = self.parser_class()
        stats = _Stats()
        logger.debug(f"{name} started")
        try:
            while True:
                item = work_queue.get()
                if item is _CLOSE:
                    break
                if self._abort.is_set():
                    continue
                logger.debug(f"{name} parsing {item.path} ({item.size:,} bytes)")
                with open_log_file(item.path, self.parser_class.compressed) as handle:
                    self._parse_lines(
                        parser, iter_lines(handle, item.path), output_queue.put, stats
                    )
                stats.files_processed += 1
        except ElbLogParserError as e:
            self._fail(e)
        except Exception as e:
            logger.exception(f"{name} terminated abnormally")
            self._fail(ThreadFault(name, e))
        finally:
            self._merge(stats)
            logger.debug(f"{name} stopped")

    def _collector_loop(self, output_queue: queue.Queue, output: BinaryIO) -> None:
        failed = False
        while True:
            message = output_queue.get()
            if message is _CLOSE:
                break
            if failed:
                # Keep draining so bounded-queue producers never block
                continue
            try:
                output.write(message.encode("utf-8") + b"\n")
            except OSError as e:
                failed = True
                self._fail(e)
            except Exception as e:
                failed = True
                self._fail(ThreadFault(threading.current_thread().name, e))
        if not failed:
            try:
                output.flush()
            except OSError as e:
                self._fail(e)

    # ------------------------------------------------------------------
    # Single-stream mode
    # ------------------------------------------------------------------

    def run_stream(self, stream: BinaryIO, output: BinaryIO) -> PipelineResult:
        """
        Parse ``stream`` line by line and write JSON lines to ``output``.

        Output order equals input order. Raises the same errors as
        run_directory(), except ThreadFault.
        """
        result = self._start("-")
        parser = self.parser_class()

        def emit(message: str) -> None:
            output.write(message.encode("utf-8") + b"\n")

        try:
            self._parse_lines(parser, iter_lines(stream, "-"), emit, self._stats)
        except (ElbLogParserError, OSError) as e:
            self._fail(e)
        finally:
            output.flush()

        return self._finish(result)

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    def _parse_lines(
        self,
        parser: DialectParser,
        lines: Iterable[bytes],
        emit: Callable[[str], None],
        stats: _Stats,
    ) -> None:
        for line in lines:
            outcome = parser.parse_outcome(line)
            if isinstance(outcome, Rejected):
                self.reporter.report(outcome.reason, parser.locate_failure)
                if not self.settings.skip_parse_errors:
                    raise outcome.reason
                stats.lines_skipped += 1
                continue
            emit(outcome.record.to_json())
            stats.records_emitted += 1

    def _fail(self, error: BaseException) -> None:
        with self._errors_lock:
            self._errors.append(error)
        self._abort.set()

    def _merge(self, stats: _Stats) -> None:
        with self._errors_lock:
            self._stats.files_processed += stats.files_processed
            self._stats.records_emitted += stats.records_emitted
            self._stats.lines_skipped += stats.lines_skipped

    def _start(self, source: str) -> PipelineResult:
        self._errors = []
        self._abort.clear()
        self._stats = _Stats()
        return PipelineResult(success=False, dialect=self.parser_class.name, source=source)

    def _finish(self, result: PipelineResult) -> PipelineResult:
        """Fill in the result, then re-raise the first recorded error."""
        result.completed_at = datetime.now().astimezone()
        result.files_processed = self._stats.files_processed
        result.records_emitted = self._stats.records_emitted
        result.lines_skipped = self._stats.lines_skipped
        result.errors = [str(e) for e in self._errors]
        result.success = not self._errors

        if self._errors:
            logger.debug(f"Pipeline failed: {result.to_dict()}")
            raise self._errors[0]
        return result


def run_directory(
    root: Union[str, Path],
    dialect: str,
    settings: Optional[Settings] = None,
    output: Optional[BinaryIO] = None,
    reporter: Optional[Reporter] = None,
) -> PipelineResult:
    """Convenience wrapper around PipelineController.run_directory()."""
    controller = PipelineController(dialect, settings, reporter)
    return controller.run_directory(root, output or sys.stdout.buffer)


def run_stream(
    stream: BinaryIO,
    dialect: str,
    settings: Optional[Settings] = None,
    output: Optional[BinaryIO] = None,
    reporter: Optional[Reporter] = None,
) -> PipelineResult:
    """Convenience wrapper around PipelineController.run_stream()."""
    controller = PipelineController(dialect, settings, reporter)
    return controller.run_stream(stream, output or sys.stdout.buffer)
