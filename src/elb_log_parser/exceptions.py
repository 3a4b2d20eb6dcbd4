"""
Custom exceptions for elb-log-parser.

The taxonomy separates bad input (GrammarMismatch, EncodingError) from
environment failures (SourceReadError) and internal defects (ThreadFault),
so callers can decide which ones are recoverable.
"""

from pathlib import Path
from typing import Optional, Union


class ElbLogParserError(Exception):
    """
    Base exception for all elb-log-parser errors.

    All other exceptions inherit from this class,
    allowing for broad exception catching when needed.
    """

    pass


class ParseError(ElbLogParserError):
    """Raised when a log line cannot be turned into a JSON record."""

    pass


class GrammarMismatch(ParseError):
    """
    Raised when a line does not satisfy the dialect grammar.

    This is the only error kind that can be skipped (``--skip-parse-errors``).

    Attributes:
        line: The unmodified bytes of the rejected line
    """

    def __init__(self, line: bytes):
        self.line = bytes(line)
        super().__init__(self._format_message())

    @property
    def text(self) -> str:
        """The rejected line decoded for display, without its line terminator."""
        return self.line.decode("utf-8", errors="replace").rstrip("\r\n")

    def _format_message(self) -> str:
        return f"Invalid log line: {self.text}"


class EncodingError(ParseError):
    """
    Raised when a matched field is not valid UTF-8 at serialization time.

    Always fatal: emitting replacement characters would silently corrupt
    the output stream.

    Attributes:
        field: Name of the field holding the undecodable bytes
        line: The unmodified bytes of the line
    """

    def __init__(self, field: str, line: bytes):
        self.field = field
        self.line = bytes(line)
        super().__init__(
            f"log contains invalid UTF-8 characters (field='{field}')"
        )


class SourceReadError(ElbLogParserError):
    """
    Raised when enumerating, opening, reading or decompressing input fails.

    Attributes:
        path: The file or directory being read (None for stdin)
        reason: Underlying error description
    """

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        reason: Optional[str] = None,
    ):
        self.path = path
        self.reason = reason
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.path is not None:
            parts.append(f"path='{self.path}'")
        if self.reason:
            parts.append(f"reason: {self.reason}")
        return " - ".join(parts)


class ThreadFault(ElbLogParserError):
    """
    Raised when a pipeline thread terminated through an unexpected exception.

    Reported distinctly from input errors: a fault means a defect in the
    pipeline, not a bad log line.

    Attributes:
        thread_name: Name of the thread that died
        original: The exception that escaped the thread
    """

    def __init__(self, thread_name: str, original: BaseException):
        self.thread_name = thread_name
        self.original = original
        super().__init__(
            f"Thread {thread_name!r} terminated abnormally: "
            f"{type(original).__name__}: {original}"
        )


class ConfigurationError(ElbLogParserError):
    """
    Raised when settings fail validation.

    Attributes:
        errors: List of validation messages
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid configuration: " + "; ".join(self.errors))
