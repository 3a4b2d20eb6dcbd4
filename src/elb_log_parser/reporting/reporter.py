"""
Diagnostics for rejected log lines.

On a terminal the rejected line is echoed with the offending byte
highlighted; otherwise a single plain line per rejection is written so the
output stays grep-friendly.
"""

import os
import sys
import threading
from functools import lru_cache
from typing import Callable, Optional, TextIO

from ..exceptions import GrammarMismatch
from ..grammar import FailurePosition

# ANSI SGR codes
YELLOW = "33"
RED = "31"
BRIGHT_RED = "91"
OFFENDING = "1;91;4;31"  # bold, bright red, underlined
DIM = "38;5;238"

Locate = Callable[[bytes], Optional[FailurePosition]]


@lru_cache(maxsize=1)
def stderr_is_terminal() -> bool:
    """Whether the process's stderr is a terminal (queried once)."""
    try:
        return sys.stderr.isatty()
    except (AttributeError, ValueError):
        return False


def color_enabled(policy: str = "auto") -> bool:
    """
    Resolve a colour policy ("auto", "always", "never") to a yes/no.

    ``NO_COLOR`` in the environment disables colour for "auto".
    """
    if policy == "always":
        return True
    if policy == "never":
        return False
    if os.environ.get("NO_COLOR"):
        return False
    return stderr_is_terminal()


def color(code: str, text: str) -> str:
    """Wrap text in an ANSI colour code."""
    return f"\x1b[{code}m{text}\x1b[0m"


def _lossy(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class Reporter:
    """
    Writes one diagnostic per rejected line.

    Safe to share between worker threads: each diagnostic is written under a
    lock, so diagnostics never interleave.

    Args:
        skip_parse_errors: Tolerant mode ("skipping") vs strict mode
        use_color: Force rich/plain rendering; None resolves the "auto" policy
        stream: Destination, defaults to sys.stderr at report time
    """

    def __init__(
        self,
        skip_parse_errors: bool,
        use_color: Optional[bool] = None,
        stream: Optional[TextIO] = None,
    ):
        self.skip_parse_errors = skip_parse_errors
        self.use_color = color_enabled() if use_color is None else use_color
        self._stream = stream
        self._lock = threading.Lock()
        self.reported = 0

    @classmethod
    def from_settings(cls, settings, stream: Optional[TextIO] = None) -> "Reporter":
        return cls(
            skip_parse_errors=settings.skip_parse_errors,
            use_color=color_enabled(settings.color),
            stream=stream,
        )

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def report(self, error: GrammarMismatch, locate: Optional[Locate] = None) -> None:
        """
        Write the diagnostic for ``error``.

        Args:
            error: The rejection to report
            locate: Failure localizer (e.g. DialectParser.locate_failure),
                only consulted for rich rendering
        """
        if self.use_color:
            position = locate(error.line) if locate is not None else None
            text = self.render_rich(error.line, position)
        else:
            text = self.render_plain(error)

        with self._lock:
            self.stream.write(text)
            self.stream.flush()
            self.reported += 1

    def render_plain(self, error: GrammarMismatch) -> str:
        prefix = "Skipping error" if self.skip_parse_errors else "Error"
        return f"{prefix}: {error}\n"

    def render_rich(self, line: bytes, position: Optional[FailurePosition]) -> str:
        if self.skip_parse_errors:
            header = color(YELLOW, "Failed to parse following line, skipping:")
        else:
            header = color(RED, "Worker stopped due to parsing failure:")

        if position is None:
            body = _lossy(line).rstrip()
        elif position.ended_early or position.offset >= len(line):
            body = (
                _lossy(line).rstrip()
                + " "
                + color(BRIGHT_RED, "(expected next input, but received none)")
            )
        else:
            offset = position.offset
            body = (
                _lossy(line[:offset])
                + color(OFFENDING, _lossy(line[offset : offset + 1]))
                + color(DIM, _lossy(line[offset + 1 :]).rstrip())
            )

        return f"{header}\n    {body}\n\n"
