"""
Failure localization for rejected log lines.

Drives a ByteDFA over a line that the capturing matcher rejected and reports
the first byte after which no continuation could still form a valid record.
"""

from dataclasses import dataclass
from typing import Optional

from .automaton import ByteDFA

NEWLINE = 0x0A


@dataclass(frozen=True)
class FailurePosition:
    """
    Where a line stops matching its grammar.

    Attributes:
        offset: Byte offset of the offending byte, or the length of the line
            content when ``ended_early`` is set
        ended_early: Every byte was consistent with some valid record but the
            line ended before one was complete
    """

    offset: int
    ended_early: bool = False


class Locator:
    """Find failure positions with a (shared, immutable) line automaton."""

    def __init__(self, dfa: ByteDFA):
        self._dfa = dfa

    @property
    def dfa(self) -> ByteDFA:
        return self._dfa

    def locate(self, line: bytes) -> Optional[FailurePosition]:
        """
        Locate the earliest byte of ``line`` that cannot be part of a match.

        Args:
            line: Raw line bytes, trailing newline optional

        Returns:
            FailurePosition, or None if the line is actually accepted
        """
        dfa = self._dfa
        state = dfa.start
        last = len(line) - 1
        for offset, byte in enumerate(line):
            state = dfa.step(state, byte)
            if dfa.is_dead(state):
                if offset == last and byte == NEWLINE:
                    # The terminator arrived while a field was still open.
                    return FailurePosition(offset, ended_early=True)
                return FailurePosition(offset)

        if dfa.is_accepting(state):
            return None
        return FailurePosition(len(line), ended_early=True)
