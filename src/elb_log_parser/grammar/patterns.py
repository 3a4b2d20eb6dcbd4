"""
Pattern primitives for access-log grammars.

A dialect grammar is written once as a tree of Pattern nodes. The same tree
is rendered to a capturing ``re`` bytes pattern (used to extract fields) and
emitted into a byte NFA (used to localize failures), so both engines always
describe the same language.

Example:
    octet = repeat(one_of(b"0-9"), 1, 3)
    ip = seq(octet, b".", octet, b".", octet, b".", octet)
    seq(capture("ip", ip), b":", capture("port", repeat(one_of(b"0-9"), 1, 5))).to_regex()
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

PatternLike = Union["Pattern", bytes]


class Pattern:
    """Base class for pattern nodes."""

    def to_regex(self) -> bytes:
        """Render this node as ``re`` bytes syntax."""
        raise NotImplementedError

    def atom(self) -> bytes:
        """Render this node so that it can safely take a quantifier."""
        return b"(?:" + self.to_regex() + b")"

    def emit(self, nfa, start: int) -> int:
        """
        Add this node's transitions to ``nfa`` starting at ``start``.

        Returns:
            The (fresh) state reached once the node has been matched
        """
        raise NotImplementedError

    def capture_names(self) -> list[str]:
        """Names of capture groups in left-to-right order."""
        return []

    def compile(self) -> "re.Pattern[bytes]":
        """Compile the rendered pattern."""
        return re.compile(self.to_regex())


@dataclass(frozen=True)
class Literal(Pattern):
    text: bytes

    def to_regex(self) -> bytes:
        return re.escape(self.text)

    def atom(self) -> bytes:
        if len(self.text) == 1:
            return self.to_regex()
        return super().atom()

    def emit(self, nfa, start: int) -> int:
        current = start
        for byte in self.text:
            nxt = nfa.new_state()
            nfa.add_edge(current, frozenset((byte,)), nxt)
            current = nxt
        return current


@dataclass(frozen=True)
class ByteSet(Pattern):
    members: frozenset

    def to_regex(self) -> bytes:
        if not self.members:
            raise ValueError("Empty byte set cannot be rendered")
        if len(self.members) == 1:
            return re.escape(bytes(self.members))
        parts = []
        for low, high in _ranges(self.members):
            if low == high:
                parts.append(b"\\x%02x" % low)
            else:
                parts.append(b"\\x%02x-\\x%02x" % (low, high))
        return b"[" + b"".join(parts) + b"]"

    def atom(self) -> bytes:
        return self.to_regex()

    def emit(self, nfa, start: int) -> int:
        end = nfa.new_state()
        nfa.add_edge(start, self.members, end)
        return end


@dataclass(frozen=True)
class Sequence(Pattern):
    parts: tuple

    def to_regex(self) -> bytes:
        return b"".join(
            part.atom() if isinstance(part, Choice) else part.to_regex()
            for part in self.parts
        )

    def atom(self) -> bytes:
        if len(self.parts) == 1:
            return self.parts[0].atom()
        return super().atom()

    def emit(self, nfa, start: int) -> int:
        current = start
        for part in self.parts:
            current = part.emit(nfa, current)
        return current

    def capture_names(self) -> list[str]:
        names = []
        for part in self.parts:
            names.extend(part.capture_names())
        return names


@dataclass(frozen=True)
class Choice(Pattern):
    """Ordered alternation: earlier options win when several match."""

    options: tuple

    def to_regex(self) -> bytes:
        return b"|".join(option.to_regex() for option in self.options)

    def emit(self, nfa, start: int) -> int:
        end = nfa.new_state()
        for option in self.options:
            entry = nfa.new_state()
            nfa.add_epsilon(start, entry)
            nfa.add_epsilon(option.emit(nfa, entry), end)
        return end

    def capture_names(self) -> list[str]:
        names = []
        for option in self.options:
            names.extend(option.capture_names())
        return names


@dataclass(frozen=True)
class Repeat(Pattern):
    """Greedy repetition of ``inner`` between ``low`` and ``high`` times (None = unbounded)."""

    inner: Pattern
    low: int
    high: Optional[int]

    def to_regex(self) -> bytes:
        low, high = self.low, self.high
        if (low, high) == (0, None):
            quantifier = b"*"
        elif (low, high) == (1, None):
            quantifier = b"+"
        elif (low, high) == (0, 1):
            quantifier = b"?"
        elif high is None:
            quantifier = b"{%d,}" % low
        elif low == high:
            quantifier = b"{%d}" % low
        else:
            quantifier = b"{%d,%d}" % (low, high)
        return self.inner.atom() + quantifier

    def emit(self, nfa, start: int) -> int:
        current = start
        for _ in range(self.low):
            current = self.inner.emit(nfa, current)

        if self.high is None:
            loop = nfa.new_state()
            nfa.add_epsilon(current, loop)
            nfa.add_epsilon(self.inner.emit(nfa, loop), loop)
            end = nfa.new_state()
            nfa.add_epsilon(loop, end)
            return end

        for _ in range(self.high - self.low):
            entry = nfa.new_state()
            join = nfa.new_state()
            nfa.add_epsilon(current, entry)
            nfa.add_epsilon(current, join)
            nfa.add_epsilon(self.inner.emit(nfa, entry), join)
            current = join
        return current

    def capture_names(self) -> list[str]:
        return self.inner.capture_names()


@dataclass(frozen=True)
class Capture(Pattern):
    """Named capture group; transparent to the automaton."""

    name: str
    inner: Pattern

    def to_regex(self) -> bytes:
        return b"(?P<" + self.name.encode("ascii") + b">" + self.inner.to_regex() + b")"

    def atom(self) -> bytes:
        return self.to_regex()

    def emit(self, nfa, start: int) -> int:
        return self.inner.emit(nfa, start)

    def capture_names(self) -> list[str]:
        return [self.name] + self.inner.capture_names()


# =============================================================================
# Constructors
# =============================================================================


def lit(text: bytes) -> Literal:
    """Match ``text`` exactly."""
    return Literal(bytes(text))


def one_of(chars: bytes) -> ByteSet:
    """
    Match one byte from a character class such as ``b"0-9a-f"``.

    A ``-`` between two bytes denotes an inclusive range; a ``-`` at either
    end of the class is literal.
    """
    return ByteSet(frozenset(_parse_class(chars)))


def none_of(chars: bytes) -> ByteSet:
    """Match one byte that is not in the character class."""
    excluded = _parse_class(chars)
    return ByteSet(frozenset(b for b in range(256) if b not in excluded))


def seq(*parts: PatternLike) -> Pattern:
    """Match ``parts`` one after another."""
    coerced = tuple(_coerce(part) for part in parts)
    if len(coerced) == 1:
        return coerced[0]
    return Sequence(coerced)


def alt(*options: PatternLike) -> Choice:
    """Match the first of ``options`` that leads to an overall match."""
    return Choice(tuple(_coerce(option) for option in options))


def repeat(inner: PatternLike, low: int, high: Optional[int]) -> Repeat:
    if high is not None and high < low:
        raise ValueError(f"Invalid repetition bounds: {low}..{high}")
    return Repeat(_coerce(inner), low, high)


def opt(inner: PatternLike) -> Repeat:
    return repeat(inner, 0, 1)


def star(inner: PatternLike) -> Repeat:
    return repeat(inner, 0, None)


def plus(inner: PatternLike) -> Repeat:
    return repeat(inner, 1, None)


def capture(name: str, inner: PatternLike) -> Capture:
    if not name.isidentifier():
        raise ValueError(f"Capture name must be an identifier: {name!r}")
    return Capture(name, _coerce(inner))


def _coerce(value: PatternLike) -> Pattern:
    if isinstance(value, Pattern):
        return value
    if isinstance(value, (bytes, bytearray)):
        return lit(value)
    raise TypeError(f"Expected Pattern or bytes, got {type(value).__name__}")


def _parse_class(chars: bytes) -> set[int]:
    members = set()
    i = 0
    while i < len(chars):
        if i + 2 < len(chars) and chars[i + 1] == ord("-"):
            low, high = chars[i], chars[i + 2]
            if high < low:
                raise ValueError(f"Invalid byte range in character class: {chars!r}")
            members.update(range(low, high + 1))
            i += 3
        else:
            members.add(chars[i])
            i += 1
    return members


def _ranges(members: frozenset) -> list[tuple[int, int]]:
    """Collapse a set of bytes into sorted inclusive ranges."""
    ranges: list[tuple[int, int]] = []
    for byte in sorted(members):
        if ranges and ranges[-1][1] == byte - 1:
            ranges[-1] = (ranges[-1][0], byte)
        else:
            ranges.append((byte, byte))
    return ranges
