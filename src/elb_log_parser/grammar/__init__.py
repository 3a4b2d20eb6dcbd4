"""Grammar building blocks: pattern algebra, byte automata and failure localization."""

from .automaton import NFA, ByteDFA
from .locator import FailurePosition, Locator
from .patterns import (
    ByteSet,
    Capture,
    Choice,
    Literal,
    Pattern,
    Repeat,
    Sequence,
    alt,
    capture,
    lit,
    none_of,
    one_of,
    opt,
    plus,
    repeat,
    seq,
    star,
)

__all__ = [
    # Pattern nodes
    "Pattern",
    "Literal",
    "ByteSet",
    "Sequence",
    "Choice",
    "Repeat",
    "Capture",
    # Constructors
    "lit",
    "one_of",
    "none_of",
    "seq",
    "alt",
    "repeat",
    "opt",
    "star",
    "plus",
    "capture",
    # Automata
    "NFA",
    "ByteDFA",
    "Locator",
    "FailurePosition",
]
