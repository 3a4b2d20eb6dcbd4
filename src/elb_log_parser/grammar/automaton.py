"""
Byte automata compiled from grammar patterns.

A Pattern is emitted into a Thompson NFA and determinized with the subset
construction into a ByteDFA. Bytes are first partitioned into equivalence
classes (bytes that every byte set in the grammar treats alike), so each DFA
state only needs one transition per class instead of one per byte.

The resulting ByteDFA is immutable and safe to share between threads.
"""

import logging
from dataclasses import dataclass

from .patterns import Pattern

logger = logging.getLogger(__name__)

DEAD = 0


class NFA:
    """Mutable Thompson NFA under construction."""

    def __init__(self) -> None:
        self.edges: list[list[tuple[frozenset, int]]] = []
        self.epsilons: list[list[int]] = []

    def new_state(self) -> int:
        self.edges.append([])
        self.epsilons.append([])
        return len(self.edges) - 1

    def add_edge(self, source: int, members: frozenset, target: int) -> None:
        self.edges[source].append((members, target))

    def add_epsilon(self, source: int, target: int) -> None:
        self.epsilons[source].append(target)

    def closure(self, states) -> frozenset:
        """Return ``states`` plus everything reachable through epsilon moves."""
        seen = set(states)
        stack = list(states)
        while stack:
            for target in self.epsilons[stack.pop()]:
                if target not in seen:
                    seen.add(target)
                    stack.append(target)
        return frozenset(seen)

    @classmethod
    def from_pattern(cls, pattern: Pattern) -> tuple["NFA", int, int]:
        """Build an NFA for ``pattern``; returns (nfa, start, accept)."""
        nfa = cls()
        start = nfa.new_state()
        accept = pattern.emit(nfa, start)
        return nfa, start, accept


@dataclass(frozen=True)
class ByteDFA:
    """
    Deterministic automaton over bytes.

    State 0 is the dead state: once entered, no continuation of the input can
    be accepted. Every other state can still reach an accepting state.

    Attributes:
        byte_classes: 256-byte table mapping each byte to its class index
        transitions: Per state, the target state for each byte class
        accepting: States in which the input consumed so far is a full match
        start: Initial state
    """

    byte_classes: bytes
    transitions: tuple
    accepting: frozenset
    start: int

    def step(self, state: int, byte: int) -> int:
        return self.transitions[state][self.byte_classes[byte]]

    def is_dead(self, state: int) -> bool:
        return state == DEAD

    def is_accepting(self, state: int) -> bool:
        return state in self.accepting

    def run(self, data: bytes) -> int:
        """Feed ``data`` from the start state and return the final state."""
        state = self.start
        for byte in data:
            state = self.step(state, byte)
            if state == DEAD:
                break
        return state

    def accepts(self, data: bytes) -> bool:
        return self.is_accepting(self.run(data))

    @classmethod
    def from_pattern(cls, pattern: Pattern) -> "ByteDFA":
        """Compile ``pattern`` (captures ignored) into a minimal-alphabet DFA."""
        nfa, nfa_start, nfa_accept = NFA.from_pattern(pattern)
        byte_classes, class_count, classes_of_set = _partition_alphabet(nfa)

        subsets: list[frozenset] = [frozenset()]
        index: dict[frozenset, int] = {frozenset(): DEAD}
        transitions: list[list[int]] = [[DEAD] * class_count]

        start_set = nfa.closure([nfa_start])
        index[start_set] = 1
        subsets.append(start_set)
        transitions.append([DEAD] * class_count)

        pending = [1]
        while pending:
            state = pending.pop()
            targets: list[set[int]] = [set() for _ in range(class_count)]
            for nfa_state in subsets[state]:
                for members, target in nfa.edges[nfa_state]:
                    for byte_class in classes_of_set[members]:
                        targets[byte_class].add(target)

            row = transitions[state]
            for byte_class, target_states in enumerate(targets):
                if not target_states:
                    continue
                subset = nfa.closure(target_states)
                target = index.get(subset)
                if target is None:
                    target = len(subsets)
                    index[subset] = target
                    subsets.append(subset)
                    transitions.append([DEAD] * class_count)
                    pending.append(target)
                row[byte_class] = target

        accepting = frozenset(
            state for state, subset in enumerate(subsets) if nfa_accept in subset
        )
        _prune_hopeless_states(transitions, accepting)

        logger.debug(
            f"Compiled DFA with {len(subsets)} states over {class_count} byte classes "
            f"(NFA: {len(nfa.edges)} states)"
        )
        return cls(
            byte_classes=byte_classes,
            transitions=tuple(tuple(row) for row in transitions),
            accepting=accepting,
            start=1,
        )


def _partition_alphabet(nfa: NFA) -> tuple[bytes, int, dict[frozenset, list[int]]]:
    """
    Group bytes that belong to exactly the same byte sets.

    Returns:
        Tuple of (byte -> class table, number of classes,
        byte set -> list of classes it contains)
    """
    sets = sorted(
        {members for edges in nfa.edges for members, _ in edges},
        key=lambda members: sorted(members),
    )
    signatures: dict[tuple, int] = {}
    table = bytearray(256)
    for byte in range(256):
        signature = tuple(byte in members for members in sets)
        table[byte] = signatures.setdefault(signature, len(signatures))

    classes_of_set = {
        members: sorted({table[byte] for byte in members}) for members in sets
    }
    return bytes(table), len(signatures), classes_of_set


def _prune_hopeless_states(transitions: list[list[int]], accepting: frozenset) -> None:
    """Redirect transitions into states that can never reach acceptance to DEAD."""
    predecessors: list[set[int]] = [set() for _ in transitions]
    for source, row in enumerate(transitions):
        for target in row:
            predecessors[target].add(source)

    live = set(accepting)
    stack = list(accepting)
    while stack:
        for source in predecessors[stack.pop()]:
            if source not in live:
                live.add(source)
                stack.append(source)

    for row in transitions:
        for byte_class, target in enumerate(row):
            if target not in live:
                row[byte_class] = DEAD
