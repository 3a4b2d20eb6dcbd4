"""
Abstract base class and data models for dialect parsers.

A Record never copies field bytes: it keeps the line it was parsed from and
one (start, end) span per field. Bytes are only decoded when the record is
serialized, which must happen before the caller reuses or drops the line.
"""

import json
import logging
import re
import threading
from abc import ABC
from dataclasses import dataclass
from typing import ClassVar, Iterator, Optional, Union

from ..exceptions import EncodingError, GrammarMismatch
from ..grammar import ByteDFA, FailurePosition, Locator, Pattern

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Record:
    """
    One parsed log line as an ordered mapping of field name -> byte range.

    Subclasses fix FIELDS, the field names in output order.

    Attributes:
        line: The raw line the spans point into
        spans: (start, end) offsets, one per entry in FIELDS
    """

    FIELDS: ClassVar[tuple[str, ...]] = ()
    _INDEX: ClassVar[dict[str, int]] = {}

    line: bytes
    spans: tuple

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._INDEX = {name: i for i, name in enumerate(cls.FIELDS)}

    def span(self, name: str) -> tuple[int, int]:
        """Byte range of field ``name`` within ``line``."""
        return self.spans[self._INDEX[name]]

    def view(self, name: str) -> memoryview:
        """Zero-copy view of field ``name``."""
        start, end = self.span(name)
        return memoryview(self.line)[start:end]

    def __getitem__(self, name: str) -> bytes:
        start, end = self.span(name)
        return self.line[start:end]

    def __contains__(self, name: object) -> bool:
        return name in self._INDEX

    def __len__(self) -> int:
        return len(self.FIELDS)

    def keys(self) -> tuple[str, ...]:
        return self.FIELDS

    def items(self) -> Iterator[tuple[str, bytes]]:
        for name in self.FIELDS:
            yield name, self[name]

    def to_dict(self) -> dict[str, str]:
        """
        Decode every field as UTF-8.

        Sentinel values such as "-" and "-1" are kept verbatim.

        Raises:
            EncodingError: If a field is not valid UTF-8
        """
        view = memoryview(self.line)
        result = {}
        for name, (start, end) in zip(self.FIELDS, self.spans):
            try:
                result[name] = str(view[start:end], "utf-8")
            except UnicodeDecodeError as e:
                raise EncodingError(name, self.line) from e
        return result

    def to_json(self) -> str:
        """Serialize to one compact JSON object (no trailing newline)."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))


@dataclass(frozen=True)
class Matched:
    record: Record


@dataclass(frozen=True)
class Rejected:
    line: bytes
    reason: GrammarMismatch


ParseOutcome = Union[Matched, Rejected]


class DialectParser(ABC):
    """
    Abstract base class for access-log dialects.

    Subclasses declare the class attributes below. The compiled regex and the
    failure automaton are built once per dialect and shared by all instances;
    they are immutable. A parser instance itself keeps per-instance counters
    and must be used by one thread at a time.

    Class attributes:
        name: Registry name of the dialect ("alb", "classic-lb")
        file_suffix: File name suffix selected by the directory walker
        compressed: Whether files are gzip-compressed
        record_class: Record subclass produced by parse()
        LINE: Full-line grammar, including the optional trailing newline
    """

    name: ClassVar[str]
    file_suffix: ClassVar[str]
    compressed: ClassVar[bool]
    record_class: ClassVar[type]
    LINE: ClassVar[Pattern]

    _shared: ClassVar[dict] = {}
    _shared_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        self._regex, self._group_indices = self.compiled_pattern()
        self._locator: Optional[Locator] = None
        self.lines_matched = 0
        self.lines_rejected = 0

    @classmethod
    def compiled_pattern(cls) -> tuple["re.Pattern[bytes]", tuple[int, ...]]:
        """Return the shared capturing regex and the group index of each field."""
        key = (cls, "regex")
        with cls._shared_lock:
            if key not in cls._shared:
                regex = cls.LINE.compile()
                fields = cls.record_class.FIELDS
                if tuple(cls.LINE.capture_names()) != fields:
                    raise TypeError(
                        f"{cls.__name__}: grammar captures "
                        f"{cls.LINE.capture_names()} do not match record fields {fields}"
                    )
                cls._shared[key] = (
                    regex,
                    tuple(regex.groupindex[name] for name in fields),
                )
            return cls._shared[key]

    @classmethod
    def automaton(cls) -> ByteDFA:
        """Return the shared line automaton, compiling it on first use."""
        key = (cls, "dfa")
        with cls._shared_lock:
            if key not in cls._shared:
                logger.debug(f"Compiling failure automaton for dialect '{cls.name}'")
                cls._shared[key] = ByteDFA.from_pattern(cls.LINE)
            return cls._shared[key]

    def parse(self, line: bytes) -> Record:
        """
        Parse one line (trailing newline optional).

        Raises:
            GrammarMismatch: If the line does not match the dialect grammar
        """
        match = self._regex.fullmatch(line)
        if match is None:
            self.lines_rejected += 1
            raise GrammarMismatch(line)
        self.lines_matched += 1
        return self.record_class(line, tuple(map(match.span, self._group_indices)))

    def parse_outcome(self, line: bytes) -> ParseOutcome:
        """Parse without raising: Matched(record) or Rejected(line, reason)."""
        try:
            return Matched(self.parse(line))
        except GrammarMismatch as e:
            return Rejected(e.line, e)

    def locate_failure(self, line: bytes) -> Optional[FailurePosition]:
        """Find where ``line`` diverges from the grammar (None if it matches)."""
        if self._locator is None:
            self._locator = Locator(self.automaton())
        return self._locator.locate(line)
