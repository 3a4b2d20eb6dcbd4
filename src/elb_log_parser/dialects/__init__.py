"""
Access-log dialects.

Usage:
    from elb_log_parser.dialects import get_parser_class

    parser = get_parser_class("alb")()
    record = parser.parse(line)
    print(record.to_json())
"""

from .base import DialectParser, Matched, ParseOutcome, Record, Rejected
from .registry import (
    DialectNotFoundError,
    DialectRegistry,
    get_parser_class,
    list_dialects,
)

# Import dialects so they register themselves
from .alb import ALBParser, ALBRecord  # noqa: E402
from .classic_lb import ClassicLBParser, ClassicRecord  # noqa: E402

__all__ = [
    # Base classes and data models
    "DialectParser",
    "Record",
    "Matched",
    "Rejected",
    "ParseOutcome",
    # Registry
    "DialectRegistry",
    "DialectNotFoundError",
    "get_parser_class",
    "list_dialects",
    # Dialects
    "ALBParser",
    "ALBRecord",
    "ClassicLBParser",
    "ClassicRecord",
]
