"""
Dialect registry.

Provides registration and lookup of dialect parser implementations.
"""

import logging
from typing import Type

from ..exceptions import ElbLogParserError
from .base import DialectParser

logger = logging.getLogger(__name__)


class DialectNotFoundError(ElbLogParserError, KeyError):
    """
    Raised when a dialect name is not registered.

    Attributes:
        dialect_name: The requested name
        available_dialects: Registered dialect names
    """

    def __init__(self, dialect_name: str, available_dialects: list[str]):
        self.dialect_name = dialect_name
        self.available_dialects = sorted(available_dialects)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.available_dialects:
            return (
                f"Unknown dialect: '{self.dialect_name}'. "
                f"Available dialects: {', '.join(self.available_dialects)}"
            )
        return f"Unknown dialect: '{self.dialect_name}'. No dialects registered."

    def __str__(self) -> str:
        return self._format_message()


class DialectRegistry:
    """
    Registry for dialect parsers.

    Usage:
        # Register using decorator
        @DialectRegistry.register('alb')
        class ALBParser(DialectParser):
            ...

        # Get parser class / fresh parser instance
        parser_class = DialectRegistry.get_parser_class('alb')
        parser = DialectRegistry.create_parser('alb')
    """

    _parsers: dict[str, Type[DialectParser]] = {}

    @classmethod
    def register(cls, dialect_name: str):
        """Decorator to register a parser class under ``dialect_name``."""

        def decorator(parser_class: Type[DialectParser]) -> Type[DialectParser]:
            cls.register_dialect(dialect_name, parser_class)
            return parser_class

        return decorator

    @classmethod
    def register_dialect(
        cls, dialect_name: str, parser_class: Type[DialectParser]
    ) -> None:
        """
        Register a parser class for a dialect.

        Raises:
            TypeError: If parser_class doesn't inherit from DialectParser
        """
        if not issubclass(parser_class, DialectParser):
            raise TypeError(
                f"Parser class must inherit from DialectParser, "
                f"got {parser_class.__name__}"
            )

        dialect_name = _normalize(dialect_name)
        if dialect_name in cls._parsers:
            logger.warning(f"Overwriting existing parser for dialect '{dialect_name}'")

        cls._parsers[dialect_name] = parser_class
        logger.debug(f"Registered dialect parser: {dialect_name}")

    @classmethod
    def get_parser_class(cls, dialect_name: str) -> Type[DialectParser]:
        """
        Get a parser class by dialect name.

        Raises:
            DialectNotFoundError: If the dialect is not registered
        """
        normalized = _normalize(dialect_name)
        if normalized not in cls._parsers:
            raise DialectNotFoundError(dialect_name, list(cls._parsers))
        return cls._parsers[normalized]

    @classmethod
    def create_parser(cls, dialect_name: str) -> DialectParser:
        """Instantiate a fresh parser (one per consuming thread)."""
        return cls.get_parser_class(dialect_name)()

    @classmethod
    def list_dialects(cls) -> list[str]:
        return sorted(cls._parsers)

    @classmethod
    def is_dialect_registered(cls, dialect_name: str) -> bool:
        return _normalize(dialect_name) in cls._parsers


def _normalize(dialect_name: str) -> str:
    # "classic_lb" and "Classic-LB" both resolve to "classic-lb"
    return dialect_name.strip().lower().replace("_", "-")


def get_parser_class(dialect_name: str) -> Type[DialectParser]:
    """Convenience wrapper around DialectRegistry.get_parser_class()."""
    return DialectRegistry.get_parser_class(dialect_name)


def list_dialects() -> list[str]:
    """Convenience wrapper around DialectRegistry.list_dialects()."""
    return DialectRegistry.list_dialects()
