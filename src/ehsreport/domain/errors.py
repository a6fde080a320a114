"""Errors raised by the report domain at the call site."""

from __future__ import annotations


class InvalidPeriodError(ValueError):
    """Raised when a (year, month) pair does not describe a calendar month."""


class UnknownSectionError(KeyError):
    """Raised when a section name is not part of the canonical schema."""

    def __init__(self, section: str) -> None:
        super().__init__(section)
        self.section = section

    def __str__(self) -> str:
        return f"Unknown report section: {self.section!r}"


class SectionShapeError(TypeError):
    """Raised when a mutation does not fit the shape of the target section."""


class SessionNotOpenError(RuntimeError):
    """Raised when a report session is mutated before a period is selected."""
