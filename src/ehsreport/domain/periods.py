"""Reporting periods and the document keys derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final, Protocol

from .errors import InvalidPeriodError

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_KEY_PREFIX: Final[str] = "ehs_report"

MONTH_NAMES: Final[tuple[str, ...]] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True, order=True)
class Period:
    """One report instance, identified by calendar year and numeric month (1-12).

    Ordering compares the numeric ``(year, month)`` pair; never order periods
    by their document key, since the year segment is not padded.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise InvalidPeriodError(f"Year must be an integer, got {self.year!r}")
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise InvalidPeriodError(f"Month must be an integer, got {self.month!r}")
        if not 1 <= self.month <= 12:
            raise InvalidPeriodError(f"Month must be between 1 and 12, got {self.month}")

    @property
    def label(self) -> str:
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"

    def key(self, *, prefix: str = DEFAULT_KEY_PREFIX) -> str:
        return f"{prefix}_{self.year}_{self.month:02d}"


def resolve_key(year: int, month: int, *, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Map a (year, month) selection to its stable document key."""

    return Period(year, month).key(prefix=prefix)


def parse_key(key: str, *, prefix: str = DEFAULT_KEY_PREFIX) -> Period | None:
    """Recover the period encoded in ``key``; ``None`` for keys this resolver never produces."""

    marker = f"{prefix}_"
    if not key.startswith(marker):
        return None
    parts = key[len(marker) :].split("_")
    if len(parts) != 2 or not all(part.isascii() and part.isdigit() for part in parts):
        return None
    year_part, month_part = parts
    if len(month_part) != 2:
        return None
    try:
        return Period(int(year_part), int(month_part))
    except InvalidPeriodError:
        return None


def sort_periods_desc(periods: Iterable[Period]) -> list[Period]:
    """Deduplicate ``periods`` and order them most recent first."""

    return sorted(set(periods), reverse=True)


def current_period(*, clock: Clock = _utcnow) -> Period:
    """Return the period containing the clock's current date."""

    now = clock()
    return Period(now.year, now.month)


__all__ = [
    "DEFAULT_KEY_PREFIX",
    "MONTH_NAMES",
    "Clock",
    "Period",
    "current_period",
    "parse_key",
    "resolve_key",
    "sort_periods_desc",
]
