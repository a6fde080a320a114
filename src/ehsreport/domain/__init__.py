"""Report domain: schema, periods, reconciliation and the per-period session."""

from __future__ import annotations

from .errors import (
    InvalidPeriodError,
    SectionShapeError,
    SessionNotOpenError,
    UnknownSectionError,
)
from .periods import (
    DEFAULT_KEY_PREFIX,
    MONTH_NAMES,
    Period,
    current_period,
    parse_key,
    resolve_key,
    sort_periods_desc,
)
from .reconciliation import reconcile
from .report_index import ReportIndex, default_period
from .schema import (
    CANONICAL_DOCUMENT,
    SECTION_KEYS,
    SectionKind,
    canonical_leaf_paths,
    default_document,
    section_kind,
)
from .session import ReportSession, SessionState
from .status import ReportStatus, is_visible, report_status

__all__ = [
    "CANONICAL_DOCUMENT",
    "DEFAULT_KEY_PREFIX",
    "MONTH_NAMES",
    "SECTION_KEYS",
    "InvalidPeriodError",
    "Period",
    "ReportIndex",
    "ReportSession",
    "ReportStatus",
    "SectionKind",
    "SectionShapeError",
    "SessionNotOpenError",
    "SessionState",
    "UnknownSectionError",
    "canonical_leaf_paths",
    "current_period",
    "default_document",
    "default_period",
    "is_visible",
    "parse_key",
    "reconcile",
    "report_status",
    "resolve_key",
    "section_kind",
    "sort_periods_desc",
]
