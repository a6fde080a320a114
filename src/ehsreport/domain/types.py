"""Shared document aliases used across the report domain."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

# Documents are JSON-like trees; the canonical schema is a convention, not enforced.
ReportDocument: TypeAlias = dict[str, Any]
RawDocument: TypeAlias = Mapping[str, Any]
SectionFields: TypeAlias = Mapping[str, Any]

SnapshotCallback: TypeAlias = Callable[[RawDocument | None], None]
DocumentListener: TypeAlias = Callable[[ReportDocument], None]
DocumentUpdater: TypeAlias = Callable[[ReportDocument], Mapping[str, Any]]

__all__ = [
    "DocumentListener",
    "DocumentUpdater",
    "RawDocument",
    "ReportDocument",
    "SectionFields",
    "SnapshotCallback",
]
