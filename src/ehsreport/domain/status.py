"""Draft/published gating for read-only consumers."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from .types import ReportDocument

STATUS_FIELD = "status"


class ReportStatus(StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"


def report_status(document: Mapping[str, Any]) -> ReportStatus:
    """Return the effective status; an unset or unrecognised value counts as published."""

    if document.get(STATUS_FIELD) == ReportStatus.DRAFT:
        return ReportStatus.DRAFT
    return ReportStatus.PUBLISHED


def is_visible(document: Mapping[str, Any]) -> bool:
    """Whether rendering and export may proceed for read-only consumers."""

    return report_status(document) is ReportStatus.PUBLISHED


def with_status(document: Mapping[str, Any], status: ReportStatus) -> ReportDocument:
    return {**document, STATUS_FIELD: ReportStatus(status).value}


def toggled_status(document: Mapping[str, Any]) -> ReportStatus:
    """Status the editor's publish toggle moves to.

    Only an explicitly published document is unpublished; a document without
    a status is published by the toggle even though readers already see it.
    """

    if document.get(STATUS_FIELD) == ReportStatus.PUBLISHED:
        return ReportStatus.DRAFT
    return ReportStatus.PUBLISHED


__all__ = [
    "STATUS_FIELD",
    "ReportStatus",
    "is_visible",
    "report_status",
    "toggled_status",
    "with_status",
]
