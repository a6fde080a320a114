"""Domain port definitions for adapters."""

from __future__ import annotations

from .document_store import DocumentStore, Subscription
from .persistence import ReportDocumentRepository
from .unit_of_work import DocumentUnitOfWork

__all__ = [
    "DocumentStore",
    "DocumentUnitOfWork",
    "ReportDocumentRepository",
    "Subscription",
]
