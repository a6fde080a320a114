"""SQLAlchemy adapter package for ehsreport."""

from __future__ import annotations

from .mappings import StoredReportDocument, mapper_registry, start_mappers
from .repositories import SqlAlchemyReportDocumentRepository
from .store import SqlAlchemyDocumentStore, SqlSubscription
from .unit_of_work import (
    SqlAlchemyDocumentUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyDocumentStore",
    "SqlAlchemyDocumentUnitOfWork",
    "SqlAlchemyReportDocumentRepository",
    "SqlSubscription",
    "StartupError",
    "StoredReportDocument",
    "configured_engine",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
