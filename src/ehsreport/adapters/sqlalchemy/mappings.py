"""SQLAlchemy mapping metadata for stored report documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import cache
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Dialect, String, Table, TypeDecorator, orm
from sqlalchemy.orm import configure_mappers

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False)
class StoredReportDocument:
    """Row holding the raw JSON document of one report period."""

    key: str
    payload: dict[str, Any]
    updated_at: datetime = field(default_factory=utc_now)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

report_document_table = Table(
    "report_document",
    mapper_registry.metadata,
    Column("key", String(128), primary_key=True),
    Column("payload", JSON, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False, default=utc_now),
)


@cache
def start_mappers() -> orm.registry:
    """Map the stored document row onto its table."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(StoredReportDocument, report_document_table)
    configure_mappers()
    return mapper_registry


__all__ = [
    "StoredReportDocument",
    "UTCDateTime",
    "mapper_registry",
    "report_document_table",
    "start_mappers",
    "utc_now",
]
