"""Application orchestration entry points."""

from __future__ import annotations

from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING, Any

from ehsreport.adapters.firebase import FirebaseDocumentStore
from ehsreport.adapters.memory import InMemoryDocumentStore
from ehsreport.adapters.sqlalchemy import SqlAlchemyDocumentStore, is_started, startup
from ehsreport.config import get_firebase_config, get_report_config
from ehsreport.domain.report_index import ReportIndex
from ehsreport.domain.schema import SectionKind, section_kind
from ehsreport.domain.session import ReportSession

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ehsreport.config import ReportConfig
    from ehsreport.domain.periods import Period
    from ehsreport.domain.ports import DocumentStore
    from ehsreport.domain.status import ReportStatus
    from ehsreport.domain.types import ReportDocument

log = getLogger(__name__)


def build_document_store(config: ReportConfig | None = None) -> DocumentStore:
    """Create the document store selected by ``EHSREPORT_STORE``."""

    effective = config or get_report_config()
    log.debug("Using the %s document store", effective.backend)
    match effective.backend:
        case "memory":
            return InMemoryDocumentStore()
        case "sqlite":
            if not is_started():
                startup()
            return SqlAlchemyDocumentStore()
        case "firebase":
            return FirebaseDocumentStore(get_firebase_config())


@asynccontextmanager
async def open_report_session(
    period: Period,
    *,
    store: DocumentStore | None = None,
    config: ReportConfig | None = None,
) -> AsyncIterator[ReportSession]:
    """Yield a live session on ``period``; pending writes are flushed on exit.

    A store passed in stays open; a store built here is closed afterwards.
    """

    effective = config or get_report_config()
    owned = store is None
    active_store = store if store is not None else build_document_store(effective)
    session = ReportSession(active_store, key_prefix=effective.key_prefix)
    try:
        session.select_period(period)
        await session.wait_until_live(effective.wait_seconds)
        yield session
    finally:
        session.close()
        await session.flush()
        if owned:
            await active_store.aclose()


async def load_report(
    period: Period,
    *,
    store: DocumentStore | None = None,
    config: ReportConfig | None = None,
) -> ReportDocument:
    async with open_report_session(period, store=store, config=config) as session:
        return session.document


async def update_report_section(
    period: Period,
    section: str,
    value: Any,
    *,
    store: DocumentStore | None = None,
    config: ReportConfig | None = None,
) -> ReportDocument:
    """Merge ``value`` into a record section, or replace a collection section."""

    async with open_report_session(period, store=store, config=config) as session:
        if section_kind(section) is SectionKind.COLLECTION:
            session.replace_section(section, value)
        else:
            session.update_section(section, value)
        log.info("Updated %s of %s", section, period.label)
        return session.document


async def set_report_status(
    period: Period,
    status: ReportStatus,
    *,
    store: DocumentStore | None = None,
    config: ReportConfig | None = None,
) -> ReportDocument:
    async with open_report_session(period, store=store, config=config) as session:
        session.set_status(status)
        log.info("Marked %s as %s", period.label, status)
        return session.document


async def list_reports(
    *,
    store: DocumentStore | None = None,
    config: ReportConfig | None = None,
) -> list[Period]:
    """Return the periods that have a stored report, most recent first."""

    effective = config or get_report_config()
    owned = store is None
    active_store = store if store is not None else build_document_store(effective)
    try:
        return await ReportIndex(active_store, key_prefix=effective.key_prefix).list_known_periods()
    finally:
        if owned:
            await active_store.aclose()


async def migrate_reports(
    *,
    store: DocumentStore | None = None,
    config: ReportConfig | None = None,
) -> list[Period]:
    """Rewrite every stored report in the current document shape.

    Reconciliation already fills in missing fields on read; this writes the
    reconciled document back so the stored data matches what readers see.
    """

    effective = config or get_report_config()
    owned = store is None
    active_store = store if store is not None else build_document_store(effective)
    try:
        periods = await list_reports(store=active_store, config=effective)
        for period in periods:
            async with open_report_session(period, store=active_store, config=effective) as session:
                session.replace_document(session.document)
            log.info("Migrated %s", period.label)
    finally:
        if owned:
            await active_store.aclose()
    log.info("Finished migration: reports=%s", len(periods))
    return periods
