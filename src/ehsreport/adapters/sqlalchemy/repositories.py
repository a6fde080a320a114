from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from ehsreport.adapters.sqlalchemy.mappings import (
    StoredReportDocument,
    report_document_table,
    utc_now,
)
from ehsreport.domain.schema import thaw

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.orm import Session


class SqlAlchemyReportDocumentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, key: str) -> dict[str, Any] | None:
        row = self.session.get(StoredReportDocument, key)
        if row is None:
            return None
        return thaw(row.payload)

    def put(self, key: str, payload: Mapping[str, Any]) -> None:
        document = thaw(payload)
        row = self.session.get(StoredReportDocument, key)
        if row is None:
            self.session.add(StoredReportDocument(key=key, payload=document))
            return
        # JSON columns do not track in-place mutation; assign a new value.
        row.payload = document
        row.updated_at = utc_now()

    def keys(self) -> list[str]:
        stmt = select(report_document_table.c.key).order_by(report_document_table.c.key)
        return list(self.session.execute(stmt).scalars())


if TYPE_CHECKING:
    from ehsreport.domain.ports.persistence import ReportDocumentRepository

    def _repo_check(session: Session) -> ReportDocumentRepository:
        return SqlAlchemyReportDocumentRepository(session)
