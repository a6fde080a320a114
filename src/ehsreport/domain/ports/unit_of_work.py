"""Transaction boundary around the report document repository."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from ehsreport.domain.ports.persistence import ReportDocumentRepository


@runtime_checkable
class DocumentUnitOfWork(Protocol):
    """One transaction over stored documents; changes are kept only on ``commit``."""

    @property
    def documents(self) -> ReportDocumentRepository: ...

    def __enter__(self) -> DocumentUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
