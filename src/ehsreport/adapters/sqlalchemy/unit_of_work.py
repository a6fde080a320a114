"""Database lifecycle and the unit of work over the report document table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ehsreport.adapters.sqlalchemy.mappings import start_mappers
from ehsreport.adapters.sqlalchemy.migrations import upgrade_head
from ehsreport.adapters.sqlalchemy.repositories import SqlAlchemyReportDocumentRepository
from ehsreport.config import get_database_config

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when the database is used before ``startup()`` or configured twice."""


@dataclass(slots=True, frozen=True)
class _Database:
    engine: Engine
    session_factory: sessionmaker[Session]


@dataclass(slots=True)
class _Registry:
    database: _Database | None = None

    def require(self) -> _Database:
        if self.database is None:
            raise StartupError(
                "Report database not started. Call ehsreport.adapters.sqlalchemy.startup() "
                "before opening a unit of work."
            )
        return self.database


_REGISTRY = _Registry()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Connect to the report database and migrate it to the newest schema."""

    if _REGISTRY.database is not None and not force:
        raise StartupError("Report database already started. Pass force=True to reconfigure.")

    resolved = engine or create_engine(database_uri or get_database_config().uri, future=True)
    start_mappers()
    upgrade_head(engine=resolved)
    _REGISTRY.database = _Database(
        engine=resolved,
        session_factory=sessionmaker(bind=resolved, expire_on_commit=False),
    )


def configured_engine() -> Engine | None:
    return None if _REGISTRY.database is None else _REGISTRY.database.engine


def is_started() -> bool:
    return _REGISTRY.database is not None


def shutdown() -> None:
    """Dispose the engine; a new ``startup()`` is needed before further use."""

    database, _REGISTRY.database = _REGISTRY.database, None
    if database is not None:
        database.engine.dispose()


class SqlAlchemyDocumentUnitOfWork:
    """A single session over ``report_document``, rolled back unless committed."""

    def __init__(self) -> None:
        self._session_factory = _REGISTRY.require().session_factory
        self._session: Session | None = None
        self._documents: SqlAlchemyReportDocumentRepository | None = None

    def __enter__(self) -> SqlAlchemyDocumentUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self._session_factory()
        self._documents = SqlAlchemyReportDocumentRepository(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._documents = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open; use it as a context manager")
        return self._session

    @property
    def documents(self) -> SqlAlchemyReportDocumentRepository:
        if self._documents is None:
            raise StartupError("Unit of work is not open; use it as a context manager")
        return self._documents

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from ehsreport.domain.ports.unit_of_work import DocumentUnitOfWork

    _uow_check: DocumentUnitOfWork = SqlAlchemyDocumentUnitOfWork()
