"""Document store on top of a relational database.

The database has no change feed, so subscribers only hear about writes
made through the same store instance. Other processes editing the same
database become visible when a period is selected again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from ehsreport.adapters.sqlalchemy.unit_of_work import SqlAlchemyDocumentUnitOfWork
from ehsreport.domain.schema import thaw

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from typing import Any

    from ehsreport.domain.ports.unit_of_work import DocumentUnitOfWork
    from ehsreport.domain.types import ReportDocument, SnapshotCallback

log = getLogger(__name__)


@dataclass(slots=True, eq=False)
class SqlSubscription:
    key: str
    callback: SnapshotCallback
    store: SqlAlchemyDocumentStore
    cancelled: bool = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self.store.detach(self)


@dataclass(slots=True)
class SqlAlchemyDocumentStore:
    uow_factory: Callable[[], DocumentUnitOfWork] = SqlAlchemyDocumentUnitOfWork
    _subscriptions: list[SqlSubscription] = field(
        default_factory=list[SqlSubscription], init=False, repr=False
    )

    def subscribe(self, key: str, on_snapshot: SnapshotCallback) -> SqlSubscription:
        subscription = SqlSubscription(key=key, callback=on_snapshot, store=self)
        self._subscriptions.append(subscription)
        with self.uow_factory() as uow:
            stored = uow.documents.get(key)
        _deliver(subscription, stored)
        return subscription

    def detach(self, subscription: SqlSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def write(self, key: str, document: ReportDocument) -> None:
        with self.uow_factory() as uow:
            uow.documents.put(key, document)
            uow.commit()
        log.debug("Stored %s", key)
        for subscription in tuple(self._subscriptions):
            if subscription.key == key:
                _deliver(subscription, document)

    async def list_keys(self) -> list[str]:
        with self.uow_factory() as uow:
            return uow.documents.keys()

    async def aclose(self) -> None:
        for subscription in tuple(self._subscriptions):
            subscription.cancel()


def _deliver(subscription: SqlSubscription, document: Mapping[str, Any] | None) -> None:
    if subscription.cancelled:
        return
    subscription.callback(None if document is None else thaw(document))


if TYPE_CHECKING:
    from ehsreport.domain.ports import DocumentStore, Subscription

    _store_check: DocumentStore = SqlAlchemyDocumentStore()
    _subscription_check: Subscription = SqlSubscription(
        key="", callback=lambda _raw: None, store=SqlAlchemyDocumentStore()
    )
