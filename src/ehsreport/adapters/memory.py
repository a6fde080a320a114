"""Process-local document store with push semantics."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from ehsreport.domain.schema import thaw

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ehsreport.domain.types import ReportDocument, SnapshotCallback

log = getLogger(__name__)


class StoreWriteError(RuntimeError):
    """Raised by the in-memory store when writes are switched off."""


@dataclass(slots=True, eq=False)
class MemorySubscription:
    key: str
    callback: SnapshotCallback
    store: InMemoryDocumentStore
    cancelled: bool = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self.store.detach(self)


@dataclass(slots=True)
class InMemoryDocumentStore:
    """Dict-backed store; subscribers are notified synchronously.

    ``fail_writes`` makes every write raise, which is how tests exercise the
    session's failure path.
    """

    documents: dict[str, dict[str, Any]] = field(default_factory=dict[str, dict[str, Any]])
    fail_writes: bool = False
    writes: list[tuple[str, ReportDocument]] = field(default_factory=list)
    _subscriptions: list[MemorySubscription] = field(
        default_factory=list[MemorySubscription], init=False, repr=False
    )

    @classmethod
    def seeded(cls, documents: Mapping[str, Mapping[str, Any]]) -> InMemoryDocumentStore:
        return cls(documents={key: thaw(value) for key, value in documents.items()})

    def subscribe(self, key: str, on_snapshot: SnapshotCallback) -> MemorySubscription:
        subscription = MemorySubscription(key=key, callback=on_snapshot, store=self)
        self._subscriptions.append(subscription)
        self._deliver(subscription, self.documents.get(key))
        return subscription

    def detach(self, subscription: MemorySubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def write(self, key: str, document: ReportDocument) -> None:
        if self.fail_writes:
            raise StoreWriteError(f"Writes are disabled; dropped {key}")
        stored = thaw(document)
        self.documents[key] = stored
        self.writes.append((key, thaw(document)))
        for subscription in tuple(self._subscriptions):
            if subscription.key == key:
                self._deliver(subscription, stored)

    def push(self, key: str, document: Mapping[str, Any] | None) -> None:
        """Simulate a change made by another editor."""

        if document is None:
            self.documents.pop(key, None)
        else:
            self.documents[key] = thaw(document)
        for subscription in tuple(self._subscriptions):
            if subscription.key == key:
                self._deliver(subscription, self.documents.get(key))

    async def list_keys(self) -> list[str]:
        return sorted(self.documents)

    async def aclose(self) -> None:
        for subscription in tuple(self._subscriptions):
            subscription.cancel()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @staticmethod
    def _deliver(subscription: MemorySubscription, document: Mapping[str, Any] | None) -> None:
        if subscription.cancelled:
            return
        log.debug("Delivering snapshot for %s", subscription.key)
        subscription.callback(None if document is None else thaw(document))


if TYPE_CHECKING:
    from ehsreport.domain.ports import DocumentStore, Subscription

    _store_check: DocumentStore = InMemoryDocumentStore()
    _subscription_check: Subscription = MemorySubscription(
        key="", callback=lambda _raw: None, store=InMemoryDocumentStore()
    )
