"""Per-period report session: live subscription plus optimistic local edits.

A session follows one period at a time. Selecting a period opens a
subscription on the document store; every pushed snapshot is reconciled
and republished, and is the authority on the current document. Local
mutations are applied to the in-memory document at once and the complete
resulting document is then written back in the background.

Consistency model (kept deliberately simple):

- the store replaces whole documents, so two editors writing different
  sections of the same period overwrite each other: the write that
  completes last wins
- a failed write is logged; the optimistic local document is not rolled
  back and stays visible until the next snapshot arrives
- writes are never retried and cannot be cancelled once issued
- mutations are refused until the first snapshot of the period has arrived,
  so defaults are never written over a stored report
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from enum import StrEnum
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Any

from .errors import SectionShapeError, SessionNotOpenError
from .periods import DEFAULT_KEY_PREFIX
from .reconciliation import reconcile
from .schema import SectionKind, default_document, section_kind, thaw
from .status import ReportStatus, report_status, toggled_status, with_status

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from .periods import Period
    from .ports.document_store import DocumentStore, Subscription
    from .types import (
        DocumentListener,
        DocumentUpdater,
        RawDocument,
        ReportDocument,
        SectionFields,
    )

log = getLogger(__name__)


class SessionState(StrEnum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    LIVE = "live"


class ReportSession:
    """Own the reconciled document of the selected period and its mutations."""

    def __init__(self, store: DocumentStore, *, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._store = store
        self._key_prefix = key_prefix
        self._state = SessionState.UNSUBSCRIBED
        self._period: Period | None = None
        self._key: str | None = None
        self._subscription: Subscription | None = None
        self._document: ReportDocument = default_document()
        self._live = asyncio.Event()
        self._listeners: list[DocumentListener] = []
        self._pending_writes: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> ReportSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()
        await self.flush()

    # Read model -----------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_subscribed(self) -> bool:
        return self._state is not SessionState.UNSUBSCRIBED

    @property
    def is_live(self) -> bool:
        return self._state is SessionState.LIVE

    @property
    def period(self) -> Period | None:
        return self._period

    @property
    def key(self) -> str | None:
        return self._key

    @property
    def document(self) -> ReportDocument:
        """A copy of the current document; edits go through the mutation methods."""

        return thaw(self._document)

    @property
    def status(self) -> ReportStatus:
        return report_status(self._document)

    def add_listener(self, listener: DocumentListener) -> Callable[[], None]:
        """Register ``listener`` for every published document and return its remover."""

        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # Subscription lifecycle -----------------------------------------------------

    def select_period(self, period: Period) -> None:
        """Follow ``period``, cancelling the subscription of the previous one first."""

        if period == self._period and self._subscription is not None:
            return
        self._teardown()

        key = period.key(prefix=self._key_prefix)
        self._period = period
        self._key = key
        self._document = default_document()
        self._live = asyncio.Event()
        self._state = SessionState.SUBSCRIBING
        log.info("Subscribing to report %s", key)

        try:
            self._subscription = self._store.subscribe(key, partial(self._on_snapshot, key))
        except Exception:
            log.exception("Could not subscribe to report %s", key)

    def close(self) -> None:
        """Cancel the subscription; snapshots arriving afterwards are ignored."""

        self._teardown()
        self._period = None

    async def wait_until_live(self, timeout: float | None = None) -> ReportDocument:
        """Wait for the first snapshot of the selected period and return the document.

        Selecting another period while waiting moves the wait to that period;
        closing the session raises :class:`SessionNotOpenError`.
        """

        async with asyncio.timeout(timeout):
            while not self.is_live:
                if not self.is_subscribed:
                    raise SessionNotOpenError("No report period selected")
                await self._live.wait()
        return self.document

    async def flush(self) -> None:
        """Wait until every write issued so far has completed or failed."""

        while self._pending_writes:
            await asyncio.gather(*tuple(self._pending_writes))

    def _teardown(self) -> None:
        # Wake waiters of the old period so they re-check the session state.
        self._live.set()
        if self._subscription is not None:
            self._subscription.cancel()
            log.debug("Cancelled subscription to report %s", self._subscription.key)
        self._subscription = None
        self._key = None
        self._state = SessionState.UNSUBSCRIBED

    def _on_snapshot(self, key: str, raw: RawDocument | None) -> None:
        if self._state is SessionState.UNSUBSCRIBED or key != self._key:
            log.debug("Discarding stale snapshot for %s (active: %s)", key, self._key)
            return
        if raw is not None and not isinstance(raw, Mapping):
            log.warning(
                "Report %s holds a %s instead of a document; using defaults",
                key,
                type(raw).__name__,
            )
            raw = None

        self._document = reconcile(raw)
        if self._state is SessionState.SUBSCRIBING:
            self._state = SessionState.LIVE
            self._live.set()
            log.debug("Report %s is live", key)
        self._publish()

    # Mutations ------------------------------------------------------------------

    def update_section(self, section: str, fields: SectionFields) -> None:
        """Merge ``fields`` into a record section and persist the whole document.

        Top-level fields of the section are merged shallowly; where both the
        stored and the incoming value are records the merge continues field by
        field. Collections and scalars in ``fields`` replace the stored value.
        """

        key = self._require_open()
        if section_kind(section) is SectionKind.COLLECTION:
            raise SectionShapeError(
                f"Section {section!r} is a collection; use replace_section() instead"
            )
        if not isinstance(fields, Mapping):
            raise SectionShapeError(
                f"Fields for {section!r} must be a mapping, got {type(fields).__name__}"
            )
        current = self._document.get(section)
        base: Mapping[str, Any] = current if isinstance(current, Mapping) else {}
        self._commit(key, {**self._document, section: _merge_fields(base, fields)})

    def replace_section(self, section: str, value: object) -> None:
        """Replace one top-level section wholesale and persist the whole document."""

        key = self._require_open()
        section_kind(section)
        self._commit(key, reconcile({**self._document, section: value}))

    def replace_document(self, document: RawDocument | DocumentUpdater) -> None:
        """Replace the document, or derive it from a copy of the current one."""

        key = self._require_open()
        candidate = document(self.document) if callable(document) else document
        if not isinstance(candidate, Mapping):
            raise SectionShapeError(
                f"A report document must be a mapping, got {type(candidate).__name__}"
            )
        self._commit(key, reconcile(candidate))

    def set_status(self, status: ReportStatus) -> None:
        self.replace_document(with_status(self._document, status))

    def toggle_status(self) -> ReportStatus:
        """Flip between draft and published, returning the new status."""

        status = toggled_status(self._document)
        self.set_status(status)
        return status

    def _require_open(self) -> str:
        if self._key is None:
            raise SessionNotOpenError("No report period selected")
        if not self.is_live:
            raise SessionNotOpenError(f"Report {self._key} has not been loaded yet")
        return self._key

    def _commit(self, key: str, document: ReportDocument) -> None:
        self._document = document
        self._publish()
        self._persist(key, thaw(document))

    def _persist(self, key: str, document: ReportDocument) -> None:
        task = asyncio.get_running_loop().create_task(self._write(key, document))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write(self, key: str, document: ReportDocument) -> None:
        try:
            await self._store.write(key, document)
        except Exception:
            log.exception("Failed to persist report %s; keeping local changes", key)
        else:
            log.debug("Persisted report %s", key)

    def _publish(self) -> None:
        if not self._listeners:
            return
        published = thaw(self._document)
        for listener in tuple(self._listeners):
            try:
                listener(published)
            except Exception:
                log.exception("Report listener %r failed", listener)


def _merge_fields(base: Mapping[str, Any], fields: Mapping[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = dict(base)
    for key, value in fields.items():
        existing = base.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge_fields(existing, value)
        else:
            merged[key] = thaw(value)
    return merged


__all__ = ["ReportSession", "SessionState"]
