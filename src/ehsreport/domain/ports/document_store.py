"""Port for the push-based key/value document service backing the reports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ehsreport.domain.types import ReportDocument, SnapshotCallback


@runtime_checkable
class Subscription(Protocol):
    """Handle for one live subscription to a document key."""

    @property
    def key(self) -> str: ...

    @property
    def cancelled(self) -> bool: ...

    def cancel(self) -> None:
        """Stop delivery synchronously; calling it again has no effect."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Whole-document store that pushes every change to its subscribers.

    ``subscribe`` delivers the current value (``None`` when nothing is stored)
    as soon as it is known and again after every change, including changes
    made through ``write`` by the same client. ``write`` replaces the whole
    document; there is no patch operation.
    """

    def subscribe(self, key: str, on_snapshot: SnapshotCallback) -> Subscription: ...

    async def write(self, key: str, document: ReportDocument) -> None: ...

    async def list_keys(self) -> list[str]: ...

    async def aclose(self) -> None: ...


__all__ = ["DocumentStore", "Subscription"]
