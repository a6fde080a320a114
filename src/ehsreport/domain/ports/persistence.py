"""Ports for durable storage of raw report documents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


@runtime_checkable
class ReportDocumentRepository(Protocol):
    """Persistence contract for raw documents stored by key."""

    def get(self, key: str) -> dict[str, Any] | None: ...

    def put(self, key: str, payload: Mapping[str, Any]) -> None: ...

    def keys(self) -> list[str]: ...


__all__ = ["ReportDocumentRepository"]
