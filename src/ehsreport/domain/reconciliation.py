"""Reconcile raw stored documents with the canonical report schema.

Documents written under older schema versions, or by editors that only
touched part of the tree, reach the reader in arbitrary shapes. The
reconciler turns any such document into one that carries every canonical
field, so consumers never see a missing section.

Merge rules, applied by walking the canonical template at every depth:

- records are merged field by field, so a present parent with a missing
  grandchild still inherits the grandchild's default
- collections present in the raw document replace the default wholesale;
  absent collections become empty
- scalars take the raw value whenever the raw key is present, even when
  the value is falsy (``0``, ``False``, ``""``)
- raw keys unknown to the template (``status``, newer fields) are kept
- values of an unexpected type are passed through unchanged

A ``None`` record or collection is treated as absent, which is how the
backing store reports removed children.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .schema import CANONICAL_DOCUMENT, default_document, thaw

if TYPE_CHECKING:
    from .types import RawDocument, ReportDocument

_EMPTY: Mapping[str, Any] = {}


def reconcile(raw: RawDocument | None) -> ReportDocument:
    """Return a complete report document built from ``raw`` and the canonical defaults.

    ``None`` means nothing was ever stored for the period and yields a fresh
    copy of the defaults. The function is pure: it never mutates ``raw`` or
    the template, and the result shares no mutable structure with either.
    """

    if raw is None:
        return default_document()
    return _merge_record(CANONICAL_DOCUMENT, raw)


def _merge_record(template: Mapping[str, Any], raw: Mapping[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for key, default in template.items():
        if isinstance(default, Mapping):
            merged[key] = _merge_child_record(default, raw.get(key))
        elif isinstance(default, tuple):
            merged[key] = _merge_collection(raw.get(key))
        elif key in raw:
            merged[key] = thaw(raw[key])
        else:
            merged[key] = default
    for key, value in raw.items():
        if key not in template:
            merged[key] = thaw(value)
    return merged


def _merge_child_record(template: Mapping[str, Any], value: object) -> Any:
    if value is None:
        return _merge_record(template, _EMPTY)
    if isinstance(value, Mapping):
        return _merge_record(template, value)
    return thaw(value)


def _merge_collection(value: object) -> Any:
    if value is None:
        return []
    return thaw(value)


__all__ = ["reconcile"]
