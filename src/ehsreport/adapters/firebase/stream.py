"""Decode Firebase server-sent events and fold them into a local document copy."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ehsreport.domain.schema import thaw


@dataclass(slots=True, frozen=True)
class ServerSentEvent:
    event: str
    data: str


@dataclass(slots=True)
class SseDecoder:
    """Incremental ``text/event-stream`` decoder fed one line at a time."""

    _event: str = ""
    _data: list[str] = field(default_factory=list)

    def decode(self, line: str) -> ServerSentEvent | None:
        line = line.rstrip("\r\n")
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None
        name, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        return None

    def _dispatch(self) -> ServerSentEvent | None:
        if not self._event and not self._data:
            return None
        event = ServerSentEvent(event=self._event or "message", data="\n".join(self._data))
        self._event = ""
        self._data = []
        return event


def path_segments(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def apply_put(document: Any, path: str, data: Any) -> Any:
    """Return ``document`` with the node at ``path`` replaced by ``data`` (``None`` deletes)."""

    segments = path_segments(path)
    if not segments:
        return thaw(data)
    return _set_in(document, segments, data)


def apply_patch(document: Any, path: str, data: Mapping[str, Any]) -> Any:
    """Return ``document`` with each child of ``data`` written below ``path``."""

    base = path_segments(path)
    result = document
    for child, value in data.items():
        result = _set_in(result, [*base, *path_segments(child)], value)
    return result


def _set_in(node: Any, segments: list[str], value: Any) -> Any:
    head, *rest = segments
    if isinstance(node, list) and head.isdigit():
        return _set_in_list(node, int(head), rest, value)

    children: dict[str, Any] = dict(node) if isinstance(node, Mapping) else {}
    child = _set_in(children.get(head), rest, value) if rest else thaw(value)
    if child is None:
        children.pop(head, None)
    else:
        children[head] = child
    # Firebase has no empty nodes: a node without children does not exist.
    return children or None


def _set_in_list(node: list[Any], index: int, rest: list[str], value: Any) -> Any:
    items = list(node)
    current = items[index] if index < len(items) else None
    child = _set_in(current, rest, value) if rest else thaw(value)
    if index < len(items):
        items[index] = child
    else:
        items.extend([None] * (index - len(items)))
        items.append(child)
    while items and items[-1] is None:
        items.pop()
    return items or None
