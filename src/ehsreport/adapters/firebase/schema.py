"""Pydantic models describing Firebase Realtime Database payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, TypeAdapter, field_validator


class FirebaseBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class StreamPayload(FirebaseBaseModel):
    """Body of a ``put`` or ``patch`` server-sent event."""

    path: str
    data: Any = None

    @field_validator("path")
    @classmethod
    def _require_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"Stream paths are absolute, got {value!r}")
        return value


class ErrorPayload(FirebaseBaseModel):
    error: str


# ``GET /.json?shallow=true`` maps every child key to ``true``; an empty database is ``null``.
ShallowListing = TypeAdapter(dict[str, Any] | None)
