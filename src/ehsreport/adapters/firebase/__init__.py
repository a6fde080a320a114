from __future__ import annotations

from .client import FirebaseDocumentStore, FirebaseStoreError, FirebaseSubscription
from .stream import ServerSentEvent, SseDecoder, apply_patch, apply_put

__all__ = [
    "FirebaseDocumentStore",
    "FirebaseStoreError",
    "FirebaseSubscription",
    "ServerSentEvent",
    "SseDecoder",
    "apply_patch",
    "apply_put",
]
