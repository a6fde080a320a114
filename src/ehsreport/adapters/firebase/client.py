"""Firebase Realtime Database document store.

Reads follow the REST streaming protocol: ``GET /<key>.json`` with
``Accept: text/event-stream`` yields ``put``/``patch`` events that are
folded into a local copy of the node and handed to the subscriber after
each event. Writes are whole-document ``PUT`` requests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ehsreport.adapters.http_resilience import ResilientClient
from ehsreport.domain.schema import thaw

from .schema import ErrorPayload, ShallowListing, StreamPayload
from .stream import ServerSentEvent, SseDecoder, apply_patch, apply_put

if TYPE_CHECKING:
    from collections.abc import Callable

    from ehsreport.config import FirebaseConfig, ResilienceConfig
    from ehsreport.domain.types import ReportDocument, SnapshotCallback

log = getLogger(__name__)

EVENT_STREAM = "text/event-stream"


class FirebaseStoreError(RuntimeError):
    """Raised when the database answers a write or listing with an error status."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True, eq=False)
class FirebaseSubscription:
    key: str
    cancelled: bool = False
    task: asyncio.Task[None] | None = None

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self.task is not None and not self.task.done():
            self.task.cancel()


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class FirebaseDocumentStore:
    def __init__(
        self,
        config: FirebaseConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self.config = config
        factory = client_factory or _default_client_factory
        self._client = factory(config.resilience)
        self._subscriptions: set[FirebaseSubscription] = set()

    async def __aenter__(self) -> FirebaseDocumentStore:
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    def subscribe(self, key: str, on_snapshot: SnapshotCallback) -> FirebaseSubscription:
        subscription = FirebaseSubscription(key=key)
        subscription.task = asyncio.get_running_loop().create_task(
            self._follow(subscription, on_snapshot), name=f"firebase-stream:{key}"
        )
        self._subscriptions.add(subscription)
        subscription.task.add_done_callback(lambda _task: self._subscriptions.discard(subscription))
        return subscription

    async def write(self, key: str, document: ReportDocument) -> None:
        response = await self._client.put(self._path(key), json=document, params=self._params())
        _raise_for_status(response, f"write to {key}")
        log.debug("Stored %s in Firebase", key)

    async def list_keys(self) -> list[str]:
        response = await self._client.get("/.json", params={**self._params(), "shallow": "true"})
        _raise_for_status(response, "key listing")
        listing = ShallowListing.validate_python(response.json())
        return sorted(listing or {})

    async def aclose(self) -> None:
        subscriptions = tuple(self._subscriptions)
        for subscription in subscriptions:
            subscription.cancel()
        tasks = [sub.task for sub in subscriptions if sub.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._client.aclose()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def _follow(
        self, subscription: FirebaseSubscription, on_snapshot: SnapshotCallback
    ) -> None:
        key = subscription.key
        try:
            async with self._client.stream(
                "GET",
                self._path(key),
                params=self._params(),
                headers={"Accept": EVENT_STREAM},
                follow_redirects=True,
            ) as response:
                if response.is_error:
                    await response.aread()
                    log.error(
                        "Firebase refused to stream %s: HTTP %s%s",
                        key,
                        response.status_code,
                        _error_detail(response),
                    )
                    return
                await self._consume(subscription, response, on_snapshot)
        except httpx.HTTPError:
            log.exception("Lost the Firebase stream for %s", key)

    async def _consume(
        self,
        subscription: FirebaseSubscription,
        response: httpx.Response,
        on_snapshot: SnapshotCallback,
    ) -> None:
        decoder = SseDecoder()
        document: Any = None
        async for line in response.aiter_lines():
            event = decoder.decode(line)
            if event is None:
                continue
            if subscription.cancelled:
                return
            match event.event:
                case "put" | "patch":
                    folded = _fold(document, event)
                    if folded is _UNCHANGED:
                        continue
                    document = folded
                    _deliver(subscription, on_snapshot, document)
                case "keep-alive":
                    continue
                case "cancel" | "auth_revoked":
                    log.warning(
                        "Firebase closed the stream for %s (%s): %s",
                        subscription.key,
                        event.event,
                        event.data,
                    )
                    return
                case other:
                    log.debug("Ignoring Firebase event %r for %s", other, subscription.key)
        log.info("Firebase stream for %s ended", subscription.key)

    def _path(self, key: str) -> str:
        return f"/{quote(key, safe='')}.json"

    def _params(self) -> dict[str, str]:
        if self.config.auth_token is None:
            return {}
        return {"auth": self.config.auth_token}


_UNCHANGED = object()


def _fold(document: Any, event: ServerSentEvent) -> Any:
    try:
        payload = StreamPayload.model_validate_json(event.data)
    except ValidationError:
        log.warning("Ignoring malformed %s event: %s", event.event, event.data)
        return _UNCHANGED
    if event.event == "put":
        return apply_put(document, payload.path, payload.data)
    if not isinstance(payload.data, Mapping):
        log.warning("Ignoring patch without children at %s", payload.path)
        return _UNCHANGED
    return apply_patch(document, payload.path, payload.data)


def _deliver(
    subscription: FirebaseSubscription, on_snapshot: SnapshotCallback, document: Any
) -> None:
    try:
        on_snapshot(thaw(document))
    except Exception:
        log.exception("Snapshot callback for %s failed", subscription.key)


def _error_detail(response: httpx.Response) -> str:
    try:
        return f" ({ErrorPayload.model_validate_json(response.content).error})"
    except ValidationError:
        return ""


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.is_error:
        raise FirebaseStoreError(
            f"Firebase rejected {action}: HTTP {response.status_code}{_error_detail(response)}",
            status_code=response.status_code,
        )


if TYPE_CHECKING:
    from ehsreport.domain.ports import DocumentStore, Subscription

    def _store_check(config: FirebaseConfig) -> DocumentStore:
        return FirebaseDocumentStore(config)

    _subscription_check: Subscription = FirebaseSubscription(key="")
