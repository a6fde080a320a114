from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest

from ehsreport.adapters.memory import InMemoryDocumentStore
from ehsreport.domain.errors import SectionShapeError, SessionNotOpenError, UnknownSectionError
from ehsreport.domain.periods import Period, resolve_key
from ehsreport.domain.schema import default_document
from ehsreport.domain.session import ReportSession, SessionState
from ehsreport.domain.status import ReportStatus

if TYPE_CHECKING:
    from ehsreport.domain.types import ReportDocument, SnapshotCallback

MARCH = Period(2024, 3)
APRIL = Period(2024, 4)
MARCH_KEY = resolve_key(2024, 3)
APRIL_KEY = resolve_key(2024, 4)


@dataclass(eq=False)
class _Handle:
    key: str
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class SilentStore:
    """Store that never delivers on its own; tests fire the captured callbacks."""

    callbacks: dict[str, SnapshotCallback] = field(default_factory=dict)
    handles: list[_Handle] = field(default_factory=list)
    writes: list[tuple[str, ReportDocument]] = field(default_factory=list)

    def subscribe(self, key: str, on_snapshot: SnapshotCallback) -> _Handle:
        self.callbacks[key] = on_snapshot
        handle = _Handle(key)
        self.handles.append(handle)
        return handle

    async def write(self, key: str, document: ReportDocument) -> None:
        self.writes.append((key, document))

    async def list_keys(self) -> list[str]:
        return sorted(self.callbacks)

    async def aclose(self) -> None:
        return None


class BrokenStore(SilentStore):
    def subscribe(self, key: str, on_snapshot: SnapshotCallback) -> _Handle:
        raise ConnectionError("offline")


@dataclass
class FlakyStore(SilentStore):
    """Store whose first subscribe attempts fail."""

    failures: int = 1

    def subscribe(self, key: str, on_snapshot: SnapshotCallback) -> _Handle:
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("offline")
        return super().subscribe(key, on_snapshot)


def _stored_march(**overrides: Any) -> dict[str, Any]:
    document = default_document()
    document["kpis"]["manHours"] = {"current": 100, "cumulative": 1000}
    document.update(overrides)
    return document


def test_selecting_a_period_goes_live_with_defaults(memory_store: InMemoryDocumentStore) -> None:
    async def scenario() -> None:
        session = ReportSession(memory_store)
        assert session.state is SessionState.UNSUBSCRIBED

        session.select_period(MARCH)
        document = await session.wait_until_live(timeout=1)

        assert session.state is SessionState.LIVE
        assert session.key == MARCH_KEY
        assert session.period == MARCH
        assert document == default_document()

    asyncio.run(scenario())


def test_session_waits_in_subscribing_until_first_snapshot() -> None:
    async def scenario() -> None:
        store = SilentStore()
        session = ReportSession(store)
        session.select_period(MARCH)

        assert session.state is SessionState.SUBSCRIBING
        with pytest.raises(TimeoutError):
            await session.wait_until_live(timeout=0.01)

        store.callbacks[MARCH_KEY]({"basicInfo": {"projectName": "Unit 2"}})
        document = await session.wait_until_live(timeout=1)
        assert session.is_live
        assert document["basicInfo"]["projectName"] == "Unit 2"
        assert document["basicInfo"]["client"] == "United Chattogram Power Ltd."

    asyncio.run(scenario())


def test_update_section_merges_nested_records() -> None:
    async def scenario() -> None:
        store = InMemoryDocumentStore.seeded({MARCH_KEY: _stored_march()})
        async with ReportSession(store) as session:
            session.select_period(MARCH)
            await session.wait_until_live(timeout=1)

            session.update_section("kpis", {"manHours": {"current": 500}})

            assert session.document["kpis"]["manHours"] == {"current": 500, "cumulative": 1000}
            assert session.document["kpis"]["laggingIndicators"]["lti"] == 0

        key, written = store.writes[-1]
        assert key == MARCH_KEY
        assert written["kpis"]["manHours"] == {"current": 500, "cumulative": 1000}
        # The whole document is written, not only the touched section.
        assert written["basicInfo"] == default_document()["basicInfo"]

    asyncio.run(scenario())


def test_update_section_replaces_collections_inside_records(
    memory_store: InMemoryDocumentStore,
) -> None:
    async def scenario() -> None:
        async with ReportSession(memory_store) as session:
            session.select_period(MARCH)
            await session.wait_until_live(timeout=1)

            session.update_section("policyObjectives", {"objectives": ["Zero Harm"]})

            assert session.document["policyObjectives"]["objectives"] == ["Zero Harm"]
            assert session.document["policyObjectives"]["policy"].startswith("To provide")

    asyncio.run(scenario())


def test_replace_section_for_collections(memory_store: InMemoryDocumentStore) -> None:
    async def scenario() -> None:
        async with ReportSession(memory_store) as session:
            session.select_period(MARCH)
            await session.wait_until_live(timeout=1)

            session.replace_section("siteInspections", [{"area": "Boiler"}])

            assert session.document["siteInspections"] == [{"area": "Boiler"}]

        assert memory_store.documents[MARCH_KEY]["siteInspections"] == [{"area": "Boiler"}]

    asyncio.run(scenario())


def test_mutations_validate_before_changing_state(memory_store: InMemoryDocumentStore) -> None:
    async def scenario() -> None:
        session = ReportSession(memory_store)
        with pytest.raises(SessionNotOpenError):
            session.update_section("kpis", {})

        session.select_period(MARCH)
        await session.wait_until_live(timeout=1)
        before = session.document

        with pytest.raises(SectionShapeError):
            session.update_section("siteInspections", {"area": "Boiler"})
        with pytest.raises(SectionShapeError):
            session.update_section("kpis", ["not", "a", "record"])  # type: ignore[arg-type]
        with pytest.raises(UnknownSectionError):
            session.update_section("weather", {"rain": True})
        with pytest.raises(UnknownSectionError):
            session.replace_section("weather", [])
        with pytest.raises(SectionShapeError):
            session.replace_document(
                lambda _doc: ["not a document"]  # type: ignore[arg-type,return-value]
            )

        await session.flush()
        assert session.document == before
        assert memory_store.writes == []

    asyncio.run(scenario())


def test_failed_write_keeps_optimistic_state(
    memory_store: InMemoryDocumentStore, caplog: pytest.LogCaptureFixture
) -> None:
    async def scenario() -> None:
        session = ReportSession(memory_store)
        session.select_period(MARCH)
        await session.wait_until_live(timeout=1)
        memory_store.fail_writes = True

        session.update_section("environment", {"spills": 2})
        await session.flush()

        assert session.document["environment"]["spills"] == 2
        assert MARCH_KEY not in memory_store.documents

    with caplog.at_level(logging.ERROR, logger="ehsreport.domain.session"):
        asyncio.run(scenario())

    assert any("Failed to persist report" in record.getMessage() for record in caplog.records)


def test_remote_snapshot_supersedes_local_edit(memory_store: InMemoryDocumentStore) -> None:
    async def scenario() -> None:
        session = ReportSession(memory_store)
        session.select_period(MARCH)
        await session.wait_until_live(timeout=1)
        memory_store.fail_writes = True
        session.update_section("environment", {"spills": 2})
        await session.flush()

        memory_store.push(MARCH_KEY, {"environment": {"spills": 7}})

        assert session.document["environment"]["spills"] == 7
        assert session.document["environment"]["waste"]["recycled"] == ""

    asyncio.run(scenario())


def test_switching_period_cancels_previous_subscription() -> None:
    async def scenario() -> None:
        store = InMemoryDocumentStore.seeded({MARCH_KEY: _stored_march()})
        session = ReportSession(store)
        session.select_period(MARCH)
        await session.wait_until_live(timeout=1)

        session.select_period(APRIL)
        await session.wait_until_live(timeout=1)
        store.push(MARCH_KEY, _stored_march(status="draft"))

        assert store.subscriber_count == 1
        assert session.key == APRIL_KEY
        assert session.document == default_document()

    asyncio.run(scenario())


def test_late_snapshot_for_previous_key_is_discarded() -> None:
    async def scenario() -> None:
        store = SilentStore()
        session = ReportSession(store)
        session.select_period(MARCH)
        store.callbacks[MARCH_KEY](None)
        session.select_period(APRIL)

        # The old subscription was cancelled, but a delivery was already in flight.
        assert store.handles[0].cancelled
        store.callbacks[MARCH_KEY]({"status": "draft"})

        assert session.state is SessionState.SUBSCRIBING
        assert session.status is ReportStatus.PUBLISHED

        store.callbacks[APRIL_KEY]({"issues": {"targets": "Close all permits"}})
        assert session.document["issues"]["targets"] == "Close all permits"

    asyncio.run(scenario())


def test_selecting_the_same_period_keeps_the_subscription() -> None:
    async def scenario() -> None:
        store = SilentStore()
        session = ReportSession(store)
        session.select_period(MARCH)
        session.select_period(Period(2024, 3))

        assert len(store.handles) == 1
        assert not store.handles[0].cancelled

    asyncio.run(scenario())


def test_snapshots_after_close_are_ignored(memory_store: InMemoryDocumentStore) -> None:
    async def scenario() -> None:
        session = ReportSession(memory_store)
        session.select_period(MARCH)
        await session.wait_until_live(timeout=1)

        session.close()
        memory_store.push(MARCH_KEY, {"status": "draft"})

        assert session.state is SessionState.UNSUBSCRIBED
        assert session.status is ReportStatus.PUBLISHED
        assert memory_store.subscriber_count == 0
        with pytest.raises(SessionNotOpenError):
            await session.wait_until_live(timeout=0.01)

    asyncio.run(scenario())


def test_subscribe_failure_leaves_session_subscribing(caplog: pytest.LogCaptureFixture) -> None:
    async def scenario() -> None:
        session = ReportSession(BrokenStore())
        session.select_period(MARCH)

        assert session.state is SessionState.SUBSCRIBING
        with pytest.raises(TimeoutError):
            await session.wait_until_live(timeout=0.01)

    with caplog.at_level(logging.ERROR, logger="ehsreport.domain.session"):
        asyncio.run(scenario())

    assert any("Could not subscribe" in record.getMessage() for record in caplog.records)


def test_non_mapping_snapshot_falls_back_to_defaults() -> None:
    async def scenario() -> None:
        store = SilentStore()
        session = ReportSession(store)
        session.select_period(MARCH)

        store.callbacks[MARCH_KEY](["unexpected"])  # type: ignore[arg-type]

        assert session.is_live
        assert session.document == default_document()

    asyncio.run(scenario())


def test_replace_document_with_updater(memory_store: InMemoryDocumentStore) -> None:
    async def scenario() -> None:
        async with ReportSession(memory_store) as session:
            session.select_period(MARCH)
            await session.wait_until_live(timeout=1)

            def reset_incidents(document: ReportDocument) -> ReportDocument:
                document["incidents"] = {"total": 4}
                return document

            session.replace_document(reset_incidents)

            incidents = session.document["incidents"]
            assert incidents["total"] == 4
            assert incidents["fireIncidents"] == []

    asyncio.run(scenario())


def test_status_changes_are_persisted(memory_store: InMemoryDocumentStore) -> None:
    async def scenario() -> None:
        async with ReportSession(memory_store) as session:
            session.select_period(MARCH)
            await session.wait_until_live(timeout=1)

            assert session.toggle_status() is ReportStatus.PUBLISHED
            assert session.toggle_status() is ReportStatus.DRAFT
            assert session.status is ReportStatus.DRAFT

        assert memory_store.documents[MARCH_KEY]["status"] == "draft"
        assert len(memory_store.writes) == 2

    asyncio.run(scenario())


def test_listeners_receive_every_published_document(
    memory_store: InMemoryDocumentStore, caplog: pytest.LogCaptureFixture
) -> None:
    received: list[ReportDocument] = []

    def broken(_document: ReportDocument) -> None:
        raise RuntimeError("listener bug")

    async def scenario() -> None:
        async with ReportSession(memory_store) as session:
            session.add_listener(broken)
            remove = session.add_listener(received.append)
            session.select_period(MARCH)
            await session.wait_until_live(timeout=1)
            session.update_section("improvementPlan", {"targets": "TRIR below 0.5"})
            await session.flush()
            remove()
            session.update_section("improvementPlan", {"targets": "ignored by listener"})

    with caplog.at_level(logging.ERROR, logger="ehsreport.domain.session"):
        asyncio.run(scenario())

    targets = [document["improvementPlan"]["targets"] for document in received]
    # Initial snapshot, optimistic update, then the store echoing the write.
    assert targets == ["", "TRIR below 0.5", "TRIR below 0.5"]
    assert any("listener" in record.getMessage() for record in caplog.records)


def test_mutations_are_refused_until_the_first_snapshot() -> None:
    async def scenario() -> None:
        store = SilentStore()
        session = ReportSession(store)
        session.select_period(MARCH)

        with pytest.raises(SessionNotOpenError):
            session.update_section("basicInfo", {"projectName": "X"})
        with pytest.raises(SessionNotOpenError):
            session.replace_section("siteInspections", [])
        with pytest.raises(SessionNotOpenError):
            session.replace_document(default_document())
        with pytest.raises(SessionNotOpenError):
            session.toggle_status()
        await session.flush()
        assert store.writes == []

        store.callbacks[MARCH_KEY](_stored_march())
        session.update_section("basicInfo", {"projectName": "X"})
        await session.flush()

        _, written = store.writes[-1]
        assert written["basicInfo"]["projectName"] == "X"
        assert written["kpis"]["manHours"]["cumulative"] == 1000

    asyncio.run(scenario())


def test_mutations_are_refused_after_a_failed_subscribe() -> None:
    async def scenario() -> None:
        store = BrokenStore()
        session = ReportSession(store)
        session.select_period(MARCH)

        with pytest.raises(SessionNotOpenError):
            session.update_section("environment", {"spills": 1})
        await session.flush()
        assert store.writes == []

    asyncio.run(scenario())


def test_reselecting_a_period_retries_a_failed_subscribe() -> None:
    async def scenario() -> None:
        store = FlakyStore()
        session = ReportSession(store)
        session.select_period(MARCH)
        assert store.handles == []

        session.select_period(MARCH)
        assert [handle.key for handle in store.handles] == [MARCH_KEY]

        store.callbacks[MARCH_KEY](None)
        document = await session.wait_until_live(timeout=1)
        assert document == default_document()

    asyncio.run(scenario())


def test_waiting_follows_a_period_switch() -> None:
    async def scenario() -> None:
        store = SilentStore()
        session = ReportSession(store)
        session.select_period(MARCH)
        waiter = asyncio.create_task(session.wait_until_live(timeout=1))
        await asyncio.sleep(0)

        session.select_period(APRIL)
        await asyncio.sleep(0)
        assert not waiter.done()

        store.callbacks[APRIL_KEY]({"issues": {"targets": "Close all permits"}})
        document = await waiter

        assert session.key == APRIL_KEY
        assert document["issues"]["targets"] == "Close all permits"

    asyncio.run(scenario())


def test_closing_the_session_releases_waiters() -> None:
    async def scenario() -> None:
        session = ReportSession(SilentStore())
        session.select_period(MARCH)
        waiter = asyncio.create_task(session.wait_until_live(timeout=1))
        await asyncio.sleep(0)

        session.close()

        with pytest.raises(SessionNotOpenError):
            await waiter

    asyncio.run(scenario())
