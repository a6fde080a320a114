from __future__ import annotations

from ehsreport.adapters.firebase.stream import (
    ServerSentEvent,
    SseDecoder,
    apply_patch,
    apply_put,
)


def _decode(lines: list[str]) -> list[ServerSentEvent]:
    decoder = SseDecoder()
    events: list[ServerSentEvent] = []
    for line in lines:
        event = decoder.decode(line)
        if event is not None:
            events.append(event)
    return events


def test_decoder_emits_event_on_blank_line() -> None:
    events = _decode(
        [
            "event: put",
            'data: {"path": "/", "data": null}',
            "",
            ": comment",
            "event: keep-alive",
            "data: null",
            "",
        ]
    )

    assert events == [
        ServerSentEvent(event="put", data='{"path": "/", "data": null}'),
        ServerSentEvent(event="keep-alive", data="null"),
    ]


def test_decoder_joins_multiline_data_and_defaults_event_name() -> None:
    events = _decode(["data: first", "data:second", "", ""])

    assert events == [ServerSentEvent(event="message", data="first\nsecond")]


def test_put_at_root_replaces_document() -> None:
    assert apply_put({"old": 1}, "/", {"kpis": {"manHours": {"current": 1}}}) == {
        "kpis": {"manHours": {"current": 1}}
    }
    assert apply_put({"old": 1}, "/", None) is None


def test_put_below_root_sets_and_deletes_nodes() -> None:
    document = {"kpis": {"manHours": {"current": 1, "cumulative": 10}}}

    updated = apply_put(document, "/kpis/manHours/current", 5)
    removed = apply_put(updated, "/kpis/manHours", None)

    assert updated == {"kpis": {"manHours": {"current": 5, "cumulative": 10}}}
    assert removed is None
    assert document == {"kpis": {"manHours": {"current": 1, "cumulative": 10}}}


def test_put_creates_missing_parents() -> None:
    assert apply_put(None, "/programs/training/toolboxTalks", ["Heat"]) == {
        "programs": {"training": {"toolboxTalks": ["Heat"]}}
    }


def test_put_into_list_index() -> None:
    document = {"siteInspections": [{"area": "Boiler"}, {"area": "Turbine"}]}

    updated = apply_put(document, "/siteInspections/1/area", "Stack")
    appended = apply_put(updated, "/siteInspections/2", {"area": "Yard"})
    truncated = apply_put(appended, "/siteInspections/2", None)

    assert updated["siteInspections"][1] == {"area": "Stack"}
    assert appended["siteInspections"][2] == {"area": "Yard"}
    assert truncated["siteInspections"] == [{"area": "Boiler"}, {"area": "Stack"}]


def test_patch_merges_children() -> None:
    document = {"environment": {"spills": 0, "consumption": {"water": "1", "fuel": "2"}}}

    patched = apply_patch(document, "/environment", {"spills": 3, "consumption/water": "9"})

    assert patched == {"environment": {"spills": 3, "consumption": {"water": "9", "fuel": "2"}}}
