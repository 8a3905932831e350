from __future__ import annotations

import json

import pytest

from termlink.engine.events import (
    Error,
    Output,
    ProcessExit,
    ServerError,
    SessionStarted,
    event_from_json,
    event_from_wire,
    event_to_wire,
)


def test_output_from_wire_maps_camel_case_session_id() -> None:
    event = event_from_wire({
        "type": "OUTPUT",
        "sessionId": "s1",
        "data": "hello\n",
        "timestamp": "2024-01-01T00:00:00Z",
    })

    assert isinstance(event, Output)
    assert event.session_id == "s1"
    assert event.data == "hello\n"
    assert event.timestamp == "2024-01-01T00:00:00Z"


def test_fields_of_other_variants_are_ignored() -> None:
    event = event_from_wire({"type": "SESSION_STARTED", "sessionId": "s1", "pid": 42, "data": "x"})

    assert isinstance(event, SessionStarted)
    assert event.pid == 42
    assert not hasattr(event, "data")


def test_error_text_prefers_data_over_error() -> None:
    assert Error(data="boom", error="other").text == "boom"
    assert Error(error="only error").text == "only error"
    assert Error().text is None
    assert Error(data="", error="x").text == ""


@pytest.mark.parametrize("payload", [
    {"type": "NOPE"},
    {"sessionId": "s1"},
    ["OUTPUT"],
])
def test_invalid_wire_payloads_raise_value_error(payload) -> None:
    with pytest.raises(ValueError):
        event_from_wire(payload)


def test_event_from_json_rejects_malformed_text() -> None:
    with pytest.raises(ValueError):
        event_from_json("{not json")


def test_event_to_wire_omits_unset_fields_and_kind_attribute() -> None:
    wire = event_to_wire(ProcessExit(session_id="s1", code=3))

    assert wire == {"type": "PROCESS_EXIT", "sessionId": "s1", "code": 3}
    assert "kind" not in wire


def test_server_error_parses_from_json_line() -> None:
    line = json.dumps({"type": "SERVER_ERROR", "error": "socket closed"})

    event = event_from_json(line)

    assert isinstance(event, ServerError)
    assert event.session_id is None
    assert event.error == "socket closed"
