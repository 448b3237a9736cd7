from __future__ import annotations

import pytest
from werkzeug.datastructures import MultiDict

from rowsync.services.wire import WirePayloadError, decode_form, decode_json, decode_positions

FIELDS = ("field1", "field2")


def test_decode_positions_variants():
    assert decode_positions("modified_rows", None) == ((), [])
    assert decode_positions("modified_rows", "") == ((), [])
    assert decode_positions("modified_rows", "[2, 0, 2]") == ((2, 0), [])
    assert decode_positions("modified_rows", ["1", 3]) == ((1, 3), [])


def test_decode_positions_errors():
    assert decode_positions("new_rows", "{not json") == ((), ["new_rows must be a JSON list of integer positions"])
    assert decode_positions("new_rows", '{"a": 1}') == ((), ["new_rows must be a JSON list of integer positions"])
    positions, errors = decode_positions("new_rows", [1, "x", True, -2])
    # negative integers decode; the dispatcher reports them as unknown positions
    assert positions == (1, -2)
    assert errors == [
        "new_rows contains a non-integer position 'x'",
        "new_rows contains a non-integer position True",
    ]


def test_decode_form_with_bracket_arrays():
    form = MultiDict([
        ("csrf_token", "tok"),
        ("field1[]", "a"), ("field1[]", "b"),
        ("field2[]", "1"), ("field2[]", "2"),
        ("row_id[]", "1"), ("row_id[]", "new_1"),
        ("modified_rows", "[0]"),
        ("new_rows", "[1]"),
    ])
    decoded = decode_form(form, FIELDS)
    assert decoded.errors == {}
    payload = decoded.payload
    assert payload.csrf_token == "tok"
    assert payload.columns == {"field1": ["a", "b"], "field2": ["1", "2"]}
    assert payload.row_ids == ["1", "new_1"]
    assert payload.changes.positions_modified == (0,)
    assert payload.changes.positions_new == (1,)


def test_decode_form_accepts_bare_names_and_missing_lists():
    form = MultiDict([("field1", "a"), ("row_id", "1")])
    payload = decode_form(form, FIELDS).payload
    assert payload.columns == {"field1": ["a"]}
    assert payload.csrf_token == ""
    assert not payload.changes


def test_decode_form_reports_bad_metadata_as_errors():
    form = MultiDict([("row_id[]", "1"), ("modified_rows", "nope")])
    decoded = decode_form(form, FIELDS)
    assert list(decoded.errors) == ["modified_rows"]


def test_decode_json_body():
    body = {
        "csrf_token": "tok",
        "field1": ["a"],
        "field2[]": [1],
        "row_id": [5],
        "modified_rows": [0],
    }
    payload = decode_json(body, FIELDS).payload
    assert payload.columns == {"field1": ["a"], "field2": [1]}
    assert payload.row_ids == ["5"]
    assert payload.changes.positions_modified == (0,)


@pytest.mark.parametrize("body", [None, [], "text"])
def test_decode_json_rejects_non_object(body):
    with pytest.raises(WirePayloadError):
        decode_json(body, FIELDS)


def test_decode_json_rejects_non_array_column():
    with pytest.raises(WirePayloadError, match="'field1' must be an array"):
        decode_json({"field1": "a"}, FIELDS)
