from __future__ import annotations

import pytest

from rowsync.models.row import Persistent, Row, RowState, Temporary, parse_wire_identity


def _loaded(**values) -> Row:
    return Row(identity=Persistent(7), fields=dict(values), originals=dict(values))


def test_loaded_row_is_unchanged():
    row = _loaded(field1="a", field2="1")
    assert row.state is RowState.UNCHANGED


def test_any_differing_field_makes_row_modified():
    row = _loaded(field1="a", field2="1")
    row.fields["field2"] = "2"
    assert row.state is RowState.MODIFIED


def test_temporary_row_is_always_new():
    row = Row(identity=Temporary("new_1"), fields={"field1": "", "field2": ""})
    assert row.is_new
    assert row.state is RowState.NEW


def test_rows_compare_by_object_identity():
    a = _loaded(field1="a")
    b = _loaded(field1="a")
    assert a != b
    assert a == a


def test_identity_wire_values():
    assert Persistent(17).wire_value() == "17"
    assert Temporary("new_3").wire_value() == "new_3"
    assert Persistent(1) != Temporary("1")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("17", Persistent(17)),
        (" 4 ", Persistent(4)),
        ("new_1", Temporary("new_1")),
        ("new_", None),
        ("", None),
        (None, None),
        ("-3", None),
        ("abc", None),
        ("1.5", None),
        ("٣", None),  # arabic-indic digit three
    ],
)
def test_parse_wire_identity(raw, expected):
    assert parse_wire_identity(raw) == expected


def test_parse_wire_identity_custom_prefix():
    assert parse_wire_identity("tmp-9", prefix="tmp-") == Temporary("tmp-9")
    assert parse_wire_identity("new_9", prefix="tmp-") is None
