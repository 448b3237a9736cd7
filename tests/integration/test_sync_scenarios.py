from __future__ import annotations

import pytest
from werkzeug.datastructures import MultiDict

from rowsync.client.form import SAVED_NOTICE, SyncForm
from rowsync.client.session import SyncClient
from rowsync.models.outcome import Rejected, Saved
from rowsync.models.row import RowState

"""End-to-end submit cycles: form model -> wire -> Flask endpoint -> store."""


@pytest.fixture()
def form(client) -> SyncForm:
    return SyncForm.from_listing(client.get("/rows").get_json())


@pytest.fixture()
def sync_client(client, form) -> SyncClient:
    def transport(payload):
        resp = client.post("/rows/sync", data=MultiDict(payload.form_items()))
        return resp.status_code, resp.get_json()

    return SyncClient(form, transport)


def _reload(form: SyncForm, client) -> None:
    form.reload(client.get("/rows").get_json())


def test_edit_then_revert_sends_no_changes(form, sync_client, store, store_factory, app_logger, capsys):
    form.edit(1, "field2", "20")
    form.edit(1, "field2", "2")
    assert form.rows[1].state is RowState.UNCHANGED

    outcome = sync_client.submit()
    assert outcome == Saved()
    assert store.writes == []
    # the store is only opened for the listing, never for the submit
    assert len(store_factory.opened) == 1
    assert "validated=0 updated=0 inserted=0" in capsys.readouterr().out


def test_required_field_error_marks_exact_input(form, sync_client, store):
    form.edit(0, "field1", "")
    outcome = sync_client.submit()

    assert isinstance(outcome, Rejected)
    assert outcome.errors == {"field1.0": ["field1 is required"]}
    assert form.rows[0].errors == {"field1": "field1 is required"}
    assert all(not r.errors for r in form.rows[1:])
    assert store.writes == []

    # editing the input clears its marker right away
    form.edit(0, "field1", "fixed")
    assert form.rows[0].errors == {}


def test_new_row_inserted_existing_untouched(client, form, sync_client, store):
    row = form.add_row()
    form.edit(row, "field1", "d")
    form.edit(row, "field2", "4.5")
    assert form.positions(RowState.NEW) == [3]

    outcome = sync_client.submit()
    assert outcome == Saved()
    assert form.notice == SAVED_NOTICE
    assert store.writes == [("insert", 4)]

    assert form.needs_reload
    _reload(form, client)
    assert [r.identity.wire_value() for r in form.rows] == ["1", "2", "3", "4"]
    assert form.rows[3].fields == {"field1": "d", "field2": "4.5"}
    assert form.positions(RowState.UNCHANGED) == [0, 1, 2, 3]


def test_one_invalid_row_rejects_whole_submit_then_resubmit_persists_both(form, sync_client, store):
    form.edit(0, "field1", "A")
    form.edit(2, "field2", "three")

    outcome = sync_client.submit()
    assert isinstance(outcome, Rejected)
    assert list(outcome.errors) == ["field2.2"]
    assert store.writes == []
    assert store.find_by_id(1)["field1"] == "a"

    form.edit(2, "field2", "33")
    assert sync_client.submit() == Saved()
    assert store.writes == [("update", 1), ("update", 3)]
    assert store.find_by_id(1)["field1"] == "A"
    assert store.find_by_id(3)["field2"] == "33"


def test_deleted_row_shifts_positions_for_error_mapping(form, sync_client, store):
    form.delete_row(0)
    row = form.add_row()
    form.edit(row, "field1", "x")

    outcome = sync_client.submit()
    assert isinstance(outcome, Rejected)
    # the new row now sits at position 2
    assert outcome.errors == {"field2.2": ["field2 is required"]}
    assert row.errors == {"field2": "field2 is required"}
    # deleting on the form never deletes in the store
    assert store.find_by_id(1) is not None


def test_mixed_update_and_insert_in_one_submit(form, sync_client, store):
    form.edit(1, "field1", "B")
    row = form.add_row()
    form.edit(row, "field1", "n")
    form.edit(row, "field2", "7")

    assert sync_client.submit() == Saved()
    assert store.writes == [("update", 2), ("insert", 4)]
    assert store.find_by_id(3) == {"id": 3, "field1": "c", "field2": "3"}
