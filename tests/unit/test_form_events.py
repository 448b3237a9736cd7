from __future__ import annotations

import pytest

from rowsync.client.events import ROW_ADDED, ROW_CHANGED, SAVED, FormEvents


def test_subscribe_emit_and_close_subscription():
    events = FormEvents()
    seen = []
    sub = events.subscribe(ROW_CHANGED, lambda row, field: seen.append((row, field)))
    events.emit(ROW_CHANGED, "r", "field1")
    sub.close()
    events.emit(ROW_CHANGED, "r", "field2")
    assert seen == [("r", "field1")]
    assert events.count(ROW_CHANGED) == 0


def test_subscription_as_context_manager():
    events = FormEvents()
    with events.subscribe(SAVED, lambda: None):
        assert events.count(SAVED) == 1
    assert events.count(SAVED) == 0


def test_handler_may_unsubscribe_itself_during_emit():
    events = FormEvents()
    calls = []

    def once():
        calls.append(1)
        sub.close()

    sub = events.subscribe(SAVED, once)
    other = events.subscribe(SAVED, lambda: calls.append(2))
    events.emit(SAVED)
    events.emit(SAVED)
    assert calls == [1, 2, 2]
    other.close()


def test_close_drops_everything_and_blocks_new_subscriptions():
    events = FormEvents()
    events.subscribe(ROW_ADDED, lambda row: None)
    events.subscribe(SAVED, lambda: None)
    assert events.count() == 2
    events.close()
    assert events.count() == 0
    with pytest.raises(RuntimeError):
        events.subscribe(SAVED, lambda: None)


def test_unknown_event_rejected():
    with pytest.raises(ValueError):
        FormEvents().subscribe("clicked", lambda: None)


def test_handler_errors_propagate():
    events = FormEvents()

    def boom():
        raise RuntimeError("handler failed")

    events.subscribe(SAVED, boom)
    with pytest.raises(RuntimeError, match="handler failed"):
        events.emit(SAVED)
