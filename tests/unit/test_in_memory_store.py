from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from rowsync.db.store import InMemoryRowStore


def test_seeded_rows_keep_ids_and_new_ids_continue():
    store = InMemoryRowStore([{"id": 5, "field1": "a"}])
    assert store.find_by_id(5) == {"id": 5, "field1": "a"}
    assert store.insert({"field1": "b"}) == 6
    assert store.insert_many([{"field1": "c"}, {"field1": "d"}]) == [7, 8]
    assert [r["id"] for r in store.all()] == [5, 6, 7, 8]


def test_update_missing_row_returns_zero():
    store = InMemoryRowStore()
    assert store.update(1, {"field1": "x"}) == 0
    assert store.writes == []


def test_writes_are_recorded_in_order():
    store = InMemoryRowStore([{"id": 1, "field1": "a"}])
    store.update(1, {"field1": "b"})
    store.insert({"field1": "c"})
    assert store.writes == [("update", 1), ("insert", 2)]
    assert store.find_by_id(1)["field1"] == "b"
    assert store.rollback() is False


def test_custom_id_column():
    store = InMemoryRowStore([{"item_id": 3, "field1": "a"}], id_column="item_id")
    assert store.all() == [{"item_id": 3, "field1": "a"}]


def test_concurrent_inserts_get_distinct_ids():
    store = InMemoryRowStore([{"id": 1, "field1": "a"}])

    def worker(n: int) -> list[int]:
        ids = []
        for i in range(100):
            ids.extend(store.insert_many([{"field1": f"{n}-{i}"}, {"field1": f"{n}-{i}b"}]))
        return ids

    with ThreadPoolExecutor(max_workers=8) as pool:
        batches = list(pool.map(worker, range(8)))

    ids = [i for batch in batches for i in batch]
    assert len(ids) == len(set(ids)) == 8 * 100 * 2
    assert len(store.all()) == 1 + len(ids)
    assert sorted(ids) == list(range(2, 2 + len(ids)))
