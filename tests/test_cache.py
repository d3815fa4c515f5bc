from datetime import date

from storedash.cache import PSEUDO_KEY, SnapshotCache, is_pseudo, merge_snapshots
from storedash.fiscal import DateRange

from conftest import snapshot


def test_merge_dedupes_on_store_and_week():
    existing = [snapshot("101", "2024-06-09", 100)]
    incoming = [
        snapshot("101", "2024-06-09", 999),
        snapshot("102", "2024-06-09", 50),
        snapshot("102", "2024-06-09", 51),
    ]
    merged = merge_snapshots(existing, incoming)
    assert [(r["StoreNbr"], r["SalesSubtotal"]) for r in merged] == [("101", 100), ("102", 50)]
    # inputs untouched
    assert len(existing) == 1


def test_cache_merge_swaps_in_new_list():
    cache = SnapshotCache()
    before = cache.rows
    assert cache.merge([snapshot("101", "2024-06-09", 1)]) == 1
    assert cache.merge([snapshot("101", "2024-06-09", 2)]) == 0
    assert cache.rows is not before
    assert before == []
    assert cache.populated


def test_cache_queries():
    cache = SnapshotCache([
        snapshot("101", "2024-06-02", 1),
        snapshot("101", "2024-06-09", 2),
        snapshot("102", "2024-06-09", 3),
        snapshot("102", None, 4),
    ])
    assert len(cache.by_period_end(date(2024, 6, 9))) == 2
    assert len(cache.in_range(DateRange(date(2024, 6, 1), date(2024, 6, 5)))) == 1
    assert cache.period_ends() == ["2024-06-09", "2024-06-02"]
    cache.clear()
    assert len(cache) == 0


def test_real_snapshot_replaces_pseudo_one():
    pseudo = snapshot("101", "2024-06-23", 2100, **{PSEUDO_KEY: True})
    real = snapshot("101", "2024-06-23", 7000)

    merged = merge_snapshots([pseudo], [real])
    assert [r["SalesSubtotal"] for r in merged] == [7000]
    assert not is_pseudo(merged[0])
    # never the other way round
    assert merge_snapshots([real], [pseudo])[0]["SalesSubtotal"] == 7000


def test_drop_pseudo():
    cache = SnapshotCache([
        snapshot("101", "2024-06-16", 1),
        snapshot("101", "2024-06-23", 2, **{PSEUDO_KEY: True}),
    ])
    assert cache.drop_pseudo() == 1
    assert [r["period_end"] for r in cache.rows] == ["2024-06-16"]
    assert cache.drop_pseudo() == 0
