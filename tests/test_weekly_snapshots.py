import pytest

from storedash.fields import labor_cost
from storedash.metrics_snapshots import compute_weekly_snapshots, week_options
from storedash.normalize import snapshot_to_performance

from conftest import snapshot

SNAPS = [
    snapshot("we10", "2024-06-09", 9000, covers=300, total_labor_cost=2700, FoodCostPercent=0.3),
    snapshot("we2", "2024-06-09", 12000, covers=420, total_labor_cost=3000, FoodCostPercent=0.28),
    snapshot("we1", "2024-06-09", 6000, covers=200, TotalLaborCost=1500, total_flpda_pct=0.61),
    snapshot("we1", "2024-06-02", 5000),
    snapshot("we1", None, 1),
]


def test_week_options_newest_first():
    assert week_options(SNAPS) == ["2024-06-09", "2024-06-02"]


def test_defaults_to_newest_week_sorted_by_store_number():
    out = compute_weekly_snapshots(SNAPS)
    assert out["week"] == "2024-06-09"
    assert [r["store"] for r in out["rows"]] == ["we1", "we2", "we10"]
    first = out["rows"][0]
    assert first["sales"] == 6000.0
    assert first["labor_cost"] == 1500.0
    assert first["labor_percent"] == pytest.approx(0.25)
    assert first["flpda_percent"] == 0.61


def test_sort_by_sales_descending():
    out = compute_weekly_snapshots(SNAPS, sort="sales", direction="desc")
    assert [r["store"] for r in out["rows"]] == ["we2", "we10", "we1"]


def test_sort_by_labor_percent():
    out = compute_weekly_snapshots(SNAPS, sort="labor_percent")
    assert [r["store"] for r in out["rows"]] == ["we2", "we1", "we10"]


def test_selected_week_and_unknown_sort():
    out = compute_weekly_snapshots(SNAPS, week="2024-06-02", sort="bogus")
    assert out["sort"] == "store"
    assert len(out["rows"]) == 1


def test_empty():
    out = compute_weekly_snapshots([])
    assert out == {"weeks": [], "week": None, "sort": "store", "direction": "asc", "rows": []}


def test_labor_column_matches_kpi_labor():
    snap = snapshot("we3", "2024-06-16", 8000, total_labor_dollars=2000)
    row = compute_weekly_snapshots([snap])["rows"][0]
    assert row["labor_cost"] == 2000.0
    assert row["labor_cost"] == labor_cost(snapshot_to_performance(snap))
    assert row["labor_percent"] == pytest.approx(0.25)
