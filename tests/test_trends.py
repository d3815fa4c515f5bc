from datetime import date

from storedash.filters import DashboardFilters, EnabledYears
from storedash.metrics_trends import compute_trends, cost_bars, labor_by_state, sales_trend

from conftest import snapshot

NO_FILTER = DashboardFilters(date(2024, 6, 3), date(2024, 6, 18))


def test_sales_trend_buckets_by_month_and_year(directory, today):
    snaps = [
        snapshot("101", "2024-03-10", 600),
        snapshot("102", "2024-03-17", 400),
        snapshot("101", "2023-03-12", 800),
        snapshot("101", "2024-04-07", 0),
        snapshot("101", None, 500),
    ]
    out = sales_trend(snaps, directory, NO_FILTER, today=today)
    assert len(out["data"]) == 12
    march = out["data"][2]
    assert march == {"period": "Mar", "ty": 1000, "ly": 800}
    assert all(row["ty"] == 0 and row["ly"] == 0 for i, row in enumerate(out["data"]) if i != 2)
    assert out["year_labels"]["current_year"] == "2024"
    assert out["year_labels"]["four_years_ago"] == "2020"


def test_sales_trend_adds_enabled_prior_years(directory, today):
    snaps = [snapshot("101", "2022-01-09", 50), snapshot("101", "2019-01-06", 70)]
    out = sales_trend(snaps, directory, NO_FILTER, EnabledYears(two_years_ago=True), today)
    jan = out["data"][0]
    assert jan["ly2"] == 50
    assert "ly3" not in jan and "ly4" not in jan


def test_sales_trend_respects_store_filter(directory, today):
    snaps = [snapshot("we101", "2024-03-10", 600), snapshot("102", "2024-03-17", 400)]
    only_101 = DashboardFilters(date(2024, 6, 3), date(2024, 6, 18), store="101")
    out = sales_trend(snaps, directory, only_101, today=today)
    assert out["data"][2]["ty"] == 600


def test_labor_by_state(directory, today):
    snaps = [
        snapshot("we101", "2024-01-14", 1000, total_labor_cost=250),
        snapshot("we201", "2024-01-21", 1000, total_labor_cost=300),
        snapshot("102", "2024-02-11", 2000, total_labor_dollars=500),
        snapshot("202", "2024-02-11", 2000, total_labor_cost=900),  # no state
        snapshot("999", "2024-02-11", 2000, total_labor_cost=900),  # not in directory
        snapshot("102", "2024-07-14", 2000, total_labor_cost=500),  # after current month
        snapshot("102", "2023-02-12", 2000, total_labor_cost=500),  # last year
    ]
    rows = labor_by_state(snaps, directory, NO_FILTER, today)
    assert [r["state"] for r in rows] == ["OK", "TX"]
    ok, tx = rows
    assert list(ok) == ["state", "Jan", "Feb", "Mar", "Apr", "May", "Jun"]
    assert ok["Feb"] == 25.0
    assert ok["Jan"] == 0.0
    assert tx["Jan"] == 27.5


def test_cost_bars(directory, today):
    snaps = [
        snapshot("101", "2024-02-11", 1000, FoodCostPercent=0.30, BeerCostPercent=0.2, LiquorCostPercent=0.18),
        snapshot("102", "2024-02-18", 3000, FoodCostPercent=0.20, BeerCostPercent="0.28", LiquorCostPercent=0.2),
    ]
    rows = cost_bars(snaps, directory, NO_FILTER, today)
    assert [r["period"] for r in rows] == ["Jan", "Feb", "Mar", "Apr", "May", "Jun"]
    assert rows[0] == {"period": "Jan", "food": 0.0, "beer": 0.0, "liquor": 0.0}
    assert rows[1]["food"] == 22.5
    assert rows[1]["beer"] == 26.0
    assert rows[1]["liquor"] == 19.5


def test_compute_trends_builds_specs(directory, today):
    snaps = [
        snapshot("we101", "2024-03-10", 600, total_labor_cost=150, FoodCostPercent=0.3),
        snapshot("we101", "2023-03-12", 500),
    ]
    payload = compute_trends(NO_FILTER, snaps, directory, today)
    assert set(payload["charts"]) == {"sales_trend", "labor_by_state", "cost_bars"}
    assert "$schema" in payload["charts"]["sales_trend"]
    assert payload["labor_by_state"][0]["Mar"] == 25.0


def test_compute_trends_with_no_snapshots(directory, today):
    payload = compute_trends(NO_FILTER, [], directory, today)
    assert payload["labor_by_state"] == []
    assert all(r["food"] == 0.0 for r in payload["cost_bars"])
    assert len(payload["sales_trend"]["data"]) == 12
