import pytest
from fastapi.testclient import TestClient

from storedash.config import Settings
from storedash.session import DashboardSession
from storedash_api import main

from conftest import TODAY, FakeClient, daily, snapshot


@pytest.fixture
def fake():
    return FakeClient(
        snapshots=[
            snapshot("we101", "2024-06-09", 10000, total_labor_cost=2500, FoodCostPercent=0.3),
            snapshot("102", "2024-06-09", 8000, total_labor_cost=2000),
            snapshot("we101", "2023-06-04", 9000),
            snapshot("102", "2023-06-04", 9000),
            snapshot("we101", "2024-03-10", float("nan")),
        ],
        performance=[daily("we101", "2024-06-17", 500), daily("102", "2024-06-17", 300)],
    )


@pytest.fixture
def session(fake):
    return DashboardSession(fake, Settings(), today_fn=lambda: TODAY)


@pytest.fixture
def api(monkeypatch, session):
    monkeypatch.setattr(main, "get_session", lambda: session)
    return TestClient(main.app)


def test_meta_stores_and_districts(api):
    stores = api.get("/meta/stores").json()["stores"]
    assert [s["StoreNbr"] for s in stores] == ["we101", "102", "we201", "202"]
    assert stores[0]["Royalty"] == 4.5
    assert api.get("/meta/districts").json() == {"values": ["North", "South"]}


def test_status_before_and_after_load(api, session):
    before = api.get("/status").json()
    assert before["has_initial_data"] is False
    api.get("/meta/stores")
    after = api.get("/status").json()
    assert after["has_initial_data"] is True
    assert after["cache_populated"] is True
    assert after["last_sources"]


def test_overview_for_cached_week(api, fake):
    resp = api.post("/overview", json={"date_from": "2024-06-03", "date_to": "2024-06-09", "store": "101"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["kpis"]["gross_sales"] == 10000.0
    assert body["kpis"]["gross_sales_comparison"] == 9000.0
    assert body["kpis"]["food_cost_percent"] == pytest.approx(30.0)
    assert body["comparison_kind"] == "last_year"
    assert body["filters"]["store"] == "101"
    assert [r["StoreNbr"] for r in body["heatmap"]] == ["we101", "102"]
    assert "store_heatmap" in body["charts"]


def test_overview_current_week(api):
    body = api.post("/overview", json={"date_from": "2024-06-17", "date_to": "2024-06-23"}).json()
    assert body["is_current_week"] is True
    assert body["comparison_kind"] == "last_week"
    assert body["kpis"]["gross_sales"] == 800.0


def test_trends(api):
    body = api.post("/trends", json={"enabled_years": {"two_years_ago": True}}).json()
    march = body["sales_trend"]["data"][2]
    assert march["period"] == "Mar"
    assert "ly2" in march
    assert [r["state"] for r in body["labor_by_state"]] == ["OK", "TX"]
    assert set(body["charts"]) == {"sales_trend", "labor_by_state", "cost_bars"}


def test_weekly_snapshots(api):
    body = api.get("/weekly-snapshots", params={"sort": "sales", "direction": "desc"}).json()
    assert body["week"] == "2024-06-09"
    body = api.get("/weekly-snapshots", params={"week": "2024-06-09", "sort": "sales", "direction": "desc"}).json()
    assert [r["store"] for r in body["rows"]] == ["we101", "102"]
    assert "2024-06-09" in body["weeks"]


def test_weekly_snapshots_rejects_bad_direction(api):
    assert api.get("/weekly-snapshots", params={"direction": "sideways"}).status_code == 422


def test_fiscal_periods(api):
    body = api.get("/fiscal/periods").json()
    assert body["current_week"] == {"start": "2024-06-17", "end": "2024-06-23"}


def test_refresh(api, fake):
    api.get("/meta/stores")
    body = api.post("/refresh").json()
    assert body["has_initial_data"] is True
    assert fake.calls.count(("store-info",)) == 2


def test_errors_become_json_500(api, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(main, "compute_overview", broken)
    resp = api.post("/overview", json={})
    assert resp.status_code == 500
    assert resp.json() == {"error": "kaboom", "type": "RuntimeError"}
