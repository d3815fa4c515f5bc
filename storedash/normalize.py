"""Shape adapters.

``normalize_records``/``normalize_stores`` flatten whatever envelope the
performance API answered with into a list of dicts. ``snapshot_to_performance``
turns a weekly rollup into the daily-performance shape so both sources feed
the same reducers; a week becomes one synthetic day.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping

from storedash.cache import PSEUDO_KEY
from storedash.fields import SNAPSHOT_LABOR_CHAIN, SNAPSHOT_LABOR_HOURS_CHAIN, resolve
from storedash.fiscal import DateRange, format_date_for_api
from storedash.numeric import to_number

ENVELOPE_KEYS = ("data", "snapshots", "results", "items", "records", "stores")


def _dicts(items: Iterable[Any]) -> List[Dict[str, Any]]:
    return [dict(item) for item in items if isinstance(item, Mapping)]


def _flatten_dates(dates: Iterable[Any]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for entry in dates:
        if not isinstance(entry, Mapping):
            continue
        day = entry.get("date") or entry.get("Date")
        for store_row in _dicts(entry.get("stores") or []):
            if day and not store_row.get("Date"):
                store_row["Date"] = day
            rows.append(store_row)
    return rows


def normalize_records(payload: Any) -> List[Dict[str, Any]]:
    if payload is None:
        return []
    if isinstance(payload, list):
        return _dicts(payload)
    if not isinstance(payload, Mapping):
        return []
    if isinstance(payload.get("dates"), list):
        return _flatten_dates(payload["dates"])
    for key in ENVELOPE_KEYS:
        inner = payload.get(key)
        if isinstance(inner, (list, Mapping)):
            return normalize_records(inner)
    values = list(payload.values())
    if values and all(isinstance(v, Mapping) for v in values):
        return _dicts(values)
    return []


def normalize_stores(payload: Any) -> List[Dict[str, Any]]:
    return [row for row in normalize_records(payload) if row.get("StoreNbr") not in (None, "")]


def snapshot_to_performance(snapshot: Mapping[str, Any]) -> Dict[str, Any]:
    sales = to_number(snapshot.get("SalesSubtotal"))
    discount_pct = to_number(snapshot.get("DiscountCostPercent"))
    labor = resolve(snapshot, SNAPSHOT_LABOR_CHAIN)
    record: Dict[str, Any] = dict(snapshot)
    record.update(
        {
            "StoreNbr": snapshot.get("StoreNbr"),
            "Date": snapshot.get("period_end"),
            "SalesSubTotal": sales,
            "BeerSales": to_number(snapshot.get("BeerSales")),
            "LiquorSales": to_number(snapshot.get("LiquorSales")),
            "FoodSales": to_number(snapshot.get("FoodSales")),
            "Covers": to_number(snapshot.get("covers")),
            "Discounts": sales * discount_pct if discount_pct else 0.0,
            "total_labor_dollars": labor,
            "total_labor_cost": labor,
            "total_labor_hours": resolve(snapshot, SNAPSHOT_LABOR_HOURS_CHAIN),
            "ToGo": to_number(snapshot.get("ToGo")),
            "FoundationDonations": to_number(snapshot.get("FoundationDonations")),
            "Entrees": 0.0,
            "WebTotal": 0.0,
        }
    )
    return record


def snapshots_to_performance(snapshots: Iterable[Mapping[str, Any]] | None) -> List[Dict[str, Any]]:
    return [snapshot_to_performance(s) for s in (snapshots or []) if isinstance(s, Mapping)]


def performance_to_snapshots(records: Iterable[Mapping[str, Any]] | None, week: DateRange) -> List[Dict[str, Any]]:
    """Roll daily rows of an incomplete week up into one pseudo-snapshot per store."""
    groups: "OrderedDict[str, List[Mapping[str, Any]]]" = OrderedDict()
    for row in records or []:
        if not isinstance(row, Mapping):
            continue
        key = str(row.get("StoreNbr") or row.get("ID") or "")
        groups.setdefault(key, []).append(row)

    iso_year, week_number, _ = week.end.isocalendar()
    out: List[Dict[str, Any]] = []
    for store, rows in groups.items():
        def total(col: str) -> float:
            return sum(to_number(r.get(col)) for r in rows)

        sales = total("SalesSubTotal")
        hours = total("total_labor_hours")
        out.append(
            {
                "StoreNbr": store,
                "period_end": format_date_for_api(week.end),
                "iso_year": iso_year,
                "week_number": week_number,
                "SalesSubtotal": sales,
                "FoodSales": total("FoodSales"),
                "BeerSales": total("BeerSales"),
                "LiquorSales": total("LiquorSales"),
                "covers": total("Covers"),
                "total_labor_cost": total("total_labor_cost"),
                "revenue_per_labor_hr": sales / hours if hours > 0 else 0.0,
                "ToGo": total("ToGo"),
                "FoundationDonations": total("FoundationDonations"),
                "FoodCost": 0.0,
                "PaperCost": 0.0,
                "LiquorCost": 0.0,
                "BeerCost": 0.0,
                "AlcoholCost": 0.0,
                "DiscountCostPercent": 0.0,
                "FoodCostPercent": 0.0,
                "LiquorCostPercent": 0.0,
                "BeerCostPercent": 0.0,
                "AlcoholCostPercent": 0.0,
                "LiquorPourCostPercent": 0.0,
                "BeerPourCostPercent": 0.0,
                "AlcoholPourCostPercent": 0.0,
                "flpda_net2": 0.0,
                "total_flpda_pct": 0.0,
                PSEUDO_KEY: True,
            }
        )
    return out
