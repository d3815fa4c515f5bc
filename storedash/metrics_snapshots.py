from __future__ import annotations

from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional

import pandas as pd

from storedash.fields import SNAPSHOT_LABOR_CHAIN, SNAPSHOT_SALES_CHAIN, field, resolve
from storedash.filters import store_sort_key
from storedash.numeric import safe_pct

Direction = Literal["asc", "desc"]

# column -> fallback chain; percents stay decimal fractions as the API sends them
COLUMNS = {
    "sales": SNAPSHOT_SALES_CHAIN,
    "covers": (field("covers"), field("Covers")),
    "food_sales": (field("FoodSales"), field("food_sales")),
    "beer_sales": (field("BeerSales"), field("beer_sales")),
    "liquor_sales": (field("LiquorSales"), field("liquor_sales")),
    "food_cost_percent": (field("FoodCostPercent"), field("food_cost_percent")),
    "beer_cost_percent": (field("BeerCostPercent"), field("beer_cost_percent")),
    "liquor_cost_percent": (field("LiquorCostPercent"), field("liquor_cost_percent")),
    "alcohol_cost_percent": (field("AlcoholCostPercent"), field("alcohol_cost_percent")),
    "labor_cost": SNAPSHOT_LABOR_CHAIN,
    "revenue_per_labor_hour": (field("revenue_per_labor_hr"), field("RevenuePerLaborHr")),
    "flpda_percent": (field("total_flpda_pct"), field("TotalFlpdaPct")),
}

SORT_FIELDS = ["store", "week_ending", "labor_percent", *COLUMNS]


def week_options(snapshots: Iterable[Mapping[str, Any]]) -> List[str]:
    weeks = {str(s.get("period_end")) for s in snapshots if isinstance(s, Mapping) and s.get("period_end")}
    return sorted(weeks, reverse=True)


def snapshot_row(snapshot: Mapping[str, Any]) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "store": str(snapshot.get("StoreNbr") or ""),
        "week_ending": str(snapshot.get("period_end") or ""),
    }
    for name, chain in COLUMNS.items():
        row[name] = resolve(snapshot, chain)
    row["labor_percent"] = safe_pct(row["labor_cost"], row["sales"]) / 100
    return row


def compute_weekly_snapshots(
    snapshots: Iterable[Mapping[str, Any]],
    week: Optional[str] = None,
    sort: str = "store",
    direction: Direction = "asc",
) -> Dict[str, Any]:
    snapshots = [s for s in snapshots if isinstance(s, Mapping)]
    options = week_options(snapshots)
    selected = week if week in options else (options[0] if options else None)
    sort = sort if sort in SORT_FIELDS else "store"
    direction = "desc" if direction == "desc" else "asc"

    if selected is None:
        return {"weeks": options, "week": None, "sort": sort, "direction": direction, "rows": []}

    df = pd.DataFrame([snapshot_row(s) for s in snapshots if str(s.get("period_end")) == selected])
    sort_col = sort
    if sort == "store":
        df["_store_key"] = df["store"].map(store_sort_key)
        sort_col = "_store_key"
    df = df.sort_values(sort_col, ascending=direction == "asc", kind="mergesort").drop(columns=["_store_key"], errors="ignore")

    return {
        "weeks": options,
        "week": selected,
        "sort": sort,
        "direction": direction,
        "rows": df.to_dict(orient="records"),
    }
