from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

import altair as alt
import pandas as pd

from storedash.charts import MONTHS, month_axis, to_vega_spec, value_axis
from storedash.fields import SNAPSHOT_LABOR_CHAIN, resolve
from storedash.filters import DashboardFilters, EnabledYears, StoreDirectory, filter_rows
from storedash.numeric import round_half_up, to_number

YEAR_KEYS = {0: "ty", 1: "ly", 2: "ly2", 3: "ly3", 4: "ly4"}
YEAR_LABEL_KEYS = {
    0: "current_year",
    1: "last_year",
    2: "two_years_ago",
    3: "three_years_ago",
    4: "four_years_ago",
}


def _snapshot_frame(snapshots: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """period_end/month/year/sales frame; rows without a usable period_end are dropped."""
    rows = [
        {
            "StoreNbr": str(s.get("StoreNbr") or ""),
            "period_end": s.get("period_end"),
            "sales": to_number(s.get("SalesSubtotal")),
            "labor": resolve(s, SNAPSHOT_LABOR_CHAIN),
            "food_cost": to_number(s.get("SalesSubtotal")) * to_number(s.get("FoodCostPercent")),
            "beer_cost": to_number(s.get("SalesSubtotal")) * to_number(s.get("BeerCostPercent")),
            "liquor_cost": to_number(s.get("SalesSubtotal")) * to_number(s.get("LiquorCostPercent")),
        }
        for s in snapshots
        if isinstance(s, Mapping)
    ]
    cols = ["StoreNbr", "period_end", "sales", "labor", "food_cost", "beer_cost", "liquor_cost"]
    if not rows:
        return pd.DataFrame(columns=cols + ["year", "month_idx", "period"])
    df = pd.DataFrame(rows, columns=cols)
    df["period_end"] = pd.to_datetime(df["period_end"], errors="coerce")
    df = df.dropna(subset=["period_end"]).copy()
    df["year"] = df["period_end"].dt.year.astype(int)
    df["month_idx"] = df["period_end"].dt.month.astype(int) - 1
    df["period"] = df["month_idx"].map(lambda i: MONTHS[i])
    return df


def _ytd(df: pd.DataFrame, today: date) -> pd.DataFrame:
    if df.empty:
        return df
    return df[(df["year"] == today.year) & (df["month_idx"] <= today.month - 1)]


def sales_trend(
    snapshots: Iterable[Mapping[str, Any]],
    directory: StoreDirectory,
    filters: DashboardFilters,
    enabled_years: Optional[EnabledYears] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Monthly sales for this year and up to four prior years, all twelve months."""
    today = today or date.today()
    enabled_years = enabled_years or filters.enabled_years
    df = _snapshot_frame(filter_rows(snapshots, filters, directory))
    if not df.empty:
        df = df[df["sales"] != 0].copy()
        df["back"] = today.year - df["year"]
        df = df[df["back"].between(0, 4)]
    totals = df.groupby(["period", "back"])["sales"].sum() if not df.empty else pd.Series(dtype=float)

    shown = enabled_years.years_back()
    data: List[Dict[str, Any]] = []
    for month in MONTHS:
        row: Dict[str, Any] = {"period": month}
        for back in shown:
            row[YEAR_KEYS[back]] = float(totals.get((month, back), 0.0))
        data.append(row)

    year_labels = {YEAR_LABEL_KEYS[back]: str(today.year - back) for back in YEAR_KEYS}
    return {"data": data, "year_labels": year_labels}


def labor_by_state(
    snapshots: Iterable[Mapping[str, Any]],
    directory: StoreDirectory,
    filters: DashboardFilters,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Labor % per state and month for this calendar year through the current month."""
    today = today or date.today()
    months = MONTHS[: today.month]
    df = _ytd(_snapshot_frame(filter_rows(snapshots, filters, directory)), today)
    if df.empty:
        return []
    df = df[(df["sales"] != 0) & (df["labor"] != 0)].copy()
    df["state"] = df["StoreNbr"].map(directory.state_of)
    df = df.dropna(subset=["state"])
    if df.empty:
        return []

    grouped = df.groupby(["state", "period"])[["sales", "labor"]].sum()
    out: List[Dict[str, Any]] = []
    for state in sorted(df["state"].unique()):
        row: Dict[str, Any] = {"state": state}
        for month in months:
            if (state, month) in grouped.index:
                sales, labor = grouped.loc[(state, month), ["sales", "labor"]]
                row[month] = round_half_up(labor / sales * 100, 1) if sales > 0 else 0.0
            else:
                row[month] = 0.0
        out.append(row)
    return out


def cost_bars(
    snapshots: Iterable[Mapping[str, Any]],
    directory: StoreDirectory,
    filters: DashboardFilters,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Food, beer and liquor cost as % of sales per month, this year to date."""
    today = today or date.today()
    months = MONTHS[: today.month]
    df = _ytd(_snapshot_frame(filter_rows(snapshots, filters, directory)), today)
    grouped = (
        df.groupby("period")[["sales", "food_cost", "beer_cost", "liquor_cost"]].sum()
        if not df.empty
        else pd.DataFrame(columns=["sales", "food_cost", "beer_cost", "liquor_cost"])
    )
    out: List[Dict[str, Any]] = []
    for month in months:
        sales = float(grouped.loc[month, "sales"]) if month in grouped.index else 0.0
        if sales <= 0:
            out.append({"period": month, "food": 0.0, "beer": 0.0, "liquor": 0.0})
            continue
        out.append(
            {
                "period": month,
                "food": round_half_up(float(grouped.loc[month, "food_cost"]) / sales * 100, 1),
                "beer": round_half_up(float(grouped.loc[month, "beer_cost"]) / sales * 100, 1),
                "liquor": round_half_up(float(grouped.loc[month, "liquor_cost"]) / sales * 100, 1),
            }
        )
    return out


def compute_trends(
    filters: DashboardFilters,
    snapshots: Iterable[Mapping[str, Any]],
    directory: StoreDirectory,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    today = today or date.today()
    snapshots = list(snapshots)
    trend = sales_trend(snapshots, directory, filters, filters.enabled_years, today)
    labor = labor_by_state(snapshots, directory, filters, today)
    costs = cost_bars(snapshots, directory, filters, today)

    charts: Dict[str, Any] = {}
    if trend["data"]:
        labels = {YEAR_KEYS[b]: trend["year_labels"][YEAR_LABEL_KEYS[b]] for b in YEAR_KEYS}
        long_df = pd.DataFrame(trend["data"]).melt(id_vars=["period"], var_name="series", value_name="sales")
        long_df["year"] = long_df["series"].map(labels)
        hover = alt.selection_point(fields=["year"], on="mouseover", empty="all")
        trend_chart = (
            alt.Chart(long_df)
            .mark_line(point={"filled": True, "size": 60})
            .encode(
                x=month_axis(),
                y=alt.Y("sales:Q", title="Sales", axis=value_axis("$~s")),
                color=alt.Color("year:N", title="Year"),
                opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
                tooltip=["year", "period", alt.Tooltip("sales:Q", format="$,.0f")],
            )
            .add_params(hover)
            .properties(height=260)
        )
        charts["sales_trend"] = to_vega_spec(trend_chart)

    if labor:
        labor_df = pd.DataFrame(labor).melt(id_vars=["state"], var_name="period", value_name="labor_pct")
        labor_chart = (
            alt.Chart(labor_df)
            .mark_rect()
            .encode(
                x=month_axis(),
                y=alt.Y("state:N", title="State"),
                color=alt.Color("labor_pct:Q", title="Labor %", scale=alt.Scale(scheme="redyellowgreen", reverse=True)),
                tooltip=["state", "period", alt.Tooltip("labor_pct:Q", format=".1f")],
            )
            .properties(height=max(120, 24 * len(labor)))
        )
        charts["labor_by_state"] = to_vega_spec(labor_chart)

    if costs:
        cost_df = pd.DataFrame(costs).melt(id_vars=["period"], var_name="category", value_name="cost_pct")
        cat_hover = alt.selection_point(fields=["category"], on="mouseover", empty="all")
        cost_chart = (
            alt.Chart(cost_df)
            .mark_bar()
            .encode(
                x=month_axis(),
                xOffset="category:N",
                y=alt.Y("cost_pct:Q", title="Cost % of Sales", axis=value_axis(".1f")),
                color=alt.Color("category:N", title="Category"),
                opacity=alt.condition(cat_hover, alt.value(1), alt.value(0.6)),
                tooltip=["period", "category", alt.Tooltip("cost_pct:Q", format=".1f")],
            )
            .add_params(cat_hover)
            .properties(height=260)
        )
        charts["cost_bars"] = to_vega_spec(cost_chart)

    return {
        "filters": asdict(filters),
        "sales_trend": trend,
        "labor_by_state": labor,
        "cost_bars": costs,
        "charts": charts,
    }
