from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

import altair as alt
import pandas as pd

from storedash import metrics
from storedash.charts import to_vega_spec, value_axis
from storedash.filters import DashboardFilters, StoreDirectory, clean_store_number, store_sort_key
from storedash.fiscal import DateRange
from storedash.reconcile import ReconcileResult

Record = Mapping[str, Any]


@dataclass(frozen=True)
class KpiBundle:
    net_sales: float = 0.0
    net_sales_comparison: float = 0.0
    gross_sales: float = 0.0
    gross_sales_comparison: float = 0.0
    guest_count: float = 0.0
    guest_count_comparison: float = 0.0
    avg_check: float = 0.0
    avg_check_comparison: float = 0.0
    carryout_percent: float = 0.0
    carryout_percent_comparison: float = 0.0
    labor_percent: float = 0.0
    labor_percent_comparison: float = 0.0
    food_cost_percent: float = 0.0
    food_cost_percent_comparison: float = 0.0
    discounts_percent: float = 0.0
    discounts_percent_comparison: float = 0.0
    foundation_donations: float = 0.0
    foundation_donations_comparison: float = 0.0
    table_turn_time: float = 0.0
    table_turn_time_comparison: float = 0.0


def _kpis(records: List[Record]) -> Dict[str, float]:
    net = metrics.net_sales(records)
    guests = metrics.guest_count(records)
    return {
        "net_sales": net,
        "gross_sales": metrics.gross_sales(records),
        "guest_count": guests,
        "avg_check": metrics.avg_check(net, guests),
        "carryout_percent": metrics.carryout_percent(records),
        "labor_percent": metrics.labor_percent(records),
        "food_cost_percent": metrics.food_cost_percent(records),
        "discounts_percent": metrics.discounts_percent(records),
        "foundation_donations": metrics.foundation_donations(records),
        "table_turn_time": metrics.table_turn_time(records),
    }


def compute_kpis(current: Iterable[Record], comparison: Iterable[Record]) -> KpiBundle:
    cur = _kpis(list(current or []))
    cmp_ = _kpis(list(comparison or []))
    values: Dict[str, float] = {}
    for name, value in cur.items():
        values[name] = value
        values[f"{name}_comparison"] = cmp_[name]
    return KpiBundle(**values)


def format_period_label(d: Optional[date]) -> str:
    if d is None:
        return ""
    return f"{d:%b} {d.day}, {d.year}"


def _period_labels(period: Optional[DateRange]) -> Dict[str, str]:
    if period is None:
        return {"start": "", "end": ""}
    return {"start": format_period_label(period.start), "end": format_period_label(period.end)}


def store_heatmap(records: Iterable[Record], directory: StoreDirectory) -> List[Dict[str, Any]]:
    """Gross sales per store with sales, joined to the directory, ordered by store number."""
    rows: List[Dict[str, Any]] = []
    for store, gross in metrics.gross_sales_by_store(records).items():
        if gross <= 0:
            continue
        info = directory.lookup(store)
        row = info.as_dict() if info else {"StoreNbr": store}
        row["StoreNbr"] = info.store_nbr if info else store
        row["gross_sales"] = gross
        rows.append(row)
    rows.sort(key=lambda r: store_sort_key(r["StoreNbr"]))
    return rows


def top_bottom_stores(
    current: Iterable[Record],
    comparison: Iterable[Record],
    directory: StoreDirectory,
    n: int = 5,
) -> Dict[str, List[Dict[str, Any]]]:
    """Best and worst ``n`` directory stores by comp sales %; worst first in ``bottom``."""
    comp = {clean_store_number(k): v for k, v in metrics.comp_sales_by_store(current, comparison).items()}
    ranked = [
        {
            "StoreNbr": s.store_nbr,
            "District": s.district,
            "State": s.state,
            "comp_sales": comp.get(clean_store_number(s.store_nbr), 0.0),
        }
        for s in directory.stores
    ]
    ranked.sort(key=lambda r: r["comp_sales"], reverse=True)
    return {"top": ranked[:n], "bottom": list(reversed(ranked[-n:])) if ranked else []}


def compute_overview(filters: DashboardFilters, result: ReconcileResult, directory: StoreDirectory) -> Dict[str, Any]:
    kpis = compute_kpis(result.current, result.comparison)
    heatmap = store_heatmap(result.all_stores_current, directory)
    ranking = top_bottom_stores(result.all_stores_current, result.all_stores_comparison, directory, filters.top_n)

    charts: Dict[str, Any] = {}
    if heatmap:
        heat_df = pd.DataFrame(heatmap)[["StoreNbr", "gross_sales"]]
        heat_df["StoreNbr"] = heat_df["StoreNbr"].astype(str)
        order = heat_df["StoreNbr"].tolist()
        hover = alt.selection_point(fields=["StoreNbr"], on="mouseover", empty="all")
        heat_chart = (
            alt.Chart(heat_df)
            .mark_rect()
            .encode(
                x=alt.X("StoreNbr:O", title="Store", sort=order, axis=alt.Axis(grid=False)),
                color=alt.Color("gross_sales:Q", title="Gross Sales", scale=alt.Scale(scheme="blues")),
                opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
                tooltip=[alt.Tooltip("StoreNbr", title="Store"), alt.Tooltip("gross_sales:Q", title="Gross Sales", format="$,.0f")],
            )
            .add_params(hover)
            .properties(height=80)
        )
        charts["store_heatmap"] = to_vega_spec(heat_chart)

    comp_rows = ranking["top"] + ranking["bottom"]
    if comp_rows:
        comp_df = pd.DataFrame(comp_rows).drop_duplicates(subset=["StoreNbr"])
        comp_chart = (
            alt.Chart(comp_df)
            .mark_bar()
            .encode(
                y=alt.Y("StoreNbr:N", title="Store", sort="-x"),
                x=alt.X("comp_sales:Q", title="Comp Sales %", axis=value_axis(".1f")),
                color=alt.condition(alt.datum.comp_sales >= 0, alt.value("#2e7d32"), alt.value("#c62828")),
                tooltip=[alt.Tooltip("StoreNbr", title="Store"), alt.Tooltip("comp_sales:Q", title="Comp %", format=".1f")],
            )
            .properties(height=260)
        )
        charts["comp_sales"] = to_vega_spec(comp_chart)

    return {
        "filters": asdict(filters),
        "kpis": asdict(kpis),
        "period": _period_labels(result.period),
        "comparison_period": _period_labels(result.comparison_range),
        "comparison_kind": result.comparison_kind,
        "is_current_week": result.is_current_week,
        "heatmap": heatmap,
        "top_stores": ranking["top"],
        "bottom_stores": ranking["bottom"],
        "sources": list(result.sources),
        "charts": charts,
    }
