from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence

import pandas as pd

from storedash.fields import labor_cost
from storedash.numeric import numericize, safe_pct, to_number

Record = Mapping[str, Any]

PERFORMANCE_NUMERIC_COLUMNS = [
    "SalesSubTotal",
    "Discounts",
    "Covers",
    "ToGo",
    "WebTotal",
    "FoundationDonations",
    "TurnParties",
    "TurnTotalMinutes",
]


def _as_list(records: Iterable[Record] | None) -> List[Record]:
    if records is None:
        return []
    return [r for r in records if isinstance(r, Mapping)]


def records_frame(records: Iterable[Record] | None, cols: Sequence[str] = PERFORMANCE_NUMERIC_COLUMNS) -> pd.DataFrame:
    """Build a frame with the given columns coerced through ``to_number``."""
    rows = _as_list(records)
    if not rows:
        df = pd.DataFrame(columns=["StoreNbr", *cols])
        for c in cols:
            df[c] = df[c].astype(float)
        return df
    df = pd.DataFrame.from_records(rows)
    if "StoreNbr" not in df.columns:
        df["StoreNbr"] = ""
    df["StoreNbr"] = df["StoreNbr"].apply(lambda v: "" if v is None or (isinstance(v, float) and pd.isna(v)) else str(v))
    return numericize(df, cols)


def _column_sum(records: Iterable[Record] | None, col: str) -> float:
    return float(sum(to_number(r.get(col)) for r in _as_list(records)))


# Gross Sales = SalesSubTotal
def gross_sales(records: Iterable[Record] | None) -> float:
    return _column_sum(records, "SalesSubTotal")


# Net Sales = SalesSubTotal - Discounts
def net_sales(records: Iterable[Record] | None) -> float:
    return float(sum(to_number(r.get("SalesSubTotal")) - to_number(r.get("Discounts")) for r in _as_list(records)))


def guest_count(records: Iterable[Record] | None) -> float:
    return _column_sum(records, "Covers")


def avg_check(net: float, guests: float) -> float:
    return net / guests if guests > 0 else 0.0


def carryout_percent(records: Iterable[Record] | None) -> float:
    rows = _as_list(records)
    return safe_pct(_column_sum(rows, "ToGo"), gross_sales(rows))


def discounts_percent(records: Iterable[Record] | None) -> float:
    rows = _as_list(records)
    return safe_pct(_column_sum(rows, "Discounts"), gross_sales(rows))


def labor_percent(records: Iterable[Record] | None) -> float:
    rows = _as_list(records)
    total_labor = float(sum(labor_cost(r) for r in rows))
    return safe_pct(total_labor, gross_sales(rows))


def foundation_donations(records: Iterable[Record] | None) -> float:
    return _column_sum(records, "FoundationDonations")


def table_turn_time(records: Iterable[Record] | None) -> float:
    rows = _as_list(records)
    parties = _column_sum(rows, "TurnParties")
    if parties <= 0:
        return 0.0
    return _column_sum(rows, "TurnTotalMinutes") / parties


def food_cost_percent(records: Iterable[Record] | None) -> float:
    """Sales-weighted food cost % over records that carry a FoodCostPercent.

    Only snapshot-derived records carry the percent (as a decimal fraction);
    daily records and pseudo-snapshots with a zero percent contribute nothing.
    """
    rows = [r for r in _as_list(records) if to_number(r.get("FoodCostPercent")) > 0]
    sales = 0.0
    cost = 0.0
    for r in rows:
        s = to_number(r.get("SalesSubTotal"))
        sales += s
        cost += s * to_number(r.get("FoodCostPercent"))
    return safe_pct(cost, sales)


def _net_by_store(records: Iterable[Record] | None) -> pd.Series:
    df = records_frame(records, ["SalesSubTotal", "Discounts"])
    if df.empty:
        return pd.Series(dtype=float)
    df["net_sales"] = df["SalesSubTotal"] - df["Discounts"]
    return df.groupby("StoreNbr", sort=False)["net_sales"].sum()


def comp_sales_by_store(current: Iterable[Record] | None, comparison: Iterable[Record] | None) -> Dict[str, float]:
    """Per-store comp sales % of net sales; only stores in ``current`` are reported."""
    cur = _net_by_store(current)
    cmp_ = _net_by_store(comparison)
    out: Dict[str, float] = {}
    for store, cur_sales in cur.items():
        cmp_sales = float(cmp_.get(store, 0.0))
        out[str(store)] = ((float(cur_sales) - cmp_sales) / cmp_sales) * 100 if cmp_sales > 0 else 0.0
    return out


def gross_sales_by_store(records: Iterable[Record] | None) -> Dict[str, float]:
    df = records_frame(records, ["SalesSubTotal"])
    if df.empty:
        return {}
    grouped = df.groupby("StoreNbr", sort=False)["SalesSubTotal"].sum()
    return {str(k): float(v) for k, v in grouped.items()}
