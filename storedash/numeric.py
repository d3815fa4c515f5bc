from __future__ import annotations

import math
import numbers
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import pandas as pd

_STRIP_CHARS = re.compile(r"[$,\s%()]")
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def to_number(value: object) -> float:
    """Coerce an upstream field value into a finite float.

    Never raises. Currency symbols, thousands separators, whitespace, percent
    signs and parentheses are stripped from strings before the leading number
    is parsed, so ``"$1,234.50"`` gives 1234.5 and ``"12%"`` gives 12.
    Anything that cannot be read as a number gives 0.
    """
    if value is None or value is pd.NA:
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, numbers.Number):
        try:
            return _finite_or_zero(float(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
    if isinstance(value, str):
        cleaned = _STRIP_CHARS.sub("", value).strip()
        if not cleaned:
            return 0.0
        match = _LEADING_FLOAT.match(cleaned)
        if not match:
            return 0.0
        try:
            return _finite_or_zero(float(match.group(0)))
        except ValueError:
            return 0.0
    return 0.0


def numericize_series(series: pd.Series) -> pd.Series:
    return series.map(to_number).astype(float)


def numericize(df: pd.DataFrame, cols) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = numericize_series(df[col])
        else:
            df[col] = 0.0
    return df


def safe_pct(numerator: float, denominator: float) -> float:
    return (numerator / denominator) * 100 if denominator > 0 else 0.0


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))
