from __future__ import annotations

from typing import Any, Dict

import altair as alt

alt.data_transformers.disable_max_rows()

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def value_axis(fmt: str) -> alt.Axis:
    return alt.Axis(format=fmt, gridDash=[4, 4], domain=False, ticks=False)


def month_axis(title: str = "Month") -> alt.X:
    return alt.X("period:O", title=title, sort=MONTHS, axis=alt.Axis(grid=False, labelAngle=0))


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()
