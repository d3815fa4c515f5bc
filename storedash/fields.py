"""Ordered fallback chains for fields the upstream API names inconsistently.

A chain is a tuple of accessors. ``resolve`` walks the chain and returns the
first non-zero coerced value; a chain whose accessors all give 0 resolves
to 0.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence, Tuple

from storedash.numeric import to_number

Accessor = Callable[[Mapping[str, Any]], float]
Chain = Tuple[Accessor, ...]

JOB_DOLLAR_FIELDS: Tuple[str, ...] = (
    "ServerDollars",
    "KitchenDollars",
    "BartenderDollars",
    "ManagerDollars",
    "BarBackDollars",
    "HostDollars",
    "ShiftMgrDollars",
    "TrainerDollars",
    "TraineeDollars",
    "NonKnownJobDollars",
    "TeamDollars",
)


def field(name: str) -> Accessor:
    def _get(record: Mapping[str, Any]) -> float:
        return to_number(record.get(name))

    _get.__name__ = f"field_{name}"
    return _get


def total_of(names: Sequence[str]) -> Accessor:
    def _sum(record: Mapping[str, Any]) -> float:
        return sum(to_number(record.get(n)) for n in names)

    _sum.__name__ = "total_of_" + "_".join(names)
    return _sum


def nested(key: str, chain: Chain) -> Accessor:
    def _get(record: Mapping[str, Any]) -> float:
        inner = record.get(key)
        if not isinstance(inner, Mapping):
            return 0.0
        return resolve(inner, chain)

    _get.__name__ = f"nested_{key}"
    return _get


def resolve(record: Mapping[str, Any], chain: Chain) -> float:
    for accessor in chain:
        value = accessor(record)
        if value:
            return value
    return 0.0


NESTED_LABOR_CHAIN: Chain = (
    field("total_cost"),
    field("total_dollars"),
    field("cost"),
    field("dollars"),
    total_of(JOB_DOLLAR_FIELDS),
)

LABOR_COST_CHAIN: Chain = (
    field("total_labor_cost"),
    field("total_labor_dollars"),
    field("TotalLaborCost"),
    nested("labor", NESTED_LABOR_CHAIN),
    total_of(JOB_DOLLAR_FIELDS),
)

SNAPSHOT_LABOR_CHAIN: Chain = (
    field("total_labor_cost"),
    field("total_labor_dollars"),
    field("TotalLaborCost"),
)

SNAPSHOT_LABOR_HOURS_CHAIN: Chain = (
    field("labor_hours"),
    field("total_labor_hours"),
)

SNAPSHOT_SALES_CHAIN: Chain = (
    field("SalesSubtotal"),
    field("sales_subtotal"),
    field("SalesSubTotal"),
)


def labor_cost(record: Mapping[str, Any]) -> float:
    return resolve(record, LABOR_COST_CHAIN)
