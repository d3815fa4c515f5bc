from storedash.fields import (
    JOB_DOLLAR_FIELDS,
    LABOR_COST_CHAIN,
    SNAPSHOT_LABOR_HOURS_CHAIN,
    SNAPSHOT_SALES_CHAIN,
    field,
    labor_cost,
    resolve,
)


def test_direct_labor_cost_wins():
    assert labor_cost({"total_labor_cost": "150", "total_labor_dollars": 90}) == 150.0


def test_falls_through_zero_values():
    assert labor_cost({"total_labor_cost": 0, "total_labor_dollars": "", "TotalLaborCost": "$80"}) == 80.0


def test_nested_labor_object():
    record = {"labor": {"total_cost": None, "dollars": "55.5"}}
    assert labor_cost(record) == 55.5


def test_nested_job_dollars():
    record = {"labor": {"ServerDollars": 10, "KitchenDollars": 20}}
    assert labor_cost(record) == 30.0


def test_top_level_job_dollars():
    record = {name: 1 for name in JOB_DOLLAR_FIELDS}
    assert labor_cost(record) == float(len(JOB_DOLLAR_FIELDS))


def test_nothing_resolves_to_zero():
    assert labor_cost({}) == 0.0
    assert labor_cost({"labor": "not a dict"}) == 0.0
    assert resolve({}, LABOR_COST_CHAIN) == 0.0


def test_snapshot_chains():
    assert resolve({"sales_subtotal": 12}, SNAPSHOT_SALES_CHAIN) == 12.0
    assert resolve({"total_labor_hours": 40}, SNAPSHOT_LABOR_HOURS_CHAIN) == 40.0
    assert resolve({"x": 3}, (field("y"), field("x"))) == 3.0
