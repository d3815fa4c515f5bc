from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pytest

from storedash.config import Settings
from storedash.exceptions import ApiError
from storedash.filters import StoreDirectory, clean_store_number
from storedash.fiscal import parse_api_date

# Wednesday. Current week 2024-06-17..23, fiscal June starts 2024-06-03.
TODAY = date(2024, 6, 19)

DIRECTORY_ROWS = [
    {"StoreNbr": "we101", "District": "North", "State": "TX", "Company": "WE", "Royalty": "4.5"},
    {"StoreNbr": "102", "District": "North", "State": "OK", "Company": "WE", "Royalty": 4},
    {"StoreNbr": "we201", "District": "South", "State": "TX", "Company": "WE", "Royalty": None},
    {"StoreNbr": "202", "District": "South", "State": "", "Company": "WE"},
]


def snapshot(store: str, period_end: str, sales: float, **extra: Any) -> Dict[str, Any]:
    row = {"StoreNbr": store, "period_end": period_end, "SalesSubtotal": sales}
    row.update(extra)
    return row


def daily(store: str, day: str, sales: float, **extra: Any) -> Dict[str, Any]:
    row = {"StoreNbr": store, "Date": day, "SalesSubTotal": sales}
    row.update(extra)
    return row


def _in_range(value: Any, start: str, end: str) -> bool:
    d = parse_api_date(value)
    return d is not None and parse_api_date(start) <= d <= parse_api_date(end)


def _store_ok(row: Dict[str, Any], stores: Sequence[str]) -> bool:
    if not stores:
        return True
    wanted = {clean_store_number(s) for s in stores}
    return clean_store_number(row.get("StoreNbr")) in wanted


class FakeClient:
    """Records every call and serves canned rows filtered like the real API."""

    def __init__(
        self,
        snapshots: Optional[Iterable[Dict[str, Any]]] = None,
        performance: Optional[Iterable[Dict[str, Any]]] = None,
        directory: Optional[Iterable[Dict[str, Any]]] = None,
        fail: Iterable[str] = (),
    ):
        self.snapshots = list(snapshots or [])
        self.performance = list(performance or [])
        self.directory = list(DIRECTORY_ROWS if directory is None else directory)
        self.fail = set(fail)
        self.calls: List[tuple] = []

    def _maybe_fail(self, kind: str) -> None:
        if kind in self.fail:
            raise ApiError(f"/{kind}", "boom", status=503)

    def fetch_store_directory(self) -> List[Dict[str, Any]]:
        self.calls.append(("store-info",))
        self._maybe_fail("store-info")
        return [dict(r) for r in self.directory]

    def fetch_snapshots(self, start: str, end: str, stores: Sequence[str] = ()) -> List[Dict[str, Any]]:
        self.calls.append(("snapshots", start, end, tuple(stores)))
        self._maybe_fail("snapshots")
        return [dict(r) for r in self.snapshots if _in_range(r.get("period_end"), start, end) and _store_ok(r, stores)]

    def fetch_performance(self, start: str, end: str, stores: Sequence[str] = ()) -> List[Dict[str, Any]]:
        self.calls.append(("performance", start, end, tuple(stores)))
        self._maybe_fail("performance")
        return [dict(r) for r in self.performance if _in_range(r.get("Date"), start, end) and _store_ok(r, stores)]

    def kinds(self) -> List[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def directory() -> StoreDirectory:
    return StoreDirectory.from_rows(DIRECTORY_ROWS)


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base="http://api.test/v1", api_key="secret", request_timeout=5.0)
