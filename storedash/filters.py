from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from storedash.fiscal import DateRange, fiscal_month_to_date, parse_api_date
from storedash.numeric import to_number

ALL_TOKENS = {"", "all", "all stores", "all districts"}


@dataclass(frozen=True)
class EnabledYears:
    """Which prior years the sales trend shows beyond this year and last year."""

    two_years_ago: bool = False
    three_years_ago: bool = False
    four_years_ago: bool = False

    def years_back(self) -> List[int]:
        out = [0, 1]
        for back, on in ((2, self.two_years_ago), (3, self.three_years_ago), (4, self.four_years_ago)):
            if on:
                out.append(back)
        return out

    def required_years_back(self) -> int:
        return max(2, max(self.years_back()) + 1)


@dataclass(frozen=True)
class DashboardFilters:
    date_from: date
    date_to: date
    store: str = ""
    district: str = ""
    enabled_years: EnabledYears = field(default_factory=EnabledYears)
    top_n: int = 5

    @property
    def period(self) -> DateRange:
        return DateRange(self.date_from, self.date_to)

    @property
    def has_store_filter(self) -> bool:
        return bool(self.store or self.district)

    def without_stores(self) -> "DashboardFilters":
        return DashboardFilters(self.date_from, self.date_to, "", "", self.enabled_years, self.top_n)


@dataclass(frozen=True)
class StoreInfo:
    store_nbr: str
    district: str = ""
    state: str = ""
    company: str = ""
    royalty: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StoreInfo":
        return cls(
            store_nbr=str(row.get("StoreNbr") or "").strip(),
            district=str(row.get("District") or "").strip(),
            state=str(row.get("State") or "").strip(),
            company=str(row.get("Company") or "").strip(),
            royalty=to_number(row.get("Royalty")),
            extra=dict(row),
        )

    def as_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update(
            {
                "StoreNbr": self.store_nbr,
                "District": self.district,
                "State": self.state,
                "Company": self.company,
                "Royalty": self.royalty,
            }
        )
        return out


def clean_store_number(value: object) -> str:
    """Strip a non-digit display prefix (``we123`` -> ``123``)."""
    if value is None:
        return ""
    return re.sub(r"^\D+", "", str(value).strip())


def store_sort_key(value: object) -> int:
    match = re.search(r"\d+", str(value or ""))
    return int(match.group(0)) if match else 0


class StoreDirectory:
    """Store lookups keyed by cleaned store number."""

    def __init__(self, stores: Iterable[StoreInfo] = ()):
        self.stores: List[StoreInfo] = [s for s in stores if s.store_nbr]
        self._by_clean: Dict[str, StoreInfo] = {}
        for s in self.stores:
            self._by_clean.setdefault(clean_store_number(s.store_nbr), s)

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "StoreDirectory":
        return cls(StoreInfo.from_row(r) for r in rows if isinstance(r, Mapping))

    def __len__(self) -> int:
        return len(self.stores)

    def lookup(self, store_nbr: object) -> Optional[StoreInfo]:
        return self._by_clean.get(clean_store_number(store_nbr))

    def district_of(self, store_nbr: object) -> Optional[str]:
        info = self.lookup(store_nbr)
        return info.district if info else None

    def state_of(self, store_nbr: object) -> Optional[str]:
        info = self.lookup(store_nbr)
        return (info.state or None) if info else None

    def district_store_numbers(self, district: str) -> List[str]:
        return [s.store_nbr for s in self.stores if s.district == district]

    def districts(self) -> List[str]:
        return sorted({s.district for s in self.stores if s.district})


def store_matches(store_nbr: object, filters: DashboardFilters, directory: StoreDirectory) -> bool:
    if filters.store:
        return clean_store_number(store_nbr) == clean_store_number(filters.store)
    if filters.district:
        return directory.district_of(store_nbr) == filters.district
    return True


def filter_rows(rows: Iterable[Mapping[str, Any]], filters: DashboardFilters, directory: StoreDirectory) -> List[Mapping[str, Any]]:
    if not filters.has_store_filter:
        return list(rows)
    return [r for r in rows if store_matches(r.get("StoreNbr"), filters, directory)]


def upstream_store_filters(filters: DashboardFilters, directory: StoreDirectory) -> List[str]:
    """Store values sent to the API, unmodified from the directory."""
    if filters.store:
        return [filters.store]
    if filters.district:
        return directory.district_store_numbers(filters.district)
    return []


def _selection(value: object) -> str:
    if value is None:
        return ""
    s = str(value).strip()
    return "" if s.lower() in ALL_TOKENS else s


def normalize_filters(raw: dict, *, today: Optional[date] = None) -> DashboardFilters:
    mtd = fiscal_month_to_date(today)
    date_from = parse_api_date(raw.get("date_from")) or mtd.start
    # first day of a fiscal month: MTD is empty, show today alone
    date_to = parse_api_date(raw.get("date_to")) or max(mtd.end, mtd.start)
    if date_to < date_from:
        date_from, date_to = date_to, date_from

    store = _selection(raw.get("store"))
    district = "" if store else _selection(raw.get("district"))

    y = raw.get("enabled_years") or {}
    enabled_years = EnabledYears(
        two_years_ago=bool(y.get("two_years_ago", False)),
        three_years_ago=bool(y.get("three_years_ago", False)),
        four_years_ago=bool(y.get("four_years_ago", False)),
    )

    top_n = raw.get("top_n", 5)
    try:
        top_n = int(top_n)
    except (TypeError, ValueError):
        top_n = 5
    top_n = max(1, min(50, top_n))

    return DashboardFilters(
        date_from=date_from,
        date_to=date_to,
        store=store,
        district=district,
        enabled_years=enabled_years,
        top_n=top_n,
    )
