"""Data source selection for a selected date range.

For every range the reconciler decides whether rows come from the weekly
snapshot cache, from a targeted snapshot fetch, from the daily performance
endpoint, or from a mix of snapshots for closed weeks and daily rows for the
week in progress. The result is always in daily-performance shape.

Branch order for one range:

1. current week      -> performance fetch (cache never used)
2. complete week     -> cached rows for that ``period_end``
3. cache-first       -> cached rows with ``period_end`` inside the range
   (2b) complete week not cached -> targeted snapshot fetch
4. large range       -> cache only, no performance call
5. hybrid            -> snapshots before the current week + daily rows in it
6. fallback          -> performance fetch for the exact range
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from storedash.cache import SnapshotCache
from storedash.config import Settings, get_settings
from storedash.filters import DashboardFilters, StoreDirectory, filter_rows, upstream_store_filters
from storedash.fiscal import (
    DateRange,
    calendar_year_offset,
    current_week,
    days_into_week,
    fiscal_month_to_date,
    format_date_for_api,
    is_complete_week,
    last_week,
    last_year_fiscal_month_to_date,
)
from storedash.normalize import snapshots_to_performance

logger = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]

LAST_YEAR = "last_year"
LAST_WEEK = "last_week"


@dataclass
class ReconcileResult:
    current: Rows = field(default_factory=list)
    comparison: Rows = field(default_factory=list)
    all_stores_current: Rows = field(default_factory=list)
    all_stores_comparison: Rows = field(default_factory=list)
    period: Optional[DateRange] = None
    comparison_range: Optional[DateRange] = None
    comparison_kind: str = LAST_YEAR
    is_current_week: bool = False
    sources: List[str] = field(default_factory=list)
    generation: int = 0
    filters: Optional[DashboardFilters] = None


def is_month_to_date(period: DateRange, today: date) -> bool:
    mtd = fiscal_month_to_date(today)
    return period.start == mtd.start and period.end in (mtd.end, mtd.end + timedelta(days=1))


def comparison_range_for(period: DateRange, today: date) -> DateRange:
    if is_month_to_date(period, today):
        return last_year_fiscal_month_to_date(today)
    return calendar_year_offset(period)


def day_matched_last_week(today: date) -> DateRange:
    lw = last_week(today)
    return DateRange(lw.start, lw.start + timedelta(days=days_into_week(today)))


class Reconciler:
    def __init__(self, client: Any, cache: SnapshotCache, settings: Optional[Settings] = None):
        self.client = client
        self.cache = cache
        self.settings = settings or get_settings()
        self.refreshing = False
        self._generations = itertools.count(1)
        self._latest = 0
        self._lock = threading.Lock()

    # -- generations -------------------------------------------------------

    def next_generation(self) -> int:
        with self._lock:
            self._latest = next(self._generations)
            return self._latest

    def is_latest(self, generation: int) -> bool:
        return generation == self._latest

    # -- collaborator calls ------------------------------------------------

    def _call(self, name: str, fn: Callable[..., Rows], period: DateRange, stores: Sequence[str]) -> Rows:
        start, end = format_date_for_api(period.start), format_date_for_api(period.end)
        try:
            rows = fn(start, end, list(stores))
        except Exception:
            logger.exception("%s %s..%s failed", name, start, end)
            return []
        return [r for r in (rows or []) if isinstance(r, dict)]

    def _performance(self, period: DateRange, stores: Sequence[str]) -> Rows:
        return self._call("performance", self.client.fetch_performance, period, stores)

    def _snapshots(self, period: DateRange, stores: Sequence[str]) -> Rows:
        rows = self._call("snapshots", self.client.fetch_snapshots, period, stores)
        self.cache.merge(rows)
        return rows

    # -- policy ------------------------------------------------------------

    def source_range(
        self,
        period: DateRange,
        filters: DashboardFilters,
        directory: StoreDirectory,
        today: date,
        sources: Optional[List[str]] = None,
    ) -> Rows:
        """Rows for one range, in daily-performance shape."""
        sources = sources if sources is not None else []
        stores = upstream_store_filters(filters, directory)
        week = current_week(today)

        if period == week:
            sources.append("current_week:performance")
            return self._performance(period, stores)

        complete = is_complete_week(period)
        if complete:
            cached = filter_rows(self.cache.by_period_end(period.end), filters, directory)
            if cached:
                sources.append("complete_week:cache")
                return snapshots_to_performance(cached)

        cached = filter_rows(self.cache.in_range(period), filters, directory)
        if cached:
            sources.append("cache")
            return snapshots_to_performance(cached)

        if complete:
            sources.append("complete_week:snapshots")
            return snapshots_to_performance(filter_rows(self._snapshots(period, stores), filters, directory))

        if period.span > self.settings.large_range_days and not filters.has_store_filter:
            sources.append("large_range:cache")
            logger.info("range %s..%s too large for a live fetch and nothing cached", period.start, period.end)
            return []

        # today is never complete, so the current week is still running even on its Sunday
        if not filters.has_store_filter and today <= week.end and period.overlaps(week):
            sources.append("hybrid")
            rows: Rows = []
            closed = DateRange(period.start, min(period.end, week.start - timedelta(days=1)))
            if closed.start <= closed.end:
                rows.extend(snapshots_to_performance(self._snapshots(closed, stores)))
            live = DateRange(max(period.start, week.start), min(period.end, today))
            if live.start <= live.end:
                rows.extend(self._performance(live, stores))
            return rows

        sources.append("performance")
        return self._performance(period, stores)

    def _pass(self, filters: DashboardFilters, directory: StoreDirectory, today: date, sources: List[str]):
        period = filters.period
        if period == current_week(today):
            comparison_period = day_matched_last_week(today)
            current = self.source_range(period, filters, directory, today, sources)
            stores = upstream_store_filters(filters, directory)
            sources.append("last_week:performance")
            return current, self._performance(comparison_period, stores), comparison_period, LAST_WEEK

        comparison_period = comparison_range_for(period, today)
        current = self.source_range(period, filters, directory, today, sources)
        comparison = self.source_range(comparison_period, filters, directory, today, sources)
        return current, comparison, comparison_period, LAST_YEAR

    def reconcile(
        self,
        filters: DashboardFilters,
        directory: StoreDirectory,
        today: Optional[date] = None,
        generation: Optional[int] = None,
    ) -> ReconcileResult:
        today = today or date.today()
        generation = generation if generation is not None else self.next_generation()
        self.refreshing = True
        try:
            sources: List[str] = []
            current, comparison, comparison_period, kind = self._pass(filters, directory, today, sources)
            if filters.has_store_filter:
                shadow: List[str] = []
                all_current, all_comparison, _, _ = self._pass(filters.without_stores(), directory, today, shadow)
                sources.extend(f"all_stores:{s}" for s in shadow)
            else:
                all_current, all_comparison = current, comparison
        finally:
            self.refreshing = False

        logger.info(
            "reconciled %s..%s (gen %d): %d current, %d comparison via %s",
            filters.date_from,
            filters.date_to,
            generation,
            len(current),
            len(comparison),
            ",".join(sources),
        )
        return ReconcileResult(
            current=current,
            comparison=comparison,
            all_stores_current=all_current,
            all_stores_comparison=all_comparison,
            period=filters.period,
            comparison_range=comparison_period,
            comparison_kind=kind,
            is_current_week=kind == LAST_WEEK,
            sources=sources,
            generation=generation,
            filters=filters,
        )
