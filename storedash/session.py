from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Set

from storedash.cache import SnapshotCache
from storedash.config import Settings, get_settings
from storedash.filters import DashboardFilters, EnabledYears, StoreDirectory, normalize_filters
from storedash.fiscal import (
    DateRange,
    current_week,
    fiscal_month_to_date,
    format_date_for_api,
    last_year_fiscal_month_to_date,
    shift_year,
)
from storedash.normalize import performance_to_snapshots
from storedash.reconcile import Reconciler, ReconcileResult

logger = logging.getLogger(__name__)


class DashboardSession:
    """Everything one dashboard viewer holds in memory.

    The session owns the store directory, the snapshot cache, the active
    filters and the last committed ``ReconcileResult``. Reconcile results are
    committed only when their generation is still the newest one issued, so a
    slow update started before a filter change cannot overwrite the result of
    the newer one.
    """

    def __init__(
        self,
        client: Any,
        settings: Optional[Settings] = None,
        today_fn: Callable[[], date] = date.today,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.today_fn = today_fn
        self.cache = SnapshotCache()
        self.reconciler = Reconciler(client, self.cache, self.settings)
        self.directory = StoreDirectory()
        self.filters: DashboardFilters = normalize_filters({}, today=today_fn())
        self.result: Optional[ReconcileResult] = None
        self.loaded_years: Set[int] = set()

        self.loading = True
        self.has_initial_data = False
        self.has_historical_data = False
        self.yearly_charts_loading = True

        self._lock = threading.RLock()

    @property
    def today(self) -> date:
        return self.today_fn()

    @property
    def refreshing(self) -> bool:
        return self.reconciler.refreshing

    def status(self) -> Dict[str, Any]:
        return {
            "loading": self.loading,
            "refreshing": self.refreshing,
            "has_initial_data": self.has_initial_data,
            "has_historical_data": self.has_historical_data,
            "yearly_charts_loading": self.yearly_charts_loading,
            "cache_populated": self.cache.populated,
            "snapshot_count": len(self.cache),
            "store_count": len(self.directory),
            "loaded_years": sorted(self.loaded_years),
        }

    # -- fetch helpers -----------------------------------------------------

    def _snapshots(self, period: DateRange) -> List[Dict[str, Any]]:
        if period.start > period.end:
            return []
        start, end = format_date_for_api(period.start), format_date_for_api(period.end)
        try:
            return self.client.fetch_snapshots(start, end, [])
        except Exception:
            logger.exception("snapshot load %s..%s failed", start, end)
            return []

    def _performance(self, period: DateRange) -> List[Dict[str, Any]]:
        if period.start > period.end:
            return []
        start, end = format_date_for_api(period.start), format_date_for_api(period.end)
        try:
            return self.client.fetch_performance(start, end, [])
        except Exception:
            logger.exception("performance load %s..%s failed", start, end)
            return []

    def _load_directory(self) -> None:
        try:
            rows = self.client.fetch_store_directory()
        except Exception:
            logger.exception("store directory load failed")
            rows = []
        self.directory = StoreDirectory.from_rows(rows)

    # -- loading -----------------------------------------------------------

    def _load_month_to_date(self, today: date) -> None:
        mtd = fiscal_month_to_date(today)
        week = current_week(today)
        week_inside_mtd = mtd.start <= week.start <= mtd.end
        if week_inside_mtd and week.end > mtd.end:
            # closed weeks as snapshots, the running week rolled up from daily rows
            closed = self._snapshots(DateRange(mtd.start, week.start - timedelta(days=1)))
            live = self._performance(DateRange(week.start, mtd.end))
            pseudo = performance_to_snapshots(live, week)
            logger.info("MTD load: %d snapshots + %d pseudo-snapshots for the running week", len(closed), len(pseudo))
            self.cache.merge(closed)
            self.cache.merge(pseudo)
        else:
            self.cache.merge(self._snapshots(mtd))
        self.cache.merge(self._snapshots(last_year_fiscal_month_to_date(today)))

    def _history_years(self) -> int:
        return max(self.settings.history_years, self.filters.enabled_years.required_years_back())

    def load_initial(self) -> ReconcileResult:
        today = self.today
        self.loading = True
        self.yearly_charts_loading = True
        try:
            self._load_directory()
            self._load_month_to_date(today)
            self.has_initial_data = True
            self.loading = False

            history = DateRange(shift_year(today, -self._history_years()), today)
            added = self.cache.merge(self._snapshots(history))
            # the running week is served live from here on
            dropped = self.cache.drop_pseudo()
            logger.info(
                "history %s..%s: %d new snapshots, %d pseudo dropped", history.start, history.end, added, dropped
            )
            self.loaded_years = {today.year, today.year - 1}
            self.has_historical_data = True
        finally:
            self.loading = False
            self.yearly_charts_loading = False

        self._load_enabled_years()
        return self.update()

    def load_year(self, year: int) -> int:
        """Fetch one calendar year of snapshots unless already loaded."""
        if not self.has_initial_data or year in self.loaded_years:
            return 0
        self.yearly_charts_loading = True
        try:
            added = self.cache.merge(self._snapshots(DateRange(date(year, 1, 1), date(year, 12, 31))))
            self.loaded_years.add(year)
            logger.info("loaded %d: %d new snapshots", year, added)
            return added
        finally:
            self.yearly_charts_loading = False

    def _load_enabled_years(self) -> None:
        this_year = self.today.year
        for back in self.filters.enabled_years.years_back():
            self.load_year(this_year - back)

    def refresh(self) -> ReconcileResult:
        with self._lock:
            self.directory = StoreDirectory()
            self.cache.clear()
            self.result = None
            self.loaded_years = set()
            self.has_initial_data = False
            self.has_historical_data = False
        return self.load_initial()

    # -- filters -----------------------------------------------------------

    def set_filters(self, filters: DashboardFilters) -> ReconcileResult:
        with self._lock:
            self.filters = filters
        self._load_enabled_years()
        return self.update(filters)

    def set_date_range(self, date_from: date, date_to: date) -> ReconcileResult:
        if date_to < date_from:
            date_from, date_to = date_to, date_from
        return self.set_filters(replace(self.filters, date_from=date_from, date_to=date_to))

    def set_store(self, store: str) -> ReconcileResult:
        return self.set_filters(replace(self.filters, store=store or "", district=""))

    def set_district(self, district: str) -> ReconcileResult:
        return self.set_filters(replace(self.filters, district=district or "", store=""))

    def set_enabled_years(self, enabled_years: EnabledYears) -> None:
        with self._lock:
            self.filters = replace(self.filters, enabled_years=enabled_years)
        self._load_enabled_years()

    def update(self, filters: Optional[DashboardFilters] = None) -> ReconcileResult:
        """Reconcile the active filters.

        Returns the result computed for the filters this call started with.
        It becomes ``self.result`` only if no newer update was issued meanwhile.
        """
        filters = filters if filters is not None else self.filters
        generation = self.reconciler.next_generation()
        result = self.reconciler.reconcile(filters, self.directory, self.today, generation)
        with self._lock:
            if self.reconciler.is_latest(generation):
                self.result = result
            else:
                logger.info("dropping superseded result (gen %d)", generation)
        return result

    def ensure_result(self, filters: DashboardFilters) -> ReconcileResult:
        """Result for ``filters``, reconciling only when they differ from the committed ones."""
        with self._lock:
            committed = self.result if self.result is not None and self.result.filters == filters else None
        if committed is not None:
            return committed
        return self.set_filters(filters)
