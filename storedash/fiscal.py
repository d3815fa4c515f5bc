"""Fiscal calendar for the chain.

Weeks run Monday through Sunday. Fiscal months and fiscal years start on the
Monday closest to the 1st of their calendar month/year and end on the Sunday
before the next period starts. Every function accepts an optional ``today``
reference date so results are deterministic in tests; the default is the
system date, so values move across real day boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Optional


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def days(self) -> int:
        """Inclusive day count."""
        return (self.end - self.start).days + 1

    @property
    def span(self) -> int:
        """Days between start and end (end - start)."""
        return (self.end - self.start).days

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def overlaps(self, other: "DateRange") -> bool:
        return self.start <= other.end and self.end >= other.start

    def to_api(self) -> Dict[str, str]:
        return {"start": format_date_for_api(self.start), "end": format_date_for_api(self.end)}


def _today(today: Optional[date]) -> date:
    if today is None:
        return date.today()
    if isinstance(today, datetime):
        return today.date()
    return today


def monday_closest_to(first: date) -> date:
    weekday = first.weekday()  # Monday == 0
    if weekday == 0:
        return first
    if weekday == 6:
        return first + timedelta(days=1)
    if weekday <= 3:
        # Tue-Thu: back to the preceding Monday
        return first - timedelta(days=weekday)
    # Fri-Sat: forward to the next Monday
    return first + timedelta(days=7 - weekday)


def fiscal_year_start(year: int) -> date:
    return monday_closest_to(date(year, 1, 1))


def fiscal_year_end(year: int) -> date:
    return fiscal_year_start(year + 1) - timedelta(days=1)


def fiscal_year_range(year: int) -> DateRange:
    return DateRange(fiscal_year_start(year), fiscal_year_end(year))


def fiscal_year_number(today: Optional[date] = None) -> int:
    today = _today(today)
    year = today.year
    if today < fiscal_year_start(year):
        return year - 1
    if today > fiscal_year_end(year):
        return year + 1
    return year


def current_fiscal_year(today: Optional[date] = None) -> DateRange:
    return fiscal_year_range(fiscal_year_number(today))


def previous_fiscal_year(today: Optional[date] = None) -> DateRange:
    return fiscal_year_range(fiscal_year_number(today) - 1)


def fiscal_ytd(today: Optional[date] = None) -> DateRange:
    today = _today(today)
    return DateRange(current_fiscal_year(today).start, today)


def current_week(today: Optional[date] = None) -> DateRange:
    today = _today(today)
    monday = today - timedelta(days=today.weekday())
    return DateRange(monday, monday + timedelta(days=6))


def last_week(today: Optional[date] = None) -> DateRange:
    week = current_week(today)
    return DateRange(week.start - timedelta(days=7), week.end - timedelta(days=7))


def days_into_week(today: Optional[date] = None) -> int:
    return _today(today).weekday()


def _next_month(year: int, month: int):
    return (year + 1, 1) if month == 12 else (year, month + 1)


def _prev_month(year: int, month: int):
    return (year - 1, 12) if month == 1 else (year, month - 1)


def fiscal_month_start(year: int, month: int) -> date:
    return monday_closest_to(date(year, month, 1))


def fiscal_month(year: int, month: int) -> DateRange:
    start = fiscal_month_start(year, month)
    next_start = fiscal_month_start(*_next_month(year, month))
    return DateRange(start, next_start - timedelta(days=1))


def current_fiscal_month(today: Optional[date] = None) -> DateRange:
    today = _today(today)
    return fiscal_month(today.year, today.month)


def previous_fiscal_month(today: Optional[date] = None) -> DateRange:
    today = _today(today)
    start = fiscal_month_start(*_prev_month(today.year, today.month))
    return DateRange(start, current_fiscal_month(today).start - timedelta(days=1))


def fiscal_month_to_date(today: Optional[date] = None) -> DateRange:
    """Current fiscal month start through yesterday; same-day data is incomplete."""
    today = _today(today)
    return DateRange(current_fiscal_month(today).start, today - timedelta(days=1))


def last_year_fiscal_month_to_date(today: Optional[date] = None) -> DateRange:
    """Same fiscal month one year back, stretched to the same day count as MTD (at least one day)."""
    today = _today(today)
    mtd = fiscal_month_to_date(today)
    start = fiscal_month_start(today.year - 1, today.month)
    return DateRange(start, start + timedelta(days=max(mtd.days, 1) - 1))


def shift_year(d: date, years: int = -1) -> date:
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return d.replace(year=d.year + years, day=28)


def calendar_year_offset(period: DateRange, years: int = -1) -> DateRange:
    start = shift_year(period.start, years)
    return DateRange(start, start + timedelta(days=period.span))


def is_complete_week(period: DateRange) -> bool:
    return period.span == 6 and period.start.weekday() == 0 and period.end.weekday() == 6


def format_date_for_api(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def parse_api_date(value: object) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None
    text = str(value).strip()[:10]
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


def fiscal_periods(today: Optional[date] = None) -> Dict[str, Dict[str, str]]:
    today = _today(today)
    return {
        "current_week": current_week(today).to_api(),
        "last_week": last_week(today).to_api(),
        "current_fiscal_month": current_fiscal_month(today).to_api(),
        "previous_fiscal_month": previous_fiscal_month(today).to_api(),
        "fiscal_month_to_date": fiscal_month_to_date(today).to_api(),
        "last_year_fiscal_month_to_date": last_year_fiscal_month_to_date(today).to_api(),
        "current_fiscal_year": current_fiscal_year(today).to_api(),
        "previous_fiscal_year": previous_fiscal_year(today).to_api(),
        "fiscal_ytd": fiscal_ytd(today).to_api(),
    }
