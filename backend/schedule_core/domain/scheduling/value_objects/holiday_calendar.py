"""
Holiday Calendar Value Objects

A holiday calendar answers a single question, whether a date is a holiday. It
only influences series restricted to working days.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import lru_cache


class HolidayCalendar(ABC):
    """Source of holiday dates for workday filtering."""

    @abstractmethod
    def is_holiday(self, day: date) -> bool:
        """Return True if ``day`` is a holiday."""

    def is_workday(self, day: date) -> bool:
        return day.weekday() < 5 and not self.is_holiday(day)


class NoHolidays(HolidayCalendar):
    """Calendar without any holidays; only weekends are skipped."""

    def is_holiday(self, day: date) -> bool:
        return False


@dataclass(frozen=True)
class StaticHolidayCalendar(HolidayCalendar):
    """Calendar backed by an explicit set of dates."""

    holidays: frozenset[date] = field(default_factory=frozenset)

    @classmethod
    def from_dates(cls, dates: Iterable[date]) -> StaticHolidayCalendar:
        return cls(frozenset(dates))

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    first = date(year, month, 1)
    return first + timedelta(days=(weekday - first.weekday()) % 7 + 7 * (n - 1))


def _last_weekday(year: int, month: int, weekday: int) -> date:
    following = date(year + month // 12, month % 12 + 1, 1)
    last = following - timedelta(days=1)
    return last - timedelta(days=(last.weekday() - weekday) % 7)


@lru_cache(maxsize=64)
def us_federal_holidays(year: int) -> frozenset[date]:
    """
    The default holiday set of US scheduling tenants for ``year``.

    New Year's Day, Memorial Day (last Monday of May), Independence Day,
    Labor Day (first Monday of September), Thanksgiving (fourth Thursday of
    November) and Christmas Day. Dates are not shifted for weekends.
    """
    return frozenset(
        {
            date(year, 1, 1),
            _last_weekday(year, 5, 0),
            date(year, 7, 4),
            _nth_weekday(year, 9, 0, 1),
            _nth_weekday(year, 11, 3, 4),
            date(year, 12, 25),
        }
    )


class UsFederalHolidayCalendar(HolidayCalendar):
    """Fixed US holiday set computed per year."""

    def is_holiday(self, day: date) -> bool:
        return day in us_federal_holidays(day.year)
