"""
Recurrence Pattern Value Objects

A recurrence pattern is a tagged variant over the four supported frequencies.
All variants share the interval and end-condition fields; frequency specific
payloads (``workdays_only`` for daily series, ``days_of_week`` for weekly ones)
live only on the variant that uses them.

Occurrence positions are counted from ``start_date`` (position 0 is the anchor
itself) and before any exception is removed, so ``occurrence_count`` describes
the length of the series rather than the number of surviving occurrences.
Monthly and yearly series clamp to the last day of shorter months, always
measured from the anchor.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, timedelta
from math import gcd
from typing import Annotated, Literal, Union

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from typing_extensions import Self

from ...shared.exceptions import InvalidPatternError
from .enums import Frequency


class _RecurrencePatternBase(BaseModel):
    """Fields and behaviour shared by every frequency."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    interval: int = 1
    end_date: date | None = None
    occurrence_count: int | None = None
    exceptions: frozenset[date] = frozenset()

    def ensure_valid(self) -> None:
        """Check the pattern invariants, raising InvalidPatternError on violation."""
        if self.interval < 1:
            raise InvalidPatternError(
                f"interval must be at least 1, got {self.interval}", "interval"
            )
        if self.end_date is not None and self.occurrence_count is not None:
            raise InvalidPatternError(
                "end_date and occurrence_count are mutually exclusive", "end_date"
            )
        if self.occurrence_count is not None and self.occurrence_count < 1:
            raise InvalidPatternError(
                f"occurrence_count must be at least 1, got {self.occurrence_count}",
                "occurrence_count",
            )
        if self.end_date is not None and self.end_date <= self.start_date:
            raise InvalidPatternError(
                f"end_date {self.end_date.isoformat()} must be after "
                f"start_date {self.start_date.isoformat()}",
                "end_date",
            )

    def with_exceptions(self, dates: Iterable[date]) -> Self:
        return self.model_copy(update={"exceptions": self.exceptions | set(dates)})

    def anchored_on(self, start_date: date) -> Self:
        """Validated copy of this pattern starting on ``start_date``."""
        anchored = self.model_copy(update={"start_date": start_date})
        anchored.ensure_valid()
        return anchored

    def _raw_candidates(self, from_date: date) -> Iterator[tuple[int, date]]:
        raise NotImplementedError

    def _lookback(self) -> relativedelta:
        raise NotImplementedError

    def candidates_from(
        self, from_date: date, bounded: bool = True
    ) -> Iterator[tuple[int, date]]:
        """
        Yield ``(position, date)`` for every series date on or after ``from_date``.

        Exceptions are not removed here. With ``bounded`` the end condition is
        honoured; without it the generator never ends and callers must stop it.
        """
        for position, day in self._raw_candidates(max(from_date, self.start_date)):
            if bounded:
                if (
                    self.occurrence_count is not None
                    and position >= self.occurrence_count
                ):
                    return
                if self.end_date is not None and day > self.end_date:
                    return
            yield position, day

    def occurs_on(self, day: date) -> bool:
        """True when ``day`` is a series date (exceptions included)."""
        first = next(self.candidates_from(day), None)
        return first is not None and first[1] == day

    def positions_before(self, boundary: date) -> int:
        """Number of series positions whose date is strictly before ``boundary``."""
        if boundary <= self.start_date:
            return 0
        position, _ = next(self.candidates_from(boundary, bounded=False))
        if self.occurrence_count is not None:
            return min(position, self.occurrence_count)
        return position

    def last_date_before(self, boundary: date) -> date | None:
        """Latest series date strictly before ``boundary``, if any."""
        last = None
        for _, day in self.candidates_from(boundary - self._lookback()):
            if day >= boundary:
                break
            last = day
        return last

    def truncated_before(self, boundary: date) -> Self:
        """
        Copy of this pattern that produces nothing on or after ``boundary``.

        A count-bounded series keeps its count semantics; end-date bounded and
        unbounded series end on the last series date before the boundary. When
        only the anchor remains the result is a single-occurrence count, since
        an end date on the anchor itself is not a valid pattern.
        """
        exceptions = frozenset(d for d in self.exceptions if d < boundary)
        last = self.last_date_before(boundary)
        if self.occurrence_count is not None or last == self.start_date:
            return self.model_copy(
                update={
                    "occurrence_count": self.positions_before(boundary),
                    "end_date": None,
                    "exceptions": exceptions,
                }
            )
        return self.model_copy(update={"end_date": last, "exceptions": exceptions})

    def continued_from(self, boundary: date, start_date: date) -> Self:
        """
        Clone of the part of this series on or after ``boundary``, re-anchored.

        The remaining occurrence count (or the original end date) carries over,
        as do the exceptions at or after the boundary. An end date that leaves
        only the new anchor becomes a single-occurrence count.
        """
        update: dict[str, object] = {
            "start_date": start_date,
            "exceptions": frozenset(d for d in self.exceptions if d >= boundary),
        }
        update.update(self._continuation_fields())
        if self.occurrence_count is not None:
            update["occurrence_count"] = max(
                self.occurrence_count - self.positions_before(boundary), 1
            )
        elif self.end_date is not None and self.end_date <= start_date:
            update["occurrence_count"] = 1
            update["end_date"] = None
        return self.model_copy(update=update)

    def _continuation_fields(self) -> dict[str, object]:
        """Variant fields a continuation needs to keep producing the same dates."""
        return {}


class DailyPattern(_RecurrencePatternBase):
    """Every ``interval`` days, optionally restricted to working days."""

    frequency: Literal[Frequency.DAILY] = Frequency.DAILY
    workdays_only: bool = False

    def ensure_valid(self) -> None:
        super().ensure_valid()
        if self.workdays_only and self.start_date.weekday() >= 5:
            raise InvalidPatternError(
                "a workdays-only series must start on a weekday", "start_date"
            )

    def _workday_cycle(self) -> list[bool]:
        # weekday of step k repeats with period 7 / gcd(interval, 7)
        period = 7 // gcd(self.interval, 7)
        first = self.start_date.weekday()
        return [(first + k * self.interval) % 7 < 5 for k in range(period)]

    def _raw_candidates(self, from_date: date) -> Iterator[tuple[int, date]]:
        offset = (from_date - self.start_date).days
        step = -(-offset // self.interval)
        if not self.workdays_only:
            while True:
                yield step, self.start_date + timedelta(days=step * self.interval)
                step += 1

        cycle = self._workday_cycle()
        if not any(cycle):
            return
        full, rest = divmod(step, len(cycle))
        position = full * sum(cycle) + sum(cycle[:rest])
        while True:
            day = self.start_date + timedelta(days=step * self.interval)
            if day.weekday() < 5:
                yield position, day
                position += 1
            step += 1

    def _lookback(self) -> relativedelta:
        return relativedelta(days=7 * self.interval)


class WeeklyPattern(_RecurrencePatternBase):
    """Every ``interval`` weeks on the anchor weekday plus ``days_of_week``."""

    frequency: Literal[Frequency.WEEKLY] = Frequency.WEEKLY
    days_of_week: frozenset[int] = frozenset()  # 0=Monday, 6=Sunday

    def ensure_valid(self) -> None:
        super().ensure_valid()
        invalid = sorted(d for d in self.days_of_week if not 0 <= d <= 6)
        if invalid:
            raise InvalidPatternError(
                f"days_of_week must be 0-6 (Monday=0), got {invalid}", "days_of_week"
            )

    @property
    def weekdays(self) -> tuple[int, ...]:
        return tuple(sorted(self.days_of_week | {self.start_date.weekday()}))

    def _continuation_fields(self) -> dict[str, object]:
        # the anchor weekday is implicit, so a new anchor must carry it
        return {"days_of_week": frozenset(self.weekdays)}

    def _raw_candidates(self, from_date: date) -> Iterator[tuple[int, date]]:
        weekdays = self.weekdays
        week_zero = self.start_date - timedelta(days=self.start_date.weekday())
        skipped = sum(1 for d in weekdays if d < self.start_date.weekday())
        span = 7 * self.interval
        block = max(0, (from_date - week_zero).days // span)
        while True:
            base = week_zero + timedelta(days=block * span)
            for index, weekday in enumerate(weekdays):
                day = base + timedelta(days=weekday)
                if day < self.start_date or day < from_date:
                    continue
                yield block * len(weekdays) + index - skipped, day
            block += 1

    def _lookback(self) -> relativedelta:
        return relativedelta(days=7 * self.interval)


class _DayOfMonthPattern(_RecurrencePatternBase):
    """
    Base for series that land on a fixed day of the month.

    ``anchor_day`` is the day of month the series was created on. It is only
    set when a series continues from a clamped date (Feb 29 of a series on
    the 31st, say), so later months can return to the original day.
    """

    anchor_day: int | None = None

    @property
    def day_of_month(self) -> int:
        return self.anchor_day or self.start_date.day

    def ensure_valid(self) -> None:
        super().ensure_valid()
        if self.anchor_day is None:
            return
        if not 1 <= self.anchor_day <= 31 or (
            self.start_date + relativedelta(day=self.anchor_day) != self.start_date
        ):
            raise InvalidPatternError(
                f"anchor_day {self.anchor_day} does not match "
                f"start_date {self.start_date.isoformat()}",
                "anchor_day",
            )

    def anchored_on(self, start_date: date) -> Self:
        update: dict[str, object] = {"start_date": start_date}
        if start_date != self.start_date:
            # a moved series takes its day of month from the new start
            update["anchor_day"] = None
        anchored = self.model_copy(update=update)
        anchored.ensure_valid()
        return anchored

    def _continuation_fields(self) -> dict[str, object]:
        return {"anchor_day": self.day_of_month}

    def _step_date(self, months: int) -> date:
        # relativedelta clamps an absolute day to the end of shorter months
        return self.start_date + relativedelta(months=months, day=self.day_of_month)


class MonthlyPattern(_DayOfMonthPattern):
    """Every ``interval`` months on the anchor's day of month (clamped)."""

    frequency: Literal[Frequency.MONTHLY] = Frequency.MONTHLY

    def _raw_candidates(self, from_date: date) -> Iterator[tuple[int, date]]:
        months = (from_date.year - self.start_date.year) * 12 + (
            from_date.month - self.start_date.month
        )
        step = max(0, months // self.interval)
        while True:
            day = self._step_date(step * self.interval)
            if day >= from_date:
                yield step, day
            step += 1

    def _lookback(self) -> relativedelta:
        return relativedelta(months=self.interval, days=1)


class YearlyPattern(_DayOfMonthPattern):
    """Every ``interval`` years on the anchor's month and day (Feb 29 clamped)."""

    frequency: Literal[Frequency.YEARLY] = Frequency.YEARLY

    def _raw_candidates(self, from_date: date) -> Iterator[tuple[int, date]]:
        step = max(0, (from_date.year - self.start_date.year) // self.interval)
        while True:
            day = self._step_date(12 * step * self.interval)
            if day >= from_date:
                yield step, day
            step += 1

    def _lookback(self) -> relativedelta:
        return relativedelta(years=self.interval, days=1)


RecurrencePattern = Annotated[
    Union[DailyPattern, WeeklyPattern, MonthlyPattern, YearlyPattern],
    Field(discriminator="frequency"),
]

recurrence_pattern_adapter: TypeAdapter[RecurrencePattern] = TypeAdapter(
    RecurrencePattern
)

_PATTERN_CLASSES: dict[Frequency, type[_RecurrencePatternBase]] = {
    Frequency.DAILY: DailyPattern,
    Frequency.WEEKLY: WeeklyPattern,
    Frequency.MONTHLY: MonthlyPattern,
    Frequency.YEARLY: YearlyPattern,
}


def build_pattern(
    frequency: Frequency,
    start_date: date,
    interval: int = 1,
    end_date: date | None = None,
    occurrence_count: int | None = None,
    exceptions: Iterable[date] = (),
    workdays_only: bool = False,
    days_of_week: Iterable[int] = (),
    validate: bool = True,
) -> RecurrencePattern:
    """
    Build the pattern variant for ``frequency``.

    Frequency specific payloads on the wrong variant are always rejected. With
    ``validate=False`` the remaining invariants are left for whoever anchors
    the pattern on its real start date.
    """
    if workdays_only and frequency is not Frequency.DAILY:
        raise InvalidPatternError(
            "workdays_only is only supported for daily series", "workdays_only"
        )
    days = frozenset(days_of_week)
    if days and frequency is not Frequency.WEEKLY:
        raise InvalidPatternError(
            "days_of_week is only supported for weekly series", "days_of_week"
        )

    fields: dict[str, object] = {
        "start_date": start_date,
        "interval": interval,
        "end_date": end_date,
        "occurrence_count": occurrence_count,
        "exceptions": frozenset(exceptions),
    }
    if frequency is Frequency.DAILY:
        fields["workdays_only"] = workdays_only
    elif frequency is Frequency.WEEKLY:
        fields["days_of_week"] = days

    pattern = _PATTERN_CLASSES[Frequency(frequency)](**fields)
    if validate:
        pattern.ensure_valid()
    return pattern  # type: ignore[return-value]
