"""
Pattern Expander

Turns a recurrence master into the concrete occurrences that fall inside a
query window. Expansion is a pure function of the pattern, the master's anchor
times, the tenant time zone and the supplied overrides; it holds no state
between calls.

Each occurrence keeps the master's wall-clock start and end in the tenant time
zone, so a 09:00 series stays at 09:00 local time across DST changes. Results
are returned in UTC.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from ....core.observability import (
    EXPANDED_OCCURRENCES,
    EXPANSION_REJECTIONS,
    get_logger,
)
from ...shared.exceptions import RangeTooLargeError
from ..entities.schedule_entry import ScheduleEntry
from ..value_objects.holiday_calendar import HolidayCalendar, NoHolidays
from ..value_objects.identifiers import OccurrenceRef
from ..value_objects.recurrence import DailyPattern, RecurrencePattern

logger = get_logger(__name__)


class _Tombstone:
    """Marker override that removes an occurrence from the expansion."""

    _instance: _Tombstone | None = None

    def __new__(cls) -> _Tombstone:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TOMBSTONE"


TOMBSTONE = _Tombstone()

Override = ScheduleEntry | _Tombstone


@dataclass(frozen=True)
class Occurrence:
    """One expanded occurrence, either virtual or a detached override row."""

    ref: OccurrenceRef
    scheduled_start: datetime
    scheduled_end: datetime
    detached_entry: ScheduleEntry | None = None

    @property
    def anchor_date(self) -> date:
        return self.ref.anchor_date

    @property
    def is_detached(self) -> bool:
        return self.detached_entry is not None


def shift_to_date(
    anchor_start: datetime,
    anchor_end: datetime,
    day: date,
    time_zone: ZoneInfo,
) -> tuple[datetime, datetime]:
    """
    Move the anchor's local wall-clock start and end onto ``day``.

    The end keeps its local day offset from the start, so an overnight shift
    still ends on the following morning. Both results are UTC.
    """
    local_start = anchor_start.astimezone(time_zone)
    local_end = anchor_end.astimezone(time_zone)
    day_span = (local_end.date() - local_start.date()).days

    start = datetime.combine(day, local_start.time(), tzinfo=time_zone)
    end = datetime.combine(
        day + timedelta(days=day_span), local_end.time(), tzinfo=time_zone
    )
    start_utc = start.astimezone(UTC)
    end_utc = end.astimezone(UTC)
    # a wall-clock end swallowed by a DST fold keeps the absolute duration
    if end_utc <= start_utc:
        end_utc = start_utc + (anchor_end - anchor_start)
    return start_utc, end_utc


class PatternExpander:
    """
    Expands recurrence masters within guard rails.

    ``max_occurrences`` caps the occurrences produced by one call and
    ``max_window_days`` caps the span of a query window; exceeding either
    raises ``RangeTooLargeError`` before anything is returned.
    """

    def __init__(
        self,
        max_occurrences: int = 5000,
        max_window_days: int = 366,
        holidays: HolidayCalendar | None = None,
    ) -> None:
        self.max_occurrences = max_occurrences
        self.max_window_days = max_window_days
        self.holidays = holidays or NoHolidays()

    def check_window(self, window_start: datetime, window_end: datetime) -> None:
        if window_end - window_start > timedelta(days=self.max_window_days):
            EXPANSION_REJECTIONS.labels(limit_type="window_span").inc()
            raise RangeTooLargeError(
                f"Query window exceeds {self.max_window_days} days",
                "window_span",
                self.max_window_days,
                window_start,
                window_end,
            )

    def is_live(self, pattern: RecurrencePattern, day: date) -> bool:
        """True when ``day`` is a series date that has not been cancelled."""
        if day in pattern.exceptions or not pattern.occurs_on(day):
            return False
        return not self._skips_holiday(pattern, day)

    def _skips_holiday(self, pattern: RecurrencePattern, day: date) -> bool:
        return (
            isinstance(pattern, DailyPattern)
            and pattern.workdays_only
            and self.holidays.is_holiday(day)
        )

    def expand(
        self,
        series_id: UUID,
        pattern: RecurrencePattern,
        anchor_start: datetime,
        anchor_end: datetime,
        window_start: datetime,
        window_end: datetime,
        time_zone: ZoneInfo,
        overrides: Mapping[OccurrenceRef, Override] | None = None,
    ) -> list[Occurrence]:
        """
        Expand one series over the half-open window ``[window_start, window_end)``.

        An occurrence is included when its own ``[start, end)`` overlaps the
        window. An override for an anchor date replaces the virtual occurrence:
        a detached entry is yielded as-is (if it overlaps the window), a
        ``TOMBSTONE`` drops the date.
        """
        self.check_window(window_start, window_end)
        if window_end <= window_start:
            return []

        overrides = overrides or {}
        duration = anchor_end - anchor_start
        seek_from = (window_start - duration).astimezone(time_zone).date() - timedelta(
            days=1
        )
        last_day = window_end.astimezone(time_zone).date() + timedelta(days=1)

        occurrences: list[Occurrence] = []
        for _, day in pattern.candidates_from(seek_from):
            if day > last_day:
                break

            ref = OccurrenceRef(series_id, day)
            override = overrides.get(ref)
            if override is TOMBSTONE:
                continue
            if isinstance(override, ScheduleEntry):
                if (
                    override.scheduled_start < window_end
                    and override.scheduled_end > window_start
                ):
                    occurrences.append(
                        Occurrence(
                            ref,
                            override.scheduled_start,
                            override.scheduled_end,
                            detached_entry=override,
                        )
                    )
                continue

            if day in pattern.exceptions or self._skips_holiday(pattern, day):
                continue

            start, end = shift_to_date(anchor_start, anchor_end, day, time_zone)
            if start >= window_end:
                break
            if end <= window_start:
                continue

            occurrences.append(Occurrence(ref, start, end))
            if len(occurrences) > self.max_occurrences:
                EXPANSION_REJECTIONS.labels(limit_type="occurrences").inc()
                logger.warning(
                    "Expansion cap exceeded",
                    series_id=str(series_id),
                    max_occurrences=self.max_occurrences,
                )
                raise RangeTooLargeError(
                    f"Expansion of series {series_id} exceeds "
                    f"{self.max_occurrences} occurrences",
                    "occurrences",
                    self.max_occurrences,
                    window_start,
                    window_end,
                )

        occurrences.sort(key=lambda o: (o.scheduled_start, o.anchor_date))
        EXPANDED_OCCURRENCES.observe(len(occurrences))
        return occurrences

    def expand_entry(
        self,
        master: ScheduleEntry,
        window_start: datetime,
        window_end: datetime,
        time_zone: ZoneInfo,
        overrides: Mapping[OccurrenceRef, Override] | None = None,
    ) -> list[Occurrence]:
        """Expand a persisted master using its own anchor times."""
        if master.recurrence_pattern is None:
            raise ValueError(f"Entry {master.id} is not a recurrence master")
        return self.expand(
            master.id,
            master.recurrence_pattern,
            master.scheduled_start,
            master.scheduled_end,
            window_start,
            window_end,
            time_zone,
            overrides,
        )

    def occurrence_on(
        self, master: ScheduleEntry, day: date, time_zone: ZoneInfo
    ) -> Occurrence | None:
        """The virtual occurrence of ``master`` anchored on ``day``, if it is live."""
        pattern = master.recurrence_pattern
        if pattern is None or not self.is_live(pattern, day):
            return None
        start, end = shift_to_date(
            master.scheduled_start, master.scheduled_end, day, time_zone
        )
        return Occurrence(OccurrenceRef(master.id, day), start, end)
