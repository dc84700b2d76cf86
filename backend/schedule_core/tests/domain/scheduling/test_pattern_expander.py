"""
Unit Tests for the Pattern Expander

Window membership, wall-clock stability across DST changes, overrides and
the range guard rails.
"""

from datetime import date, timedelta
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from schedule_core.domain.scheduling.entities.schedule_entry import ScheduleEntry
from schedule_core.domain.scheduling.services.pattern_expander import (
    TOMBSTONE,
    PatternExpander,
    shift_to_date,
)
from schedule_core.domain.scheduling.value_objects.enums import Frequency
from schedule_core.domain.scheduling.value_objects.holiday_calendar import (
    StaticHolidayCalendar,
)
from schedule_core.domain.scheduling.value_objects.identifiers import OccurrenceRef
from schedule_core.domain.scheduling.value_objects.recurrence import build_pattern
from schedule_core.domain.shared.exceptions import RangeTooLargeError
from schedule_core.tests.utils import utc

UTC_ZONE = ZoneInfo("UTC")
BERLIN = ZoneInfo("Europe/Berlin")


def daily(start, count=None, **kwargs):
    series_id = uuid4()
    pattern = build_pattern(
        Frequency.DAILY, start.date(), occurrence_count=count, **kwargs
    )
    return series_id, pattern


class TestWindowMembership:
    def test_half_open_window(self):
        expander = PatternExpander()
        series_id, pattern = daily(utc(2024, 1, 1, 9))

        occurrences = expander.expand(
            series_id,
            pattern,
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            utc(2024, 1, 2, 10),  # touches the end of Jan 2
            utc(2024, 1, 4, 9),  # touches the start of Jan 4
            UTC_ZONE,
        )

        assert [o.anchor_date for o in occurrences] == [date(2024, 1, 3)]

    def test_occurrence_spanning_window_start_is_included(self):
        expander = PatternExpander()
        series_id, pattern = daily(utc(2024, 1, 1, 22))

        occurrences = expander.expand(
            series_id,
            pattern,
            utc(2024, 1, 1, 22),
            utc(2024, 1, 2, 6),
            utc(2024, 1, 3, 0),
            utc(2024, 1, 3, 12),
            UTC_ZONE,
        )

        assert [o.anchor_date for o in occurrences] == [date(2024, 1, 2)]
        assert occurrences[0].scheduled_end == utc(2024, 1, 3, 6)

    def test_count_bounds_expansion(self):
        expander = PatternExpander()
        series_id, pattern = daily(utc(2024, 1, 1, 9), count=3)

        occurrences = expander.expand(
            series_id,
            pattern,
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            utc(2024, 1, 1),
            utc(2024, 2, 1),
            UTC_ZONE,
        )

        assert len(occurrences) == 3
        assert all(not o.is_detached for o in occurrences)

    def test_empty_window(self):
        expander = PatternExpander()
        series_id, pattern = daily(utc(2024, 1, 1, 9))

        assert (
            expander.expand(
                series_id,
                pattern,
                utc(2024, 1, 1, 9),
                utc(2024, 1, 1, 10),
                utc(2024, 1, 5),
                utc(2024, 1, 5),
                UTC_ZONE,
            )
            == []
        )


class TestTimeZones:
    def test_wall_clock_kept_across_dst(self):
        """09:00 Berlin stays 09:00 local when clocks spring forward."""
        expander = PatternExpander()
        series_id, pattern = daily(utc(2024, 3, 29, 8), count=4)

        occurrences = expander.expand(
            series_id,
            pattern,
            utc(2024, 3, 29, 8),
            utc(2024, 3, 29, 9),
            utc(2024, 3, 28),
            utc(2024, 4, 5),
            BERLIN,
        )

        assert [o.scheduled_start for o in occurrences] == [
            utc(2024, 3, 29, 8),
            utc(2024, 3, 30, 8),
            utc(2024, 3, 31, 7),
            utc(2024, 4, 1, 7),
        ]
        assert all(
            o.scheduled_end - o.scheduled_start == timedelta(hours=1)
            for o in occurrences
        )

    def test_shift_keeps_overnight_offset(self):
        start, end = shift_to_date(
            utc(2024, 1, 1, 22), utc(2024, 1, 2, 6), date(2024, 1, 10), UTC_ZONE
        )

        assert start == utc(2024, 1, 10, 22)
        assert end == utc(2024, 1, 11, 6)


class TestOverridesAndHolidays:
    def test_tombstone_removes_occurrence(self):
        expander = PatternExpander()
        series_id, pattern = daily(utc(2024, 1, 1, 9), count=3)

        occurrences = expander.expand(
            series_id,
            pattern,
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            utc(2024, 1, 1),
            utc(2024, 1, 10),
            UTC_ZONE,
            {OccurrenceRef(series_id, date(2024, 1, 2)): TOMBSTONE},
        )

        assert [o.anchor_date for o in occurrences] == [date(2024, 1, 1), date(2024, 1, 3)]

    def test_detached_override_replaces_occurrence(self):
        expander = PatternExpander()
        series_id, pattern = daily(utc(2024, 1, 1, 9), count=3)
        pattern = pattern.with_exceptions([date(2024, 1, 2)])
        detached = ScheduleEntry(
            title="Moved",
            scheduled_start=utc(2024, 1, 2, 15),
            scheduled_end=utc(2024, 1, 2, 16),
            assigned_user_ids=["user-1"],
            original_entry_id=series_id,
            anchor_date=date(2024, 1, 2),
        )

        occurrences = expander.expand(
            series_id,
            pattern,
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            utc(2024, 1, 1),
            utc(2024, 1, 10),
            UTC_ZONE,
            {detached.occurrence_ref: detached},
        )

        assert len(occurrences) == 3
        moved = occurrences[1]
        assert moved.is_detached
        assert moved.detached_entry is detached
        assert moved.scheduled_start == utc(2024, 1, 2, 15)

    def test_exception_dates_are_skipped(self):
        expander = PatternExpander()
        series_id, pattern = daily(
            utc(2024, 1, 1, 9), count=3, exceptions=[date(2024, 1, 1)]
        )

        occurrences = expander.expand(
            series_id,
            pattern,
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            utc(2024, 1, 1),
            utc(2024, 1, 10),
            UTC_ZONE,
        )

        assert [o.anchor_date for o in occurrences] == [date(2024, 1, 2), date(2024, 1, 3)]

    def test_holidays_skip_workday_series_only(self):
        holidays = StaticHolidayCalendar.from_dates([date(2024, 7, 4)])
        expander = PatternExpander(holidays=holidays)
        series_id, workdays = daily(utc(2024, 7, 1, 9), workdays_only=True)
        _, every_day = daily(utc(2024, 7, 1, 9))

        def anchors(pattern):
            return [
                o.anchor_date
                for o in expander.expand(
                    series_id,
                    pattern,
                    utc(2024, 7, 1, 9),
                    utc(2024, 7, 1, 10),
                    utc(2024, 7, 1),
                    utc(2024, 7, 6),
                    UTC_ZONE,
                )
            ]

        assert anchors(workdays) == [
            date(2024, 7, 1),
            date(2024, 7, 2),
            date(2024, 7, 3),
            date(2024, 7, 5),
        ]
        assert date(2024, 7, 4) in anchors(every_day)
        assert not expander.is_live(workdays, date(2024, 7, 4))


class TestGuardRails:
    def test_window_span_limit(self):
        expander = PatternExpander(max_window_days=7)

        with pytest.raises(RangeTooLargeError) as exc_info:
            expander.check_window(utc(2024, 1, 1), utc(2024, 1, 9))

        assert exc_info.value.limit_type == "window_span"

    def test_occurrence_cap(self):
        expander = PatternExpander(max_occurrences=3)
        series_id, pattern = daily(utc(2024, 1, 1, 9))

        with pytest.raises(RangeTooLargeError) as exc_info:
            expander.expand(
                series_id,
                pattern,
                utc(2024, 1, 1, 9),
                utc(2024, 1, 1, 10),
                utc(2024, 1, 1),
                utc(2024, 1, 11),
                UTC_ZONE,
            )

        assert exc_info.value.limit_type == "occurrences"

    def test_cap_counts_only_window_occurrences(self):
        """A long-running series is fine as long as the window is small."""
        expander = PatternExpander(max_occurrences=3)
        series_id, pattern = daily(utc(2020, 1, 1, 9))

        occurrences = expander.expand(
            series_id,
            pattern,
            utc(2020, 1, 1, 9),
            utc(2020, 1, 1, 10),
            utc(2024, 1, 1),
            utc(2024, 1, 3),
            UTC_ZONE,
        )

        assert len(occurrences) == 2
