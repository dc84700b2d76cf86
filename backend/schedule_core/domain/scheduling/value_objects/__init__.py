"""Value objects for the scheduling domain."""

from .enums import (
    ConflictType,
    EditScope,
    EntryKind,
    EntryStatus,
    Frequency,
    WorkItemType,
)
from .holiday_calendar import (
    HolidayCalendar,
    NoHolidays,
    StaticHolidayCalendar,
    UsFederalHolidayCalendar,
)
from .identifiers import EntryRef, OccurrenceRef, ref_entry_id
from .recurrence import (
    DailyPattern,
    MonthlyPattern,
    RecurrencePattern,
    WeeklyPattern,
    YearlyPattern,
    build_pattern,
    recurrence_pattern_adapter,
)

__all__ = [
    # Enumerations
    "ConflictType",
    "EditScope",
    "EntryKind",
    "EntryStatus",
    "Frequency",
    "WorkItemType",
    # Calendars
    "HolidayCalendar",
    "NoHolidays",
    "StaticHolidayCalendar",
    "UsFederalHolidayCalendar",
    # Identity
    "EntryRef",
    "OccurrenceRef",
    "ref_entry_id",
    # Recurrence
    "DailyPattern",
    "MonthlyPattern",
    "RecurrencePattern",
    "WeeklyPattern",
    "YearlyPattern",
    "build_pattern",
    "recurrence_pattern_adapter",
]
