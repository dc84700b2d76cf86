"""Mappers between domain objects and SQL records."""

from .schedule_entry_mapper import ScheduleConflictMapper, ScheduleEntryMapper

__all__ = ["ScheduleConflictMapper", "ScheduleEntryMapper"]
