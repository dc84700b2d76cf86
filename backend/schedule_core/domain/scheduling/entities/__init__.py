"""Domain entities for scheduling."""

from .scheduled_item import ScheduleConflict, ScheduledItem
from .schedule_entry import ScheduleEntry

__all__ = ["ScheduleConflict", "ScheduledItem", "ScheduleEntry"]
