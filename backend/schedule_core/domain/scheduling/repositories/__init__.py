"""Repository interfaces for the scheduling domain."""

from .conflict_repository import ConflictRepository
from .schedule_entry_repository import ScheduleEntryRepository
from .unit_of_work import UnitOfWork

__all__ = ["ConflictRepository", "ScheduleEntryRepository", "UnitOfWork"]
